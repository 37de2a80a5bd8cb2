from typing import TypeVar, Generic, Type, Optional, Any, Sequence

from sqlalchemy import select, func, and_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Select

from lms_service.model.base import Base

# Generic type for SQLAlchemy models
ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """
    Base repository class with common CRUD operations.

    Soft-deleted rows (is_deleted=True) are hidden from every read unless
    include_deleted is passed.

    Usage:
        class EnrollmentRepository(BaseRepository[Enrollment]):
            def __init__(self, session: AsyncSession):
                super().__init__(Enrollment, session)
    """
    model: Type[ModelType]

    def __init__(self, model: Type[ModelType], session: AsyncSession):
        self.model = model
        self.session = session

    def _not_deleted(self, query: Select, include_deleted: bool = False) -> Select:
        if not include_deleted and hasattr(self.model, 'is_deleted'):
            query = query.where(self.model.is_deleted.is_(False))
        return query

    # ==================== CREATE ====================

    async def create(self, obj_in: dict | ModelType, commit: bool = True) -> ModelType:
        """
        Create a new record.

        Args:
            obj_in: Dictionary or model instance with data to create
            commit: Commit immediately; otherwise only flush so the caller
                can group several writes in one transaction

        Returns:
            Created model instance
        """
        if isinstance(obj_in, dict):
            db_obj = self.model(**obj_in)
        else:
            db_obj = obj_in

        self.session.add(db_obj)
        if commit:
            await self.session.commit()
            await self.session.refresh(db_obj)
        else:
            await self.session.flush()
        return db_obj

    # ==================== READ ====================

    async def get_by_id(self, id: int, include_deleted: bool = False) -> Optional[ModelType]:
        """
        Get a single record by ID, or None if missing (or soft-deleted).
        """
        query = self._not_deleted(
            select(self.model).where(self.model.id == id), include_deleted
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def get_by_filters(
        self,
        filters: dict[str, Any],
        skip: int = 0,
        limit: int = 100,
        include_deleted: bool = False,
        order_by: Optional[str] = None,
        order_desc: bool = False
    ) -> Sequence[ModelType]:
        """
        Get records matching every field-value pair in filters.

        Args:
            filters: Dictionary of field-value pairs to filter by
            skip: Number of records to skip
            limit: Maximum number of records to return
            include_deleted: Whether to include soft-deleted records
            order_by: Field name to order by
            order_desc: Whether to order descending

        Returns:
            List of model instances
        """
        conditions = [getattr(self.model, field) == value for field, value in filters.items()]
        query = self._not_deleted(select(self.model).where(and_(*conditions)), include_deleted)

        if order_by:
            order_column = getattr(self.model, order_by)
            query = query.order_by(order_column.desc() if order_desc else order_column)

        query = query.offset(skip).limit(limit)

        result = await self.session.execute(query)
        return result.scalars().all()

    # ==================== UPDATE ====================

    async def update(self, db_obj: ModelType, obj_in: dict, commit: bool = True) -> ModelType:
        """
        Apply the fields of obj_in to a loaded instance.
        """
        for field, value in obj_in.items():
            if hasattr(db_obj, field):
                setattr(db_obj, field, value)

        if commit:
            await self.session.commit()
            await self.session.refresh(db_obj)
        else:
            await self.session.flush()
        return db_obj

    # ==================== DELETE ====================

    async def soft_delete(self, id: int) -> bool:
        """
        Soft delete a record by ID.

        Returns:
            True if deleted, False if not found
        """
        db_obj = await self.get_by_id(id)
        if not db_obj:
            return False

        db_obj.mark_deleted()
        await self.session.commit()
        return True

    # ==================== COUNT ====================

    async def count_by_filters(
        self,
        filters: dict[str, Any],
        include_deleted: bool = False
    ) -> int:
        conditions = [getattr(self.model, field) == value for field, value in filters.items()]
        query = self._not_deleted(
            select(func.count(self.model.id)).where(and_(*conditions)), include_deleted
        )
        result = await self.session.execute(query)
        return result.scalar() or 0

    # ==================== UTILITY ====================

    async def execute_query(self, query: Select) -> Sequence[ModelType]:
        """Execute a custom select and return the scalar rows."""
        result = await self.session.execute(query)
        return result.scalars().all()

    async def commit(self):
        """Commit the current transaction."""
        await self.session.commit()

    async def rollback(self):
        await self.session.rollback()
