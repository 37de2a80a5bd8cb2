from datetime import datetime, timezone
from typing import Optional, TypeVar, Generic

from pydantic import BaseModel, Field

T = TypeVar("T")


def _now() -> datetime:
    return datetime.now(timezone.utc)


class ApiResponse(BaseModel, Generic[T]):
    """
    Envelope shared by every endpoint.

    Success:  {"status": "SUCCESS", "code": 200, "data": {...}}
    Failure:  {"status": "ERROR", "code": 404, "message": "..."}
    """
    status: str
    message: Optional[str] = None
    code: Optional[int] = None
    data: Optional[T] = None
    timestamp: datetime = Field(default_factory=_now)

    @classmethod
    def success(cls, data: Optional[T] = None, message: Optional[str] = None, code: int = 200):
        return cls(status="SUCCESS", message=message, code=code, data=data)

    @classmethod
    def error(cls, code: int, message: str, data: Optional[T] = None):
        return cls(status="ERROR", message=message, code=code, data=data)


class HealthResponse(BaseModel):
    status: str
    service: str
    version: str
    environment: str
    redis: str = Field(description="connected | unavailable")
    connected_clients: int = Field(0, description="Subscribed notification sockets")
