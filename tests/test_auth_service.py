import pytest

from lms_service.services.auth_service import AuthService, CurrentUser, require_roles
from lms_service.utils.exceptions import AccessDeniedException, UnauthorizedException


class TestCurrentUser:
    """Tests for the identity carried by a token"""

    @pytest.mark.parametrize("roles,expected", [
        (["student", "instructor"], "instructor"),
        (["admin", "super_admin"], "super_admin"),
        (["student"], "student"),
        (["moderator"], "moderator"),
        ([], "student"),
    ])
    def test_effective_role(self, roles, expected):
        assert CurrentUser(user_id=1, roles=roles).role == expected

    def test_claims_accept_user_id_or_sub(self):
        assert AuthService._to_current_user({"userId": "12", "roles": ["STUDENT"]}).user_id == 12
        user = AuthService._to_current_user({"sub": 5, "role": "Instructor"})
        assert user.user_id == 5
        assert user.roles == ["instructor"]

    def test_claims_without_subject_are_rejected(self):
        with pytest.raises(UnauthorizedException):
            AuthService._to_current_user({"roles": ["student"]})


class TestRequireRoles:
    """Tests for the role guard factory"""

    def test_super_admin_passes_admin_guard(self):
        guard = require_roles("admin")
        user = CurrentUser(user_id=1, roles=["super_admin"])

        assert guard(user) is user

    def test_other_roles_are_denied(self):
        guard = require_roles("instructor", "admin")

        with pytest.raises(AccessDeniedException):
            guard(CurrentUser(user_id=1, roles=["student"]))
