"""User roles and the admin-or-owner access check.

Credentials live with the identity provider; only the role claim is kept
here.
"""

from enum import Enum

from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from checkout.domain import checkout
from checkout.errors import NotAuthorized


class Role(Enum):
    ADMIN = "admin"
    CUSTOMER = "customer"


@checkout.aggregate
class UserRole:
    user_id = Identifier(required=True, unique=True)
    role = String(required=True, choices=Role, default=Role.CUSTOMER.value)


@checkout.repository(part_of=UserRole)
class UserRoleRepository:
    def for_user(self, user_id) -> UserRole | None:
        results = self._dao.query.filter(user_id=str(user_id)).all().items
        return results[0] if results else None


def is_admin(user_id) -> bool:
    if not user_id:
        return False
    record = current_domain.repository_for(UserRole).for_user(user_id)
    return record is not None and record.role == Role.ADMIN.value


def ensure_owner_or_admin(owner_id, caller_id) -> None:
    """Raise NotAuthorized unless ``caller_id`` owns the record or is an admin."""
    if caller_id and str(owner_id) == str(caller_id):
        return
    if is_admin(caller_id):
        return
    raise NotAuthorized()
