from __future__ import annotations

from ..core.errors import PermissionDeniedError
from ..models import Role, UserModel


def ensure_owner_or_role(actor: UserModel, owner_id: str, *roles: Role) -> None:
    if actor.id == owner_id or actor.role in roles:
        return
    raise PermissionDeniedError("You do not have access to this resource")


def ensure_role(actor: UserModel, *roles: Role) -> None:
    if actor.role not in roles:
        allowed = ", ".join(role.value for role in roles)
        raise PermissionDeniedError(f"This action requires one of the roles: {allowed}")
