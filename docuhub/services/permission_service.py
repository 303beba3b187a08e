"""Ownership rules, the one place that decides who may mutate what.

Every mutable record carries the ``user_id`` of its owner. Reads of
documents are open to any authenticated caller; everything else is
scoped to the owner. API keys bound to a project may only reach that
project. Admins get no override: the role governs user management, and
the viewer role makes an account read only.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from ..exceptions import ForbiddenError

if TYPE_CHECKING:
    from ..core.auth import AuthContext


def is_owner(auth: AuthContext, owner_id: Optional[str]) -> bool:
    return owner_id is not None and auth.user_id == owner_id


def require_owner(auth: AuthContext, owner_id: Optional[str], resource: str) -> None:
    """Raise ForbiddenError unless the caller owns the resource."""
    if not is_owner(auth, owner_id):
        raise ForbiddenError(f"Only the owner can modify this {resource}")


def in_scope(auth: AuthContext, project_id: Optional[int]) -> bool:
    """Whether a project-scoped API key may reach *project_id*."""
    return auth.project_scope is None or auth.project_scope == project_id


def require_scope(auth: AuthContext, project_id: Optional[int]) -> None:
    if not in_scope(auth, project_id):
        raise ForbiddenError("API key is not valid for this project")


def can_edit(auth: AuthContext, owner_id: Optional[str], project_id: Optional[int] = None) -> bool:
    """``can_edit`` flag returned with reads."""
    return can_write(auth) and is_owner(auth, owner_id) and in_scope(auth, project_id)


def can_write(auth: AuthContext) -> bool:
    """Viewers are read only; admins and editors may create and change their own content."""
    return auth.role != "viewer"


def require_write(auth: AuthContext) -> None:
    if not can_write(auth):
        raise ForbiddenError("Viewers have read-only access")
