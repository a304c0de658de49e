"""Request dependencies: caller identity and role checks.

Authentication happens upstream; the gateway forwards the user id and,
optionally, the profile type as headers. Without a role header the profile
stored for the user is used.
"""

from __future__ import annotations

from dataclasses import dataclass

from fastapi import Depends, Header, HTTPException, status

from edugest.db import schools_repository
from edugest.utils.translations import translate_error

STAFF_ROLES = ("SUPERADMIN", "ESCOLA", "PROFESSOR", "SECRETARIO")


@dataclass
class CurrentUser:
    user_id: str
    role: str | None = None

    @property
    def is_superadmin(self) -> bool:
        return self.role == "SUPERADMIN"

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES


async def get_current_user(
    x_user_id: str | None = Header(default=None),
    x_user_role: str | None = Header(default=None),
) -> CurrentUser:
    """Identity of the caller; 401 without a user id."""
    if not x_user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=translate_error("Token has expired or is invalid"),
        )

    role = x_user_role.upper() if x_user_role else None
    if role is None:
        profile = schools_repository.get_user_profile(x_user_id)
        role = profile.tipo_perfil if profile else None

    return CurrentUser(user_id=x_user_id, role=role)


async def require_superadmin(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    if not user.is_superadmin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Acesso restrito ao Super Administrador",
        )
    return user


async def require_staff(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    if not user.is_staff:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Sem permissão para esta operação",
        )
    return user


async def get_optional_user(
    x_user_id: str | None = Header(default=None),
    x_user_role: str | None = Header(default=None),
) -> CurrentUser | None:
    """Like get_current_user, but anonymous callers get None."""
    if not x_user_id:
        return None
    return await get_current_user(x_user_id, x_user_role)
