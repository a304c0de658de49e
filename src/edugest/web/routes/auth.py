"""Authentication endpoints.

Credentials are checked by the upstream identity provider; this service
only consumes the identity it forwards.
"""

from fastapi import APIRouter, Depends, HTTPException, status

from edugest.db import schools_repository
from edugest.web.deps import CurrentUser, get_current_user
from edugest.web.schemas import LoginRequest, MeResponse

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/login", status_code=status.HTTP_501_NOT_IMPLEMENTED)
async def login(credentials: LoginRequest) -> None:
    """Not served here: sign in through the identity provider."""
    raise HTTPException(
        status_code=status.HTTP_501_NOT_IMPLEMENTED,
        detail="A autenticação é feita pelo fornecedor de identidade",
    )


@router.get("/me", response_model=MeResponse)
async def me(user: CurrentUser = Depends(get_current_user)) -> MeResponse:
    """Echo the caller's identity with their stored profile."""
    profile = schools_repository.get_user_profile(user.user_id)
    aluno = schools_repository.get_aluno_by_user(user.user_id)

    return MeResponse(
        user_id=user.user_id,
        tipo_perfil=user.role,
        nome=profile.nome if profile else None,
        email=profile.email if profile else None,
        escola_id=profile.escola_id if profile else None,
        aluno_id=aluno.id if aluno else None,
    )
