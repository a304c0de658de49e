"""Superadmin audit log and school status endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from edugest.db import audit_repository, schools_repository
from edugest.web.deps import CurrentUser, require_superadmin
from edugest.web.schemas import ActionTypeResponse, EscolaStatusUpdate

router = APIRouter(prefix="/api", tags=["audit"])

# action -> (ativa, bloqueada, audit action type)
STATUS_ACTIONS = {
    "activate": (True, None, "ACTIVATE_ESCOLA"),
    "deactivate": (False, None, "DEACTIVATE_ESCOLA"),
    "block": (None, True, "BLOCK_ESCOLA"),
    "unblock": (None, False, "UNBLOCK_ESCOLA"),
}


@router.get("/audit")
async def list_audit(
    action_type: str | None = None,
    escola_id: str | None = None,
    start: str | None = None,
    end: str | None = None,
    limit: int | None = Query(default=None, ge=1),
    user: CurrentUser = Depends(require_superadmin),
) -> dict:
    """Audit entries, newest first."""
    actions = audit_repository.list_actions(action_type, escola_id, start, end, limit)
    return {"actions": [a.to_dict() for a in actions], "count": len(actions)}


@router.get("/audit/action-types", response_model=list[ActionTypeResponse])
async def list_action_types(
    user: CurrentUser = Depends(require_superadmin),
) -> list[ActionTypeResponse]:
    return [
        ActionTypeResponse(value=value, label=label)
        for value, label in audit_repository.ACTION_LABELS.items()
    ]


@router.post("/escolas/{escola_id}/status")
async def change_escola_status(
    escola_id: str,
    data: EscolaStatusUpdate,
    request: Request,
    user: CurrentUser = Depends(require_superadmin),
) -> dict:
    """Activate, deactivate, block or unblock a school and audit the change."""
    ativa, bloqueada, action_type = STATUS_ACTIONS[data.action]
    if data.action == "block" and not (data.motivo and data.motivo.strip()):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="O motivo do bloqueio é obrigatório",
        )

    before = schools_repository.get_escola(escola_id)
    if before is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Escola '{escola_id}' não encontrada",
        )

    escola = schools_repository.set_escola_status(
        escola_id, ativa=ativa, bloqueada=bloqueada, motivo=data.motivo
    )

    audit_repository.log_action_safe(
        user.user_id,
        action_type,
        target_escola_id=escola_id,
        action_details={
            "escola_nome": escola.nome,
            "motivo": data.motivo,
            "antes": {"ativa": before.ativa, "bloqueada": before.bloqueada},
            "depois": {"ativa": escola.ativa, "bloqueada": escola.bloqueada},
        },
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )

    return {
        "id": escola.id,
        "nome": escola.nome,
        "ativa": escola.ativa,
        "bloqueada": escola.bloqueada,
        "bloqueado_motivo": escola.bloqueado_motivo,
    }
