"""Notification endpoints for the calling user."""

from fastapi import APIRouter, Depends, HTTPException, Query, status

from edugest.db import notifications_repository
from edugest.web.deps import CurrentUser, get_current_user

router = APIRouter(prefix="/api/notificacoes", tags=["notifications"])


@router.get("")
async def list_notificacoes(
    only_unread: bool = False,
    limit: int = Query(default=50, ge=1, le=200),
    user: CurrentUser = Depends(get_current_user),
) -> dict:
    notificacoes = notifications_repository.list_notifications(user.user_id, only_unread, limit)
    return {
        "notificacoes": [n.to_dict() for n in notificacoes],
        "unread": notifications_repository.unread_count(user.user_id),
    }


@router.post("/read-all")
async def read_all(user: CurrentUser = Depends(get_current_user)) -> dict:
    """Mark every unread notification as read."""
    return {"updated": notifications_repository.mark_all_read(user.user_id)}


@router.post("/{notification_id}/read")
async def read_one(notification_id: str, user: CurrentUser = Depends(get_current_user)) -> dict:
    if not notifications_repository.mark_read(notification_id, user.user_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Notificação '{notification_id}' não encontrada",
        )
    return {"id": notification_id, "lida": True}


@router.delete("/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_one(notification_id: str, user: CurrentUser = Depends(get_current_user)) -> None:
    if not notifications_repository.delete_notification(notification_id, user.user_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Notificação '{notification_id}' não encontrada",
        )
