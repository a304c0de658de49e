"""Tutorial endpoints.

Management routes are restricted to SUPERADMIN; `/publicos` lists what the
caller's profile may watch.
"""

from fastapi import APIRouter, Depends, HTTPException, Query, status

from edugest.db import tutorials_repository
from edugest.db.tutorials_repository import TutorialError
from edugest.web.deps import CurrentUser, get_optional_user, require_superadmin
from edugest.web.schemas import TutorialPayload, TutorialUpdate

router = APIRouter(prefix="/api/tutoriais", tags=["tutorials"])


def _not_found(tutorial_id: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"Tutorial '{tutorial_id}' não encontrado",
    )


@router.get("")
async def list_tutoriais(
    filtro: str = Query(default="todos"),
    user: CurrentUser = Depends(require_superadmin),
) -> dict:
    """List tutorials for management."""
    try:
        tutoriais = tutorials_repository.list_tutoriais(filtro)
    except TutorialError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return {"tutoriais": [t.to_dict() for t in tutoriais], "count": len(tutoriais)}


@router.get("/stats")
async def get_stats(user: CurrentUser = Depends(require_superadmin)) -> dict:
    return tutorials_repository.tutorial_stats()


@router.get("/publicos")
async def list_publicos(user: CurrentUser | None = Depends(get_optional_user)) -> dict:
    """Tutorials visible to the caller's profile; anonymous callers see public ones."""
    tutoriais = tutorials_repository.list_visible_tutoriais(user.role if user else None)
    return {"tutoriais": [t.to_dict() for t in tutoriais], "count": len(tutoriais)}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_tutorial(
    data: TutorialPayload, user: CurrentUser = Depends(require_superadmin)
) -> dict:
    try:
        tutorial = tutorials_repository.create_tutorial(
            created_by=user.user_id, **data.model_dump()
        )
    except TutorialError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return tutorial.to_dict()


@router.patch("/{tutorial_id}")
async def update_tutorial(
    tutorial_id: str, data: TutorialUpdate, user: CurrentUser = Depends(require_superadmin)
) -> dict:
    """Update a tutorial; omitted fields are kept."""
    current = tutorials_repository.get_tutorial(tutorial_id)
    if current is None:
        raise _not_found(tutorial_id)

    fields = {
        "titulo": current.titulo,
        "url_video": current.url_video,
        "descricao": current.descricao,
        "thumbnail_url": current.thumbnail_url,
        "categoria": current.categoria,
        "ordem": current.ordem,
        "publico": current.publico,
        "ativo": current.ativo,
        "perfis": current.perfis,
    }
    fields.update(data.model_dump(exclude_unset=True))

    try:
        tutorial = tutorials_repository.update_tutorial(tutorial_id, **fields)
    except TutorialError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    if tutorial is None:
        raise _not_found(tutorial_id)
    return tutorial.to_dict()


@router.delete("/{tutorial_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_tutorial(tutorial_id: str, user: CurrentUser = Depends(require_superadmin)) -> None:
    if not tutorials_repository.delete_tutorial(tutorial_id):
        raise _not_found(tutorial_id)


@router.post("/{tutorial_id}/toggle")
async def toggle_tutorial(tutorial_id: str, user: CurrentUser = Depends(require_superadmin)) -> dict:
    """Activate or deactivate a tutorial."""
    tutorial = tutorials_repository.toggle_ativo(tutorial_id)
    if tutorial is None:
        raise _not_found(tutorial_id)
    return tutorial.to_dict()
