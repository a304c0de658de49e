"""Student grade view endpoints.

A student sees only their own grades; school staff may see any student's.
"""

from fastapi import APIRouter, Depends, HTTPException, Query, status

from edugest.core.student_grades import (
    StudentNotFoundError,
    classify_student_year,
    load_student_grades,
)
from edugest.db import schools_repository
from edugest.web.deps import CurrentUser, get_current_user

router = APIRouter(prefix="/api/alunos", tags=["students"])


def _check_access(aluno_id: str, user: CurrentUser) -> None:
    if user.is_staff:
        return
    if user.role == "ALUNO":
        aluno = schools_repository.get_aluno_by_user(user.user_id)
        if aluno is not None and aluno.id == aluno_id:
            return
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="Sem permissão para ver as notas deste aluno",
    )


@router.get("/{aluno_id}/notas")
async def get_notas(
    aluno_id: str,
    trimestre: int = Query(default=1, ge=1, le=3),
    user: CurrentUser = Depends(get_current_user),
) -> dict:
    """Components, grades and final grades of a student for a trimester."""
    _check_access(aluno_id, user)
    try:
        view = load_student_grades(aluno_id, trimestre)
    except StudentNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Aluno '{aluno_id}' não encontrado",
        )

    return view.to_dict()


@router.get("/{aluno_id}/classificacao")
async def get_classificacao(aluno_id: str, user: CurrentUser = Depends(get_current_user)) -> dict:
    """Year transition decision for a student."""
    _check_access(aluno_id, user)
    try:
        result = classify_student_year(aluno_id)
    except StudentNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Aluno '{aluno_id}' não encontrado",
        )

    return result.to_dict()
