"""Final grade endpoints: calculation and class mini-pauta."""

from fastapi import APIRouter, Depends, HTTPException, Query

from edugest.core.final_grades import FinalGradeError, compute_final_grade, generate_class_report
from edugest.web.deps import CurrentUser, require_staff
from edugest.web.schemas import FinalGradeRequest

router = APIRouter(prefix="/api", tags=["final-grades"])


@router.post("/notas-finais/calculate")
async def calculate(data: FinalGradeRequest, user: CurrentUser = Depends(require_staff)) -> dict:
    """Calculate and store a student's final grade for a trimester."""
    try:
        outcome = compute_final_grade(
            data.aluno_id, data.turma_id, data.disciplina_id, data.trimestre
        )
    except FinalGradeError as e:
        detail = {"message": e.message, "missing": e.missing} if e.missing else e.message
        raise HTTPException(status_code=e.status_code, detail=detail)

    return outcome.to_dict()


@router.get("/turmas/{turma_id}/disciplinas/{disciplina_id}/report")
async def report(
    turma_id: str,
    disciplina_id: str,
    trimestre: int = Query(..., ge=1, le=3),
    user: CurrentUser = Depends(require_staff),
) -> dict:
    """Mini-pauta of a discipline for one trimester."""
    try:
        class_report = generate_class_report(turma_id, disciplina_id, trimestre)
    except FinalGradeError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

    return class_report.to_dict()
