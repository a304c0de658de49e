"""Grade entry endpoints: submission, statistics and CSV import/export."""

from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import Response

from edugest.core.grade_entry import (
    GradingError,
    component_stats,
    component_template,
    export_component_grades,
    import_grades,
    submit_grade,
)
from edugest.web.deps import CurrentUser, require_staff
from edugest.web.schemas import GradesImportRequest, NotaSubmit

router = APIRouter(prefix="/api", tags=["grades"])


def _csv_response(content: str, filename: str) -> Response:
    return Response(
        content=content,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/notas", status_code=status.HTTP_201_CREATED)
async def post_nota(data: NotaSubmit, user: CurrentUser = Depends(require_staff)) -> dict:
    """Enter a grade; calculated components depending on it are updated."""
    try:
        submission = submit_grade(
            data.aluno_id, data.componente_id, data.trimestre, data.valor, user.user_id
        )
    except GradingError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

    return submission.to_dict()


@router.get("/componentes/{componente_id}/notas/stats")
async def get_component_stats(
    componente_id: str, user: CurrentUser = Depends(require_staff)
) -> dict:
    """Class statistics for one component."""
    try:
        stats = component_stats(componente_id)
    except GradingError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

    return asdict(stats)


@router.get("/componentes/{componente_id}/notas/export")
async def export_notas(
    componente_id: str, user: CurrentUser = Depends(require_staff)
) -> Response:
    """Download a component's grades as CSV."""
    try:
        content = export_component_grades(componente_id)
    except GradingError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

    return _csv_response(content, f"notas_{componente_id}.csv")


@router.get("/componentes/{componente_id}/notas/template")
async def get_template(
    componente_id: str, user: CurrentUser = Depends(require_staff)
) -> Response:
    """Download an empty CSV import template for a component."""
    try:
        content = component_template(componente_id)
    except GradingError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

    return _csv_response(content, f"template_{componente_id}.csv")


@router.post("/componentes/{componente_id}/notas/import")
async def post_import(
    componente_id: str,
    data: GradesImportRequest,
    user: CurrentUser = Depends(require_staff),
) -> dict:
    """Import grades from CSV; valid rows are stored, the rest reported."""
    try:
        result = import_grades(componente_id, data.content, user.user_id)
    except GradingError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

    return result.to_dict()
