"""Discipline and evaluation component endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Query, status

from edugest.core.calculated_components import available_dependencies
from edugest.core.grade_calculator import ComponentWeightError
from edugest.db import disciplines_repository
from edugest.db.disciplines_repository import ComponentError, ComponenteRecord, DisciplinaRecord
from edugest.utils.numbers import round_half_up
from edugest.web.deps import require_staff
from edugest.web.schemas import (
    ComponenteCreate,
    ComponenteListResponse,
    ComponenteResponse,
    ComponenteUpdate,
    DisciplinaCreate,
    DisciplinaListResponse,
    DisciplinaResponse,
    DisciplinaUpdate,
    MandatoryUpdate,
    MoveRequest,
    OrderUpdate,
)

router = APIRouter(prefix="/api", tags=["disciplines"], dependencies=[Depends(require_staff)])


def _get_disciplina(disciplina_id: str) -> DisciplinaRecord:
    disciplina = disciplines_repository.get_disciplina(disciplina_id)
    if disciplina is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Disciplina '{disciplina_id}' não encontrada",
        )
    return disciplina


def _component_list(componentes: list[ComponenteRecord]) -> ComponenteListResponse:
    return ComponenteListResponse(
        componentes=[ComponenteResponse.model_validate(c) for c in componentes],
        count=len(componentes),
        peso_total=round_half_up(
            sum(c.peso_percentual for c in componentes if not c.is_calculated), 2
        ),
    )


# =============================================================================
# DISCIPLINAS
# =============================================================================


@router.get("/turmas/{turma_id}/disciplinas", response_model=DisciplinaListResponse)
async def list_disciplinas(turma_id: str) -> DisciplinaListResponse:
    """List the disciplines of a class in display order."""
    disciplinas = disciplines_repository.list_disciplinas(turma_id)
    return DisciplinaListResponse(
        disciplinas=[DisciplinaResponse.model_validate(d) for d in disciplinas],
        count=len(disciplinas),
    )


@router.post(
    "/turmas/{turma_id}/disciplinas",
    response_model=DisciplinaResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_disciplina(turma_id: str, data: DisciplinaCreate) -> DisciplinaResponse:
    """Create a discipline in a class."""
    disciplina = disciplines_repository.create_disciplina(turma_id=turma_id, **data.model_dump())
    return DisciplinaResponse.model_validate(disciplina)


@router.put("/turmas/{turma_id}/disciplinas/order", response_model=DisciplinaListResponse)
async def reorder_disciplinas(turma_id: str, data: OrderUpdate) -> DisciplinaListResponse:
    """Set the display order of a class's disciplines."""
    try:
        disciplinas = disciplines_repository.reorder_disciplinas(turma_id, data.ids)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return DisciplinaListResponse(
        disciplinas=[DisciplinaResponse.model_validate(d) for d in disciplinas],
        count=len(disciplinas),
    )


@router.patch("/disciplinas/{disciplina_id}", response_model=DisciplinaResponse)
async def update_disciplina(disciplina_id: str, data: DisciplinaUpdate) -> DisciplinaResponse:
    """Update a discipline; omitted fields are kept."""
    disciplina = disciplines_repository.update_disciplina(
        disciplina_id, **data.model_dump(exclude_unset=True)
    )
    if disciplina is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Disciplina '{disciplina_id}' não encontrada",
        )
    return DisciplinaResponse.model_validate(disciplina)


@router.delete("/disciplinas/{disciplina_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_disciplina(disciplina_id: str) -> None:
    """Delete a discipline with its components and grades."""
    if not disciplines_repository.delete_disciplina(disciplina_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Disciplina '{disciplina_id}' não encontrada",
        )


@router.put("/disciplinas/{disciplina_id}/obrigatoria")
async def set_obrigatoria(disciplina_id: str, data: MandatoryUpdate) -> dict:
    """Mark or unmark a discipline as mandatory for year transition."""
    disciplina = _get_disciplina(disciplina_id)
    disciplines_repository.set_mandatory(disciplina.id, disciplina.turma_id, data.obrigatoria)
    return {"disciplina_id": disciplina.id, "obrigatoria": data.obrigatoria}


# =============================================================================
# COMPONENTES
# =============================================================================


@router.get("/disciplinas/{disciplina_id}/componentes", response_model=ComponenteListResponse)
async def list_componentes(
    disciplina_id: str, trimestre: int | None = Query(default=None, ge=1, le=3)
) -> ComponenteListResponse:
    """List components of a discipline, optionally for one trimester."""
    _get_disciplina(disciplina_id)
    return _component_list(disciplines_repository.list_componentes(disciplina_id, trimestre))


@router.post(
    "/disciplinas/{disciplina_id}/componentes",
    response_model=ComponenteResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_componente(disciplina_id: str, data: ComponenteCreate) -> ComponenteResponse:
    """Create a component; weights of a trimester may not exceed 100%."""
    disciplina = _get_disciplina(disciplina_id)
    try:
        componente = disciplines_repository.create_componente(
            disciplina_id=disciplina.id,
            turma_id=disciplina.turma_id,
            **data.model_dump(),
        )
    except (ComponentWeightError, ComponentError) as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return ComponenteResponse.model_validate(componente)


@router.get(
    "/disciplinas/{disciplina_id}/componentes/available",
    response_model=ComponenteListResponse,
)
async def list_available_dependencies(
    disciplina_id: str,
    tipo_calculo: str = Query(default="trimestral", pattern="^(trimestral|anual)$"),
    trimestre: int | None = Query(default=None, ge=1, le=3),
    exclude_id: str | None = None,
) -> ComponenteListResponse:
    """Components a calculated component may depend on."""
    _get_disciplina(disciplina_id)
    componentes = available_dependencies(
        disciplines_repository.list_componentes(disciplina_id),
        tipo_calculo,
        trimestre=trimestre,
        exclude_id=exclude_id,
    )
    return _component_list(componentes)


@router.patch("/componentes/{componente_id}", response_model=ComponenteResponse)
async def update_componente(componente_id: str, data: ComponenteUpdate) -> ComponenteResponse:
    """Update a component, re-validating weight and formula."""
    try:
        componente = disciplines_repository.update_componente(
            componente_id, **data.model_dump(exclude_unset=True)
        )
    except (ComponentWeightError, ComponentError) as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    if componente is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Componente '{componente_id}' não encontrado",
        )
    return ComponenteResponse.model_validate(componente)


@router.delete("/componentes/{componente_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_componente(componente_id: str) -> None:
    """Delete a component and its grades."""
    if not disciplines_repository.delete_componente(componente_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Componente '{componente_id}' não encontrado",
        )


@router.post("/componentes/{componente_id}/move")
async def move_componente(componente_id: str, data: MoveRequest) -> dict:
    """Move a component one position up or down within its trimester."""
    if disciplines_repository.get_componente(componente_id) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Componente '{componente_id}' não encontrado",
        )

    moved = disciplines_repository.move_componente(componente_id, data.direction)
    return {"componente_id": componente_id, "moved": moved}
