"""Formula endpoints: validation, preview, discipline formulas and MT config."""

from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query, status

from edugest.core.final_grades import (
    FinalGradeError,
    mt_config_for,
    save_discipline_formula,
    validate_discipline_formula,
)
from edugest.core.formula import (
    EXAMPLE_FORMULAS,
    FormulaError,
    evaluate_formula,
    format_formula_for_display,
    get_formula_examples,
    validate_formula,
)
from edugest.core.grade_calculator import FormulaConfig, calculate_mt, validate_mt_formula
from edugest.db import disciplines_repository, formulas_repository
from edugest.utils.numbers import round_half_up
from edugest.web.deps import require_staff
from edugest.web.schemas import (
    FormulaConfigResponse,
    FormulaConfigUpdate,
    FormulaPreviewRequest,
    FormulaResponse,
    FormulaSaveRequest,
    FormulaValidateRequest,
    FormulaValidationResponse,
    MTPreviewRequest,
    MTPreviewResponse,
)

router = APIRouter(prefix="/api", tags=["formulas"], dependencies=[Depends(require_staff)])


def _check_mt(formula_expression: str, pesos: dict[int, float] | None) -> str | None:
    """Error message for an MT configuration, or None if valid."""
    expression = formula_expression.strip()
    if expression and expression.lower() != "simples":
        validation = validate_mt_formula(expression)
        if not validation.valid:
            return validation.message
    elif pesos and abs(sum(pesos.values()) - 100) > 0.01:
        return "A soma dos pesos dos trimestres deve ser 100%"
    return None


@router.post("/formulas/validate", response_model=FormulaValidationResponse)
async def validate(data: FormulaValidateRequest) -> FormulaValidationResponse:
    """Validate a formula against a discipline's components or a code list."""
    if data.disciplina_id:
        if disciplines_repository.get_disciplina(data.disciplina_id) is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Disciplina '{data.disciplina_id}' não encontrada",
            )
        result = validate_discipline_formula(data.disciplina_id, data.expressao)
    else:
        result = validate_formula(data.expressao, data.component_codes or [])

    return FormulaValidationResponse(
        valid=result.valid,
        error=result.error,
        components=result.components,
        display=format_formula_for_display(data.expressao) if result.valid else None,
    )


@router.post("/formulas/preview")
async def preview(data: FormulaPreviewRequest) -> dict:
    """Evaluate a formula with sample values."""
    try:
        resultado = evaluate_formula(data.expressao, data.valores)
    except FormulaError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return {
        "resultado": round_half_up(resultado, 2),
        "display": format_formula_for_display(data.expressao),
    }


@router.get("/formulas/examples")
async def examples(codes: list[str] = Query(default=[])) -> dict:
    """Example formulas, generic and built from the given component codes."""
    return {
        "exemplos": [{"nome": nome, "expressao": expr} for nome, expr in EXAMPLE_FORMULAS.items()],
        "sugestoes": get_formula_examples(codes),
    }


@router.get("/turmas/{turma_id}/disciplinas/{disciplina_id}/formula", response_model=FormulaResponse)
async def get_formula(turma_id: str, disciplina_id: str) -> FormulaResponse:
    formula = formulas_repository.get_formula(turma_id, disciplina_id)
    if formula is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Fórmula não encontrada para esta disciplina",
        )
    return FormulaResponse.model_validate(formula)


@router.put("/turmas/{turma_id}/disciplinas/{disciplina_id}/formula", response_model=FormulaResponse)
async def save_formula(turma_id: str, disciplina_id: str, data: FormulaSaveRequest) -> FormulaResponse:
    """Validate and save a discipline's final-grade formula."""
    try:
        formula = save_discipline_formula(turma_id, disciplina_id, data.expressao)
    except FinalGradeError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

    return FormulaResponse.model_validate(formula)


# =============================================================================
# NF / MT CONFIGURATION
# =============================================================================


@router.get(
    "/turmas/{turma_id}/disciplinas/{disciplina_id}/formula-config/{tipo}",
    response_model=FormulaConfigResponse,
)
async def get_formula_config(
    turma_id: str, disciplina_id: str, tipo: Literal["NF", "MT"]
) -> FormulaConfigResponse:
    """Active configuration; MT falls back to the simple average."""
    if tipo == "MT":
        config = mt_config_for(disciplina_id, turma_id)
    else:
        config = formulas_repository.load_formula_config(disciplina_id, turma_id, tipo)

    if config is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Configuração {tipo} não encontrada",
        )
    return FormulaConfigResponse.model_validate(config)


@router.put(
    "/turmas/{turma_id}/disciplinas/{disciplina_id}/formula-config/{tipo}",
    response_model=FormulaConfigResponse,
)
async def save_formula_config(
    turma_id: str, disciplina_id: str, tipo: Literal["NF", "MT"], data: FormulaConfigUpdate
) -> FormulaConfigResponse:
    """Create or replace the NF/MT configuration of a discipline."""
    disciplina = disciplines_repository.get_disciplina(disciplina_id)
    if disciplina is None or disciplina.turma_id != turma_id:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Disciplina não encontrada nesta turma",
        )

    if tipo == "MT":
        error = _check_mt(data.formula_expression, data.pesos_trimestres)
    else:
        result = validate_discipline_formula(disciplina_id, data.formula_expression)
        error = None if result.valid else result.error
    if error:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=error)

    saved = formulas_repository.save_formula_config(
        FormulaConfig(
            disciplina_id=disciplina_id,
            turma_id=turma_id,
            tipo=tipo,
            formula_expression=data.formula_expression.strip(),
            pesos_trimestres=data.pesos_trimestres,
            descricao=data.descricao,
            ativo=data.ativo,
        )
    )
    return FormulaConfigResponse.model_validate(saved)


@router.post("/formulas/mt/preview", response_model=MTPreviewResponse)
async def preview_mt(data: MTPreviewRequest) -> MTPreviewResponse:
    """Validate an MT configuration and compute it for sample grades."""
    error = _check_mt(data.formula_expression, data.pesos_trimestres)
    if error:
        return MTPreviewResponse(valid=False, message=error)

    config = FormulaConfig(
        disciplina_id="",
        turma_id="",
        tipo="MT",
        formula_expression=data.formula_expression,
        pesos_trimestres=data.pesos_trimestres,
    )
    media = calculate_mt(data.notas, config)
    return MTPreviewResponse(valid=True, media=None if media is None else round_half_up(media, 2))
