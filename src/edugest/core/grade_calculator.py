"""Grade calculation module.

Responsibilities:
- Classify grades on the Angolan 0-20 scale
- Validate grade values and component weights
- Calculate final grades from a formula with a step-by-step breakdown
- Weighted averages, class statistics and per-component stats
- Trimester aggregation (MT) from T1/T2/T3 final grades
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Iterable, Literal

import structlog

from edugest.config.app_config import GradingConfig, get_grading_config
from edugest.core.formula import (
    FormulaError,
    FormulaValidation,
    evaluate_formula,
    validate_formula,
)
from edugest.utils.numbers import format_number, round_half_up

logger = structlog.get_logger(__name__)

# =============================================================================
# TYPES
# =============================================================================

CLASSIFICATIONS = ("Excelente", "Bom", "Suficiente", "Insuficiente")

MTCalculationType = Literal["simples", "ponderada", "custom"]

DEFAULT_TRIMESTER_WEIGHTS: dict[int, float] = {1: 33.33, 2: 33.33, 3: 33.34}

WEIGHT_TOLERANCE = 0.01


class ComponentWeightError(Exception):
    """Component weight violates the 100% rule."""

    pass


# =============================================================================
# DATA CLASSES
# =============================================================================


@dataclass
class ComponentWeight:
    """A component code with its percentage weight."""

    codigo: str
    peso: float


@dataclass
class CalculationStep:
    """Contribution of one component to the final grade."""

    componente: str
    valor: float
    peso: float
    contribuicao: float
    calculo: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "componente": self.componente,
            "valor": self.valor,
            "peso": self.peso,
            "contribuicao": self.contribuicao,
            "calculo": self.calculo,
        }


@dataclass
class CalculationResult:
    """Final grade with detailed breakdown."""

    nota_final: float = 0.0
    classificacao: str = ""
    componentes: dict[str, CalculationStep] = field(default_factory=dict)
    expressao_completa: str = ""
    valida: bool = False
    erro: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result = {
            "nota_final": self.nota_final,
            "classificacao": self.classificacao,
            "componentes": {k: v.to_dict() for k, v in self.componentes.items()},
            "expressao_completa": self.expressao_completa,
            "valida": self.valida,
        }
        if self.erro is not None:
            result["erro"] = self.erro
        return result


@dataclass
class GradeValidation:
    valid: bool
    message: str | None = None


@dataclass
class WeightedAverage:
    """Final grade normalized over the weights of graded components."""

    nota_final: float
    classificacao: str
    aprovado: bool
    detalhes: dict[str, dict[str, float]]


@dataclass
class ClassStatistics:
    """Statistics over the final grades of a class."""

    total_alunos: int = 0
    aprovados: int = 0
    reprovados: int = 0
    taxa_aprovacao: float = 0.0
    media_turma: float = 0.0
    nota_minima: float = 0.0
    nota_maxima: float = 0.0
    distribuicao: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_alunos": self.total_alunos,
            "aprovados": self.aprovados,
            "reprovados": self.reprovados,
            "taxa_aprovacao": self.taxa_aprovacao,
            "media_turma": self.media_turma,
            "nota_minima": self.nota_minima,
            "nota_maxima": self.nota_maxima,
            "distribuicao": dict(self.distribuicao),
        }


@dataclass
class GradeStats:
    """Statistics for one component across a class."""

    total: int
    filled: int
    pending: int
    average: float
    min: float
    max: float
    approved: int
    failed: int
    approval_rate: float
    distribution: dict[str, int]


@dataclass
class FormulaConfig:
    """Formula configuration for a discipline in a class (NF or MT)."""

    disciplina_id: str
    turma_id: str
    tipo: Literal["NF", "MT"]
    formula_expression: str
    pesos_trimestres: dict[int, float] | None = None
    descricao: str | None = None
    ativo: bool = True
    id: str | None = None


# =============================================================================
# CLASSIFICATION / VALIDATION
# =============================================================================


def classify_grade(nota: float, config: GradingConfig | None = None) -> str:
    """Get classification for a grade.

    17-20 Excelente, 14-16 Bom, 10-13 Suficiente, 0-9 Insuficiente.
    """
    config = config or get_grading_config()
    if nota >= config.excellent_min:
        return "Excelente"
    if nota >= config.good_min:
        return "Bom"
    if nota >= config.sufficient_min:
        return "Suficiente"
    return "Insuficiente"


def validate_grade_value(valor: float | None, minimo: float, maximo: float) -> GradeValidation:
    """Validate a grade value against a component scale."""
    if valor is None or valor != valor:
        return GradeValidation(valid=False, message="Valor inválido")
    if valor < minimo:
        return GradeValidation(valid=False, message=f"Mínimo: {format_number(minimo)}")
    if valor > maximo:
        return GradeValidation(valid=False, message=f"Máximo: {format_number(maximo)}")
    return GradeValidation(valid=True)


def validate_component_weight(peso: float, existing_weights: Iterable[float]) -> None:
    """Check a new component weight against the discipline's current total.

    Raises:
        ComponentWeightError: If the weight is out of range or would push
            the total above 100%
    """
    if peso <= 0:
        raise ComponentWeightError("O peso deve ser maior que 0%.")
    if peso > 100:
        raise ComponentWeightError("O peso não pode ser maior que 100%.")

    total = sum(existing_weights)
    if total + peso > 100 + WEIGHT_TOLERANCE:
        raise ComponentWeightError(
            "A soma dos pesos não pode ultrapassar 100%. "
            f"Peso atual: {format_number(total)}%, "
            f"tentando adicionar: {format_number(peso)}%"
        )


def validate_weighted_formula(
    expression: str, components: list[ComponentWeight]
) -> FormulaValidation:
    """Validate a formula and require its components' weights to sum to 100%."""
    validation = validate_formula(expression, [c.codigo for c in components])
    if not validation.valid:
        return validation

    used = [c for c in components if c.codigo in validation.components]
    total = sum(c.peso for c in used)
    if abs(total - 100) > WEIGHT_TOLERANCE:
        return FormulaValidation(
            valid=False,
            error=f"Os pesos dos componentes devem somar 100%. Atual: {format_number(total)}%",
            components=validation.components,
        )

    return validation


# =============================================================================
# FINAL GRADE
# =============================================================================


def calculate_final_grade(
    expression: str,
    components: list[ComponentWeight],
    grades: dict[str, float],
    config: GradingConfig | None = None,
) -> CalculationResult:
    """Calculate a final grade with a step-by-step breakdown.

    Never raises: failures are reported through `valida` and `erro`.

    Args:
        expression: Discipline formula (e.g. "0.3*P1 + 0.3*P2 + 0.4*TRAB")
        components: Component codes with percentage weights
        grades: Mapping of component code to grade

    Returns:
        CalculationResult
    """
    result = CalculationResult()

    validation = validate_weighted_formula(expression, components)
    if not validation.valid:
        result.erro = validation.error
        return result

    missing = [code for code in validation.components if code not in grades]
    if missing:
        result.erro = f"Notas faltando para: {', '.join(missing)}"
        return result

    weights = {c.codigo: c.peso for c in components}
    steps: list[str] = []
    contributions: list[float] = []

    for code in validation.components:
        nota = float(grades[code])
        peso = weights[code] / 100
        contribuicao = nota * peso
        result.componentes[code] = CalculationStep(
            componente=code,
            valor=nota,
            peso=peso,
            contribuicao=round_half_up(contribuicao, 2),
            calculo=f"{peso:.2f} * {format_number(nota)} = {contribuicao:.2f}",
        )
        steps.append(f"{peso:.2f}*{format_number(nota)}")
        contributions.append(contribuicao)

    try:
        value = evaluate_formula(expression, {k: float(v) for k, v in grades.items()})
    except FormulaError as e:
        result.componentes = {}
        result.erro = str(e)
        return result

    result.nota_final = round_half_up(value, 2)
    result.classificacao = classify_grade(result.nota_final, config)
    contribution_steps = " + ".join(f"{c:.2f}" for c in contributions)
    result.expressao_completa = (
        f"{' + '.join(steps)} = {contribution_steps} = {format_number(result.nota_final)}"
    )
    result.valida = True

    logger.debug(
        "grades.final_calculated",
        expression=expression,
        nota_final=result.nota_final,
    )
    return result


def calculate_weighted_average(
    grades: dict[str, float],
    components: list[dict[str, Any]],
    config: GradingConfig | None = None,
) -> WeightedAverage:
    """Weighted average normalized over the components that have grades.

    Args:
        grades: Mapping of component id to grade
        components: Dicts with id, codigo_componente, peso_percentual
    """
    config = config or get_grading_config()
    detalhes: dict[str, dict[str, float]] = {}
    soma_contribuicoes = 0.0
    soma_pesos = 0.0

    for comp in components:
        valor = grades.get(comp["id"])
        if valor is None:
            continue
        contribuicao = valor * comp["peso_percentual"] / 100
        detalhes[comp["codigo_componente"]] = {
            "valor": valor,
            "peso": comp["peso_percentual"],
            "contribuicao": contribuicao,
        }
        soma_contribuicoes += contribuicao
        soma_pesos += comp["peso_percentual"]

    nota_final = (soma_contribuicoes / soma_pesos) * 100 if soma_pesos > 0 else 0.0

    return WeightedAverage(
        nota_final=nota_final,
        classificacao=classify_grade(nota_final, config),
        aprovado=nota_final >= config.approval_threshold,
        detalhes=detalhes,
    )


# =============================================================================
# STATISTICS
# =============================================================================


def calculate_statistics(
    notas_finais: list[float], config: GradingConfig | None = None
) -> ClassStatistics:
    """Calculate class statistics from final grades."""
    config = config or get_grading_config()
    if not notas_finais:
        return ClassStatistics(distribuicao={c: 0 for c in CLASSIFICATIONS})

    total = len(notas_finais)
    aprovados = sum(1 for n in notas_finais if n >= config.approval_threshold)

    distribuicao = {c: 0 for c in CLASSIFICATIONS}
    for nota in notas_finais:
        distribuicao[classify_grade(nota, config)] += 1

    return ClassStatistics(
        total_alunos=total,
        aprovados=aprovados,
        reprovados=total - aprovados,
        taxa_aprovacao=aprovados / total * 100,
        media_turma=sum(notas_finais) / total,
        nota_minima=min(notas_finais),
        nota_maxima=max(notas_finais),
        distribuicao=distribuicao,
    )


def calculate_grade_stats(
    notas: dict[str, float | None],
    total_alunos: int,
    approval_threshold: float | None = None,
    config: GradingConfig | None = None,
) -> GradeStats:
    """Calculate statistics for one component's grades.

    Args:
        notas: Mapping of student id to grade (None for not yet graded)
        total_alunos: Number of students in the class
        approval_threshold: Defaults to the configured threshold
    """
    config = config or get_grading_config()
    threshold = (
        config.approval_threshold if approval_threshold is None else approval_threshold
    )
    valores = [v for v in notas.values() if v is not None and v == v]

    if not valores:
        return GradeStats(
            total=total_alunos,
            filled=0,
            pending=total_alunos,
            average=0,
            min=0,
            max=0,
            approved=0,
            failed=0,
            approval_rate=0,
            distribution={"excellent": 0, "good": 0, "sufficient": 0, "insufficient": 0},
        )

    approved = sum(1 for v in valores if v >= threshold)
    return GradeStats(
        total=total_alunos,
        filled=len(valores),
        pending=total_alunos - len(valores),
        average=round_half_up(sum(valores) / len(valores), 2),
        min=round_half_up(min(valores), 2),
        max=round_half_up(max(valores), 2),
        approved=approved,
        failed=len(valores) - approved,
        approval_rate=round_half_up(approved / len(valores) * 100, 1),
        distribution={
            "excellent": sum(1 for v in valores if v >= config.excellent_min),
            "good": sum(1 for v in valores if config.good_min <= v < config.excellent_min),
            "sufficient": sum(
                1 for v in valores if config.sufficient_min <= v < config.good_min
            ),
            "insufficient": sum(1 for v in valores if v < config.sufficient_min),
        },
    )


# =============================================================================
# TRIMESTER AGGREGATION (MT)
# =============================================================================

_TRIMESTER_VAR = re.compile(r"\bt([123])\b", re.IGNORECASE)


def _normalize_trimester_vars(formula: str) -> str:
    """Make t1/t2/t3 case-insensitive by upper-casing them."""
    return _TRIMESTER_VAR.sub(lambda m: f"T{m.group(1)}", formula)


def default_mt_config(kind: MTCalculationType = "simples") -> dict[str, Any]:
    """Get default MT configuration values for a calculation type."""
    if kind == "ponderada":
        return {
            "tipo": "MT",
            "formula_expression": "T1 * 0.3 + T2 * 0.3 + T3 * 0.4",
            "pesos_trimestres": {1: 30.0, 2: 30.0, 3: 40.0},
            "descricao": "Média Ponderada (30%, 30%, 40%)",
        }
    if kind == "custom":
        return {
            "tipo": "MT",
            "formula_expression": "",
            "pesos_trimestres": dict(DEFAULT_TRIMESTER_WEIGHTS),
            "descricao": "Fórmula Personalizada",
        }
    return {
        "tipo": "MT",
        "formula_expression": "(T1 + T2 + T3) / 3",
        "pesos_trimestres": dict(DEFAULT_TRIMESTER_WEIGHTS),
        "descricao": "Média Simples",
    }


def validate_mt_formula(formula: str) -> GradeValidation:
    """Validate an MT formula: must use T1, T2 and T3 and produce a number."""
    if not formula or not formula.strip():
        return GradeValidation(valid=False, message="Fórmula não pode estar vazia")

    normalized = _normalize_trimester_vars(formula)
    if not all(f"T{i}" in normalized for i in (1, 2, 3)):
        return GradeValidation(valid=False, message="Fórmula deve incluir T1, T2 e T3")

    if not re.fullmatch(r"[T0-9+\-*/(). ]+", normalized):
        return GradeValidation(valid=False, message="Fórmula contém caracteres inválidos")

    try:
        evaluate_formula(normalized, {"T1": 15, "T2": 16, "T3": 17})
    except FormulaError:
        return GradeValidation(valid=False, message="Erro de sintaxe na fórmula")

    return GradeValidation(valid=True)


def calculate_mt(trimester_grades: dict[int, float], config: FormulaConfig) -> float | None:
    """Calculate the trimester average from T1/T2/T3 final grades.

    A written formula takes precedence over the trimester weights, which
    only apply when the formula is empty.

    Returns:
        The MT value, or None if any trimester is missing or the formula
        fails
    """
    if any(trimester_grades.get(t) is None for t in (1, 2, 3)):
        return None

    t1, t2, t3 = (float(trimester_grades[t]) for t in (1, 2, 3))
    formula = " ".join(config.formula_expression.lower().split())

    if "(t1 + t2 + t3) / 3" in formula or formula == "simples":
        return (t1 + t2 + t3) / 3

    if formula:
        try:
            return evaluate_formula(
                _normalize_trimester_vars(config.formula_expression),
                {"T1": t1, "T2": t2, "T3": t3},
            )
        except FormulaError as e:
            logger.warning(
                "grades.mt_formula_failed", formula=config.formula_expression, error=str(e)
            )
            return None

    pesos = {int(k): float(v) for k, v in (config.pesos_trimestres or {}).items()}
    return (
        t1 * pesos.get(1, DEFAULT_TRIMESTER_WEIGHTS[1]) / 100
        + t2 * pesos.get(2, DEFAULT_TRIMESTER_WEIGHTS[2]) / 100
        + t3 * pesos.get(3, DEFAULT_TRIMESTER_WEIGHTS[3]) / 100
    )
