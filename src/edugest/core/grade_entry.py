"""Grade entry service.

Responsibilities:
- Validate and store a student's grade for a manual component
- Recalculate calculated components that depend on it, in dependency order
- Import grades from CSV and export a component's grades
- Per-component class statistics
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import structlog

from edugest.core.calculated_components import compute_calculated_value, dependents_of
from edugest.core.grade_calculator import GradeStats, calculate_grade_stats, validate_grade_value
from edugest.core.grade_import import (
    ImportResult,
    export_grades_csv,
    generate_csv_template,
    parse_grades_csv,
)
from edugest.db import disciplines_repository, grades_repository, schools_repository
from edugest.db.disciplines_repository import ComponenteRecord
from edugest.db.grades_repository import NotaRecord

logger = structlog.get_logger(__name__)

CALCULATED_OBSERVATION = "Calculado automaticamente pela fórmula: {formula}"
RECALCULATED_OBSERVATION = "Recalculado automaticamente pela fórmula: {formula}"


class GradingError(Exception):
    """Grade entry failed; status_code is the HTTP status to report."""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


@dataclass
class GradeSubmission:
    nota: NotaRecord
    recalculated: list[NotaRecord] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "nota": self.nota.to_dict(),
            "recalculated": [n.to_dict() for n in self.recalculated],
        }


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================


def _get_componente(componente_id: str) -> ComponenteRecord:
    componente = disciplines_repository.get_componente(componente_id)
    if componente is None:
        raise GradingError("Componente não encontrado", status_code=404)
    return componente


def _student_grades(aluno_id: str, components: list[ComponenteRecord]) -> dict[str, float]:
    """Map component id to the student's grade in that component's trimester."""
    trimestres = {c.id: c.trimestre for c in components}
    notas = grades_repository.list_notas(aluno_id, componente_ids=list(trimestres))
    return {n.componente_id: n.valor for n in notas if trimestres[n.componente_id] == n.trimestre}


def recalculate_dependents(
    aluno_id: str, componente: ComponenteRecord, lancado_por: str | None = None
) -> list[NotaRecord]:
    """Recompute every calculated component that depends on `componente`.

    A calculated component whose dependencies are not all graded is left
    untouched.
    """
    components = disciplines_repository.list_componentes(componente.disciplina_id)
    affected = dependents_of(componente.id, components)
    if not affected:
        return []

    grades = _student_grades(aluno_id, components)
    recalculated = []

    for calc in affected:
        value = compute_calculated_value(calc, components, grades)
        if value is None:
            continue

        template = (
            RECALCULATED_OBSERVATION
            if calc.id in grades
            else CALCULATED_OBSERVATION
        )
        nota = grades_repository.upsert_nota(
            aluno_id=aluno_id,
            componente_id=calc.id,
            turma_id=calc.turma_id,
            trimestre=calc.trimestre,
            valor=value,
            lancado_por=lancado_por,
            observacao=template.format(formula=calc.formula_expression),
        )
        grades[calc.id] = value
        recalculated.append(nota)

    logger.debug(
        "grades.recalculated",
        aluno_id=aluno_id,
        source=componente.id,
        count=len(recalculated),
    )
    return recalculated


# =============================================================================
# GRADE ENTRY
# =============================================================================


def submit_grade(
    aluno_id: str,
    componente_id: str,
    trimestre: int,
    valor: float,
    lancado_por: str | None = None,
) -> GradeSubmission:
    """Store a grade and update the calculated components that use it.

    Args:
        aluno_id: Student
        componente_id: Manual component being graded
        trimestre: Must match the component's trimester
        valor: Grade on the component's scale
        lancado_por: User entering the grade

    Returns:
        GradeSubmission with the stored grade and recalculated grades

    Raises:
        GradingError: 404 for unknown student/component, 400 for invalid input
    """
    componente = _get_componente(componente_id)

    if componente.is_calculated:
        raise GradingError(
            f"O componente {componente.codigo_componente} é calculado automaticamente "
            "e não aceita lançamento manual"
        )

    aluno = schools_repository.get_aluno(aluno_id)
    if aluno is None:
        raise GradingError("Aluno não encontrado", status_code=404)
    if aluno.turma_id != componente.turma_id:
        raise GradingError("O aluno não pertence à turma deste componente")

    if trimestre != componente.trimestre:
        raise GradingError(
            f"O componente {componente.codigo_componente} pertence ao "
            f"{componente.trimestre}º trimestre"
        )

    validation = validate_grade_value(valor, componente.escala_minima, componente.escala_maxima)
    if not validation.valid:
        raise GradingError(validation.message)

    nota = grades_repository.upsert_nota(
        aluno_id=aluno_id,
        componente_id=componente_id,
        turma_id=componente.turma_id,
        trimestre=trimestre,
        valor=valor,
        lancado_por=lancado_por,
    )
    recalculated = recalculate_dependents(aluno_id, componente, lancado_por)

    logger.info(
        "grades.submitted",
        aluno_id=aluno_id,
        componente_id=componente_id,
        trimestre=trimestre,
        recalculated=len(recalculated),
    )
    return GradeSubmission(nota=nota, recalculated=recalculated)


def import_grades(
    componente_id: str, content: str, lancado_por: str | None = None
) -> ImportResult:
    """Parse a CSV for a component and store every valid row.

    Rejected rows are reported in the result's errors; valid rows are
    stored even when other rows fail.
    """
    componente = _get_componente(componente_id)
    alunos = schools_repository.list_alunos(componente.turma_id)
    result = parse_grades_csv(
        content, alunos, componente.escala_minima, componente.escala_maxima
    )

    for row in result.data:
        submit_grade(row.aluno_id, componente.id, componente.trimestre, row.valor, lancado_por)

    logger.info(
        "grades.imported",
        componente_id=componente_id,
        imported=result.imported,
        errors=len(result.errors),
    )
    return result


def _component_csv_context(componente_id: str):
    componente = _get_componente(componente_id)
    turma = schools_repository.get_turma(componente.turma_id)
    alunos = schools_repository.list_alunos(componente.turma_id)
    return componente, turma.nome if turma else "", alunos


def export_component_grades(componente_id: str) -> str:
    """CSV of a component's grades for its class."""
    componente, turma_nome, alunos = _component_csv_context(componente_id)
    notas = {
        n.aluno_id: n.valor
        for n in grades_repository.list_notas_componente(componente.id, componente.trimestre)
    }
    return export_grades_csv(alunos, notas, componente.nome, turma_nome)


def component_template(componente_id: str) -> str:
    """Empty import template for a component's class."""
    componente, turma_nome, alunos = _component_csv_context(componente_id)
    return generate_csv_template(alunos, componente.nome, turma_nome)


def component_stats(componente_id: str) -> GradeStats:
    """Class statistics for one component."""
    componente = _get_componente(componente_id)
    alunos = schools_repository.list_alunos(componente.turma_id)
    notas = {
        n.aluno_id: n.valor
        for n in grades_repository.list_notas_componente(componente.id, componente.trimestre)
    }
    return calculate_grade_stats({a.id: notas.get(a.id) for a in alunos}, len(alunos))
