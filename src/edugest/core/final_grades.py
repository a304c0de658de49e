"""Final grade service.

Responsibilities:
- Validate and save a discipline's final-grade formula
- Compute and store a student's final grade for a trimester
- Compute the trimester average (MT) from the three trimester finals
- Build the class mini-pauta with statistics
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import structlog

from edugest.core.formula import FormulaValidation
from edugest.core.grade_calculator import (
    CalculationResult,
    ClassStatistics,
    ComponentWeight,
    FormulaConfig,
    calculate_final_grade,
    calculate_mt,
    calculate_statistics,
    classify_grade,
    default_mt_config,
    validate_weighted_formula,
)
from edugest.db import (
    disciplines_repository,
    formulas_repository,
    grades_repository,
    notifications_repository,
    schools_repository,
)
from edugest.db.disciplines_repository import ComponenteRecord
from edugest.db.formulas_repository import FormulaRecord
from edugest.db.grades_repository import NotaFinalRecord
from edugest.utils.numbers import round_half_up

logger = structlog.get_logger(__name__)


class FinalGradeError(Exception):
    """Final grade cannot be computed; status_code is the HTTP status."""

    def __init__(self, message: str, status_code: int = 400, missing: list[str] | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.missing = missing or []


@dataclass
class FinalGradeOutcome:
    nota_final: NotaFinalRecord
    calculo: CalculationResult

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": True,
            "data": self.nota_final.to_dict(),
            "calculation": self.calculo.to_dict(),
        }


@dataclass
class ReportRow:
    """One student line of the mini-pauta."""

    numero: int
    aluno_id: str
    nome_completo: str
    numero_processo: str | None
    nota_final: float | None
    classificacao: str | None
    media_trimestral: float | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "numero": self.numero,
            "aluno_id": self.aluno_id,
            "nome_completo": self.nome_completo,
            "numero_processo": self.numero_processo,
            "nota_final": self.nota_final,
            "classificacao": self.classificacao,
            "media_trimestral": self.media_trimestral,
        }


@dataclass
class ClassReport:
    turma_id: str
    turma_nome: str
    disciplina_id: str
    disciplina_nome: str
    trimestre: int
    linhas: list[ReportRow] = field(default_factory=list)
    estatisticas: ClassStatistics = field(default_factory=ClassStatistics)

    def to_dict(self) -> dict[str, Any]:
        return {
            "turma_id": self.turma_id,
            "turma_nome": self.turma_nome,
            "disciplina_id": self.disciplina_id,
            "disciplina_nome": self.disciplina_nome,
            "trimestre": self.trimestre,
            "linhas": [r.to_dict() for r in self.linhas],
            "estatisticas": self.estatisticas.to_dict(),
        }


# =============================================================================
# FORMULAS
# =============================================================================


def formula_components(disciplina_id: str) -> list[ComponenteRecord]:
    """Components a discipline formula can use, one per code in trimester order."""
    seen: dict[str, ComponenteRecord] = {}
    for comp in disciplines_repository.list_componentes(disciplina_id):
        seen.setdefault(comp.codigo_componente, comp)
    return list(seen.values())


def _weights(components: list[ComponenteRecord]) -> list[ComponentWeight]:
    return [ComponentWeight(codigo=c.codigo_componente, peso=c.peso_percentual) for c in components]


def validate_discipline_formula(disciplina_id: str, expressao: str) -> FormulaValidation:
    """Validate a formula against the discipline's components and weights."""
    return validate_weighted_formula(expressao, _weights(formula_components(disciplina_id)))


def save_discipline_formula(turma_id: str, disciplina_id: str, expressao: str) -> FormulaRecord:
    """Validate and persist a discipline's formula with its validation result.

    Invalid formulas are stored too, flagged as not validated.

    Raises:
        FinalGradeError: 404 if the discipline doesn't belong to the class
    """
    disciplina = disciplines_repository.get_disciplina(disciplina_id)
    if disciplina is None or disciplina.turma_id != turma_id:
        raise FinalGradeError("Disciplina não encontrada nesta turma", status_code=404)

    validation = validate_discipline_formula(disciplina_id, expressao)
    return formulas_repository.save_formula(
        turma_id=turma_id,
        disciplina_id=disciplina_id,
        expressao=expressao.strip(),
        componentes_usados=validation.components,
        validada=validation.valid,
        mensagem_validacao=validation.error,
    )


# =============================================================================
# FINAL GRADES
# =============================================================================


def compute_final_grade(
    aluno_id: str, turma_id: str, disciplina_id: str, trimestre: int
) -> FinalGradeOutcome:
    """Calculate, store and announce a student's final grade for a trimester.

    Optional components without a grade count as 0.

    Raises:
        FinalGradeError: 404 when the formula or student is missing,
            400 when the formula is not validated, mandatory grades are
            missing or the calculation fails
    """
    formula = formulas_repository.get_formula(turma_id, disciplina_id)
    if formula is None:
        raise FinalGradeError("Fórmula não encontrada para esta disciplina", status_code=404)
    if not formula.validada:
        raise FinalGradeError("Fórmula não está validada")

    aluno = schools_repository.get_aluno(aluno_id)
    if aluno is None or aluno.turma_id != turma_id:
        raise FinalGradeError("Aluno não encontrado nesta turma", status_code=404)

    componentes = disciplines_repository.list_componentes(disciplina_id, trimestre)
    if not componentes:
        raise FinalGradeError("Componentes de avaliação não encontrados", status_code=404)

    notas = grades_repository.list_notas(
        aluno_id, turma_id, trimestre, [c.id for c in componentes]
    )
    by_id = {n.componente_id: n.valor for n in notas}

    missing = [c.nome for c in componentes if c.obrigatorio and c.id not in by_id]
    if missing:
        raise FinalGradeError(
            f"Notas faltando para componentes obrigatórios: {', '.join(missing)}",
            missing=missing,
        )

    grades = {c.codigo_componente: by_id.get(c.id, 0.0) for c in componentes}
    result = calculate_final_grade(formula.expressao, _weights(componentes), grades)
    if not result.valida:
        raise FinalGradeError(result.erro or "Erro ao calcular nota final")

    nota_final = grades_repository.upsert_nota_final(
        aluno_id=aluno_id,
        turma_id=turma_id,
        disciplina_id=disciplina_id,
        trimestre=trimestre,
        nota_final=result.nota_final,
        classificacao=result.classificacao,
        calculo_detalhado=result.to_dict(),
    )

    if aluno.user_id:
        disciplina = disciplines_repository.get_disciplina(disciplina_id)
        notifications_repository.notify_final_grade(
            aluno.user_id,
            disciplina.nome if disciplina else disciplina_id,
            trimestre,
            result.nota_final,
            result.classificacao,
        )

    logger.info(
        "final_grades.computed",
        aluno_id=aluno_id,
        disciplina_id=disciplina_id,
        trimestre=trimestre,
        nota_final=result.nota_final,
    )
    return FinalGradeOutcome(nota_final=nota_final, calculo=result)


def mt_config_for(disciplina_id: str, turma_id: str) -> FormulaConfig:
    """Active MT configuration, or the simple-average default."""
    config = formulas_repository.load_formula_config(disciplina_id, turma_id, "MT")
    if config is not None:
        return config
    return FormulaConfig(disciplina_id=disciplina_id, turma_id=turma_id, **default_mt_config())


def compute_trimester_average(aluno_id: str, turma_id: str, disciplina_id: str) -> float | None:
    """MT from the stored T1/T2/T3 final grades, or None if any is missing."""
    finais = grades_repository.list_notas_finais(
        turma_id, disciplina_id=disciplina_id, aluno_id=aluno_id
    )
    by_trimestre = {f.trimestre: f.nota_final for f in finais}
    value = calculate_mt(by_trimestre, mt_config_for(disciplina_id, turma_id))
    return None if value is None else round_half_up(value, 2)


# =============================================================================
# MINI-PAUTA
# =============================================================================


def generate_class_report(turma_id: str, disciplina_id: str, trimestre: int) -> ClassReport:
    """Mini-pauta rows ordered by student name, with class statistics.

    Raises:
        FinalGradeError: 404 if the class or discipline doesn't exist
    """
    turma = schools_repository.get_turma(turma_id)
    disciplina = disciplines_repository.get_disciplina(disciplina_id)
    if turma is None or disciplina is None or disciplina.turma_id != turma_id:
        raise FinalGradeError("Turma ou disciplina não encontrada", status_code=404)

    finais = {
        f.aluno_id: f
        for f in grades_repository.list_notas_finais(turma_id, disciplina_id, trimestre)
    }
    mt_config = mt_config_for(disciplina_id, turma_id) if trimestre == 3 else None

    linhas = []
    for numero, aluno in enumerate(schools_repository.list_alunos(turma_id), start=1):
        final = finais.get(aluno.id)
        media = None
        if mt_config is not None:
            trimestres = {
                f.trimestre: f.nota_final
                for f in grades_repository.list_notas_finais(
                    turma_id, disciplina_id=disciplina_id, aluno_id=aluno.id
                )
            }
            mt = calculate_mt(trimestres, mt_config)
            media = None if mt is None else round_half_up(mt, 2)
        linhas.append(
            ReportRow(
                numero=numero,
                aluno_id=aluno.id,
                nome_completo=aluno.nome_completo,
                numero_processo=aluno.numero_processo,
                nota_final=final.nota_final if final else None,
                classificacao=classify_grade(final.nota_final) if final else None,
                media_trimestral=media,
            )
        )

    estatisticas = calculate_statistics(
        [r.nota_final for r in linhas if r.nota_final is not None]
    )
    logger.debug(
        "final_grades.report_generated",
        turma_id=turma_id,
        disciplina_id=disciplina_id,
        trimestre=trimestre,
        alunos=len(linhas),
    )
    return ClassReport(
        turma_id=turma_id,
        turma_nome=turma.nome,
        disciplina_id=disciplina_id,
        disciplina_nome=disciplina.nome,
        trimestre=trimestre,
        linhas=linhas,
        estatisticas=estatisticas,
    )
