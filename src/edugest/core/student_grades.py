"""Student grade view.

Responsibilities:
- Assemble a student's components, grades and final grades per discipline
- Summarize the trimester (average, approved and failed disciplines)
- Classify the student's year transition from the trimester-3 finals
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import structlog

from edugest.config.app_config import get_grading_config
from edugest.core.classification import ClassificationResult, DisciplinaGrade, classify_student
from edugest.db import disciplines_repository, grades_repository, schools_repository
from edugest.db.disciplines_repository import ComponenteRecord
from edugest.db.grades_repository import NotaFinalRecord, NotaRecord
from edugest.utils.numbers import round_half_up

logger = structlog.get_logger(__name__)


class StudentNotFoundError(Exception):
    """Student doesn't exist."""

    pass


@dataclass
class DisciplineGrades:
    """One discipline of the student grade view."""

    disciplina_id: str
    nome: str
    componentes: list[ComponenteRecord] = field(default_factory=list)
    notas: list[NotaRecord] = field(default_factory=list)
    nota_final: NotaFinalRecord | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "disciplina_id": self.disciplina_id,
            "nome": self.nome,
            "componentes": [c.to_dict() for c in self.componentes],
            "notas": [n.to_dict() for n in self.notas],
            "nota_final": self.nota_final.to_dict() if self.nota_final else None,
        }


@dataclass
class GradesSummary:
    media_geral: float | None = None
    aprovadas: int = 0
    reprovadas: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "media_geral": self.media_geral,
            "aprovadas": self.aprovadas,
            "reprovadas": self.reprovadas,
        }


@dataclass
class StudentGradesView:
    aluno_id: str
    nome_completo: str
    turma_id: str
    trimestre: int
    disciplinas: list[DisciplineGrades] = field(default_factory=list)
    resumo: GradesSummary = field(default_factory=GradesSummary)

    def to_dict(self) -> dict[str, Any]:
        return {
            "aluno_id": self.aluno_id,
            "nome_completo": self.nome_completo,
            "turma_id": self.turma_id,
            "trimestre": self.trimestre,
            "disciplinas": [d.to_dict() for d in self.disciplinas],
            "resumo": self.resumo.to_dict(),
        }


def _summarize(finais: list[float], threshold: float) -> GradesSummary:
    if not finais:
        return GradesSummary()
    aprovadas = sum(1 for n in finais if n >= threshold)
    return GradesSummary(
        media_geral=round_half_up(sum(finais) / len(finais)),
        aprovadas=aprovadas,
        reprovadas=len(finais) - aprovadas,
    )


def load_student_grades(aluno_id: str, trimestre: int) -> StudentGradesView:
    """Build the grade view of a student for one trimester.

    Raises:
        StudentNotFoundError: If the student doesn't exist
    """
    aluno = schools_repository.get_aluno(aluno_id)
    if aluno is None:
        raise StudentNotFoundError(aluno_id)

    finais = {
        f.disciplina_id: f
        for f in grades_repository.list_notas_finais(
            aluno.turma_id, trimestre=trimestre, aluno_id=aluno_id
        )
    }
    notas = grades_repository.list_notas(aluno_id, aluno.turma_id, trimestre)

    disciplinas = []
    for disciplina in disciplines_repository.list_disciplinas(aluno.turma_id):
        componentes = disciplines_repository.list_componentes(disciplina.id, trimestre)
        ids = {c.id for c in componentes}
        disciplinas.append(
            DisciplineGrades(
                disciplina_id=disciplina.id,
                nome=disciplina.nome,
                componentes=componentes,
                notas=[n for n in notas if n.componente_id in ids],
                nota_final=finais.get(disciplina.id),
            )
        )

    threshold = get_grading_config().approval_threshold
    resumo = _summarize(
        [d.nota_final.nota_final for d in disciplinas if d.nota_final is not None], threshold
    )

    logger.debug(
        "student_grades.loaded",
        aluno_id=aluno_id,
        trimestre=trimestre,
        disciplinas=len(disciplinas),
    )
    return StudentGradesView(
        aluno_id=aluno.id,
        nome_completo=aluno.nome_completo,
        turma_id=aluno.turma_id,
        trimestre=trimestre,
        disciplinas=disciplinas,
        resumo=resumo,
    )


def classify_student_year(aluno_id: str) -> ClassificationResult:
    """Transition decision from the trimester-3 finals and annual attendance.

    Raises:
        StudentNotFoundError: If the student doesn't exist
    """
    aluno = schools_repository.get_aluno(aluno_id)
    if aluno is None:
        raise StudentNotFoundError(aluno_id)

    turma = schools_repository.get_turma(aluno.turma_id)
    nomes = {d.id: d.nome for d in disciplines_repository.list_disciplinas(aluno.turma_id)}
    finais = grades_repository.list_notas_finais(aluno.turma_id, trimestre=3, aluno_id=aluno_id)

    grades = [
        DisciplinaGrade(id=f.disciplina_id, nome=nomes.get(f.disciplina_id, ""), nota=f.nota_final)
        for f in finais
    ]
    mandatory_ids = disciplines_repository.list_mandatory_ids(aluno.turma_id)

    return classify_student(
        grades,
        nivel_ensino=turma.nivel_ensino if turma else None,
        classe=turma.classe if turma else None,
        mandatory_ids=mandatory_ids or None,
        frequencia=aluno.frequencia_anual,
    )
