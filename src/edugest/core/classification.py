"""Student year-transition classification.

Decides whether a student transitions (Transita) to the next class under the
Angolan rules for Ensino Primario and Ensino Secundario.

Responsibilities:
- Apply the attendance rule before any grade rule
- Apply the per-level grade thresholds on rounded final grades
- Handle the 7th/8th class conditional enrolment (Exame Extraordinario)
- Produce the standardized observation text used in the pauta
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Literal

import structlog

from edugest.config.app_config import GradingConfig, get_grading_config
from edugest.utils.numbers import round_to_int

logger = structlog.get_logger(__name__)

TransitionStatus = Literal["Transita", "Não Transita", "Condicional", "AguardandoNotas"]

MANDATORY_NAME_KEYS = ("português", "portugues", "matemática", "matematica")

AWAITING_OBSERVATION = "Aguardando notas para determinar transição."

# Grades in this band allow conditional enrolment in the 7th and 8th classes
CONDITIONAL_MIN = 7
SECONDARY_THRESHOLD = 10
MAX_CONDITIONAL = 2


# =============================================================================
# DATA CLASSES
# =============================================================================


@dataclass
class DisciplinaGrade:
    """Final (MF/MFD) grade of a student in one discipline."""

    id: str
    nome: str
    nota: float


@dataclass
class ClassificationResult:
    status: TransitionStatus
    motivos: list[str] = field(default_factory=list)
    disciplinas_em_risco: list[str] = field(default_factory=list)
    acoes_recomendadas: list[str] = field(default_factory=list)
    observacao_padronizada: str = ""
    motivo_retencao: str | None = None
    matricula_condicional: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "status": self.status,
            "motivos": list(self.motivos),
            "disciplinas_em_risco": list(self.disciplinas_em_risco),
            "acoes_recomendadas": list(self.acoes_recomendadas),
            "observacao_padronizada": self.observacao_padronizada,
            "motivo_retencao": self.motivo_retencao,
            "matricula_condicional": self.matricula_condicional,
        }


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================


def is_primary_level(nivel_ensino: str | None) -> bool:
    if not nivel_ensino:
        return False
    lowered = nivel_ensino.lower()
    return "primário" in lowered or "primario" in lowered


def extract_class_number(classe: str | None) -> int | None:
    """Extract the class number from labels like '7ª Classe'."""
    if not classe:
        return None
    match = re.search(r"(\d+)[ªº]", classe)
    return int(match.group(1)) if match else None


def is_mandatory_discipline(
    disciplina: DisciplinaGrade, mandatory_ids: list[str] | None
) -> bool:
    """Configured ids win; without them Portugues and Matematica are mandatory."""
    if not mandatory_ids:
        normalized = disciplina.nome.lower().strip()
        return any(key in normalized for key in MANDATORY_NAME_KEYS)
    return disciplina.id in mandatory_ids


def _format_percent(value: float | None) -> str:
    return "N/A" if value is None else f"{value:.2f}"


def _transita_observation(limiar: int, frequencia: float | None) -> str:
    return (
        f"Transitou por ter obtido classificação igual ou superior a {limiar} valores "
        f"em todas as disciplinas e frequência de {_format_percent(frequencia)}%."
    )


def _retido_observation(limiar: int, disciplinas: list[str]) -> str:
    if not disciplinas:
        return "Não transitou por não atingir os critérios mínimos de aprovação."
    return (
        f"Não transitou por ter obtido classificação inferior a {limiar} valores "
        f"em {len(disciplinas)} disciplina(s): {', '.join(disciplinas)}."
    )


def _awaiting() -> ClassificationResult:
    return ClassificationResult(
        status="AguardandoNotas",
        motivos=["Nenhuma nota disponível"],
        acoes_recomendadas=["Aguardar lançamento de notas"],
        observacao_padronizada=AWAITING_OBSERVATION,
    )


def _insufficient_attendance(frequencia: float, minimo: float) -> ClassificationResult:
    freq_text = _format_percent(frequencia)
    minimo_text = f"{minimo:.2f}".replace(".", ",")
    return ClassificationResult(
        status="Não Transita",
        motivos=[f"Frequência insuficiente ({freq_text}%)"],
        acoes_recomendadas=["Melhorar assiduidade"],
        observacao_padronizada=(
            f"Não transitou por frequência insuficiente ({freq_text}%, "
            f"inferior ao mínimo de {minimo_text}%)."
        ),
        motivo_retencao=f"Frequência insuficiente ({freq_text}%, inferior ao mínimo de {minimo_text}%)",
    )


def _transita(limiar: int, frequencia: float | None, motivo: str) -> ClassificationResult:
    return ClassificationResult(
        status="Transita",
        motivos=[motivo],
        observacao_padronizada=_transita_observation(limiar, frequencia),
    )


# =============================================================================
# CLASSIFICATION
# =============================================================================


def _classify_primary(
    disciplinas: list[DisciplinaGrade], frequencia: float | None, config: GradingConfig
) -> ClassificationResult:
    limiar = int(config.primary_threshold)
    abaixo = [d.nome for d in disciplinas if round_to_int(d.nota) < limiar]

    if not abaixo:
        return _transita(limiar, frequencia, f"Todas as disciplinas com nota >= {limiar}")

    return ClassificationResult(
        status="Não Transita",
        motivos=[f"{len(abaixo)} disciplina(s) com nota < {limiar}"],
        disciplinas_em_risco=abaixo,
        acoes_recomendadas=["Reforço nas disciplinas em risco", "Acompanhamento pedagógico"],
        observacao_padronizada=_retido_observation(limiar, abaixo),
        motivo_retencao=(
            f"{len(abaixo)} disciplina(s) com nota inferior a {limiar} valores: "
            f"{', '.join(abaixo)}"
        ),
    )


def _classify_secondary(
    disciplinas: list[DisciplinaGrade],
    classe: str | None,
    mandatory_ids: list[str] | None,
    frequencia: float | None,
) -> ClassificationResult:
    abaixo_7: list[DisciplinaGrade] = []
    entre_7_e_9: list[DisciplinaGrade] = []

    for disc in disciplinas:
        nota = round_to_int(disc.nota)
        if nota < CONDITIONAL_MIN:
            abaixo_7.append(disc)
        elif nota < SECONDARY_THRESHOLD:
            entre_7_e_9.append(disc)

    if abaixo_7:
        nomes = [d.nome for d in abaixo_7]
        return ClassificationResult(
            status="Não Transita",
            motivos=[f"{len(nomes)} disciplina(s) com nota < {CONDITIONAL_MIN}"],
            disciplinas_em_risco=nomes,
            acoes_recomendadas=[
                "Reforço urgente nas disciplinas em risco",
                "Acompanhamento pedagógico intensivo",
            ],
            observacao_padronizada=_retido_observation(SECONDARY_THRESHOLD, nomes),
            motivo_retencao=(
                f"{len(nomes)} disciplina(s) com nota inferior a {CONDITIONAL_MIN} valores: "
                f"{', '.join(nomes)}"
            ),
        )

    nomes_risco = [d.nome for d in entre_7_e_9]
    class_number = extract_class_number(classe)

    if class_number in (7, 8):
        if not entre_7_e_9:
            return _transita(SECONDARY_THRESHOLD, frequencia, "Todas as disciplinas >= 10")

        if len(entre_7_e_9) > MAX_CONDITIONAL:
            return ClassificationResult(
                status="Não Transita",
                motivos=[f"Mais de 2 disciplinas entre 7-9 ({len(nomes_risco)} encontradas)"],
                disciplinas_em_risco=nomes_risco,
                acoes_recomendadas=["Reforço nas disciplinas entre 7-9"],
                observacao_padronizada=_retido_observation(SECONDARY_THRESHOLD, nomes_risco),
                motivo_retencao=(
                    f"Mais de 2 disciplinas com notas entre 7-9 valores "
                    f"({len(nomes_risco)} encontradas): {', '.join(nomes_risco)}"
                ),
            )

        mandatory_count = sum(
            1 for d in entre_7_e_9 if is_mandatory_discipline(d, mandatory_ids)
        )
        if len(entre_7_e_9) == MAX_CONDITIONAL and mandatory_count == MAX_CONDITIONAL:
            return ClassificationResult(
                status="Não Transita",
                motivos=["Não permitido ter 2 disciplinas obrigatórias simultaneamente entre 7-9"],
                disciplinas_em_risco=nomes_risco,
                acoes_recomendadas=["Reforço urgente nas disciplinas obrigatórias"],
                observacao_padronizada=(
                    "Não transitou por ter obtido classificação inferior a 10 valores "
                    "simultaneamente em Língua Portuguesa e Matemática."
                ),
                motivo_retencao=(
                    "Não permitido ter Língua Portuguesa e Matemática simultaneamente "
                    "com notas entre 7-9 valores"
                ),
            )

        return ClassificationResult(
            status="Condicional",
            motivos=[f"Permitido até 2 disciplinas entre 7-9 ({len(nomes_risco)} encontrada(s))"],
            disciplinas_em_risco=nomes_risco,
            acoes_recomendadas=[
                "Reforço nas disciplinas entre 7-9 para melhorar desempenho",
                "Preparação para Exame Extraordinário",
            ],
            observacao_padronizada=(
                f"Transitou condicionalmente com {len(nomes_risco)} disciplina(s) entre 7 e 9 "
                f"valores: {', '.join(nomes_risco)}. Deve realizar Exame Extraordinário "
                "conforme calendário oficial."
            ),
            matricula_condicional=True,
        )

    # 9th class and every other secondary class: all disciplines >= 10
    if entre_7_e_9:
        if class_number == 9:
            motivo = "9ª Classe requer todas as disciplinas >= 10"
            retencao = (
                "9ª Classe requer todas as disciplinas com nota >= 10 valores. "
                f"Disciplinas em risco: {', '.join(nomes_risco)}"
            )
            acoes = ["Reforço nas disciplinas abaixo de 10", "Preparação para exames"]
        else:
            motivo = "Regra geral: todas as disciplinas devem ter >= 10"
            retencao = f"Disciplinas com nota inferior a 10 valores: {', '.join(nomes_risco)}"
            acoes = ["Reforço nas disciplinas abaixo de 10"]
        return ClassificationResult(
            status="Não Transita",
            motivos=[motivo],
            disciplinas_em_risco=nomes_risco,
            acoes_recomendadas=acoes,
            observacao_padronizada=_retido_observation(SECONDARY_THRESHOLD, nomes_risco),
            motivo_retencao=retencao,
        )

    return _transita(SECONDARY_THRESHOLD, frequencia, "Todas as disciplinas >= 10")


def classify_student(
    disciplinas: list[DisciplinaGrade],
    nivel_ensino: str | None = None,
    classe: str | None = None,
    mandatory_ids: list[str] | None = None,
    frequencia: float | None = None,
    config: GradingConfig | None = None,
) -> ClassificationResult:
    """Classify a student's year transition.

    Args:
        disciplinas: Final grades per discipline (MF or MFD)
        nivel_ensino: e.g. "Ensino Primário", "Ensino Secundário I Ciclo"
        classe: e.g. "7ª Classe"
        mandatory_ids: Ids of mandatory disciplines, if configured
        frequencia: Annual attendance percentage (0-100); None does not block

    Returns:
        ClassificationResult
    """
    config = config or get_grading_config()

    if not disciplinas:
        return _awaiting()

    if frequencia is not None and frequencia < config.attendance_minimum:
        result = _insufficient_attendance(frequencia, config.attendance_minimum)
    elif is_primary_level(nivel_ensino):
        result = _classify_primary(disciplinas, frequencia, config)
    else:
        result = _classify_secondary(disciplinas, classe, mandatory_ids, frequencia)

    logger.debug(
        "classification.decided",
        status=result.status,
        nivel_ensino=nivel_ensino,
        classe=classe,
        disciplinas=len(disciplinas),
    )
    return result
