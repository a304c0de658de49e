"""Repository functions for disciplines and evaluation components.

Component weights of a discipline's manual components in one trimester may
never add up to more than 100%. Calculated components carry a weight for
display but don't count toward that total.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

import structlog

from edugest.core.calculated_components import TIPOS_CALCULO, resolve_dependency_order
from edugest.core.formula import FormulaError, validate_formula
from edugest.core.grade_calculator import validate_component_weight
from edugest.db.database import get_db, new_id, utc_now

logger = structlog.get_logger(__name__)


class ComponentError(Exception):
    """Invalid component configuration."""

    pass


@dataclass
class DisciplinaRecord:
    id: str
    turma_id: str
    professor_id: str | None
    nome: str
    codigo_disciplina: str
    carga_horaria: int | None
    descricao: str | None
    ordem: int
    created_at: str
    updated_at: str


@dataclass
class ComponenteRecord:
    """Evaluation component of a discipline in one trimester."""

    id: str
    disciplina_id: str
    turma_id: str
    nome: str
    codigo_componente: str
    peso_percentual: float
    escala_minima: float
    escala_maxima: float
    obrigatorio: bool
    ordem: int
    trimestre: int
    descricao: str | None = None
    is_calculated: bool = False
    formula_expression: str | None = None
    depends_on_components: list[str] = field(default_factory=list)
    tipo_calculo: str = "trimestral"
    created_at: str = ""
    updated_at: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "disciplina_id": self.disciplina_id,
            "turma_id": self.turma_id,
            "nome": self.nome,
            "codigo_componente": self.codigo_componente,
            "peso_percentual": self.peso_percentual,
            "escala_minima": self.escala_minima,
            "escala_maxima": self.escala_maxima,
            "obrigatorio": self.obrigatorio,
            "ordem": self.ordem,
            "trimestre": self.trimestre,
            "descricao": self.descricao,
            "is_calculated": self.is_calculated,
            "formula_expression": self.formula_expression,
            "depends_on_components": list(self.depends_on_components),
            "tipo_calculo": self.tipo_calculo,
        }


DISCIPLINA_FIELDS = ("nome", "codigo_disciplina", "professor_id", "carga_horaria", "descricao", "ordem")

COMPONENTE_FIELDS = (
    "nome",
    "codigo_componente",
    "peso_percentual",
    "escala_minima",
    "escala_maxima",
    "obrigatorio",
    "descricao",
    "is_calculated",
    "formula_expression",
    "depends_on_components",
    "tipo_calculo",
)


# =============================================================================
# DISCIPLINAS
# =============================================================================


def create_disciplina(
    turma_id: str,
    nome: str,
    codigo_disciplina: str,
    professor_id: str | None = None,
    carga_horaria: int | None = None,
    descricao: str | None = None,
    ordem: int | None = None,
) -> DisciplinaRecord:
    """Insert a discipline. Without `ordem` it goes after the class's last one.

    Raises:
        sqlite3.IntegrityError: If the class doesn't exist
    """
    disciplina_id = new_id()
    now = utc_now()
    with get_db() as conn:
        if ordem is None:
            ordem = conn.execute(
                "SELECT COALESCE(MAX(ordem), 0) + 1 FROM disciplinas WHERE turma_id = ?",
                (turma_id,),
            ).fetchone()[0]
        conn.execute(
            """
            INSERT INTO disciplinas (
                id, turma_id, professor_id, nome, codigo_disciplina,
                carga_horaria, descricao, ordem, created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                disciplina_id,
                turma_id,
                professor_id,
                nome,
                codigo_disciplina,
                carga_horaria,
                descricao,
                ordem,
                now,
                now,
            ),
        )

    logger.debug("disciplinas.created", disciplina_id=disciplina_id, turma_id=turma_id)
    return get_disciplina(disciplina_id)


def get_disciplina(disciplina_id: str) -> DisciplinaRecord | None:
    with get_db() as conn:
        row = conn.execute(
            "SELECT * FROM disciplinas WHERE id = ?", (disciplina_id,)
        ).fetchone()

    return _row_to_disciplina(row) if row is not None else None


def list_disciplinas(turma_id: str) -> list[DisciplinaRecord]:
    """Disciplines of a class ordered by `ordem`, then name."""
    with get_db() as conn:
        rows = conn.execute(
            "SELECT * FROM disciplinas WHERE turma_id = ? ORDER BY ordem, nome",
            (turma_id,),
        ).fetchall()

    return [_row_to_disciplina(row) for row in rows]


def update_disciplina(disciplina_id: str, **changes: Any) -> DisciplinaRecord | None:
    """Update discipline fields.

    Args:
        disciplina_id: Discipline to update
        **changes: Any of nome, codigo_disciplina, professor_id,
            carga_horaria, descricao, ordem

    Returns:
        Updated record, or None if not found
    """
    unknown = set(changes) - set(DISCIPLINA_FIELDS)
    if unknown:
        raise ValueError(f"Campos desconhecidos: {', '.join(sorted(unknown))}")

    if get_disciplina(disciplina_id) is None:
        return None

    if changes:
        assignments = ", ".join(f"{name} = ?" for name in changes)
        with get_db() as conn:
            conn.execute(
                f"UPDATE disciplinas SET {assignments}, updated_at = ? WHERE id = ?",
                (*changes.values(), utc_now(), disciplina_id),
            )
        logger.debug("disciplinas.updated", disciplina_id=disciplina_id, fields=list(changes))

    return get_disciplina(disciplina_id)


def delete_disciplina(disciplina_id: str) -> bool:
    """Delete a discipline with its components, grades and formulas.

    Returns:
        True if deleted, False if not found
    """
    with get_db() as conn:
        cursor = conn.execute("DELETE FROM disciplinas WHERE id = ?", (disciplina_id,))

    deleted = cursor.rowcount > 0
    if deleted:
        logger.info("disciplinas.deleted", disciplina_id=disciplina_id)

    return deleted


def reorder_disciplinas(turma_id: str, ordered_ids: list[str]) -> list[DisciplinaRecord]:
    """Set `ordem` from the position of each id in `ordered_ids`.

    Raises:
        ValueError: If an id is not a discipline of the class
    """
    existing = {d.id for d in list_disciplinas(turma_id)}
    foreign = [d for d in ordered_ids if d not in existing]
    if foreign:
        raise ValueError(f"Disciplinas não pertencem à turma: {', '.join(foreign)}")

    now = utc_now()
    with get_db() as conn:
        for position, disciplina_id in enumerate(ordered_ids, start=1):
            conn.execute(
                "UPDATE disciplinas SET ordem = ?, updated_at = ? WHERE id = ?",
                (position, now, disciplina_id),
            )

    logger.debug("disciplinas.reordered", turma_id=turma_id, count=len(ordered_ids))
    return list_disciplinas(turma_id)


def _row_to_disciplina(row) -> DisciplinaRecord:
    return DisciplinaRecord(
        id=row["id"],
        turma_id=row["turma_id"],
        professor_id=row["professor_id"],
        nome=row["nome"],
        codigo_disciplina=row["codigo_disciplina"],
        carga_horaria=row["carga_horaria"],
        descricao=row["descricao"],
        ordem=row["ordem"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


# =============================================================================
# DISCIPLINAS OBRIGATORIAS
# =============================================================================


def list_mandatory_ids(turma_id: str) -> list[str]:
    with get_db() as conn:
        rows = conn.execute(
            "SELECT disciplina_id FROM disciplinas_obrigatorias WHERE turma_id = ?",
            (turma_id,),
        ).fetchall()

    return [row["disciplina_id"] for row in rows]


def set_mandatory(disciplina_id: str, turma_id: str, obrigatoria: bool) -> None:
    """Mark or unmark a discipline as mandatory for year transition."""
    with get_db() as conn:
        if obrigatoria:
            conn.execute(
                """
                INSERT OR IGNORE INTO disciplinas_obrigatorias (disciplina_id, turma_id)
                VALUES (?, ?)
                """,
                (disciplina_id, turma_id),
            )
        else:
            conn.execute(
                "DELETE FROM disciplinas_obrigatorias WHERE disciplina_id = ? AND turma_id = ?",
                (disciplina_id, turma_id),
            )

    logger.debug("disciplinas.mandatory_set", disciplina_id=disciplina_id, obrigatoria=obrigatoria)


# =============================================================================
# COMPONENTES
# =============================================================================


def total_weight(disciplina_id: str, trimestre: int, exclude_id: str | None = None) -> float:
    """Sum of manual component weights of a discipline in a trimester."""
    with get_db() as conn:
        row = conn.execute(
            """
            SELECT COALESCE(SUM(peso_percentual), 0) FROM componentes_avaliacao
            WHERE disciplina_id = ? AND trimestre = ? AND is_calculated = 0 AND id != ?
            """,
            (disciplina_id, trimestre, exclude_id or ""),
        ).fetchone()

    return float(row[0])


def _check_calculated(candidate: ComponenteRecord) -> None:
    """Validate formula and dependencies of a calculated component.

    Raises:
        ComponentError: If the configuration is invalid
    """
    if candidate.tipo_calculo not in TIPOS_CALCULO:
        raise ComponentError(f"Tipo de cálculo inválido: {candidate.tipo_calculo}")

    if not candidate.is_calculated:
        return

    if not candidate.formula_expression or not candidate.depends_on_components:
        raise ComponentError("Componente calculado requer fórmula e componentes dependentes")

    siblings = {c.id: c for c in list_componentes(candidate.disciplina_id)}
    siblings[candidate.id] = candidate
    missing = [d for d in candidate.depends_on_components if d not in siblings or d == candidate.id]
    if missing:
        raise ComponentError("Componente dependente não encontrado nesta disciplina")

    codes = [siblings[d].codigo_componente for d in candidate.depends_on_components]
    if candidate.tipo_calculo == "anual":
        codes += ["T1", "T2", "T3"]
    validation = validate_formula(candidate.formula_expression, codes)
    if not validation.valid:
        raise ComponentError(validation.error)

    try:
        resolve_dependency_order(list(siblings.values()))
    except FormulaError as e:
        raise ComponentError(str(e)) from e


def create_componente(
    disciplina_id: str,
    turma_id: str,
    nome: str,
    codigo_componente: str,
    peso_percentual: float,
    escala_minima: float = 0,
    escala_maxima: float = 20,
    obrigatorio: bool = True,
    trimestre: int = 1,
    descricao: str | None = None,
    is_calculated: bool = False,
    formula_expression: str | None = None,
    depends_on_components: list[str] | None = None,
    tipo_calculo: str = "trimestral",
    ordem: int | None = None,
) -> ComponenteRecord:
    """Insert an evaluation component after validating its weight.

    Raises:
        ComponentWeightError: If the weight breaks the 100% rule
        ComponentError: If a calculated component is misconfigured
        sqlite3.IntegrityError: If the code is already used in the trimester
    """
    existing = [] if is_calculated else [total_weight(disciplina_id, trimestre)]
    validate_component_weight(peso_percentual, existing)

    candidate = ComponenteRecord(
        id=new_id(),
        disciplina_id=disciplina_id,
        turma_id=turma_id,
        nome=nome,
        codigo_componente=codigo_componente.strip(),
        peso_percentual=peso_percentual,
        escala_minima=escala_minima,
        escala_maxima=escala_maxima,
        obrigatorio=obrigatorio,
        ordem=ordem or 0,
        trimestre=trimestre,
        descricao=descricao,
        is_calculated=is_calculated,
        formula_expression=formula_expression if is_calculated else None,
        depends_on_components=list(depends_on_components or []) if is_calculated else [],
        tipo_calculo=tipo_calculo if is_calculated else "trimestral",
    )
    _check_calculated(candidate)

    now = utc_now()
    with get_db() as conn:
        if ordem is None:
            candidate.ordem = conn.execute(
                """
                SELECT COALESCE(MAX(ordem), 0) + 1 FROM componentes_avaliacao
                WHERE disciplina_id = ? AND trimestre = ?
                """,
                (disciplina_id, trimestre),
            ).fetchone()[0]
        conn.execute(
            """
            INSERT INTO componentes_avaliacao (
                id, disciplina_id, turma_id, nome, codigo_componente, peso_percentual,
                escala_minima, escala_maxima, obrigatorio, ordem, trimestre, descricao,
                is_calculated, formula_expression, depends_on_components, tipo_calculo,
                created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                candidate.id,
                disciplina_id,
                turma_id,
                nome,
                candidate.codigo_componente,
                peso_percentual,
                escala_minima,
                escala_maxima,
                int(obrigatorio),
                candidate.ordem,
                trimestre,
                descricao,
                int(candidate.is_calculated),
                candidate.formula_expression,
                json.dumps(candidate.depends_on_components),
                candidate.tipo_calculo,
                now,
                now,
            ),
        )

    logger.info(
        "componentes.created",
        componente_id=candidate.id,
        disciplina_id=disciplina_id,
        codigo=candidate.codigo_componente,
        peso=peso_percentual,
    )
    return get_componente(candidate.id)


def update_componente(componente_id: str, **changes: Any) -> ComponenteRecord | None:
    """Update component fields, re-validating weight and formula.

    Returns:
        Updated record, or None if not found

    Raises:
        ComponentWeightError: If the new weight breaks the 100% rule
        ComponentError: If a calculated component is misconfigured
    """
    unknown = set(changes) - set(COMPONENTE_FIELDS)
    if unknown:
        raise ValueError(f"Campos desconhecidos: {', '.join(sorted(unknown))}")

    current = get_componente(componente_id)
    if current is None:
        return None

    data = current.to_dict()
    data.update(changes)
    candidate = ComponenteRecord(**data)
    if not candidate.is_calculated:
        candidate.formula_expression = None
        candidate.depends_on_components = []
        candidate.tipo_calculo = "trimestral"

    existing = (
        []
        if candidate.is_calculated
        else [total_weight(candidate.disciplina_id, candidate.trimestre, exclude_id=componente_id)]
    )
    validate_component_weight(candidate.peso_percentual, existing)
    _check_calculated(candidate)

    with get_db() as conn:
        conn.execute(
            """
            UPDATE componentes_avaliacao SET
                nome = ?, codigo_componente = ?, peso_percentual = ?,
                escala_minima = ?, escala_maxima = ?, obrigatorio = ?, descricao = ?,
                is_calculated = ?, formula_expression = ?, depends_on_components = ?,
                tipo_calculo = ?, updated_at = ?
            WHERE id = ?
            """,
            (
                candidate.nome,
                candidate.codigo_componente,
                candidate.peso_percentual,
                candidate.escala_minima,
                candidate.escala_maxima,
                int(candidate.obrigatorio),
                candidate.descricao,
                int(candidate.is_calculated),
                candidate.formula_expression,
                json.dumps(candidate.depends_on_components),
                candidate.tipo_calculo,
                utc_now(),
                componente_id,
            ),
        )

    logger.debug("componentes.updated", componente_id=componente_id, fields=list(changes))
    return get_componente(componente_id)


def delete_componente(componente_id: str) -> bool:
    """Delete a component and its grades.

    Returns:
        True if deleted, False if not found
    """
    with get_db() as conn:
        cursor = conn.execute("DELETE FROM componentes_avaliacao WHERE id = ?", (componente_id,))

    deleted = cursor.rowcount > 0
    if deleted:
        logger.info("componentes.deleted", componente_id=componente_id)

    return deleted


def get_componente(componente_id: str) -> ComponenteRecord | None:
    with get_db() as conn:
        row = conn.execute(
            "SELECT * FROM componentes_avaliacao WHERE id = ?", (componente_id,)
        ).fetchone()

    return _row_to_componente(row) if row is not None else None


def list_componentes(disciplina_id: str, trimestre: int | None = None) -> list[ComponenteRecord]:
    """Components of a discipline ordered by trimester and `ordem`."""
    query = "SELECT * FROM componentes_avaliacao WHERE disciplina_id = ?"
    params: list[Any] = [disciplina_id]
    if trimestre is not None:
        query += " AND trimestre = ?"
        params.append(trimestre)
    query += " ORDER BY trimestre, ordem"

    with get_db() as conn:
        rows = conn.execute(query, params).fetchall()

    return [_row_to_componente(row) for row in rows]


def move_componente(componente_id: str, direction: str) -> bool:
    """Swap `ordem` with the neighbour in the same discipline and trimester.

    Args:
        componente_id: Component to move
        direction: 'up' or 'down'

    Returns:
        True if moved, False if not found or already at the edge
    """
    if direction not in ("up", "down"):
        raise ValueError(f"Direção inválida: {direction}")

    current = get_componente(componente_id)
    if current is None:
        return False

    siblings = list_componentes(current.disciplina_id, current.trimestre)
    index = next(i for i, c in enumerate(siblings) if c.id == componente_id)
    target = index - 1 if direction == "up" else index + 1
    if target < 0 or target >= len(siblings):
        return False

    neighbour = siblings[target]
    # Normalize positions so equal `ordem` values still swap
    new_order = {c.id: position for position, c in enumerate(siblings, start=1)}
    new_order[current.id], new_order[neighbour.id] = new_order[neighbour.id], new_order[current.id]

    with get_db() as conn:
        for comp_id, ordem in new_order.items():
            conn.execute(
                "UPDATE componentes_avaliacao SET ordem = ? WHERE id = ?", (ordem, comp_id)
            )

    logger.debug("componentes.moved", componente_id=componente_id, direction=direction)
    return True


def _row_to_componente(row) -> ComponenteRecord:
    return ComponenteRecord(
        id=row["id"],
        disciplina_id=row["disciplina_id"],
        turma_id=row["turma_id"],
        nome=row["nome"],
        codigo_componente=row["codigo_componente"],
        peso_percentual=row["peso_percentual"],
        escala_minima=row["escala_minima"],
        escala_maxima=row["escala_maxima"],
        obrigatorio=bool(row["obrigatorio"]),
        ordem=row["ordem"],
        trimestre=row["trimestre"],
        descricao=row["descricao"],
        is_calculated=bool(row["is_calculated"]),
        formula_expression=row["formula_expression"],
        depends_on_components=json.loads(row["depends_on_components"] or "[]"),
        tipo_calculo=row["tipo_calculo"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )
