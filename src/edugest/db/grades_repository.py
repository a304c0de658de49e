"""Repository functions for component grades (notas) and final grades."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Sequence

import structlog

from edugest.db.database import get_db, new_id, utc_now

logger = structlog.get_logger(__name__)


@dataclass
class NotaRecord:
    id: str
    aluno_id: str
    componente_id: str
    turma_id: str
    trimestre: int
    valor: float
    lancado_por: str | None
    observacao: str | None
    created_at: str
    updated_at: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "aluno_id": self.aluno_id,
            "componente_id": self.componente_id,
            "turma_id": self.turma_id,
            "trimestre": self.trimestre,
            "valor": self.valor,
            "lancado_por": self.lancado_por,
            "observacao": self.observacao,
            "updated_at": self.updated_at,
        }


@dataclass
class NotaFinalRecord:
    id: str
    aluno_id: str
    turma_id: str
    disciplina_id: str
    trimestre: int
    nota_final: float
    classificacao: str
    calculo_detalhado: dict[str, Any] = field(default_factory=dict)
    created_at: str = ""
    updated_at: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "aluno_id": self.aluno_id,
            "turma_id": self.turma_id,
            "disciplina_id": self.disciplina_id,
            "trimestre": self.trimestre,
            "nota_final": self.nota_final,
            "classificacao": self.classificacao,
            "calculo_detalhado": self.calculo_detalhado,
            "updated_at": self.updated_at,
        }


# =============================================================================
# NOTAS
# =============================================================================


def upsert_nota(
    aluno_id: str,
    componente_id: str,
    turma_id: str,
    trimestre: int,
    valor: float,
    lancado_por: str | None = None,
    observacao: str | None = None,
) -> NotaRecord:
    """Insert or update the grade of a student for a component in a trimester.

    Raises:
        sqlite3.IntegrityError: If the student or component doesn't exist
    """
    now = utc_now()
    with get_db() as conn:
        conn.execute(
            """
            INSERT INTO notas (
                id, aluno_id, componente_id, turma_id, trimestre, valor,
                lancado_por, observacao, created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT (aluno_id, componente_id, trimestre) DO UPDATE SET
                valor = excluded.valor,
                lancado_por = excluded.lancado_por,
                observacao = excluded.observacao,
                updated_at = excluded.updated_at
            """,
            (
                new_id(),
                aluno_id,
                componente_id,
                turma_id,
                trimestre,
                valor,
                lancado_por,
                observacao,
                now,
                now,
            ),
        )

    logger.debug(
        "notas.upserted",
        aluno_id=aluno_id,
        componente_id=componente_id,
        trimestre=trimestre,
    )
    return get_nota(aluno_id, componente_id, trimestre)


def get_nota(aluno_id: str, componente_id: str, trimestre: int) -> NotaRecord | None:
    with get_db() as conn:
        row = conn.execute(
            """
            SELECT * FROM notas
            WHERE aluno_id = ? AND componente_id = ? AND trimestre = ?
            """,
            (aluno_id, componente_id, trimestre),
        ).fetchone()

    return _row_to_nota(row) if row is not None else None


def list_notas(
    aluno_id: str,
    turma_id: str | None = None,
    trimestre: int | None = None,
    componente_ids: Sequence[str] | None = None,
) -> list[NotaRecord]:
    """Grades of a student, optionally filtered by class, trimester and components."""
    query = "SELECT * FROM notas WHERE aluno_id = ?"
    params: list[Any] = [aluno_id]
    if turma_id is not None:
        query += " AND turma_id = ?"
        params.append(turma_id)
    if trimestre is not None:
        query += " AND trimestre = ?"
        params.append(trimestre)
    if componente_ids is not None:
        if not componente_ids:
            return []
        query += f" AND componente_id IN ({', '.join('?' for _ in componente_ids)})"
        params.extend(componente_ids)

    with get_db() as conn:
        rows = conn.execute(query, params).fetchall()

    return [_row_to_nota(row) for row in rows]


def list_notas_componente(componente_id: str, trimestre: int | None = None) -> list[NotaRecord]:
    """All grades of a component, for class statistics and export."""
    query = "SELECT * FROM notas WHERE componente_id = ?"
    params: list[Any] = [componente_id]
    if trimestre is not None:
        query += " AND trimestre = ?"
        params.append(trimestre)

    with get_db() as conn:
        rows = conn.execute(query, params).fetchall()

    return [_row_to_nota(row) for row in rows]


def _row_to_nota(row) -> NotaRecord:
    return NotaRecord(
        id=row["id"],
        aluno_id=row["aluno_id"],
        componente_id=row["componente_id"],
        turma_id=row["turma_id"],
        trimestre=row["trimestre"],
        valor=row["valor"],
        lancado_por=row["lancado_por"],
        observacao=row["observacao"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


# =============================================================================
# NOTAS FINAIS
# =============================================================================


def upsert_nota_final(
    aluno_id: str,
    turma_id: str,
    disciplina_id: str,
    trimestre: int,
    nota_final: float,
    classificacao: str,
    calculo_detalhado: dict[str, Any],
) -> NotaFinalRecord:
    """Insert or update a final grade with its calculation breakdown."""
    now = utc_now()
    with get_db() as conn:
        conn.execute(
            """
            INSERT INTO notas_finais (
                id, aluno_id, turma_id, disciplina_id, trimestre,
                nota_final, classificacao, calculo_detalhado, created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT (aluno_id, turma_id, disciplina_id, trimestre) DO UPDATE SET
                nota_final = excluded.nota_final,
                classificacao = excluded.classificacao,
                calculo_detalhado = excluded.calculo_detalhado,
                updated_at = excluded.updated_at
            """,
            (
                new_id(),
                aluno_id,
                turma_id,
                disciplina_id,
                trimestre,
                nota_final,
                classificacao,
                json.dumps(calculo_detalhado, ensure_ascii=False),
                now,
                now,
            ),
        )

    logger.debug(
        "notas_finais.upserted",
        aluno_id=aluno_id,
        disciplina_id=disciplina_id,
        trimestre=trimestre,
        nota_final=nota_final,
    )
    return get_nota_final(aluno_id, turma_id, disciplina_id, trimestre)


def get_nota_final(
    aluno_id: str, turma_id: str, disciplina_id: str, trimestre: int
) -> NotaFinalRecord | None:
    with get_db() as conn:
        row = conn.execute(
            """
            SELECT * FROM notas_finais
            WHERE aluno_id = ? AND turma_id = ? AND disciplina_id = ? AND trimestre = ?
            """,
            (aluno_id, turma_id, disciplina_id, trimestre),
        ).fetchone()

    return _row_to_nota_final(row) if row is not None else None


def list_notas_finais(
    turma_id: str,
    disciplina_id: str | None = None,
    trimestre: int | None = None,
    aluno_id: str | None = None,
) -> list[NotaFinalRecord]:
    """Final grades of a class, optionally by discipline, trimester and student."""
    query = "SELECT * FROM notas_finais WHERE turma_id = ?"
    params: list[Any] = [turma_id]
    for column, value in (
        ("disciplina_id", disciplina_id),
        ("trimestre", trimestre),
        ("aluno_id", aluno_id),
    ):
        if value is not None:
            query += f" AND {column} = ?"
            params.append(value)

    with get_db() as conn:
        rows = conn.execute(query, params).fetchall()

    return [_row_to_nota_final(row) for row in rows]


def _row_to_nota_final(row) -> NotaFinalRecord:
    return NotaFinalRecord(
        id=row["id"],
        aluno_id=row["aluno_id"],
        turma_id=row["turma_id"],
        disciplina_id=row["disciplina_id"],
        trimestre=row["trimestre"],
        nota_final=row["nota_final"],
        classificacao=row["classificacao"],
        calculo_detalhado=json.loads(row["calculo_detalhado"] or "{}"),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )
