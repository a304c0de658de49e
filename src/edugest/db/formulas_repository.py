"""Repository functions for discipline formulas and NF/MT configurations."""

from __future__ import annotations

import json
from dataclasses import dataclass

import structlog

from edugest.core.grade_calculator import FormulaConfig
from edugest.db.database import get_db, new_id, utc_now

logger = structlog.get_logger(__name__)


@dataclass
class FormulaRecord:
    """Final-grade formula of a discipline in a class."""

    id: str
    turma_id: str
    disciplina_id: str
    expressao: str
    componentes_usados: list[str]
    validada: bool
    mensagem_validacao: str | None
    created_at: str
    updated_at: str


def save_formula(
    turma_id: str,
    disciplina_id: str,
    expressao: str,
    componentes_usados: list[str],
    validada: bool,
    mensagem_validacao: str | None = None,
) -> FormulaRecord:
    """Insert or replace the formula of a discipline in a class."""
    now = utc_now()
    with get_db() as conn:
        conn.execute(
            """
            INSERT INTO formulas (
                id, turma_id, disciplina_id, expressao, componentes_usados,
                validada, mensagem_validacao, created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT (turma_id, disciplina_id) DO UPDATE SET
                expressao = excluded.expressao,
                componentes_usados = excluded.componentes_usados,
                validada = excluded.validada,
                mensagem_validacao = excluded.mensagem_validacao,
                updated_at = excluded.updated_at
            """,
            (
                new_id(),
                turma_id,
                disciplina_id,
                expressao,
                json.dumps(componentes_usados),
                int(validada),
                mensagem_validacao,
                now,
                now,
            ),
        )

    logger.info(
        "formulas.saved",
        turma_id=turma_id,
        disciplina_id=disciplina_id,
        validada=validada,
    )
    return get_formula(turma_id, disciplina_id)


def get_formula(turma_id: str, disciplina_id: str) -> FormulaRecord | None:
    with get_db() as conn:
        row = conn.execute(
            "SELECT * FROM formulas WHERE turma_id = ? AND disciplina_id = ?",
            (turma_id, disciplina_id),
        ).fetchone()

    if row is None:
        return None

    return FormulaRecord(
        id=row["id"],
        turma_id=row["turma_id"],
        disciplina_id=row["disciplina_id"],
        expressao=row["expressao"],
        componentes_usados=json.loads(row["componentes_usados"] or "[]"),
        validada=bool(row["validada"]),
        mensagem_validacao=row["mensagem_validacao"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def save_formula_config(config: FormulaConfig) -> FormulaConfig:
    """Insert or update the NF/MT configuration of a discipline in a class."""
    pesos = (
        json.dumps({str(k): v for k, v in config.pesos_trimestres.items()})
        if config.pesos_trimestres
        else None
    )
    now = utc_now()
    with get_db() as conn:
        conn.execute(
            """
            INSERT INTO formula_configuracoes (
                id, disciplina_id, turma_id, tipo, formula_expression,
                pesos_trimestres, descricao, ativo, created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT (disciplina_id, turma_id, tipo) DO UPDATE SET
                formula_expression = excluded.formula_expression,
                pesos_trimestres = excluded.pesos_trimestres,
                descricao = excluded.descricao,
                ativo = excluded.ativo,
                updated_at = excluded.updated_at
            """,
            (
                config.id or new_id(),
                config.disciplina_id,
                config.turma_id,
                config.tipo,
                config.formula_expression,
                pesos,
                config.descricao,
                int(config.ativo),
                now,
                now,
            ),
        )

    logger.info(
        "formula_config.saved",
        disciplina_id=config.disciplina_id,
        turma_id=config.turma_id,
        tipo=config.tipo,
    )
    return _load(config.disciplina_id, config.turma_id, config.tipo, only_active=False)


def load_formula_config(disciplina_id: str, turma_id: str, tipo: str) -> FormulaConfig | None:
    """Load the active configuration for a discipline, or None."""
    return _load(disciplina_id, turma_id, tipo, only_active=True)


def _load(disciplina_id: str, turma_id: str, tipo: str, only_active: bool) -> FormulaConfig | None:
    query = """
        SELECT * FROM formula_configuracoes
        WHERE disciplina_id = ? AND turma_id = ? AND tipo = ?
    """
    if only_active:
        query += " AND ativo = 1"

    with get_db() as conn:
        row = conn.execute(query, (disciplina_id, turma_id, tipo)).fetchone()

    if row is None:
        return None

    pesos = json.loads(row["pesos_trimestres"]) if row["pesos_trimestres"] else None
    return FormulaConfig(
        id=row["id"],
        disciplina_id=row["disciplina_id"],
        turma_id=row["turma_id"],
        tipo=row["tipo"],
        formula_expression=row["formula_expression"],
        pesos_trimestres={int(k): float(v) for k, v in pesos.items()} if pesos else None,
        descricao=row["descricao"],
        ativo=bool(row["ativo"]),
    )
