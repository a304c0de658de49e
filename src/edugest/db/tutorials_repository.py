"""Repository functions for video tutorials and their target profiles.

A tutorial is visible to a profile when it is active and either public or
assigned to that profile.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import structlog

from edugest.db.database import get_db, new_id, utc_now
from edugest.utils.video import get_embed_url, get_thumbnail_url

logger = structlog.get_logger(__name__)

CATEGORIAS = ("geral", "login", "turmas", "notas", "relatorios", "configuracoes")

PERFIS_TUTORIAL = ("ESCOLA", "PROFESSOR", "SECRETARIO", "ALUNO", "ENCARREGADO")

FILTROS = ("todos", "ativos", "inativos", "publicos")


class TutorialError(Exception):
    """Invalid tutorial data."""

    pass


@dataclass
class TutorialRecord:
    id: str
    titulo: str
    descricao: str | None
    url_video: str
    thumbnail_url: str | None
    categoria: str
    ordem: int
    publico: bool
    ativo: bool
    created_by: str | None
    created_at: str
    updated_at: str
    perfis: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary, with player and thumbnail URLs resolved."""
        return {
            "id": self.id,
            "titulo": self.titulo,
            "descricao": self.descricao,
            "url_video": self.url_video,
            "embed_url": get_embed_url(self.url_video),
            "thumbnail_url": get_thumbnail_url(self.url_video, self.thumbnail_url),
            "categoria": self.categoria,
            "ordem": self.ordem,
            "publico": self.publico,
            "ativo": self.ativo,
            "perfis": list(self.perfis),
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


def _validate(titulo: str, url_video: str, categoria: str, perfis: list[str]) -> None:
    if not titulo or not titulo.strip():
        raise TutorialError("O título é obrigatório")
    if not url_video or not url_video.strip():
        raise TutorialError("O URL do vídeo é obrigatório")
    if categoria not in CATEGORIAS:
        raise TutorialError(f"Categoria inválida: {categoria}")
    invalid = [p for p in perfis if p not in PERFIS_TUTORIAL]
    if invalid:
        raise TutorialError(f"Perfis inválidos: {', '.join(invalid)}")


def _replace_perfis(conn, tutorial_id: str, perfis: list[str]) -> None:
    conn.execute("DELETE FROM tutorial_perfis WHERE tutorial_id = ?", (tutorial_id,))
    conn.executemany(
        "INSERT INTO tutorial_perfis (tutorial_id, perfil) VALUES (?, ?)",
        [(tutorial_id, p) for p in dict.fromkeys(perfis)],
    )


def create_tutorial(
    titulo: str,
    url_video: str,
    descricao: str | None = None,
    thumbnail_url: str | None = None,
    categoria: str = "geral",
    ordem: int = 0,
    publico: bool = True,
    ativo: bool = True,
    perfis: list[str] | None = None,
    created_by: str | None = None,
) -> TutorialRecord:
    """Insert a tutorial with its target profiles.

    Raises:
        TutorialError: If required fields are missing or values are invalid
    """
    perfis = perfis or []
    _validate(titulo, url_video, categoria, perfis)

    tutorial_id = new_id()
    now = utc_now()
    with get_db() as conn:
        conn.execute(
            """
            INSERT INTO tutoriais (
                id, titulo, descricao, url_video, thumbnail_url, categoria,
                ordem, publico, ativo, created_by, created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                tutorial_id,
                titulo.strip(),
                descricao,
                url_video.strip(),
                thumbnail_url or None,
                categoria,
                ordem,
                int(publico),
                int(ativo),
                created_by,
                now,
                now,
            ),
        )
        _replace_perfis(conn, tutorial_id, perfis)

    logger.info("tutoriais.created", tutorial_id=tutorial_id, categoria=categoria)
    return get_tutorial(tutorial_id)


def update_tutorial(
    tutorial_id: str,
    titulo: str,
    url_video: str,
    descricao: str | None = None,
    thumbnail_url: str | None = None,
    categoria: str = "geral",
    ordem: int = 0,
    publico: bool = True,
    ativo: bool = True,
    perfis: list[str] | None = None,
) -> TutorialRecord | None:
    """Replace a tutorial's fields and profile set.

    Returns:
        Updated record, or None if not found
    """
    perfis = perfis or []
    _validate(titulo, url_video, categoria, perfis)

    with get_db() as conn:
        cursor = conn.execute(
            """
            UPDATE tutoriais SET
                titulo = ?, descricao = ?, url_video = ?, thumbnail_url = ?,
                categoria = ?, ordem = ?, publico = ?, ativo = ?, updated_at = ?
            WHERE id = ?
            """,
            (
                titulo.strip(),
                descricao,
                url_video.strip(),
                thumbnail_url or None,
                categoria,
                ordem,
                int(publico),
                int(ativo),
                utc_now(),
                tutorial_id,
            ),
        )
        if cursor.rowcount == 0:
            return None
        _replace_perfis(conn, tutorial_id, perfis)

    logger.info("tutoriais.updated", tutorial_id=tutorial_id)
    return get_tutorial(tutorial_id)


def delete_tutorial(tutorial_id: str) -> bool:
    with get_db() as conn:
        cursor = conn.execute("DELETE FROM tutoriais WHERE id = ?", (tutorial_id,))

    deleted = cursor.rowcount > 0
    if deleted:
        logger.info("tutoriais.deleted", tutorial_id=tutorial_id)

    return deleted


def toggle_ativo(tutorial_id: str) -> TutorialRecord | None:
    """Flip the active flag of a tutorial."""
    with get_db() as conn:
        cursor = conn.execute(
            "UPDATE tutoriais SET ativo = 1 - ativo, updated_at = ? WHERE id = ?",
            (utc_now(), tutorial_id),
        )

    if cursor.rowcount == 0:
        return None

    tutorial = get_tutorial(tutorial_id)
    logger.debug("tutoriais.toggled", tutorial_id=tutorial_id, ativo=tutorial.ativo)
    return tutorial


def get_tutorial(tutorial_id: str) -> TutorialRecord | None:
    with get_db() as conn:
        row = conn.execute("SELECT * FROM tutoriais WHERE id = ?", (tutorial_id,)).fetchone()
        if row is None:
            return None
        perfis = _perfis_by_tutorial(conn, [tutorial_id])

    return _row_to_record(row, perfis.get(tutorial_id, []))


def list_tutoriais(filtro: str = "todos") -> list[TutorialRecord]:
    """List tutorials for management, ordered by `ordem` then newest first.

    Args:
        filtro: 'todos', 'ativos', 'inativos' or 'publicos'
    """
    if filtro not in FILTROS:
        raise TutorialError(f"Filtro inválido: {filtro}")

    where = {
        "todos": "",
        "ativos": "WHERE ativo = 1",
        "inativos": "WHERE ativo = 0",
        "publicos": "WHERE publico = 1",
    }[filtro]
    return _select(where, ())


def list_visible_tutoriais(perfil: str | None) -> list[TutorialRecord]:
    """Tutorials a profile may watch.

    SUPERADMIN sees everything; without a profile only public ones.
    """
    if perfil == "SUPERADMIN":
        return _select("", ())
    if not perfil:
        return _select("WHERE ativo = 1 AND publico = 1", ())
    return _select(
        """
        WHERE ativo = 1 AND (
            publico = 1
            OR id IN (SELECT tutorial_id FROM tutorial_perfis WHERE perfil = ?)
        )
        """,
        (perfil,),
    )


def tutorial_stats() -> dict[str, Any]:
    """Totals for the management dashboard."""
    with get_db() as conn:
        row = conn.execute(
            """
            SELECT COUNT(*) AS total,
                   COALESCE(SUM(ativo), 0) AS ativos,
                   COALESCE(SUM(publico), 0) AS publicos
            FROM tutoriais
            """
        ).fetchone()
        by_category = conn.execute(
            "SELECT categoria, COUNT(*) AS n FROM tutoriais GROUP BY categoria"
        ).fetchall()

    por_categoria = {c: 0 for c in CATEGORIAS}
    for r in by_category:
        por_categoria[r["categoria"]] = r["n"]

    return {
        "total": row["total"],
        "ativos": row["ativos"],
        "inativos": row["total"] - row["ativos"],
        "publicos": row["publicos"],
        "por_categoria": por_categoria,
    }


def _select(where: str, params: tuple) -> list[TutorialRecord]:
    with get_db() as conn:
        rows = conn.execute(
            f"SELECT * FROM tutoriais {where} ORDER BY ordem ASC, created_at DESC",
            params,
        ).fetchall()
        perfis = _perfis_by_tutorial(conn, [r["id"] for r in rows])

    return [_row_to_record(r, perfis.get(r["id"], [])) for r in rows]


def _perfis_by_tutorial(conn, tutorial_ids: list[str]) -> dict[str, list[str]]:
    if not tutorial_ids:
        return {}
    placeholders = ", ".join("?" for _ in tutorial_ids)
    rows = conn.execute(
        f"SELECT tutorial_id, perfil FROM tutorial_perfis WHERE tutorial_id IN ({placeholders})",
        tutorial_ids,
    ).fetchall()

    result: dict[str, list[str]] = {}
    for r in rows:
        result.setdefault(r["tutorial_id"], []).append(r["perfil"])
    for perfis in result.values():
        perfis.sort(key=PERFIS_TUTORIAL.index)
    return result


def _row_to_record(row, perfis: list[str]) -> TutorialRecord:
    return TutorialRecord(
        id=row["id"],
        titulo=row["titulo"],
        descricao=row["descricao"],
        url_video=row["url_video"],
        thumbnail_url=row["thumbnail_url"],
        categoria=row["categoria"],
        ordem=row["ordem"],
        publico=bool(row["publico"]),
        ativo=bool(row["ativo"]),
        created_by=row["created_by"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
        perfis=perfis,
    )
