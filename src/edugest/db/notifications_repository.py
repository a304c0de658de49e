"""In-app notifications.

Outbound alerts (grades posted, new students, reports, system messages) are
stored as rows for the recipient to read in the app.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

import structlog

from edugest.db.database import get_db, new_id, utc_now

logger = structlog.get_logger(__name__)

TIPOS = ("nota_lancada", "aluno_novo", "relatorio_gerado", "sistema")


class NotificationError(Exception):
    """Invalid notification."""

    pass


@dataclass
class NotificationRecord:
    id: str
    destinatario_id: str
    tipo: str
    titulo: str
    mensagem: str
    dados_adicionais: dict[str, Any] = field(default_factory=dict)
    lida: bool = False
    lida_em: str | None = None
    created_at: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "destinatario_id": self.destinatario_id,
            "tipo": self.tipo,
            "titulo": self.titulo,
            "mensagem": self.mensagem,
            "dados_adicionais": self.dados_adicionais,
            "lida": self.lida,
            "lida_em": self.lida_em,
            "created_at": self.created_at,
        }


def create_notification(
    destinatario_id: str,
    tipo: str,
    titulo: str,
    mensagem: str,
    dados_adicionais: dict[str, Any] | None = None,
) -> NotificationRecord:
    """Store a notification for a user.

    Raises:
        NotificationError: If a required field is empty or the type is unknown
    """
    if not destinatario_id or not titulo or not mensagem:
        raise NotificationError("Destinatário, título e mensagem são obrigatórios")
    if tipo not in TIPOS:
        raise NotificationError(f"Tipo de notificação inválido: {tipo}")

    record = NotificationRecord(
        id=new_id(),
        destinatario_id=destinatario_id,
        tipo=tipo,
        titulo=titulo,
        mensagem=mensagem,
        dados_adicionais=dados_adicionais or {},
        created_at=utc_now(),
    )
    with get_db() as conn:
        conn.execute(
            """
            INSERT INTO notificacoes (
                id, destinatario_id, tipo, titulo, mensagem, dados_adicionais, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                record.id,
                destinatario_id,
                tipo,
                titulo,
                mensagem,
                json.dumps(record.dados_adicionais, ensure_ascii=False, default=str),
                record.created_at,
            ),
        )

    logger.debug("notifications.created", destinatario_id=destinatario_id, tipo=tipo)
    return record


def list_notifications(
    destinatario_id: str, only_unread: bool = False, limit: int = 50
) -> list[NotificationRecord]:
    """Notifications of a user, newest first."""
    query = "SELECT * FROM notificacoes WHERE destinatario_id = ?"
    if only_unread:
        query += " AND lida = 0"
    query += " ORDER BY created_at DESC LIMIT ?"

    with get_db() as conn:
        rows = conn.execute(query, (destinatario_id, limit)).fetchall()

    return [_row_to_record(row) for row in rows]


def unread_count(destinatario_id: str) -> int:
    with get_db() as conn:
        row = conn.execute(
            "SELECT COUNT(*) FROM notificacoes WHERE destinatario_id = ? AND lida = 0",
            (destinatario_id,),
        ).fetchone()

    return row[0]


def mark_read(notification_id: str, destinatario_id: str) -> bool:
    """Mark one of the user's notifications as read.

    Returns:
        True if found, False otherwise
    """
    with get_db() as conn:
        cursor = conn.execute(
            """
            UPDATE notificacoes SET lida = 1, lida_em = COALESCE(lida_em, ?)
            WHERE id = ? AND destinatario_id = ?
            """,
            (utc_now(), notification_id, destinatario_id),
        )

    return cursor.rowcount > 0


def mark_all_read(destinatario_id: str) -> int:
    """Mark every unread notification of a user as read.

    Returns:
        Number of notifications updated
    """
    with get_db() as conn:
        cursor = conn.execute(
            "UPDATE notificacoes SET lida = 1, lida_em = ? WHERE destinatario_id = ? AND lida = 0",
            (utc_now(), destinatario_id),
        )

    logger.debug("notifications.all_read", destinatario_id=destinatario_id, count=cursor.rowcount)
    return cursor.rowcount


def delete_notification(notification_id: str, destinatario_id: str) -> bool:
    with get_db() as conn:
        cursor = conn.execute(
            "DELETE FROM notificacoes WHERE id = ? AND destinatario_id = ?",
            (notification_id, destinatario_id),
        )

    return cursor.rowcount > 0


def _row_to_record(row) -> NotificationRecord:
    return NotificationRecord(
        id=row["id"],
        destinatario_id=row["destinatario_id"],
        tipo=row["tipo"],
        titulo=row["titulo"],
        mensagem=row["mensagem"],
        dados_adicionais=json.loads(row["dados_adicionais"] or "{}"),
        lida=bool(row["lida"]),
        lida_em=row["lida_em"],
        created_at=row["created_at"],
    )


# =============================================================================
# HELPERS FOR COMMON EVENTS
# =============================================================================


def notify_grades_posted(
    destinatario_id: str,
    disciplina: str,
    turma: str,
    dados_adicionais: dict[str, Any] | None = None,
) -> NotificationRecord:
    return create_notification(
        destinatario_id,
        "nota_lancada",
        "Notas lançadas",
        f"Notas de {disciplina} foram lançadas para {turma}",
        {"link": "grades", **(dados_adicionais or {})},
    )


def notify_final_grade(
    destinatario_id: str,
    disciplina: str,
    trimestre: int,
    nota_final: float,
    classificacao: str,
) -> NotificationRecord:
    """Tell a student their final grade for a trimester is available."""
    return create_notification(
        destinatario_id,
        "nota_lancada",
        "Nota final disponível",
        f"A sua nota final de {disciplina} no {trimestre}º trimestre está disponível",
        {
            "link": "grades",
            "trimestre": trimestre,
            "nota_final": nota_final,
            "classificacao": classificacao,
        },
    )


def notify_new_student(destinatario_id: str, aluno_nome: str, turma: str) -> NotificationRecord:
    return create_notification(
        destinatario_id,
        "aluno_novo",
        "Novo aluno cadastrado",
        f"{aluno_nome} foi adicionado à turma {turma}",
        {"link": "students"},
    )


def notify_report_generated(
    destinatario_id: str, tipo_relatorio: str, turma: str
) -> NotificationRecord:
    return create_notification(
        destinatario_id,
        "relatorio_gerado",
        "Relatório disponível",
        f"{tipo_relatorio} da turma {turma} está pronto",
        {"link": "reports"},
    )


def notify_system(
    destinatario_id: str,
    titulo: str,
    mensagem: str | None = None,
    dados_adicionais: dict[str, Any] | None = None,
) -> NotificationRecord:
    """System message; without a body the title is repeated."""
    return create_notification(
        destinatario_id, "sistema", titulo, mensagem or titulo, dados_adicionais
    )
