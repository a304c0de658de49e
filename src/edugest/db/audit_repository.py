"""Audit log of superadmin actions.

Responsibilities:
- Record superadmin actions on schools, users and system configuration
- Query the log with filters, newest first
- Provide Portuguese labels for action types
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

import structlog

from edugest.config.app_config import load_app_config
from edugest.db.database import get_db, new_id, utc_now
from edugest.utils.user_agent import UNKNOWN, detect_browser, detect_device_type, detect_os

logger = structlog.get_logger(__name__)

ACTION_LABELS: dict[str, str] = {
    "ACTIVATE_ESCOLA": "Activar Escola",
    "DEACTIVATE_ESCOLA": "Desactivar Escola",
    "BLOCK_ESCOLA": "Bloquear Escola",
    "UNBLOCK_ESCOLA": "Desbloquear Escola",
    "EDIT_ESCOLA": "Editar Escola",
    "CREATE_ESCOLA": "Criar Escola",
    "DELETE_ESCOLA": "Eliminar Escola",
    "RESTORE_ESCOLA": "Restaurar Escola",
    "VIEW_ESCOLA_DATA": "Ver Dados da Escola",
    "EDIT_SYSTEM_CONFIG": "Editar Configurações",
    "CREATE_USER": "Criar Utilizador",
    "EDIT_USER": "Editar Utilizador",
    "DELETE_USER": "Eliminar Utilizador",
    "EXPORT_DATA": "Exportar Dados",
    "OTHER": "Outra Acção",
}

ACTION_TYPES = tuple(ACTION_LABELS)


class AuditError(Exception):
    """Invalid audit entry."""

    pass


@dataclass
class AuditRecord:
    id: str
    superadmin_user_id: str
    action_type: str
    target_escola_id: str | None
    action_details: dict[str, Any] = field(default_factory=dict)
    ip_address: str = UNKNOWN
    user_agent: str = UNKNOWN
    created_at: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "superadmin_user_id": self.superadmin_user_id,
            "action_type": self.action_type,
            "action_label": get_action_label(self.action_type),
            "target_escola_id": self.target_escola_id,
            "action_details": self.action_details,
            "ip_address": self.ip_address,
            "user_agent": self.user_agent,
            "device_type": detect_device_type(self.user_agent),
            "browser": detect_browser(self.user_agent),
            "os": detect_os(self.user_agent),
            "created_at": self.created_at,
        }


def get_action_label(action_type: str) -> str:
    """Portuguese label of an action type; unknown types return the raw value."""
    return ACTION_LABELS.get(action_type, action_type)


def log_action(
    superadmin_user_id: str,
    action_type: str,
    target_escola_id: str | None = None,
    action_details: dict[str, Any] | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> AuditRecord:
    """Record a superadmin action.

    Raises:
        AuditError: If action_type is unknown or the user id is missing
    """
    if action_type not in ACTION_LABELS:
        raise AuditError(f"Tipo de acção inválido: {action_type}")
    if not superadmin_user_id:
        raise AuditError("Utilizador da acção em falta")

    record = AuditRecord(
        id=new_id(),
        superadmin_user_id=superadmin_user_id,
        action_type=action_type,
        target_escola_id=target_escola_id,
        action_details=action_details or {},
        ip_address=ip_address or UNKNOWN,
        user_agent=user_agent or UNKNOWN,
        created_at=utc_now(),
    )

    with get_db() as conn:
        conn.execute(
            """
            INSERT INTO superadmin_actions (
                id, superadmin_user_id, action_type, target_escola_id,
                action_details, ip_address, user_agent, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                record.id,
                record.superadmin_user_id,
                record.action_type,
                record.target_escola_id,
                json.dumps(record.action_details, ensure_ascii=False, default=str),
                record.ip_address,
                record.user_agent,
                record.created_at,
            ),
        )

    logger.info(
        "audit.logged",
        action_type=action_type,
        superadmin_user_id=superadmin_user_id,
        target_escola_id=target_escola_id,
    )
    return record


def log_action_safe(*args: Any, **kwargs: Any) -> AuditRecord | None:
    """Like log_action, but a failure is logged and swallowed.

    Audit failures must not break the operation being audited.
    """
    try:
        return log_action(*args, **kwargs)
    except Exception as e:
        logger.error("audit.log_failed", error=str(e), error_type=type(e).__name__)
        return None


def list_actions(
    action_type: str | None = None,
    escola_id: str | None = None,
    start: str | None = None,
    end: str | None = None,
    limit: int | None = None,
) -> list[AuditRecord]:
    """List audit entries, newest first.

    Args:
        action_type: Only this action type
        escola_id: Only actions on this school
        start: ISO timestamp lower bound (inclusive)
        end: ISO timestamp upper bound (inclusive)
        limit: Max rows; defaults to audit.default_limit, capped at audit.max_limit
    """
    audit_config = load_app_config().audit
    limit = audit_config.default_limit if limit is None else limit
    limit = max(1, min(limit, audit_config.max_limit))

    clauses = []
    params: list[Any] = []
    for clause, value in (
        ("action_type = ?", action_type),
        ("target_escola_id = ?", escola_id),
        ("created_at >= ?", start),
        ("created_at <= ?", end),
    ):
        if value:
            clauses.append(clause)
            params.append(value)

    where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
    with get_db() as conn:
        rows = conn.execute(
            f"SELECT * FROM superadmin_actions {where} ORDER BY created_at DESC LIMIT ?",
            (*params, limit),
        ).fetchall()

    return [
        AuditRecord(
            id=row["id"],
            superadmin_user_id=row["superadmin_user_id"],
            action_type=row["action_type"],
            target_escola_id=row["target_escola_id"],
            action_details=json.loads(row["action_details"] or "{}"),
            ip_address=row["ip_address"],
            user_agent=row["user_agent"],
            created_at=row["created_at"],
        )
        for row in rows
    ]
