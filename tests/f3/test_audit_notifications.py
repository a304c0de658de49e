"""Tests for the audit log and in-app notifications (F3)."""

import pytest

from edugest.db import audit_repository, notifications_repository
from edugest.db.audit_repository import AuditError
from edugest.db.notifications_repository import NotificationError

CHROME_WINDOWS = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0 Safari/537.36"
)


class TestAuditLog:
    """Tests for superadmin action logging."""

    def test_log_and_list(self, db):
        audit_repository.log_action(
            "admin-1",
            "BLOCK_ESCOLA",
            target_escola_id="e1",
            action_details={"motivo": "Dívida"},
            ip_address="10.0.0.1",
            user_agent=CHROME_WINDOWS,
        )
        audit_repository.log_action("admin-1", "EXPORT_DATA")

        assert len(audit_repository.list_actions()) == 2

        [entry] = audit_repository.list_actions(escola_id="e1")
        data = entry.to_dict()
        assert data["action_label"] == "Bloquear Escola"
        assert data["action_details"] == {"motivo": "Dívida"}
        assert data["browser"] == "Chrome"
        assert data["os"] == "Windows"

    def test_defaults_to_unknown(self, db):
        record = audit_repository.log_action("admin-1", "OTHER")
        assert record.ip_address == "unknown"
        assert record.user_agent == "unknown"

    def test_filter_by_type(self, db):
        audit_repository.log_action("admin-1", "ACTIVATE_ESCOLA", target_escola_id="e1")
        audit_repository.log_action("admin-1", "DEACTIVATE_ESCOLA", target_escola_id="e1")

        [entry] = audit_repository.list_actions(action_type="ACTIVATE_ESCOLA")
        assert entry.action_type == "ACTIVATE_ESCOLA"

    def test_invalid_action(self, db):
        with pytest.raises(AuditError):
            audit_repository.log_action("admin-1", "HACK")
        with pytest.raises(AuditError):
            audit_repository.log_action("", "OTHER")

    def test_safe_logging_swallows_errors(self, db):
        assert audit_repository.log_action_safe("admin-1", "HACK") is None
        assert audit_repository.list_actions() == []

    def test_label_of_unknown_type(self):
        assert audit_repository.get_action_label("CUSTOM") == "CUSTOM"


class TestNotifications:
    """Tests for notifications and their read state."""

    def test_create_and_read(self, db):
        first = notifications_repository.notify_system("u1", "Manutenção")
        notifications_repository.notify_new_student("u1", "Ana", "7ª A")

        assert first.mensagem == "Manutenção"
        assert notifications_repository.unread_count("u1") == 2

        assert notifications_repository.mark_read(first.id, "u1") is True
        assert notifications_repository.unread_count("u1") == 1
        assert len(notifications_repository.list_notifications("u1", only_unread=True)) == 1

    def test_other_users_notifications_untouched(self, db):
        note = notifications_repository.notify_report_generated("u1", "Pauta", "7ª A")

        assert notifications_repository.mark_read(note.id, "u2") is False
        assert notifications_repository.delete_notification(note.id, "u2") is False
        assert notifications_repository.delete_notification(note.id, "u1") is True

    def test_mark_all_read(self, db):
        notifications_repository.notify_grades_posted("u1", "Matemática", "7ª A")
        notifications_repository.notify_final_grade("u1", "Matemática", 1, 14.0, "Bom")

        assert notifications_repository.mark_all_read("u1") == 2
        assert notifications_repository.unread_count("u1") == 0

    def test_final_grade_payload(self, db):
        note = notifications_repository.notify_final_grade("u1", "Física", 2, 9.5, "Insuficiente")

        assert note.tipo == "nota_lancada"
        assert note.dados_adicionais["trimestre"] == 2
        assert note.dados_adicionais["nota_final"] == 9.5

    def test_validation(self, db):
        with pytest.raises(NotificationError):
            notifications_repository.create_notification("u1", "sistema", "", "msg")
        with pytest.raises(NotificationError):
            notifications_repository.create_notification("u1", "spam", "T", "msg")
