"""Tests for database connection and schema (F3)."""

import sqlite3

import pytest

from edugest.db import get_db, init_db
from edugest.db.database import get_db_path, new_id

EXPECTED_TABLES = {
    "escolas",
    "turmas",
    "user_profiles",
    "alunos",
    "disciplinas",
    "disciplinas_obrigatorias",
    "componentes_avaliacao",
    "formulas",
    "formula_configuracoes",
    "notas",
    "notas_finais",
    "tutoriais",
    "tutorial_perfis",
    "superadmin_actions",
    "notificacoes",
}


class TestInitDb:
    """Tests for init_db."""

    def test_creates_file_and_tables(self, db):
        assert db.exists()
        with get_db() as conn:
            rows = conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'").fetchall()
        assert EXPECTED_TABLES <= {row["name"] for row in rows}

    def test_is_idempotent(self, db):
        init_db(db)
        init_db(db)
        assert get_db_path() == db

    def test_creates_parent_directory(self, tmp_path):
        db_path = tmp_path / "nested" / "dir" / "edugest.db"
        init_db(db_path)
        assert db_path.exists()


class TestGetDb:
    """Tests for the get_db context manager."""

    def test_commits_on_success(self, db):
        with get_db() as conn:
            conn.execute(
                "INSERT INTO escolas (id, nome, created_at, updated_at) VALUES (?, ?, ?, ?)",
                ("e1", "Escola", "2024-01-01", "2024-01-01"),
            )
        with get_db() as conn:
            assert conn.execute("SELECT COUNT(*) FROM escolas").fetchone()[0] == 1

    def test_rolls_back_on_error(self, db):
        with pytest.raises(RuntimeError):
            with get_db() as conn:
                conn.execute(
                    "INSERT INTO escolas (id, nome, created_at, updated_at) VALUES (?, ?, ?, ?)",
                    ("e1", "Escola", "2024-01-01", "2024-01-01"),
                )
                raise RuntimeError("boom")
        with get_db() as conn:
            assert conn.execute("SELECT COUNT(*) FROM escolas").fetchone()[0] == 0

    def test_foreign_keys_enforced(self, db):
        with pytest.raises(sqlite3.IntegrityError):
            with get_db() as conn:
                conn.execute(
                    "INSERT INTO turmas (id, escola_id, nome, created_at) VALUES (?, ?, ?, ?)",
                    ("t1", "missing", "7ª A", "2024-01-01"),
                )


def test_new_id_is_unique():
    assert len({new_id() for _ in range(100)}) == 100
