"""Fixtures for F3 tests - Repositories."""

from pathlib import Path

import pytest

from edugest.db import disciplines_repository, init_db, schools_repository
from edugest.db.disciplines_repository import DisciplinaRecord
from edugest.db.schools_repository import TurmaRecord


@pytest.fixture
def db(tmp_path) -> Path:
    """Initialize an isolated database for each test."""
    db_path = tmp_path / "db" / "test.db"
    init_db(db_path)
    return db_path


@pytest.fixture
def turma(db) -> TurmaRecord:
    escola = schools_repository.create_escola("Escola nº 101", codigo_escola="E101")
    return schools_repository.create_turma(
        escola.id,
        "7ª A",
        ano_lectivo="2024/2025",
        nivel_ensino="Ensino Secundário I Ciclo",
        classe="7ª Classe",
    )


@pytest.fixture
def disciplina(turma) -> DisciplinaRecord:
    return disciplines_repository.create_disciplina(turma.id, "Matemática", "MAT")
