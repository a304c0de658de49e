"""Fixtures for F5 tests - Web API."""

from typing import Any

import pytest
from fastapi.testclient import TestClient

from edugest.db import disciplines_repository, init_db, schools_repository
from edugest.web.api import create_app

STAFF_HEADERS = {"X-User-Id": "prof-1", "X-User-Role": "PROFESSOR"}


@pytest.fixture
def client(tmp_path, monkeypatch):
    """Create test client with an isolated database."""
    monkeypatch.chdir(tmp_path)
    init_db(tmp_path / "test.db")

    app = create_app()
    return TestClient(app)


@pytest.fixture
def staff_client(client):
    """Test client whose requests come from a teacher."""
    return TestClient(create_app(), headers=STAFF_HEADERS)


@pytest.fixture
def school(client) -> dict[str, Any]:
    """A 7th class with two students and Matemática graded by MAC (40%) and NPP (60%)."""
    escola = schools_repository.create_escola("Escola nº 101", codigo_escola="E101")
    turma = schools_repository.create_turma(
        escola.id, "7ª A", nivel_ensino="Ensino Secundário I Ciclo", classe="7ª Classe"
    )
    ana = schools_repository.create_aluno(
        turma.id, "Ana Silva", numero_processo="P001", user_id="u-ana", frequencia_anual=95
    )
    bruno = schools_repository.create_aluno(turma.id, "Bruno Costa", numero_processo="P002")
    disciplina = disciplines_repository.create_disciplina(turma.id, "Matemática", "MAT")
    mac = disciplines_repository.create_componente(
        disciplina.id, turma.id, "Avaliação Contínua", "MAC", 40
    )
    npp = disciplines_repository.create_componente(
        disciplina.id, turma.id, "Prova do Professor", "NPP", 60
    )

    return {
        "escola": escola,
        "turma": turma,
        "ana": ana,
        "bruno": bruno,
        "disciplina": disciplina,
        "mac": mac,
        "npp": npp,
    }
