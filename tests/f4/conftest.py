"""Fixtures for F4 tests - Grade entry, final grades and student views."""

from typing import Any

import pytest

from edugest.db import disciplines_repository, init_db, schools_repository


def _add_component(disciplina, codigo, peso, trimestre=1, **kwargs):
    return disciplines_repository.create_componente(
        disciplina_id=disciplina.id,
        turma_id=disciplina.turma_id,
        nome=kwargs.pop("nome", codigo),
        codigo_componente=codigo,
        peso_percentual=peso,
        trimestre=trimestre,
        **kwargs,
    )


@pytest.fixture
def school(tmp_path) -> dict[str, Any]:
    """A 7th class with two students and Matemática graded by MAC (40%) and NPP (60%)."""
    init_db(tmp_path / "test.db")

    escola = schools_repository.create_escola("Escola nº 101")
    turma = schools_repository.create_turma(
        escola.id,
        "7ª A",
        nivel_ensino="Ensino Secundário I Ciclo",
        classe="7ª Classe",
    )
    ana = schools_repository.create_aluno(
        turma.id, "Ana Silva", numero_processo="P001", user_id="u-ana", frequencia_anual=90
    )
    bruno = schools_repository.create_aluno(turma.id, "Bruno Costa", numero_processo="P002")
    matematica = disciplines_repository.create_disciplina(turma.id, "Matemática", "MAT")
    mac = _add_component(matematica, "MAC", 40, nome="Média das Avaliações Contínuas")
    npp = _add_component(matematica, "NPP", 60, nome="Nota da Prova do Professor")

    return {
        "escola": escola,
        "turma": turma,
        "ana": ana,
        "bruno": bruno,
        "disciplina": matematica,
        "mac": mac,
        "npp": npp,
    }


@pytest.fixture
def add_component():
    """Create a component of a discipline; `nome` defaults to the code."""
    return _add_component
