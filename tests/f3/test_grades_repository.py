"""Tests for component grades, final grades and formulas (F3)."""

import sqlite3

import pytest

from edugest.core.grade_calculator import FormulaConfig
from edugest.db import disciplines_repository, formulas_repository, grades_repository
from edugest.db import schools_repository


@pytest.fixture
def aluno(turma):
    return schools_repository.create_aluno(turma.id, "Ana Silva", numero_processo="P001")


@pytest.fixture
def componente(disciplina):
    return disciplines_repository.create_componente(
        disciplina_id=disciplina.id,
        turma_id=disciplina.turma_id,
        nome="Avaliação Contínua",
        codigo_componente="MAC",
        peso_percentual=40,
    )


class TestNotas:
    """Tests for component grades."""

    def test_upsert_inserts_then_updates(self, aluno, componente):
        first = grades_repository.upsert_nota(aluno.id, componente.id, aluno.turma_id, 1, 12)
        second = grades_repository.upsert_nota(
            aluno.id, componente.id, aluno.turma_id, 1, 15.5, lancado_por="prof"
        )

        assert second.id == first.id
        assert second.valor == 15.5
        assert second.lancado_por == "prof"
        assert len(grades_repository.list_notas(aluno.id)) == 1

    def test_unknown_student_rejected(self, componente):
        with pytest.raises(sqlite3.IntegrityError):
            grades_repository.upsert_nota("missing", componente.id, componente.turma_id, 1, 10)

    def test_list_filters(self, aluno, componente):
        grades_repository.upsert_nota(aluno.id, componente.id, aluno.turma_id, 1, 12)

        assert len(grades_repository.list_notas(aluno.id, trimestre=1)) == 1
        assert grades_repository.list_notas(aluno.id, trimestre=2) == []
        assert grades_repository.list_notas(aluno.id, componente_ids=[]) == []
        assert len(grades_repository.list_notas_componente(componente.id, 1)) == 1

    def test_deleting_component_deletes_grades(self, aluno, componente):
        grades_repository.upsert_nota(aluno.id, componente.id, aluno.turma_id, 1, 12)
        disciplines_repository.delete_componente(componente.id)
        assert grades_repository.list_notas(aluno.id) == []


class TestNotasFinais:
    """Tests for stored final grades."""

    def test_upsert_keeps_breakdown(self, aluno, disciplina):
        grades_repository.upsert_nota_final(
            aluno.id, aluno.turma_id, disciplina.id, 1, 11.0, "Suficiente", {"formula": "MAC"}
        )
        updated = grades_repository.upsert_nota_final(
            aluno.id, aluno.turma_id, disciplina.id, 1, 14.0, "Bom", {"formula": "NPP"}
        )

        assert updated.nota_final == 14.0
        assert updated.classificacao == "Bom"
        assert updated.calculo_detalhado == {"formula": "NPP"}
        assert len(grades_repository.list_notas_finais(aluno.turma_id, disciplina.id)) == 1

    def test_get_missing(self, aluno, disciplina):
        assert grades_repository.get_nota_final(aluno.id, aluno.turma_id, disciplina.id, 2) is None


class TestFormulas:
    """Tests for discipline formulas and NF/MT configuration."""

    def test_save_formula_replaces(self, disciplina):
        formulas_repository.save_formula(disciplina.turma_id, disciplina.id, "MAC", ["MAC"], True)
        saved = formulas_repository.save_formula(
            disciplina.turma_id, disciplina.id, "MAC + X", ["MAC", "X"], False, "inválida"
        )

        assert saved.expressao == "MAC + X"
        assert saved.componentes_usados == ["MAC", "X"]
        assert saved.validada is False
        assert saved.mensagem_validacao == "inválida"

    def test_formula_config_roundtrip(self, disciplina):
        formulas_repository.save_formula_config(
            FormulaConfig(
                disciplina_id=disciplina.id,
                turma_id=disciplina.turma_id,
                tipo="MT",
                formula_expression="",
                pesos_trimestres={1: 30, 2: 30, 3: 40},
            )
        )
        loaded = formulas_repository.load_formula_config(disciplina.id, disciplina.turma_id, "MT")

        assert loaded.pesos_trimestres == {1: 30.0, 2: 30.0, 3: 40.0}
        assert loaded.id is not None

    def test_inactive_config_not_loaded(self, disciplina):
        saved = formulas_repository.save_formula_config(
            FormulaConfig(
                disciplina_id=disciplina.id,
                turma_id=disciplina.turma_id,
                tipo="MT",
                formula_expression="(T1 + T2 + T3) / 3",
                ativo=False,
            )
        )

        assert saved.ativo is False
        loaded = formulas_repository.load_formula_config(disciplina.id, disciplina.turma_id, "MT")
        assert loaded is None
