"""Tests for grade entry and automatic recalculation (F4)."""

import pytest

from edugest.core.grade_entry import (
    GradingError,
    component_stats,
    component_template,
    export_component_grades,
    import_grades,
    submit_grade,
)
from edugest.db import grades_repository, schools_repository


class TestSubmitGrade:
    """Tests for submit_grade validation and storage."""

    def test_stores_grade(self, school):
        result = submit_grade(school["ana"].id, school["mac"].id, 1, 14, lancado_por="prof")

        assert result.nota.valor == 14
        assert result.nota.lancado_por == "prof"
        assert result.recalculated == []

    def test_resubmit_overwrites(self, school):
        submit_grade(school["ana"].id, school["mac"].id, 1, 14)
        submit_grade(school["ana"].id, school["mac"].id, 1, 16)

        assert grades_repository.get_nota(school["ana"].id, school["mac"].id, 1).valor == 16

    def test_out_of_scale(self, school):
        with pytest.raises(GradingError, match="Máximo: 20"):
            submit_grade(school["ana"].id, school["mac"].id, 1, 21)

    def test_wrong_trimester(self, school):
        with pytest.raises(GradingError, match="1º trimestre"):
            submit_grade(school["ana"].id, school["mac"].id, 2, 12)

    def test_unknown_component(self, school):
        with pytest.raises(GradingError) as exc_info:
            submit_grade(school["ana"].id, "missing", 1, 12)
        assert exc_info.value.status_code == 404

    def test_unknown_student(self, school):
        with pytest.raises(GradingError) as exc_info:
            submit_grade("missing", school["mac"].id, 1, 12)
        assert exc_info.value.status_code == 404

    def test_student_from_another_class(self, school):
        other = schools_repository.create_turma(school["escola"].id, "7ª B")
        stranger = schools_repository.create_aluno(other.id, "Carla")

        with pytest.raises(GradingError, match="não pertence"):
            submit_grade(stranger.id, school["mac"].id, 1, 12)


class TestRecalculation:
    """Calculated components follow the grades they depend on."""

    @pytest.fixture
    def mt1(self, school, add_component):
        return add_component(
            school["disciplina"],
            "MT1",
            100,
            is_calculated=True,
            formula_expression="(MAC + NPP) / 2",
            depends_on_components=[school["mac"].id, school["npp"].id],
        )

    def test_waits_for_all_dependencies(self, school, mt1):
        result = submit_grade(school["ana"].id, school["mac"].id, 1, 12)

        assert result.recalculated == []
        assert grades_repository.get_nota(school["ana"].id, mt1.id, 1) is None

    def test_calculates_then_recalculates(self, school, mt1):
        submit_grade(school["ana"].id, school["mac"].id, 1, 12)
        result = submit_grade(school["ana"].id, school["npp"].id, 1, 15)

        [nota] = result.recalculated
        assert nota.componente_id == mt1.id
        assert nota.valor == 13.5
        assert nota.observacao.startswith("Calculado automaticamente")

        result = submit_grade(school["ana"].id, school["mac"].id, 1, 14)
        [nota] = result.recalculated
        assert nota.valor == 14.5
        assert nota.observacao.startswith("Recalculado automaticamente")

    def test_manual_entry_rejected(self, school, mt1):
        with pytest.raises(GradingError, match="calculado automaticamente"):
            submit_grade(school["ana"].id, mt1.id, 1, 12)


class TestCsv:
    """Tests for component CSV import, export and statistics."""

    def test_import_stores_valid_rows(self, school):
        content = (
            "Número,Nome Completo,Número de Processo,Nota\n"
            '"1","Ana Silva","P001","13"\n'
            '"2","Ninguém","P999","10"'
        )
        result = import_grades(school["mac"].id, content, lancado_por="prof")

        assert result.imported == 1
        assert not result.success
        assert grades_repository.get_nota(school["ana"].id, school["mac"].id, 1).valor == 13

    def test_export_and_template(self, school):
        submit_grade(school["ana"].id, school["mac"].id, 1, 12.5)

        exported = export_component_grades(school["mac"].id).split("\n")
        assert exported[0] == "# 7ª A - Média das Avaliações Contínuas"
        assert exported[1] == '"Número","Nome Completo","Número de Processo","Nota"'
        assert exported[2] == '"1","Ana Silva","P001","12.5"'
        assert exported[3] == '"2","Bruno Costa","P002",""'

        template = component_template(school["mac"].id)
        assert template.startswith("# Template de Importação - 7ª A")

    def test_stats(self, school):
        submit_grade(school["ana"].id, school["mac"].id, 1, 16)

        stats = component_stats(school["mac"].id)
        assert stats.total == 2
        assert stats.filled == 1
        assert stats.pending == 1
        assert stats.average == 16
        assert stats.distribution["good"] == 1
