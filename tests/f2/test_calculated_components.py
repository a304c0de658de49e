"""Tests for calculated component resolution (F2)."""

import pytest

from edugest.core.calculated_components import (
    available_dependencies,
    build_context,
    compute_calculated_value,
    dependents_of,
    resolve_dependency_order,
)
from edugest.core.formula import FormulaError
from edugest.db.disciplines_repository import ComponenteRecord


def make_comp(
    comp_id,
    codigo,
    trimestre=1,
    ordem=1,
    formula=None,
    depends=None,
    tipo="trimestral",
    peso=50,
):
    """Build a component record without touching the database."""
    return ComponenteRecord(
        id=comp_id,
        disciplina_id="d1",
        turma_id="t1",
        nome=codigo,
        codigo_componente=codigo,
        peso_percentual=peso,
        escala_minima=0,
        escala_maxima=20,
        obrigatorio=True,
        ordem=ordem,
        trimestre=trimestre,
        is_calculated=formula is not None,
        formula_expression=formula,
        depends_on_components=depends or [],
        tipo_calculo=tipo,
    )


@pytest.fixture
def components():
    """Two trimesters with MAC/NPP, a trimester average each, and an annual MFD."""
    return [
        make_comp("mac1", "MAC", trimestre=1, ordem=1),
        make_comp("npp1", "NPP", trimestre=1, ordem=2),
        make_comp("mt1", "MT1", trimestre=1, ordem=3, formula="(MAC + NPP) / 2", depends=["mac1", "npp1"]),
        make_comp("mac3", "MAC3", trimestre=3, ordem=1),
        make_comp("mt3", "MT3", trimestre=3, ordem=2, formula="MAC3 * 1", depends=["mac3"]),
        make_comp(
            "mfd",
            "MFD",
            trimestre=3,
            ordem=3,
            formula="(T1 + T3) / 2",
            depends=["mt1", "mt3"],
            tipo="anual",
        ),
    ]


class TestAvailableDependencies:
    """Tests for available_dependencies."""

    def test_trimestral_lists_manual_components_of_trimester(self, components):
        result = available_dependencies(components, "trimestral", trimestre=1)
        assert [c.id for c in result] == ["mac1", "npp1"]

    def test_anual_lists_calculated_and_third_trimester(self, components):
        result = available_dependencies(components, "anual", exclude_id="mfd")
        assert [c.id for c in result] == ["mt1", "mac3", "mt3"]


class TestComputeCalculatedValue:
    """Tests for build_context / compute_calculated_value."""

    def test_trimestral_value(self, components):
        mt1 = components[2]
        value = compute_calculated_value(mt1, components, {"mac1": 14, "npp1": 11})
        assert value == 12.5

    def test_missing_dependency_returns_none(self, components):
        mt1 = components[2]
        assert compute_calculated_value(mt1, components, {"mac1": 14}) is None

    def test_manual_component_returns_none(self, components):
        assert compute_calculated_value(components[0], components, {"mac1": 14}) is None

    def test_annual_binds_trimester_variables(self, components):
        mfd = components[5]
        grades = {"mt1": 12, "mt3": 16}
        context = build_context(mfd, components, grades)
        assert context == {"MT1": 12.0, "MT3": 16.0, "T1": 12.0, "T3": 16.0}
        assert compute_calculated_value(mfd, components, grades) == 14

    def test_unbound_variable_returns_none(self, components):
        """T2 has no calculated dependency, so the formula cannot be evaluated."""
        mfd = make_comp(
            "mfd2", "MF", trimestre=3, formula="(T1 + T2) / 2", depends=["mt1"], tipo="anual"
        )
        assert compute_calculated_value(mfd, components + [mfd], {"mt1": 12}) is None

    def test_evaluation_error_returns_none(self):
        a = make_comp("a", "A")
        calc = make_comp("c", "C", formula="10 / A", depends=["a"])
        assert compute_calculated_value(calc, [a, calc], {"a": 0}) is None

    def test_rounded_to_two_decimals(self):
        a = make_comp("a", "A")
        calc = make_comp("c", "C", formula="A / 3", depends=["a"])
        assert compute_calculated_value(calc, [a, calc], {"a": 10}) == 3.33


class TestDependencyOrder:
    """Tests for resolve_dependency_order / dependents_of."""

    def test_dependencies_first(self, components):
        ordered = resolve_dependency_order(list(reversed(components)))
        ids = [c.id for c in ordered]
        assert ids.index("mt1") < ids.index("mfd")
        assert ids.index("mt3") < ids.index("mfd")
        assert "mac1" not in ids

    def test_cycle_detected(self):
        a = make_comp("a", "A", formula="B", depends=["b"])
        b = make_comp("b", "B", formula="A", depends=["a"])
        with pytest.raises(FormulaError, match="Dependência circular"):
            resolve_dependency_order([a, b])

    def test_dependents_are_transitive(self, components):
        assert [c.id for c in dependents_of("mac1", components)] == ["mt1", "mfd"]

    def test_no_dependents(self, components):
        assert dependents_of("mfd", components) == []
