"""Calculated evaluation components.

A calculated component (e.g. MT = media trimestral, MFD = media final) has a
formula over other components of the same discipline and class. Its value is
derived from the student's grades and never entered by hand.

Responsibilities:
- List the components a calculated component may depend on
- Bind dependency grades to formula variables
- Evaluate the formula once every dependency has a grade
- Order calculated components so dependencies are computed first
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable, Sequence

import structlog

from edugest.core.formula import FormulaError, evaluate_formula, extract_components
from edugest.utils.numbers import round_half_up

if TYPE_CHECKING:
    from edugest.db.disciplines_repository import ComponenteRecord

logger = structlog.get_logger(__name__)

TIPOS_CALCULO = ("trimestral", "anual")


def available_dependencies(
    components: Iterable[ComponenteRecord],
    tipo_calculo: str,
    trimestre: int | None = None,
    exclude_id: str | None = None,
) -> list[ComponenteRecord]:
    """Components a calculated component of the given type may depend on.

    Args:
        components: All components of the discipline
        tipo_calculo: 'trimestral' or 'anual'
        trimestre: For 'trimestral', restrict to this trimester
        exclude_id: The component being edited

    Returns:
        'trimestral': manual components only.
        'anual': calculated components plus manual components of trimester 3.
    """
    result = []
    for comp in components:
        if comp.id == exclude_id:
            continue
        if tipo_calculo == "anual":
            if comp.is_calculated or comp.trimestre == 3:
                result.append(comp)
        elif not comp.is_calculated and (trimestre is None or comp.trimestre == trimestre):
            result.append(comp)
    return result


def _usable_dependencies(
    component: ComponenteRecord, dependencies: Sequence[ComponenteRecord]
) -> list[ComponenteRecord]:
    wanted = set(component.depends_on_components)
    deps = [d for d in dependencies if d.id in wanted]
    if component.tipo_calculo != "anual":
        deps = [d for d in deps if d.trimestre == component.trimestre]
    return deps


def build_context(
    component: ComponenteRecord,
    dependencies: Sequence[ComponenteRecord],
    grades: dict[str, float],
) -> dict[str, float]:
    """Bind dependency grades to formula variable names.

    Args:
        component: The calculated component
        dependencies: Candidate dependency components
        grades: Mapping of component id to the student's grade

    Returns:
        Mapping of variable name to value. Annual components also get
        T1/T2/T3 bound to their calculated dependencies by trimester.
    """
    context: dict[str, float] = {}
    for dep in _usable_dependencies(component, dependencies):
        value = grades.get(dep.id)
        if value is None:
            continue
        context[dep.codigo_componente] = float(value)

    if component.tipo_calculo == "anual":
        for dep in _usable_dependencies(component, dependencies):
            name = f"T{dep.trimestre}"
            if dep.is_calculated and dep.id in grades and name not in context:
                context[name] = float(grades[dep.id])

    return context


def compute_calculated_value(
    component: ComponenteRecord,
    dependencies: Sequence[ComponenteRecord],
    grades: dict[str, float],
) -> float | None:
    """Evaluate a calculated component for one student.

    Returns:
        The value rounded to 2 decimals, or None when a dependency grade is
        missing or the formula cannot be evaluated
    """
    if not component.is_calculated or not component.formula_expression:
        return None

    deps = _usable_dependencies(component, dependencies)
    if not deps or any(grades.get(d.id) is None for d in deps):
        return None

    context = build_context(component, dependencies, grades)
    variables = extract_components(component.formula_expression)
    if any(v not in context for v in variables):
        return None

    try:
        value = evaluate_formula(component.formula_expression, context)
    except FormulaError as e:
        logger.warning(
            "components.calculation_failed",
            componente_id=component.id,
            codigo=component.codigo_componente,
            error=str(e),
        )
        return None

    return round_half_up(value, 2)


def resolve_dependency_order(components: Sequence[ComponenteRecord]) -> list[ComponenteRecord]:
    """Return calculated components ordered so dependencies come first.

    Raises:
        FormulaError: If calculated components depend on each other in a cycle
    """
    calculated = {c.id: c for c in components if c.is_calculated}
    ordered: list[ComponenteRecord] = []
    state: dict[str, str] = {}

    def visit(comp_id: str) -> None:
        mark = state.get(comp_id)
        if mark == "done":
            return
        if mark == "visiting":
            raise FormulaError(
                f"Dependência circular no componente {calculated[comp_id].codigo_componente}"
            )
        state[comp_id] = "visiting"
        for dep_id in calculated[comp_id].depends_on_components:
            if dep_id in calculated:
                visit(dep_id)
        state[comp_id] = "done"
        ordered.append(calculated[comp_id])

    for comp in sorted(calculated.values(), key=lambda c: (c.trimestre, c.ordem)):
        visit(comp.id)

    return ordered


def dependents_of(
    componente_id: str, components: Sequence[ComponenteRecord]
) -> list[ComponenteRecord]:
    """Calculated components depending on a component, directly or transitively.

    Returned in dependency order.
    """
    affected = {componente_id}
    changed = True
    while changed:
        changed = False
        for comp in components:
            if comp.is_calculated and comp.id not in affected:
                if affected.intersection(comp.depends_on_components):
                    affected.add(comp.id)
                    changed = True

    affected.discard(componente_id)
    return [c for c in resolve_dependency_order(components) if c.id in affected]
