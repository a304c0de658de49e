"""Core business logic.

Modules:
- formula: Arithmetic formula parser and evaluator
- grade_calculator: Final grades, classifications, statistics and MT
- calculated_components: Dependency resolution for calculated components
- classification: Year transition rules
- grade_import: CSV import/export of component grades
- grade_entry: Grade submission with dependent recalculation
- final_grades: Final grade computation and mini-pauta
- student_grades: Student grade view and classification
"""

__all__ = [
    "formula",
    "grade_calculator",
    "calculated_components",
    "classification",
    "grade_import",
    "grade_entry",
    "final_grades",
    "student_grades",
]
