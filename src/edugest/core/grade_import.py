"""CSV export and import of component grades.

Responsibilities:
- Export a component's grades for a class as CSV
- Generate an empty CSV template for teachers to fill in
- Parse an uploaded CSV, matching students by numero_processo
"""

from __future__ import annotations

import csv
import io
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Sequence

import structlog

from edugest.core.grade_calculator import validate_grade_value
from edugest.utils.numbers import format_number

if TYPE_CHECKING:
    from edugest.db.schools_repository import AlunoRecord

logger = structlog.get_logger(__name__)

CSV_HEADERS = ["Número", "Nome Completo", "Número de Processo", "Nota"]


@dataclass
class ImportRowError:
    """A rejected CSV row."""

    row: int
    field: str
    message: str

    def to_dict(self) -> dict[str, Any]:
        return {"row": self.row, "field": self.field, "message": self.message}


@dataclass
class GradeData:
    aluno_id: str
    aluno_nome: str
    numero_processo: str
    valor: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "aluno_id": self.aluno_id,
            "aluno_nome": self.aluno_nome,
            "numero_processo": self.numero_processo,
            "valor": self.valor,
        }


@dataclass
class ImportResult:
    success: bool
    imported: int
    errors: list[ImportRowError] = field(default_factory=list)
    data: list[GradeData] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "imported": self.imported,
            "errors": [e.to_dict() for e in self.errors],
            "data": [d.to_dict() for d in self.data],
        }


def _write_rows(header_lines: list[str], rows: list[list[str]]) -> str:
    buffer = io.StringIO()
    for line in header_lines:
        buffer.write(line + "\n")
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    writer.writerows(rows)
    return buffer.getvalue().rstrip("\n")


def export_grades_csv(
    alunos: Sequence[AlunoRecord],
    notas: dict[str, float],
    componente_nome: str,
    turma_nome: str,
) -> str:
    """Export grades to CSV.

    Args:
        alunos: Students of the class, in listing order
        notas: Mapping of aluno id to grade
        componente_nome: Component name for the header line
        turma_nome: Class name for the header line

    Returns:
        CSV text with a '# turma - componente' header line
    """
    rows = [
        [
            str(index),
            aluno.nome_completo,
            aluno.numero_processo or "",
            format_number(notas[aluno.id]) if notas.get(aluno.id) is not None else "",
        ]
        for index, aluno in enumerate(alunos, start=1)
    ]
    return _write_rows([f"# {turma_nome} - {componente_nome}"], rows)


def generate_csv_template(
    alunos: Sequence[AlunoRecord], componente_nome: str, turma_nome: str
) -> str:
    """Generate an import template with an empty Nota column."""
    rows = [
        [str(index), aluno.nome_completo, aluno.numero_processo or "", ""]
        for index, aluno in enumerate(alunos, start=1)
    ]
    return _write_rows(
        [
            f"# Template de Importação - {turma_nome} - {componente_nome}",
            '# Preencha a coluna "Nota" e importe o arquivo',
        ],
        rows,
    )


def _parse_number(text: str) -> float | None:
    try:
        value = float(text.strip().replace(",", "."))
    except ValueError:
        return None
    return None if value != value else value


def parse_grades_csv(
    content: str,
    alunos: Sequence[AlunoRecord],
    minimo: float,
    maximo: float,
) -> ImportResult:
    """Parse and validate grades from CSV content.

    Comment lines ('#') and blank lines are ignored, the first remaining
    line is the header. Rows with an empty Nota cell are skipped.

    Args:
        content: CSV text
        alunos: Students of the class
        minimo: Component minimum scale
        maximo: Component maximum scale

    Returns:
        ImportResult with valid rows in `data` and rejected rows in `errors`
    """
    lines = [
        line for line in content.splitlines() if line.strip() and not line.startswith("#")
    ]
    if len(lines) < 2:
        return ImportResult(
            success=False,
            imported=0,
            errors=[ImportRowError(row=0, field="file", message="Arquivo CSV vazio ou inválido")],
        )

    by_processo = {a.numero_processo: a for a in alunos if a.numero_processo}
    errors: list[ImportRowError] = []
    data: list[GradeData] = []

    for index, values in enumerate(csv.reader(lines[1:], skipinitialspace=True)):
        row_number = index + 2
        values = [v.strip() for v in values]

        if len(values) < 4:
            errors.append(
                ImportRowError(
                    row=row_number,
                    field="format",
                    message="Formato inválido - esperado: Número, Nome, Nº Processo, Nota",
                )
            )
            continue

        numero_processo, nota_str = values[2], values[3]
        aluno = by_processo.get(numero_processo)
        if aluno is None:
            errors.append(
                ImportRowError(
                    row=row_number,
                    field="numeroProcesso",
                    message=f"Aluno não encontrado: {numero_processo}",
                )
            )
            continue

        if not nota_str:
            continue

        nota = _parse_number(nota_str)
        if nota is None:
            errors.append(
                ImportRowError(row=row_number, field="nota", message=f"Nota inválida: {nota_str}")
            )
            continue

        validation = validate_grade_value(nota, minimo, maximo)
        if not validation.valid:
            errors.append(
                ImportRowError(
                    row=row_number,
                    field="nota",
                    message=f"{validation.message} (valor: {format_number(nota)})",
                )
            )
            continue

        data.append(
            GradeData(
                aluno_id=aluno.id,
                aluno_nome=aluno.nome_completo,
                numero_processo=numero_processo,
                valor=nota,
            )
        )

    logger.debug("grades.csv_parsed", imported=len(data), errors=len(errors))
    return ImportResult(success=not errors, imported=len(data), errors=errors, data=data)
