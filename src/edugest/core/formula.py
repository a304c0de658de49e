"""Formula parsing and evaluation module.

Responsibilities:
- Tokenize and parse user-supplied grade formulas (e.g. "MAC * 0.4 + EXAME * 0.6")
- Evaluate them against component values without eval()
- Validate formulas against the components available in a discipline

Supported syntax:
- Arithmetic: + - * / and parentheses, unary minus
- Comparisons inside if(): > >= < <= == !=
- Functions: min, max, round, abs, if(cond, a, b)
- Identifiers are component codes (case-sensitive)
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from typing import Callable, Union

import structlog

from edugest.utils.numbers import round_half_up, round_to_int

logger = structlog.get_logger(__name__)

# =============================================================================
# CONSTANTS
# =============================================================================

FUNCTION_NAMES = ("min", "max", "round", "abs", "if")

MAX_ROUND_DIGITS = 10

EXAMPLE_FORMULAS: dict[str, str] = {
    "Média Ponderada Simples": "0.3*p1 + 0.3*p2 + 0.4*trabalho",
    "Três Provas Iguais": "0.33*p1 + 0.33*p2 + 0.34*p3",
    "Com Participação": "0.25*p1 + 0.25*p2 + 0.3*trabalho + 0.2*participacao",
    "Melhor de Duas Provas": "0.5*max(p1, p2) + 0.5*trabalho",
    "Condicional": "if(p1 > 10, 0.4*p1 + 0.6*p2, 0.3*p1 + 0.7*p2)",
}

_VALID_CHARS = re.compile(r"^[A-Za-z0-9_+\-*/().,<>=!\s]+$")

_TOKEN_RE = re.compile(
    r"""
    (?P<ws>\s+)
    |(?P<number>\d+\.\d*|\.\d+|\d+)
    |(?P<ident>[A-Za-z_][A-Za-z0-9_]*)
    |(?P<op>>=|<=|==|!=|[+\-*/(),<>])
    """,
    re.VERBOSE,
)

_COMPARISONS: dict[str, Callable[[float, float], bool]] = {
    ">": lambda a, b: a > b,
    ">=": lambda a, b: a >= b,
    "<": lambda a, b: a < b,
    "<=": lambda a, b: a <= b,
    "==": lambda a, b: a == b,
    "!=": lambda a, b: a != b,
}


class FormulaError(Exception):
    """Error parsing or evaluating a formula."""

    pass


# =============================================================================
# AST
# =============================================================================


@dataclass(frozen=True)
class Token:
    kind: str  # number | ident | op
    text: str
    pos: int


@dataclass(frozen=True)
class Number:
    value: float


@dataclass(frozen=True)
class Variable:
    name: str


@dataclass(frozen=True)
class UnaryOp:
    op: str
    operand: "Node"


@dataclass(frozen=True)
class BinaryOp:
    op: str
    left: "Node"
    right: "Node"


@dataclass(frozen=True)
class Call:
    name: str
    args: tuple["Node", ...]


Node = Union[Number, Variable, UnaryOp, BinaryOp, Call]


@dataclass
class FormulaValidation:
    """Result of validating a formula."""

    valid: bool
    error: str | None = None
    components: list[str] = field(default_factory=list)


# =============================================================================
# TOKENIZER / PARSER
# =============================================================================


def tokenize(expression: str) -> list[Token]:
    """Split an expression into tokens.

    Raises:
        FormulaError: On any character outside the formula alphabet
    """
    tokens: list[Token] = []
    pos = 0
    while pos < len(expression):
        match = _TOKEN_RE.match(expression, pos)
        if match is None:
            raise FormulaError(
                f"Caractere inválido na fórmula: '{expression[pos]}' (posição {pos + 1})"
            )
        kind = match.lastgroup
        if kind != "ws":
            tokens.append(Token(kind=kind, text=match.group(), pos=pos))
        pos = match.end()
    return tokens


class _Parser:
    """Recursive-descent parser over a token list."""

    def __init__(self, tokens: list[Token]):
        self.tokens = tokens
        self.index = 0

    def peek(self) -> Token | None:
        if self.index < len(self.tokens):
            return self.tokens[self.index]
        return None

    def advance(self) -> Token:
        token = self.tokens[self.index]
        self.index += 1
        return token

    def expect(self, text: str) -> Token:
        token = self.peek()
        if token is None or token.text != text:
            found = token.text if token else "fim da fórmula"
            raise FormulaError(f"Esperado '{text}', encontrado '{found}'")
        return self.advance()

    def parse(self) -> Node:
        if not self.tokens:
            raise FormulaError("Fórmula não pode estar vazia")
        node = self.comparison()
        if self.peek() is not None:
            raise FormulaError(f"Símbolo inesperado: '{self.peek().text}'")
        return node

    def comparison(self) -> Node:
        left = self.additive()
        token = self.peek()
        if token is not None and token.text in _COMPARISONS:
            self.advance()
            right = self.additive()
            return BinaryOp(token.text, left, right)
        return left

    def additive(self) -> Node:
        node = self.term()
        while (token := self.peek()) is not None and token.text in ("+", "-"):
            self.advance()
            node = BinaryOp(token.text, node, self.term())
        return node

    def term(self) -> Node:
        node = self.unary()
        while (token := self.peek()) is not None and token.text in ("*", "/"):
            self.advance()
            node = BinaryOp(token.text, node, self.unary())
        return node

    def unary(self) -> Node:
        token = self.peek()
        if token is not None and token.text in ("+", "-"):
            self.advance()
            return UnaryOp(token.text, self.unary())
        return self.primary()

    def primary(self) -> Node:
        token = self.peek()
        if token is None:
            raise FormulaError("Fórmula incompleta")

        if token.kind == "number":
            self.advance()
            return Number(float(token.text))

        if token.kind == "ident":
            self.advance()
            nxt = self.peek()
            if nxt is not None and nxt.text == "(":
                return self.call(token)
            return Variable(token.text)

        if token.text == "(":
            self.advance()
            node = self.comparison()
            self.expect(")")
            return node

        raise FormulaError(f"Símbolo inesperado: '{token.text}'")

    def call(self, name_token: Token) -> Node:
        name = name_token.text.lower()
        if name not in FUNCTION_NAMES:
            raise FormulaError(f"Função desconhecida: '{name_token.text}'")
        self.expect("(")
        args: list[Node] = []
        if self.peek() is not None and self.peek().text != ")":
            args.append(self.comparison())
            while self.peek() is not None and self.peek().text == ",":
                self.advance()
                args.append(self.comparison())
        self.expect(")")
        _check_arity(name, len(args))
        return Call(name, tuple(args))


def _check_arity(name: str, count: int) -> None:
    if name in ("min", "max") and count < 1:
        raise FormulaError(f"{name}() requer pelo menos um argumento")
    if name == "round" and count not in (1, 2):
        raise FormulaError("round() requer 1 ou 2 argumentos")
    if name == "abs" and count != 1:
        raise FormulaError("abs() requer 1 argumento")
    if name == "if" and count != 3:
        raise FormulaError("if() requer 3 argumentos: if(condição, valor1, valor2)")


def parse_formula(expression: str) -> Node:
    """Parse an expression into an AST.

    Raises:
        FormulaError: On syntax errors
    """
    try:
        return _Parser(tokenize(expression)).parse()
    except RecursionError:
        raise FormulaError("Fórmula com demasiados níveis de parênteses") from None


# =============================================================================
# EVALUATION
# =============================================================================


def _evaluate(node: Node, values: dict[str, float]) -> float:
    if isinstance(node, Number):
        return node.value

    if isinstance(node, Variable):
        if node.name not in values:
            raise FormulaError(f"Valor em falta para componente {node.name}")
        value = values[node.name]
        if value is None or (isinstance(value, float) and math.isnan(value)):
            raise FormulaError(f"Valor inválido para componente {node.name}")
        return float(value)

    if isinstance(node, UnaryOp):
        operand = _evaluate(node.operand, values)
        return -operand if node.op == "-" else operand

    if isinstance(node, BinaryOp):
        left = _evaluate(node.left, values)
        right = _evaluate(node.right, values)
        if node.op == "+":
            return left + right
        if node.op == "-":
            return left - right
        if node.op == "*":
            return left * right
        if node.op == "/":
            if right == 0:
                raise FormulaError("Divisão por zero")
            return left / right
        return 1.0 if _COMPARISONS[node.op](left, right) else 0.0

    if isinstance(node, Call):
        if node.name == "if":
            # Only the selected branch is evaluated
            condition = _evaluate(node.args[0], values)
            branch = node.args[1] if condition != 0 else node.args[2]
            return _evaluate(branch, values)

        args = [_evaluate(arg, values) for arg in node.args]
        if node.name == "min":
            return min(args)
        if node.name == "max":
            return max(args)
        if node.name == "abs":
            return abs(args[0])
        if not math.isfinite(args[0]):
            raise FormulaError("round() requer um valor finito")
        if len(args) == 1:
            return float(round_to_int(args[0]))
        digits = args[1]
        if not (digits.is_integer() and 0 <= digits <= MAX_ROUND_DIGITS):
            raise FormulaError(
                f"round() aceita entre 0 e {MAX_ROUND_DIGITS} casas decimais, "
                f"recebeu {digits:g}"
            )
        return round_half_up(args[0], int(digits))

    raise FormulaError(f"Nó desconhecido: {node!r}")


def evaluate_formula(expression: str, values: dict[str, float]) -> float:
    """Evaluate a formula with the given component values.

    Args:
        expression: Formula expression
        values: Mapping of component code to numeric value

    Returns:
        The calculated result

    Raises:
        FormulaError: If parsing or evaluation fails
    """
    try:
        result = _evaluate(parse_formula(expression), values)
    except FormulaError as e:
        raise FormulaError(f"Erro ao avaliar fórmula: {e}") from e

    if not math.isfinite(result):
        raise FormulaError("Erro ao avaliar fórmula: resultado inválido da fórmula")

    return result


# =============================================================================
# ANALYSIS
# =============================================================================


def extract_components(expression: str) -> list[str]:
    """Extract component codes used in a formula.

    Identifiers directly followed by '(' are function calls and are skipped.

    Returns:
        Unique component codes in first-seen order
    """
    try:
        tokens = tokenize(expression)
    except FormulaError:
        return []

    codes: list[str] = []
    for i, token in enumerate(tokens):
        if token.kind != "ident":
            continue
        is_call = i + 1 < len(tokens) and tokens[i + 1].text == "("
        if is_call or token.text.lower() in FUNCTION_NAMES:
            continue
        if token.text not in codes:
            codes.append(token.text)
    return codes


def validate_formula(expression: str, available_codes: list[str]) -> FormulaValidation:
    """Validate a formula against the available component codes.

    Checks, in order: empty, invalid characters, balanced parentheses,
    unknown components, syntax.
    """
    if not expression or not expression.strip():
        return FormulaValidation(valid=False, error="Fórmula não pode estar vazia")

    if not _VALID_CHARS.match(expression):
        return FormulaValidation(valid=False, error="Fórmula contém caracteres inválidos")

    depth = 0
    for char in expression:
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth < 0:
                return FormulaValidation(valid=False, error="Parênteses desbalanceados")
    if depth != 0:
        return FormulaValidation(valid=False, error="Parênteses desbalanceados")

    components = extract_components(expression)
    for code in components:
        if code not in available_codes:
            return FormulaValidation(
                valid=False,
                error=f'Componente "{code}" não existe ou não está disponível',
                components=components,
            )

    try:
        parse_formula(expression)
    except FormulaError as e:
        return FormulaValidation(
            valid=False,
            error=f"Erro de sintaxe na fórmula: {e}",
            components=components,
        )

    return FormulaValidation(valid=True, components=components)


def format_formula_for_display(expression: str) -> str:
    """Format a formula with math symbols and even spacing.

    "MAC*0.4+EXAME*0.6" -> "MAC × 0.4 + EXAME × 0.6"
    """
    try:
        tokens = tokenize(expression)
    except FormulaError:
        return " ".join(expression.split())

    symbols = {"*": "×", "/": "÷"}
    parts: list[str] = []
    for i, token in enumerate(tokens):
        text = symbols.get(token.text, token.text)
        if token.text in ("(", ")", ","):
            parts.append(text)
            continue
        # Unary sign binds to its operand
        prev = tokens[i - 1] if i > 0 else None
        if token.text in ("+", "-") and (
            prev is None or prev.kind == "op" and prev.text != ")"
        ):
            parts.append(text)
            continue
        parts.append(text if token.kind != "op" else f" {text} ")

    rendered = "".join(parts)
    rendered = re.sub(r"\(\s*", "( ", rendered)
    rendered = re.sub(r"\s*\)", " )", rendered)
    rendered = re.sub(r",\s*", ", ", rendered)
    return " ".join(rendered.split())


def get_formula_examples(component_codes: list[str]) -> list[str]:
    """Generate example formulas for the given component codes."""
    if len(component_codes) >= 2:
        code1, code2 = component_codes[0], component_codes[1]
        return [
            f"{code1} * 0.4 + {code2} * 0.6",
            f"({code1} + {code2}) / 2",
            f"{code1} * 0.3 + {code2} * 0.7",
        ]
    if len(component_codes) == 1:
        code = component_codes[0]
        return [f"{code} * 1.0", f"{code} / 2"]
    return []
