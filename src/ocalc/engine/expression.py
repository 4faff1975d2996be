"""Formula evaluation: ``{Column}`` placeholders over a small arithmetic language.

A formula such as ``round({Price} * {Qty} * (1 + {Tax} / 100), 2)`` is
evaluated against one row. Placeholders resolve to the numeric value of the
named cell (0 when the cell is missing, empty or not a number). The
expression itself is parsed by a recursive descent parser; nothing is passed
to ``eval``.

Evaluation never raises: a formula that cannot be parsed or evaluated yields
0 so that formula columns always have something to show.
"""

from __future__ import annotations

import math
import re
from collections.abc import Callable, Mapping
from decimal import ROUND_HALF_UP, Decimal

from ocalc.contracts.document import Document

SIGNIFICANT_DIGITS = 14

# Deepest nesting of parentheses, calls and exponents the parser accepts
MAX_NESTING = 100

PLACEHOLDER_RE = re.compile(r"\{([^}]+)\}")

# Leading numeric prefix, the way JavaScript's parseFloat reads it
_NUMBER_PREFIX_RE = re.compile(r"[+-]?(?:Infinity|(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?)")

_TOKEN_RE = re.compile(
    r"""
    (?P<number>(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?)
    | (?P<placeholder>\{[^}]+\})
    | (?P<name>[A-Za-z_][A-Za-z_0-9]*)
    | (?P<op>[-+*/%^(),])
    """,
    re.VERBOSE,
)


class FormulaError(Exception):
    """Raised internally when a formula cannot be evaluated."""


class FormulaSyntaxError(FormulaError):
    """Raised internally when a formula cannot be parsed."""


# ---------------------------------------------------------------------------
# Number helpers
# ---------------------------------------------------------------------------


def parse_number(text: str | None) -> float | None:
    """Parse the leading number of *text*; ``None`` when there is none.

    Locale-agnostic: only ``.`` is a decimal separator. Trailing garbage is
    ignored, so ``"12 kg"`` parses as 12.
    """
    if text is None:
        return None
    m = _NUMBER_PREFIX_RE.match(str(text).lstrip())
    if not m:
        return None
    return float(m.group(0).replace("Infinity", "inf"))


def round_significant(value: float, digits: int = SIGNIFICANT_DIGITS) -> float:
    """Round to *digits* significant digits to drop binary floating-point noise."""
    return float(f"{value:.{digits}g}")


def to_plain_number(value: float) -> int | float:
    """Integral floats become ints so they serialize as ``15`` rather than ``15.0``."""
    if math.isfinite(value) and value.is_integer() and abs(value) < 2**53:
        return int(value)
    return value


def format_number(value: float) -> str:
    """Render a number the way it is stored in cells (``5``, ``2.5``, ``1e-7``)."""
    if not math.isfinite(value):
        return "Infinity" if value > 0 else "-Infinity" if value < 0 else "NaN"
    if value.is_integer() and abs(value) < 1e21:
        return str(int(value))
    if 1e-6 <= abs(value) < 1e21:
        return format(Decimal(repr(value)), "f")
    mantissa, _, exponent = repr(value).partition("e")
    sign = "-" if exponent.startswith("-") else "+"
    return f"{mantissa}e{sign}{exponent.lstrip('+-').lstrip('0') or '0'}"


# ---------------------------------------------------------------------------
# Functions and constants
# ---------------------------------------------------------------------------


def _round(x: float, n: float = 0) -> float:
    # Half away from zero: round(2.5) == 3, round(-2.5) == -3
    places = int(n)
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(repr(x)).quantize(quantum, rounding=ROUND_HALF_UP))


def _log(x: float, base: float | None = None) -> float:
    return math.log(x) if base is None else math.log(x, base)


def _cbrt(x: float) -> float:
    return math.copysign(abs(x) ** (1.0 / 3.0), x)


def _sign(x: float) -> float:
    return float((x > 0) - (x < 0))


def _mod(x: float, y: float) -> float:
    return x % y


# name -> (callable, min args, max args; None = variadic)
FUNCTIONS: dict[str, tuple[Callable[..., float], int, int | None]] = {
    "abs": (abs, 1, 1),
    "sqrt": (math.sqrt, 1, 1),
    "cbrt": (_cbrt, 1, 1),
    "exp": (math.exp, 1, 1),
    "log": (_log, 1, 2),
    "log10": (math.log10, 1, 1),
    "log2": (math.log2, 1, 1),
    "pow": (math.pow, 2, 2),
    "round": (_round, 1, 2),
    "floor": (math.floor, 1, 1),
    "ceil": (math.ceil, 1, 1),
    "fix": (math.trunc, 1, 1),
    "sign": (_sign, 1, 1),
    "mod": (_mod, 2, 2),
    "min": (min, 1, None),
    "max": (max, 1, None),
    "hypot": (math.hypot, 1, None),
    "sin": (math.sin, 1, 1),
    "cos": (math.cos, 1, 1),
    "tan": (math.tan, 1, 1),
    "asin": (math.asin, 1, 1),
    "acos": (math.acos, 1, 1),
    "atan": (math.atan, 1, 1),
    "atan2": (math.atan2, 2, 2),
}

CONSTANTS: dict[str, float] = {
    "pi": math.pi,
    "PI": math.pi,
    "e": math.e,
    "E": math.e,
}


# ---------------------------------------------------------------------------
# Tokenizer + parser
# ---------------------------------------------------------------------------


def _tokenize(text: str) -> list[tuple[str, str]]:
    tokens: list[tuple[str, str]] = []
    pos = 0
    while pos < len(text):
        if text[pos].isspace():
            pos += 1
            continue
        m = _TOKEN_RE.match(text, pos)
        if not m:
            raise FormulaSyntaxError(f"Unexpected '{text[pos]}' at pos {pos}")
        tokens.append((m.lastgroup or "", m.group(0)))
        pos = m.end()
    return tokens


class _Parser:
    """Evaluates while parsing.

    Grammar (lowest to highest precedence)::

        expr    := term (('+' | '-') term)*
        term    := unary (('*' | '/' | '%') unary)*
        unary   := ('+' | '-')* power
        power   := primary ('^' unary)?
        primary := NUMBER | PLACEHOLDER | NAME | NAME '(' args ')' | '(' expr ')'
    """

    def __init__(self, tokens: list[tuple[str, str]], row: Mapping[str, str]) -> None:
        self.tokens = tokens
        self.row = row
        self.pos = 0
        self.depth = 0

    def _peek(self) -> str | None:
        return self.tokens[self.pos][1] if self.pos < len(self.tokens) else None

    def _next(self) -> tuple[str, str]:
        if self.pos >= len(self.tokens):
            raise FormulaSyntaxError("Unexpected end of expression")
        tok = self.tokens[self.pos]
        self.pos += 1
        return tok

    def _expect(self, value: str) -> None:
        _, got = self._next()
        if got != value:
            raise FormulaSyntaxError(f"Expected '{value}', got '{got}'")

    def parse(self) -> float:
        if not self.tokens:
            raise FormulaSyntaxError("Empty expression")
        value = self._expr()
        if self.pos != len(self.tokens):
            raise FormulaSyntaxError(f"Unexpected '{self._peek()}'")
        return value

    def _expr(self) -> float:
        left = self._term()
        while self._peek() in ("+", "-"):
            op = self._next()[1]
            right = self._term()
            left = left + right if op == "+" else left - right
        return left

    def _term(self) -> float:
        left = self._unary()
        while self._peek() in ("*", "/", "%"):
            op = self._next()[1]
            right = self._unary()
            if op == "*":
                left = left * right
            elif op == "/":
                left = left / right
            else:
                left = left % right
        return left

    def _unary(self) -> float:
        negate = False
        while self._peek() in ("-", "+"):
            if self._next()[1] == "-":
                negate = not negate
        value = self._power()
        return -value if negate else value

    def _enter(self) -> None:
        self.depth += 1
        if self.depth > MAX_NESTING:
            raise FormulaSyntaxError("Expression is nested too deeply")

    def _power(self) -> float:
        base = self._primary()
        if self._peek() == "^":
            self._next()
            self._enter()
            exponent = self._unary()
            self.depth -= 1
            return _check(base ** exponent)
        return base

    def _primary(self) -> float:
        kind, text = self._next()
        if kind == "number":
            return float(text)
        if kind == "placeholder":
            value = parse_number(self.row.get(text[1:-1]))
            return 0.0 if value is None else value
        if kind == "name":
            if self._peek() == "(":
                return self._call(text)
            if text in CONSTANTS:
                return CONSTANTS[text]
            raise FormulaError(f"Unknown symbol: {text}")
        if text == "(":
            self._enter()
            value = self._expr()
            self._expect(")")
            self.depth -= 1
            return value
        raise FormulaSyntaxError(f"Unexpected '{text}'")

    def _call(self, name: str) -> float:
        self._expect("(")
        self._enter()
        args: list[float] = []
        if self._peek() != ")":
            args.append(self._expr())
            while self._peek() == ",":
                self._next()
                args.append(self._expr())
        self._expect(")")
        self.depth -= 1
        if name not in FUNCTIONS:
            raise FormulaError(f"Unknown function: {name}")
        func, min_args, max_args = FUNCTIONS[name]
        if len(args) < min_args or (max_args is not None and len(args) > max_args):
            raise FormulaError(f"Wrong number of arguments for {name}()")
        return _check(func(*args))


def _check(value: object) -> float:
    if isinstance(value, complex):
        raise FormulaError("Complex result")
    return float(value)  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def evaluate(formula: str, row: Mapping[str, str]) -> float:
    """Evaluate *formula* against *row*; 0 on any failure."""
    try:
        value = _Parser(_tokenize(formula), row).parse()
    except (FormulaError, ArithmeticError, ValueError, TypeError, RecursionError):
        return 0.0
    value = round_significant(value) if math.isfinite(value) else value
    # Rounding can push a value near the float limit to infinity
    return value if math.isfinite(value) else 0.0


def placeholders(formula: str) -> list[str]:
    """Column names referenced by *formula*, in order of first appearance."""
    seen: list[str] = []
    for name in PLACEHOLDER_RE.findall(formula):
        if name not in seen:
            seen.append(name)
    return seen


def rename_placeholder(formula: str, old: str, new: str) -> str:
    """Rewrite literal ``{old}`` references to ``{new}``."""
    pattern = re.compile(r"\{" + re.escape(old) + r"\}")
    return pattern.sub(lambda _m: "{" + new + "}", formula)


def recalculate_formulas(document: Document) -> Document:
    """Recompute every formula column on every row.

    Formulas run in mapping order and see values computed earlier in the
    same pass. Formulas naming a column the document does not have are
    skipped.
    """
    formulas = document.metadata.formulas
    if not formulas:
        return document
    active = [
        (column, text)
        for column, text in formulas.items()
        if column in document.columns and text.strip()
    ]
    rows = [dict(row) for row in document.rows]
    for row in rows:
        for column, text in active:
            row[column] = format_number(evaluate(text, row))
    return document.model_copy(update={"rows": rows})
