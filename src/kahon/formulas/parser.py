"""Lark-based strict parser and diagnostics for sheet formulas.

:func:`evaluate_formula` is forgiving: ``"A1+"`` evaluates as
``A1+0`` and ``"SUM(A1)"`` as ``A1``.  The strict grammar here describes
what a well-formed formula looks like, so editors and the CLI can point at
mistakes without changing what a formula evaluates to.

Supports:
- Cell references: ``A1``, ``aa10`` (case-insensitive)
- Numbers: ``2``, ``2.5``, ``.5``, ``2.``
- ``+ - * /`` with standard precedence, unary minus, parentheses
- An optional leading ``=``
"""

from __future__ import annotations

import re
from typing import NamedTuple

from lark import Lark, Token, Tree, Visitor
from lark.exceptions import UnexpectedInput

from kahon.formulas.errors import FormulaParseError
from kahon.formulas.tokenizer import scan_formula

# LALR(1) grammar.  Operator precedence (lowest to highest):
#   1. Addition/subtraction: + -
#   2. Multiplication/division: * /
#   3. Unary minus
#   4. Atoms: number, cell reference, parenthesized expr
GRAMMAR = r"""
start: expr

?expr: sum

?sum: product
    | sum "+" product  -> add
    | sum "-" product  -> sub

?product: unary
    | product "*" unary  -> mul
    | product "/" unary  -> div

?unary: atom
    | "-" unary  -> neg

?atom: NUMBER      -> number
    | CELL_REF     -> cell_ref
    | "(" expr ")"

CELL_REF: /[A-Za-z]+[0-9]+/
NUMBER: /[0-9]+(\.[0-9]*)?|\.[0-9]+/

%import common.WS
%ignore WS
"""

_parser = Lark(GRAMMAR, parser="lalr", start="start")

_LEADING_EQUALS_RE = re.compile(r"^\s*=")
_CELL_RUN_RE = re.compile(r"[A-Za-z]+\d+")
_OPERATOR_RE = re.compile(r"[+\-*/]")


class FormulaDiagnostic(NamedTuple):
    """A problem found in a formula.

    ``code`` is one of ``empty_formula``, ``dropped_fragment`` or
    ``syntax_error``.
    """

    code: str
    message: str
    position: int | None = None


def _strip_equals(text: str) -> tuple[str, int]:
    m = _LEADING_EQUALS_RE.match(text)
    if m:
        return text[m.end():], m.end()
    return text, 0


def parse_formula(text: str) -> Tree:
    """Parse a formula under the strict grammar.

    Args:
        text: The formula text, e.g. ``"(A1 - A2) / 2"``; a leading ``=``
            is allowed.

    Returns:
        A Lark parse tree.

    Raises:
        FormulaParseError: If the formula has invalid syntax.
    """
    body, offset = _strip_equals(text)
    try:
        return _parser.parse(body)
    except UnexpectedInput as exc:
        pos = getattr(exc, "pos_in_stream", None)
        if pos is not None and pos >= 0:
            pos += offset
        else:
            pos = None
        raise FormulaParseError(_describe(exc), position=pos) from exc


def _describe(exc: UnexpectedInput) -> str:
    # Lark messages span several lines with a caret diagram; keep the first.
    first = str(exc).strip().splitlines()
    return first[0] if first else exc.__class__.__name__


class _RefCollector(Visitor):
    """Visitor that collects cell references from a parse tree."""

    def __init__(self) -> None:
        self.cell_refs: set[str] = set()

    def cell_ref(self, tree: Tree) -> None:
        token = tree.children[0]
        if isinstance(token, Token):
            self.cell_refs.add(str(token).upper())


def extract_refs(tree: Tree) -> set[str]:
    """Extract the uppercase cell addresses referenced in a parse tree."""
    collector = _RefCollector()
    collector.visit(tree)
    return collector.cell_refs


def diagnose_formula(text: str) -> list[FormulaDiagnostic]:
    """List the problems in *text*; an empty list means it is well formed.

    Fragments the lenient scanner would drop are reported individually;
    a strict-grammar failure adds one ``syntax_error`` entry.
    """
    body, offset = _strip_equals(text)
    if not body.strip():
        return [FormulaDiagnostic("empty_formula", "Formula is empty", None)]

    diagnostics: list[FormulaDiagnostic] = []
    for frag in scan_formula(body).dropped:
        diagnostics.append(
            FormulaDiagnostic(
                "dropped_fragment",
                f"Ignored {frag.text!r} ({frag.reason.replace('_', ' ')})",
                frag.position + offset,
            )
        )
    try:
        parse_formula(text)
    except FormulaParseError as exc:
        diagnostics.append(FormulaDiagnostic("syntax_error", exc.message, exc.position))
    return diagnostics


def looks_like_formula(text: str) -> bool:
    """Return True when cell-editor input should be treated as a formula.

    Input counts as a formula when it holds a letters+digits run (a cell
    reference) and at least one arithmetic operator.
    """
    return bool(_CELL_RUN_RE.search(text)) and bool(_OPERATOR_RE.search(text))
