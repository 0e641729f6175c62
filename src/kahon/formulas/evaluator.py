"""Recursive-descent evaluator for sheet formulas.

Grammar (``*`` and ``/`` bind tighter than ``+`` and ``-``)::

    expression := term (('+' | '-') term)*
    term       := primary (('*' | '/') primary)*
    primary    := NUMBER | CELL | '(' expression ')' | '-' primary

Evaluation degrades instead of failing: a missing operand counts as 0,
division by zero yields 0, an unclosed ``(`` is closed implicitly and a
stray ``)`` ends the expression.  Cell references are resolved through a
caller-supplied lookup, which may itself evaluate further formulas.
"""

from __future__ import annotations

from typing import Callable, Sequence

from kahon.formulas.tokenizer import (
    CellToken,
    LParenToken,
    NumberToken,
    OperatorToken,
    RParenToken,
    Token,
    tokenize_formula,
)

# (row_index, column_index) -> numeric value; 0 for empty cells.
CellValueLookup = Callable[[int, int], float]


def evaluate_formula(formula: str, get_cell_value: CellValueLookup) -> float:
    """Evaluate *formula*, resolving cell references via *get_cell_value*.

    Args:
        formula: Formula text, e.g. ``"A1+B2*3"``.
        get_cell_value: Lookup called once per cell reference, in
            evaluation order.

    Returns:
        The computed value; ``0.0`` for an empty or unusable formula.
        Exceptions raised by *get_cell_value* propagate unchanged.
    """
    return _Parser(tokenize_formula(formula), get_cell_value).parse()


class _Parser:
    """One-shot parser over a token list."""

    def __init__(self, tokens: Sequence[Token], lookup: CellValueLookup) -> None:
        self._tokens = tokens
        self._pos = 0
        self._lookup = lookup

    def parse(self) -> float:
        return float(self._expression())

    def _peek(self) -> Token | None:
        if self._pos < len(self._tokens):
            return self._tokens[self._pos]
        return None

    def _expression(self) -> float:
        left = self._term()
        while True:
            token = self._peek()
            if not (isinstance(token, OperatorToken) and token.op in ("+", "-")):
                return left
            self._pos += 1
            right = self._term()
            left = left + right if token.op == "+" else left - right

    def _term(self) -> float:
        left = self._primary()
        while True:
            token = self._peek()
            if not (isinstance(token, OperatorToken) and token.op in ("*", "/")):
                return left
            self._pos += 1
            right = self._primary()
            if token.op == "*":
                left = left * right
            else:
                left = left / right if right != 0 else 0.0

    def _primary(self) -> float:
        token = self._peek()

        if isinstance(token, NumberToken):
            self._pos += 1
            return token.value

        if isinstance(token, CellToken):
            self._pos += 1
            return self._lookup(token.row_index, token.column_index)

        if isinstance(token, LParenToken):
            self._pos += 1
            result = self._expression()
            if isinstance(self._peek(), RParenToken):
                self._pos += 1
            return result

        if isinstance(token, OperatorToken) and token.op == "-":
            self._pos += 1
            return -self._primary()

        # End of input, ')' or a binary operator: the operand is missing.
        return 0.0
