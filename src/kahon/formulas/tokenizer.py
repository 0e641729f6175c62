"""Lenient scanner for sheet formulas.

Turns ``"(A1-A2)/2"`` into a flat token list.  The scanner never raises:
fragments it cannot use (bare words, ``1.2.3``, stray characters such as
``=`` or ``,``) are dropped.  :func:`scan_formula` also reports what was
dropped, for tooling that wants to flag malformed formulas.
"""

from __future__ import annotations

from typing import Literal, NamedTuple, Union

from pydantic import BaseModel, ConfigDict

from kahon.formulas.addresses import parse_cell_address

Operator = Literal["+", "-", "*", "/"]

_OPERATORS = frozenset("+-*/")


def _is_ascii_letter(ch: str) -> bool:
    return ("A" <= ch <= "Z") or ("a" <= ch <= "z")


def _is_digit(ch: str) -> bool:
    return "0" <= ch <= "9"


class _Token(BaseModel):
    model_config = ConfigDict(frozen=True)


class CellToken(_Token):
    kind: Literal["cell"] = "cell"
    address: str
    row_index: int
    column_index: int


class NumberToken(_Token):
    kind: Literal["number"] = "number"
    value: float


class OperatorToken(_Token):
    kind: Literal["operator"] = "operator"
    op: Operator


class LParenToken(_Token):
    kind: Literal["lparen"] = "lparen"


class RParenToken(_Token):
    kind: Literal["rparen"] = "rparen"


Token = Union[CellToken, NumberToken, OperatorToken, LParenToken, RParenToken]


class CellReference(BaseModel):
    """A cell referenced by a formula."""

    model_config = ConfigDict(frozen=True)

    address: str
    row_index: int
    column_index: int


class DroppedFragment(NamedTuple):
    """A piece of formula text the scanner discarded."""

    text: str
    position: int
    reason: str  # unknown_character | invalid_cell_reference | invalid_number


class TokenScan(NamedTuple):
    tokens: list[Token]
    dropped: list[DroppedFragment]


def scan_formula(formula: str) -> TokenScan:
    """Tokenize *formula*, recording every fragment that was skipped.

    Positions in :class:`DroppedFragment` are offsets into *formula*.
    """
    tokens: list[Token] = []
    dropped: list[DroppedFragment] = []
    n = len(formula)
    i = 0
    unknown_start = -1

    def flush_unknown(end: int) -> None:
        nonlocal unknown_start
        if unknown_start >= 0:
            dropped.append(
                DroppedFragment(formula[unknown_start:end], unknown_start, "unknown_character")
            )
            unknown_start = -1

    while i < n:
        ch = formula[i]

        if ch.isspace():
            flush_unknown(i)
            i += 1
            continue

        if ch in _OPERATORS:
            flush_unknown(i)
            tokens.append(OperatorToken(op=ch))
            i += 1
            continue

        if ch == "(":
            flush_unknown(i)
            tokens.append(LParenToken())
            i += 1
            continue
        if ch == ")":
            flush_unknown(i)
            tokens.append(RParenToken())
            i += 1
            continue

        if _is_ascii_letter(ch):
            flush_unknown(i)
            start = i
            while i < n and (_is_ascii_letter(formula[i]) or _is_digit(formula[i])):
                i += 1
            word = formula[start:i]
            pos = parse_cell_address(word)
            if pos is None:
                dropped.append(DroppedFragment(word, start, "invalid_cell_reference"))
            else:
                tokens.append(
                    CellToken(
                        address=word.upper(),
                        row_index=pos.row_index,
                        column_index=pos.column_index,
                    )
                )
            continue

        if _is_digit(ch) or ch == ".":
            flush_unknown(i)
            start = i
            while i < n and (_is_digit(formula[i]) or formula[i] == "."):
                i += 1
            text = formula[start:i]
            try:
                tokens.append(NumberToken(value=float(text)))
            except ValueError:
                dropped.append(DroppedFragment(text, start, "invalid_number"))
            continue

        if unknown_start < 0:
            unknown_start = i
        i += 1

    flush_unknown(n)
    return TokenScan(tokens, dropped)


def tokenize_formula(formula: str) -> list[Token]:
    """Tokenize a formula string, silently skipping unusable fragments."""
    return scan_formula(formula).tokens


def get_cell_references_from_formula(formula: str) -> list[CellReference]:
    """Return every cell reference in *formula*, in order, duplicates kept."""
    return [
        CellReference(address=t.address, row_index=t.row_index, column_index=t.column_index)
        for t in tokenize_formula(formula)
        if isinstance(t, CellToken)
    ]
