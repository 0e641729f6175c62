"""Sheet cell formulas: addressing, scanning, evaluation and diagnostics.

Public API::

    from kahon.formulas import evaluate_formula, tokenize_formula, parse_cell_address
"""

from kahon.formulas.addresses import (
    CellPosition,
    column_index_to_letter,
    column_letter_to_index,
    get_cell_address,
    is_valid_cell_address,
    parse_cell_address,
)
from kahon.formulas.errors import (
    CircularReferenceError,
    FormulaError,
    FormulaParseError,
    InvalidCellAddressError,
)
from kahon.formulas.evaluator import CellValueLookup, evaluate_formula
from kahon.formulas.parser import (
    FormulaDiagnostic,
    diagnose_formula,
    extract_refs,
    looks_like_formula,
    parse_formula,
)
from kahon.formulas.tokenizer import (
    CellReference,
    CellToken,
    DroppedFragment,
    LParenToken,
    NumberToken,
    OperatorToken,
    RParenToken,
    Token,
    get_cell_references_from_formula,
    scan_formula,
    tokenize_formula,
)

__all__ = [
    "CellPosition",
    "CellReference",
    "CellToken",
    "CellValueLookup",
    "CircularReferenceError",
    "DroppedFragment",
    "FormulaDiagnostic",
    "FormulaError",
    "FormulaParseError",
    "InvalidCellAddressError",
    "LParenToken",
    "NumberToken",
    "OperatorToken",
    "RParenToken",
    "Token",
    "column_index_to_letter",
    "column_letter_to_index",
    "diagnose_formula",
    "evaluate_formula",
    "extract_refs",
    "get_cell_address",
    "get_cell_references_from_formula",
    "is_valid_cell_address",
    "looks_like_formula",
    "parse_cell_address",
    "parse_formula",
    "scan_formula",
    "tokenize_formula",
]
