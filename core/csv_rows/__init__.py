# core/csv_rows/__init__.py

"""
CSV Rows API core package.

- tokenizer.py: CSV テキスト -> 行 / セル（状態遷移スキャナ）
- writer.py   : 行 / セル -> CSV テキスト（tokenizer の逆変換）
- models.py   : Pydantic モデル定義
- service.py  : メイン処理（デコード + 解析 + 構造レポート）
"""

from .tokenizer import (
    DEFAULT_DIALECT,
    CsvTokenizer,
    Dialect,
    DialectError,
    QuoteState,
    iter_rows,
    parse,
    parse_csv,
)
from .writer import escape_cell, rows_to_text

__all__ = [
    "DEFAULT_DIALECT",
    "CsvTokenizer",
    "Dialect",
    "DialectError",
    "QuoteState",
    "iter_rows",
    "parse",
    "parse_csv",
    "escape_cell",
    "rows_to_text",
]
