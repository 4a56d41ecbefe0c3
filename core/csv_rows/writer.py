from __future__ import annotations

from typing import Any, Iterable, Optional, Sequence

from .tokenizer import DEFAULT_DIALECT, Dialect, DialectError


LINE_TERMINATORS = {
    "lf": "\n",
    "crlf": "\r\n",
}


def escape_cell(value: Any, dialect: Optional[Dialect] = None, quote_all: bool = False) -> str:
    """1 セル分の値を CSV 表現にする

    - None は空文字
    - 区切り文字 / クォート文字 / 改行を含む場合のみクォート（quote_all なら常に）
    - 内部のクォート文字は 2 つに重ねる
    """
    dialect = dialect or DEFAULT_DIALECT
    quote = dialect.quote_char

    text = "" if value is None else str(value)
    needs_quote = quote_all or any(
        c in text for c in (dialect.delimiter, quote, "\r", "\n")
    )
    if not needs_quote:
        return text
    return quote + text.replace(quote, quote + quote) + quote


def rows_to_text(
    rows: Iterable[Sequence[Any]],
    dialect: Optional[Dialect] = None,
    line_ending: str = "lf",
    quote_all: bool = False,
) -> str:
    """2 次元配列を CSV テキストに再構成する。

    全行を改行で終端するので、1 セル以上ある行は parse で元どおりに読み戻せる。
    セル 0 個の行は空行として書かれ、読み戻すと [""] になる。
    """
    dialect = dialect or DEFAULT_DIALECT
    try:
        terminator = LINE_TERMINATORS[line_ending]
    except KeyError:
        raise DialectError(f"unsupported line_ending: {line_ending!r}") from None

    parts = []
    for row in rows:
        parts.append(
            dialect.delimiter.join(escape_cell(cell, dialect, quote_all) for cell in row)
        )
        parts.append(terminator)
    return "".join(parts)
