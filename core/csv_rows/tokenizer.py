from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterator, List, Optional


class DialectError(ValueError):
    """区切り文字 / クォート文字の設定が不正なときに投げる独自例外"""

    pass


class QuoteState(str, Enum):
    """スキャナの状態。

    - unquoted : 区切り文字・改行が構造として効く（初期状態）
    - quoted   : 区切り文字・改行もセルの文字としてそのまま取り込む
    """

    UNQUOTED = "unquoted"
    QUOTED = "quoted"


@dataclass(frozen=True)
class Dialect:
    delimiter: str = ","
    quote_char: str = '"'

    def __post_init__(self) -> None:
        if len(self.delimiter) != 1:
            raise DialectError("delimiter must be a single character")
        if len(self.quote_char) != 1:
            raise DialectError("quote_char must be a single character")
        if self.delimiter == self.quote_char:
            raise DialectError("delimiter and quote_char must differ")
        if self.delimiter in "\r\n" or self.quote_char in "\r\n":
            raise DialectError("delimiter and quote_char cannot be line terminators")


DEFAULT_DIALECT = Dialect()


class CsvTokenizer:
    """1 文字ずつ状態遷移しながら行 / セルを切り出すスキャナ

    走査中の状態はジェネレータ内のローカル変数に持つので、同じインスタンスから
    複数のスキャンを交互に進めても互いに影響しない。
    行を返すたび / 走査終了時に、直近のスキャンの結果を以下へ書き出す:
      - state        : 入力終端での状態（QUOTED なら閉じられていないクォート）
      - line_endings : クォート外で見つかった改行の種別ごとの件数
    """

    def __init__(self, dialect: Optional[Dialect] = None) -> None:
        self.dialect = dialect or DEFAULT_DIALECT
        self.state = QuoteState.UNQUOTED
        self.line_endings: Dict[str, int] = {"crlf": 0, "lf": 0, "cr": 0}

    def _publish(self, state: QuoteState, counts: Dict[str, int]) -> None:
        self.state = state
        self.line_endings = dict(counts)

    def iter_rows(self, content: str) -> Iterator[List[str]]:
        delimiter = self.dialect.delimiter
        quote = self.dialect.quote_char
        size = len(content)

        state = QuoteState.UNQUOTED
        counts = {"crlf": 0, "lf": 0, "cr": 0}
        self._publish(state, counts)

        row: List[str] = []
        cell: List[str] = []
        i = 0

        while i < size:
            ch = content[i]

            if ch == quote:
                if state is QuoteState.QUOTED and i + 1 < size and content[i + 1] == quote:
                    # "" -> 1 文字の " （状態はそのまま）
                    cell.append(quote)
                    i += 2
                    continue
                if state is QuoteState.QUOTED:
                    state = QuoteState.UNQUOTED
                else:
                    state = QuoteState.QUOTED
                i += 1
                continue

            if state is QuoteState.QUOTED:
                cell.append(ch)
                i += 1
                continue

            if ch == delimiter:
                row.append("".join(cell))
                cell = []
                i += 1
                continue

            if ch == "\r" or ch == "\n":
                if ch == "\r" and i + 1 < size and content[i + 1] == "\n":
                    counts["crlf"] += 1
                    i += 1
                elif ch == "\r":
                    counts["cr"] += 1
                else:
                    counts["lf"] += 1
                row.append("".join(cell))
                self._publish(state, counts)
                yield row
                row = []
                cell = []
                i += 1
                continue

            cell.append(ch)
            i += 1

        self._publish(state, counts)

        # 終端処理: セルが空でも、行に既にセルがあれば（末尾の区切り文字）行を確定する。
        # 末尾が改行だけの空行は行として数えない。
        if cell or row:
            row.append("".join(cell))
            yield row

    def parse(self, content: str) -> List[List[str]]:
        return list(self.iter_rows(content))


def iter_rows(content: str, dialect: Optional[Dialect] = None) -> Iterator[List[str]]:
    """テキストを行単位で逐次返す（parse の遅延評価版）"""
    return CsvTokenizer(dialect).iter_rows(content)


def parse(content: str, dialect: Optional[Dialect] = None) -> List[List[str]]:
    """CSV テキスト全体を 2 次元配列に変換する。

    どんな文字列に対しても例外を投げない。閉じられていないクォートは
    入力の残り全体（区切り文字・改行を含む）を最後のセルに取り込む。
    """
    return CsvTokenizer(dialect).parse(content)


parse_csv = parse
