from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic.config import ConfigDict

from .tokenizer import Dialect, DialectError


API_VERSION = "0.1.0"

Mode = Literal["parse", "normalize"]
LineEnding = Literal["auto", "lf", "crlf"]


class ResponseLevel(str, Enum):
    """
    Response verbosity level.
    - simple   : rows (and csv_text for normalize) + minimal meta
    - standard : adds issues + stats + effective_config
    - debug    : adds input diagnostics (input_chars, decoded_from)
    """

    simple = "simple"
    standard = "standard"
    debug = "debug"


class Issue(BaseModel):
    type: str
    row: Optional[int] = None
    severity: Literal["info", "warning"] = "info"
    description: str


class Stats(BaseModel):
    rows: int = 0
    columns_min: int = 0
    columns_max: int = 0
    columns_mode: int = 0
    ragged: bool = False
    line_endings: Dict[str, int] = Field(default_factory=dict)
    unterminated_quote: bool = False
    delimiter: str = ","


class CsvParseResult(BaseModel):
    """
    stats は response_level=simple のとき省略する。
    csv_text は mode=normalize のときだけ入る。
    """

    rows: List[List[str]] = Field(default_factory=list)
    csv_text: Optional[str] = None
    issues: List[Issue] = Field(default_factory=list)
    stats: Optional[Stats] = None


class CsvParseResponse(BaseModel):
    result: CsvParseResult
    meta: Dict[str, Any]


class CsvParseRequest(BaseModel):
    """
    CSV Rows API リクエストモデル

    csv_text（デコード済みテキスト）か csv_b64（UTF-8 の Base64）の
    どちらか一方を指定する。
    """

    mode: Mode = "parse"
    csv_text: Optional[str] = None
    csv_b64: Optional[str] = None

    delimiter: str = ","
    quote_char: str = '"'

    # normalize 用
    line_ending: LineEnding = "auto"
    quote_all: bool = False

    max_rows: int = Field(default=0, ge=0)  # 0 の場合は無制限

    response_level: ResponseLevel = Field(
        default=ResponseLevel.simple,
        description="Response verbosity: simple | standard | debug",
    )

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "mode": "parse",
                "csv_text": 'name,city\n"Doe, Jane",Girona\n',
                "response_level": "standard",
            }
        }
    )

    @field_validator("delimiter", "quote_char")
    @classmethod
    def _single_char(cls, value: str) -> str:
        if len(value) != 1:
            raise ValueError("must be a single character")
        if value in "\r\n":
            raise ValueError("cannot be a line terminator")
        return value

    @model_validator(mode="after")
    def _check_source_and_dialect(self) -> "CsvParseRequest":
        if (self.csv_text is None) == (self.csv_b64 is None):
            raise ValueError("exactly one of csv_text or csv_b64 is required")
        try:
            Dialect(delimiter=self.delimiter, quote_char=self.quote_char)
        except DialectError as exc:
            raise ValueError(str(exc)) from exc
        return self

    def dialect(self) -> Dialect:
        return Dialect(delimiter=self.delimiter, quote_char=self.quote_char)
