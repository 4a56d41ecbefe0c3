from __future__ import annotations

import base64
import logging
import statistics
from dataclasses import dataclass, asdict
from itertools import islice
from typing import List, Tuple, Dict, Any

from .models import (
    API_VERSION,
    CsvParseRequest,
    CsvParseResult,
    CsvParseResponse,
    Issue,
    Stats,
    ResponseLevel,
)
from .tokenizer import CsvTokenizer, QuoteState
from .writer import rows_to_text


logger = logging.getLogger(__name__)


class InvalidBase64Error(Exception):
    """Base64 デコード失敗時に投げる独自例外"""

    pass


@dataclass
class EffectiveConfig:
    """実際の解析 / 再出力に用いる設定（auto 判定後の値）"""

    mode: str
    delimiter: str
    quote_char: str
    line_ending: str  # "lf" / "crlf"
    quote_all: bool
    max_rows: int


# ---------------------------------------------------------------------------
# Base64 / テキストユーティリティ
# ---------------------------------------------------------------------------


def _decode_base64_to_text(csv_b64: str) -> str:
    """Base64 -> UTF-8 テキストに変換

    - 先に空白類（スペース・改行・タブなど）をすべて削除
    - そのうえで validate=True で厳密に Base64 を検証
    - 先頭の BOM は取り除く
    """
    try:
        compact = "".join(csv_b64.split())
        raw = base64.b64decode(compact, validate=True)
        return raw.decode("utf-8-sig")
    except Exception as exc:  # noqa: BLE001
        raise InvalidBase64Error("csv_b64 is not valid Base64 UTF-8 text") from exc


def _resolve_text(request: CsvParseRequest) -> Tuple[str, str]:
    """リクエストから解析対象テキストと取得元（"text" / "base64"）を返す"""
    if request.csv_b64 is not None:
        return _decode_base64_to_text(request.csv_b64), "base64"
    return request.csv_text or "", "text"


def _pick_line_ending(requested: str, counts: Dict[str, int]) -> str:
    """line_ending=auto のとき、入力で最も多い改行種別を採用する（lone CR は lf 扱い）"""
    if requested != "auto":
        return requested
    if counts.get("crlf", 0) > counts.get("lf", 0) + counts.get("cr", 0):
        return "crlf"
    return "lf"


# ---------------------------------------------------------------------------
# 構造解析 / Stats
# ---------------------------------------------------------------------------


def _analyze_structure(
    rows: List[List[str]],
    line_endings: Dict[str, int],
    unterminated: bool,
    delimiter: str,
) -> Tuple[Stats, List[Issue]]:
    """列数や改行の内訳を集計する。列数の揃っていない行は報告するだけで直さない。"""
    issues: List[Issue] = []
    line_endings = {k: v for k, v in line_endings.items() if v}

    if unterminated:
        issues.append(
            Issue(
                type="UNTERMINATED_QUOTE",
                row=len(rows) or None,
                severity="warning",
                description=(
                    "Input ended inside a quoted field; the remaining text was "
                    "kept in the last cell."
                ),
            )
        )

    if len(line_endings) > 1:
        kinds = ", ".join(sorted(line_endings))
        issues.append(
            Issue(
                type="MIXED_LINE_ENDINGS",
                severity="info",
                description=f"Input mixes line endings: {kinds}.",
            )
        )

    if not rows:
        stats = Stats(
            line_endings=line_endings,
            unterminated_quote=unterminated,
            delimiter=delimiter,
        )
        return stats, issues

    col_counts = [len(r) for r in rows]
    columns_mode = int(statistics.mode(col_counts))

    for i, col_count in enumerate(col_counts, start=1):
        if col_count != columns_mode:
            issues.append(
                Issue(
                    type="COLUMN_COUNT_MISMATCH",
                    row=i,
                    severity="info",
                    description=f"Row has {col_count} columns (most rows have {columns_mode}).",
                )
            )

    stats = Stats(
        rows=len(rows),
        columns_min=min(col_counts),
        columns_max=max(col_counts),
        columns_mode=columns_mode,
        ragged=min(col_counts) != max(col_counts),
        line_endings=line_endings,
        unterminated_quote=unterminated,
        delimiter=delimiter,
    )
    return stats, issues


# ---------------------------------------------------------------------------
# response_level による間引き
# ---------------------------------------------------------------------------


def _minimize_response(
    level: ResponseLevel,
    result_full: CsvParseResult,
    meta_full: Dict[str, Any],
) -> CsvParseResponse:
    """トップ構造 {result, meta} は維持しつつ、response_level に応じて中身を絞る。"""

    meta_simple: Dict[str, Any] = {
        "version": meta_full.get("version"),
        "mode_used": meta_full.get("mode_used"),
        "response_level_used": level.value,
        "truncated": meta_full.get("truncated", False),
    }

    if level == ResponseLevel.simple:
        result = CsvParseResult(rows=result_full.rows, csv_text=result_full.csv_text)
        return CsvParseResponse(result=result, meta=meta_simple)

    if level == ResponseLevel.standard:
        meta_standard: Dict[str, Any] = dict(meta_simple)
        meta_standard["effective_config"] = meta_full["effective_config"]
        return CsvParseResponse(result=result_full, meta=meta_standard)

    # debug: meta_full をそのまま返す
    return CsvParseResponse(result=result_full, meta=meta_full)


# ---------------------------------------------------------------------------
# API エントリーポイント
# ---------------------------------------------------------------------------


def process_csv(request: CsvParseRequest) -> CsvParseResponse:
    """CSV Rows API のメイン処理"""

    # 1) テキスト取得（Base64 の場合は UTF-8 にデコード）
    text, decoded_from = _resolve_text(request)

    # 2) 行に分解（max_rows 指定時はそこで打ち切る）
    tokenizer = CsvTokenizer(request.dialect())
    row_iter = tokenizer.iter_rows(text)
    if request.max_rows > 0:
        rows = list(islice(row_iter, request.max_rows))
    else:
        rows = list(row_iter)

    # 返した行までの集計を先に確保する（打ち切り判定で 1 行先を読むため）
    line_endings = dict(tokenizer.line_endings)
    unterminated = tokenizer.state is QuoteState.QUOTED
    truncated = request.max_rows > 0 and next(row_iter, None) is not None

    logger.debug(
        "parsed %d row(s) from %d char(s), line_endings=%s",
        len(rows),
        len(text),
        line_endings,
    )
    if unterminated:
        logger.warning("input ended inside a quoted field")

    # 3) 構造解析
    stats, issues = _analyze_structure(
        rows,
        line_endings=line_endings,
        unterminated=unterminated,
        delimiter=tokenizer.dialect.delimiter,
    )

    # 4) 設定確定
    cfg = EffectiveConfig(
        mode=request.mode,
        delimiter=request.delimiter,
        quote_char=request.quote_char,
        line_ending=_pick_line_ending(request.line_ending, line_endings),
        quote_all=request.quote_all,
        max_rows=request.max_rows,
    )

    # 5) normalize の場合は再シリアライズ
    csv_text_out = None
    if request.mode == "normalize":
        csv_text_out = rows_to_text(
            rows,
            dialect=tokenizer.dialect,
            line_ending=cfg.line_ending,
            quote_all=cfg.quote_all,
        )

    result_full = CsvParseResult(
        rows=rows,
        csv_text=csv_text_out,
        issues=issues,
        stats=stats,
    )
    meta_full: Dict[str, Any] = {
        "version": API_VERSION,
        "mode_used": request.mode,
        "response_level_used": request.response_level.value,
        "truncated": truncated,
        "effective_config": asdict(cfg),
        "input_chars": len(text),
        "decoded_from": decoded_from,
    }

    # 6) response_level に応じて最終レスポンスを生成
    return _minimize_response(
        level=request.response_level,
        result_full=result_full,
        meta_full=meta_full,
    )
