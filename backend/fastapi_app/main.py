from __future__ import annotations

import sys
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

# ============================================================
# プロジェクトルートを sys.path に追加
# （Lambda / uvicorn どちらでも core パッケージを解決できるように）
# ============================================================
ROOT_DIR = Path(__file__).resolve().parents[2]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from core.csv_rows.models import API_VERSION, CsvParseRequest  # noqa: E402
from core.csv_rows.service import (  # noqa: E402
    InvalidBase64Error,
    process_csv,
)

# ============================================================
# API Gateway 側で /csv をプレフィックスとしてルーティングしているため、
# FastAPI には root_path="/csv" を指定し、ルート定義は /v0/... にする
# ============================================================
app = FastAPI(
    title="CSV Rows API",
    version=API_VERSION,
    description="CSV text -> rows of cells (quoted fields, mixed line endings)",
    root_path="/csv",
)


def _error_response(status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": {
                "code": code,
                "message": message,
            },
            "meta": {
                "version": API_VERSION,
            },
        },
    )


@app.exception_handler(InvalidBase64Error)
async def invalid_base64_handler(_: Request, exc: InvalidBase64Error) -> JSONResponse:
    return _error_response(400, "INVALID_BASE64", str(exc))


@app.get("/v0/health")
async def health():
    return {"ok": True, "version": API_VERSION}


@app.post("/v0/parse")
async def csv_parse_endpoint(payload: CsvParseRequest):
    response = process_csv(payload)
    return response.model_dump()
