#!/usr/bin/env python3
"""
Soul Observer 分析服務
接收圖片與感悟，轉交上游多模態模型並回傳海報欄位
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.routes import router as api_router
from config import (
    CORS_ORIGINS,
    DEFAULT_LANGUAGE,
    ERROR_MESSAGES,
    FASTAPI_HOST,
    FASTAPI_PORT,
    FASTAPI_RELOAD,
    LOG_FORMAT,
    LOG_LEVEL,
)
from services.errors import AnalysisError

# 設定日誌
logging.basicConfig(level=getattr(logging, LOG_LEVEL.upper(), logging.INFO), format=LOG_FORMAT)
logger = logging.getLogger(__name__)

# 建立 FastAPI 應用
app = FastAPI(
    title="Soul Observer Analysis API",
    description="上傳碎片，生成靈魂報告",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

# 設定 CORS（未提供 CORS_ORIGINS 或設為 * 時允許所有來源，關閉 credentials）
_origins_list = [o.strip() for o in CORS_ORIGINS.split(",") if o.strip()]

if not _origins_list or CORS_ORIGINS == "*":
    _cors_kwargs = {"allow_origins": ["*"], "allow_credentials": False}
else:
    _cors_kwargs = {"allow_origins": _origins_list, "allow_credentials": True}

app.add_middleware(
    CORSMiddleware,
    **_cors_kwargs,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix="/api")


def _error_message(request: Request, kind: str) -> str:
    language = getattr(request.state, "language", DEFAULT_LANGUAGE)
    messages = ERROR_MESSAGES.get(kind, ERROR_MESSAGES["unexpected"])
    return messages.get(language, messages[DEFAULT_LANGUAGE])


def _error_response(status_code: int, error: str, kind: str, details: str = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": error, "kind": kind, "details": details},
    )


@app.exception_handler(AnalysisError)
async def analysis_error_handler(request: Request, exc: AnalysisError):
    """分析流程中可預期的錯誤"""
    logger.warning(f"分析失敗 [{exc.kind}] {exc.message}")
    details = exc.details
    if exc.kind == "configuration":
        # 設定問題只記錄在伺服器端
        logger.error(f"服務設定不完整: {exc.message}")
        details = None
    return _error_response(exc.status_code, _error_message(request, exc.kind), exc.kind, details)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    """路由層的 HTTP 錯誤（含表單解析失敗）也輸出統一格式"""
    return _error_response(exc.status_code, str(exc.detail), "http")


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return _error_response(422, _error_message(request, "input"), "input", str(exc.errors()))


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    """其他例外一律轉為 500，不回傳堆疊"""
    logger.error(f"未預期的錯誤: {exc}", exc_info=True)
    return _error_response(500, _error_message(request, "unexpected"), "unexpected")


@app.get("/")
async def root():
    """根路徑"""
    return {
        "message": "Soul Observer 分析服務",
        "version": "1.0.0",
        "status": "running",
        "docs": "/docs",
        "health": "/api/health",
        "analyze": "/api/analyze",
    }


@app.get("/health")
async def legacy_health():
    """簡易健康檢查"""
    return {"status": "healthy", "version": "1.0.0"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app:app",
        host=FASTAPI_HOST,
        port=FASTAPI_PORT,
        reload=FASTAPI_RELOAD,
        log_level="info",
    )
