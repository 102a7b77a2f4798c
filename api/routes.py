"""
分析 API 路由定義
"""

import logging
from typing import Dict

from fastapi import APIRouter, Depends, Request

from models.analysis_models import normalize_language
from models.base_models import ErrorResponse, SchemaResponse
from services.analysis_service import AnalysisService, get_analysis_service
from services.errors import AnalysisError

logger = logging.getLogger(__name__)

# 創建路由器
router = APIRouter()

_ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "沒有可用的輸入"},
    500: {"model": ErrorResponse, "description": "設定錯誤或未預期錯誤"},
    502: {"model": ErrorResponse, "description": "上游回覆格式錯誤或無法連線"},
    504: {"model": ErrorResponse, "description": "上游逾時"},
}


# ===== 海報分析端點 =====
@router.post("/analyze", response_model=Dict[str, str], responses=_ERROR_RESPONSES)
async def analyze(
    request: Request, service: AnalysisService = Depends(get_analysis_service)
):
    """
    接收 multipart 表單並回傳海報欄位

    欄位說明:
    - reflection: 個人感悟（選填，最多 2000 字）
    - language: zh 或 en（選填，預設 zh）
    - moments / playlist / snaps: 圖片檔案，可重複
    """
    form = await request.form()
    try:
        bundle = await service.decode_form(form)
        # 供例外處理器選擇錯誤訊息語言
        request.state.language = bundle.language.value
        return await service.analyze(bundle)
    except AnalysisError:
        raise
    except Exception as e:
        logger.error(f"分析處理失敗: {e}", exc_info=True)
        raise AnalysisError(f"分析處理失敗: {e}")
    finally:
        await form.close()


# ===== 輸出欄位說明 =====
@router.get("/schema", response_model=SchemaResponse)
async def schema(
    language: str = "zh", service: AnalysisService = Depends(get_analysis_service)
):
    """回傳宣告的輸出欄位與對應語言的標題"""
    return service.describe_schema(normalize_language(language))


# ===== 健康檢查端點 =====
@router.get("/health")
async def health_check(service: AnalysisService = Depends(get_analysis_service)):
    """健康檢查端點"""
    return {
        "status": "healthy",
        "service": "Soul Observer Analysis API",
        "version": "1.0.0",
        "upstream": service.llm.describe(),
    }
