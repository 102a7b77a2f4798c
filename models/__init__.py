"""
統一的數據模型定義
"""

from .base_models import *
from .analysis_models import *

__all__ = [
    # 基礎模型
    "ErrorResponse",
    "SchemaFieldInfo",
    "SchemaResponse",
    # 分析模型
    "AnalysisLanguage",
    "UploadImage",
    "UploadBundle",
    "SchemaField",
    "load_schema",
    "build_result_model",
    "normalize_language",
    "normalize_reflection",
]
