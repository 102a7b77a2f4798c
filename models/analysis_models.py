"""
分析相關模型定義
上傳內容、輸出欄位宣告與動態產生的分析結果模型
"""

from enum import Enum
from typing import Any, Dict, List, Type

from pydantic import BaseModel, Field, StrictStr, create_model, field_validator

from config import (
    ANALYSIS_SCHEMA,
    CATEGORY_LIMITS,
    DEFAULT_LANGUAGE,
    MAX_REFLECTION_CHARS,
    SUPPORTED_LANGUAGES,
)


class AnalysisLanguage(str, Enum):
    """回覆語言"""

    ZH = "zh"
    EN = "en"


def normalize_language(value: Any) -> str:
    """不支援的語言一律退回預設值"""
    text = str(value or "").strip().lower()
    return text if text in SUPPORTED_LANGUAGES else DEFAULT_LANGUAGE


def normalize_reflection(value: Any) -> str:
    """去除前後空白並截斷到上限字數"""
    return str(value or "").strip()[:MAX_REFLECTION_CHARS]


class UploadImage(BaseModel):
    """單張上傳圖片"""

    category: str
    filename: str = ""
    content_type: str = ""
    data: bytes

    @field_validator("category")
    @classmethod
    def check_category(cls, v: str) -> str:
        if v not in CATEGORY_LIMITS:
            raise ValueError(f"未知的圖片分類: {v}")
        return v


class UploadBundle(BaseModel):
    """一次提交的完整內容，單次使用後即丟棄"""

    images: List[UploadImage] = Field(default_factory=list)
    reflection: str = ""
    language: AnalysisLanguage = AnalysisLanguage.ZH

    @field_validator("reflection", mode="before")
    @classmethod
    def truncate_reflection(cls, v: Any) -> str:
        return normalize_reflection(v)

    @field_validator("language", mode="before")
    @classmethod
    def fallback_language(cls, v: Any) -> str:
        return normalize_language(v)

    def has_content(self) -> bool:
        return bool(self.images) or bool(self.reflection)


class SchemaField(BaseModel):
    """海報輸出欄位宣告"""

    key: str
    target_length: int = Field(..., gt=0, description="目標字數")
    directive: str = Field(..., description="內容要求")
    label_zh: str = ""
    label_en: str = ""

    def label(self, language: str) -> str:
        return self.label_en if language == AnalysisLanguage.EN.value else self.label_zh


def load_schema(raw: List[Dict[str, Any]] = None) -> List[SchemaField]:
    """讀取輸出欄位宣告，鍵名不可重複"""
    fields = [SchemaField(**item) for item in (raw or ANALYSIS_SCHEMA)]
    keys = [f.key for f in fields]
    if not keys or len(keys) != len(set(keys)):
        raise ValueError("輸出欄位宣告不可為空且鍵名不可重複")
    return fields


def build_result_model(schema: List[SchemaField]) -> Type[BaseModel]:
    """依欄位宣告產生分析結果模型，每個鍵都必填且必須是字串"""
    definitions = {f.key: (StrictStr, ...) for f in schema}
    return create_model("AnalysisResult", **definitions)
