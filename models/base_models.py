"""
基礎模型定義
錯誤回應與欄位說明等共用回應模型
"""

from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field


class ErrorResponse(BaseModel):
    """統一的錯誤回應模型"""

    error: str
    kind: str = "unexpected"
    details: Optional[str] = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "error": "AI 脑回路卡住了，没能生成有效的 JSON 报告。",
                "kind": "upstream_format",
                "details": "Sorry, I cannot help with that.",
            }
        }
    )


class SchemaFieldInfo(BaseModel):
    """對外公開的輸出欄位說明"""

    key: str
    target_length: int
    label: str


class SchemaResponse(BaseModel):
    """輸出欄位清單，供前端排版海報"""

    language: str
    fields: List[SchemaFieldInfo] = Field(default_factory=list)
