#!/usr/bin/env python3
"""
分析閘道服務
解析表單 → 限制張數 → 編碼圖片 → 組裝提示詞 → 呼叫上游 → 抽取並驗證結果
"""

import logging
from typing import Any, Dict, List

from pydantic import ValidationError
from starlette.datastructures import UploadFile

from config import CATEGORY_LIMITS, IMAGE_CATEGORIES, MAX_UPSTREAM_IMAGES
from models.analysis_models import (
    SchemaField,
    UploadBundle,
    UploadImage,
    build_result_model,
    load_schema,
    normalize_language,
    normalize_reflection,
)
from prompts.analysis_prompts import AnalysisPrompts
from services.errors import InputError, UpstreamFormatError
from services.image_codec import guess_image_mime, to_data_uri
from services.json_extract import extract_json_object
from services.llm_client import LLMClient

logger = logging.getLogger(__name__)


def cap_images(images: List[UploadImage], max_total: int = MAX_UPSTREAM_IMAGES) -> List[UploadImage]:
    """依分類順序排列，各分類截到上限後再截到總上限"""
    kept: List[UploadImage] = []
    for category in IMAGE_CATEGORIES:
        in_category = [img for img in images if img.category == category]
        kept.extend(in_category[: CATEGORY_LIMITS[category]])
    return kept[:max_total]


class AnalysisService:
    """海報分析的閘道服務"""

    def __init__(
        self,
        llm_client: LLMClient = None,
        schema: List[SchemaField] = None,
        max_images: int = None,
    ):
        self.llm = llm_client or LLMClient()
        self.schema = schema or load_schema()
        self.result_model = build_result_model(self.schema)
        self.max_images = max_images if max_images is not None else MAX_UPSTREAM_IMAGES

    async def _read_uploads(self, form) -> List[UploadImage]:
        """
        依分類順序讀取已知欄位中的檔案
        非檔案項目與空檔案不佔名額，分類上限與總上限都滿了就不再讀取
        """
        images: List[UploadImage] = []
        for category in IMAGE_CATEGORIES:
            kept = 0
            for item in form.getlist(category):
                if len(images) >= self.max_images:
                    return images
                if kept >= CATEGORY_LIMITS[category]:
                    break
                if not isinstance(item, UploadFile):
                    continue
                data = await item.read()
                if not data:
                    continue
                images.append(
                    UploadImage(
                        category=category,
                        filename=item.filename or "",
                        content_type=item.content_type or "",
                        data=data,
                    )
                )
                kept += 1
        return images

    @staticmethod
    def _text_field(form, name: str) -> str:
        value = form.get(name)
        return value if isinstance(value, str) else ""

    async def decode_form(self, form) -> UploadBundle:
        """把 multipart 表單轉成 UploadBundle"""
        images = await self._read_uploads(form)

        return UploadBundle(
            images=images,
            reflection=normalize_reflection(self._text_field(form, "reflection")),
            language=normalize_language(self._text_field(form, "language")),
        )

    def encode_images(self, images: List[UploadImage]) -> List[str]:
        """轉為上游可接受的 data URI"""
        return [
            to_data_uri(img.data, guess_image_mime(img.filename, img.content_type))
            for img in images
        ]

    def validate_result(self, parsed: Dict[str, Any]) -> Dict[str, str]:
        """只保留宣告的欄位，缺少欄位或非字串時視為格式錯誤"""
        try:
            result = self.result_model.model_validate(parsed)
        except ValidationError as e:
            problems = ", ".join(
                f"{'.'.join(str(p) for p in err['loc'])}: {err['type']}" for err in e.errors()
            )
            raise UpstreamFormatError("上游結果欄位不符", details=problems)
        return result.model_dump()

    async def analyze(self, bundle: UploadBundle) -> Dict[str, str]:
        """執行完整分析流程"""
        if not bundle.has_content():
            raise InputError("沒有圖片也沒有文字")
        images = cap_images(bundle.images, self.max_images)

        language = bundle.language.value
        logger.info(
            f"開始分析: 圖片 {len(images)} 張, 感悟 {len(bundle.reflection)} 字, 語言 {language}"
        )

        messages = AnalysisPrompts.build_messages(
            self.schema, bundle.reflection, language, self.encode_images(images)
        )
        content = await self.llm.chat_completion(messages)

        parsed = extract_json_object(content, json_mode=self.llm.json_mode)
        return self.validate_result(parsed)

    def describe_schema(self, language: str) -> Dict[str, Any]:
        """輸出欄位說明"""
        return {
            "language": language,
            "fields": [
                {"key": f.key, "target_length": f.target_length, "label": f.label(language)}
                for f in self.schema
            ],
        }


def get_analysis_service() -> AnalysisService:
    """FastAPI 依賴注入入口，每個請求使用獨立實例"""
    return AnalysisService()
