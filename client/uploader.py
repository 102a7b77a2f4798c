#!/usr/bin/env python3
"""
客戶端上傳器
收集各分類圖片與感悟，壓縮後以單一 multipart 請求送往分析端點
"""

import asyncio
import logging
import os
from typing import Dict, Iterable, List, Optional, Tuple

import aiohttp
from pydantic import BaseModel

import config
from models.analysis_models import normalize_language, normalize_reflection
from services.image_codec import compress_image, jpeg_filename

logger = logging.getLogger(__name__)


class UploadFailedError(Exception):
    """提交失敗，message 為可直接顯示給使用者的文字"""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status = status


class SubmissionInProgressError(Exception):
    """上一次提交尚未完成"""


class SelectedFile(BaseModel):
    """使用者選取的檔案"""

    filename: str
    data: bytes
    content_type: str = ""

    @classmethod
    def from_path(cls, path: str) -> "SelectedFile":
        with open(path, "rb") as f:
            return cls(filename=os.path.basename(path), data=f.read())


class UploadSelection:
    """
    各分類的已選圖片

    新檔案附加在既有檔案之後，超過分類上限的部分直接捨棄
    """

    def __init__(self, limits: Dict[str, int] = None):
        self.limits = dict(limits or config.CATEGORY_LIMITS)
        self._files: Dict[str, List[SelectedFile]] = {c: [] for c in self.limits}

    def _check(self, category: str):
        if category not in self.limits:
            raise ValueError(f"未知的圖片分類: {category}")

    def add(self, category: str, files: Iterable[SelectedFile]) -> List[SelectedFile]:
        """附加檔案並截到上限，回傳該分類目前的檔案"""
        self._check(category)
        merged = self._files[category] + list(files)
        dropped = len(merged) - self.limits[category]
        if dropped > 0:
            logger.debug(f"{category} 超過上限，捨棄 {dropped} 張")
        self._files[category] = merged[: self.limits[category]]
        return list(self._files[category])

    def remove(self, category: str, index: int) -> SelectedFile:
        self._check(category)
        return self._files[category].pop(index)

    def clear(self):
        for category in self._files:
            self._files[category] = []

    def files(self, category: str) -> List[SelectedFile]:
        self._check(category)
        return list(self._files[category])

    def items(self) -> List[Tuple[str, SelectedFile]]:
        """依分類順序展開"""
        return [(c, f) for c in self.limits for f in self._files[c]]

    def total(self) -> int:
        return sum(len(files) for files in self._files.values())


class AnalysisUploader:
    """把選取內容送往 /api/analyze，一次請求、不重試"""

    def __init__(
        self,
        endpoint: str = None,
        timeout: float = 120,
        max_edge: int = None,
        quality: int = None,
    ):
        self.endpoint = endpoint or config.ANALYZE_ENDPOINT
        self.timeout = timeout
        self.max_edge = max_edge or config.MAX_IMAGE_EDGE
        self.quality = quality or config.JPEG_QUALITY
        self._in_flight = False

    @property
    def busy(self) -> bool:
        """提交進行中時，呼叫端應停用觸發按鈕"""
        return self._in_flight

    async def compress_all(self, selection: UploadSelection) -> List[Tuple[str, str, bytes]]:
        """並行壓縮所有圖片，全部完成後才回傳"""
        loop = asyncio.get_running_loop()
        items = selection.items()
        compressed = await asyncio.gather(
            *(
                loop.run_in_executor(None, compress_image, f.data, self.max_edge, self.quality)
                for _, f in items
            )
        )
        return [
            (category, jpeg_filename(f.filename), data)
            for (category, f), data in zip(items, compressed)
        ]

    @staticmethod
    def build_form(
        compressed: List[Tuple[str, str, bytes]], reflection: str, language: str
    ) -> aiohttp.FormData:
        form = aiohttp.FormData()
        for category, filename, data in compressed:
            form.add_field(category, data, filename=filename, content_type="image/jpeg")
        form.add_field("reflection", normalize_reflection(reflection))
        form.add_field("language", language)
        return form

    async def _post(self, session: aiohttp.ClientSession, form: aiohttp.FormData) -> Dict[str, str]:
        async with session.post(
            self.endpoint, data=form, timeout=aiohttp.ClientTimeout(total=self.timeout)
        ) as response:
            if not 200 <= response.status < 300:
                body = await response.text()
                logger.error(f"分析請求失敗: {response.status} {body[:300]}")
                raise UploadFailedError("Request failed", status=response.status)
            return await response.json(content_type=None)

    async def submit(
        self,
        selection: UploadSelection,
        reflection: str = "",
        language: str = "zh",
        session: aiohttp.ClientSession = None,
    ) -> Dict[str, str]:
        """
        壓縮並提交，成功時回傳海報欄位

        任何失敗都轉成帶有統一提示文字的 UploadFailedError
        """
        if self._in_flight:
            raise SubmissionInProgressError("上一次分析尚未完成")

        language = normalize_language(language)
        self._in_flight = True
        try:
            compressed = await self.compress_all(selection)
            form = self.build_form(compressed, reflection, language)
            logger.info(f"提交分析: 圖片 {len(compressed)} 張, 語言 {language}")

            if session is not None:
                return await self._post(session, form)
            async with aiohttp.ClientSession() as own_session:
                return await self._post(own_session, form)

        except Exception as e:
            logger.error(f"分析提交失敗: {e}")
            status = e.status if isinstance(e, UploadFailedError) else None
            raise UploadFailedError(config.CLIENT_FAILURE_MESSAGES[language], status=status) from e
        finally:
            self._in_flight = False

    @staticmethod
    def poster_labels(language: str) -> Dict[str, str]:
        """海報欄位標題"""
        lang = normalize_language(language)
        return {
            item["key"]: item["label_en"] if lang == "en" else item["label_zh"]
            for item in config.ANALYSIS_SCHEMA
        }
