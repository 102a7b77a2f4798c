#!/usr/bin/env python3
"""
上游多模態模型客戶端
透過 OpenAI 相容的 chat completions 端點發送單次、非串流的請求
"""

import asyncio
import logging
import time
from typing import Any, Dict, List, Optional

import aiohttp

import config
from services.errors import (
    ConfigurationError,
    UpstreamConnectionError,
    UpstreamFormatError,
    UpstreamHTTPError,
    UpstreamTimeoutError,
)

logger = logging.getLogger(__name__)


class LLMClient:
    """上游 chat completion 客戶端"""

    def __init__(
        self,
        api_url: str = None,
        api_key: str = None,
        model: str = None,
        timeout: float = None,
        json_mode: bool = None,
    ):
        """初始化客戶端，未指定的參數取自設定檔"""
        self.api_url = api_url if api_url is not None else config.UPSTREAM_API_URL
        self.api_key = api_key if api_key is not None else config.UPSTREAM_API_KEY
        self.model = model if model is not None else config.UPSTREAM_MODEL
        self.timeout = timeout if timeout is not None else config.UPSTREAM_TIMEOUT
        self.json_mode = json_mode if json_mode is not None else config.UPSTREAM_JSON_MODE

        self.temperature = config.UPSTREAM_TEMPERATURE
        self.top_p = config.UPSTREAM_TOP_P
        self.frequency_penalty = config.UPSTREAM_FREQUENCY_PENALTY
        self.presence_penalty = config.UPSTREAM_PRESENCE_PENALTY
        self.max_tokens = config.UPSTREAM_MAX_TOKENS

    def missing_settings(self) -> List[str]:
        """列出缺少的必要設定"""
        missing = []
        if not self.api_url:
            missing.append("UPSTREAM_API_URL")
        if not self.api_key:
            missing.append("UPSTREAM_API_KEY")
        if not self.model:
            missing.append("UPSTREAM_MODEL")
        return missing

    @property
    def configured(self) -> bool:
        return not self.missing_settings()

    def _require_settings(self):
        missing = self.missing_settings()
        if missing:
            raise ConfigurationError(f"缺少必要設定: {', '.join(missing)}")

    def build_payload(self, messages: List[Dict[str, Any]]) -> Dict[str, Any]:
        """構建請求數據"""
        payload = {
            "model": self.model,
            "messages": messages,
            "stream": False,
            "temperature": self.temperature,
            "top_p": self.top_p,
            "frequency_penalty": self.frequency_penalty,
            "presence_penalty": self.presence_penalty,
        }
        if self.max_tokens:
            payload["max_tokens"] = self.max_tokens
        if self.json_mode:
            payload["response_format"] = {"type": "json_object"}
        return payload

    @staticmethod
    def _extract_content(data: Dict[str, Any]) -> str:
        """取出第一個 choice 的文字內容"""
        try:
            content = data["choices"][0]["message"].get("content")
        except (KeyError, IndexError, TypeError, AttributeError):
            raise UpstreamFormatError("上游回應缺少 choices[0].message")

        # 部分供應商以分段陣列回傳內容
        if isinstance(content, list):
            content = "".join(
                part.get("text", "") for part in content if isinstance(part, dict)
            )
        if not isinstance(content, str) or not content.strip():
            raise UpstreamFormatError("上游回覆內容為空")
        return content

    async def chat_completion(self, messages: List[Dict[str, Any]]) -> str:
        """發送單次 chat completion，回傳模型的文字內容"""
        self._require_settings()

        payload = self.build_payload(messages)
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }

        start_time = time.time()
        try:
            async with aiohttp.ClientSession() as session:
                async with session.post(
                    self.api_url,
                    json=payload,
                    headers=headers,
                    timeout=aiohttp.ClientTimeout(total=self.timeout),
                ) as response:
                    if not 200 <= response.status < 300:
                        error_text = await response.text()
                        logger.error(f"上游請求失敗: {response.status}")
                        raise UpstreamHTTPError(response.status, error_text)

                    try:
                        data = await response.json(content_type=None)
                    except ValueError:
                        raise UpstreamFormatError("上游回應不是有效的 JSON")

        except asyncio.TimeoutError:
            logger.error(f"上游請求超時 ({self.timeout}秒)")
            raise UpstreamTimeoutError(f"上游請求超時 ({self.timeout}秒)")
        except aiohttp.ClientError as e:
            logger.error(f"無法連接上游服務: {e}")
            raise UpstreamConnectionError("無法連接上游服務", details=str(e))

        logger.info(f"上游回應完成，耗時: {time.time() - start_time:.3f}秒")
        content = self._extract_content(data)
        logger.debug(f"上游原始輸出: {content[:500]}")
        return content

    def describe(self) -> Dict[str, Any]:
        """提供健康檢查用的設定摘要，不含憑證"""
        return {
            "model": self.model or None,
            "configured": self.configured,
            "missing": self.missing_settings(),
            "json_mode": self.json_mode,
            "timeout": self.timeout,
        }
