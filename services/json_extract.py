"""
從模型的自然語言回覆中抽取 JSON 物件
先取第一個 { 到最後一個 } 的區段；失敗時再掃描括號平衡的候選物件
"""

import json
import logging
from typing import Any, Dict, Iterator, Optional

from services.errors import UpstreamFormatError

logger = logging.getLogger(__name__)


def _outer_span(text: str) -> Optional[str]:
    """第一個 { 到最後一個 }（含）"""
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end < start:
        return None
    return text[start : end + 1]


def _balanced_objects(text: str) -> Iterator[str]:
    """依序產生括號平衡的 {...} 區段，忽略字串內的括號"""
    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escape_next = False
        end = -1

        for i in range(start, len(text)):
            char = text[i]
            if escape_next:
                escape_next = False
                continue
            if char == "\\":
                escape_next = True
                continue
            if char == '"':
                in_string = not in_string
                continue
            if in_string:
                continue
            if char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
                if depth == 0:
                    end = i
                    break

        if end != -1:
            yield text[start : end + 1]
        start = text.find("{", start + 1)


def _loads_object(candidate: str) -> Optional[Dict[str, Any]]:
    try:
        parsed = json.loads(candidate)
    except json.JSONDecodeError:
        return None
    return parsed if isinstance(parsed, dict) else None


def extract_json_object(text: str, json_mode: bool = False) -> Dict[str, Any]:
    """
    抽取模型回覆中的 JSON 物件

    json_mode 為真時代表上游已啟用 JSON-only 回應，先整段解析
    找不到可解析的物件時拋出 UpstreamFormatError
    """
    if not text or not text.strip():
        raise UpstreamFormatError("上游回覆內容為空")

    if json_mode:
        parsed = _loads_object(text.strip())
        if parsed is not None:
            return parsed
        logger.warning("JSON 模式回覆無法直接解析，改用區段抽取")

    span = _outer_span(text)
    if span is None:
        raise UpstreamFormatError("回覆中找不到 JSON 物件", details=text[:500])

    parsed = _loads_object(span)
    if parsed is not None:
        return parsed

    # 前後文字含有多餘括號時，外層區段會損壞
    for candidate in _balanced_objects(text):
        parsed = _loads_object(candidate)
        if parsed is not None:
            logger.debug("外層區段解析失敗，改用平衡括號候選")
            return parsed

    raise UpstreamFormatError("回覆中的 JSON 解析失敗", details=text[:500])
