#!/usr/bin/env python3
"""
配置檔案
集中管理應用程式的所有設定參數
"""

import os

from dotenv import load_dotenv

# 讀取 .env（若存在），已設定的環境變數優先
load_dotenv()


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def _env_optional_int(name: str):
    value = os.getenv(name, "").strip()
    return int(value) if value else None


# 上游多模態模型設定（OpenAI 相容的 chat completions 端點）
# 憑證沒有預設值，缺少時於請求時回報設定錯誤
UPSTREAM_API_URL = os.getenv("UPSTREAM_API_URL", "").strip()
UPSTREAM_API_KEY = os.getenv("UPSTREAM_API_KEY", "").strip()
UPSTREAM_MODEL = os.getenv("UPSTREAM_MODEL", "").strip()
UPSTREAM_TIMEOUT = float(os.getenv("UPSTREAM_TIMEOUT", "60"))
UPSTREAM_JSON_MODE = _env_bool("UPSTREAM_JSON_MODE")

# 取樣參數
UPSTREAM_TEMPERATURE = float(os.getenv("UPSTREAM_TEMPERATURE", "0.9"))
UPSTREAM_TOP_P = float(os.getenv("UPSTREAM_TOP_P", "0.95"))
UPSTREAM_FREQUENCY_PENALTY = float(os.getenv("UPSTREAM_FREQUENCY_PENALTY", "0.6"))
UPSTREAM_PRESENCE_PENALTY = float(os.getenv("UPSTREAM_PRESENCE_PENALTY", "0.4"))
UPSTREAM_MAX_TOKENS = _env_optional_int("UPSTREAM_MAX_TOKENS")

# FastAPI 設定
FASTAPI_HOST = os.getenv("FASTAPI_HOST", "0.0.0.0")
FASTAPI_PORT = int(os.getenv("FASTAPI_PORT", "8000"))
FASTAPI_RELOAD = os.getenv("FASTAPI_RELOAD", "false").lower() == "true"
CORS_ORIGINS = os.getenv("CORS_ORIGINS", "").strip()

# 日誌設定
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# 上傳內容限制
MAX_REFLECTION_CHARS = 2000
MAX_UPSTREAM_IMAGES = int(os.getenv("MAX_UPSTREAM_IMAGES", "4"))

# 圖片分類與各自上限（順序即彙整順序）
CATEGORY_LIMITS = {
    "moments": 4,
    "playlist": 2,
    "snaps": 2,
}
IMAGE_CATEGORIES = list(CATEGORY_LIMITS.keys())

# 支援的語言
SUPPORTED_LANGUAGES = ("zh", "en")
DEFAULT_LANGUAGE = "zh"

# 客戶端圖片壓縮
MAX_IMAGE_EDGE = int(os.getenv("MAX_IMAGE_EDGE", "1280"))
JPEG_QUALITY = int(os.getenv("JPEG_QUALITY", "80"))

# 客戶端預設的分析端點
ANALYZE_ENDPOINT = os.getenv("ANALYZE_ENDPOINT", "http://127.0.0.1:8000/api/analyze")

# 海報輸出欄位 - 鍵名、目標字數與內容要求
ANALYSIS_SCHEMA = [
    {
        "key": "analysis",
        "target_length": 350,
        "directive": "基于观察的内心解析，分点列出你在图片中实际看到的具体细节（颜色、物品、文字、构图），再由细节之间的矛盾推断一个反直觉的性格特征",
        "label_zh": "内心解析",
        "label_en": "Inner Reading",
    },
    {
        "key": "celebrity",
        "target_length": 100,
        "directive": "找出一位对标人物，并说明你们共有的特质",
        "label_zh": "明星对标",
        "label_en": "Celebrity Match",
    },
    {
        "key": "talent",
        "target_length": 70,
        "directive": "指出一个与沟通、表达完全无关的隐藏天赋",
        "label_zh": "隐藏天赋",
        "label_en": "Hidden Talent",
    },
    {
        "key": "advice",
        "target_length": 50,
        "directive": "一个具体、可执行的生活建议，禁止是“多表达”",
        "label_zh": "极简建议",
        "label_en": "Minimal Advice",
    },
]

# 面向使用者的錯誤訊息
ERROR_MESSAGES = {
    "input": {
        "zh": "请至少上传一张图片或写下一段感悟。",
        "en": "Please upload at least one image or write a short reflection.",
    },
    "configuration": {
        "zh": "服务配置不完整，暂时无法分析。",
        "en": "The service is not fully configured.",
    },
    "upstream_http": {
        "zh": "AI 服务报错",
        "en": "The AI service returned an error.",
    },
    "upstream_timeout": {
        "zh": "AI 服务响应超时，请减少图片数量后重试。",
        "en": "The AI service timed out. Try again with fewer images.",
    },
    "upstream_connection": {
        "zh": "无法连接 AI 服务，请检查网络后重试。",
        "en": "Could not reach the AI service. Check the network and try again.",
    },
    "upstream_format": {
        "zh": "AI 脑回路卡住了，没能生成有效的 JSON 报告。",
        "en": "The AI did not produce a valid JSON report.",
    },
    "unexpected": {
        "zh": "分析失败，请稍后再试。",
        "en": "Analysis failed. Please try again later.",
    },
}

# 客戶端統一失敗提示
CLIENT_FAILURE_MESSAGES = {
    "zh": "分析超时或失败。建议：请减少上传的图片数量，或尝试更稳定的网络。",
    "en": "Analysis timed out or failed. Hint: Try with fewer images or a more stable connection.",
}
