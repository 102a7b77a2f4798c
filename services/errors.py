"""
錯誤分類定義
每種失敗對應一個 kind 與 HTTP 狀態碼，由 app 的例外處理器統一轉成 JSON 回應
"""

from typing import Optional


class AnalysisError(Exception):
    """分析流程錯誤的基底類別"""

    kind = "unexpected"
    status_code = 500

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class InputError(AnalysisError):
    """沒有可用的輸入（無圖片且無文字）"""

    kind = "input"
    status_code = 400


class ConfigurationError(AnalysisError):
    """缺少上游端點、憑證或模型設定"""

    kind = "configuration"
    status_code = 500


class UpstreamHTTPError(AnalysisError):
    """上游回傳非 2xx"""

    kind = "upstream_http"

    def __init__(self, status: int, body: str):
        super().__init__(f"上游服務回應異常: {status}", details=body)
        # 上游狀態碼原樣轉給呼叫端，非錯誤狀態一律視為 502
        self.status_code = status if 400 <= status <= 599 else 502


class UpstreamTimeoutError(AnalysisError):
    """上游請求逾時"""

    kind = "upstream_timeout"
    status_code = 504


class UpstreamFormatError(AnalysisError):
    """上游 2xx 但內容為空、找不到 JSON 或欄位不符"""

    kind = "upstream_format"
    status_code = 502


class UpstreamConnectionError(AnalysisError):
    """無法連接上游（DNS、連線中斷等網路錯誤）"""

    kind = "upstream_connection"
    status_code = 502
