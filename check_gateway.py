#!/usr/bin/env python3
"""
分析服務連線檢查腳本
確認閘道可連線、上游設定完整，並可選擇送出一次純文字分析
"""

import os
import sys
from urllib.parse import urlparse

import requests


def check_health(base_url):
    """檢查 /api/health 並回傳上游設定摘要"""
    url = f"{base_url.rstrip('/')}/api/health"
    try:
        response = requests.get(url, timeout=10)
    except requests.exceptions.ConnectionError:
        print(f"❌ {url} - 連線被拒絕")
        return None
    except requests.exceptions.Timeout:
        print(f"❌ {url} - 連線超時")
        return None

    if response.status_code != 200:
        print(f"⚠️  {url} - HTTP狀態碼: {response.status_code}")
        return None

    upstream = response.json().get("upstream", {})
    print(f"✅ {url} - 服務正常，模型: {upstream.get('model')}")
    if not upstream.get("configured"):
        print(f"⚠️  上游設定缺少: {', '.join(upstream.get('missing', []))}")
    return upstream


def check_upstream_host(api_url):
    """只確認上游主機可連線，不送出分析請求"""
    if not api_url:
        print("⚠️  未設定 UPSTREAM_API_URL，略過上游檢查")
        return False

    parsed = urlparse(api_url)
    probe = f"{parsed.scheme}://{parsed.netloc}/"
    try:
        response = requests.head(probe, timeout=10, allow_redirects=True)
        print(f"✅ 上游主機 {parsed.netloc} 可連線 (HTTP {response.status_code})")
        return True
    except requests.exceptions.RequestException as e:
        print(f"❌ 上游主機 {parsed.netloc} 無法連線: {e}")
        return False


def send_text_probe(base_url, language="zh"):
    """送出一次不含圖片的分析請求"""
    url = f"{base_url.rstrip('/')}/api/analyze"
    response = requests.post(
        url,
        files={"reflection": (None, "最近在学做饭，周末喜欢一个人去看海。"), "language": (None, language)},
        timeout=120,
    )
    data = response.json()
    if response.status_code == 200:
        print(f"✅ 分析成功，欄位: {', '.join(data.keys())}")
        return True
    print(f"❌ 分析失敗 [{data.get('kind')}] {data.get('error')}")
    return False


def main():
    """主檢查函數"""
    base_url = os.getenv("GATEWAY_URL", "http://localhost:8000")
    print("🌐 分析服務檢查開始...")
    print("=" * 60)

    upstream = check_health(base_url)
    if upstream is None:
        return 1

    check_upstream_host(os.getenv("UPSTREAM_API_URL", ""))

    if "--probe" in sys.argv:
        return 0 if send_text_probe(base_url) else 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
