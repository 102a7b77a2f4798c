import os
import sys
from io import BytesIO

import pytest

sys.path.append(os.path.dirname(os.path.dirname(__file__)))

from PIL import Image
from fastapi.testclient import TestClient

from app import app
from services.analysis_service import AnalysisService, get_analysis_service


class FakeLLM:
    """替代上游的假客戶端，記錄收到的 messages"""

    def __init__(self, content=None, error=None, json_mode=False):
        self.content = content
        self.error = error
        self.json_mode = json_mode
        self.calls = []

    async def chat_completion(self, messages):
        self.calls.append(messages)
        if self.error is not None:
            raise self.error
        return self.content

    def describe(self):
        return {"model": "fake-vision", "configured": True, "missing": [], "json_mode": self.json_mode}


def make_image(width=64, height=32, mode="RGB", fmt="PNG", color=(200, 40, 40)):
    if mode == "RGBA":
        color = color + (128,)
    buffer = BytesIO()
    Image.new(mode, (width, height), color).save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
def image_factory():
    return make_image


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def use_service():
    """以指定的 LLM 客戶端覆寫分析服務"""

    def _install(llm, **kwargs):
        app.dependency_overrides[get_analysis_service] = lambda: AnalysisService(llm_client=llm, **kwargs)
        return llm

    yield _install
    app.dependency_overrides.clear()


@pytest.fixture
def make_llm():
    return FakeLLM
