"""
Shared fixtures: a scripted fake ARK backend behind ``httpx.MockTransport``
and a sleep that records instead of waiting.
"""

import io
import json
from typing import List, Optional

import httpx
import pytest

from paper_analyzer.client import AnalysisClient
from paper_analyzer.config import ArkConfig


GOOD_SCRIPT = {
    "title": "注意力就是一切？",
    "script": [
        {"speaker": "丛雨", "text": "主殿，这篇论文的标题好嚣张のじゃ。", "emotion": "proud"},
        {
            "speaker": "丛雨",
            "text": "自注意力让每个词都能看到其他词。",
            "emotion": "happy",
            "note": "Self-Attention：计算序列内部两两相关性的机制",
        },
    ],
}


def responses_body(*texts: str, usage: Optional[dict] = None) -> dict:
    """Build a Responses API body with one output block per text."""
    body = {
        "id": "resp-1",
        "object": "response",
        "status": "completed",
        "output": [
            {"type": "message", "content": [{"type": "text", "text": t}]}
            for t in texts
        ],
    }
    if usage is not None:
        body["usage"] = usage
    return body


class FakeArk:
    """Scripted stand-in for the Files and Responses endpoints.

    ``statuses`` is consumed one entry per ``GET /files/{id}``; the last
    entry repeats once the list runs out.
    """

    def __init__(
        self,
        upload_status: Optional[str] = None,
        statuses: Optional[List[Optional[str]]] = None,
        reply: Optional[dict] = None,
        upload_code: int = 200,
        upload_body: Optional[dict] = None,
        status_code: int = 200,
        inference_code: int = 200,
    ):
        self.upload_status = upload_status
        self.statuses = list(statuses or ["processed"])
        self.reply = reply if reply is not None else responses_body(json.dumps(GOOD_SCRIPT))
        self.upload_code = upload_code
        self.upload_body = upload_body
        self.status_code = status_code
        self.inference_code = inference_code
        self.requests: List[httpx.Request] = []
        self.status_checks = 0

    def paths(self) -> List[str]:
        return [f"{r.method} {r.url.path}" for r in self.requests]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if request.method == "POST" and path.endswith("/files"):
            if self.upload_code != 200:
                return httpx.Response(self.upload_code, text="bad upload")
            if self.upload_body is not None:
                return httpx.Response(200, json=self.upload_body)
            body = {"id": "file-abc", "object": "file", "purpose": "user_data"}
            if self.upload_status is not None:
                body["status"] = self.upload_status
            return httpx.Response(200, json=body)

        if request.method == "GET" and "/files/" in path:
            if self.status_code != 200:
                return httpx.Response(self.status_code, text="gone")
            index = min(self.status_checks, len(self.statuses) - 1)
            self.status_checks += 1
            status = self.statuses[index]
            body = {"id": "file-abc"}
            if status is not None:
                body["status"] = status
            return httpx.Response(200, json=body)

        if request.method == "POST" and path.endswith("/responses"):
            if self.inference_code != 200:
                return httpx.Response(self.inference_code, text="quota exceeded")
            return httpx.Response(200, json=self.reply)

        return httpx.Response(404, text=f"unexpected {request.method} {path}")

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


class RecordingSleep:
    def __init__(self):
        self.calls: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture
def ark_config() -> ArkConfig:
    return ArkConfig(api_key="test-key", base_url="https://ark.test/api/v3", model="doubao-test")


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def pdf() -> io.BytesIO:
    return io.BytesIO(b"%PDF-1.4\n1 0 obj\n<< /Type /Catalog >>\nendobj\n%%EOF\n")


@pytest.fixture
def make_client(ark_config, sleep):
    def _make(backend: FakeArk, config: Optional[ArkConfig] = None) -> AnalysisClient:
        return AnalysisClient(config or ark_config, transport=backend.transport(), sleep=sleep)

    return _make
