"""ARK (Doubao) client that turns a PDF into a visual-novel dialogue script.

One call runs three phases in order: upload the file to the Files API,
poll until the backend has processed it, then ask the Responses API for
the script.  ``AnalysisClient.analyze`` never raises; any failure becomes
the in-character fallback script.
"""

from __future__ import annotations

import asyncio
import base64
import io
import logging
import os
from typing import Awaitable, BinaryIO, Callable, Optional

import httpx

from .config import ArkConfig
from .errors import (
    InferenceRequestFailed,
    ProcessingFailed,
    ProcessingTimeout,
    SizeLimitExceeded,
    StatusCheckFailed,
    UploadFailed,
)
from .models import AnalysisOutcome, AnalysisResult, AnalysisSettings, DialogueLine
from .prompt import build_prompt
from .reply import parse_reply

log = logging.getLogger(__name__)

_MB = 1024 * 1024
_DEFAULT_FILENAME = "paper.pdf"
_PDF_MIME = "application/pdf"

FALLBACK_TITLE = "灵力回路遮断"


def fallback_result(message: str) -> AnalysisResult:
    """The canned script shown when anything goes wrong."""
    return AnalysisResult(
        title=FALLBACK_TITLE,
        script=[
            DialogueLine(
                speaker="丛雨",
                text="呜... 主殿，连结彼岸的通道似乎被干扰了（Doubao API Request Failed）。",
                emotion="shy",
            ),
            DialogueLine(
                speaker="丛雨",
                text=f"错误信息：{message}" if message else "发生了未知错误。",
                emotion="angry",
            ),
            DialogueLine(
                speaker="丛雨",
                text="是不是你的ARK_API_KEY没放对地方？或者是这篇论文有结界？",
                emotion="angry",
            ),
        ],
    )


def file_size(file: BinaryIO) -> int:
    """Size of *file* in bytes, without consuming it."""
    pos = file.tell()
    file.seek(0, io.SEEK_END)
    size = file.tell()
    file.seek(pos)
    return size


def _resolve_filename(file: BinaryIO, filename: Optional[str]) -> str:
    if filename:
        return filename
    name = getattr(file, "name", None)
    if isinstance(name, str) and name:
        return os.path.basename(name)
    return _DEFAULT_FILENAME


class AnalysisClient:
    """Runs the upload / poll / infer sequence against one ARK account.

    *transport* and *sleep* exist so tests can swap the network and the
    polling delay.
    """

    def __init__(
        self,
        config: ArkConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.config = config
        self._transport = transport
        self._sleep = sleep

    def _http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.config.base_url,
            headers={"Authorization": f"Bearer {self.config.api_key}"},
            timeout=self.config.request_timeout,
            transport=self._transport,
        )

    # ------------------------------------------------------------------
    # Public entry points
    # ------------------------------------------------------------------

    async def analyze(
        self,
        file: BinaryIO,
        settings: AnalysisSettings,
        filename: Optional[str] = None,
    ) -> AnalysisResult:
        """Analyse *file* and return its dialogue script, or the fallback
        script carrying the error message."""
        outcome = await self.try_analyze(file, settings, filename)
        if outcome.success:
            return outcome.result
        return fallback_result(str(outcome.error))

    async def try_analyze(
        self,
        file: BinaryIO,
        settings: AnalysisSettings,
        filename: Optional[str] = None,
    ) -> AnalysisOutcome:
        try:
            result = await self.run(file, settings, filename)
        except Exception as e:
            log.exception("Error analyzing paper with Ark")
            return AnalysisOutcome(error=e)
        return AnalysisOutcome(result=result)

    async def run(
        self,
        file: BinaryIO,
        settings: AnalysisSettings,
        filename: Optional[str] = None,
    ) -> AnalysisResult:
        """Raising variant of ``analyze``."""
        size = file_size(file)
        if size > self.config.max_file_bytes:
            raise SizeLimitExceeded(
                f"File size exceeds {self.config.max_file_bytes // _MB}MB limit"
            )
        inline = self.config.upload_mode == "inline"
        if inline and size > self.config.inline_max_bytes:
            raise SizeLimitExceeded(
                f"File size exceeds {self.config.inline_max_bytes // _MB}MB inline limit"
            )

        name = _resolve_filename(file, filename)
        prompt = build_prompt(settings)
        log.info("Analyzing %s (%d bytes) detail=%s personality=%s mode=%s",
                 name, size, settings.detail_level, settings.personality,
                 self.config.upload_mode)

        async with self._http_client() as http:
            if inline:
                file_part = await _inline_file_part(file, name)
            else:
                file_id = await self.upload_file(http, file, name)
                file_part = {"type": "input_file", "file_id": file_id}
            body = await self.request_inference(http, file_part, prompt)

        return parse_reply(body)

    # ------------------------------------------------------------------
    # Phases
    # ------------------------------------------------------------------

    async def upload_file(
        self, http: httpx.AsyncClient, file: BinaryIO, filename: str
    ) -> str:
        """Upload *file* to the Files API and wait until it is processed.

        Returns the file id to reference in the inference request.
        """
        file.seek(0)
        resp = await http.post(
            "/files",
            data={"purpose": "user_data"},
            files={"file": (filename, file, _PDF_MIME)},
        )
        if not resp.is_success:
            raise UploadFailed(
                f"Failed to upload file: {resp.status_code} {resp.text}",
                resp.status_code, resp.text,
            )

        data = resp.json()
        file_id = data.get("id")
        if not file_id:
            raise UploadFailed("Upload response has no file id", resp.status_code, resp.text)
        log.info("Uploaded %s as %s (status=%s)", filename, file_id, data.get("status"))

        await self.wait_for_processing(http, file_id, data.get("status"))
        return file_id

    async def wait_for_processing(
        self,
        http: httpx.AsyncClient,
        file_id: str,
        status: Optional[str] = None,
    ) -> None:
        """Poll ``/files/{id}`` until the backend reports the file ready.

        *status* is the value from the upload reply; a missing status or
        ``processed`` means ready without polling.
        """
        if not status or status == "processed":
            return
        if status == "failed":
            raise ProcessingFailed("File processing failed")

        attempts = self.config.max_poll_attempts
        for attempt in range(1, attempts + 1):
            resp = await http.get(f"/files/{file_id}")
            if not resp.is_success:
                raise StatusCheckFailed(
                    f"Failed to check file status: {resp.status_code}",
                    resp.status_code, resp.text,
                )

            status = resp.json().get("status")
            log.info("File %s status=%s (attempt %d/%d)", file_id, status, attempt, attempts)

            # No status field: assume ready.
            if not status or status == "processed":
                return
            if status == "failed":
                raise ProcessingFailed("File processing failed")

            if attempt < attempts:
                await self._sleep(self.config.poll_interval)

        raise ProcessingTimeout(f"File processing timeout after {attempts} status checks")

    async def request_inference(
        self, http: httpx.AsyncClient, file_part: dict, prompt: str
    ) -> dict:
        """Send the file reference and prompt to the Responses API."""
        log.info("Calling Ark model=%s", self.config.model)
        resp = await http.post(
            "/responses",
            json={
                "model": self.config.model,
                "input": [
                    {
                        "role": "user",
                        "content": [
                            file_part,
                            {"type": "input_text", "text": prompt},
                        ],
                    },
                ],
            },
        )
        if not resp.is_success:
            raise InferenceRequestFailed(
                f"Ark API request failed: {resp.status_code} {resp.text}",
                resp.status_code, resp.text,
            )

        body = resp.json()
        usage = body.get("usage") or {}
        if usage:
            log.info("Token usage: input=%s output=%s total=%s",
                     usage.get("input_tokens"), usage.get("output_tokens"),
                     usage.get("total_tokens"))
        return body


def _read_base64(file: BinaryIO) -> str:
    file.seek(0)
    return base64.b64encode(file.read()).decode("ascii")


async def _inline_file_part(file: BinaryIO, filename: str) -> dict:
    """Embed the PDF as a base64 ``data:`` URL instead of uploading it.

    Reading and encoding up to the inline ceiling runs in a worker thread.
    """
    encoded = await asyncio.to_thread(_read_base64, file)
    return {
        "type": "input_file",
        "file_data": f"data:{_PDF_MIME};base64,{encoded}",
        "filename": filename,
    }
