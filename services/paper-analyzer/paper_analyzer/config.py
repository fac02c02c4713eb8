"""Connection settings for the ARK (Doubao) Files and Responses APIs.

Everything the client needs to reach the backend lives on one immutable
``ArkConfig`` value that is handed to ``AnalysisClient``.  ``from_env()``
builds the production value; tests construct it directly.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_BASE_URL = "https://ark.cn-beijing.volces.com/api/v3"
DEFAULT_MODEL_ID = "doubao-seed-1-6-251015"
API_KEY_PLACEHOLDER = "YOUR_ARK_API_KEY_HERE"

MAX_FILE_BYTES = 512 * 1024 * 1024
MAX_INLINE_BYTES = 50 * 1024 * 1024

UPLOAD_MODES = frozenset(["files", "inline"])


@dataclass(frozen=True)
class ArkConfig:
    api_key: str = API_KEY_PLACEHOLDER
    base_url: str = DEFAULT_BASE_URL
    model: str = DEFAULT_MODEL_ID
    upload_mode: str = "files"  # "files" | "inline"
    poll_interval: float = 2.0
    max_poll_attempts: int = 30
    max_file_bytes: int = MAX_FILE_BYTES
    inline_max_bytes: int = MAX_INLINE_BYTES
    request_timeout: float = 300.0

    def __post_init__(self) -> None:
        if self.upload_mode not in UPLOAD_MODES:
            raise ValueError(f"Invalid upload mode: {self.upload_mode}")

    @classmethod
    def from_env(cls) -> ArkConfig:
        """Read the credential and endpoint overrides from the environment.

        A missing ``ARK_API_KEY`` leaves the placeholder in place; the
        backend then rejects the calls and the failure surfaces through the
        normal fallback path.
        """
        return cls(
            api_key=os.getenv("ARK_API_KEY") or API_KEY_PLACEHOLDER,
            base_url=os.getenv("ARK_BASE_URL", DEFAULT_BASE_URL).rstrip("/"),
            model=os.getenv("ARK_MODEL_ID", DEFAULT_MODEL_ID),
            upload_mode=os.getenv("ARK_UPLOAD_MODE", "files"),
            request_timeout=float(os.getenv("ARK_REQUEST_TIMEOUT", "300")),
        )

    @property
    def has_credential(self) -> bool:
        return bool(self.api_key) and self.api_key != API_KEY_PLACEHOLDER
