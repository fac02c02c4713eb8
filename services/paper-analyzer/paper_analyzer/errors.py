"""Failure kinds raised while analysing a paper.

All of them are converted to the same fallback script at the
``AnalysisClient.analyze`` boundary; only the message differs.
"""

from __future__ import annotations

from typing import Optional


class AnalysisError(Exception):
    """Base class for every failure of the upload / poll / infer sequence."""


class SizeLimitExceeded(AnalysisError):
    pass


class HTTPStatusFailure(AnalysisError):
    """A backend call answered with a non-2xx status."""

    def __init__(self, message: str, status_code: int, body: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class UploadFailed(HTTPStatusFailure):
    pass


class StatusCheckFailed(HTTPStatusFailure):
    pass


class InferenceRequestFailed(HTTPStatusFailure):
    pass


class ProcessingFailed(AnalysisError):
    pass


class ProcessingTimeout(AnalysisError):
    pass


class EmptyResponse(AnalysisError):
    pass


class MalformedResponse(AnalysisError):
    pass
