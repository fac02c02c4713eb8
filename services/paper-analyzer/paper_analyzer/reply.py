"""Turning a Responses API body into an ``AnalysisResult``.

Three steps, each raising on failure so the caller can fall back:
collect the text fragments, decode the (possibly fenced) JSON, and check
its shape.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Optional

from .errors import EmptyResponse, MalformedResponse
from .models import ALLOWED_EMOTIONS, AnalysisResult, DialogueLine

log = logging.getLogger(__name__)

DEFAULT_SPEAKER = "丛雨"

_FENCE_JSON_OPEN = re.compile(r"^```json\n?")
_FENCE_OPEN = re.compile(r"^```\n?")
_FENCE_CLOSE = re.compile(r"\n?```$")


def extract_text(body: dict) -> str:
    """Concatenate every ``text`` fragment of every output block, in order."""
    parts: list[str] = []
    for block in body.get("output") or []:
        if not isinstance(block, dict):
            continue
        for content in block.get("content") or []:
            if not isinstance(content, dict):
                continue
            if content.get("type") == "text" and content.get("text"):
                parts.append(content["text"])

    text = "".join(parts)
    if not text:
        raise EmptyResponse("No response text from Ark API")
    return text


def strip_code_fence(text: str) -> str:
    """Remove a surrounding ```json ... ``` or ``` ... ``` wrapper, if any."""
    text = text.strip()
    if text.startswith("```json"):
        text = _FENCE_CLOSE.sub("", _FENCE_JSON_OPEN.sub("", text, count=1), count=1)
    elif text.startswith("```"):
        text = _FENCE_CLOSE.sub("", _FENCE_OPEN.sub("", text, count=1), count=1)
    return text


def decode_reply(text: str) -> object:
    try:
        return json.loads(strip_code_fence(text))
    except json.JSONDecodeError as e:
        log.error("Model returned invalid JSON: %s", text[:500])
        raise MalformedResponse(f"Model returned invalid JSON: {e}") from e


def validate_script(data: object) -> AnalysisResult:
    """Check the decoded reply and build the result.

    The reply must be an object with a non-empty ``title`` and an array
    ``script``; nothing else fails it.  Entries degrade instead: a missing
    speaker becomes the narrator, an unknown emotion becomes ``normal``,
    and entries without usable text are dropped.
    """
    if not isinstance(data, dict):
        raise MalformedResponse("Invalid response structure from Ark API: not an object")

    title = data.get("title")
    script = data.get("script")
    if not title or not isinstance(script, list):
        raise MalformedResponse("Invalid response structure from Ark API")

    lines = []
    for index, entry in enumerate(script):
        line = _parse_line(index, entry)
        if line is not None:
            lines.append(line)
    return AnalysisResult(title=str(title), script=lines)


def _parse_line(index: int, entry: object) -> Optional[DialogueLine]:
    if not isinstance(entry, dict):
        log.warning("Skipping script entry %d: not an object", index)
        return None

    text = entry.get("text")
    if not isinstance(text, str) or not text:
        log.warning("Skipping script entry %d: no text", index)
        return None

    speaker = entry.get("speaker")
    if not isinstance(speaker, str) or not speaker:
        log.warning("Missing speaker at line %d, using %r", index, DEFAULT_SPEAKER)
        speaker = DEFAULT_SPEAKER

    emotion = entry.get("emotion")
    if not isinstance(emotion, str) or emotion not in ALLOWED_EMOTIONS:
        log.warning("Unknown emotion %r at line %d, using 'normal'", emotion, index)
        emotion = "normal"

    note = entry.get("note")
    if not isinstance(note, str) or not note:
        note = None

    return DialogueLine(speaker=speaker, text=text, emotion=emotion, note=note)


def parse_reply(body: dict) -> AnalysisResult:
    """Full reply pipeline: extract, decode, validate."""
    text = extract_text(body)
    log.info("Ark responded (%d chars)", len(text))
    return validate_script(decode_reply(text))
