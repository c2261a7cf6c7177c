"""Best-effort recovery of a JSON object from free-form model output."""

from __future__ import annotations

import json
import re

from content_engine.exceptions import ExtractionParseError

_FENCE_OPEN = re.compile(r"^\s*```(?:json|JSON)?\s*", re.MULTILINE)
_FENCE_CLOSE = re.compile(r"\s*```\s*$", re.MULTILINE)


class JsonResponseParser:
    """Turns a provider response into a dict.

    Strategy: strip markdown code fences, try a direct parse, then retry on the
    outermost ``{...}`` span. Anything else raises ExtractionParseError and the
    caller decides the fallback.
    """

    def parse(self, response: str) -> dict:
        if not response or not response.strip():
            raise ExtractionParseError("Empty response")

        cleaned = self.strip_fences(response)
        data = self._try_load(cleaned)
        if data is None:
            span = self.outermost_object(cleaned)
            if span is not None:
                data = self._try_load(span)

        if data is None:
            raise ExtractionParseError("Response does not contain a JSON object")
        if not isinstance(data, dict):
            raise ExtractionParseError(f"Expected a JSON object, got {type(data).__name__}")
        return data

    @staticmethod
    def strip_fences(text: str) -> str:
        text = _FENCE_OPEN.sub("", text)
        text = _FENCE_CLOSE.sub("", text)
        return text.strip()

    @staticmethod
    def outermost_object(text: str) -> str | None:
        start = text.find("{")
        end = text.rfind("}")
        if start == -1 or end <= start:
            return None
        return text[start : end + 1]

    @staticmethod
    def _try_load(text: str):
        try:
            return json.loads(text)
        except json.JSONDecodeError:
            return None
