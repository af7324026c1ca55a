"""Gemini generateContent client: request body building, one POST, reply text extraction."""

from __future__ import annotations

import logging
import sys
from typing import Any, Literal, Sequence

import httpx
from pydantic import BaseModel, ConfigDict, ValidationError

from chat_config import ChatConfig

logger = logging.getLogger(__name__)

API_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
API_KEY_HEADER = "x-goog-api-key"

Role = Literal["user", "model"]


class Turn(BaseModel):
    """One message of a conversation."""

    model_config = ConfigDict(frozen=True)

    role: Role
    text: str


# --- Response payload; every level is optional so partial bodies decode ---
class _Part(BaseModel):
    text: str | None = None


class _Content(BaseModel):
    parts: list[_Part] = []


class _Candidate(BaseModel):
    content: _Content | None = None


class _GenerateContentResponse(BaseModel):
    candidates: list[_Candidate] = []


def endpoint_url(model: str) -> str:
    return f"{API_BASE_URL}/models/{model}:generateContent"


def build_request_body(turns: Sequence[Turn]) -> dict[str, Any]:
    """Build {"contents": [{role, parts: [{text}]}, ...]} in transcript order."""
    return {
        "contents": [
            {"role": turn.role, "parts": [{"text": turn.text}]}
            for turn in turns
        ]
    }


def extract_text(payload: Any) -> str | None:
    """Return candidates[0].content.parts[0].text, or None if any step is missing."""
    try:
        response = _GenerateContentResponse.model_validate(payload)
    except ValidationError as e:
        logger.debug("Unexpected response shape: %s", e)
        return None
    if not response.candidates:
        return None
    content = response.candidates[0].content
    if content is None or not content.parts:
        return None
    return content.parts[0].text


def _error_detail(response: httpx.Response) -> str:
    """Best-effort error.message from a Gemini error body."""
    try:
        data = response.json()
    except ValueError:
        return response.text.strip()
    if isinstance(data, dict) and isinstance(data.get("error"), dict):
        message = data["error"].get("message")
        if message:
            return str(message)
    return response.text.strip()


def _report(message: str) -> None:
    print(f"Error: {message}", file=sys.stderr, flush=True)


class GeminiClient:
    """
    Thin wrapper around the generateContent endpoint.
    Failures are reported on stderr and returned as None; nothing is retried.
    """

    def __init__(self, config: ChatConfig, http_client: httpx.Client | None = None):
        self._config = config
        self._owns_client = http_client is None
        self._client = http_client or httpx.Client(timeout=config.timeout)

    @property
    def model(self) -> str:
        return self._config.model

    def __enter__(self) -> GeminiClient:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def generate(self, turns: Sequence[Turn]) -> str | None:
        """Send the conversation and return the reply text, or None on any failure."""
        body = build_request_body(turns)
        url = endpoint_url(self._config.model)
        logger.debug("POST %s (%d turns)", url, len(body["contents"]))

        try:
            response = self._client.post(
                url,
                headers={API_KEY_HEADER: self._config.api_key},
                json=body,
                timeout=self._config.timeout,
            )
        except (httpx.HTTPError, httpx.InvalidURL, UnicodeError) as e:
            logger.warning("Request to %s failed: %s", self._config.model, e)
            _report(f"request failed: {e}")
            return None

        if response.is_error:
            detail = _error_detail(response)
            logger.warning("HTTP %s from %s: %s", response.status_code, self._config.model, detail)
            _report(f"HTTP {response.status_code}: {detail}")
            return None

        try:
            payload = response.json()
        except ValueError as e:
            logger.warning("Response is not JSON: %s", e)
            _report("response is not valid JSON")
            return None

        text = extract_text(payload)
        if text is None:
            logger.warning("Response has no candidate text")
            _report("response contained no text")
        return text
