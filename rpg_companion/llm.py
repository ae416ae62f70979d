"""Generation collaborators: protocols and HTTP clients.

The router never talks to a model directly. It is handed collaborators
matching these protocols:

    ConnectionManager   managed path, named connection profiles,
                        send_request(profile_id, messages, max_tokens)
    ExternalGenerator   legacy "external" mode, chat messages in, text out
    RawGenerator        legacy internal mode, flat prompt in, text out
    PresetManager       the active sampler preset (token limits)

HTTP implementations provided here:

    ExternalApiClient       OpenAI-compatible POST {base_url}/chat/completions
    KoboldGenerator         KoboldCpp POST {provider_url}/api/v1/generate
    ConnectionProfiles      ConnectionManager over settings.llm_connections
    SettingsPresetManager   PresetManager reading settings.active_preset

Tests substitute AsyncMock collaborators instead.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any, Protocol

import httpx

from rpg_companion.models import LLMConnection, Message
from rpg_companion.storage import SettingsStore

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Protocols
# ---------------------------------------------------------------------------

class ConnectionManager(Protocol):
    @property
    def profiles(self) -> Sequence[Any] | None: ...

    async def send_request(
        self, profile_id: str, messages: list[Message], max_tokens: int
    ) -> Any: ...


class ExternalGenerator(Protocol):
    async def __call__(
        self,
        messages: list[Message],
        *,
        max_tokens: int,
        stop: list[str] | None = None,
        temperature: float | None = None,
    ) -> str: ...


class RawGenerator(Protocol):
    async def __call__(
        self,
        *,
        prompt: str,
        response_length: int,
        stop_sequence: list[str] | None = None,
        use_separate_preset: bool = False,
        quiet_to_loud: bool = False,
    ) -> str: ...


class PresetManager(Protocol):
    def get_selected_preset(self) -> dict | None: ...


# ---------------------------------------------------------------------------
# LLMError: raised by the HTTP clients for all connection and protocol failures
# ---------------------------------------------------------------------------

class LLMError(RuntimeError):
    """Raised when a generation backend cannot be reached or returns an error."""


async def _post_json(
    url: str, body: dict, headers: dict[str, str], timeout: float
) -> httpx.Response:
    try:
        async with httpx.AsyncClient(timeout=timeout) as client:
            resp = await client.post(url, json=body, headers=headers)
            resp.raise_for_status()
    except httpx.ConnectError as e:
        raise LLMError(f"Cannot connect to LLM backend at {url}") from e
    except httpx.HTTPStatusError as e:
        raise LLMError(_error_detail(e.response)) from e
    except httpx.TimeoutException as e:
        raise LLMError(f"LLM backend timed out after {timeout}s") from e
    return resp


def _error_detail(resp: httpx.Response) -> str:
    """Best-effort error message from an error response body."""
    message = f"LLM backend returned HTTP {resp.status_code}"
    try:
        data = resp.json()
    except ValueError:
        text = getattr(resp, "text", "") or ""
        if isinstance(text, str) and text and len(text) < 200:
            message = f"{message}: {text}"
        return message
    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict) and error.get("message"):
            message = f"{message}: {error['message']}"
    return message


# ---------------------------------------------------------------------------
# ExternalApiClient: OpenAI-compatible chat completions
# ---------------------------------------------------------------------------

class ExternalApiClient:
    """Async client for OpenAI-compatible chat completion endpoints.

    Args:
        base_url:    API root, e.g. "https://api.openai.com/v1".
        api_key:     Bearer token. Read from the environment, never from settings.
        model:       Model identifier.
        max_tokens:  Used when the caller passes no max_tokens.
        temperature: Used when the caller passes no temperature.
        timeout:     HTTP timeout in seconds.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        model: str,
        max_tokens: int = 2048,
        temperature: float = 0.7,
        timeout: float = 120.0,
    ) -> None:
        self._base_url = base_url.strip().rstrip("/")
        self._api_key = api_key.strip()
        self._model = model.strip()
        self._max_tokens = max_tokens
        self._temperature = temperature
        self._timeout = timeout

    def _check_config(self) -> None:
        if not self._base_url:
            raise LLMError("External API base URL is not configured")
        if not self._api_key:
            raise LLMError("External API key is not configured")
        if not self._model:
            raise LLMError("External API model is not configured")

    def _build_body(
        self,
        messages: list[Message],
        max_tokens: int | None,
        stop: list[str] | None,
        temperature: float | None,
    ) -> dict:
        body: dict = {
            "model": self._model,
            "messages": [m.model_dump() for m in messages],
            "max_tokens": max_tokens or self._max_tokens,
            "temperature": self._temperature if temperature is None else temperature,
        }
        if stop:
            body["stop"] = stop
        return body

    def _parse_response(self, data: Any) -> str:
        choices = data.get("choices") if isinstance(data, dict) else None
        if not choices or not isinstance(choices[0], dict) or "message" not in choices[0]:
            raise LLMError("Unexpected response format from external API")
        return choices[0]["message"].get("content") or ""

    async def __call__(
        self,
        messages: list[Message],
        *,
        max_tokens: int | None = None,
        stop: list[str] | None = None,
        temperature: float | None = None,
    ) -> str:
        self._check_config()
        url = f"{self._base_url}/chat/completions"
        body = self._build_body(messages, max_tokens, stop, temperature)
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self._api_key}",
        }
        logger.debug("external call url=%s model=%s messages=%d", url, self._model, len(messages))
        resp = await _post_json(url, body, headers, self._timeout)
        text = self._parse_response(resp.json())
        logger.debug("external response len=%d", len(text))
        return text


# ---------------------------------------------------------------------------
# KoboldGenerator: raw text completion for the internal path
# ---------------------------------------------------------------------------

class KoboldGenerator:
    """KoboldCpp text completion.

    POST /api/v1/generate  {"prompt": ..., "max_length": ..., "stop_sequence": [...]}
    Response: {"results": [{"text": "..."}]}
    """

    def __init__(self, provider_url: str, api_key: str = "", timeout: float = 120.0) -> None:
        self._base_url = provider_url.rstrip("/")
        self._api_key = api_key
        self._timeout = timeout

    def _headers(self) -> dict[str, str]:
        headers: dict[str, str] = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    async def __call__(
        self,
        *,
        prompt: str,
        response_length: int,
        stop_sequence: list[str] | None = None,
        use_separate_preset: bool = False,
        quiet_to_loud: bool = False,
    ) -> str:
        url = f"{self._base_url}/api/v1/generate"
        body: dict = {"prompt": prompt, "max_length": response_length}
        if stop_sequence:
            body["stop_sequence"] = stop_sequence
        logger.debug("kobold call url=%s prompt_len=%d", url, len(prompt))

        resp = await _post_json(url, body, self._headers(), self._timeout)
        data = resp.json()
        results = data.get("results") if isinstance(data, dict) else None
        if not results or "text" not in results[0]:
            raise LLMError("Unexpected response format from KoboldCpp backend")
        return results[0]["text"]


# ---------------------------------------------------------------------------
# ConnectionProfiles: managed path over configured connections
# ---------------------------------------------------------------------------

class ConnectionProfiles:
    """ConnectionManager backed by the llm_connections list in settings."""

    def __init__(self, connections: list[LLMConnection], timeout: float = 120.0) -> None:
        self._connections = list(connections)
        self._timeout = timeout

    @property
    def profiles(self) -> list[LLMConnection]:
        return self._connections

    async def send_request(
        self, profile_id: str, messages: list[Message], max_tokens: int
    ) -> str:
        for conn in self._connections:
            if conn.id == profile_id:
                break
        else:
            raise LLMError(f"Unknown connection profile: {profile_id}")
        client = ExternalApiClient(
            base_url=conn.api_url,
            api_key=conn.api_key,
            model=conn.model,
            timeout=self._timeout,
        )
        return await client(messages, max_tokens=max_tokens)


class SettingsPresetManager:
    """PresetManager returning the preset stored in settings.active_preset."""

    def __init__(self, store: SettingsStore) -> None:
        self._store = store

    def get_selected_preset(self) -> dict | None:
        return self._store.settings.active_preset
