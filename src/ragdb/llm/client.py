"""Chat-completion client (OpenAI-compatible wire format) over httpx.

Failures never raise to the caller: transport errors, non-2xx statuses and
unusable bodies are turned into placeholder reply strings, so a caller can
only tell them apart from a real answer by inspecting the text.
"""
import logging
from typing import Any

import httpx

from ragdb.config import LLM_API_KEY, LLM_API_URL, LLM_MODEL, LLM_TIMEOUT

logger = logging.getLogger(__name__)

NO_REPLY = "AI 没能给出回复"
NETWORK_ERROR_PREFIX = "网络错误: "
HTTP_ERROR_PREFIX = "请求失败: "

_ALLOWED_SCHEMES = ("http", "https")


def build_request_body(model: str, prompt: str) -> dict[str, Any]:
    return {"model": model, "messages": [{"role": "user", "content": prompt}]}


def extract_reply(payload: Any) -> str:
    """Return ``choices[0].message.content`` from a response body, or NO_REPLY."""
    if not isinstance(payload, dict):
        return NO_REPLY
    choices = payload.get("choices")
    if not isinstance(choices, list) or not choices:
        return NO_REPLY
    first = choices[0]
    message = first.get("message") if isinstance(first, dict) else None
    content = message.get("content") if isinstance(message, dict) else None
    if not isinstance(content, str):
        return NO_REPLY
    return content


class CompletionClient:
    """Send one user message to a chat-completion endpoint and return the reply text.

    Pass *http_client* to reuse a connection pool or to inject a transport in
    tests; otherwise a client is created per call with *timeout* seconds.
    """

    def __init__(
        self,
        api_key: str = LLM_API_KEY,
        api_url: str = LLM_API_URL,
        model: str = LLM_MODEL,
        timeout: float = LLM_TIMEOUT,
        http_client: httpx.Client | None = None,
    ) -> None:
        scheme = (httpx.URL(api_url).scheme or "").lower()
        if scheme not in _ALLOWED_SCHEMES:
            raise ValueError(
                f"Completion URL scheme '{scheme or '(empty)'}' not allowed; "
                f"only {', '.join(_ALLOWED_SCHEMES)} permitted"
            )
        self._api_key = api_key
        self.api_url = api_url
        self.model = model
        self.timeout = timeout
        self._http_client = http_client

    def __repr__(self) -> str:
        return (
            f"CompletionClient(api_url={self.api_url!r}, model={self.model!r}, "
            f"api_key={'***' if self._api_key else ''!r})"
        )

    def _headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self._api_key}",
        }

    def _post(self, client: httpx.Client, body: dict[str, Any]) -> httpx.Response:
        return client.post(self.api_url, json=body, headers=self._headers())

    def complete(self, prompt: str) -> str:
        body = build_request_body(self.model, prompt)
        if not self._api_key:
            logger.warning("LLM_API_KEY is not set; the completion request will likely be rejected")
        try:
            if self._http_client is not None:
                response = self._post(self._http_client, body)
            else:
                with httpx.Client(timeout=self.timeout) as client:
                    response = self._post(client, body)
        except httpx.HTTPError as e:
            logger.warning("Completion request to %s failed: %s", self.api_url, e)
            return f"{NETWORK_ERROR_PREFIX}{e}"

        if response.is_error:
            logger.warning(
                "Completion endpoint %s returned HTTP %d", self.api_url, response.status_code
            )
            return f"{HTTP_ERROR_PREFIX}HTTP {response.status_code}"

        try:
            payload = response.json()
        except ValueError:
            logger.warning("Completion endpoint %s returned a non-JSON body", self.api_url)
            return NO_REPLY
        return extract_reply(payload)
