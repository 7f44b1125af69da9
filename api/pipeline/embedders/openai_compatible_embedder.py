"""OpenAI-compatible HTTP embedders.

Both the remote provider and the local embedding server speak the same
wire contract:

    POST {endpoint}/embeddings
    {"input": ["text", ...], "model": "text-embedding-3-small"}

    {"data": [{"index": 0, "embedding": [...]}, ...],
     "usage": {"prompt_tokens": 8, "total_tokens": 8}}

RemoteEmbedder authenticates with a bearer key and accounts usage.
LocalEmbedder sends no credentials and reports zero usage.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from domain_models import EmbeddingResult
from errors import ProviderError
from pipeline.interfaces.embedder import EmbedderInterface

logger = logging.getLogger(__name__)


class OpenAICompatibleEmbedder(EmbedderInterface):
    """Shared request/response handling for /embeddings endpoints.

    The httpx client is injected so the caller controls its lifetime,
    timeouts and (in tests) transport.
    """

    def __init__(self, client: httpx.AsyncClient, endpoint: str,
                 model: Optional[str] = None, api_key: Optional[str] = None):
        self.client = client
        self.endpoint = endpoint.rstrip("/")
        self._model = model
        self._api_key = api_key

    @property
    def model_name(self) -> str:
        return self._model or "server-default"

    @property
    def url(self) -> str:
        return f"{self.endpoint}/embeddings"

    async def embed(self, texts: List[str]) -> EmbeddingResult:
        if not texts:
            return EmbeddingResult()

        payload: Dict[str, Any] = {"input": list(texts)}
        if self._model:
            payload["model"] = self._model

        response = await self._post(payload)
        body = self._parse_body(response)
        vectors = self._extract_vectors(body, expected=len(texts))
        tokens = self._extract_usage(body) if self.tracks_usage else 0
        logger.debug(f"Embedded {len(texts)} texts with {self.model_name} ({tokens} tokens)")
        return EmbeddingResult(vectors=vectors, total_tokens=tokens)

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    async def _post(self, payload: Dict[str, Any]) -> httpx.Response:
        try:
            response = await self.client.post(self.url, json=payload, headers=self._headers())
        except httpx.TimeoutException as e:
            raise ProviderError("timeout", f"Request to {self.url} timed out") from e
        except httpx.HTTPError as e:
            raise ProviderError("network", f"Request to {self.url} failed: {e}") from e

        if response.status_code >= 400:
            raise self._status_error(response)
        return response

    def _status_error(self, response: httpx.Response) -> ProviderError:
        status = response.status_code
        detail = _error_detail(response)
        if status in (401, 403):
            return ProviderError("auth", f"Authentication failed ({status}): {detail}", status)
        if status == 429:
            return ProviderError(
                "rate_limit", f"Rate limited: {detail}", status,
                retry_after=_retry_after(response),
            )
        if status >= 500:
            return ProviderError("server", f"Provider error ({status}): {detail}", status)
        return ProviderError("bad_request", f"Request rejected ({status}): {detail}", status)

    def _parse_body(self, response: httpx.Response) -> Dict[str, Any]:
        try:
            body = response.json()
        except ValueError as e:
            raise ProviderError("malformed_response", "Response is not JSON") from e
        if not isinstance(body, dict):
            raise ProviderError("malformed_response", "Response is not a JSON object")
        return body

    def _extract_vectors(self, body: Dict[str, Any], expected: int) -> List[List[float]]:
        data = body.get("data")
        if not isinstance(data, list) or len(data) != expected:
            got = len(data) if isinstance(data, list) else "no"
            raise ProviderError(
                "malformed_response", f"Expected {expected} embeddings, got {got}"
            )
        try:
            ordered = sorted(data, key=lambda item: item.get("index", 0))
            vectors = [[float(x) for x in item["embedding"]] for item in ordered]
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise ProviderError("malformed_response", f"Invalid embedding entry: {e}") from e

        if any(not vector for vector in vectors):
            raise ProviderError("malformed_response", "Provider returned an empty embedding")
        return vectors

    def _extract_usage(self, body: Dict[str, Any]) -> int:
        usage = body.get("usage") or {}
        tokens = usage.get("total_tokens", usage.get("prompt_tokens", 0))
        if not isinstance(tokens, int) or isinstance(tokens, bool) or tokens < 0:
            raise ProviderError("malformed_response", f"Invalid token usage: {tokens!r}")
        return tokens


class RemoteEmbedder(OpenAICompatibleEmbedder):
    """Remote OpenAI-compatible provider (API key required, usage accounted)"""

    def __init__(self, client: httpx.AsyncClient, endpoint: str, model: str, api_key: str):
        super().__init__(client, endpoint, model=model, api_key=api_key)

    @property
    def tracks_usage(self) -> bool:
        return True


class LocalEmbedder(OpenAICompatibleEmbedder):
    """Locally reachable embedding server (e.g. Ollama's /v1 API).

    No credentials are sent and no tokens are accounted.
    """

    def __init__(self, client: httpx.AsyncClient, endpoint: str, model: Optional[str] = None):
        super().__init__(client, endpoint, model=model, api_key=None)


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:200] or response.reason_phrase
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str):
            return error
    return str(body)[:200]


def _retry_after(response: httpx.Response) -> Optional[float]:
    value = response.headers.get("retry-after")
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        return None
