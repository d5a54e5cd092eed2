import httpx
from pydantic import ValidationError
from typing import Optional

from ..config import Settings
from ..schemas import ChatRequest, ChatResponse
from .base import BackendError, Provider
from .mock import MockProvider


class OllamaProvider(Provider):
    """
    Talks to an Ollama-compatible server:
    POST {BASE_URL}/api/chat
    with {model, messages, stream: false}
    and expects one JSON object carrying message.content.
    """
    def __init__(
        self,
        base_url: str,
        timeout: float,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        # one pooled client shared by every request
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)

    @property
    def chat_url(self) -> str:
        return f"{self.base_url}/api/chat"

    async def chat(self, request: ChatRequest) -> ChatResponse:
        url = self.chat_url
        payload = request.model_dump(exclude_none=True)

        try:
            r = await self._client.post(url, json=payload)
        except (httpx.HTTPError, httpx.InvalidURL, UnicodeEncodeError) as e:
            raise BackendError(f"POST {url}: {str(e) or type(e).__name__}") from e

        if r.status_code != 200:
            raise BackendError(f"response error for {url}: unexpected status: {r.status_code}")

        try:
            return ChatResponse.model_validate_json(r.content)
        except ValidationError as e:
            raise BackendError(f"decoding response from {url}: {e}") from e

    async def aclose(self) -> None:
        await self._client.aclose()


def build_provider(settings: Settings) -> Provider:
    if settings.provider == "ollama":
        return OllamaProvider(base_url=settings.base_url, timeout=settings.timeout)
    if settings.provider == "mock":
        return MockProvider()
    raise ValueError(f"unknown CHAT_PROVIDER {settings.provider!r}: use ollama or mock")
