from abc import ABC, abstractmethod

from ..schemas import ChatRequest, ChatResponse


class BackendError(Exception):
    """Any failure talking to the inference backend. str(err) is shown to the caller."""


class Provider(ABC):
    @abstractmethod
    async def chat(self, request: ChatRequest) -> ChatResponse:
        """
        Send one non-streaming chat request and return the full response.
        Raise BackendError on any failure.
        """
        raise NotImplementedError

    async def aclose(self) -> None:
        return None
