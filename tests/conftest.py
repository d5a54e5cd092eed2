import asyncio

import pytest
from fastapi.testclient import TestClient

from ollama_gateway.config import Settings
from ollama_gateway.main import create_app
from ollama_gateway.providers.base import BackendError, Provider
from ollama_gateway.schemas import ChatResponse, ResponseMessage


class FakeProvider(Provider):
    """Records every request and answers with a canned reply or error."""

    def __init__(self, reply="hello there", error=None, delay=0.0):
        self.reply = reply
        self.error = error
        self.delay = delay
        self.requests = []
        self.closed = False
        self.cancelled = False

    async def chat(self, request):
        self.requests.append(request)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        if self.error is not None:
            raise BackendError(self.error)
        # model_construct so tests can hand back content pydantic would refuse
        return ChatResponse.model_construct(
            model=request.model,
            created=0,
            message=ResponseMessage.model_construct(role="assistant", content=self.reply),
            done=True,
        )

    async def aclose(self):
        self.closed = True


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def settings():
    return Settings.create(default_model="m1", timeout=5.0)


@pytest.fixture
def make_client(provider):
    def _make(settings=None, backend=None):
        app = create_app(settings or Settings.create(default_model="m1", timeout=5.0), backend or provider)
        return TestClient(app)
    return _make


@pytest.fixture
def client(make_client, settings):
    with make_client(settings) as c:
        yield c
