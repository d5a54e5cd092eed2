import json
import logging
from contextlib import asynccontextmanager
from typing import Optional

import anyio
import anyio.abc
from fastapi import FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.responses import PlainTextResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import Settings
from .errors import GatewayError, InvalidPayload, MethodNotAllowed, MissingPrompt, ModelNotAllowed
from .providers.base import BackendError, Provider
from .providers.ollama import build_provider
from .schemas import SYSTEM_PROMPT, ChatMessage, ChatPayload, ChatReply, ChatRequest, ChatResponse

logger = logging.getLogger(__name__)

# JSON insignificant whitespace
JSON_WS = " \t\r\n"

_decoder = json.JSONDecoder()


def text_error(message: str, status_code: int) -> PlainTextResponse:
    return PlainTextResponse(
        message + "\n",
        status_code=status_code,
        headers={"X-Content-Type-Options": "nosniff"},
    )


def parse_payload(body: bytes) -> ChatPayload:
    """Decode exactly one JSON object; anything but whitespace after it is rejected."""
    try:
        text = body.decode("utf-8").lstrip(JSON_WS)
        value, end = _decoder.raw_decode(text)
    except (UnicodeDecodeError, ValueError) as e:
        raise InvalidPayload() from e
    if text[end:].strip(JSON_WS):
        raise InvalidPayload()

    if value is None:
        value = {}
    if not isinstance(value, dict):
        raise InvalidPayload()
    try:
        return ChatPayload.model_validate(value)
    except ValueError as e:
        raise InvalidPayload() from e


def resolve_model(requested: Optional[str], settings: Settings) -> str:
    model = settings.default_model
    trimmed = (requested or "").strip()
    if trimmed:
        model = trimmed
    if not settings.is_allowed(model):
        raise ModelNotAllowed(settings.allowed_models)
    return model


def build_chat_request(payload: ChatPayload, model: str) -> ChatRequest:
    return ChatRequest(
        model=model,
        stream=False,
        messages=[
            ChatMessage(role="system", content=SYSTEM_PROMPT),
            ChatMessage(role="user", content=payload.prompt, images=payload.images or None),
        ],
    )


async def wait_for_disconnect(request: Request) -> None:
    # the body is already read, so the next message can only be the disconnect
    while True:
        message = await request.receive()
        if message["type"] == "http.disconnect":
            return


async def call_backend(request: Request, provider: Provider, chat_request: ChatRequest, timeout: float) -> ChatResponse:
    """Run the provider call until it finishes, the timeout expires, or the caller goes away."""
    outcome = {}

    async def run_call(tg: anyio.abc.TaskGroup) -> None:
        try:
            outcome["response"] = await provider.chat(chat_request)
        except BackendError as e:
            outcome["error"] = e
        tg.cancel_scope.cancel()

    async def watch_disconnect(tg: anyio.abc.TaskGroup) -> None:
        await wait_for_disconnect(request)
        outcome["error"] = BackendError("request cancelled by client")
        tg.cancel_scope.cancel()

    with anyio.move_on_after(timeout):
        async with anyio.create_task_group() as tg:
            tg.start_soon(run_call, tg)
            tg.start_soon(watch_disconnect, tg)

    if "response" in outcome:
        return outcome["response"]
    if "error" in outcome:
        raise outcome["error"]
    raise BackendError(f"backend request timed out after {timeout:g}s")


def create_app(settings: Optional[Settings] = None, provider: Optional[Provider] = None) -> FastAPI:
    settings = settings or Settings.from_env()
    provider = provider or build_provider(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await provider.aclose()

    app = FastAPI(title="Ollama Chat Gateway", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.provider = provider

    @app.exception_handler(GatewayError)
    async def gateway_error(request: Request, exc: GatewayError):
        return text_error(exc.message, exc.status_code)

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        # routing rejects non-POST /chat before the endpoint runs
        if exc.status_code == 405:
            return text_error(MethodNotAllowed.message, 405)
        return await http_exception_handler(request, exc)

    @app.get("/healthz")
    def healthz():
        return PlainTextResponse("ok")

    @app.post("/chat", responses={200: {"model": ChatReply}})
    async def chat(request: Request):
        payload = parse_payload(await request.body())
        if not (payload.prompt or "").strip():
            raise MissingPrompt()

        model = resolve_model(payload.model, settings)
        chat_request = build_chat_request(payload, model)

        try:
            resp = await call_backend(request, provider, chat_request, settings.timeout)
        except BackendError as e:
            logger.warning("chat request failed: %s", e)
            return text_error(str(e), 502)

        reply = {"reply": resp.message.content}
        try:
            data = (json.dumps(reply, ensure_ascii=False, separators=(",", ":")) + "\n").encode("utf-8")
        except (TypeError, ValueError):
            logger.exception("failed to encode chat response")
            return text_error("failed to encode response", 500)

        return Response(content=data, media_type="application/json")

    return app
