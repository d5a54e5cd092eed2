from ..schemas import ChatRequest, ChatResponse, ResponseMessage
from .base import Provider


class MockProvider(Provider):
    async def chat(self, request: ChatRequest) -> ChatResponse:
        user_last = None
        for m in reversed(request.messages):
            if m.role == "user":
                user_last = m
                break

        content = user_last.content if user_last else ""
        images = len(user_last.images or []) if user_last else 0
        text = f"(mock) model {request.model} received: {content}"
        if images:
            text += f" [{images} image(s)]"
        return ChatResponse(
            model=request.model,
            message=ResponseMessage(role="assistant", content=text),
            done=True,
        )
