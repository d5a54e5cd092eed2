from pydantic import BaseModel, Field
from typing import List, Literal, Optional

Role = Literal["system", "user", "assistant"]

SYSTEM_PROMPT = "You are a helpful assistant."


class ChatPayload(BaseModel):
    """Body of POST /chat."""
    prompt: Optional[str] = None
    model: Optional[str] = Field(None, description="model override, blank means default")
    images: Optional[List[str]] = Field(None, description="base64 encoded images")


class ChatMessage(BaseModel):
    role: Role
    content: str
    images: Optional[List[str]] = None


class ChatRequest(BaseModel):
    model: str
    messages: List[ChatMessage]
    stream: bool = False


class ResponseMessage(BaseModel):
    role: str = ""
    content: str = ""


class ChatResponse(BaseModel):
    model: str = ""
    created: int = 0
    message: ResponseMessage = Field(default_factory=ResponseMessage)
    done: bool = False


class ChatReply(BaseModel):
    reply: str
