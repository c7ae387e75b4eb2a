"""Conversational shop assistant on top of the gateway's chat session."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Literal, Protocol

from .errors import GenerationError
from .gemini_client import ChatHandle
from .prompt import build_assistant_prompt


logger = logging.getLogger(__name__)

FALLBACK_REPLY = "Sorry, I encountered an error. Please try again."
GENERATION_TIP = (
    "I've started creating your product listings. A helpful tip for e-commerce is to use unique,"
    " high-quality images for each item to increase sales. I'm generating those for you now."
    " Have you thought about how you'll market these products once your store is live?"
)


class ChatGateway(Protocol):
    def open_chat_session(self, system_instruction: str | None = None) -> ChatHandle: ...

    async def send_chat_message(self, handle: ChatHandle, text: str) -> str: ...


@dataclass(frozen=True)
class ChatMessage:
    role: Literal["user", "model"]
    text: str


class ShopAssistant:
    """Keeps a chat transcript; failures become an apology in the transcript."""

    def __init__(self, gateway: ChatGateway, *, user_email: str | None = None, location: str | None = None) -> None:
        self.gateway = gateway
        self.user_email = user_email
        self._handle = gateway.open_chat_session(build_assistant_prompt(location))
        if user_email:
            greeting = f"Hi {user_email}! I'm your AI assistant. How can I help you grow your business today?"
        else:
            greeting = "Hi! I'm an AI assistant. How can I help you with your e-commerce business today?"
        self.messages: List[ChatMessage] = [ChatMessage("model", greeting)]
        self.busy = False

    async def send(self, text: str) -> str | None:
        text = text.strip()
        if not text or self.busy:
            return None
        self.messages.append(ChatMessage("user", text))
        self.busy = True
        try:
            reply = await self.gateway.send_chat_message(self._handle, text)
        except GenerationError as exc:
            logger.error("Chatbot error: %s", exc)
            reply = FALLBACK_REPLY
        finally:
            self.busy = False
        self.messages.append(ChatMessage("model", reply))
        return reply

    def push_proactive(self, text: str = GENERATION_TIP) -> None:
        self.messages.append(ChatMessage("model", text))


__all__ = ["ChatMessage", "FALLBACK_REPLY", "GENERATION_TIP", "ShopAssistant"]
