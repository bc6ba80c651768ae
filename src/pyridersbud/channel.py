"""Durable per-conversation chat channel built on a storage transport.

Each conversation (one per booking id) lives under a single key,
``chat_<conversationId>``, holding the full ordered message list. Appends are
read-modify-write of that list, so two contexts appending at the same time
race and the last write wins.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from pydantic import ValidationError

from pyridersbud._constants import CHAT_KEY_PREFIX
from pyridersbud._listeners import Unsubscribe
from pyridersbud.exceptions import RidersBudUsageError
from pyridersbud.models.chat import ChatMessage, ChatSender
from pyridersbud.transport.base import StorageChange, Transport, decode_json_list, encode_json

_logger = logging.getLogger(__name__)

HistoryHandler = Callable[[tuple[ChatMessage, ...]], None]


def chat_key(conversation_id: str) -> str:
    return f"{CHAT_KEY_PREFIX}{conversation_id}"


def conversation_id_from_key(key: str | None) -> str | None:
    """Return the conversation id for a ``chat_*`` key, else ``None``."""
    if not key or not key.startswith(CHAT_KEY_PREFIX):
        return None
    return key[len(CHAT_KEY_PREFIX) :] or None


def decode_history(raw: str | None, *, key: str = "") -> tuple[ChatMessage, ...]:
    """Decode a stored message list; invalid entries are skipped and logged."""
    messages: list[ChatMessage] = []
    for item in decode_json_list(raw, key=key, logger=_logger):
        try:
            messages.append(ChatMessage.model_validate(item))
        except ValidationError:
            _logger.warning("Skipping invalid chat message in key=%s", key, exc_info=True)
    return tuple(messages)


class Conversation:
    """Handle on one conversation's ordered, append-only message log."""

    def __init__(self, transport: Transport, conversation_id: str) -> None:
        if not conversation_id:
            raise RidersBudUsageError("conversation_id must be non-empty")
        self._transport = transport
        self._conversation_id = conversation_id
        self._key = chat_key(conversation_id)

    @property
    def conversation_id(self) -> str:
        return self._conversation_id

    @property
    def key(self) -> str:
        return self._key

    @property
    def history(self) -> tuple[ChatMessage, ...]:
        return decode_history(self._transport.read(self._key), key=self._key)

    def append(self, message: ChatMessage) -> tuple[ChatMessage, ...]:
        """Append *message*, persist the full history and broadcast it (writer included)."""
        updated = (*self.history, message)
        self._transport.write(self._key, encode_json([m.to_storage() for m in updated]))
        return updated

    def send(self, sender: ChatSender | str, text: str) -> ChatMessage | None:
        """Append a new message from *sender*; whitespace-only text is ignored."""
        if not text.strip():
            return None
        message = ChatMessage(sender=ChatSender(sender), text=text)
        self.append(message)
        return message

    def subscribe(self, on_change: HistoryHandler) -> Unsubscribe:
        """Deliver the full history every time this conversation's key changes."""

        def _handle(change: StorageChange) -> None:
            if change.key != self._key:
                return
            on_change(self.history)

        return self._transport.subscribe(_handle)


class ChatChannel:
    """Factory for conversation handles sharing one transport."""

    def __init__(self, transport: Transport) -> None:
        self._transport = transport

    def open(self, conversation_id: str) -> Conversation:
        return Conversation(self._transport, conversation_id)
