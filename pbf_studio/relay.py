# pbf_studio/relay.py
"""Streaming relay between the chat endpoint and the Gemini chat model.

The provider stream is re-framed as a line based event stream::

    data: {"text": "..."}\\n\\n     zero or more
    data: [DONE]\\n\\n              on success
    data: {"error": "..."}\\n\\n    on failure, instead of [DONE]

Exactly one terminal frame ends every stream.
"""
import json
import logging
from enum import Enum
from typing import AsyncIterator, Iterable, Iterator, List, Optional, Sequence, Tuple, Union

from google.genai import types
from pydantic import BaseModel, ConfigDict

from pbf_studio.models import ChatMessage

logger = logging.getLogger(__name__)

FIELD_PREFIX = "data: "
DONE_SENTINEL = "[DONE]"

OVERLOADED_MESSAGE = "Gemini API is overloaded. Please try again."
INVALID_KEY_MESSAGE = "Invalid API key."


# ====== Events ======

class TextEvent(BaseModel):
    model_config = ConfigDict(frozen=True)
    text: str

class ErrorEvent(BaseModel):
    model_config = ConfigDict(frozen=True)
    error: str

class DoneEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

StreamEvent = Union[TextEvent, ErrorEvent, DoneEvent]


def is_terminal(event: StreamEvent) -> bool:
    return isinstance(event, (DoneEvent, ErrorEvent))


def encode_event(event: StreamEvent) -> str:
    if isinstance(event, DoneEvent):
        payload = DONE_SENTINEL
    else:
        payload = json.dumps(event.model_dump(), ensure_ascii=False)
    return f"{FIELD_PREFIX}{payload}\n\n"


def decode_line(line: str) -> Optional[StreamEvent]:
    """Decode one framed line; anything malformed or unknown yields None."""
    line = line.rstrip("\r")
    if not line.startswith(FIELD_PREFIX):
        return None
    data = line[len(FIELD_PREFIX):]
    if data == DONE_SENTINEL:
        return DoneEvent()
    try:
        parsed = json.loads(data)
    except ValueError:
        return None
    if not isinstance(parsed, dict):
        return None
    if isinstance(parsed.get("error"), str):
        return ErrorEvent(error=parsed["error"])
    if isinstance(parsed.get("text"), str):
        return TextEvent(text=parsed["text"])
    return None


class EventStreamDecoder:
    """Incremental consumer-side decoder.

    Network chunks may split a frame anywhere, so the trailing partial line
    is buffered until the next chunk completes it. Events after the terminal
    one are ignored.
    """

    def __init__(self):
        self._buffer = ""
        self.finished = False

    def feed(self, chunk: str) -> List[StreamEvent]:
        self._buffer += chunk
        *lines, self._buffer = self._buffer.split("\n")
        return self._decode(lines)

    def close(self) -> List[StreamEvent]:
        rest, self._buffer = self._buffer, ""
        return self._decode([rest]) if rest else []

    def _decode(self, lines: Iterable[str]) -> List[StreamEvent]:
        events = []
        for line in lines:
            if self.finished:
                break
            event = decode_line(line)
            if event is None:
                continue
            events.append(event)
            self.finished = is_terminal(event)
        return events


def iter_events(chunks: Iterable[str]) -> Iterator[StreamEvent]:
    decoder = EventStreamDecoder()
    for chunk in chunks:
        yield from decoder.feed(chunk)
        if decoder.finished:
            return
    yield from decoder.close()


# ====== Errors ======

class RelayValidationError(ValueError):
    """Request rejected before anything is sent to the provider."""


def normalize_provider_error(exc: BaseException, fallback: str = "Failed to process chat") -> str:
    message = str(exc) or fallback
    lowered = message.lower()
    if "503" in message or "overload" in lowered:
        return OVERLOADED_MESSAGE
    if "401" in message or "invalid" in lowered:
        return INVALID_KEY_MESSAGE
    return message


def provider_error_status(exc: BaseException) -> int:
    code = getattr(exc, "code", None)
    if isinstance(code, int) and 400 <= code < 600:
        return code
    return 500


# ====== History ======

def validate_chat_request(api_key: Optional[str], messages: Optional[Sequence[ChatMessage]]) -> None:
    if not api_key:
        raise RelayValidationError("API key required")
    if not messages:
        raise RelayValidationError("Messages required")


def split_history(messages: Sequence[ChatMessage]) -> Tuple[List[ChatMessage], ChatMessage]:
    """Separate the new turn from the history sent with it.

    Gemini rejects a history that opens with a model turn, so everything
    before the first user message is dropped.
    """
    *previous, last = messages
    first_user = next((i for i, m in enumerate(previous) if m.role == "user"), len(previous))
    return list(previous[first_user:]), last


def to_gemini_content(message: ChatMessage) -> types.Content:
    role = "model" if message.role == "assistant" else "user"
    return types.Content(role=role, parts=[types.Part(text=message.content)])


# ====== Relay ======

class RelayState(str, Enum):
    IDLE = "idle"
    SENDING = "sending"
    STREAMING = "streaming"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class ChatRelay:
    """One chat turn against the provider, relayed as framed events.

    ``open()`` sends the turn and waits for the first chunk, so a request the
    provider rejects outright raises there and can still be answered with a
    JSON error. Anything that fails after that becomes a terminal error event.
    Closing the HTTP connection stops iteration and closes the provider stream.
    """

    def __init__(self, client, model: str, system_prompt: str):
        self.client = client
        self.model = model
        self.system_prompt = system_prompt
        self.state = RelayState.IDLE
        self._stream = None
        self._first = None

    async def open(self, messages: Sequence[ChatMessage]) -> None:
        if self.state is not RelayState.IDLE:
            raise RuntimeError(f"Relay already used (state={self.state.value})")
        self.state = RelayState.SENDING
        history, last = split_history(messages)
        try:
            chat = self.client.aio.chats.create(
                model=self.model,
                config=types.GenerateContentConfig(system_instruction=self.system_prompt),
                history=[to_gemini_content(m) for m in history],
            )
            self._stream = await chat.send_message_stream(last.content)
            try:
                self._first = await self._stream.__anext__()
            except StopAsyncIteration:
                self._first = None
        except Exception:
            self.state = RelayState.FAILED
            await self._close_stream()
            raise
        self.state = RelayState.STREAMING

    async def events(self) -> AsyncIterator[StreamEvent]:
        if self.state is not RelayState.STREAMING:
            raise RuntimeError("Relay is not streaming; call open() first")
        try:
            if self._first is not None:
                text = _chunk_text(self._first)
                self._first = None
                if text:
                    yield TextEvent(text=text)
                async for chunk in self._stream:
                    text = _chunk_text(chunk)
                    if text:
                        yield TextEvent(text=text)
        except Exception as e:
            logger.warning("Chat stream failed mid-response: %s", e)
            self.state = RelayState.FAILED
            yield ErrorEvent(error=normalize_provider_error(e, "Stream error"))
            return
        finally:
            await self._close_stream()
        self.state = RelayState.SUCCEEDED
        yield DoneEvent()

    async def frames(self) -> AsyncIterator[str]:
        async for event in self.events():
            yield encode_event(event)

    async def _close_stream(self) -> None:
        aclose = getattr(self._stream, "aclose", None)
        if aclose is not None:
            await aclose()


def _chunk_text(chunk) -> str:
    try:
        return chunk.text or ""
    except (ValueError, AttributeError):
        return ""
