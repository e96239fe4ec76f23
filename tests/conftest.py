"""Pytest configuration and shared fixtures."""
import os
import shutil
import tempfile
from types import SimpleNamespace

# Storage paths are read at import time, so point them at a scratch dir first
_TMP_ROOT = tempfile.mkdtemp(prefix="pbf-studio-tests-")
os.environ["PBF_STUDIO_DB"] = os.path.join(_TMP_ROOT, "studio.sqlite")
os.environ["PBF_STUDIO_CONTEXT_ROOT"] = os.path.join(_TMP_ROOT, "contexts")
os.environ["PBF_STUDIO_STATIC_ROOT"] = os.path.join(_TMP_ROOT, "static")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlmodel import SQLModel  # noqa: E402

from pbf_studio import models  # noqa: E402,F401
from pbf_studio.config import CONTEXT_ROOT  # noqa: E402
from pbf_studio.database import engine  # noqa: E402


# ====== Fake Gemini client ======

class FakeStream:
    """Async iterator over chunks; an exception item is raised when reached."""

    def __init__(self, items):
        self._items = list(items)
        self.closed = False

    def __aiter__(self):
        return self

    async def __anext__(self):
        if not self._items:
            raise StopAsyncIteration
        item = self._items.pop(0)
        if isinstance(item, BaseException):
            raise item
        return SimpleNamespace(text=item)

    async def aclose(self):
        self.closed = True


class FakeChat:
    def __init__(self, client):
        self.client = client

    async def send_message_stream(self, message):
        self.client.sent.append(message)
        if self.client.send_error:
            raise self.client.send_error
        self.client.stream = FakeStream(self.client.chunks)
        return self.client.stream


class FakeChats:
    def __init__(self, client):
        self.client = client

    def create(self, **kwargs):
        self.client.chat_kwargs = kwargs
        return FakeChat(self.client)


class FakeModels:
    def __init__(self, client):
        self.client = client

    def generate_content(self, **kwargs):
        self.client.generate_calls.append(kwargs)
        if self.client.generate_error:
            raise self.client.generate_error
        return self.client.image_response


def image_response(parts):
    return SimpleNamespace(candidates=[SimpleNamespace(content=SimpleNamespace(parts=parts))])


def text_part(text):
    return SimpleNamespace(text=text, inline_data=None)


def image_part(data=b"\x89PNG-bytes", mime_type="image/png"):
    return SimpleNamespace(text=None, inline_data=SimpleNamespace(data=data, mime_type=mime_type))


class FakeGeminiClient:
    def __init__(self):
        self.chunks = ["Hello", " world"]
        self.send_error = None
        self.generate_error = None
        self.image_response = image_response([text_part("Rendered"), image_part()])
        self.sent = []
        self.chat_kwargs = None
        self.generate_calls = []
        self.stream = None
        self.aio = SimpleNamespace(chats=FakeChats(self))
        self.models = FakeModels(self)


@pytest.fixture
def fake_gemini():
    return FakeGeminiClient()


@pytest.fixture
def patched_gemini(monkeypatch, fake_gemini):
    """Route every create_client() call to the fake client."""
    from pbf_studio import services
    keys = []

    def create_client(api_key):
        keys.append(api_key)
        return fake_gemini

    monkeypatch.setattr(services, "create_client", create_client)
    fake_gemini.api_keys = keys
    return fake_gemini


# ====== Storage ======

@pytest.fixture
def studio():
    """Fresh database tables and an empty context directory."""
    SQLModel.metadata.drop_all(engine)
    SQLModel.metadata.create_all(engine)
    shutil.rmtree(CONTEXT_ROOT, ignore_errors=True)
    os.makedirs(CONTEXT_ROOT, exist_ok=True)
    yield
    shutil.rmtree(CONTEXT_ROOT, ignore_errors=True)
    os.makedirs(CONTEXT_ROOT, exist_ok=True)


@pytest.fixture
def api(studio):
    from pbf_studio.main import app
    with TestClient(app) as client:
        yield client


@pytest.fixture
def png_data_url():
    return "data:image/png;base64,iVBORw0KGgo="
