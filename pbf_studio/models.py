# pbf_studio/models.py
import time
import uuid
from datetime import datetime, timezone
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict
from pydantic import Field as BodyField
from sqlmodel import SQLModel, Field

def utcnow() -> datetime:
    return datetime.now(timezone.utc)

# Persisted client state: override store, image object store, state snapshot, blueprints

class ContextOverride(SQLModel, table=True):
    key: str = Field(primary_key=True)
    content: str
    updated_at: datetime = Field(default_factory=utcnow)

class StoredImage(SQLModel, table=True):
    id: str = Field(default_factory=lambda: uuid.uuid4().hex, primary_key=True)
    data: str
    timestamp: float = Field(default_factory=time.time, index=True)

class StudioState(SQLModel, table=True):
    id: int = Field(default=1, primary_key=True)
    api_key: str = Field(default="")
    messages: str = Field(default="[]")
    history: str = Field(default="[]")
    generated_image: Optional[str] = Field(default=None)
    mode: str = Field(default="chat")
    updated_at: datetime = Field(default_factory=utcnow)

class Blueprint(SQLModel, table=True):
    id: str = Field(default_factory=lambda: f"custom-{uuid.uuid4().hex[:12]}", primary_key=True)
    name: str
    url: str
    description: str = ""
    created_at: datetime = Field(default_factory=utcnow)


# ====== Request / response bodies ======

class _Body(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

class ChatMessage(_Body):
    role: Literal["user", "assistant"]
    content: str

class ChatRequest(_Body):
    messages: Optional[List[ChatMessage]] = None
    api_key: Optional[str] = BodyField(default=None, alias="apiKey")
    facility_specs: Optional[str] = BodyField(default=None, alias="facilitySpecs")
    design_guidelines: Optional[str] = BodyField(default=None, alias="designGuidelines")
    company_context: Optional[str] = BodyField(default=None, alias="companyContext")

class GenerateRequest(_Body):
    prompt: Optional[str] = None
    api_key: Optional[str] = BodyField(default=None, alias="apiKey")
    include_context: bool = BodyField(default=True, alias="includeContext")
    custom_context: Optional[str] = BodyField(default=None, alias="customContext")
    aspect_ratio: str = BodyField(default="16:9", alias="aspectRatio")
    image_size: str = BodyField(default="2K", alias="imageSize")
    edit_image: Optional[str] = BodyField(default=None, alias="editImage")
    reference_image: Optional[str] = BodyField(default=None, alias="referenceImage")

class ContentWrite(_Body):
    # Typed loosely so the route can answer non-string payloads with its own message
    content: Any = None

class PromptExtractRequest(_Body):
    content: str = ""

class StateSnapshot(_Body):
    api_key: str = BodyField(default="", alias="apiKey")
    messages: List[ChatMessage] = BodyField(default_factory=list)
    history: List[str] = BodyField(default_factory=list)
    generated_image: Optional[str] = BodyField(default=None, alias="generatedImage")
    mode: Literal["chat", "direct"] = "chat"

class BlueprintUpload(_Body):
    image: str
    name: str = ""
    description: str = ""
    filename: str = ""

class ImageWrite(_Body):
    data: str
