# pbf_studio/services.py
import logging
from typing import List, Literal, Optional, Union

from google import genai
from google.genai import types
from pydantic import BaseModel, ConfigDict

from pbf_studio.config import IMAGE_MODEL_API_NAME
from pbf_studio.prompts import BLUEPRINT_INSTRUCTION, EDIT_IMAGE_INSTRUCTION, build_prompt_with_context
from pbf_studio.utils import DEFAULT_IMAGE_MIME, decode_data_url, is_data_url, to_data_url

logger = logging.getLogger(__name__)


# ====== SDK Init ======

def create_client(api_key: str) -> genai.Client:
    return genai.Client(api_key=api_key)


# ====== Errors ======

class ImageGenerationError(RuntimeError):
    status_code = 500

class NoCandidatesError(ImageGenerationError):
    def __init__(self):
        super().__init__("No image generated")

class NoImageInResponseError(ImageGenerationError):
    def __init__(self):
        super().__init__("No image in response")


# ====== Response parts ======

class TextPart(BaseModel):
    model_config = ConfigDict(frozen=True)
    kind: Literal["text"] = "text"
    text: str

class InlineImagePart(BaseModel):
    model_config = ConfigDict(frozen=True)
    kind: Literal["inline_image"] = "inline_image"
    mime_type: str
    data: bytes

ResponsePart = Union[TextPart, InlineImagePart]

class GeneratedImage(BaseModel):
    image: str
    text: str = ""


def parse_response_parts(response) -> List[ResponsePart]:
    """Validate a generate_content response into text and inline-image parts."""
    candidates = getattr(response, "candidates", None)
    if not candidates:
        raise NoCandidatesError()
    content = candidates[0].content
    raw_parts = (content.parts if content else None) or []

    parts: List[ResponsePart] = []
    for part in raw_parts:
        if getattr(part, "text", None):
            parts.append(TextPart(text=part.text))
        inline = getattr(part, "inline_data", None)
        if inline is not None and inline.data:
            parts.append(InlineImagePart(mime_type=inline.mime_type or DEFAULT_IMAGE_MIME, data=inline.data))
    return parts


# ====== Image generation ======

def build_image_parts(
    prompt: str,
    include_context: bool = True,
    custom_context: Optional[str] = None,
    edit_image: Optional[str] = None,
    reference_image: Optional[str] = None,
) -> List[types.Part]:
    """Assemble the user turn for the image model.

    An edit image takes precedence over a reference image. A reference that
    is not a data URL cannot be sent inline and is skipped. Any reference
    suppresses text-context injection so the blueprint is not contradicted.
    """
    final_prompt = build_prompt_with_context(prompt, include_context and not reference_image, custom_context)

    parts: List[types.Part] = []
    if edit_image:
        mime_type, data = decode_data_url(edit_image)
        parts.append(types.Part(text=EDIT_IMAGE_INSTRUCTION))
        parts.append(types.Part.from_bytes(data=data, mime_type=mime_type))
    elif is_data_url(reference_image):
        mime_type, data = decode_data_url(reference_image)
        parts.append(types.Part(text=BLUEPRINT_INSTRUCTION))
        parts.append(types.Part.from_bytes(data=data, mime_type=mime_type))

    parts.append(types.Part(text=final_prompt))
    return parts


def generate_image(
    client,
    prompt: str,
    include_context: bool = True,
    custom_context: Optional[str] = None,
    aspect_ratio: str = "16:9",
    image_size: str = "2K",
    edit_image: Optional[str] = None,
    reference_image: Optional[str] = None,
) -> GeneratedImage:
    parts = build_image_parts(prompt, include_context, custom_context, edit_image, reference_image)
    config = types.GenerateContentConfig(
        response_modalities=["TEXT", "IMAGE"],
        image_config=types.ImageConfig(aspect_ratio=aspect_ratio, image_size=image_size),
    )
    logger.info("Generating image with %s (aspect=%s, size=%s, edit=%s)",
                IMAGE_MODEL_API_NAME, aspect_ratio, image_size, bool(edit_image))
    response = client.models.generate_content(
        model=IMAGE_MODEL_API_NAME,
        contents=[types.Content(role="user", parts=parts)],
        config=config,
    )

    image: Optional[InlineImagePart] = None
    text = ""
    for part in parse_response_parts(response):
        if isinstance(part, TextPart):
            text = part.text
        else:
            image = part
    if image is None:
        raise NoImageInResponseError()
    return GeneratedImage(image=to_data_url(image.data, image.mime_type), text=text)
