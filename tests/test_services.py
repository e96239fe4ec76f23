"""Unit tests for image generation request assembly and response parsing."""
from types import SimpleNamespace

import pytest

from conftest import image_part, image_response, text_part
from pbf_studio.context import DEFAULT_FACILITY_SPECS
from pbf_studio.prompts import BLUEPRINT_INSTRUCTION, EDIT_IMAGE_INSTRUCTION
from pbf_studio.services import (
    InlineImagePart,
    NoCandidatesError,
    NoImageInResponseError,
    TextPart,
    build_image_parts,
    generate_image,
    parse_response_parts,
)

JPEG_DATA_URL = "data:image/jpeg;base64,/9j/4AAQ"


class TestBuildImageParts:
    """Tests for build_image_parts."""

    def test_plain_prompt_with_context(self):
        """Test a fresh generation with the default facility context."""
        parts = build_image_parts("aerial view")

        assert len(parts) == 1
        assert parts[0].text.startswith("aerial view")
        assert DEFAULT_FACILITY_SPECS in parts[0].text

    def test_context_disabled(self):
        """Test that the prompt is sent untouched without context."""
        parts = build_image_parts("aerial view", include_context=False, custom_context="ignored")
        assert [p.text for p in parts] == ["aerial view"]

    def test_data_url_reference_adds_inline_image(self):
        """Test that a data-URL blueprint is sent inline with its MIME type."""
        parts = build_image_parts("interior", custom_context="specs", reference_image=JPEG_DATA_URL)

        assert parts[0].text == BLUEPRINT_INSTRUCTION
        assert parts[1].inline_data.mime_type == "image/jpeg"
        assert parts[1].inline_data.data == b"\xff\xd8\xff\xe0\x00\x10"
        assert parts[2].text == "interior"

    def test_external_url_reference_skipped(self):
        """Test that a non-data URL adds no image part and still suppresses context."""
        parts = build_image_parts("interior", custom_context="specs",
                                  reference_image="/static/blueprints/quarantine-plan.jpg")

        assert len(parts) == 1
        assert parts[0].inline_data is None
        assert parts[0].text == "interior"

    def test_edit_image_takes_precedence(self, png_data_url):
        """Test that an edit image wins over a reference image."""
        parts = build_image_parts("add workers", include_context=False,
                                  edit_image=png_data_url, reference_image=JPEG_DATA_URL)

        assert parts[0].text == EDIT_IMAGE_INSTRUCTION
        assert parts[1].inline_data.mime_type == "image/png"
        assert parts[2].text == "add workers"
        assert len(parts) == 3

    def test_invalid_edit_image(self):
        """Test that a broken data URL is a ValueError."""
        with pytest.raises(ValueError):
            build_image_parts("x", edit_image="data:image/png;base64,@@@")


class TestParseResponseParts:
    """Tests for parse_response_parts."""

    def test_tagged_parts(self):
        """Test conversion into text and inline-image parts."""
        parts = parse_response_parts(image_response([text_part("Here you go"), image_part(b"img", "image/webp")]))
        assert parts == [TextPart(text="Here you go"), InlineImagePart(mime_type="image/webp", data=b"img")]

    def test_no_candidates(self):
        """Test that a reply without candidates is rejected."""
        with pytest.raises(NoCandidatesError, match="No image generated"):
            parse_response_parts(SimpleNamespace(candidates=[]))
        with pytest.raises(NoCandidatesError):
            parse_response_parts(SimpleNamespace(candidates=None))

    def test_empty_content(self):
        """Test that a candidate without content yields no parts."""
        assert parse_response_parts(SimpleNamespace(candidates=[SimpleNamespace(content=None)])) == []


class TestGenerateImage:
    """Tests for generate_image against a fake client."""

    def test_returns_data_url_and_text(self, fake_gemini):
        """Test a successful generation."""
        result = generate_image(fake_gemini, "aerial", aspect_ratio="1:1", image_size="4K")

        assert result.image == "data:image/png;base64,iVBORy1ieXRlcw=="
        assert result.text == "Rendered"
        call = fake_gemini.generate_calls[0]
        assert call["config"].image_config.aspect_ratio == "1:1"
        assert call["config"].image_config.image_size == "4K"
        assert call["contents"][0].role == "user"

    def test_text_only_reply(self, fake_gemini):
        """Test that a reply without an image is an error."""
        fake_gemini.image_response = image_response([text_part("I can't draw that")])
        with pytest.raises(NoImageInResponseError, match="No image in response"):
            generate_image(fake_gemini, "aerial")
