# pbf_studio/utils.py
import base64
import binascii
import os
import re
from typing import Optional, Tuple

DATA_URL_MIME = re.compile(r"data:([^;]+);")
DEFAULT_IMAGE_MIME = "image/png"

def _safe_join_under(base: str, path_rel: str) -> str:
    base_abs = os.path.abspath(base)
    full = os.path.abspath(os.path.join(base_abs, path_rel.lstrip("/\\")))
    if os.path.commonpath([full, base_abs]) != base_abs:
        raise ValueError("Path traversal attempt detected.")
    return full

def is_data_url(value: Optional[str]) -> bool:
    return bool(value) and value.startswith("data:")

def parse_data_url(url: str) -> Tuple[str, str]:
    """Split ``data:<mime>;base64,<payload>`` into (mime, base64 payload)."""
    if not is_data_url(url) or "," not in url:
        raise ValueError("Not a base64 data URL.")
    match = DATA_URL_MIME.match(url)
    mime_type = match.group(1) if match else DEFAULT_IMAGE_MIME
    return mime_type, url.split(",", 1)[1]

def decode_data_url(url: str) -> Tuple[str, bytes]:
    mime_type, payload = parse_data_url(url)
    try:
        return mime_type, base64.b64decode(payload, validate=True)
    except binascii.Error as e:
        raise ValueError(f"Invalid base64 payload: {e}") from e

def to_data_url(data: bytes, mime_type: str = DEFAULT_IMAGE_MIME) -> str:
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"
