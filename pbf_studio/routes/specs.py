# pbf_studio/routes/specs.py
# Read/write of the server context files (the middle tier of context resolution).
import logging
from typing import Optional

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from pbf_studio.config import CONTEXT_ROOT
from pbf_studio.context import ContextKey, read_context_file, write_context_file
from pbf_studio.models import ContentWrite

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api")

DOCS = {
    "facility": {"key": ContextKey.FACILITY_SPECS, "name": "Facility Specification (Hebrew)"},
    "guidelines": {"key": ContextKey.DESIGN_GUIDELINES, "name": "Design Guidelines (English)"},
    "company": {"key": ContextKey.COMPANY_CONTEXT, "name": "Company Context (English)"},
}

def _invalid_doc():
    return JSONResponse({"error": "Invalid document ID"}, status_code=400)

@router.get("/specs")
def read_spec(doc: Optional[str] = None):
    if doc not in DOCS:
        return _invalid_doc()
    spec = DOCS[doc]
    try:
        content = read_context_file(CONTEXT_ROOT, spec["key"])
    except (OSError, UnicodeDecodeError) as e:
        logger.error("Error reading %s: %s", spec["name"], e)
        return JSONResponse({"error": f"Failed to read {spec['name']}"}, status_code=500)
    return JSONResponse({"content": content, "name": spec["name"]})

@router.put("/specs")
def write_spec(body: ContentWrite, doc: Optional[str] = None):
    if doc not in DOCS:
        return _invalid_doc()
    spec = DOCS[doc]
    if not isinstance(body.content, str):
        return JSONResponse({"error": "Content must be a string"}, status_code=400)
    try:
        write_context_file(CONTEXT_ROOT, spec["key"], body.content)
    except OSError as e:
        logger.error("Error writing %s: %s", spec["name"], e)
        return JSONResponse({"error": f"Failed to save {spec['name']}"}, status_code=500)
    return JSONResponse({"success": True, "message": f"{spec['name']} saved successfully"})
