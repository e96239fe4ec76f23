# pbf_studio/routes/contexts.py
from fastapi import APIRouter
from fastapi.responses import JSONResponse

from pbf_studio.config import CONTEXT_ROOT
from pbf_studio.context import ContextResolver, ContextValidationError, SQLOverrideStore, parse_context_key
from pbf_studio.database import engine
from pbf_studio.models import ContentWrite

router = APIRouter(prefix="/api/contexts")

def get_resolver() -> ContextResolver:
    return ContextResolver(SQLOverrideStore(engine), CONTEXT_ROOT)

@router.get("")
def list_contexts():
    resolved = get_resolver().resolve_all()
    return JSONResponse({key.value: r.model_dump(mode="json") for key, r in resolved.items()})

@router.get("/{key}")
def get_context(key: str):
    try:
        context_key = parse_context_key(key)
    except ContextValidationError as e:
        return JSONResponse({"error": str(e)}, status_code=400)
    return JSONResponse(get_resolver().resolve(context_key).model_dump(mode="json"))

@router.put("/{key}")
def save_context(key: str, body: ContentWrite):
    try:
        get_resolver().save(parse_context_key(key), body.content)
    except ContextValidationError as e:
        return JSONResponse({"error": str(e)}, status_code=400)
    return JSONResponse({"success": True})

@router.delete("/{key}")
def reset_context(key: str):
    try:
        context_key = parse_context_key(key)
    except ContextValidationError as e:
        return JSONResponse({"error": str(e)}, status_code=400)
    return JSONResponse(get_resolver().reset(context_key).model_dump(mode="json"))
