# pbf_studio/routes/chat.py
import logging

from fastapi import APIRouter
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse, StreamingResponse

from pbf_studio import services
from pbf_studio.config import CHAT_MODEL_API_NAME, CONTEXT_ROOT
from pbf_studio.context import ContextKey, ContextResolver, SQLOverrideStore
from pbf_studio.database import engine
from pbf_studio.models import ChatRequest, PromptExtractRequest
from pbf_studio.prompts import build_system_prompt, extract_prompt
from pbf_studio.relay import (ChatRelay, RelayValidationError, normalize_provider_error,
                              provider_error_status, validate_chat_request)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api")

def _system_prompt_for(body: ChatRequest) -> str:
    # Contexts the caller did not send fall back to the resolved ones
    resolver = ContextResolver(SQLOverrideStore(engine), CONTEXT_ROOT)
    return build_system_prompt(
        body.facility_specs or resolver.resolve(ContextKey.FACILITY_SPECS).content,
        body.design_guidelines or resolver.resolve(ContextKey.DESIGN_GUIDELINES).content,
        body.company_context or resolver.resolve(ContextKey.COMPANY_CONTEXT).content,
    )

@router.post("/chat")
async def chat(body: ChatRequest):
    try:
        validate_chat_request(body.api_key, body.messages)
    except RelayValidationError as e:
        return JSONResponse({"error": str(e)}, status_code=400)

    # Override and file reads are blocking
    system_prompt = await run_in_threadpool(_system_prompt_for, body)

    try:
        relay = ChatRelay(services.create_client(body.api_key), CHAT_MODEL_API_NAME, system_prompt)
        await relay.open(body.messages)
    except Exception as e:
        logger.exception("Chat error")
        return JSONResponse({"error": normalize_provider_error(e)}, status_code=provider_error_status(e))

    return StreamingResponse(
        relay.frames(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
    )

@router.post("/prompt/extract")
def prompt_extract(body: PromptExtractRequest):
    return JSONResponse({"prompt": extract_prompt(body.content)})
