# pbf_studio/routes/generate.py
import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from pbf_studio import services, store
from pbf_studio.models import GenerateRequest
from pbf_studio.relay import normalize_provider_error, provider_error_status

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api")

@router.post("/generate")
def generate(body: GenerateRequest):
    if not body.prompt:
        return JSONResponse({"error": "Prompt required"}, status_code=400)
    if not body.api_key:
        return JSONResponse({"error": "API key required"}, status_code=400)

    try:
        result = services.generate_image(
            services.create_client(body.api_key),
            body.prompt,
            include_context=body.include_context,
            custom_context=body.custom_context,
            aspect_ratio=body.aspect_ratio,
            image_size=body.image_size,
            edit_image=body.edit_image,
            reference_image=body.reference_image,
        )
    except services.ImageGenerationError as e:
        logger.error("Generation error: %s", e)
        return JSONResponse({"error": str(e)}, status_code=e.status_code)
    except ValueError as e:
        return JSONResponse({"error": f"Invalid image data: {e}"}, status_code=400)
    except Exception as e:
        logger.exception("Generation error")
        message = normalize_provider_error(e, "Failed to generate image")
        return JSONResponse({"error": message}, status_code=provider_error_status(e))

    stored = store.save_image(result.image)
    store.push_history(stored.id)
    return JSONResponse({"id": stored.id, "image": result.image, "text": result.text})
