# pbf_studio/routes/images.py
from typing import Optional

from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse

from pbf_studio import store
from pbf_studio.models import ImageWrite
from pbf_studio.utils import decode_data_url

router = APIRouter(prefix="/api/images")

@router.get("")
def list_images(limit: Optional[int] = Query(default=None, ge=1)):
    rows = store.list_images(limit)
    return JSONResponse({"items": [r.model_dump(mode="json") for r in rows]})

@router.get("/{image_id}")
def get_image(image_id: str):
    row = store.get_image(image_id)
    if not row:
        return JSONResponse({"error": "Image not found"}, status_code=404)
    return JSONResponse(row.model_dump(mode="json"))

@router.put("/{image_id}")
def put_image(image_id: str, body: ImageWrite):
    # Reference images uploaded by the operator are stored under their own id
    try:
        decode_data_url(body.data)
    except ValueError as e:
        return JSONResponse({"error": f"Image must be a base64 data URL: {e}"}, status_code=400)
    row = store.save_image(body.data, image_id)
    return JSONResponse(row.model_dump(mode="json"))

@router.delete("/{image_id}")
def delete_image(image_id: str):
    if not store.delete_image(image_id):
        return JSONResponse({"error": "Image not found"}, status_code=404)
    return JSONResponse({"ok": True})

@router.delete("")
def clear_images():
    store.clear_images()
    return JSONResponse({"ok": True})
