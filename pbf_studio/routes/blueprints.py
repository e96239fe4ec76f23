# pbf_studio/routes/blueprints.py
import os

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlmodel import Session, select

from pbf_studio.database import engine
from pbf_studio.models import Blueprint, BlueprintUpload
from pbf_studio.utils import decode_data_url

router = APIRouter(prefix="/api/blueprints")

# Shipped with the studio under static/blueprints; these cannot be deleted
DEFAULT_BLUEPRINTS = [
    {"id": "main-building", "name": "Main Building Plan",
     "url": "/static/blueprints/main-building-architectural_plan.jpg",
     "description": "2 halls, 12 tanks (6 per hall)", "isCustom": False},
    {"id": "quarantine", "name": "Quarantine Building",
     "url": "/static/blueprints/quarantine-plan.jpg",
     "description": "14 smaller tanks", "isCustom": False},
    {"id": "full-facility", "name": "Full Facility Plan",
     "url": "/static/blueprints/full-facility-plan.png",
     "description": "Main building + quarantine + external tanks", "isCustom": False},
]
DEFAULT_IDS = {b["id"] for b in DEFAULT_BLUEPRINTS}

def _as_item(bp: Blueprint) -> dict:
    return {"id": bp.id, "name": bp.name, "url": bp.url, "description": bp.description, "isCustom": True}

@router.get("")
def list_blueprints():
    with Session(engine) as session:
        custom = session.exec(select(Blueprint).order_by(Blueprint.created_at)).all()
    return JSONResponse({"items": DEFAULT_BLUEPRINTS + [_as_item(b) for b in custom]})

@router.post("")
def upload_blueprint(body: BlueprintUpload):
    try:
        decode_data_url(body.image)
    except ValueError as e:
        return JSONResponse({"error": f"Blueprint must be a base64 data URL: {e}"}, status_code=400)
    name = body.name or os.path.splitext(body.filename)[0] or "Custom blueprint"
    with Session(engine) as session:
        bp = Blueprint(name=name, url=body.image, description=body.description or "Custom uploaded blueprint")
        session.add(bp)
        session.commit()
        session.refresh(bp)
        return JSONResponse(_as_item(bp))

@router.delete("/{blueprint_id}")
def delete_blueprint(blueprint_id: str):
    if blueprint_id in DEFAULT_IDS:
        return JSONResponse({"error": "Built-in blueprints cannot be deleted"}, status_code=400)
    with Session(engine) as session:
        bp = session.get(Blueprint, blueprint_id)
        if not bp:
            return JSONResponse({"error": "Blueprint not found"}, status_code=404)
        session.delete(bp)
        session.commit()
    return JSONResponse({"ok": True})
