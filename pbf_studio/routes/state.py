# pbf_studio/routes/state.py
from fastapi import APIRouter
from fastapi.responses import JSONResponse

from pbf_studio import store
from pbf_studio.models import StateSnapshot

router = APIRouter(prefix="/api/state")

@router.get("")
def get_state():
    return JSONResponse(store.load_state().model_dump(mode="json", by_alias=True))

@router.put("")
def put_state(body: StateSnapshot):
    return JSONResponse(store.save_state(body).model_dump(mode="json", by_alias=True))

@router.delete("")
def clear_state():
    store.clear_state()
    return JSONResponse(store.load_state().model_dump(mode="json", by_alias=True))
