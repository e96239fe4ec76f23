# pbf_studio/main.py
import logging
import os

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from pbf_studio.config import CONTEXT_ROOT, HOST, LOG_LEVEL, PORT, STATIC_ROOT
from pbf_studio.database import create_db_and_tables
from pbf_studio.routes import blueprints, chat, contexts, generate, images, specs, state

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

# Create all database tables on startup
create_db_and_tables()

app = FastAPI(title="PBF Visualization Studio")

# Mount static files; the context files double as the resolver's file tier
os.makedirs(STATIC_ROOT, exist_ok=True)
os.makedirs(CONTEXT_ROOT, exist_ok=True)
app.mount("/static", StaticFiles(directory=STATIC_ROOT), name="static")
app.mount("/contexts", StaticFiles(directory=CONTEXT_ROOT), name="contexts")

@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse({"error": "Invalid request body"}, status_code=400)

# Include all the different API routers
app.include_router(chat.router)
app.include_router(generate.router)
app.include_router(specs.router)
app.include_router(contexts.router)
app.include_router(images.router)
app.include_router(state.router)
app.include_router(blueprints.router)

# Uvicorn entrypoint
if __name__ == "__main__":
    uvicorn.run("pbf_studio.main:app", host=HOST, port=PORT, reload=True)
