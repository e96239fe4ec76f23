# pbf_studio/config.py
import os

# ====== Storage ======
DB_FILE = os.environ.get("PBF_STUDIO_DB", "db.sqlite")
CONTEXT_ROOT = os.environ.get("PBF_STUDIO_CONTEXT_ROOT", "contexts")
STATIC_ROOT = os.environ.get("PBF_STUDIO_STATIC_ROOT", "static")

# ====== Gemini models ======
CHAT_MODEL_API_NAME = os.environ.get("PBF_STUDIO_CHAT_MODEL", "gemini-3-pro-preview")
IMAGE_MODEL_API_NAME = os.environ.get("PBF_STUDIO_IMAGE_MODEL", "gemini-3-pro-image-preview")

# ====== Client state ======
HISTORY_LIMIT = int(os.environ.get("PBF_STUDIO_HISTORY_LIMIT", "10"))

# ====== Server ======
LOG_LEVEL = os.environ.get("PBF_STUDIO_LOG_LEVEL", "INFO")
HOST = os.environ.get("PBF_STUDIO_HOST", "0.0.0.0")
PORT = int(os.environ.get("PBF_STUDIO_PORT", "8000"))
