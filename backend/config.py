import os

from dotenv import load_dotenv

load_dotenv()

# Comma-separated list of origins allowed to pull mesh buffers
CORS_ORIGINS = [
    o.strip() for o in os.environ.get(
        "GLOBETILES_CORS_ORIGINS",
        "http://localhost:8080,http://127.0.0.1:8080",
    ).split(",") if o.strip()
]

# Zoom level queued when the service starts; set to -1 to start empty
INITIAL_ZOOM = int(os.environ.get("GLOBETILES_INITIAL_ZOOM", "-1"))
