import logging
import os
import subprocess
from datetime import datetime
from typing import Optional

from fastapi import Depends, FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from pool_manager.database import DATABASE_URL, init_db
from pool_manager.routes import matches, players, tournaments
from pool_manager.services.storage_service import S3StorageService, get_storage_service

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

APP_NAME = "Pool Tournament Manager API"

app = FastAPI(title=APP_NAME)


# Get build info
def get_build_info():
    """Get git commit hash or build timestamp"""
    try:
        result = subprocess.run(
            ["git", "rev-parse", "--short", "HEAD"],
            cwd=os.path.dirname(os.path.dirname(__file__)),
            capture_output=True,
            text=True,
            timeout=2,
        )
        if result.returncode == 0:
            return result.stdout.strip()
    except (OSError, subprocess.SubprocessError):
        pass

    # Fallback to build timestamp
    return datetime.now().strftime("%Y%m%d-%H%M%S")


BUILD_HASH = get_build_info()

_cors_origins = [
    "http://localhost:3000",
    "http://localhost:5173",
    "http://localhost:5260",
    "http://localhost:4200",
]
_extra = os.getenv("CORS_ORIGINS", "")
if _extra:
    _cors_origins.extend(o.strip() for o in _extra.split(",") if o.strip())

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(players.router, prefix="/api", tags=["players"])
app.include_router(matches.router, prefix="/api", tags=["matches"])
app.include_router(tournaments.router, prefix="/api", tags=["tournaments"])


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Malformed request bodies and query parameters are caller errors: 400 with pydantic's details"""
    logger.warning("Rejected malformed request to %s: %s", request.url.path, exc.errors())
    return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})


@app.on_event("startup")
def on_startup():
    if os.getenv("RUN_MIGRATIONS", "").strip().lower() in ("true", "1", "yes"):
        from pool_manager.migrations import run_migrations

        run_migrations(DATABASE_URL)
    else:
        init_db()

    route_count = 0
    for r in app.routes:
        path = getattr(r, "path", None)
        if path:
            methods = getattr(r, "methods", None)
            methods_str = ", ".join(sorted(methods)) if methods else "N/A"
            logger.debug("%-20s %s", methods_str, path)
            route_count += 1
    logger.info("Registered %d routes (build %s)", route_count, BUILD_HASH)


@app.get("/api/health")
def health_check(storage: Optional[S3StorageService] = Depends(get_storage_service)):
    """Report which build is running and whether the storage bucket is reachable"""
    if storage is None:
        storage_status = "not_configured"
    elif storage.check_access():
        storage_status = "ok"
    else:
        storage_status = "unavailable"
    return {
        "app_name": APP_NAME,
        "build_hash": BUILD_HASH,
        "status": "healthy",
        "storage": storage_status,
    }


@app.get("/")
def root():
    return {"message": f"{APP_NAME} is running"}
