"""
Hive API service entrypoint

FastAPI application for the box allocation service.
Includes all API routers, store error handling and startup initialization.
"""
import logging
import os

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from hive_api.api import admins, boxes, hives, identity, settings, stats, system, users
from hive_api.config import API_PORT, BIND_HOST
from hive_api.database import init_db
from hive_api.startup_profile import StartupProfile, validate_api_profile
from hive_api.store import StoreError

logger = logging.getLogger(__name__)

app = FastAPI(title="HiveBox API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(settings.router)
app.include_router(admins.router)
app.include_router(hives.router)
app.include_router(boxes.router)
app.include_router(users.router)
app.include_router(identity.router)
app.include_router(stats.router)
app.include_router(system.router)


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    logger.error("Store failure on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=500, content={"detail": "Database error"})


@app.on_event("startup")
def startup_init():
    """Validate bind settings and make sure the database file exists"""
    startup_port = int(os.getenv("HIVEBOX_API_PORT", str(API_PORT)))
    startup_host = str(os.getenv("HIVEBOX_BIND_HOST", BIND_HOST))
    validate_api_profile(StartupProfile(role="API", host=startup_host, port=startup_port))

    init_db()
    logger.info("Hive API startup complete")


@app.get("/")
def root():
    return {
        "service": "hive-api",
        "message": "HiveBox allocation service running",
    }
