# main.py

import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from dotenv import load_dotenv
from starlette.exceptions import HTTPException as StarletteHTTPException

from config.settings import load_settings

# ================================================================
# LOGGING (BOOT FIRST)
# ================================================================
load_dotenv()
settings = load_settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format="%(asctime)s | %(levelname)s | %(message)s",
)
logger = logging.getLogger("weighting-backend")
logger.info("Weighting backend boot sequence started")

# ================================================================
# ROUTERS
# ================================================================
from routers.runs import router as runs_router
from routers.supabase_health import router as supabase_health_router
from routers.targets import router as targets_router
from utils import supabase_client

# ================================================================
# FASTAPI APP
# ================================================================
logger.info("Creating FastAPI app")

app = FastAPI(
    title="Survey Weighting Backend",
    description="Cell weighting • Target sets • Runs • CSV export",
    version="1.0.0",
)

# ================================================================
# CORS
# ================================================================
app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_allow_origins) or ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ================================================================
# ERROR SHAPES
# ================================================================
@app.exception_handler(RequestValidationError)
async def invalid_payload_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={"message": "Invalid payload", "issues": jsonable_encoder(exc.errors())},
    )


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(status_code=500, content={"message": "Internal server error"})


# ================================================================
# ROOT / HEALTH
# ================================================================
@app.get("/")
def root():
    return {
        "message": "Survey weighting engine online",
        "target_storage": "supabase" if supabase_client.get_supabase() is not None else "seed",
        "party_variable_default": settings.party_variable,
    }


@app.get("/healthz", include_in_schema=False)
def health_probe():
    return {"status": "ok"}


@app.get("/api/v1/healthz")
def api_health():
    return {"status": "ok"}


# ================================================================
# ROUTERS
# ================================================================
app.include_router(targets_router)
app.include_router(runs_router)
app.include_router(supabase_health_router)


# ================================================================
# LIFECYCLE
# ================================================================
@app.on_event("startup")
def startup_event():
    logger.info("Weighting backend started.")


@app.on_event("shutdown")
def shutdown_event():
    logger.info("Weighting backend stopped.")
