"""
FastAPI application entry point.

Exposes key management and the generation workflow via REST API.
Port: 4002 (default).
"""

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# Load environment variables from .env file
load_dotenv()

from scriptgenie import __version__
from scriptgenie.keys.errors import (
    AllAttemptsFailed,
    DuplicateError,
    NoKeysAvailable,
    ValidationError,
)
from scriptgenie.server.routes import router

app = FastAPI(
    title="ScriptGenie API",
    version=__version__,
    description="Script analysis, narration and illustration API",
)

# Enable CORS for local dashboard development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router, prefix="/api")


@app.exception_handler(ValidationError)
async def _validation_error(request: Request, exc: ValidationError):
    return JSONResponse(status_code=400, content={"detail": str(exc), "code": "invalid_key"})


@app.exception_handler(DuplicateError)
async def _duplicate_error(request: Request, exc: DuplicateError):
    return JSONResponse(status_code=409, content={"detail": str(exc), "code": "duplicate_key"})


@app.exception_handler(NoKeysAvailable)
async def _no_keys(request: Request, exc: NoKeysAvailable):
    return JSONResponse(status_code=428, content={"detail": str(exc), "code": "no_keys"})


@app.exception_handler(AllAttemptsFailed)
async def _all_keys_failed(request: Request, exc: AllAttemptsFailed):
    return JSONResponse(
        status_code=502,
        content={
            "detail": str(exc),
            "code": "all_keys_failed",
            "attempts": exc.attempts,
        },
    )


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "ok", "version": __version__}
