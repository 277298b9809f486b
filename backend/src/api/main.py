"""FastAPI application main entry point."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ..models.research import ResearchAPIResponse
from .routes import research

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Second Brain Research API",
    description="Research agent with cited answers over a personal knowledge base",
    version="0.1.0",
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173", "http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Research requests keep the research response shape on bad input."""
    if not request.url.path.startswith(research.RESEARCH_PATH):
        return await request_validation_exception_handler(request, exc)

    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    reason = first.get("msg", "invalid body")
    message = f"Invalid request: {field}: {reason}" if field else f"Invalid request: {reason}"
    logger.warning(f"Rejected research request: {message}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=ResearchAPIResponse.error_response(message).model_dump(mode="json"),
    )


@app.exception_handler(500)
async def internal_error_handler(request: Request, exc: Exception):
    """Handle 500 errors."""
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error", "detail": str(exc)},
    )


app.include_router(research.router, tags=["research"])


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}


__all__ = ["app"]
