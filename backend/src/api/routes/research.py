"""HTTP API routes for the research agent."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse

from ...models.research import (
    ConversationTurn,
    ResearchAPIResponse,
    ResearchRequest,
    ResearchStatus,
)
from ...services.config import get_config
from ...services.research.orchestrator import ResearchOrchestrator, create_research_orchestrator
from ...services.session_store import SessionStore, get_session_store

logger = logging.getLogger(__name__)

router = APIRouter()

RESEARCH_PATH = "/api/agent/research"
DEFAULT_SESSION_ID = "default-research"

_orchestrator: Optional[ResearchOrchestrator] = None


def get_research_orchestrator() -> Optional[ResearchOrchestrator]:
    """Shared orchestrator, or None when no model key is configured."""
    global _orchestrator
    if _orchestrator is None:
        config = get_config()
        if not config.openai_api_key:
            return None
        _orchestrator = create_research_orchestrator(config)
    return _orchestrator


def get_research_session_store() -> SessionStore:
    return get_session_store(get_config().session_history_limit)


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ResearchAPIResponse.error_response(message).model_dump(mode="json"),
    )


@router.post(RESEARCH_PATH, response_model=ResearchAPIResponse)
async def run_research(
    request: ResearchRequest,
    orchestrator: Optional[ResearchOrchestrator] = Depends(get_research_orchestrator),
    sessions: SessionStore = Depends(get_research_session_store),
):
    """Answer a message, researching it with cited sources when needed."""
    message = (request.message or "").strip()
    if not message:
        return _error("Missing message", status.HTTP_400_BAD_REQUEST)
    if orchestrator is None:
        return _error("OpenAI API key not configured", status.HTTP_500_INTERNAL_SERVER_ERROR)

    session_id = request.session_id or DEFAULT_SESSION_ID

    try:
        history = await sessions.get(session_id)
        result = await orchestrator.run(message, history)

        if result.status == ResearchStatus.ERROR:
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content=ResearchAPIResponse.from_result(result).model_dump(mode="json"),
            )

        await sessions.put(
            session_id,
            history + [
                ConversationTurn(role="user", content=message),
                ConversationTurn(role="assistant", content=result.answer),
            ],
        )
        return ResearchAPIResponse.from_result(result)
    except Exception as e:
        logger.exception(f"Research agent error: {e}")
        return _error(str(e) or "Unknown error", status.HTTP_500_INTERNAL_SERVER_ERROR)


@router.delete(RESEARCH_PATH)
async def clear_research_session(
    session_id: Optional[str] = Query(default=None, description="Session to clear"),
    sessions: SessionStore = Depends(get_research_session_store),
):
    """Forget the conversation history of a session."""
    if not session_id:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"status": "error", "error": "Missing session_id"},
        )

    try:
        await sessions.delete(session_id)
    except Exception as e:
        logger.exception(f"Failed to clear research session {session_id}: {e}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"status": "error", "error": "Failed to clear session"},
        )

    return {"status": "success", "message": "Research session cleared"}
