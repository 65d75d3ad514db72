"""
FastAPI dependencies for the role-play routes.

The session store and LLM provider are created once at startup and kept on
app.state; routes receive them through these dependencies so tests can
override them.
"""
from typing import Optional
from fastapi import Depends, Header, HTTPException, Request, status

from app.llm.provider import LLMProvider
from app.services.interview_orchestrator import InterviewOrchestrator
from app.services.session_store import SessionStore


def get_session_store(request: Request) -> SessionStore:
    """Session store dependency."""
    return request.app.state.session_store


def get_llm_provider(request: Request) -> LLMProvider:
    """LLM provider dependency. 503 when no backend is configured."""
    provider = getattr(request.app.state, "llm_provider", None)
    if provider is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="AI service not configured. Set OPENAI_API_KEY."
        )
    return provider


def get_orchestrator(
    provider: LLMProvider = Depends(get_llm_provider),
    store: SessionStore = Depends(get_session_store),
) -> InterviewOrchestrator:
    return InterviewOrchestrator(provider=provider, store=store)


def get_current_user_id(x_user_id: Optional[str] = Header(None)) -> str:
    """Caller identity from the X-User-Id header (authentication happens upstream)."""
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    return x_user_id.strip()
