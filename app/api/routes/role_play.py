"""
Role-play (mock interview) endpoints.

Start a session, submit answers turn by turn, conclude for structured
feedback, and read stored feedback or session state back.
"""
import logging
from fastapi import APIRouter, Depends, HTTPException, status

from app.core.exceptions import (
    FeedbackNotFoundError,
    LLMProviderError,
    SessionConcludedError,
    SessionNotFoundError,
)
from app.core.role_play_dependency import get_current_user_id, get_orchestrator
from app.schemas.role_play import (
    ConcludeInterviewRequest,
    Feedback,
    InterviewConfig,
    ProcessResponseRequest,
    RolePlaySession,
    TurnResult,
)
from app.services.interview_orchestrator import InterviewOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/agents/role-play", tags=["Role Play"])


def _not_found(e: Exception) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.post("/start", response_model=RolePlaySession, status_code=status.HTTP_201_CREATED)
async def start_interview(
    request: InterviewConfig,
    user_id: str = Depends(get_current_user_id),
    orchestrator: InterviewOrchestrator = Depends(get_orchestrator),
):
    """
    Start a new mock interview session.
    
    Returns the full session state, including the interviewer persona and the
    opening question.
    """
    try:
        return await orchestrator.start_interview(request, user_id)
    except LLMProviderError as e:
        logger.error(f"Failed to start interview for user {user_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="AI service temporarily unavailable. Please try again later."
        )


@router.post("/respond", response_model=TurnResult)
async def process_response(
    request: ProcessResponseRequest,
    user_id: str = Depends(get_current_user_id),
    orchestrator: InterviewOrchestrator = Depends(get_orchestrator),
):
    """
    Submit a candidate answer and receive the follow-up question with real-time analysis.
    """
    try:
        return await orchestrator.process_user_response(request.session_id, request.user_response, user_id)
    except SessionNotFoundError as e:
        raise _not_found(e)
    except SessionConcludedError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))


@router.post("/conclude", response_model=Feedback)
async def conclude_interview(
    request: ConcludeInterviewRequest,
    user_id: str = Depends(get_current_user_id),
    orchestrator: InterviewOrchestrator = Depends(get_orchestrator),
):
    """
    Conclude the interview and generate structured feedback.
    
    A session can be concluded once; afterwards read the feedback with
    GET /feedback/{session_id}.
    """
    try:
        return await orchestrator.conclude_interview(request.session_id, user_id)
    except SessionNotFoundError as e:
        raise _not_found(e)
    except SessionConcludedError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))


@router.get("/feedback/{session_id}", response_model=Feedback)
async def get_feedback(
    session_id: str,
    user_id: str = Depends(get_current_user_id),
    orchestrator: InterviewOrchestrator = Depends(get_orchestrator),
):
    """Get stored feedback for a concluded interview."""
    try:
        return await orchestrator.get_feedback(session_id, user_id)
    except (SessionNotFoundError, FeedbackNotFoundError) as e:
        raise _not_found(e)


@router.get("/session/{session_id}", response_model=RolePlaySession)
async def get_session(
    session_id: str,
    user_id: str = Depends(get_current_user_id),
    orchestrator: InterviewOrchestrator = Depends(get_orchestrator),
):
    """Get current session state (working history and raw scores)."""
    try:
        return await orchestrator.get_session(session_id, user_id)
    except SessionNotFoundError as e:
        raise _not_found(e)
