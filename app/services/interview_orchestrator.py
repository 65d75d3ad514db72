"""
Interview orchestrator for role-play (mock interview) sessions.

Owns the session state machine (uninitialized -> active -> concluded) and
mediates every read and write of session state in the keyed store. Each
logical field lives under its own key:

    interview:<session_id>:state        status, questions, config
    interview:<session_id>:history      working history (may be compressed)
    interview:<session_id>:transcript   full uncompressed conversation
    interview:<session_id>:performance  running PerformanceScores
    interview:<session_id>:persona      interviewer persona text
    interview:<session_id>:feedback     Feedback, once concluded

Every operation rewrites all of a session's keys so they share one expiry
clock. There is no locking: two concurrent turns on the same session race
on read-modify-write and the last write wins.
"""
import json
import logging
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from pydantic import TypeAdapter

from app.core.config import SESSION_TTL_SECONDS
from app.core.exceptions import (
    FeedbackNotFoundError,
    LLMProviderError,
    SessionConcludedError,
    SessionNotFoundError,
)
from app.llm.provider import LLMProvider
from app.schemas.role_play import (
    AnalysisResult,
    Feedback,
    InterviewConfig,
    InterviewerStyle,
    Message,
    MessageRole,
    PerformanceScores,
    RolePlaySession,
    SessionStatus,
    TurnResult,
)
from app.services.context_compressor import ContextCompressor
from app.services.feedback_synthesizer import FeedbackSynthesizer
from app.services.performance_tracker import PerformanceTracker
from app.services.response_analyzer import ResponseAnalyzer
from app.services.session_store import SessionStore

logger = logging.getLogger(__name__)

STYLE_GUIDES = {
    InterviewerStyle.STRICT: (
        "You are a strict, no-nonsense interviewer who expects precise, well-thought-out answers. "
        "You probe deeply and challenge candidates."
    ),
    InterviewerStyle.FRIENDLY: (
        "You are a friendly, approachable interviewer who makes candidates comfortable. "
        "You encourage them to share experiences and ask follow-up questions."
    ),
    InterviewerStyle.STRESS_TEST: (
        "You are a challenging interviewer who tests candidates under pressure. "
        "You ask difficult questions and push for detailed explanations."
    ),
}

FOLLOW_UP_CONTEXT_MESSAGES = 4
KEEP_LAST_MESSAGES = 5
SUMMARY_BUDGET_TOKENS = 500

_messages_adapter = TypeAdapter(List[Message])


def session_key(session_id: str, field: str) -> str:
    return f"interview:{session_id}:{field}"


def generate_session_id() -> str:
    return f"session_{uuid.uuid4().hex}"


def resume_highlights(resume_data: Optional[Dict[str, Any]]) -> str:
    """Short text summary of parsed resume data for prompts."""
    if not resume_data:
        return ""
    parts = []
    summary = resume_data.get("summary")
    if summary:
        parts.append(f"Summary: {str(summary)[:500]}")
    skills = resume_data.get("skills")
    if isinstance(skills, list) and skills:
        parts.append(f"Skills: {', '.join(str(s) for s in skills[:15])}")
    experience = resume_data.get("experience")
    if isinstance(experience, list) and experience:
        titles = [str(e.get("title")) for e in experience if isinstance(e, dict) and e.get("title")]
        if titles:
            parts.append(f"Recent roles: {', '.join(titles[:3])}")
    return "\n".join(parts)


def fallback_follow_up(analysis: AnalysisResult) -> str:
    if analysis.keywords:
        return (
            f"You mentioned {analysis.keywords[0]}. Can you walk me through a specific example "
            f"of how you applied it, and what the outcome was?"
        )
    return "Can you walk me through a specific example from your experience, and what the outcome was?"


class InterviewOrchestrator:
    """Runs mock-interview sessions on top of an injected LLM provider and session store."""

    def __init__(
        self,
        provider: LLMProvider,
        store: SessionStore,
        compressor: Optional[ContextCompressor] = None,
        analyzer: Optional[ResponseAnalyzer] = None,
        tracker: Optional[PerformanceTracker] = None,
        synthesizer: Optional[FeedbackSynthesizer] = None,
        session_ttl: int = SESSION_TTL_SECONDS,
    ):
        self.provider = provider
        self.store = store
        self.compressor = compressor or ContextCompressor()
        self.analyzer = analyzer or ResponseAnalyzer(provider)
        self.tracker = tracker or PerformanceTracker()
        self.synthesizer = synthesizer or FeedbackSynthesizer(provider)
        self.session_ttl = session_ttl

    # ============================================
    # Public operations
    # ============================================

    async def start_interview(self, config: InterviewConfig, user_id: str) -> RolePlaySession:
        """
        Start a new mock interview session.

        Generates the interviewer persona and an opening question, then
        persists the initial state. Generation failures are not caught.

        Raises:
            LLMProviderError: If persona or opening question generation fails
        """
        logger.info(f"Starting interview for user {user_id} with style {config.interviewer_style.value}")

        session_id = generate_session_id()
        persona = await self._generate_persona(config)
        opening_question = await self._generate_opening_question(config, persona)

        now = datetime.utcnow()
        history = [
            Message(role=MessageRole.SYSTEM, content=f"Interviewer Persona: {persona}", timestamp=now),
            Message(role=MessageRole.ASSISTANT, content=opening_question, timestamp=now),
        ]

        session = RolePlaySession(
            session_id=session_id,
            user_id=user_id,
            status=SessionStatus.ACTIVE,
            conversation_history=history,
            current_question=opening_question,
            asked_questions=[opening_question],
            user_performance=PerformanceScores(),
            interviewer_persona=persona,
            interviewer_style=config.interviewer_style,
            focus_areas=list(config.focus_areas),
            job_description=config.job_description,
            created_at=now,
        )

        await self._save(session, history=history, transcript=history, performance=session.user_performance)

        logger.info(f"Interview session {session_id} started for user {user_id}")
        return session

    async def process_user_response(self, session_id: str, user_text: str, user_id: str) -> TurnResult:
        """
        Process one candidate answer and produce the next question.

        Raises:
            SessionNotFoundError: Unknown, expired or foreign session
            SessionConcludedError: Session already concluded
        """
        session = await self._load_state(session_id, user_id)
        if session.status == SessionStatus.CONCLUDED:
            raise SessionConcludedError(session_id)

        history, compressed = await self._load_compressed_history(session_id)
        transcript = await self._load_messages(session_id, "transcript") or list(history)
        performance = await self._load_performance(session_id)

        analysis = await self.analyzer.analyze(user_text)
        performance = self.tracker.update(performance, analysis)

        follow_up = await self._generate_follow_up(session, history, user_text, analysis)

        now = datetime.utcnow()
        turn = [
            Message(role=MessageRole.USER, content=user_text, timestamp=now),
            Message(role=MessageRole.ASSISTANT, content=follow_up, timestamp=now),
        ]
        history = history + turn
        transcript = transcript + turn

        session.current_question = follow_up
        session.asked_questions.append(follow_up)

        await self._save(session, history=history, transcript=transcript, performance=performance)

        logger.debug(
            f"Generated follow-up question for session {session_id}"
            f"{' (with compression)' if compressed else ''}"
        )
        return TurnResult(follow_up_question=follow_up, analysis=analysis)

    async def conclude_interview(self, session_id: str, user_id: str) -> Feedback:
        """
        Conclude the interview and generate structured feedback.

        Feedback is computed from the full uncompressed transcript, not the
        working history.

        Raises:
            SessionNotFoundError: Unknown, expired or foreign session
            SessionConcludedError: Session already concluded (read it with get_feedback)
        """
        logger.info(f"Concluding interview session {session_id}")

        session = await self._load_state(session_id, user_id)
        if session.status == SessionStatus.CONCLUDED:
            raise SessionConcludedError(session_id)

        history = await self._load_messages(session_id, "history") or []
        transcript = await self._load_messages(session_id, "transcript") or list(history)
        performance = await self._load_performance(session_id)

        feedback = await self.synthesizer.synthesize(session_id, transcript, performance)

        session.status = SessionStatus.CONCLUDED
        await self._save(
            session,
            history=history,
            transcript=transcript,
            performance=performance,
            feedback=feedback,
        )

        logger.info(f"Interview session {session_id} concluded with overall score {feedback.overall_score}")
        return feedback

    async def get_feedback(self, session_id: str, user_id: str) -> Feedback:
        """
        Read stored feedback for a concluded session.

        Raises:
            SessionNotFoundError: Unknown, expired or foreign session
            FeedbackNotFoundError: Session has not been concluded yet
        """
        await self._load_state(session_id, user_id)
        raw = await self.store.get(session_key(session_id, "feedback"))
        if raw is None:
            raise FeedbackNotFoundError(session_id)
        return Feedback.model_validate_json(raw)

    async def get_session(self, session_id: str, user_id: str) -> RolePlaySession:
        """Current session state with its working history and raw scores."""
        session = await self._load_state(session_id, user_id)
        session.conversation_history = await self._load_messages(session_id, "history") or []
        session.user_performance = await self._load_performance(session_id)
        return session

    # ============================================
    # Generation
    # ============================================

    async def _generate_persona(self, config: InterviewConfig) -> str:
        resume = resume_highlights(config.resume_data)
        resume_section = f"\nCandidate Background:\n{resume}\n" if resume else ""

        prompt = f"""Create an interviewer persona for a {config.interviewer_style.value} interview style.

Job Description:
{config.job_description}

Focus Areas: {', '.join(config.focus_areas)}
{resume_section}
Style Guide: {STYLE_GUIDES[config.interviewer_style]}

Generate a brief persona description (2-3 sentences) that describes the interviewer's approach, tone, and focus areas."""

        response = await self.provider.generate(prompt, "role-play-persona")
        persona = response.content.strip()
        if not persona:
            raise LLMProviderError("Persona generation returned empty content")
        return persona

    async def _generate_opening_question(self, config: InterviewConfig, persona: str) -> str:
        prompt = f"""As an interviewer with the following persona, generate an opening question for a mock interview.

Persona: {persona}

Job Description:
{config.job_description}

Focus Areas: {', '.join(config.focus_areas)}

Generate a single, engaging opening question that sets the tone for the interview. The question should be open-ended and encourage the candidate to share relevant experience."""

        response = await self.provider.generate(prompt, "role-play-opening")
        question = response.content.strip()
        if not question:
            raise LLMProviderError("Opening question generation returned empty content")
        return question

    async def _generate_follow_up(
        self,
        session: RolePlaySession,
        history: List[Message],
        user_text: str,
        analysis: AnalysisResult,
    ) -> str:
        history_text = "\n".join(
            f"{m.role.value}: {m.content}" for m in history[-FOLLOW_UP_CONTEXT_MESSAGES:]
        )

        prompt = f"""Based on the interview conversation and the candidate's response, generate a contextual follow-up question.

Recent Conversation:
{history_text}

Candidate's Latest Response: "{user_text}"

Analysis:
- Keywords mentioned: {', '.join(analysis.keywords) or 'none'}
- Sentiment: {analysis.sentiment.value}
- Relevance Score: {analysis.relevance_score:.0f}/100

Generate a follow-up question that:
1. References or builds upon the candidate's response
2. Probes deeper into their experience or knowledge
3. Maintains a natural conversation flow"""

        messages = [
            {"role": "system", "content": f"Interviewer Persona: {session.interviewer_persona}"},
            {"role": "user", "content": prompt},
        ]

        try:
            response = await self.provider.generate(messages, "role-play-followup")
            question = response.content.strip()
            if question:
                return question
            logger.warning(f"Empty follow-up from model for session {session.session_id}, using fallback")
        except Exception as e:
            logger.warning(
                f"Follow-up generation failed for session {session.session_id}, using fallback: {e}",
                exc_info=True,
            )
        return fallback_follow_up(analysis)

    # ============================================
    # Store access
    # ============================================

    async def _load_state(self, session_id: str, user_id: str) -> RolePlaySession:
        raw = await self.store.get(session_key(session_id, "state"))
        if raw is None:
            raise SessionNotFoundError(session_id)
        session = RolePlaySession.model_validate_json(raw)
        if session.user_id != user_id:
            logger.warning(f"User {user_id} attempted to access session {session_id} owned by another user")
            raise SessionNotFoundError(session_id)
        persona = await self.store.get(session_key(session_id, "persona"))
        if persona is not None:
            session.interviewer_persona = json.loads(persona)
        return session

    async def _load_messages(self, session_id: str, field: str) -> Optional[List[Message]]:
        raw = await self.store.get(session_key(session_id, field))
        if raw is None:
            return None
        return _messages_adapter.validate_json(raw)

    async def _load_compressed_history(self, session_id: str) -> Tuple[List[Message], bool]:
        history = await self._load_messages(session_id, "history") or []
        if not self.compressor.should_compress(history):
            return history, False

        logger.debug(f"Compressing history for session {session_id}")
        compressed = self.compressor.compress(history, KEEP_LAST_MESSAGES, SUMMARY_BUDGET_TOKENS)
        return compressed, True

    async def _load_performance(self, session_id: str) -> PerformanceScores:
        raw = await self.store.get(session_key(session_id, "performance"))
        if raw is None:
            return PerformanceScores()
        return PerformanceScores.model_validate_json(raw)

    async def _save(
        self,
        session: RolePlaySession,
        history: List[Message],
        transcript: List[Message],
        performance: PerformanceScores,
        feedback: Optional[Feedback] = None,
    ) -> None:
        session_id = session.session_id
        # History, scores and persona live under their own keys
        state = session.model_copy(update={
            "conversation_history": [],
            "user_performance": PerformanceScores(),
            "interviewer_persona": "",
        })

        blobs = {}
        if feedback is not None:
            blobs["feedback"] = feedback.model_dump_json(by_alias=True)
        blobs["history"] = _messages_adapter.dump_json(history, by_alias=True).decode()
        blobs["transcript"] = _messages_adapter.dump_json(transcript, by_alias=True).decode()
        blobs["performance"] = performance.model_dump_json(by_alias=True)
        blobs["persona"] = json.dumps(session.interviewer_persona)
        # state goes last: a session only reads as concluded once its feedback is stored
        blobs["state"] = state.model_dump_json(by_alias=True)

        for field, value in blobs.items():
            await self.store.set(session_key(session_id, field), value, self.session_ttl)
