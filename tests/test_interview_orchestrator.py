"""
Tests for the role-play session state machine.
"""
import asyncio
import json

import pytest

from app.core.exceptions import (
    FeedbackNotFoundError,
    LLMProviderError,
    SessionConcludedError,
    SessionNotFoundError,
)
from app.schemas.role_play import (
    InterviewConfig,
    InterviewerStyle,
    MessageRole,
    SessionStatus,
)
from app.services.context_compressor import ContextCompressor
from app.services.interview_orchestrator import (
    STYLE_GUIDES,
    InterviewOrchestrator,
    session_key,
)
from app.services.session_store import InMemorySessionStore

USER_ID = "user-42"


def run(coro):
    return asyncio.run(coro)


@pytest.fixture
def config():
    return InterviewConfig(
        job_description="Backend engineer owning public REST APIs",
        interviewer_style=InterviewerStyle.FRIENDLY,
        focus_areas=["APIs"],
    )


@pytest.fixture
def orchestrator(provider, store):
    return InterviewOrchestrator(provider=provider, store=store)


def test_start_interview_initial_state(orchestrator, provider, config):
    session = run(orchestrator.start_interview(config, USER_ID))

    assert session.status == SessionStatus.ACTIVE
    assert [m.role for m in session.conversation_history] == [MessageRole.SYSTEM, MessageRole.ASSISTANT]
    assert len(session.asked_questions) == 1
    assert session.current_question == session.asked_questions[0]
    assert session.conversation_history[0].content.startswith("Interviewer Persona: Alex")
    assert session.interviewer_persona == session.interviewer_persona.strip()
    assert session.user_performance.axis_values() == [0, 0, 0, 0, 0]
    assert session.session_id.startswith("session_")
    assert [s for s, _ in provider.calls] == ["role-play-persona", "role-play-opening"]


def test_persona_prompt_uses_style_directive(orchestrator, provider, config):
    run(orchestrator.start_interview(config, USER_ID))
    prompt = provider.prompts_for("role-play-persona")[0]

    assert STYLE_GUIDES[InterviewerStyle.FRIENDLY] in prompt
    assert "Focus Areas: APIs" in prompt
    assert "Backend engineer owning public REST APIs" in prompt


def test_resume_data_is_included_in_persona_prompt(orchestrator, provider, config):
    config.resume_data = {"skills": ["Python", "FastAPI"], "summary": "Six years building APIs"}
    run(orchestrator.start_interview(config, USER_ID))
    prompt = provider.prompts_for("role-play-persona")[0]

    assert "Skills: Python, FastAPI" in prompt
    assert "Six years building APIs" in prompt


def test_session_ids_are_unique(orchestrator, config):
    ids = {run(orchestrator.start_interview(config, USER_ID)).session_id for _ in range(5)}
    assert len(ids) == 5


def test_persona_failure_propagates_and_stores_nothing(scripted_provider, store, config):
    orchestrator = InterviewOrchestrator(provider=scripted_provider(failures={"role-play-persona"}), store=store)

    with pytest.raises(LLMProviderError):
        run(orchestrator.start_interview(config, USER_ID))
    assert len(store) == 0


def test_opening_question_failure_propagates(scripted_provider, store, config):
    orchestrator = InterviewOrchestrator(provider=scripted_provider(failures={"role-play-opening"}), store=store)

    with pytest.raises(LLMProviderError):
        run(orchestrator.start_interview(config, USER_ID))


def test_each_turn_appends_user_and_assistant(orchestrator, config):
    session = run(orchestrator.start_interview(config, USER_ID))

    for turn in range(1, 4):
        result = run(orchestrator.process_user_response(session.session_id, f"Answer number {turn}", USER_ID))
        state = run(orchestrator.get_session(session.session_id, USER_ID))

        assert len(state.conversation_history) == 2 + 2 * turn
        assert state.conversation_history[-2].role == MessageRole.USER
        assert state.conversation_history[-2].content == f"Answer number {turn}"
        assert state.conversation_history[-1].role == MessageRole.ASSISTANT
        assert state.conversation_history[-1].content == result.follow_up_question
        assert state.current_question == result.follow_up_question
        assert len(state.asked_questions) == 1 + turn


def test_turn_updates_performance(scripted_provider, store, config):
    provider = scripted_provider({
        "role-play-analysis": json.dumps({"keywords": ["a", "b", "c"], "relevanceScore": 80}),
    })
    orchestrator = InterviewOrchestrator(provider=provider, store=store)
    session = run(orchestrator.start_interview(config, USER_ID))

    result = run(orchestrator.process_user_response(session.session_id, "My answer", USER_ID))
    state = run(orchestrator.get_session(session.session_id, USER_ID))

    assert result.analysis.keywords == ["a", "b", "c"]
    assert state.user_performance.depth == pytest.approx(9.0)
    assert state.user_performance.clarity == pytest.approx(24.0)


def test_follow_up_prompt_carries_recent_context(orchestrator, provider, config):
    session = run(orchestrator.start_interview(config, USER_ID))
    run(orchestrator.process_user_response(session.session_id, "We paginated with cursors", USER_ID))

    messages = provider.prompts_for("role-play-followup")[0]
    assert messages[0]["role"] == "system"
    assert "Alex" in messages[0]["content"]
    prompt = messages[1]["content"]
    assert 'Candidate\'s Latest Response: "We paginated with cursors"' in prompt
    assert "Keywords mentioned: REST, pagination, caching" in prompt
    assert "Relevance Score: 80/100" in prompt


def test_turn_survives_analysis_and_follow_up_failures(scripted_provider, store, config):
    provider = scripted_provider(failures={"role-play-analysis", "role-play-followup"})
    orchestrator = InterviewOrchestrator(provider=provider, store=store)
    session = run(orchestrator.start_interview(config, USER_ID))

    result = run(orchestrator.process_user_response(session.session_id, "Kubernetes operators everywhere", USER_ID))

    assert result.analysis.relevance_score == 50
    assert result.follow_up_question.startswith("You mentioned kubernetes")


def test_empty_follow_up_uses_fallback(scripted_provider, store, config):
    provider = scripted_provider({"role-play-followup": "   "})
    orchestrator = InterviewOrchestrator(provider=provider, store=store)
    session = run(orchestrator.start_interview(config, USER_ID))

    result = run(orchestrator.process_user_response(session.session_id, "ok", USER_ID))
    assert result.follow_up_question.startswith("You mentioned REST")


def test_unknown_session_is_not_found(orchestrator):
    with pytest.raises(SessionNotFoundError):
        run(orchestrator.process_user_response("session_missing", "hello", USER_ID))
    with pytest.raises(SessionNotFoundError):
        run(orchestrator.conclude_interview("session_missing", USER_ID))


def test_other_users_session_is_not_found(orchestrator, store, config):
    session = run(orchestrator.start_interview(config, USER_ID))
    before = run(store.get(session_key(session.session_id, "history")))

    with pytest.raises(SessionNotFoundError):
        run(orchestrator.process_user_response(session.session_id, "hijack", "someone-else"))
    assert run(store.get(session_key(session.session_id, "history"))) == before


def test_conclude_produces_feedback_and_locks_session(orchestrator, config):
    session = run(orchestrator.start_interview(config, USER_ID))
    run(orchestrator.process_user_response(session.session_id, "Answer", USER_ID))

    feedback = run(orchestrator.conclude_interview(session.session_id, USER_ID))
    state = run(orchestrator.get_session(session.session_id, USER_ID))

    assert feedback.session_id == session.session_id
    assert state.status == SessionStatus.CONCLUDED
    assert run(orchestrator.get_feedback(session.session_id, USER_ID)) == feedback

    with pytest.raises(SessionConcludedError):
        run(orchestrator.process_user_response(session.session_id, "One more", USER_ID))
    with pytest.raises(SessionConcludedError):
        run(orchestrator.conclude_interview(session.session_id, USER_ID))


def test_feedback_before_conclusion_is_not_found(orchestrator, config):
    session = run(orchestrator.start_interview(config, USER_ID))
    with pytest.raises(FeedbackNotFoundError):
        run(orchestrator.get_feedback(session.session_id, USER_ID))


def test_conclude_never_throws_on_malformed_output(scripted_provider, store, config):
    provider = scripted_provider({"role-play-feedback": "<html>500</html>"})
    orchestrator = InterviewOrchestrator(provider=provider, store=store)
    session = run(orchestrator.start_interview(config, USER_ID))

    feedback = run(orchestrator.conclude_interview(session.session_id, USER_ID))
    assert feedback.overall_score == 65
    assert len(feedback.radar_chart_data) == 5


def test_conclude_uses_uncompressed_transcript(provider, store, config):
    orchestrator = InterviewOrchestrator(
        provider=provider,
        store=store,
        compressor=ContextCompressor(threshold=200),
    )
    session = run(orchestrator.start_interview(config, USER_ID))
    answers = [f"ANSWER-{i} " + "detail " * 40 for i in range(6)]
    for answer in answers:
        run(orchestrator.process_user_response(session.session_id, answer, USER_ID))

    working = run(orchestrator.get_session(session.session_id, USER_ID)).conversation_history
    assert len(working) < 2 + 2 * len(answers)

    run(orchestrator.conclude_interview(session.session_id, USER_ID))
    prompt = provider.prompts_for("role-play-feedback")[0]
    for answer in answers:
        assert answer in prompt


def test_session_expires_after_ttl(provider, store, clock, config):
    orchestrator = InterviewOrchestrator(provider=provider, store=store, session_ttl=3600)
    session = run(orchestrator.start_interview(config, USER_ID))

    clock.advance(3601)
    with pytest.raises(SessionNotFoundError):
        run(orchestrator.process_user_response(session.session_id, "late", USER_ID))


def test_every_write_refreshes_ttl(provider, store, clock, config):
    orchestrator = InterviewOrchestrator(provider=provider, store=store, session_ttl=3600)
    session = run(orchestrator.start_interview(config, USER_ID))

    clock.advance(3000)
    run(orchestrator.process_user_response(session.session_id, "first", USER_ID))
    clock.advance(3000)
    run(orchestrator.process_user_response(session.session_id, "second", USER_ID))

    for field in ("state", "history", "transcript", "performance", "persona"):
        assert run(store.get(session_key(session.session_id, field))) is not None


class FlakyFeedbackStore(InMemorySessionStore):
    """Store whose writes to feedback keys fail while fail_feedback is set."""

    def __init__(self, clock):
        super().__init__(clock=clock)
        self.fail_feedback = True

    async def set(self, key, value, ttl_seconds):
        if self.fail_feedback and key.endswith(":feedback"):
            raise RuntimeError("store unavailable")
        await super().set(key, value, ttl_seconds)


def test_failed_feedback_write_leaves_session_active(provider, clock, config):
    store = FlakyFeedbackStore(clock)
    orchestrator = InterviewOrchestrator(provider=provider, store=store)
    session = run(orchestrator.start_interview(config, USER_ID))

    with pytest.raises(RuntimeError):
        run(orchestrator.conclude_interview(session.session_id, USER_ID))
    assert run(orchestrator.get_session(session.session_id, USER_ID)).status == SessionStatus.ACTIVE

    store.fail_feedback = False
    feedback = run(orchestrator.conclude_interview(session.session_id, USER_ID))
    assert run(orchestrator.get_feedback(session.session_id, USER_ID)) == feedback


def test_persona_is_read_from_its_own_key(orchestrator, provider, store, config):
    session = run(orchestrator.start_interview(config, USER_ID))

    state_blob = run(store.get(session_key(session.session_id, "state")))
    assert session.interviewer_persona not in state_blob

    run(store.set(session_key(session.session_id, "persona"), json.dumps("Sam, a terse staff engineer"), 3600))
    assert run(orchestrator.get_session(session.session_id, USER_ID)).interviewer_persona == "Sam, a terse staff engineer"

    run(orchestrator.process_user_response(session.session_id, "An answer", USER_ID))
    messages = provider.prompts_for("role-play-followup")[0]
    assert messages[0]["content"] == "Interviewer Persona: Sam, a terse staff engineer"
