"""
Final feedback synthesis for a concluded role-play session.

The model writes the qualitative parts (strengths, improvement areas, key
takeaways). All numbers come from the tracked performance scores: any
overallScore the model returns is ignored.
"""
import logging
import math
from typing import List

from app.llm.json_output import parse_or_default, ParseResult
from app.llm.provider import LLMProvider
from app.schemas.role_play import (
    Feedback,
    Message,
    MessageRole,
    PerformanceScores,
    RadarPoint,
)

logger = logging.getLogger(__name__)

FEEDBACK_SCENARIO = "role-play-feedback"

RADAR_CATEGORIES = [
    ("Clarity", "clarity"),
    ("Relevance", "relevance"),
    ("Depth", "depth"),
    ("Communication", "communication"),
    ("Technical Accuracy", "technical_accuracy"),
]

FALLBACK_SCORE = 65


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def overall_score(scores: PerformanceScores) -> int:
    """Mean of the five clamped axes, rounded half up."""
    values = scores.clamped().axis_values()
    return round_half_up(sum(values) / len(values))


def radar_chart(scores: PerformanceScores) -> List[RadarPoint]:
    return [RadarPoint(category=label, score=getattr(scores, attr)) for label, attr in RADAR_CATEGORIES]


def format_transcript(history: List[Message]) -> str:
    """Render the conversation for the prompt, leaving out system messages."""
    return "\n".join(
        f"{m.role.value}: {m.content}" for m in history if m.role != MessageRole.SYSTEM
    )


def _string_list(value) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(item) for item in value if item is not None and str(item).strip()]


def fallback_feedback(session_id: str) -> Feedback:
    """Fixed, well-formed feedback used when synthesis fails."""
    scores = PerformanceScores(
        clarity=FALLBACK_SCORE,
        relevance=FALLBACK_SCORE,
        depth=FALLBACK_SCORE,
        communication=FALLBACK_SCORE,
        technical_accuracy=FALLBACK_SCORE,
    )
    return Feedback(
        session_id=session_id,
        overall_score=FALLBACK_SCORE,
        scores=scores,
        strengths=["Good communication", "Relevant experience"],
        improvement_areas=["Provide more specific examples", "Go deeper into technical details"],
        radar_chart_data=radar_chart(scores),
        key_takeaways=["Strong overall performance", "Focus on technical depth"],
    )


class FeedbackSynthesizer:
    """Builds the end-of-interview Feedback report. Never raises on model failure."""

    def __init__(self, provider: LLMProvider):
        self.provider = provider

    @staticmethod
    def build_prompt(transcript: str) -> str:
        return f"""Analyze the following mock interview and provide structured feedback.

Interview Conversation:
{transcript}

Generate feedback in JSON format with:
- overallScore: 0-100 overall performance score
- strengths: array of 2-3 key strengths
- improvementAreas: array of 2-3 areas for improvement
- keyTakeaways: array of 2-3 key takeaways

Return JSON only."""

    async def synthesize_detailed(
        self,
        session_id: str,
        history: List[Message],
        final_scores: PerformanceScores,
    ) -> ParseResult:
        """
        Produce feedback and report whether the qualitative fields came from the model.

        Args:
            session_id: Session the feedback belongs to
            history: Full, uncompressed conversation (system messages are skipped)
            final_scores: Raw tracked scores; clamped here

        Returns:
            Ok(Feedback) or Fallback(Feedback)
        """
        scores = final_scores.clamped()

        def build(data: dict) -> Feedback:
            # data.get("overallScore") is intentionally not read
            return Feedback(
                session_id=session_id,
                overall_score=overall_score(scores),
                scores=scores,
                strengths=_string_list(data.get("strengths")),
                improvement_areas=_string_list(data.get("improvementAreas", data.get("improvement_areas"))),
                radar_chart_data=radar_chart(scores),
                key_takeaways=_string_list(data.get("keyTakeaways", data.get("key_takeaways"))),
            )

        content = None
        try:
            response = await self.provider.generate(
                self.build_prompt(format_transcript(history)), FEEDBACK_SCENARIO
            )
            content = response.content
        except Exception as e:
            logger.warning(f"Feedback synthesis call failed for session {session_id}, using fallback: {e}", exc_info=True)

        result = parse_or_default(content, build, lambda: fallback_feedback(session_id))
        if result.is_fallback:
            logger.info(f"Using fallback feedback for session {session_id} ({result.reason})")
        return result

    async def synthesize(
        self,
        session_id: str,
        history: List[Message],
        final_scores: PerformanceScores,
    ) -> Feedback:
        result = await self.synthesize_detailed(session_id, history, final_scores)
        return result.value
