"""
Real-time analysis of a single candidate answer.

Uses the text-generation backend for keywords, sentiment, suggestions and a
relevance score, and falls back to deterministic keyword extraction when the
backend fails or returns something that is not usable JSON.
"""
import logging
import re
from typing import List

from app.llm.json_output import parse_or_default, ParseResult
from app.llm.provider import LLMProvider
from app.schemas.role_play import AnalysisResult, Sentiment

logger = logging.getLogger(__name__)

ANALYSIS_SCENARIO = "role-play-analysis"

STOP_WORDS = frozenset({
    "the", "and", "for", "with", "that", "this", "from", "have", "been",
    "were", "will", "your", "their", "about", "which", "would", "could",
    "should", "there", "what", "when", "then", "than", "into", "also",
    "just", "very", "they", "them", "some", "more",
})

FALLBACK_SUGGESTIONS = [
    "Provide more specific examples",
    "Include measurable outcomes",
]

MAX_FALLBACK_KEYWORDS = 5

_EDGE_PUNCTUATION = re.compile(r"^[^\w]+|[^\w]+$")


def extract_keywords(text: str, limit: int = MAX_FALLBACK_KEYWORDS) -> List[str]:
    """Distinct lowercase tokens longer than 3 characters, stop words removed, in order of appearance."""
    keywords: List[str] = []
    for raw in text.lower().split():
        word = _EDGE_PUNCTUATION.sub("", raw)
        if len(word) <= 3 or word in STOP_WORDS or word in keywords:
            continue
        keywords.append(word)
        if len(keywords) >= limit:
            break
    return keywords


def fallback_analysis(answer_text: str) -> AnalysisResult:
    """Deterministic analysis derived purely from the answer text."""
    return AnalysisResult(
        keywords=extract_keywords(answer_text),
        sentiment=Sentiment.NEUTRAL,
        suggestions=list(FALLBACK_SUGGESTIONS),
        relevance_score=50,
    )


def _build_analysis(data: dict) -> AnalysisResult:
    return AnalysisResult(
        keywords=data.get("keywords", []),
        sentiment=data.get("sentiment", "neutral"),
        suggestions=data.get("suggestions", []),
        relevance_score=data.get("relevanceScore", data.get("relevance_score", 50)),
    )


class ResponseAnalyzer:
    """Turns one candidate answer into an AnalysisResult. Never raises on model failure."""

    def __init__(self, provider: LLMProvider):
        self.provider = provider

    @staticmethod
    def build_prompt(answer_text: str) -> str:
        return f"""Analyze the following interview response and provide feedback.

Response: "{answer_text}"

Provide analysis in JSON format with:
- keywords: array of key technical/domain keywords found
- sentiment: overall sentiment (positive/neutral/negative)
- suggestions: array of 2-3 improvement suggestions
- relevanceScore: 0-100 score for how relevant the response is

Return JSON only."""

    async def analyze_detailed(self, answer_text: str) -> ParseResult:
        """Analyze an answer and report whether the result came from the model or the fallback."""
        content = None
        try:
            response = await self.provider.generate(self.build_prompt(answer_text), ANALYSIS_SCENARIO)
            content = response.content
        except Exception as e:
            logger.warning(f"Response analysis call failed, using rule-based fallback: {e}", exc_info=True)

        result = parse_or_default(content, _build_analysis, lambda: fallback_analysis(answer_text))
        if result.is_fallback:
            logger.info(f"Using rule-based response analysis ({result.reason})")
        return result

    async def analyze(self, answer_text: str) -> AnalysisResult:
        result = await self.analyze_detailed(answer_text)
        return result.value
