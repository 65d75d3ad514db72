"""
Pydantic schemas for the role-play (mock interview) engine.

All models serialize with camelCase aliases so the wire format matches the
frontend contract (sessionId, conversationHistory, technicalAccuracy, ...).
"""
import enum
from datetime import datetime
from typing import Optional, List, Dict, Any
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


def normalize_score(value: float) -> float:
    """Clamp a score into the visible 0-100 range."""
    return min(100.0, max(0.0, value))


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class MessageRole(str, enum.Enum):
    SYSTEM = "system"
    ASSISTANT = "assistant"
    USER = "user"


class InterviewerStyle(str, enum.Enum):
    STRICT = "strict"
    FRIENDLY = "friendly"
    STRESS_TEST = "stress-test"


class SessionStatus(str, enum.Enum):
    UNINITIALIZED = "uninitialized"
    ACTIVE = "active"
    CONCLUDED = "concluded"


class Sentiment(str, enum.Enum):
    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"


class Message(CamelModel):
    """One conversation entry. Never mutated once appended."""
    model_config = ConfigDict(frozen=True)

    role: MessageRole
    content: str
    timestamp: datetime = Field(default_factory=datetime.utcnow)


class PerformanceScores(CamelModel):
    """Running competency scores. Raw values are unclamped; use clamped() for display."""
    clarity: float = 0.0
    relevance: float = 0.0
    depth: float = 0.0
    communication: float = 0.0
    technical_accuracy: float = 0.0

    def clamped(self) -> "PerformanceScores":
        return PerformanceScores(
            clarity=normalize_score(self.clarity),
            relevance=normalize_score(self.relevance),
            depth=normalize_score(self.depth),
            communication=normalize_score(self.communication),
            technical_accuracy=normalize_score(self.technical_accuracy),
        )

    def axis_values(self) -> List[float]:
        return [self.clarity, self.relevance, self.depth, self.communication, self.technical_accuracy]


class AnalysisResult(CamelModel):
    """Structured analysis of a single candidate answer."""
    keywords: List[str] = Field(default_factory=list, description="Key technical/domain keywords, in order")
    sentiment: Sentiment = Field(default=Sentiment.NEUTRAL, description="Overall sentiment of the answer")
    suggestions: List[str] = Field(default_factory=list, description="Improvement suggestions")
    relevance_score: float = Field(default=50.0, ge=0, le=100, description="Relevance score 0-100")

    @field_validator("keywords", "suggestions", mode="before")
    @classmethod
    def _coerce_string_list(cls, value: Any) -> List[str]:
        if not isinstance(value, list):
            return []
        return [str(item) for item in value if item is not None and str(item).strip()]

    @field_validator("sentiment", mode="before")
    @classmethod
    def _coerce_sentiment(cls, value: Any) -> str:
        text = str(value or "").strip().lower()
        if text in {s.value for s in Sentiment}:
            return text
        return Sentiment.NEUTRAL.value

    @field_validator("relevance_score", mode="before")
    @classmethod
    def _clamp_relevance(cls, value: Any) -> float:
        try:
            score = float(value)
        except (TypeError, ValueError, OverflowError):
            return 50.0
        if score != score:  # NaN
            return 50.0
        return normalize_score(score)


class RadarPoint(CamelModel):
    category: str
    score: float


class Feedback(CamelModel):
    """Final interview report produced once, at conclusion."""
    session_id: str
    overall_score: int = Field(..., ge=0, le=100)
    scores: PerformanceScores
    strengths: List[str] = Field(default_factory=list)
    improvement_areas: List[str] = Field(default_factory=list)
    radar_chart_data: List[RadarPoint] = Field(default_factory=list)
    key_takeaways: List[str] = Field(default_factory=list)


class InterviewConfig(CamelModel):
    """Session configuration supplied by the caller (and the resume/JD parsing pipeline)."""
    job_description: str = Field(..., min_length=1, description="Target job description text")
    interviewer_style: InterviewerStyle = Field(..., description="strict, friendly or stress-test")
    focus_areas: List[str] = Field(default_factory=list, description="Topics the interviewer should probe")
    resume_data: Optional[Dict[str, Any]] = Field(None, description="Parsed resume data, if available")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "jobDescription": "Backend engineer building REST APIs in Python",
                "interviewerStyle": "friendly",
                "focusAreas": ["APIs", "system design"],
            }
        },
    )


class RolePlaySession(CamelModel):
    """Full state of one mock-interview session."""
    session_id: str
    user_id: str
    status: SessionStatus = SessionStatus.UNINITIALIZED
    conversation_history: List[Message] = Field(default_factory=list)
    current_question: str = ""
    asked_questions: List[str] = Field(default_factory=list)
    user_performance: PerformanceScores = Field(default_factory=PerformanceScores)
    interviewer_persona: str = ""
    interviewer_style: InterviewerStyle
    focus_areas: List[str] = Field(default_factory=list)
    job_description: str = ""
    created_at: datetime = Field(default_factory=datetime.utcnow)


class TurnResult(CamelModel):
    """Outcome of one processed candidate answer."""
    follow_up_question: str
    analysis: AnalysisResult = Field(..., alias="realTimeAnalysis")


class ProcessResponseRequest(CamelModel):
    session_id: str = Field(..., min_length=1)
    user_response: str = Field(..., min_length=1)


class ConcludeInterviewRequest(CamelModel):
    session_id: str = Field(..., min_length=1)
