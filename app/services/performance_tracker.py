"""
Running competency scores for a role-play session.

Each axis is an exponential moving average that gives the newest answer a
weight of 0.3. Values are left unclamped here; PerformanceScores.clamped()
applies the 0-100 bound when scores are displayed or fed into feedback.
"""
from app.schemas.role_play import AnalysisResult, PerformanceScores

SMOOTHING_WEIGHT = 0.3
KEYWORD_DEPTH_POINTS = 10
TECHNICAL_WITH_KEYWORDS = 70
TECHNICAL_WITHOUT_KEYWORDS = 30


def smooth(previous: float, sample: float, weight: float = SMOOTHING_WEIGHT) -> float:
    return (1 - weight) * previous + weight * sample


class PerformanceTracker:
    """Applies one turn's analysis to the running scores."""

    def __init__(self, weight: float = SMOOTHING_WEIGHT):
        if not 0 < weight <= 1:
            raise ValueError(f"Smoothing weight must be in (0, 1], got {weight}")
        self.weight = weight

    def update(self, previous: PerformanceScores, analysis: AnalysisResult) -> PerformanceScores:
        relevance = analysis.relevance_score
        keyword_count = len(analysis.keywords)
        technical_sample = TECHNICAL_WITH_KEYWORDS if keyword_count > 0 else TECHNICAL_WITHOUT_KEYWORDS

        return PerformanceScores(
            clarity=smooth(previous.clarity, relevance, self.weight),
            relevance=smooth(previous.relevance, relevance, self.weight),
            depth=smooth(previous.depth, keyword_count * KEYWORD_DEPTH_POINTS, self.weight),
            communication=smooth(previous.communication, relevance, self.weight),
            technical_accuracy=smooth(previous.technical_accuracy, technical_sample, self.weight),
        )
