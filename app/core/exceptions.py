"""
Domain errors raised by the role-play session engine.

Routes translate these into HTTP status codes; services never raise
HTTPException directly.
"""


class RolePlayError(Exception):
    """Base class for role-play engine errors."""


class SessionNotFoundError(RolePlayError):
    """Session id is unknown, expired, or owned by another user."""

    def __init__(self, session_id: str):
        super().__init__(f"Interview session {session_id} not found")
        self.session_id = session_id


class SessionConcludedError(RolePlayError):
    """Session has already been concluded and is read-only."""

    def __init__(self, session_id: str):
        super().__init__(f"Interview session {session_id} is already concluded")
        self.session_id = session_id


class FeedbackNotFoundError(RolePlayError):
    """No feedback has been stored for the session yet."""

    def __init__(self, session_id: str):
        super().__init__(f"Feedback for session {session_id} not found")
        self.session_id = session_id


class LLMProviderError(RolePlayError):
    """Text-generation backend failed or is not configured."""
