"""
Shared exceptions for AI service modules.
"""


class AIServiceError(Exception):
    """Raised when the language model call fails or times out."""

    pass
