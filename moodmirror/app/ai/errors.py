from __future__ import annotations


class ClassifierError(Exception):
    """Terminal failure of an emotion classifier call.

    ``category`` lets callers branch on the kind of failure without
    matching on exception types; ``user_message`` is safe to show.
    """

    category = "api"
    user_message = "Something went wrong while analysing your check-in."

    def __init__(self, message: str | None = None, *, cause: BaseException | None = None) -> None:
        self.cause = cause
        super().__init__(message or self.user_message)


class InvalidAPIKeyError(ClassifierError):
    category = "auth"
    user_message = "Invalid or missing Gemini API key"


class RateLimitExceededError(ClassifierError):
    category = "rate_limit"
    user_message = "API rate limit exceeded. Please try again later."


class ClassifierAPIError(ClassifierError):
    category = "api"
    user_message = "Gemini API error"

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(f"Gemini API error: {message}")


class ClassifierNetworkError(ClassifierError):
    category = "network"
    user_message = "Network error. Check your connection and try again."


class ClassifierDecodeError(ClassifierError):
    category = "decode"
    user_message = "Failed to decode response"


class InvalidResponseError(ClassifierError):
    category = "invalid"
    user_message = "Invalid response from Gemini API"


__all__ = [
    "ClassifierAPIError",
    "ClassifierDecodeError",
    "ClassifierError",
    "ClassifierNetworkError",
    "InvalidAPIKeyError",
    "InvalidResponseError",
    "RateLimitExceededError",
]
