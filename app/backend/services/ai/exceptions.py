"""
Shared exceptions for AI service modules.

Each error carries the HTTP status and the message shown to the user;
technical details stay in the exception text and the logs.
"""

GENERIC_FAILURE_MESSAGE = (
    "Failed to extract information. Please check your API Key and ensure the image is clear."
)


class AIServiceError(Exception):
    """Raised when AI service operations fail."""

    status_code: int = 502
    user_message: str = GENERIC_FAILURE_MESSAGE


class MissingAPIKeyError(AIServiceError):
    """No API key was supplied with the request or configured on the server."""

    status_code = 401
    user_message = "API Key is missing. Please provide a valid API Key."


class InvalidAPIKeyError(AIServiceError):
    """The provider rejected the API key."""

    status_code = 401
    user_message = (
        "The API Key was rejected by the extraction service. Please check your API Key."
    )


class RateLimitError(AIServiceError):
    """The provider throttled the request."""

    status_code = 429
    user_message = "The extraction service is busy. Please wait a moment and try again."


class BlockedResponseError(AIServiceError):
    """The provider refused to answer because of its safety filters."""

    status_code = 422
    user_message = (
        "The document could not be analysed because the request was blocked "
        "by the model's safety filters."
    )


class EmptyResponseError(AIServiceError):
    """The provider answered without any text."""

    user_message = "No data returned from the model."


class ResponseParseError(AIServiceError):
    """The response text did not contain a JSON object."""


class ProviderRequestError(AIServiceError):
    """The remote call itself failed."""


class InternalExtractionError(AIServiceError):
    """Unexpected failure inside the service while extracting."""

    status_code = 500
