"""Error taxonomy for the chatbot core.

Only ``ValidationError`` and ``NotFoundError`` ever reach a caller.
``UpstreamError`` is recovered inside the controller and
``KnowledgeEntryError`` inside the index build.
"""


class ChatbotError(Exception):
    """Base class for all chatbot errors."""


class ValidationError(ChatbotError):
    """Bad caller input (empty or oversized message)."""


class NotFoundError(ChatbotError):
    """No business context exists for the requested id."""

    def __init__(self, business_id: str):
        super().__init__(f"Business not found: {business_id}")
        self.business_id = business_id


class UpstreamError(ChatbotError):
    """The generator call failed, timed out, or returned an unusable payload."""

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.status_code = status_code


class KnowledgeEntryError(ChatbotError):
    """A knowledge entry could not be indexed."""
