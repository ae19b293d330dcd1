"""Error taxonomy shared by the retrieval pipeline."""

from typing import Optional


class NotebriefError(Exception):
    """Base class for all notebrief errors."""
    pass


class InvalidQuery(NotebriefError):
    """Search input is empty or otherwise unusable."""
    pass


class UpstreamError(NotebriefError):
    """An external API (Notion or the LLM provider) answered with a failure."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class JsonExtractionFailed(NotebriefError):
    """No JSON object could be located in the model output."""
    pass


class MalformedSummary(NotebriefError):
    """Model output parsed as JSON but is not a usable summary object."""
    pass


class SummarizationFailed(NotebriefError):
    """Summarization could not produce a result."""
    pass


class RetryExhausted(NotebriefError):
    """Every attempt of a retried operation failed.

    The message names only the operation label; the underlying error is
    available as ``__cause__`` for internal diagnostics.
    """

    def __init__(self, label: str, attempts: int):
        super().__init__(f"{label} failed after {attempts} attempt(s)")
        self.label = label
        self.attempts = attempts
