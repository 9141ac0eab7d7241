from typing import Optional


class TakeoffError(RuntimeError):
    """Base class for failures the user must see."""


class AnalysisError(TakeoffError):
    """Raised when an analysis cannot produce a result."""

    def __init__(self, message: str, raw_text: Optional[str] = None):
        super().__init__(message)
        self.raw_text = raw_text


class JsonParseError(AnalysisError):
    """Raised when model output is still not JSON after repair."""


class PageRenderError(TakeoffError):
    pass


class AnalysisCancelled(Exception):
    """Cooperative cancellation; not a failure and never retried."""

    def __init__(self, message: str = "Analysis cancelled"):
        super().__init__(message)


class ConfigurationError(TakeoffError):
    """Raised when required settings such as the API key are missing."""
