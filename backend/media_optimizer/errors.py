"""
Error types raised while turning a file into a metadata record.

Only ExtractionError and its subclasses ever reach callers. ProbeUnavailable
is raised by the precise capability and always handled by the extractor,
which falls back to the heuristic probe.
"""


class MediaOptimizerError(Exception):
    """Base exception for all media optimizer failures."""
    pass


class ProbeUnavailable(MediaOptimizerError):
    """Raised when the precise analysis capability is missing or fails."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Precise analysis unavailable: {reason}")


class ExtractionError(MediaOptimizerError):
    """Raised when no metadata at all can be extracted from a file."""

    def __init__(self, filename: str, reason: str):
        self.filename = filename
        self.reason = reason
        super().__init__(f"Failed to extract metadata from {filename}: {reason}")


class ExtractionTimeout(ExtractionError):
    """Raised when the heuristic probe does not answer in time."""

    def __init__(self, filename: str, timeout: float):
        self.timeout = timeout
        super().__init__(filename, f"metadata did not load within {timeout:g}s")


class ExtractionReadFailure(ExtractionError):
    """Raised when the heuristic probe cannot read the file."""
    pass
