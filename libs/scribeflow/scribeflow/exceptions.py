"""ScribeFlow exception hierarchy."""

from __future__ import annotations

from scribeflow.error_codes import ErrorCode

_RETRYABLE_STATUS = {408, 409, 425, 429}


class ScribeFlowError(Exception):
    """Base error for ScribeFlow."""

    error_code: ErrorCode | str | None = None


class ConfigurationError(ScribeFlowError):
    """Raised when configuration or inputs are invalid."""

    error_code = ErrorCode.INVALID_CONFIG


class InvalidPolicyError(ConfigurationError):
    """Raised when chunking/transcription thresholds are misconfigured."""

    error_code = ErrorCode.INVALID_POLICY


class ProbeError(ScribeFlowError):
    """Raised when a media file cannot be probed or has no audio tracks."""

    error_code = ErrorCode.PROBE_FAILED

    def __init__(self, path: str, message: str) -> None:
        super().__init__(f"probe failed for {path}: {message}")
        self.path = path
        self.message = message


class TranscodeError(ScribeFlowError):
    """Raised when the transcoding tool fails to produce an output file."""

    error_code = ErrorCode.COMPRESSION_FAILED

    def __init__(self, message: str, *, output_path: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.output_path = output_path


class SegmentCreationError(TranscodeError):
    """Raised when a segment file cannot be materialized; aborts the run."""

    error_code = ErrorCode.SEGMENT_CREATION_FAILED

    def __init__(self, segment_index: int, message: str, *, output_path: str | None = None) -> None:
        super().__init__(f"segment {segment_index}: {message}", output_path=output_path)
        self.segment_index = segment_index


class ProviderError(ScribeFlowError):
    """Raised when an external provider call fails."""

    def __init__(
        self,
        provider: str,
        message: str,
        *,
        status: int | None = None,
        error_code: ErrorCode | str | None = None,
    ) -> None:
        prefix = provider if status is None else f"{provider} (HTTP {status})"
        super().__init__(f"{prefix}: {message}")
        self.provider = provider
        self.message = message
        self.status = status
        self.error_code = error_code or ErrorCode.PROVIDER_FAILED

    @property
    def retryable(self) -> bool:
        # status=None means a transport failure (connection reset, DNS, ...).
        if self.status is None:
            return True
        return self.status in _RETRYABLE_STATUS or self.status >= 500


class ProviderTimeoutError(ProviderError):
    """Raised when a provider does not answer within the bounded wait."""

    def __init__(self, provider: str, timeout_s: float | None = None) -> None:
        message = "timed out" if timeout_s is None else f"timed out after {timeout_s:g}s"
        super().__init__(provider, message, error_code=ErrorCode.PROVIDER_TIMEOUT)
        self.timeout_s = timeout_s

    @property
    def retryable(self) -> bool:
        return True


class PersistenceError(ScribeFlowError):
    """Raised when a transcript record cannot be stored."""

    error_code = ErrorCode.PERSISTENCE_FAILED


class CleanupError(ScribeFlowError):
    """Temporary file/dir removal failure (logged, never raised to callers)."""

    def __init__(self, path: str, message: str) -> None:
        super().__init__(f"cleanup failed for {path}: {message}")
        self.path = path
        self.message = message


class RunCancelledError(ScribeFlowError):
    """Raised inside a run once an external cancellation signal is observed."""

    error_code = ErrorCode.CANCELLED


class DriveError(ScribeFlowError):
    """Raised when a Google Drive / OAuth call fails."""

    error_code = ErrorCode.DRIVE_FAILED

    def __init__(self, message: str, *, status: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status = status


class DriveAuthError(DriveError):
    """Raised when the Drive access token is missing, invalid or expired."""
