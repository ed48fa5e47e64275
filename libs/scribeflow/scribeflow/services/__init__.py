"""Application services (transcription runs, Drive export)."""

from scribeflow.services.drive import DriveFile, GoogleDriveClient, OAuthTokens
from scribeflow.services.transcription import TranscriptionService, TranscriptStore, sanitize_filename

__all__ = [
    "DriveFile",
    "GoogleDriveClient",
    "OAuthTokens",
    "TranscriptStore",
    "TranscriptionService",
    "sanitize_filename",
]
