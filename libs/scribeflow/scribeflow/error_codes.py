"""Canonical error codes surfaced to API/UI."""

from __future__ import annotations

from enum import Enum


class ErrorCode(str, Enum):
    UNKNOWN = "UNKNOWN"
    INVALID_MEDIA = "INVALID_MEDIA"
    INVALID_CONFIG = "INVALID_CONFIG"
    INVALID_POLICY = "INVALID_POLICY"

    PROBE_FAILED = "PROBE_FAILED"
    COMPRESSION_FAILED = "COMPRESSION_FAILED"
    SEGMENT_CREATION_FAILED = "SEGMENT_CREATION_FAILED"

    PROVIDER_FAILED = "PROVIDER_FAILED"
    PROVIDER_TIMEOUT = "PROVIDER_TIMEOUT"
    ALL_SEGMENTS_FAILED = "ALL_SEGMENTS_FAILED"

    CANCELLED = "CANCELLED"
    PERSISTENCE_FAILED = "PERSISTENCE_FAILED"
    DRIVE_FAILED = "DRIVE_FAILED"
