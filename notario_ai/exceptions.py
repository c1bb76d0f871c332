"""
Custom exception hierarchy for the document pipeline and workspace.

Each exception type maps to the stage that failed, so that callers can tell
a transcription failure from an analysis failure from a research failure.
"""

from __future__ import annotations


class NotarioError(Exception):
    """Base exception for all NotárioAI failures."""

    def __init__(self, code: str, message: str, details: dict | None = None):
        self.code = code
        self.details = details or {}
        super().__init__(message)


class GatewayError(NotarioError):
    """The AI provider could not be reached or rejected the request."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__("AI_GATEWAY_ERROR", message, details)


class TranscriptionError(NotarioError):
    """The scanned image could not be transcribed."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__("TRANSCRIPTION_FAILED", message, details)


class AnalysisParseError(NotarioError):
    """The structured analysis was empty or did not match the expected shape."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__("ANALYSIS_PARSE_FAILED", message, details)


class ResearchError(NotarioError):
    """The grounded research call failed or returned no text."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__("RESEARCH_FAILED", message, details)


class ConfigurationError(NotarioError):
    """Required configuration (e.g. the API key) is missing."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__("CONFIGURATION_ERROR", message, details)


class UnsupportedDocumentError(NotarioError):
    """The uploaded file is empty or not a supported image type."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__("UNSUPPORTED_DOCUMENT", message, details)


class WorkspaceBusyError(NotarioError):
    """Another operation is already in flight for the current document."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__("WORKSPACE_BUSY", message, details)
