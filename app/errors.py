"""Errors raised along the upload, encode and submit pipeline."""

from typing import Optional


class AnalyzerError(Exception):
    """Base error carrying a taxonomy kind and a human-readable message."""

    kind = "AnalyzerError"
    default_message = "Something went wrong."

    def __init__(self, message: Optional[str] = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AnalyzerError):
    kind = "ValidationError"


class InvalidFile(ValidationError):
    kind = "InvalidFile"
    default_message = "Invalid file. Please select a valid video file."


class MissingExtension(ValidationError):
    kind = "MissingExtension"
    default_message = "File must have an extension. Please upload MP4, MOV, or AVI video."


class UnsupportedFormat(ValidationError):
    kind = "UnsupportedFormat"
    default_message = "Unsupported file format. Please upload MP4, MOV, or AVI video."


class FileTooLarge(ValidationError):
    kind = "FileTooLarge"
    default_message = "File too large. Please upload a video under 20MB."


class EncodingFailed(AnalyzerError):
    kind = "EncodingFailed"
    default_message = "Could not read the selected video."


class EmptyResult(AnalyzerError):
    kind = "EmptyResult"
    default_message = "No analysis result received from the API."


class RequestFailed(AnalyzerError):
    kind = "RequestFailed"
    default_message = "Error during analysis."

    def __init__(self, detail: Optional[str] = None) -> None:
        super().__init__(f"Error during analysis: {detail}" if detail else None)
        self.detail = detail


class SessionError(AnalyzerError):
    kind = "SessionError"


class SessionBusy(SessionError):
    kind = "SessionBusy"
    default_message = "An analysis is already running for this video."


class NoFileSelected(SessionError):
    kind = "NoFileSelected"
    default_message = "Upload a video before starting the analysis."
