"""
Custom exceptions for pycue.

This module defines a hierarchy of exceptions for the hard failures of a
cue analysis. A cache miss is not an exception: see ``pycue.core.tags``.
"""

from typing import Any, Optional


class CueError(Exception):
    """Base exception for all cue analysis errors."""

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} (Details: {self.details})"
        return self.message


class ScanError(CueError):
    """Raised when the ffmpeg loudness scan fails."""

    def __init__(
        self,
        message: str,
        file_path: Optional[str] = None,
        returncode: Optional[int] = None,
        stderr: Optional[str] = None,
    ):
        super().__init__(message)
        self.file_path = file_path
        self.returncode = returncode
        self.stderr = stderr
        self.details = {"file_path": file_path, "returncode": returncode}


class ScanTimeoutError(ScanError):
    """Raised when an external process exceeds its execution timeout."""

    def __init__(
        self,
        message: str,
        file_path: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        super().__init__(message, file_path=file_path)
        self.timeout = timeout
        self.details = {"file_path": file_path, "timeout": timeout}


class ProbeError(CueError):
    """Raised when ffprobe cannot read the tags of a file."""

    def __init__(self, message: str, file_path: Optional[str] = None):
        super().__init__(message, details={"file_path": file_path})
        self.file_path = file_path


class MalformedSeriesError(CueError):
    """Raised when a sample series is empty or out of order."""

    def __init__(self, message: str, sample_count: Optional[int] = None):
        super().__init__(message, details={"sample_count": sample_count})
        self.sample_count = sample_count


class AnalysisError(CueError):
    """Raised when the cue-point analysis fails unexpectedly."""

    def __init__(
        self,
        message: str,
        analyzer_name: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(message)
        self.analyzer_name = analyzer_name
        self.original_error = original_error
        self.details = {
            "analyzer_name": analyzer_name,
            "original_error": str(original_error) if original_error else None,
        }


class ConfigurationError(CueError):
    """Raised when configuration is invalid or missing."""

    def __init__(self, message: str, config_key: Optional[str] = None):
        super().__init__(message)
        self.config_key = config_key
        self.details = {"config_key": config_key}


class TagValueError(CueError, ValueError):
    """Raised when a cached tag holds a value that is not a number."""

    def __init__(self, key: str, value: str):
        super().__init__(f"unexpected value [{value}] found in [{key}] tag")
        self.key = key
        self.value = value

    def __str__(self) -> str:
        return self.message

