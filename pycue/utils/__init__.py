"""
Utility modules for configuration, logging, and error handling.
"""

from pycue.utils.errors import (
    CueError,
    ScanError,
    ScanTimeoutError,
    ProbeError,
    MalformedSeriesError,
    AnalysisError,
    ConfigurationError,
    TagValueError,
)
from pycue.utils.logging import get_logger, setup_logging, JSONFormatter
from pycue.utils.config import ConfigManager, load_config, get_default_config

__all__ = [
    "CueError",
    "ScanError",
    "ScanTimeoutError",
    "ProbeError",
    "MalformedSeriesError",
    "AnalysisError",
    "ConfigurationError",
    "TagValueError",
    "get_logger",
    "setup_logging",
    "JSONFormatter",
    "ConfigManager",
    "load_config",
    "get_default_config",
]
