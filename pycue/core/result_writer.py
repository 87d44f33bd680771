"""
Result writers for pycue.

New output formats can be added as ResultWriter subclasses without
touching the CLI.
"""

import sys
from abc import ABC, abstractmethod
from typing import Optional, TextIO

from pycue.core.models import CueResult


class ResultWriter(ABC):
    """Abstract base class for result writers (Strategy Pattern)."""

    @abstractmethod
    def render(self, result: CueResult) -> str:
        """Render a result as text."""

    def write(self, result: CueResult, stream: Optional[TextIO] = None) -> None:
        """Write a result to ``stream`` (stdout by default)."""
        text = self.render(result)
        if not text.endswith("\n"):
            text += "\n"
        (stream or sys.stdout).write(text)


class JSONResultWriter(ResultWriter):
    """Writes a result as JSON, compact or pretty-printed."""

    def __init__(self, pretty: bool = False):
        self.pretty = pretty

    def render(self, result: CueResult) -> str:
        return result.to_json(indent=2 if self.pretty else None)


class YAMLResultWriter(ResultWriter):
    """Writes a result as a YAML mapping."""

    def render(self, result: CueResult) -> str:
        return result.to_yaml()


def create_result_writer(fmt: str = "json", pretty: bool = False) -> ResultWriter:
    """
    Factory function for result writers.

    Args:
        fmt: "json" or "yaml"
        pretty: Indent JSON output

    Raises:
        ValueError: Unknown format
    """
    if fmt == "json":
        return JSONResultWriter(pretty=pretty)
    if fmt == "yaml":
        return YAMLResultWriter()
    raise ValueError(f"Unknown output format: {fmt}")
