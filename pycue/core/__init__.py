"""
Core module containing data models, the cue analysis and its collaborators.

Uses lazy imports for modules that drive external processes.
"""

# Models are lightweight - import directly
from pycue.core.models import (
    Sample,
    SampleSeries,
    CueConfig,
    Decision,
    CueResult,
    Sufficient,
    Insufficient,
)

__all__ = [
    # Models (always available)
    "Sample",
    "SampleSeries",
    "CueConfig",
    "Decision",
    "CueResult",
    "Sufficient",
    "Insufficient",
    # Analysis
    "CueAnalyzer",
    "BaseAnalyzer",
    "compute_gain",
    "check_cached_tags",
    "assemble_result",
    # Collaborators and engine (lazy loaded)
    "LoudnessScanner",
    "TagProber",
    "CueEngine",
    "create_cue_engine",
    "analyze_track",
    "ResultWriter",
    "JSONResultWriter",
    "YAMLResultWriter",
    "create_result_writer",
]


def __getattr__(name: str):
    """Lazy load analysis, collaborator and engine modules."""
    if name == "CueAnalyzer":
        from pycue.core.analyzer import CueAnalyzer
        return CueAnalyzer
    elif name == "BaseAnalyzer":
        from pycue.core.analyzer_base import BaseAnalyzer
        return BaseAnalyzer
    elif name == "compute_gain":
        from pycue.core.gain import compute_gain
        return compute_gain
    elif name == "check_cached_tags":
        from pycue.core.tags import check_cached_tags
        return check_cached_tags
    elif name == "assemble_result":
        from pycue.core.assembler import assemble_result
        return assemble_result
    elif name == "LoudnessScanner":
        from pycue.core.scanner import LoudnessScanner
        return LoudnessScanner
    elif name == "TagProber":
        from pycue.core.prober import TagProber
        return TagProber
    elif name in ("CueEngine", "create_cue_engine", "analyze_track"):
        from pycue.core import engine
        return getattr(engine, name)
    elif name in ("ResultWriter", "JSONResultWriter", "YAMLResultWriter", "create_result_writer"):
        from pycue.core import result_writer
        return getattr(result_writer, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
