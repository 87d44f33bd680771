"""
Cue engine for pycue.

Orchestrates one track: probe tags, reuse them when they suffice,
otherwise scan and analyze.
"""

import logging
import time
from pathlib import Path
from typing import Any, Dict, Optional, Union

from pycue.core.analyzer import CueAnalyzer
from pycue.core.assembler import assemble_result
from pycue.core.models import CueConfig, CueResult, Sufficient
from pycue.core.prober import TagProber
from pycue.core.scanner import DEFAULT_TIMEOUT, LoudnessScanner
from pycue.core.tags import check_cached_tags
from pycue.utils.logging import create_logger_with_context


class CueEngine:
    """
    Main engine - wires the collaborators to the analysis.

    Design:
    - Dependency Injection: scanner, prober and analyzer are injected
    - Cheap path first: cached tags are checked before any scan
    - No state between calls: every analyze() stands alone
    """

    def __init__(
        self,
        scanner: LoudnessScanner,
        prober: TagProber,
        config: Optional[CueConfig] = None,
        analyzer: Optional[CueAnalyzer] = None,
    ):
        """
        Args:
            scanner: Produces sample series (ffmpeg)
            prober: Reads cached tags (ffprobe)
            config: Analysis parameters (defaults if None)
            analyzer: Cue-point analyzer (default CueAnalyzer)
        """
        self.scanner = scanner
        self.prober = prober
        self.config = config or CueConfig()
        self.analyzer = analyzer or CueAnalyzer()
        self.logger = logging.getLogger("pycue.engine")

    def analyze(self, file_path: Union[str, Path], force: bool = False) -> CueResult:
        """
        Analyze one audio file.

        Args:
            file_path: Path to audio file
            force: Scan even if the cached tags would do

        Returns:
            CueResult: Result, ``from_cache`` set when no scan ran

        Raises:
            FileNotFoundError: File doesn't exist
            ProbeError, ScanError, ScanTimeoutError: External tool failed
            MalformedSeriesError: The scan produced no usable samples
        """
        file_path = Path(file_path)
        if not file_path.exists():
            raise FileNotFoundError(f"Audio file not found: {file_path}")

        log = create_logger_with_context("engine", {"track": file_path.name})
        start_time = time.perf_counter()

        tags = self.prober.probe(file_path)

        if force:
            log.info("Forced re-analysis")
        else:
            check = check_cached_tags(tags, self.config)
            if isinstance(check, Sufficient):
                log.info("Using cached tags, no scan needed")
                return check.result
            log.info(f"Re-analysis required: {check.reason}")

        series = self.scanner.scan(
            file_path,
            self.config.target_loudness,
            duration=_container_duration(tags),
        )
        decision = self.analyzer.analyze(series, self.config)
        result = assemble_result(decision, self.config)

        processing_time = time.perf_counter() - start_time
        log.info(f"Analysis complete in {processing_time:.3f}s")
        return result

    def __enter__(self) -> "CueEngine":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.logger.debug("Engine closed")


def _container_duration(tags: Dict[str, str]) -> Optional[float]:
    try:
        return float(tags["duration"])
    except (KeyError, ValueError):
        return None


def create_cue_engine(config: Dict[str, Any]) -> CueEngine:
    """
    Factory function to create a configured engine.

    Args:
        config: Configuration dict (see pycue.utils.config)

    Returns:
        CueEngine: Configured engine

    Raises:
        ConfigurationError: If an analysis parameter is out of range
    """
    cue_config = CueConfig.from_dict(config.get("analysis", {})).validate()

    scanner_config = config.get("scanner", {})
    timeout = float(scanner_config.get("timeout", DEFAULT_TIMEOUT))

    return CueEngine(
        scanner=LoudnessScanner(
            ffmpeg_path=scanner_config.get("ffmpeg", "ffmpeg"),
            timeout=timeout,
        ),
        prober=TagProber(
            ffprobe_path=scanner_config.get("ffprobe", "ffprobe"),
            timeout=timeout,
        ),
        config=cue_config,
    )


def analyze_track(
    file_path: Union[str, Path],
    config: Optional[CueConfig] = None,
    force: bool = False,
    timeout: float = DEFAULT_TIMEOUT,
) -> CueResult:
    """
    Analyze one track with ffmpeg/ffprobe from PATH.

    Example:
        result = analyze_track("song.flac", CueConfig(blank_skip=5.0))
        print(result.to_json(indent=2))
    """
    engine = CueEngine(
        scanner=LoudnessScanner(timeout=timeout),
        prober=TagProber(timeout=timeout),
        config=(config or CueConfig()).validate(),
    )
    return engine.analyze(file_path, force=force)
