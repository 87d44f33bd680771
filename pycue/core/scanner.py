"""
Loudness scanner for pycue.

Runs ffmpeg's ebur128 filter over a file and turns the printed frame
metadata into a SampleSeries. This is the expensive step the cached tags
exist to avoid.
"""

import logging
import math
import subprocess
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple, Union

from pycue.core.models import Sample, SampleSeries
from pycue.utils.errors import MalformedSeriesError, ScanError, ScanTimeoutError

DEFAULT_TIMEOUT: float = 20.0  # seconds

R128_PREFIX = "lavfi.r128."

logger = logging.getLogger(__name__)


class LoudnessScanner:
    """
    Produces a SampleSeries for a file by running ffmpeg.

    Stateless apart from its settings, so one instance can serve
    concurrent scans.
    """

    def __init__(self, ffmpeg_path: str = "ffmpeg", timeout: float = DEFAULT_TIMEOUT):
        """
        Args:
            ffmpeg_path: ffmpeg executable
            timeout: Seconds before a scan is killed
        """
        self.ffmpeg_path = ffmpeg_path
        self.timeout = timeout

    def build_command(self, file_path: Path, target_loudness: float) -> List[str]:
        """ffmpeg command line printing ebur128 metadata for every frame to stdout."""
        audio_filter = (
            f"ebur128=target={target_loudness:g}:peak=true:metadata=1,"
            "ametadata=mode=print:file=-"
        )
        return [
            self.ffmpeg_path,
            "-hide_banner",
            "-nostdin",
            "-v", "error",
            "-i", str(file_path),
            "-vn",
            "-af", audio_filter,
            "-f", "null",
            "-",
        ]

    def scan(
        self,
        file_path: Union[str, Path],
        target_loudness: float,
        duration: Optional[float] = None,
    ) -> SampleSeries:
        """
        Scan a file.

        Args:
            file_path: Audio file
            target_loudness: Target passed on to ebur128, LUFS
            duration: Container duration if already known

        Returns:
            SampleSeries: One sample per ebur128 frame (every 0.1s)

        Raises:
            ScanError: ffmpeg could not be started or failed
            ScanTimeoutError: ffmpeg ran longer than the timeout
            MalformedSeriesError: ffmpeg printed no usable frames
        """
        file_path = Path(file_path)
        cmd = self.build_command(file_path, target_loudness)
        logger.info(f"Scanning loudness: {file_path}")
        logger.debug(f"Running: {' '.join(cmd)}")

        try:
            proc = subprocess.Popen(
                cmd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                errors="replace",
            )
        except OSError as e:
            raise ScanError(
                f"Failed to start {self.ffmpeg_path}: {e}",
                file_path=str(file_path),
            ) from e

        try:
            stdout, stderr = proc.communicate(timeout=self.timeout)
        except subprocess.TimeoutExpired as e:
            proc.kill()
            proc.communicate()
            raise ScanTimeoutError(
                f"Loudness scan exceeded {self.timeout:g}s: {file_path}",
                file_path=str(file_path),
                timeout=self.timeout,
            ) from e

        if proc.returncode != 0:
            raise ScanError(
                f"ffmpeg exited with code {proc.returncode}: {stderr.strip()}",
                file_path=str(file_path),
                returncode=proc.returncode,
                stderr=stderr,
            )

        samples = parse_ebur128_output(stdout.splitlines())
        logger.debug(f"Parsed {len(samples)} loudness frames")
        return SampleSeries(samples, track_duration=duration)


def parse_ebur128_output(lines: Iterable[str]) -> Tuple[Sample, ...]:
    """
    Parse ``ametadata=mode=print`` output of the ebur128 filter.

    Accepts the multi-line form ffmpeg prints::

        frame:12   pts:57600   pts_time:1.2
        lavfi.r128.M=-18.461
        lavfi.r128.I=-19.102
        ...

    as well as all of a frame on one line. Key/value lines after the last
    ``frame:`` belong to that frame.

    Raises:
        MalformedSeriesError: If no frame has a timestamp
    """
    frames: List[Dict[str, str]] = []
    current: Optional[Dict[str, str]] = None

    for line in lines:
        for token in line.split():
            if token.startswith("frame:"):
                current = {}
                frames.append(current)
                continue
            if current is None:
                current = {}
                frames.append(current)
            if token.startswith("pts_time:"):
                current["pts_time"] = token[len("pts_time:"):]
            elif token.startswith(R128_PREFIX) and "=" in token:
                key, _, value = token.partition("=")
                current[key[len(R128_PREFIX):]] = value

    samples = []
    for index, frame in enumerate(frames):
        sample = _frame_to_sample(index, frame)
        if sample is not None:
            samples.append(sample)

    if not samples:
        raise MalformedSeriesError(
            "ffmpeg produced no loudness frames", sample_count=0
        )
    return tuple(samples)


def _frame_to_sample(index: int, frame: Dict[str, str]) -> Optional[Sample]:
    try:
        timestamp = float(frame["pts_time"])
    except (KeyError, ValueError):
        logger.warning(f"Dropping frame {index} without a usable pts_time: {frame}")
        return None

    peaks = sorted(
        (int(key[len("true_peaks_ch"):]), _number(value, 0.0))
        for key, value in frame.items()
        if key.startswith("true_peaks_ch") and key[len("true_peaks_ch"):].isdigit()
    )

    return Sample(
        timestamp=max(0.0, timestamp),
        momentary_loudness=_number(frame.get("M"), float("-inf")),
        integrated_loudness=_number(frame.get("I"), float("-inf")),
        true_peaks=tuple(peak for _, peak in peaks),
        loudness_range=_number(frame.get("LRA"), 0.0),
    )


def _number(value: Optional[str], default: float) -> float:
    """Parse an ffmpeg number; missing, garbled and nan give ``default``."""
    if value is None:
        return default
    try:
        number = float(value)
    except ValueError:
        return default
    if math.isnan(number):
        return default
    return number
