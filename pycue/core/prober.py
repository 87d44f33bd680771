"""
Tag prober for pycue.

Reads the tags a previous analysis may have left in a file, through
ffprobe's container-neutral JSON view.
"""

import json
import logging
import subprocess
from pathlib import Path
from typing import Any, Dict, List, Union

from pycue.core.scanner import DEFAULT_TIMEOUT
from pycue.core.tags import select_tags
from pycue.utils.errors import ProbeError, ScanTimeoutError

logger = logging.getLogger(__name__)


class TagProber:
    """Returns the known pycue/ReplayGain tags of a file, plus its duration."""

    def __init__(self, ffprobe_path: str = "ffprobe", timeout: float = DEFAULT_TIMEOUT):
        self.ffprobe_path = ffprobe_path
        self.timeout = timeout

    def build_command(self, file_path: Path) -> List[str]:
        return [
            self.ffprobe_path,
            "-v", "error",
            "-print_format", "json",
            "-show_format",
            "-show_streams",
            str(file_path),
        ]

    def probe(self, file_path: Union[str, Path]) -> Dict[str, str]:
        """
        Probe a file.

        Returns:
            Dict[str, str]: Lower-cased tags limited to the tag vocabulary,
            with ``duration`` taken from the container when it has one

        Raises:
            ProbeError: ffprobe could not be run, failed or printed garbage
            ScanTimeoutError: ffprobe ran longer than the timeout
        """
        file_path = Path(file_path)
        try:
            proc = subprocess.run(
                self.build_command(file_path),
                stdin=subprocess.DEVNULL,
                capture_output=True,
                text=True,
                errors="replace",
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired as e:
            raise ScanTimeoutError(
                f"Tag probe exceeded {self.timeout:g}s: {file_path}",
                file_path=str(file_path),
                timeout=self.timeout,
            ) from e
        except OSError as e:
            raise ProbeError(
                f"Failed to start {self.ffprobe_path}: {e}",
                file_path=str(file_path),
            ) from e

        if proc.returncode != 0:
            raise ProbeError(
                f"ffprobe exited with code {proc.returncode}: {proc.stderr.strip()}",
                file_path=str(file_path),
            )

        try:
            data = json.loads(proc.stdout)
        except json.JSONDecodeError as e:
            raise ProbeError(
                f"Unreadable ffprobe output: {e}", file_path=str(file_path)
            ) from e

        tags = extract_tags(data)
        logger.debug(f"Probed {len(tags)} known tags from {file_path.name}")
        return tags


def extract_tags(data: Dict[str, Any]) -> Dict[str, str]:
    """
    Collect known tags from parsed ffprobe JSON.

    Audio stream tags (where Ogg/Opus keep their comments) are read first,
    container tags override them. The container duration wins over a
    ``duration`` tag.
    """
    raw: Dict[str, str] = {}
    streams = data.get("streams") or []
    for stream in streams:
        if stream.get("codec_type") == "audio":
            raw.update(_lowered(stream.get("tags")))
    fmt = data.get("format") or {}
    raw.update(_lowered(fmt.get("tags")))

    tags = select_tags(raw)

    duration = fmt.get("duration")
    if duration is None:
        duration = next(
            (s.get("duration") for s in streams
             if s.get("codec_type") == "audio" and s.get("duration") is not None),
            None,
        )
    if duration is not None:
        tags["duration"] = str(duration)

    return tags


def _lowered(tags: Any) -> Dict[str, str]:
    if not isinstance(tags, dict):
        return {}
    return {str(k).lower(): str(v) for k, v in tags.items()}
