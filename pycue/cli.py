"""
pycue - Cue-point and loudness analysis CLI

Analyses an audio file for cue-in, cue-out, overlay and EBU R128 loudness
data and prints the result as JSON (or YAML). Tags left in the file by an
earlier analysis are reused when they are complete, which is much faster
than a full scan.

Example usage:
    pycue song.flac
    pycue --nice --blankskip 5 song.flac
    pycue --target -23 --noclip --format yaml song.mp3
"""

import argparse
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from pycue import __version__
from pycue.core.engine import create_cue_engine
from pycue.core.result_writer import create_result_writer
from pycue.utils.config import load_config, merge_config
from pycue.utils.errors import ConfigurationError, CueError
from pycue.utils.logging import setup_logging

# CLI option -> analysis config key
ANALYSIS_OPTIONS = {
    "target": "target",
    "silence": "silence",
    "overlay": "overlay",
    "longtail": "longtail",
    "extra": "extra",
    "drop": "drop",
    "blankskip": "blankskip",
}


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="pycue",
        description="Analyse audio file for cue-in, cue-out, overlay and EBU R128 loudness data",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
The LARGER value from the sustained ending and long tail calculations sets
the next track overlay point, so special song endings stay intact.

Examples:
    pycue song.flac
    pycue --nice --blankskip 5 song.flac
    pycue --force --format yaml song.mp3
        """
    )

    parser.add_argument(
        "file",
        type=Path,
        help="Audio file to analyse"
    )
    parser.add_argument(
        "-t", "--target",
        type=float,
        default=None,
        help="LUFS reference target; -23.0 to 0.0 (default: -18.0)"
    )
    parser.add_argument(
        "-s", "--silence",
        type=float,
        default=None,
        help="LU below integrated track loudness for cue-in & cue-out points (default: -42.0)"
    )
    parser.add_argument(
        "-o", "--overlay",
        type=float,
        default=None,
        help="LU below integrated track loudness to trigger next track (default: -8.0)"
    )
    parser.add_argument(
        "-l", "--longtail",
        type=float,
        default=None,
        help="Seconds of overlay duration considered a long tail, "
             "recalculated using --extra (default: 15.0)"
    )
    parser.add_argument(
        "-x", "--extra",
        type=float,
        default=None,
        help="Extra LU below overlay loudness for long tails and sustained endings (default: -12.0)"
    )
    parser.add_argument(
        "-d", "--drop",
        type=float,
        default=None,
        help="Max. percent loudness drop at the end to still count as a sustained "
             "ending; 0 to switch off (default: 40.0)"
    )
    parser.add_argument(
        "-k", "--noclip",
        action="store_true",
        default=None,
        help="Lower track gain if needed to keep true peaks at or below -1 dBFS"
    )
    parser.add_argument(
        "-b", "--blankskip",
        type=float,
        default=None,
        help="Skip silence within the track longer than this many seconds "
             "(hidden tracks); 0 to switch off (default: 0.0)"
    )
    parser.add_argument(
        "-e", "--exec-timeout",
        type=float,
        default=None,
        help="Timeout for each ffmpeg/ffprobe run, in seconds (default: 20)"
    )
    parser.add_argument(
        "-n", "--nice",
        action="store_true",
        help="Pretty-print JSON output"
    )
    parser.add_argument(
        "-f", "--force",
        action="store_true",
        help="Always scan, even if the file's tags would do"
    )
    parser.add_argument(
        "--format",
        choices=("json", "yaml"),
        default="json",
        help="Output format (default: json)"
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to configuration file"
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose output"
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"pycue {__version__}"
    )
    return parser


def apply_overrides(config: Dict[str, Any], args: argparse.Namespace) -> Dict[str, Any]:
    """Merge command line options that were given over the loaded configuration."""
    analysis = {
        key: getattr(args, option)
        for option, key in ANALYSIS_OPTIONS.items()
        if getattr(args, option) is not None
    }
    if args.noclip:
        analysis["noclip"] = True

    override: Dict[str, Any] = {"analysis": analysis}
    if args.exec_timeout is not None:
        override["scanner"] = {"timeout": args.exec_timeout}
    return merge_config(config, override)


def analyze_file(
    audio_file: Path,
    config: Dict[str, Any],
    fmt: str = "json",
    pretty: bool = False,
    force: bool = False,
    verbose: bool = False,
) -> int:
    """
    Analyze one file and print the result to stdout.

    Returns:
        Exit code (0 for success, 1 for error)
    """
    try:
        engine = create_cue_engine(config)
    except ConfigurationError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1

    try:
        with engine:
            result = engine.analyze(audio_file, force=force)
        create_result_writer(fmt, pretty=pretty).write(result)
        return 0

    except (CueError, OSError) as e:
        print(f"Error while calculating cue/loudness parameters: {e}", file=sys.stderr)
        if verbose:
            import traceback
            traceback.print_exc()
        return 1


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for pycue."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_config(str(args.config) if args.config else None)
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    config = apply_overrides(config, args)

    log_config = config.get("logging", {})
    setup_logging(
        level="DEBUG" if args.verbose else log_config.get("level", "WARNING"),
        log_format=log_config.get("format", "text"),
        log_file=log_config.get("file"),
    )

    return analyze_file(
        audio_file=args.file,
        config=config,
        fmt=args.format,
        pretty=args.nice,
        force=args.force,
        verbose=args.verbose,
    )


if __name__ == "__main__":
    sys.exit(main())
