"""
pycue - Main Entry Point

Example usage:
    python main.py path/to/song.flac
    python main.py --config config/pycue.yaml --nice path/to/song.flac
"""

import sys

from pycue.cli import main


if __name__ == "__main__":
    sys.exit(main())
