"""
pycue - cue points and loudness data for radio playout

Derives cue-in, cue-out, next-track overlay and ReplayGain-style gain for
an audio track from an EBU R128 loudness scan, for use with the Liquidsoap
``autocue:`` protocol. Results can be served from previously written tags
to avoid re-analysis.
"""

__version__ = "0.1.0"
__author__ = "pycue developers"
