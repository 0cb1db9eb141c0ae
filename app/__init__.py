"""
Badminton video analyzer built with FastAPI, exposing
- an index.html UI,
- a per-session video upload and preview,
- and an analysis endpoint that forwards the video to Gemini
and returns the coaching breakdown as formatted text.
"""

__version__ = "0.2.0"
