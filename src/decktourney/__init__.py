"""decktourney: automated AI-vs-AI card tournaments against a match backend."""

__version__ = "0.1.0"
