"""safesignal: safety signal detection and moderation counters."""

__version__ = "0.1.0"
