"""Virtual try-on pipeline backed by Gemini."""

__version__ = "3.0.0"
