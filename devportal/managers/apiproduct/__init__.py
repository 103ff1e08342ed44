"""APIProduct management."""

from devportal.managers.apiproduct.apiproduct import APIProductManager

__all__ = ["APIProductManager"]
