"""APIKey request management."""

from devportal.managers.apikey.apikey import APIKeyManager, BulkItemResult, request_name

__all__ = ["APIKeyManager", "BulkItemResult", "request_name"]
