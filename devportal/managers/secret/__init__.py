"""Show-once secret disclosure."""

from devportal.managers.secret.secret import SecretDisclosureManager

__all__ = ["SecretDisclosureManager"]
