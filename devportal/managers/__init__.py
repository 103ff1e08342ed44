"""Manager layer - business logic."""

from devportal.managers.apikey import APIKeyManager
from devportal.managers.apiproduct import APIProductManager
from devportal.managers.planpolicy import PlanPolicyManager
from devportal.managers.secret import SecretDisclosureManager

__all__ = [
    "APIKeyManager",
    "APIProductManager",
    "PlanPolicyManager",
    "SecretDisclosureManager",
]
