"""Resource gateway drivers."""

from devportal.drivers.base import (
    APIKEYS,
    APIPRODUCTS,
    HTTPROUTES,
    PLANPOLICIES,
    ResourceGateway,
    ResourceType,
)

__all__ = [
    "APIKEYS",
    "APIPRODUCTS",
    "HTTPROUTES",
    "PLANPOLICIES",
    "ResourceGateway",
    "ResourceType",
]
