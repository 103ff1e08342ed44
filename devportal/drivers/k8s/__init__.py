"""Kubernetes gateway."""

from devportal.drivers.k8s.k8s import K8sGateway

__all__ = ["K8sGateway"]
