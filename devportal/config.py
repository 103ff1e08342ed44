"""Developer portal backend configuration.

Configuration sources (in priority order):
1. Environment variables (DEVPORTAL_ prefix)
2. Config file (config.yaml)
3. Defaults
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ServerConfig(BaseModel):
    """HTTP server configuration."""

    host: str = "0.0.0.0"
    port: int = 7007

    # Frontend dev server runs on :3000 and calls the backend on :7007
    cors_origins: list[str] = Field(default_factory=lambda: ["http://localhost:3000"])


class KubernetesConfig(BaseModel):
    """Kubernetes API access and resource conventions."""

    kubeconfig: str | None = None  # None = in-cluster config
    context: str | None = None

    # Annotation carrying the owning user entity ref on an APIProduct
    owner_annotation: str = "backstage.io/owner"

    # Label marking the APIProduct lifecycle (e.g. production, retired)
    lifecycle_label: str = "lifecycle"

    # Key inside the APIKey Secret holding the credential value
    secret_key: str = "api_key"


class TokenCredential(BaseModel):
    """Static bearer token mapped to a portal identity."""

    token: str
    user: str
    groups: list[str] = Field(default_factory=list)


class SecurityConfig(BaseModel):
    """Identity resolution configuration."""

    tokens: list[TokenCredential] = Field(default_factory=list)

    # Accept identity headers set by a fronting auth proxy.
    # Development: True
    # Production: only behind a proxy that strips client-supplied values
    trust_identity_headers: bool = False
    user_header: str = "X-Portal-User"
    groups_header: str = "X-Portal-Groups"


class PermissionGrant(BaseModel):
    """A permission pattern, optionally restricted to resource refs."""

    permission: str
    resources: list[str] | None = None


class RoleBinding(BaseModel):
    """Binds a user or group entity ref to a role."""

    subject: str
    role: str


def _default_roles() -> dict[str, list[PermissionGrant]]:
    """Reference personas: platform engineer, API owner, API consumer."""
    return {
        "platform-engineer": [PermissionGrant(permission="kuadrant.*")],
        "api-owner": [
            PermissionGrant(permission="kuadrant.planpolicy.read"),
            PermissionGrant(permission="kuadrant.planpolicy.list"),
            PermissionGrant(permission="kuadrant.apiproduct.create"),
            PermissionGrant(permission="kuadrant.apiproduct.list"),
            PermissionGrant(permission="kuadrant.apiproduct.read.own"),
            PermissionGrant(permission="kuadrant.apiproduct.update.own"),
            PermissionGrant(permission="kuadrant.apiproduct.delete.own"),
            PermissionGrant(permission="kuadrant.apikey.read.own"),
            PermissionGrant(permission="kuadrant.apikey.update.own"),
            PermissionGrant(permission="kuadrant.apikey.delete.own"),
        ],
        "api-consumer": [
            PermissionGrant(permission="kuadrant.planpolicy.list"),
            PermissionGrant(permission="kuadrant.apiproduct.list"),
            PermissionGrant(permission="kuadrant.apiproduct.read.all"),
            PermissionGrant(permission="kuadrant.apikey.create"),
            PermissionGrant(permission="kuadrant.apikey.read.own"),
            PermissionGrant(permission="kuadrant.apikey.update.own"),
            PermissionGrant(permission="kuadrant.apikey.delete.own"),
        ],
    }


def _default_bindings() -> list[RoleBinding]:
    return [
        RoleBinding(subject="group:default/platform-engineers", role="platform-engineer"),
        RoleBinding(subject="group:default/api-owners", role="api-owner"),
        RoleBinding(subject="group:default/api-consumers", role="api-consumer"),
    ]


class PolicyConfig(BaseModel):
    """Static role policy evaluated in-process."""

    roles: dict[str, list[PermissionGrant]] = Field(default_factory=_default_roles)
    bindings: list[RoleBinding] = Field(default_factory=_default_bindings)


class RemotePermissionConfig(BaseModel):
    """External permission decision endpoint."""

    url: str | None = None
    timeout_seconds: float = 10.0


class PermissionsConfig(BaseModel):
    """Permission decision configuration."""

    mode: Literal["policy", "remote"] = "policy"
    policy: PolicyConfig = Field(default_factory=PolicyConfig)
    remote: RemotePermissionConfig = Field(default_factory=RemotePermissionConfig)


class CatalogConfig(BaseModel):
    """Catalog sync configuration.

    When disabled, catalog refreshes triggered by APIProduct mutations
    are no-ops.
    """

    enabled: bool = False
    url: str | None = None
    token: str | None = None
    interval_seconds: int = 30
    run_on_startup: bool = True


class Settings(BaseSettings):
    """Portal backend settings."""

    model_config = SettingsConfigDict(
        env_prefix="DEVPORTAL_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    server: ServerConfig = Field(default_factory=ServerConfig)
    kubernetes: KubernetesConfig = Field(default_factory=KubernetesConfig)
    security: SecurityConfig = Field(default_factory=SecurityConfig)
    permissions: PermissionsConfig = Field(default_factory=PermissionsConfig)
    catalog: CatalogConfig = Field(default_factory=CatalogConfig)


def _load_config_file() -> dict:
    """Load configuration from YAML file if exists.

    Looks for config file in order:
    1. DEVPORTAL_CONFIG_FILE environment variable
    2. ./config.yaml
    3. /etc/devportal/config.yaml
    """
    config_paths = [
        os.environ.get("DEVPORTAL_CONFIG_FILE"),
        Path("config.yaml"),
        Path("/etc/devportal/config.yaml"),
    ]

    for path in config_paths:
        if path is None:
            continue
        path = Path(path)
        if path.exists():
            with open(path) as f:
                return yaml.safe_load(f) or {}

    return {}


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Configuration is loaded from:
    1. YAML config file (if exists)
    2. Environment variables (override)
    3. Defaults
    """
    file_config = _load_config_file()
    return Settings(**file_config)
