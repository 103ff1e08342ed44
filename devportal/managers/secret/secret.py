"""SecretDisclosureManager - show-once API key secret reads.

Per APIKey the secret moves Unreadable (no secretRef) -> Readable
(canReadSecret true) -> Consumed (canReadSecret false). Consumed is
terminal. The flag is cleared only after the value has been decoded, so
a failed Secret fetch never burns the single read.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from devportal.drivers.base import APIKEYS
from devportal.errors import ForbiddenError, NotFoundError, PortalError
from devportal.models import APIKey, Secret
from devportal.services.authorization import known_owner

if TYPE_CHECKING:
    from devportal.config import KubernetesConfig
    from devportal.drivers.base import ResourceGateway
    from devportal.services.authorization import Authorizer

logger = structlog.get_logger()


class SecretDisclosureManager:
    def __init__(
        self,
        gateway: "ResourceGateway",
        authorizer: "Authorizer",
        k8s_config: "KubernetesConfig",
    ) -> None:
        self._gateway = gateway
        self._authz = authorizer
        self._secret_key = k8s_config.secret_key
        self._log = logger.bind(manager="secret")

    async def read_once(self, namespace: str, name: str) -> str:
        """Return the decoded API key and mark it consumed.

        Raises:
            ForbiddenError: not permitted, or the secret was already read
            NotFoundError: no secretRef, Secret missing, or key missing
        """
        scope = await self._authz.resolve_scope("apikey", "read")

        data = await self._gateway.get(APIKEYS, namespace, name)
        key = APIKey.model_validate(data)

        result = await self._authz.check_ownership(
            scope,
            known_owner(key.requester),
            "you can only read your own api key secrets",
        )
        result.raise_for_denial()

        # Checked before touching the Secret store
        if not key.can_read_secret:
            self._log.info("secret.read.already_consumed", namespace=namespace, name=name)
            raise ForbiddenError("secret has already been read and cannot be retrieved again")

        secret_ref = key.secret_ref
        if secret_ref is None:
            raise NotFoundError("secret reference not found in apikey status")

        try:
            raw_secret = await self._gateway.get_secret(namespace, secret_ref.name)
        except PortalError as e:
            self._log.warning(
                "secret.read.fetch_failed",
                namespace=namespace,
                secret=secret_ref.name,
                error=str(e),
            )
            raise NotFoundError("secret not found") from e

        value = Secret.model_validate(raw_secret).decode(self._secret_key)
        if value is None:
            raise NotFoundError(f"secret key '{self._secret_key}' not found in secret")

        # Merge into the existing status so controller-owned fields survive
        status = dict(data.get("status") or {})
        status["canReadSecret"] = False
        await self._gateway.patch_status(APIKEYS, namespace, name, status)

        self._log.info(
            "secret.read.consumed",
            namespace=namespace,
            name=name,
            reader=self._authz.identity.user_entity_ref,
        )
        return value
