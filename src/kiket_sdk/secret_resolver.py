from __future__ import annotations

import logging
import os
from typing import Any, Mapping

__all__ = ["SecretResolver"]

_LOGGER = logging.getLogger(__name__)


class SecretResolver:
    """
    Resolve a secret for one webhook delivery.

    Per-organization secrets bundled in the payload win over the extension's
    process-wide defaults (the environment). Missing keys resolve to None.
    """

    def __init__(
        self,
        payload_secrets: Mapping[Any, Any] | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self._payload_secrets = payload_secrets if isinstance(payload_secrets, Mapping) else {}
        self._environ = environ if environ is not None else os.environ

    @property
    def payload_secrets(self) -> Mapping[Any, Any]:
        return self._payload_secrets

    def resolve(self, key: Any) -> Any | None:
        try:
            value = self._payload_secrets.get(key)
        except TypeError:
            value = None
        if value is not None:
            return value
        name = str(key)
        value = self._payload_secrets.get(name)
        if value is not None:
            return value
        value = self._environ.get(name)
        if value is not None:
            _LOGGER.debug("secret.env_fallback key=%s", name)
        return value

    def __call__(self, key: Any) -> Any | None:
        return self.resolve(key)
