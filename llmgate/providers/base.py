"""
Shared adapter behavior.

BaseProvider holds the mutable configuration every adapter needs
(api key, base URL, default model, timeout, retries, organization id),
answers availability and feature queries, and implements complete()
on top of chat_completion(). Vendor adapters subclass it and add the
optional contracts they support.
"""

from __future__ import annotations

import logging
from typing import Any, ClassVar, Optional, Union

from llmgate.domain.enums import ModelCapability
from llmgate.domain.responses import CompletionResponse
from llmgate.providers.contracts import ProviderAdapter

logger = logging.getLogger(__name__)


class BaseProvider(ProviderAdapter):
    """
    Base class for vendor adapters.

    Subclasses set the class attributes below and implement the vendor
    calls. An SDK client can be injected for tests; otherwise one is
    built lazily from the current configuration and rebuilt after
    configure().
    """

    provider_identifier: ClassVar[str] = ""
    provider_name: ClassVar[str] = ""
    features: ClassVar[frozenset[str]] = frozenset()
    default_base_url: ClassVar[str] = ""
    fallback_model: ClassVar[str] = ""

    def __init__(
        self,
        config: Optional[dict[str, Any]] = None,
        client: Any = None,
        identifier: Optional[str] = None,
    ):
        self._identifier = identifier or self.provider_identifier
        self._client = client
        self._client_injected = client is not None
        self.api_key = ""
        self.base_url = self.default_base_url
        self._default_model = self.fallback_model
        self.timeout = 30
        self.max_retries = 3
        self.organization_id = ""
        self.extra: dict[str, Any] = {}
        if config:
            self.configure(config)

    # --- Identity ---

    @property
    def identifier(self) -> str:
        return self._identifier

    @property
    def name(self) -> str:
        return self.provider_name

    @property
    def default_model(self) -> str:
        return self._default_model

    # --- Configuration ---

    def configure(self, config: dict[str, Any]) -> None:
        """Apply adapter config. Unknown keys are kept in `extra`."""
        for key, value in config.items():
            if key == "api_key":
                self.api_key = value or ""
            elif key == "base_url":
                self.base_url = value or self.default_base_url
            elif key == "default_model":
                self._default_model = value or self.fallback_model
            elif key == "timeout":
                self.timeout = int(value)
            elif key == "max_retries":
                self.max_retries = int(value)
            elif key == "organization_id":
                self.organization_id = value or ""
            else:
                self.extra[key] = value

        if not self._client_injected:
            self._client = None

        logger.debug(
            "provider_configured",
            extra={
                "provider": self.identifier,
                "keys": sorted(config.keys()),
            },
        )

    def get_configuration(self) -> dict[str, Any]:
        """Current configuration with the api key masked."""
        return {
            "api_key": "***" if self.api_key else "",
            "base_url": self.base_url,
            "default_model": self.default_model,
            "timeout": self.timeout,
            "max_retries": self.max_retries,
            "organization_id": self.organization_id,
        }

    def is_available(self) -> bool:
        return bool(self.api_key)

    def supports_feature(self, feature: Union[str, ModelCapability]) -> bool:
        value = feature.value if isinstance(feature, ModelCapability) else feature
        return value in self.features

    # --- Operations ---

    def complete(self, prompt: str, options: Optional[dict[str, Any]] = None) -> CompletionResponse:
        return self.chat_completion([{"role": "user", "content": prompt}], options)

    def get_available_models(self) -> dict[str, str]:
        return {self.default_model: self.default_model} if self.default_model else {}

    def test_connection(self) -> dict[str, Any]:
        """
        Make a real request to verify credentials and reachability.

        Raises whatever the transport raises; callers that need a
        non-raising probe use ProviderAdapterRegistry.test_provider_connection.
        """
        models = self.get_available_models()
        return {
            "success": True,
            "message": f"Connection successful. Found {len(models)} models.",
            "models": models,
        }

    # --- Helpers ---

    def _model_for(self, options: dict[str, Any]) -> str:
        return options.get("model") or self.default_model

    def __repr__(self) -> str:
        return f"{type(self).__name__}(identifier={self.identifier!r})"
