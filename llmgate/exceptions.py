"""
Custom exception hierarchy for llmgate.

Structured error handling with clear categories:
- Not-found / misconfiguration (unknown provider, no default, no model)
- Unsupported feature (adapter lacks a capability)
- Upstream failures (vendor API unreachable or rejecting a request)

None of these are caught inside the dispatch, selection or cache code.
They always reach the immediate caller.

Usage:
    from llmgate.exceptions import ProviderNotFoundError, UnsupportedFeatureError

    try:
        response = manager.vision(content)
    except UnsupportedFeatureError as e:
        print(f"{e.provider_id} cannot do {e.capability}")
"""

from __future__ import annotations

from typing import Optional


class LLMGateError(Exception):
    """
    Base exception for all llmgate errors.

    All custom exceptions inherit from this, so you can catch
    `LLMGateError` to handle any library-specific error.
    """

    def __init__(self, message: str, *, details: Optional[dict] = None):
        super().__init__(message)
        self.details = details or {}


# ── Provider Errors ───────────────────────────────────────────────


class ProviderError(LLMGateError):
    """Base class for errors raised while resolving or calling a provider."""


class ProviderNotFoundError(ProviderError):
    """
    Raised when a provider identifier cannot be resolved.

    Covers both an unknown identifier and the case where no identifier
    was given and no default provider is configured (provider_id is None).
    """

    def __init__(
        self,
        message: str,
        *,
        provider_id: Optional[str] = None,
        details: Optional[dict] = None,
    ):
        super().__init__(message, details=details)
        self.provider_id = provider_id


class ConfigurationHasNoModelError(ProviderError):
    """
    Raised when a configuration does not resolve to any model.

    Happens for fixed-mode configurations without an assigned model and
    for criteria-mode configurations that match no active model.
    """

    def __init__(
        self,
        message: str,
        *,
        configuration_identifier: str = "",
        details: Optional[dict] = None,
    ):
        super().__init__(message, details=details)
        self.configuration_identifier = configuration_identifier


class ProviderConfigurationError(ProviderError):
    """
    Raised when an adapter is missing required configuration or an
    adapter class registration is invalid.
    """

    def __init__(
        self,
        message: str,
        *,
        provider_id: Optional[str] = None,
        details: Optional[dict] = None,
    ):
        super().__init__(message, details=details)
        self.provider_id = provider_id


class ProviderConnectionError(ProviderError):
    """Raised when a vendor API is unreachable or returns a 5xx status."""

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        details: Optional[dict] = None,
    ):
        super().__init__(message, details=details)
        self.status_code = status_code


class ProviderResponseError(ProviderError):
    """Raised when a vendor API rejects a request with a 4xx status."""

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        details: Optional[dict] = None,
    ):
        super().__init__(message, details=details)
        self.status_code = status_code


# ── Capability Errors ─────────────────────────────────────────────


class UnsupportedFeatureError(LLMGateError):
    """
    Raised when the resolved adapter lacks the capability an operation
    needs. Always raised before any network interaction.
    """

    def __init__(
        self,
        message: str,
        *,
        capability: str = "",
        provider_id: str = "",
        details: Optional[dict] = None,
    ):
        super().__init__(message, details=details)
        self.capability = capability
        self.provider_id = provider_id


# ── Streaming ─────────────────────────────────────────────────────


class StreamConsumedError(LLMGateError):
    """Raised when a single-pass text stream is iterated a second time."""


# ── Settings ──────────────────────────────────────────────────────


class SettingsError(LLMGateError):
    """
    Raised when the llmgate settings file is missing or invalid.
    """

    def __init__(
        self,
        message: str,
        *,
        config_path: Optional[str] = None,
        details: Optional[dict] = None,
    ):
        super().__init__(message, details=details)
        self.config_path = config_path
