"""
Plain records handed to the core by the persistence collaborator.

The core never loads or saves these; it only reads them. Setters that
clamp values in the stored schema are mirrored here in __post_init__ so
records built from raw rows behave the same way.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field, replace
from typing import Any, Iterable, Optional, Union

from llmgate.domain.enums import AdapterType, ModelCapability, SelectionMode
from llmgate.domain.options import ChatOptions


# ---------------------------------------------------------------------------
# Provider Record
# ---------------------------------------------------------------------------

@dataclass
class ProviderRecord:
    """A configured vendor endpoint (one row of the provider table)."""

    identifier: str
    adapter_type: str
    name: str = ""
    endpoint_url: str = ""
    api_key: str = ""
    organization_id: str = ""
    api_timeout: int = 30
    max_retries: int = 3
    priority: int = 50
    is_active: bool = True
    options: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if isinstance(self.adapter_type, AdapterType):
            self.adapter_type = self.adapter_type.value
        self.api_timeout = max(1, self.api_timeout)
        self.max_retries = max(0, self.max_retries)
        self.priority = max(0, min(100, self.priority))

    @property
    def adapter_type_enum(self) -> Optional[AdapterType]:
        return AdapterType.try_from(self.adapter_type)

    @property
    def effective_endpoint_url(self) -> str:
        """Explicit endpoint, or the adapter type's default one."""
        if self.endpoint_url:
            return self.endpoint_url
        adapter_type = self.adapter_type_enum
        return adapter_type.default_endpoint if adapter_type else ""


# ---------------------------------------------------------------------------
# Model Record
# ---------------------------------------------------------------------------

def _split_capabilities(value: Union[str, Iterable[str], None]) -> list[str]:
    if not value:
        return []
    if isinstance(value, str):
        parts = value.split(",")
    else:
        parts = [v.value if isinstance(v, ModelCapability) else v for v in value]
    return [p.strip() for p in parts if p.strip()]


@dataclass
class ModelRecord:
    """
    A specific vendor model.

    Costs are integer cents per 1M tokens. Zero cost or zero context
    length means "unknown".
    """

    identifier: str
    model_id: str = ""
    name: str = ""
    provider: Optional[ProviderRecord] = None
    capabilities: list[str] = field(default_factory=list)
    context_length: int = 0
    max_output_tokens: int = 0
    cost_input: int = 0
    cost_output: int = 0
    is_default: bool = False
    sorting: int = 0
    is_active: bool = True

    def __post_init__(self) -> None:
        self.capabilities = _split_capabilities(self.capabilities)
        self.context_length = max(0, self.context_length)
        self.max_output_tokens = max(0, self.max_output_tokens)
        self.cost_input = max(0, self.cost_input)
        self.cost_output = max(0, self.cost_output)

    def has_capability(self, capability: Union[str, ModelCapability]) -> bool:
        value = capability.value if isinstance(capability, ModelCapability) else capability
        return value in self.capabilities

    @property
    def priority(self) -> int:
        """Owning provider's priority; 0 when the model has no provider."""
        return self.provider.priority if self.provider is not None else 0

    @property
    def display_name(self) -> str:
        if self.provider is not None and self.provider.name:
            return f"{self.name} ({self.provider.name})"
        return self.name

    def has_pricing(self) -> bool:
        return self.cost_input > 0 or self.cost_output > 0

    def estimate_cost(self, input_tokens: int, output_tokens: int) -> float:
        """Estimated USD cost for the given token counts."""
        input_cost = (input_tokens / 1_000_000) * (self.cost_input / 100)
        output_cost = (output_tokens / 1_000_000) * (self.cost_output / 100)
        return input_cost + output_cost


# ---------------------------------------------------------------------------
# Selection Criteria
# ---------------------------------------------------------------------------

# Stored criteria use camelCase keys; snake_case is accepted as well
_CRITERIA_KEYS = {
    "capabilities": "capabilities",
    "adapterTypes": "adapter_types",
    "adapter_types": "adapter_types",
    "minContextLength": "min_context_length",
    "min_context_length": "min_context_length",
    "maxCostInput": "max_cost_input",
    "max_cost_input": "max_cost_input",
    "preferLowestCost": "prefer_lowest_cost",
    "prefer_lowest_cost": "prefer_lowest_cost",
}


@dataclass(frozen=True)
class ModelSelectionCriteria:
    """Constraints for picking a model dynamically. All clauses optional."""

    capabilities: tuple[str, ...] = ()
    adapter_types: tuple[str, ...] = ()
    min_context_length: int = 0
    max_cost_input: int = 0          # cents per 1M input tokens
    prefer_lowest_cost: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "capabilities", tuple(_split_capabilities(self.capabilities)))
        object.__setattr__(
            self,
            "adapter_types",
            tuple(a.value if isinstance(a, AdapterType) else a for a in self.adapter_types),
        )

    @classmethod
    def from_dict(cls, data: Optional[dict[str, Any]]) -> ModelSelectionCriteria:
        kwargs: dict[str, Any] = {}
        for key, value in (data or {}).items():
            name = _CRITERIA_KEYS.get(key)
            if name is None or value is None:
                continue
            kwargs[name] = value
        return cls(**kwargs)

    @classmethod
    def from_json(cls, raw: str) -> ModelSelectionCriteria:
        if not raw:
            return cls()
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            return cls()
        return cls.from_dict(data) if isinstance(data, dict) else cls()

    def to_dict(self) -> dict[str, Any]:
        return {
            "capabilities": list(self.capabilities),
            "adapterTypes": list(self.adapter_types),
            "minContextLength": self.min_context_length,
            "maxCostInput": self.max_cost_input,
            "preferLowestCost": self.prefer_lowest_cost,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    def has_criteria(self) -> bool:
        return bool(
            self.capabilities
            or self.adapter_types
            or self.min_context_length > 0
            or self.max_cost_input > 0
        )

    def requires_capability(self, capability: Union[str, ModelCapability]) -> bool:
        value = capability.value if isinstance(capability, ModelCapability) else capability
        return value in self.capabilities

    def allows_adapter_type(self, adapter_type: str) -> bool:
        # No restriction means every type is allowed
        return not self.adapter_types or adapter_type in self.adapter_types

    def with_capability(self, capability: Union[str, ModelCapability]) -> ModelSelectionCriteria:
        value = capability.value if isinstance(capability, ModelCapability) else capability
        if value in self.capabilities:
            return self
        return replace(self, capabilities=self.capabilities + (value,))

    def with_adapter_type(self, adapter_type: str) -> ModelSelectionCriteria:
        if adapter_type in self.adapter_types:
            return self
        return replace(self, adapter_types=self.adapter_types + (adapter_type,))

    def with_min_context_length(self, min_context_length: int) -> ModelSelectionCriteria:
        return replace(self, min_context_length=min_context_length)

    def with_max_cost_input(self, max_cost_input: int) -> ModelSelectionCriteria:
        return replace(self, max_cost_input=max_cost_input)

    def with_lowest_cost_preference(self, prefer: bool = True) -> ModelSelectionCriteria:
        return replace(self, prefer_lowest_cost=prefer)


# ---------------------------------------------------------------------------
# LLM Configuration
# ---------------------------------------------------------------------------

@dataclass
class LLMConfiguration:
    """
    A named, reusable invocation profile.

    Fixed mode binds `model`; criteria mode picks a model at call time
    from `criteria`. Either way the call options come from the override
    fields below.
    """

    identifier: str
    name: str = ""
    selection_mode: SelectionMode = SelectionMode.FIXED
    model: Optional[ModelRecord] = None
    criteria: ModelSelectionCriteria = field(default_factory=ModelSelectionCriteria)
    system_prompt: str = ""
    provider: str = ""       # provider hint, never forwarded to adapters
    model_hint: str = ""     # vendor model id override
    temperature: float = 0.7
    max_tokens: int = 1000
    top_p: float = 1.0
    frequency_penalty: float = 0.0
    presence_penalty: float = 0.0
    options: dict[str, Any] = field(default_factory=dict)
    is_active: bool = True
    is_default: bool = False

    def __post_init__(self) -> None:
        self.selection_mode = SelectionMode(self.selection_mode)
        if isinstance(self.criteria, dict):
            self.criteria = ModelSelectionCriteria.from_dict(self.criteria)
        self.temperature = max(0.0, min(2.0, self.temperature))
        self.max_tokens = max(1, self.max_tokens)
        self.top_p = max(0.0, min(1.0, self.top_p))
        self.frequency_penalty = max(-2.0, min(2.0, self.frequency_penalty))
        self.presence_penalty = max(-2.0, min(2.0, self.presence_penalty))

    def uses_criteria_selection(self) -> bool:
        return self.selection_mode is SelectionMode.CRITERIA

    def to_options(self) -> dict[str, Any]:
        """Flatten the overrides into a plain option map."""
        options: dict[str, Any] = {
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "top_p": self.top_p,
            "frequency_penalty": self.frequency_penalty,
            "presence_penalty": self.presence_penalty,
        }
        if self.system_prompt:
            options["system_prompt"] = self.system_prompt
        if self.provider:
            options["provider"] = self.provider
        if self.model_hint:
            options["model"] = self.model_hint
        options.update(self.options)
        return options

    def to_chat_options(self) -> ChatOptions:
        return ChatOptions(
            temperature=self.temperature,
            max_tokens=self.max_tokens,
            top_p=self.top_p,
            frequency_penalty=self.frequency_penalty,
            presence_penalty=self.presence_penalty,
            system_prompt=self.system_prompt or None,
            provider=self.provider or None,
            model=self.model_hint or None,
        )
