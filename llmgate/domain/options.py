"""
Typed per-call options.

Every dispatch operation accepts one of these models, a plain dict, or
None. Out-of-range values raise pydantic's ValidationError at
construction time, never at call time.

Usage:
    from llmgate.domain.options import ChatOptions

    options = ChatOptions.creative(max_tokens=500)
    manager.chat(messages, options)
"""

from __future__ import annotations

from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class _BaseOptions(BaseModel):
    """Shared behavior: dict form drops unset (None) values."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    provider: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)

    def get_provider(self) -> Optional[str]:
        return self.provider


# ---------------------------------------------------------------------------
# Chat
# ---------------------------------------------------------------------------

class ChatOptions(_BaseOptions):
    """Options for chat and text completion."""

    temperature: Optional[float] = Field(None, ge=0.0, le=2.0)
    max_tokens: Optional[int] = Field(None, ge=1)
    top_p: Optional[float] = Field(None, ge=0.0, le=1.0)
    frequency_penalty: Optional[float] = Field(None, ge=-2.0, le=2.0)
    presence_penalty: Optional[float] = Field(None, ge=-2.0, le=2.0)
    response_format: Optional[Literal["text", "json", "markdown"]] = None
    system_prompt: Optional[str] = None
    stop_sequences: Optional[list[str]] = None
    model: Optional[str] = None

    # Presets

    @classmethod
    def factual(cls, **overrides: Any) -> ChatOptions:
        """Low temperature for factual, consistent answers."""
        return cls(**{"temperature": 0.2, "top_p": 0.9, **overrides})

    @classmethod
    def creative(cls, **overrides: Any) -> ChatOptions:
        return cls(**{"temperature": 1.2, "top_p": 1.0, "presence_penalty": 0.6, **overrides})

    @classmethod
    def balanced(cls, **overrides: Any) -> ChatOptions:
        return cls(**{"temperature": 0.7, "max_tokens": 4096, **overrides})

    @classmethod
    def json_mode(cls, **overrides: Any) -> ChatOptions:
        return cls(**{"temperature": 0.3, "response_format": "json", **overrides})

    @classmethod
    def code(cls, **overrides: Any) -> ChatOptions:
        return cls(**{
            "temperature": 0.2,
            "max_tokens": 8192,
            "top_p": 0.95,
            "frequency_penalty": 0.0,
            **overrides,
        })


class ToolOptions(ChatOptions):
    """Chat options plus tool selection controls."""

    tool_choice: Optional[Literal["auto", "none", "required"]] = None
    parallel_tool_calls: Optional[bool] = None

    @classmethod
    def auto(cls, **overrides: Any) -> ToolOptions:
        return cls(**{"tool_choice": "auto", **overrides})

    @classmethod
    def required(cls, **overrides: Any) -> ToolOptions:
        return cls(**{"tool_choice": "required", **overrides})

    @classmethod
    def no_tools(cls, **overrides: Any) -> ToolOptions:
        return cls(**{"tool_choice": "none", **overrides})

    @classmethod
    def parallel(cls, **overrides: Any) -> ToolOptions:
        return cls(**{"tool_choice": "auto", "parallel_tool_calls": True, **overrides})


# ---------------------------------------------------------------------------
# Embeddings
# ---------------------------------------------------------------------------

class EmbeddingOptions(_BaseOptions):
    """
    Options for embedding generation.

    cache_ttl is consumed by the cache-through helpers and never sent to
    the vendor. 0 bypasses the cache.
    """

    model: Optional[str] = None
    dimensions: Optional[int] = Field(None, ge=1)
    cache_ttl: int = Field(86400, ge=0)

    @classmethod
    def standard(cls, **overrides: Any) -> EmbeddingOptions:
        return cls(**overrides)

    @classmethod
    def no_cache(cls, **overrides: Any) -> EmbeddingOptions:
        return cls(**{"cache_ttl": 0, **overrides})

    @classmethod
    def compact(cls, **overrides: Any) -> EmbeddingOptions:
        return cls(**{"dimensions": 256, **overrides})

    @classmethod
    def high_precision(cls, **overrides: Any) -> EmbeddingOptions:
        return cls(**{"dimensions": 1536, **overrides})

    def should_cache(self) -> bool:
        return self.cache_ttl > 0


# ---------------------------------------------------------------------------
# Vision
# ---------------------------------------------------------------------------

class VisionOptions(_BaseOptions):
    """Options for image analysis."""

    detail_level: Optional[Literal["auto", "low", "high"]] = None
    max_tokens: Optional[int] = Field(None, ge=1)
    temperature: Optional[float] = Field(None, ge=0.0, le=2.0)
    system_prompt: Optional[str] = None
    model: Optional[str] = None

    @classmethod
    def alt_text(cls, **overrides: Any) -> VisionOptions:
        return cls(**{"detail_level": "low", "max_tokens": 100, "temperature": 0.5, **overrides})

    @classmethod
    def detailed(cls, **overrides: Any) -> VisionOptions:
        return cls(**{"detail_level": "high", "max_tokens": 500, "temperature": 0.7, **overrides})

    @classmethod
    def quick(cls, **overrides: Any) -> VisionOptions:
        return cls(**{"detail_level": "low", "max_tokens": 200, "temperature": 0.5, **overrides})

    @classmethod
    def comprehensive(cls, **overrides: Any) -> VisionOptions:
        return cls(**{"detail_level": "high", "max_tokens": 1000, "temperature": 0.7, **overrides})


OptionsLike = Union[_BaseOptions, dict, None]


def options_to_dict(options: OptionsLike) -> dict[str, Any]:
    """Normalize any accepted options form into a fresh plain dict."""
    if options is None:
        return {}
    if isinstance(options, _BaseOptions):
        return options.to_dict()
    return dict(options)
