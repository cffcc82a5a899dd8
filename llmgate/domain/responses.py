"""
Normalized response types returned by every provider adapter.

Adapters translate their vendor's payload into these types so callers
never see vendor-specific shapes. Each type round-trips through a plain
dict (to_dict / from_dict) which is the shape stored by the cache.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Optional


# ---------------------------------------------------------------------------
# Usage
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class UsageStatistics:
    """Token usage reported by a provider for a single call."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0
    estimated_cost: Optional[float] = None  # USD, when known

    @classmethod
    def from_tokens(
        cls,
        prompt_tokens: int,
        completion_tokens: int,
        estimated_cost: Optional[float] = None,
    ) -> UsageStatistics:
        return cls(
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            total_tokens=prompt_tokens + completion_tokens,
            estimated_cost=estimated_cost,
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "prompt_tokens": self.prompt_tokens,
            "completion_tokens": self.completion_tokens,
            "total_tokens": self.total_tokens,
        }
        if self.estimated_cost is not None:
            data["estimated_cost"] = self.estimated_cost
        return data

    @classmethod
    def from_dict(cls, data: Optional[dict[str, Any]]) -> UsageStatistics:
        data = data or {}
        prompt = int(data.get("prompt_tokens", 0))
        completion = int(data.get("completion_tokens", 0))
        return cls(
            prompt_tokens=prompt,
            completion_tokens=completion,
            total_tokens=int(data.get("total_tokens", prompt + completion)),
            estimated_cost=data.get("estimated_cost"),
        )


# ---------------------------------------------------------------------------
# Completion
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CompletionResponse:
    """Result of a chat, completion or tool-calling request."""

    content: str
    model: str
    usage: UsageStatistics = field(default_factory=UsageStatistics)
    finish_reason: str = "stop"     # "stop", "length", "content_filter", "tool_calls"
    provider: str = ""
    tool_calls: Optional[list[dict[str, Any]]] = None
    metadata: Optional[dict[str, Any]] = None

    @property
    def text(self) -> str:
        return self.content

    def was_truncated(self) -> bool:
        return self.finish_reason == "length"

    def was_filtered(self) -> bool:
        return self.finish_reason == "content_filter"

    def is_complete(self) -> bool:
        return self.finish_reason == "stop"

    def has_tool_calls(self) -> bool:
        return bool(self.tool_calls)

    def to_dict(self) -> dict[str, Any]:
        return {
            "content": self.content,
            "model": self.model,
            "usage": self.usage.to_dict(),
            "finish_reason": self.finish_reason,
            "provider": self.provider,
            "tool_calls": self.tool_calls,
            "metadata": self.metadata,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CompletionResponse:
        return cls(
            content=data.get("content", ""),
            model=data.get("model", ""),
            usage=UsageStatistics.from_dict(data.get("usage")),
            finish_reason=data.get("finish_reason", "stop"),
            provider=data.get("provider", ""),
            tool_calls=data.get("tool_calls"),
            metadata=data.get("metadata"),
        )


# ---------------------------------------------------------------------------
# Embeddings
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class EmbeddingResponse:
    """One embedding vector per input text."""

    embeddings: list[list[float]]
    model: str
    usage: UsageStatistics = field(default_factory=UsageStatistics)
    provider: str = ""

    @property
    def vector(self) -> list[float]:
        """First vector (the only one for a single input)."""
        return self.embeddings[0] if self.embeddings else []

    @property
    def dimensions(self) -> int:
        return len(self.vector)

    @property
    def count(self) -> int:
        return len(self.embeddings)

    @staticmethod
    def normalize_vector(vector: list[float]) -> list[float]:
        magnitude = math.sqrt(sum(x * x for x in vector))
        if magnitude == 0:
            return list(vector)
        return [x / magnitude for x in vector]

    @staticmethod
    def cosine_similarity(vector_a: list[float], vector_b: list[float]) -> float:
        """
        Cosine similarity in [-1, 1]. Zero vectors score 0.0.

        Raises:
            ValueError: If the vectors differ in length.
        """
        if len(vector_a) != len(vector_b):
            raise ValueError("Vectors must have the same dimensions")

        dot = sum(a * b for a, b in zip(vector_a, vector_b))
        magnitude_a = math.sqrt(sum(a * a for a in vector_a))
        magnitude_b = math.sqrt(sum(b * b for b in vector_b))
        if magnitude_a == 0 or magnitude_b == 0:
            return 0.0
        return dot / (magnitude_a * magnitude_b)

    def to_dict(self) -> dict[str, Any]:
        return {
            "embeddings": self.embeddings,
            "model": self.model,
            "usage": self.usage.to_dict(),
            "provider": self.provider,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EmbeddingResponse:
        return cls(
            embeddings=data.get("embeddings", []),
            model=data.get("model", ""),
            usage=UsageStatistics.from_dict(data.get("usage")),
            provider=data.get("provider", ""),
        )


# ---------------------------------------------------------------------------
# Vision
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class VisionResponse:
    """Result of an image analysis request."""

    description: str
    model: str
    usage: UsageStatistics = field(default_factory=UsageStatistics)
    provider: str = ""
    confidence: Optional[float] = None
    detected_objects: Optional[list[dict[str, Any]]] = None
    metadata: Optional[dict[str, Any]] = None

    @property
    def text(self) -> str:
        return self.description

    def meets_confidence(self, threshold: float) -> bool:
        return self.confidence is not None and self.confidence >= threshold

    def to_dict(self) -> dict[str, Any]:
        return {
            "description": self.description,
            "model": self.model,
            "usage": self.usage.to_dict(),
            "provider": self.provider,
            "confidence": self.confidence,
            "detected_objects": self.detected_objects,
            "metadata": self.metadata,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> VisionResponse:
        return cls(
            description=data.get("description", ""),
            model=data.get("model", ""),
            usage=UsageStatistics.from_dict(data.get("usage")),
            provider=data.get("provider", ""),
            confidence=data.get("confidence"),
            detected_objects=data.get("detected_objects"),
            metadata=data.get("metadata"),
        )


# ---------------------------------------------------------------------------
# Chat Message
# ---------------------------------------------------------------------------

VALID_ROLES = ("system", "user", "assistant", "tool")


@dataclass(frozen=True)
class ChatMessage:
    """A single role/content message in a conversation."""

    role: str
    content: str

    def __post_init__(self) -> None:
        if self.role not in VALID_ROLES:
            raise ValueError(
                f'Invalid role "{self.role}". Valid roles: {", ".join(VALID_ROLES)}'
            )

    @classmethod
    def system(cls, content: str) -> ChatMessage:
        return cls("system", content)

    @classmethod
    def user(cls, content: str) -> ChatMessage:
        return cls("user", content)

    @classmethod
    def assistant(cls, content: str) -> ChatMessage:
        return cls("assistant", content)

    @classmethod
    def tool(cls, content: str) -> ChatMessage:
        return cls("tool", content)

    @classmethod
    def from_dict(cls, data: dict[str, str]) -> ChatMessage:
        return cls(role=data["role"], content=data["content"])

    def to_dict(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


def normalize_messages(messages: list[Any]) -> list[dict[str, Any]]:
    """Accept ChatMessage objects or plain dicts; return plain dicts."""
    return [m.to_dict() if isinstance(m, ChatMessage) else dict(m) for m in messages]
