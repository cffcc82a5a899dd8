"""
Tests for ModelSelectionService: criteria matching and ranking.
"""

from __future__ import annotations

import pytest

from llmgate.domain.records import (
    LLMConfiguration,
    ModelRecord,
    ModelSelectionCriteria,
    ProviderRecord,
)
from llmgate.selection import ModelSelectionService


# ===========================================================================
# Fixtures
# ===========================================================================

class InMemoryModelRepository:
    def __init__(self, models):
        self.models = list(models)

    def find_active(self):
        return [m for m in self.models if m.is_active]


@pytest.fixture
def openai_record():
    return ProviderRecord("openai-prod", "openai", name="OpenAI", priority=80)


@pytest.fixture
def anthropic_record():
    return ProviderRecord("anthropic-prod", "anthropic", name="Anthropic", priority=30)


@pytest.fixture
def ollama_record():
    return ProviderRecord("ollama-local", "ollama", name="Ollama", priority=50)


def _service(*models):
    return ModelSelectionService(InMemoryModelRepository(models))


# ===========================================================================
# Matching
# ===========================================================================

class TestMatching:

    def test_empty_criteria_matches_every_active_model(self, openai_record):
        models = [
            ModelRecord("a", provider=openai_record),
            ModelRecord("b"),
            ModelRecord("c", is_active=False),
        ]
        service = _service(*models)
        assert [m.identifier for m in service.find_candidates(ModelSelectionCriteria())] == ["a", "b"]

    def test_all_capabilities_required(self):
        service = _service(
            ModelRecord("chat-only", capabilities="chat"),
            ModelRecord("both", capabilities="chat,vision"),
        )
        found = service.find_candidates({"capabilities": ["chat", "vision"]})
        assert [m.identifier for m in found] == ["both"]

    def test_adapter_type_filter(self, openai_record, ollama_record):
        service = _service(
            ModelRecord("gpt", provider=openai_record),
            ModelRecord("llama", provider=ollama_record),
            ModelRecord("orphan"),
        )
        found = service.find_candidates({"adapterTypes": ["ollama"]})
        assert [m.identifier for m in found] == ["llama"]

    def test_unknown_context_length_excluded_by_minimum(self):
        service = _service(
            ModelRecord("unknown", context_length=0),
            ModelRecord("small", context_length=8000),
            ModelRecord("big", context_length=128000),
        )
        found = service.find_candidates({"minContextLength": 16000})
        assert [m.identifier for m in found] == ["big"]

    def test_unknown_cost_allowed_under_maximum(self):
        service = _service(
            ModelRecord("unknown", cost_input=0),
            ModelRecord("cheap", cost_input=15),
            ModelRecord("pricey", cost_input=1500),
        )
        found = service.find_candidates({"maxCostInput": 300})
        assert [m.identifier for m in found] == ["unknown", "cheap"]

    def test_model_matches_criteria_accepts_dict(self):
        service = _service()
        assert service.model_matches_criteria(ModelRecord("m", capabilities="tools"), {"capabilities": ["tools"]})


# ===========================================================================
# Ranking
# ===========================================================================

class TestRanking:

    def test_priority_wins(self, openai_record, anthropic_record):
        low = ModelRecord("claude", provider=anthropic_record, is_default=True)
        high = ModelRecord("gpt", provider=openai_record)
        assert _service(low, high).find_matching_model({}) is high

    def test_vision_long_context_scenario(self, openai_record, anthropic_record, ollama_record):
        models = [
            ModelRecord("claude", provider=anthropic_record, capabilities="chat,vision", context_length=200000),
            ModelRecord("gpt-4o", provider=openai_record, capabilities="chat,vision", context_length=128000),
            ModelRecord("gpt-4o-mini", provider=openai_record, capabilities="chat", context_length=128000),
            ModelRecord("llava", provider=ollama_record, capabilities="chat,vision", context_length=4096),
        ]
        model = _service(*models).find_matching_model(
            {"capabilities": ["vision"], "minContextLength": 100000}
        )
        assert model.identifier == "gpt-4o"

    def test_model_without_provider_ranks_as_zero(self, ollama_record):
        orphan = ModelRecord("orphan", is_default=True)
        owned = ModelRecord("owned", provider=ollama_record)
        assert _service(orphan, owned).find_matching_model({}) is owned

    def test_lowest_cost_when_preferred(self, openai_record):
        models = [
            ModelRecord("unknown", provider=openai_record),
            ModelRecord("pricey", provider=openai_record, cost_input=500, cost_output=1500),
            ModelRecord("cheap", provider=openai_record, cost_input=15, cost_output=60),
        ]
        ranked = ModelSelectionService.rank_candidates(models, prefer_lowest_cost=True)
        assert [m.identifier for m in ranked] == ["cheap", "pricey", "unknown"]

    def test_cost_ignored_when_not_preferred(self, openai_record):
        models = [
            ModelRecord("pricey", provider=openai_record, cost_input=500, sorting=1),
            ModelRecord("cheap", provider=openai_record, cost_input=15, sorting=2),
        ]
        ranked = ModelSelectionService.rank_candidates(models)
        assert [m.identifier for m in ranked] == ["pricey", "cheap"]

    def test_cost_does_not_beat_priority(self, openai_record, anthropic_record):
        models = [
            ModelRecord("cheap-low", provider=anthropic_record, cost_input=1),
            ModelRecord("pricey-high", provider=openai_record, cost_input=900),
        ]
        ranked = ModelSelectionService.rank_candidates(models, prefer_lowest_cost=True)
        assert ranked[0].identifier == "pricey-high"

    def test_default_then_sorting(self, openai_record):
        models = [
            ModelRecord("late", provider=openai_record, sorting=9),
            ModelRecord("early", provider=openai_record, sorting=1),
            ModelRecord("default", provider=openai_record, sorting=5, is_default=True),
        ]
        ranked = ModelSelectionService.rank_candidates(models)
        assert [m.identifier for m in ranked] == ["default", "early", "late"]

    def test_full_tie_keeps_repository_order(self, openai_record):
        models = [ModelRecord(str(i), provider=openai_record) for i in range(5)]
        ranked = ModelSelectionService.rank_candidates(models)
        assert [m.identifier for m in ranked] == ["0", "1", "2", "3", "4"]

    def test_no_match(self):
        assert _service(ModelRecord("m")).find_matching_model({"capabilities": ["audio"]}) is None


# ===========================================================================
# Configurations
# ===========================================================================

class TestResolveModel:

    def test_fixed_returns_bound_model(self):
        bound = ModelRecord("bound")
        service = _service(ModelRecord("other", is_default=True))
        assert service.resolve_model(LLMConfiguration("c", model=bound)) is bound

    def test_fixed_without_model(self):
        assert _service(ModelRecord("m")).resolve_model(LLMConfiguration("c")) is None

    def test_criteria_mode(self, openai_record):
        vision = ModelRecord("vision", provider=openai_record, capabilities="vision")
        service = _service(ModelRecord("text", provider=openai_record), vision)
        configuration = LLMConfiguration(
            "c",
            selection_mode="criteria",
            model=ModelRecord("ignored"),
            criteria={"capabilities": ["vision"]},
        )
        assert service.resolve_model(configuration) is vision

    def test_selection_modes(self):
        assert ModelSelectionService.selection_modes() == {
            "fixed": "Fixed Model",
            "criteria": "Dynamic (Criteria)",
        }
