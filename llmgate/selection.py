"""
Model selection engine.

Resolves an LLMConfiguration to a concrete ModelRecord. Fixed-mode
configurations return their bound model. Criteria-mode configurations
filter the active models against the criteria and pick the best one.

Ranking, applied in order:
    1. Provider priority, higher first (model without provider = 0)
    2. If prefer_lowest_cost: input + output cost, lower first;
       unknown (0) cost ranks after every known cost
    3. Default model first
    4. Sort order, lower first
Full ties keep the repository's order.

Usage:
    service = ModelSelectionService(model_repository)
    model = service.find_matching_model({"capabilities": ["vision"]})
"""

from __future__ import annotations

import logging
import math
from typing import Any, Optional, Protocol, Sequence, Union

from llmgate.domain.enums import SelectionMode
from llmgate.domain.records import LLMConfiguration, ModelRecord, ModelSelectionCriteria

logger = logging.getLogger(__name__)

CriteriaLike = Union[ModelSelectionCriteria, dict[str, Any], None]


class ModelRepository(Protocol):
    """Persistence collaborator: anything returning the active models."""

    def find_active(self) -> Sequence[ModelRecord]:
        ...


def _as_criteria(criteria: CriteriaLike) -> ModelSelectionCriteria:
    if isinstance(criteria, ModelSelectionCriteria):
        return criteria
    return ModelSelectionCriteria.from_dict(criteria)


class ModelSelectionService:
    """Picks models for configurations and ad-hoc criteria."""

    def __init__(self, model_repository: ModelRepository):
        self._model_repository = model_repository

    def resolve_model(self, configuration: LLMConfiguration) -> Optional[ModelRecord]:
        if not configuration.uses_criteria_selection():
            return configuration.model

        model = self.find_matching_model(configuration.criteria)
        logger.debug(
            "model_resolved",
            extra={
                "configuration": configuration.identifier,
                "model": model.identifier if model else None,
            },
        )
        return model

    def find_matching_model(self, criteria: CriteriaLike) -> Optional[ModelRecord]:
        criteria = _as_criteria(criteria)
        candidates = self.find_candidates(criteria)
        if not candidates:
            return None
        return self.rank_candidates(candidates, criteria.prefer_lowest_cost)[0]

    def find_candidates(self, criteria: CriteriaLike) -> list[ModelRecord]:
        """Active models matching the criteria, unranked."""
        criteria = _as_criteria(criteria)
        return [
            model
            for model in self._model_repository.find_active()
            if self.model_matches_criteria(model, criteria)
        ]

    def model_matches_criteria(self, model: ModelRecord, criteria: CriteriaLike) -> bool:
        criteria = _as_criteria(criteria)

        for capability in criteria.capabilities:
            if not model.has_capability(capability):
                return False

        if criteria.adapter_types:
            if model.provider is None:
                return False
            if model.provider.adapter_type not in criteria.adapter_types:
                return False

        if criteria.min_context_length > 0:
            # Unknown context length (0) cannot satisfy a minimum
            if model.context_length == 0 or model.context_length < criteria.min_context_length:
                return False

        if criteria.max_cost_input > 0:
            # Unknown cost (0) is allowed through
            if model.cost_input > criteria.max_cost_input:
                return False

        return True

    @staticmethod
    def rank_candidates(
        candidates: list[ModelRecord],
        prefer_lowest_cost: bool = False,
    ) -> list[ModelRecord]:
        """Return candidates sorted best-first (stable)."""

        def sort_key(model: ModelRecord) -> tuple:
            cost: float = 0
            if prefer_lowest_cost:
                cost = model.cost_input + model.cost_output
                if cost == 0:
                    cost = math.inf
            return (-model.priority, cost, not model.is_default, model.sorting)

        return sorted(candidates, key=sort_key)

    @staticmethod
    def selection_modes() -> dict[str, str]:
        return {
            SelectionMode.FIXED.value: "Fixed Model",
            SelectionMode.CRITERIA.value: "Dynamic (Criteria)",
        }
