"""Mapping from stress signals to prioritized farmer actions."""

from __future__ import annotations

from types import MappingProxyType
from typing import Sequence

from cropsat._numeric import round_to
from cropsat.results import ActionRecommendation, StressSignal

MAX_RECOMMENDATIONS: int = 4

# Catalog order is output order.
_CATALOG: MappingProxyType[str, ActionRecommendation] = MappingProxyType(
    {
        "water_stress": ActionRecommendation(
            id="water-balance-check",
            title="Run soil moisture check today",
            rationale=(
                "Recent satellite health dip suggests moisture deficit risk "
                "in one or more zones."
            ),
            priority="high",
            confidence=0.82,
        ),
        "nutrient_stress": ActionRecommendation(
            id="nutrient-correction",
            title="Do a targeted nutrient correction",
            rationale="Zone variation pattern is consistent with uneven nutrient uptake.",
            priority="medium",
            confidence=0.74,
        ),
        "pest_or_disease_risk": ActionRecommendation(
            id="pest-scouting",
            title="Scout weaker zone for pest/disease",
            rationale="Localized low-vigor patch may indicate early pest or disease onset.",
            priority="high",
            confidence=0.76,
        ),
        "cloud_uncertainty": ActionRecommendation(
            id="field-verification",
            title="Verify with field walk",
            rationale="Observation confidence is reduced due to cloud/metadata uncertainty.",
            priority="medium",
            confidence=0.68,
        ),
    }
)

_MAINTAIN_PRACTICE = ActionRecommendation(
    id="maintain-practice",
    title="Maintain current crop routine",
    rationale="No major stress pattern detected in current scan compared with baseline.",
    priority="low",
    confidence=0.7,
)


def build_recommendations(signals: Sequence[StressSignal]) -> list[ActionRecommendation]:
    """Turn the set of present signal types into recommendations.

    Only the signal types matter, not their order or confidence.
    ``growth_recovery`` has no action of its own; when no actionable
    signal is present a single low-priority "maintain-practice"
    recommendation is returned.

    Args:
        signals: Detected stress signals.

    Returns:
        One to four recommendations in catalog order, unique by id.

    Example:
        >>> [r.id for r in build_recommendations([])]
        ['maintain-practice']
    """
    present = {signal.type for signal in signals}
    chosen: dict[str, ActionRecommendation] = {}
    for signal_type, template in _CATALOG.items():
        if signal_type in present and template.id not in chosen:
            chosen[template.id] = template.model_copy(
                update={"confidence": round_to(template.confidence)}
            )

    if not chosen:
        return [_MAINTAIN_PRACTICE.model_copy()]
    return list(chosen.values())[:MAX_RECOMMENDATIONS]
