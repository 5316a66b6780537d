"""Transformer and aggregator pairings selectable at configuration time."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional

from services.aggregator import Aggregator, MeanAggregator, PowerPercentageAggregator
from services.transformer import (
    LinearScaleTransformer,
    PiecewiseAdjustmentTransformer,
    ValueTransformer,
)


@dataclass(frozen=True)
class PipelinePolicy:
    name: str
    transformer: ValueTransformer
    aggregator: Aggregator
    value_label: str
    chart_label: str
    export_prefix: str
    chart_ceiling: Optional[float]
    reports_voltage: bool


VOLTAGE_POLICY = PipelinePolicy(
    name="voltage",
    transformer=LinearScaleTransformer(),
    aggregator=MeanAggregator(),
    value_label="Voltaje (V)",
    chart_label="Promedio de Voltaje (V)",
    export_prefix="voltajes",
    chart_ceiling=250,
    reports_voltage=True,
)

POWER_POLICY = PipelinePolicy(
    name="power",
    transformer=PiecewiseAdjustmentTransformer(),
    aggregator=PowerPercentageAggregator(),
    value_label="Potencia (%)",
    chart_label="Potencia generada (%)",
    export_prefix="potencias",
    chart_ceiling=None,
    reports_voltage=False,
)

POLICIES: Dict[str, PipelinePolicy] = {
    VOLTAGE_POLICY.name: VOLTAGE_POLICY,
    POWER_POLICY.name: POWER_POLICY,
}


def get_policy(name: str) -> PipelinePolicy:
    try:
        return POLICIES[name.strip().lower()]
    except KeyError as exc:
        raise ValueError(
            f"Unknown pipeline policy {name!r}; expected one of: {', '.join(sorted(POLICIES))}"
        ) from exc
