"""Metric math shared by campaigns and analytics.

WHAT:
    Sums base measures (impressions, clicks, conversions, spend) and derives
    ratios (CTR, CPC, CPM, cost per conversion, conversion rate, CPL).

WHY:
    Single source of truth for metric formulas. Every ratio whose denominator
    is zero evaluates to 0, never NaN or an error.
"""

from __future__ import annotations

from dataclasses import dataclass, asdict
from typing import Iterable, Optional


def safe_div(numerator: float, denominator: float, scale: float = 1.0) -> float:
    """numerator / denominator * scale, or 0 when the denominator is zero."""
    if not denominator:
        return 0
    return (numerator / denominator) * scale


@dataclass
class MetricTotals:
    impressions: int = 0
    clicks: int = 0
    conversions: int = 0
    spend: float = 0

    def add(self, impressions: Optional[float], clicks: Optional[float], conversions: Optional[float], spend: Optional[float]) -> None:
        self.impressions += impressions or 0
        self.clicks += clicks or 0
        self.conversions += conversions or 0
        self.spend += spend or 0

    @property
    def ctr(self) -> float:
        return safe_div(self.clicks, self.impressions, 100)

    @property
    def cpc(self) -> float:
        return safe_div(self.spend, self.clicks)

    @property
    def cpm(self) -> float:
        return safe_div(self.spend, self.impressions, 1000)

    @property
    def cost_per_conversion(self) -> float:
        return safe_div(self.spend, self.conversions)

    @property
    def conversion_rate(self) -> float:
        return safe_div(self.conversions, self.clicks, 100)

    def as_dict(self) -> dict:
        data = asdict(self)
        data.update(
            ctr=self.ctr,
            cpc=self.cpc,
            cpm=self.cpm,
            cost_per_conversion=self.cost_per_conversion,
        )
        return data


def total_metrics(platforms: Iterable) -> MetricTotals:
    """Fold the per-platform metrics of a campaign into one total.

    Accepts ORM allocations or anything exposing impressions/clicks/
    conversions/spend attributes. Derived ratios are recomputed from the sums,
    never averaged from the per-platform ratios.
    """
    totals = MetricTotals()
    for allocation in platforms or []:
        totals.add(allocation.impressions, allocation.clicks, allocation.conversions, allocation.spend)
    return totals
