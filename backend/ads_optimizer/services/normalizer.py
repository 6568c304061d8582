"""
Metrics Normalizer — Maps per-platform campaign cache rows onto one canonical shape.
"""

from dataclasses import asdict, dataclass
from typing import Any
from ads_optimizer.models import Platform
from ads_optimizer.utils import safe_float, safe_int

# canonical field -> source column, per platform
FIELD_MAP = {
    Platform.META.value: {
        "spend": "spend",
        "cost_per_result": "cost_per_result",
    },
    Platform.GOOGLE.value: {
        "spend": "cost",
        "cost_per_result": "cost_per_conversion",
    },
}


@dataclass
class NormalizedCampaign:
    campaign_id: str
    name: str
    status: str
    spend: float
    cost_per_result: float
    ctr: float
    impressions: int
    conversions: float
    daily_budget: float
    platform: str

    def to_dict(self) -> dict:
        return asdict(self)


def _field(row: Any, key: str):
    if isinstance(row, dict):
        return row.get(key)
    return getattr(row, key, None)


def normalize_campaign(row: Any, platform: str) -> NormalizedCampaign:
    """
    Works on ORM rows and plain mappings alike.
    Missing or unparsable numbers become 0; no unit conversion happens here.
    """
    mapping = FIELD_MAP[platform]
    return NormalizedCampaign(
        campaign_id=str(_field(row, "campaign_id") or ""),
        name=_field(row, "name") or "",
        status=_field(row, "status") or "",
        spend=safe_float(_field(row, mapping["spend"])),
        cost_per_result=safe_float(_field(row, mapping["cost_per_result"])),
        ctr=safe_float(_field(row, "ctr")),
        impressions=safe_int(_field(row, "impressions")),
        conversions=safe_float(_field(row, "conversions")),
        daily_budget=safe_float(_field(row, "daily_budget")),
        platform=platform,
    )
