"""
Customer Lifetime Value

CLTV = avg_purchase_value x avg_num_of_purchases x (avg_lifespan_days / days_per_year)

Each segment is composed from its own three averages only.
"""

from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional

import polars as pl
import structlog

logger = structlog.get_logger(__name__)

OVERALL_SEGMENT = "overall"
DEFAULT_DAYS_PER_YEAR = 365


@dataclass
class CLTVBreakdown:
    """CLTV and the figures it was composed from, for one segment"""
    segment: str
    avg_purchase_value: Optional[float]
    avg_num_of_purchases: Optional[float]
    avg_customer_lifespan_days: Optional[float]
    customer_value: Optional[float] = None
    avg_customer_lifespan_years: Optional[float] = None
    cltv: Optional[float] = None

    @property
    def is_complete(self) -> bool:
        """True when every component average was available"""
        return self.cltv is not None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def compose_cltv(
    avg_purchase_value: Optional[float],
    avg_num_of_purchases: Optional[float],
    avg_customer_lifespan_days: Optional[float],
    segment: str = OVERALL_SEGMENT,
    days_per_year: int = DEFAULT_DAYS_PER_YEAR,
) -> CLTVBreakdown:
    """
    Combine the three component averages into a CLTV breakdown.

    Derived fields stay None when any component is missing.
    """
    breakdown = CLTVBreakdown(
        segment=segment,
        avg_purchase_value=avg_purchase_value,
        avg_num_of_purchases=avg_num_of_purchases,
        avg_customer_lifespan_days=avg_customer_lifespan_days,
    )

    if avg_purchase_value is not None and avg_num_of_purchases is not None:
        breakdown.customer_value = avg_purchase_value * avg_num_of_purchases

    if avg_customer_lifespan_days is not None:
        breakdown.avg_customer_lifespan_years = avg_customer_lifespan_days / days_per_year

    if breakdown.customer_value is not None and breakdown.avg_customer_lifespan_years is not None:
        breakdown.cltv = breakdown.customer_value * breakdown.avg_customer_lifespan_years
    else:
        logger.warning("CLTV incomplete for segment", segment=segment)

    return breakdown


def _lookup(df: pl.DataFrame, column: str) -> Dict[Any, float]:
    return dict(zip(df["gender"].to_list(), df[column].to_list()))


def compose_segment_cltv(
    value_by_gender: pl.DataFrame,
    frequency_by_gender: pl.DataFrame,
    lifespan_by_gender: pl.DataFrame,
    days_per_year: int = DEFAULT_DAYS_PER_YEAR,
) -> List[CLTVBreakdown]:
    """
    One CLTV breakdown per gender.

    Args:
        value_by_gender: gender, avg_purchase_value
        frequency_by_gender: gender, avg_num_of_purchases
        lifespan_by_gender: gender, avg_customer_lifespan_days

    Returns:
        Breakdowns ordered by gender. A gender missing from any input gets
        None for that component and no CLTV.
    """
    values = _lookup(value_by_gender, "avg_purchase_value")
    frequencies = _lookup(frequency_by_gender, "avg_num_of_purchases")
    lifespans = _lookup(lifespan_by_gender, "avg_customer_lifespan_days")

    genders = sorted(set(values) | set(frequencies) | set(lifespans), key=str)

    return [
        compose_cltv(
            values.get(gender),
            frequencies.get(gender),
            lifespans.get(gender),
            segment=str(gender),
            days_per_year=days_per_year,
        )
        for gender in genders
    ]


def breakdowns_to_frame(breakdowns: List[CLTVBreakdown]) -> pl.DataFrame:
    """Tabulate breakdowns, one row per segment"""
    return pl.DataFrame(
        [b.to_dict() for b in breakdowns],
        schema={
            "segment": pl.Utf8,
            "avg_purchase_value": pl.Float64,
            "avg_num_of_purchases": pl.Float64,
            "avg_customer_lifespan_days": pl.Float64,
            "customer_value": pl.Float64,
            "avg_customer_lifespan_years": pl.Float64,
            "cltv": pl.Float64,
        },
    )
