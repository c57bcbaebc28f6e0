"""
Sales Trend

Yearly revenue with year-over-year percentage change.
"""

from typing import Optional, Sequence

import polars as pl
import structlog

from src.analytics.filters import qualifying_items, require_columns

logger = structlog.get_logger(__name__)

SALES_TREND_SCHEMA = {
    "year": pl.Int32,
    "total_sales": pl.Float64,
    "previous_year_sales": pl.Float64,
    "pct_change": pl.Float64,
}


def yearly_sales(
    order_items: pl.DataFrame,
    orders: Optional[pl.DataFrame] = None,
    excluded_statuses: Optional[Sequence[str]] = None,
) -> pl.DataFrame:
    """
    Total qualifying revenue per calendar year of created_at.

    Years between the first and last year with no qualifying sales are
    filled in with a total of zero.
    """
    require_columns(order_items, ["order_id", "sale_price", "status", "created_at"], "order_items")
    items = qualifying_items(order_items, orders, excluded_statuses)

    undated = items.filter(pl.col("created_at").is_null()).height
    if undated:
        logger.warning("Line items without created_at left out of sales trend", rows=undated)
        items = items.filter(pl.col("created_at").is_not_null())

    totals = (
        items.group_by(pl.col("created_at").dt.year().cast(pl.Int32).alias("year"))
        .agg(pl.col("sale_price").cast(pl.Float64).sum().alias("total_sales"))
    )

    if totals.height == 0:
        return pl.DataFrame(schema={"year": pl.Int32, "total_sales": pl.Float64})

    first_year, last_year = totals["year"].min(), totals["year"].max()
    years = pl.DataFrame(
        {"year": list(range(first_year, last_year + 1))},
        schema={"year": pl.Int32},
    )

    return (
        years.join(totals, on="year", how="left")
        .with_columns(pl.col("total_sales").fill_null(0.0))
        .sort("year")
    )


def sales_trend(
    order_items: pl.DataFrame,
    orders: Optional[pl.DataFrame] = None,
    excluded_statuses: Optional[Sequence[str]] = None,
) -> pl.DataFrame:
    """
    Yearly sales with previous-year totals and percent change.

    pct_change is null for the first year and whenever the previous year's
    sales are zero.

    Returns:
        DataFrame with year, total_sales, previous_year_sales, pct_change
        ordered ascending by year
    """
    totals = yearly_sales(order_items, orders, excluded_statuses)

    if totals.height == 0:
        return pl.DataFrame(schema=SALES_TREND_SCHEMA)

    # Years are contiguous, so the previous row is calendar year Y-1
    trend = totals.with_columns(
        pl.col("total_sales").shift(1).alias("previous_year_sales")
    ).with_columns(
        pl.when(pl.col("previous_year_sales").is_null() | (pl.col("previous_year_sales") == 0))
        .then(pl.lit(None, dtype=pl.Float64))
        .otherwise(
            (pl.col("total_sales") - pl.col("previous_year_sales"))
            / pl.col("previous_year_sales")
            * 100
        )
        .alias("pct_change")
    )

    logger.info(
        "Sales trend computed",
        years=trend.height,
        first_year=trend["year"][0],
        last_year=trend["year"][-1],
    )

    return trend.select(list(SALES_TREND_SCHEMA))
