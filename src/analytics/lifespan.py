"""
Customer Lifespan

Per-customer active duration between first and last qualifying order, and
the average lifespan used by the CLTV calculation.

Lifespan is an inclusive day count: a customer whose first and last orders
fall on the same date has a lifespan of 1 day.

One-time buyers are censored: if their single purchase date is on or after
the cutoff they may still come back, so their true lifespan is not yet
observable and they are left out of the corrected average. One-time buyers
before the cutoff are treated as churned and kept with a lifespan of 1.
"""

from datetime import date
from typing import Optional, Sequence

import polars as pl
import structlog

from src.analytics.filters import filter_qualifying, require_columns

logger = structlog.get_logger(__name__)

LIFESPAN_DAY_OFFSET = 1

LIFESPAN_SCHEMA = {
    "user_id": pl.Int64,
    "first_purchase_date": pl.Date,
    "last_purchase_date": pl.Date,
    "customer_lifespan_days": pl.Int64,
}


def customer_lifespan_table(
    orders: pl.DataFrame,
    excluded_statuses: Optional[Sequence[str]] = None,
) -> pl.DataFrame:
    """
    First and last purchase dates per customer.

    Returns:
        DataFrame with user_id, first_purchase_date, last_purchase_date,
        customer_lifespan_days ordered by user_id
    """
    require_columns(orders, ["order_id", "user_id", "created_at", "status"], "orders")
    qualifying = filter_qualifying(orders, excluded_statuses, table="orders")

    if qualifying.height == 0:
        return pl.DataFrame(schema={**LIFESPAN_SCHEMA, "user_id": orders.schema["user_id"]})

    lifespans = (
        qualifying.group_by("user_id")
        .agg([
            pl.col("created_at").min().cast(pl.Date).alias("first_purchase_date"),
            pl.col("created_at").max().cast(pl.Date).alias("last_purchase_date"),
        ])
        .with_columns(
            (
                (pl.col("last_purchase_date") - pl.col("first_purchase_date")).dt.total_days()
                + LIFESPAN_DAY_OFFSET
            )
            .cast(pl.Int64)
            .alias("customer_lifespan_days")
        )
        .sort("user_id")
    )

    logger.info("Customer lifespan table computed", customers=lifespans.height)
    return lifespans


def one_time_buyer_expr() -> pl.Expr:
    return pl.col("first_purchase_date") == pl.col("last_purchase_date")


def apply_censoring(lifespans: pl.DataFrame, cutoff: date) -> pl.DataFrame:
    """Drop one-time buyers whose purchase date is on or after cutoff"""
    require_columns(
        lifespans,
        ["first_purchase_date", "last_purchase_date", "customer_lifespan_days"],
        "customer_lifespan_table",
    )
    still_active = one_time_buyer_expr() & (pl.col("first_purchase_date") >= pl.lit(cutoff))
    return lifespans.filter(~still_active)


def average_lifespan_days(
    lifespans: pl.DataFrame,
    cutoff: Optional[date] = None,
) -> Optional[float]:
    """
    Mean customer lifespan in days.

    Args:
        lifespans: Output of customer_lifespan_table
        cutoff: Censoring date; None gives the uncorrected average

    Returns:
        Mean lifespan, or None when no customers remain
    """
    observed = apply_censoring(lifespans, cutoff) if cutoff is not None else lifespans

    if observed.height == 0:
        return None

    value = float(observed["customer_lifespan_days"].mean())
    logger.info(
        "Average lifespan computed",
        customers=observed.height,
        censored=lifespans.height - observed.height,
        cutoff=str(cutoff) if cutoff else None,
        avg_customer_lifespan_days=value,
    )
    return value


def average_lifespan_days_by_gender(
    lifespans: pl.DataFrame,
    users: pl.DataFrame,
    cutoff: Optional[date] = None,
) -> pl.DataFrame:
    """
    Mean customer lifespan in days, per gender.

    Customers without a matching user or with no recorded gender are dropped.

    Returns:
        DataFrame with gender, avg_customer_lifespan_days ordered by gender
    """
    require_columns(users, ["id", "gender"], "users")
    observed = apply_censoring(lifespans, cutoff) if cutoff is not None else lifespans

    return (
        observed.join(
            users.select(["id", "gender"]).filter(pl.col("gender").is_not_null()),
            left_on="user_id",
            right_on="id",
            how="inner",
        )
        .group_by("gender")
        .agg(
            pl.col("customer_lifespan_days")
            .cast(pl.Float64)
            .mean()
            .alias("avg_customer_lifespan_days")
        )
        .sort("gender")
    )
