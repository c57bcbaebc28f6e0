"""
Purchase Value and Purchase Frequency

Average order value and average number of orders per customer, overall and
segmented by the gender of the customer who placed the order.

An order is attributed to the user on its line items. Orders whose user
cannot be resolved in the users table, or whose user has no recorded
gender, drop out of the gender-segmented figures but still count toward
the overall ones.
"""

from typing import Optional, Sequence

import polars as pl
import structlog

from src.analytics.filters import qualifying_items, require_columns

logger = structlog.get_logger(__name__)


def _mean(df: pl.DataFrame, column: str) -> Optional[float]:
    """Column mean, None for an empty frame"""
    if df.height == 0:
        return None
    return float(df[column].mean())


def _with_gender(df: pl.DataFrame, users: pl.DataFrame) -> pl.DataFrame:
    require_columns(users, ["id", "gender"], "users")
    return df.join(
        users.select(["id", "gender"]).filter(pl.col("gender").is_not_null()),
        left_on="user_id",
        right_on="id",
        how="inner",
    )


# =============================================================================
# PURCHASE VALUE
# =============================================================================

def order_purchase_values(
    order_items: pl.DataFrame,
    orders: Optional[pl.DataFrame] = None,
    excluded_statuses: Optional[Sequence[str]] = None,
) -> pl.DataFrame:
    """
    Sum qualifying sale prices per order.

    Returns:
        DataFrame with order_id, user_id, purchase_value ordered by order_id
    """
    require_columns(order_items, ["order_id", "user_id", "sale_price", "status"], "order_items")
    items = qualifying_items(order_items, orders, excluded_statuses)

    return (
        items.group_by(["order_id", "user_id"])
        .agg(pl.col("sale_price").cast(pl.Float64).sum().alias("purchase_value"))
        .sort("order_id")
    )


def average_purchase_value(
    order_items: pl.DataFrame,
    orders: Optional[pl.DataFrame] = None,
    excluded_statuses: Optional[Sequence[str]] = None,
) -> Optional[float]:
    """Mean purchase value across qualifying orders"""
    per_order = (
        order_purchase_values(order_items, orders, excluded_statuses)
        .group_by("order_id")
        .agg(pl.col("purchase_value").sum())
    )
    value = _mean(per_order, "purchase_value")
    logger.info("Average purchase value computed", orders=per_order.height, avg_purchase_value=value)
    return value


def customer_purchases_table(
    order_items: pl.DataFrame,
    users: pl.DataFrame,
    orders: Optional[pl.DataFrame] = None,
    excluded_statuses: Optional[Sequence[str]] = None,
) -> pl.DataFrame:
    """
    Per-order purchase value with the gender of the ordering customer.

    Returns:
        DataFrame with order_id, gender, purchase_value ordered by order_id
    """
    per_order = order_purchase_values(order_items, orders, excluded_statuses)

    return (
        _with_gender(per_order, users)
        .group_by(["order_id", "gender"])
        .agg(pl.col("purchase_value").sum())
        .sort(["order_id", "gender"])
        .select(["order_id", "gender", "purchase_value"])
    )


def average_purchase_value_by_gender(
    order_items: pl.DataFrame,
    users: pl.DataFrame,
    orders: Optional[pl.DataFrame] = None,
    excluded_statuses: Optional[Sequence[str]] = None,
    purchases: Optional[pl.DataFrame] = None,
) -> pl.DataFrame:
    """
    Mean purchase value per gender.

    Args:
        purchases: A precomputed customer_purchases_table to average instead
            of recomputing it

    Returns:
        DataFrame with gender, avg_purchase_value ordered by gender
    """
    if purchases is None:
        purchases = customer_purchases_table(order_items, users, orders, excluded_statuses)

    return (
        purchases.group_by("gender")
        .agg(pl.col("purchase_value").mean().alias("avg_purchase_value"))
        .sort("gender")
    )


# =============================================================================
# PURCHASE FREQUENCY
# =============================================================================

def purchases_per_customer(
    order_items: pl.DataFrame,
    orders: Optional[pl.DataFrame] = None,
    excluded_statuses: Optional[Sequence[str]] = None,
) -> pl.DataFrame:
    """
    Count distinct qualifying orders per customer.

    Returns:
        DataFrame with user_id, num_of_purchases ordered by user_id
    """
    require_columns(order_items, ["order_id", "user_id", "status"], "order_items")
    items = qualifying_items(order_items, orders, excluded_statuses)

    return (
        items.group_by("user_id")
        .agg(pl.col("order_id").n_unique().cast(pl.Int64).alias("num_of_purchases"))
        .sort("user_id")
    )


def average_purchase_frequency(
    order_items: pl.DataFrame,
    orders: Optional[pl.DataFrame] = None,
    excluded_statuses: Optional[Sequence[str]] = None,
) -> Optional[float]:
    """Mean number of orders per customer with at least one qualifying item"""
    per_customer = purchases_per_customer(order_items, orders, excluded_statuses)
    value = _mean(per_customer, "num_of_purchases")
    logger.info(
        "Average purchase frequency computed",
        customers=per_customer.height,
        avg_num_of_purchases=value,
    )
    return value


def average_purchase_frequency_by_gender(
    order_items: pl.DataFrame,
    users: pl.DataFrame,
    orders: Optional[pl.DataFrame] = None,
    excluded_statuses: Optional[Sequence[str]] = None,
) -> pl.DataFrame:
    """
    Mean number of orders per customer, per gender.

    Returns:
        DataFrame with gender, avg_num_of_purchases ordered by gender
    """
    per_customer = purchases_per_customer(order_items, orders, excluded_statuses)

    return (
        _with_gender(per_customer, users)
        .group_by(["user_id", "gender"])
        .agg(pl.col("num_of_purchases").sum())
        .group_by("gender")
        .agg(pl.col("num_of_purchases").mean().alias("avg_num_of_purchases"))
        .sort("gender")
    )
