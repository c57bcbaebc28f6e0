"""
Product Performance

Top and bottom sellers ranked by the number of qualifying line items.
Products without qualifying sales never appear in either view.
"""

from typing import Optional, Sequence

import polars as pl
import structlog

from src.analytics.filters import qualifying_items, require_columns

logger = structlog.get_logger(__name__)

UNDERPERFORMING_QUANTITY = 1


def product_quantities(
    order_items: pl.DataFrame,
    products: pl.DataFrame,
    orders: Optional[pl.DataFrame] = None,
    excluded_statuses: Optional[Sequence[str]] = None,
) -> pl.DataFrame:
    """
    Count qualifying line items per product name.

    Returns:
        DataFrame with product_name, quantity_ordered (unordered)
    """
    require_columns(order_items, ["order_id", "product_id", "status"], "order_items")
    require_columns(products, ["id", "name"], "products")

    items = qualifying_items(order_items, orders, excluded_statuses)

    return (
        items.join(
            products.select(["id", "name"]),
            left_on="product_id",
            right_on="id",
            how="inner",
        )
        .group_by(pl.col("name").alias("product_name"))
        .agg(pl.len().cast(pl.Int64).alias("quantity_ordered"))
    )


def top_sellers(
    order_items: pl.DataFrame,
    products: pl.DataFrame,
    orders: Optional[pl.DataFrame] = None,
    top_n: Optional[int] = None,
    excluded_statuses: Optional[Sequence[str]] = None,
) -> pl.DataFrame:
    """
    Products ordered by quantity_ordered descending, ties by name ascending.

    Args:
        top_n: Keep only the first top_n rows when given
    """
    ranked = product_quantities(order_items, products, orders, excluded_statuses).sort(
        ["quantity_ordered", "product_name"],
        descending=[True, False],
    )

    if top_n is not None:
        ranked = ranked.head(top_n)

    logger.info("Top sellers ranked", products=ranked.height, top_n=top_n)
    return ranked


def bottom_sellers(
    order_items: pl.DataFrame,
    products: pl.DataFrame,
    orders: Optional[pl.DataFrame] = None,
    excluded_statuses: Optional[Sequence[str]] = None,
) -> pl.DataFrame:
    """Products sold exactly once, ordered by name"""
    underperforming = (
        product_quantities(order_items, products, orders, excluded_statuses)
        .filter(pl.col("quantity_ordered") == UNDERPERFORMING_QUANTITY)
        .sort(["quantity_ordered", "product_name"])
    )

    logger.info("Bottom sellers ranked", products=underperforming.height)
    return underperforming
