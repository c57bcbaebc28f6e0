"""
Analytics Module

Aggregation passes behind the insights report. The orchestrator lives in
src.analytics.report.
"""
from .cltv import CLTVBreakdown, compose_cltv, compose_segment_cltv
from .exceptions import InsightsError, MissingColumnsError, SourceLoadError, SourceValidationError
from .filters import excluded_status_expr, filter_qualifying, qualifying_items
from .lifespan import (
    apply_censoring,
    average_lifespan_days,
    average_lifespan_days_by_gender,
    customer_lifespan_table,
)
from .products import bottom_sellers, top_sellers
from .purchases import (
    average_purchase_frequency,
    average_purchase_frequency_by_gender,
    average_purchase_value,
    average_purchase_value_by_gender,
    customer_purchases_table,
)
from .sales import sales_trend

__all__ = [
    "CLTVBreakdown",
    "compose_cltv",
    "compose_segment_cltv",
    "InsightsError",
    "MissingColumnsError",
    "SourceLoadError",
    "SourceValidationError",
    "excluded_status_expr",
    "filter_qualifying",
    "qualifying_items",
    "apply_censoring",
    "average_lifespan_days",
    "average_lifespan_days_by_gender",
    "customer_lifespan_table",
    "bottom_sellers",
    "top_sellers",
    "average_purchase_frequency",
    "average_purchase_frequency_by_gender",
    "average_purchase_value",
    "average_purchase_value_by_gender",
    "customer_purchases_table",
    "sales_trend",
]
