"""
Data Validation Module

Rule-based data quality checks for the source tables, run before the report.
Implements validation patterns inspired by Great Expectations.

Orphan rows (line items without a product, order or user) are reported as
warnings: the report drops them through inner joins by design.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, TYPE_CHECKING

import polars as pl
import structlog

if TYPE_CHECKING:
    from src.ingestion.batch_loader import SourceTables

logger = structlog.get_logger(__name__)

KNOWN_STATUSES = ["placed", "processing", "shipped", "complete", "cancelled", "returned"]


class ValidationSeverity(str, Enum):
    """Severity levels for validation failures"""
    ERROR = "error"  # Critical - blocks the report
    WARNING = "warning"  # Non-critical - logged but continues
    INFO = "info"  # Informational only


class ValidationStatus(str, Enum):
    """Overall validation status"""
    PASSED = "passed"
    FAILED = "failed"
    PARTIAL = "partial"


@dataclass
class ValidationCheck:
    """Single validation check result"""
    name: str
    passed: bool
    severity: ValidationSeverity
    message: str
    details: Optional[Dict[str, Any]] = None
    failed_rows: int = 0
    total_rows: int = 0


@dataclass
class ValidationResult:
    """Complete validation suite result"""
    status: ValidationStatus
    total_checks: int
    passed_checks: int
    failed_checks: int
    warning_count: int
    checks: List[ValidationCheck] = field(default_factory=list)
    started_at: datetime = field(default_factory=datetime.utcnow)
    completed_at: Optional[datetime] = None


class DataValidator:
    """
    Data validator with a fluent check suite.

    Example:
        validator = DataValidator("orders")
        validator.add_not_null_check("order_id")
        validator.add_range_check("sale_price", min_value=0)
        result = validator.validate(df)
    """

    def __init__(self, table: str = "table", strict_mode: bool = False):
        self.table = table
        self.strict_mode = strict_mode  # Fail on any warning
        self._checks: List[Callable[[pl.DataFrame], ValidationCheck]] = []

    def _missing_column(self, name: str, column: str, severity: ValidationSeverity) -> ValidationCheck:
        return ValidationCheck(
            name=name,
            passed=False,
            severity=severity,
            message=f"Column '{column}' not found",
        )

    def add_not_null_check(
        self,
        column: str,
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        """Add check for null values in column"""
        def check(df: pl.DataFrame) -> ValidationCheck:
            name = f"not_null_{column}"
            if column not in df.columns:
                return self._missing_column(name, column, severity)

            null_count = df[column].null_count()
            total = len(df)
            passed = null_count == 0

            return ValidationCheck(
                name=name,
                passed=passed,
                severity=severity,
                message=f"Column '{column}' has {null_count} null values" if not passed else f"Column '{column}' has no null values",
                details={"null_count": null_count, "null_percentage": (null_count / total) * 100 if total > 0 else 0},
                failed_rows=null_count,
                total_rows=total,
            )

        self._checks.append(check)
        return self

    def add_unique_check(
        self,
        column: str,
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        """Add check for uniqueness of column values"""
        def check(df: pl.DataFrame) -> ValidationCheck:
            name = f"unique_{column}"
            if column not in df.columns:
                return self._missing_column(name, column, severity)

            total = len(df)
            unique_count = df[column].n_unique()
            duplicate_count = total - unique_count
            passed = duplicate_count == 0

            return ValidationCheck(
                name=name,
                passed=passed,
                severity=severity,
                message=f"Column '{column}' has {duplicate_count} duplicate values" if not passed else f"Column '{column}' values are unique",
                details={"unique_count": unique_count, "duplicate_count": duplicate_count},
                failed_rows=duplicate_count,
                total_rows=total,
            )

        self._checks.append(check)
        return self

    def add_range_check(
        self,
        column: str,
        min_value: Optional[float] = None,
        max_value: Optional[float] = None,
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        """Add check for values within specified range"""
        def check(df: pl.DataFrame) -> ValidationCheck:
            name = f"range_{column}"
            if column not in df.columns:
                return self._missing_column(name, column, severity)

            conditions = []
            if min_value is not None:
                conditions.append(pl.col(column) < min_value)
            if max_value is not None:
                conditions.append(pl.col(column) > max_value)

            if not conditions:
                return ValidationCheck(
                    name=name,
                    passed=True,
                    severity=severity,
                    message="No range specified",
                )

            combined = conditions[0]
            for cond in conditions[1:]:
                combined = combined | cond

            out_of_range = df.filter(combined).height
            total = len(df)
            passed = out_of_range == 0

            return ValidationCheck(
                name=name,
                passed=passed,
                severity=severity,
                message=f"Column '{column}' has {out_of_range} values outside range [{min_value}, {max_value}]" if not passed else "All values in range",
                details={"min": min_value, "max": max_value, "out_of_range_count": out_of_range},
                failed_rows=out_of_range,
                total_rows=total,
            )

        self._checks.append(check)
        return self

    def add_enum_check(
        self,
        column: str,
        allowed_values: List[Any],
        case_insensitive: bool = False,
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        """Add check for values in allowed set"""
        def check(df: pl.DataFrame) -> ValidationCheck:
            name = f"enum_{column}"
            if column not in df.columns:
                return self._missing_column(name, column, severity)

            values = pl.col(column)
            allowed = allowed_values
            if case_insensitive:
                values = values.cast(pl.Utf8).str.to_lowercase()
                allowed = [str(v).lower() for v in allowed_values]

            invalid = df.filter(
                ~values.is_in(allowed) & pl.col(column).is_not_null()
            ).height
            total = len(df)
            passed = invalid == 0

            return ValidationCheck(
                name=name,
                passed=passed,
                severity=severity,
                message=f"Column '{column}' has {invalid} invalid values" if not passed else "All values are valid",
                details={"allowed_values": allowed_values, "invalid_count": invalid},
                failed_rows=invalid,
                total_rows=total,
            )

        self._checks.append(check)
        return self

    def add_custom_check(
        self,
        name: str,
        check_func: Callable[[pl.DataFrame], bool],
        message_on_fail: str,
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        """Add custom validation check"""
        def check(df: pl.DataFrame) -> ValidationCheck:
            try:
                passed = bool(check_func(df))
                return ValidationCheck(
                    name=name,
                    passed=passed,
                    severity=severity,
                    message="Check passed" if passed else message_on_fail,
                    total_rows=len(df),
                )
            except (pl.exceptions.PolarsError, KeyError, TypeError, ValueError) as e:
                return ValidationCheck(
                    name=name,
                    passed=False,
                    severity=severity,
                    message=f"Check failed with error: {str(e)}",
                )

        self._checks.append(check)
        return self

    def add_referential_integrity_check(
        self,
        column: str,
        reference_df: pl.DataFrame,
        reference_column: str,
        severity: ValidationSeverity = ValidationSeverity.WARNING,
    ) -> "DataValidator":
        """Add check that every non-null value exists in reference_df"""
        def check(df: pl.DataFrame) -> ValidationCheck:
            name = f"ref_integrity_{column}"
            if column not in df.columns:
                return self._missing_column(name, column, severity)
            if reference_column not in reference_df.columns:
                return self._missing_column(name, reference_column, severity)

            orphans = df.filter(
                ~pl.col(column).is_in(reference_df[reference_column].unique().to_list()) & pl.col(column).is_not_null()
            ).height
            total = len(df)
            passed = orphans == 0

            return ValidationCheck(
                name=name,
                passed=passed,
                severity=severity,
                message=f"Column '{column}' has {orphans} orphan records" if not passed else "Referential integrity maintained",
                details={"orphan_count": orphans},
                failed_rows=orphans,
                total_rows=total,
            )

        self._checks.append(check)
        return self

    def validate(self, df: pl.DataFrame) -> ValidationResult:
        """
        Run all validation checks on DataFrame.

        Args:
            df: DataFrame to validate

        Returns:
            ValidationResult with all check results
        """
        started_at = datetime.utcnow()
        results = []

        logger.info(f"Running {len(self._checks)} validation checks on {len(df)} rows", table=self.table)

        for check_func in self._checks:
            result = check_func(df)
            results.append(result)

            if not result.passed:
                logger.warning(
                    f"Validation failed: {result.name}",
                    table=self.table,
                    message=result.message,
                    severity=result.severity.value,
                )

        completed_at = datetime.utcnow()

        passed_checks = sum(1 for r in results if r.passed)
        failed_checks = sum(1 for r in results if not r.passed and r.severity == ValidationSeverity.ERROR)
        warning_count = sum(1 for r in results if not r.passed and r.severity == ValidationSeverity.WARNING)

        if failed_checks > 0:
            status = ValidationStatus.FAILED
        elif warning_count > 0 and self.strict_mode:
            status = ValidationStatus.FAILED
        elif warning_count > 0:
            status = ValidationStatus.PARTIAL
        else:
            status = ValidationStatus.PASSED

        validation_result = ValidationResult(
            status=status,
            total_checks=len(results),
            passed_checks=passed_checks,
            failed_checks=failed_checks,
            warning_count=warning_count,
            checks=results,
            started_at=started_at,
            completed_at=completed_at,
        )

        logger.info(
            f"Validation complete: {status.value}",
            table=self.table,
            passed=passed_checks,
            failed=failed_checks,
            warnings=warning_count,
        )

        return validation_result


def _single_user_per_order(df: pl.DataFrame) -> bool:
    users_per_order = df.group_by("order_id").agg(pl.col("user_id").n_unique().alias("n"))
    return users_per_order.filter(pl.col("n") > 1).height == 0


# Pre-built validators for the source tables
def create_orders_validator() -> DataValidator:
    """Create pre-configured validator for orders data"""
    return (
        DataValidator("orders")
        .add_not_null_check("order_id")
        .add_not_null_check("user_id")
        .add_not_null_check("created_at")
        .add_unique_check("order_id")
        .add_enum_check("status", KNOWN_STATUSES, case_insensitive=True)
    )


def create_order_items_validator(
    orders: Optional[pl.DataFrame] = None,
    products: Optional[pl.DataFrame] = None,
    users: Optional[pl.DataFrame] = None,
) -> DataValidator:
    """Create pre-configured validator for line items, with orphan checks when references are given"""
    validator = (
        DataValidator("order_items")
        .add_not_null_check("order_id")
        .add_not_null_check("product_id")
        .add_not_null_check("sale_price")
        .add_not_null_check("created_at")
        .add_range_check("sale_price", min_value=0)
        .add_enum_check("status", KNOWN_STATUSES, case_insensitive=True)
        .add_custom_check(
            name="single_user_per_order",
            check_func=_single_user_per_order,
            message_on_fail="Some orders have line items from more than one user",
            severity=ValidationSeverity.WARNING,
        )
    )

    if orders is not None:
        validator.add_referential_integrity_check("order_id", orders, "order_id")
    if products is not None:
        validator.add_referential_integrity_check("product_id", products, "id")
    if users is not None:
        validator.add_referential_integrity_check("user_id", users, "id")

    return validator


def create_products_validator() -> DataValidator:
    """Create pre-configured validator for products data"""
    return (
        DataValidator("products")
        .add_not_null_check("id")
        .add_not_null_check("name")
        .add_unique_check("id")
    )


def create_users_validator() -> DataValidator:
    """Create pre-configured validator for users data"""
    return (
        DataValidator("users")
        .add_not_null_check("id")
        .add_unique_check("id")
        .add_not_null_check("gender", severity=ValidationSeverity.WARNING)
    )


def validate_sources(tables: "SourceTables") -> Dict[str, ValidationResult]:
    """Run the pre-built validators over every source table"""
    validators = {
        "orders": create_orders_validator(),
        "order_items": create_order_items_validator(
            orders=tables.orders,
            products=tables.products,
            users=tables.users,
        ),
        "products": create_products_validator(),
        "users": create_users_validator(),
    }

    return {
        name: validator.validate(getattr(tables, name))
        for name, validator in validators.items()
    }
