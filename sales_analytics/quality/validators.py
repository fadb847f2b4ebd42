"""
Input Validation Module

Rule-based shape checks run against the fact and dimension frames before a
report build begins. A failed ERROR check aborts the build with
InvalidInputShapeError; WARNING checks are logged and the build continues.

Features:
- Schema validation (required columns and column types)
- Null and uniqueness checks on keys
- Range checks on amounts and quantities
- Referential integrity between facts and dimensions
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

import polars as pl
import structlog

from sales_analytics.data.schemas import (
    CUSTOMER_REQUIRED,
    CUSTOMER_SCHEMA,
    PRODUCT_REQUIRED,
    PRODUCT_SCHEMA,
    SALES_ACCEPTED_TYPES,
    SALES_REQUIRED,
    DTypeSpec,
)

logger = structlog.get_logger(__name__)


class ValidationSeverity(str, Enum):
    """Severity levels for validation failures"""
    ERROR = "error"  # Aborts the report build
    WARNING = "warning"  # Logged, build continues


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

    @property
    def success_rate(self) -> float:
        """Percentage of passed checks"""
        if self.total_checks == 0:
            return 100.0
        return (self.passed_checks / self.total_checks) * 100

    @property
    def errors(self) -> List[ValidationCheck]:
        """Failed checks with ERROR severity"""
        return [c for c in self.checks if not c.passed and c.severity == ValidationSeverity.ERROR]


class InvalidInputShapeError(ValueError):
    """Raised when a caller-supplied row set violates the star schema."""

    def __init__(self, dataset: str, message: str, checks: Optional[List[ValidationCheck]] = None):
        self.dataset = dataset
        self.checks = checks or []
        super().__init__(f"Invalid {dataset} input: {message}")


def _dtype_matches(actual: pl.DataType, expected: DTypeSpec) -> bool:
    """Loose type compatibility: any integer width, Date or Datetime, any string-like"""
    if isinstance(expected, tuple):
        return any(_dtype_matches(actual, candidate) for candidate in expected)
    if actual == pl.Null:
        return True
    if expected.is_integer():
        return actual.is_integer()
    if expected == pl.Date:
        return actual == pl.Date or actual == pl.Datetime
    if expected == pl.Utf8:
        return actual == pl.Utf8 or actual == pl.Categorical
    return actual == expected


class DataValidator:
    """
    Chainable validator for report inputs.

    Example:
        validator = DataValidator()
        validator.add_not_null_check("customer_key")
        validator.add_range_check("quantity", min_value=0, max_value=255)
        result = validator.validate(df)
    """

    def __init__(self, strict_mode: bool = False):
        self.strict_mode = strict_mode  # Fail on any warning
        self._checks: List[Callable[[pl.DataFrame], ValidationCheck]] = []

    def add_schema_check(
        self,
        schema: Dict[str, DTypeSpec],
        required: Optional[List[str]] = None,
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        """Add check that required columns exist and every known column has a compatible type"""
        required_cols = required if required is not None else list(schema)

        def check(df: pl.DataFrame) -> ValidationCheck:
            missing = [c for c in required_cols if c not in df.columns]
            mistyped = {
                col: str(df.schema[col])
                for col, expected in schema.items()
                if col in df.columns and not _dtype_matches(df.schema[col], expected)
            }
            passed = not missing and not mistyped

            if passed:
                message = "Schema matches"
            else:
                parts = []
                if missing:
                    parts.append(f"missing columns {missing}")
                if mistyped:
                    parts.append(f"incompatible types {mistyped}")
                message = "; ".join(parts)

            return ValidationCheck(
                name="schema",
                passed=passed,
                severity=severity,
                message=message,
                details={"missing": missing, "mistyped": mistyped},
                total_rows=len(df),
            )

        self._checks.append(check)
        return self

    def add_not_null_check(
        self,
        column: str,
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        """Add check for null values in column"""
        def check(df: pl.DataFrame) -> ValidationCheck:
            if column not in df.columns:
                return ValidationCheck(
                    name=f"not_null_{column}",
                    passed=False,
                    severity=severity,
                    message=f"Column '{column}' not found",
                )

            null_count = df[column].null_count()
            total = len(df)
            passed = null_count == 0

            return ValidationCheck(
                name=f"not_null_{column}",
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
            if column not in df.columns:
                return ValidationCheck(
                    name=f"unique_{column}",
                    passed=False,
                    severity=severity,
                    message=f"Column '{column}' not found",
                )

            total = len(df)
            unique_count = df[column].n_unique()
            duplicate_count = total - unique_count
            passed = duplicate_count == 0

            return ValidationCheck(
                name=f"unique_{column}",
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
        """Add check for values within specified range; nulls are ignored"""
        def check(df: pl.DataFrame) -> ValidationCheck:
            if column not in df.columns:
                return ValidationCheck(
                    name=f"range_{column}",
                    passed=False,
                    severity=severity,
                    message=f"Column '{column}' not found",
                )

            conditions = []
            if min_value is not None:
                conditions.append(pl.col(column) < min_value)
            if max_value is not None:
                conditions.append(pl.col(column) > max_value)

            if not conditions:
                return ValidationCheck(
                    name=f"range_{column}",
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
                name=f"range_{column}",
                passed=passed,
                severity=severity,
                message=f"Column '{column}' has {out_of_range} values outside range [{min_value}, {max_value}]" if not passed else "All values in range",
                details={"min": min_value, "max": max_value, "out_of_range_count": out_of_range},
                failed_rows=out_of_range,
                total_rows=total,
            )

        self._checks.append(check)
        return self

    def add_positive_check(
        self,
        column: str,
        allow_zero: bool = True,
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        """Add check for non-negative (or strictly positive) values"""
        min_val = 0 if allow_zero else 1
        return self.add_range_check(column, min_value=min_val, severity=severity)

    def add_referential_integrity_check(
        self,
        column: str,
        reference_df: pl.DataFrame,
        reference_column: str,
        severity: ValidationSeverity = ValidationSeverity.WARNING,
    ) -> "DataValidator":
        """Add referential integrity check against a dimension frame"""
        def check(df: pl.DataFrame) -> ValidationCheck:
            if column not in df.columns or reference_column not in reference_df.columns:
                return ValidationCheck(
                    name=f"ref_integrity_{column}",
                    passed=False,
                    severity=severity,
                    message=f"Column '{column}' not found",
                )

            reference = reference_df[reference_column].drop_nulls().unique()
            orphans = df.filter(
                ~pl.col(column).is_in(reference.implode()) & pl.col(column).is_not_null()
            ).height
            total = len(df)
            passed = orphans == 0

            return ValidationCheck(
                name=f"ref_integrity_{column}",
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

        A failing schema check short-circuits the remaining checks, which
        would only repeat its findings column by column.

        Args:
            df: DataFrame to validate

        Returns:
            ValidationResult with all check results
        """
        started_at = datetime.utcnow()
        results = []

        logger.debug("Running validation checks", checks=len(self._checks), rows=len(df))

        for check_func in self._checks:
            result = check_func(df)
            results.append(result)

            if not result.passed:
                logger.warning(
                    f"Validation failed: {result.name}",
                    message=result.message,
                    severity=result.severity.value,
                )
                if result.name == "schema" and result.severity == ValidationSeverity.ERROR:
                    break

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

        return ValidationResult(
            status=status,
            total_checks=len(results),
            passed_checks=passed_checks,
            failed_checks=failed_checks,
            warning_count=warning_count,
            checks=results,
            started_at=started_at,
            completed_at=completed_at,
        )


def ensure_valid(df: pl.DataFrame, validator: DataValidator, dataset: str) -> ValidationResult:
    """
    Validate a frame and raise InvalidInputShapeError if the result failed.

    Args:
        df: Frame to validate
        validator: Configured validator
        dataset: Name used in the error message ("sales", "customers", ...)
    """
    result = validator.validate(df)

    if result.status == ValidationStatus.FAILED:
        failed = result.errors or [c for c in result.checks if not c.passed]
        logger.error(
            "Input rejected",
            dataset=dataset,
            failed_checks=[c.name for c in failed],
        )
        raise InvalidInputShapeError(
            dataset,
            "; ".join(c.message for c in failed),
            checks=failed,
        )

    logger.info(
        f"Validation {result.status.value}",
        dataset=dataset,
        passed=result.passed_checks,
        warnings=result.warning_count,
    )
    return result


# Pre-built validators for the star schema
def create_sales_validator() -> DataValidator:
    """Create pre-configured validator for the sales fact table"""
    return (
        DataValidator()
        .add_schema_check(SALES_ACCEPTED_TYPES, required=SALES_REQUIRED)
        .add_positive_check("sales_amount")
        .add_range_check("quantity", min_value=0, max_value=255)
        .add_not_null_check("order_date", severity=ValidationSeverity.WARNING)
    )


def create_customers_validator() -> DataValidator:
    """Create pre-configured validator for the customer dimension"""
    return (
        DataValidator()
        .add_schema_check(CUSTOMER_SCHEMA, required=CUSTOMER_REQUIRED)
        .add_not_null_check("customer_key")
        .add_unique_check("customer_key")
    )


def create_products_validator() -> DataValidator:
    """Create pre-configured validator for the product dimension"""
    return (
        DataValidator()
        .add_schema_check(PRODUCT_SCHEMA, required=PRODUCT_REQUIRED)
        .add_not_null_check("product_key")
        .add_unique_check("product_key")
    )
