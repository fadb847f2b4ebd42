"""
Rule-Based Segmentation

Each segment family is an ordered list of (label, condition) rules plus a
default label. Rules are tested top to bottom and the first match wins; a
condition that evaluates to null (for example a comparison against a null
metric) does not match, so such rows fall through to the default.
"""

from dataclasses import dataclass
from typing import List, Sequence, Tuple

import polars as pl


@dataclass(frozen=True)
class SegmentRule:
    """A label assigned when its condition holds"""
    label: str
    condition: pl.Expr


@dataclass(frozen=True)
class RuleSet:
    """
    Ordered segmentation rules producing one label column.

    Example:
        df.with_columns(ENGAGEMENT_STATUS.to_expr())
    """
    name: str
    rules: Tuple[SegmentRule, ...]
    default: str

    @property
    def labels(self) -> List[str]:
        """Every label the rule set can emit, in rule order"""
        labels: List[str] = []
        for label in [r.label for r in self.rules] + [self.default]:
            if label not in labels:
                labels.append(label)
        return labels

    def to_expr(self) -> pl.Expr:
        """Build the when/then chain, aliased to the rule set name"""
        if not self.rules:
            return pl.lit(self.default).alias(self.name)

        first, *rest = self.rules
        chain = pl.when(first.condition).then(pl.lit(first.label))
        for rule in rest:
            chain = chain.when(rule.condition).then(pl.lit(rule.label))
        return chain.otherwise(pl.lit(self.default)).alias(self.name)


def rule_set(name: str, rules: Sequence[Tuple[str, pl.Expr]], default: str) -> RuleSet:
    """Build a RuleSet from (label, condition) pairs"""
    return RuleSet(
        name=name,
        rules=tuple(SegmentRule(label, condition) for label, condition in rules),
        default=default,
    )


sales = pl.col("total_sales")
orders = pl.col("total_orders")
recency = pl.col("recency_months")
lifespan = pl.col("lifespan_months")
age = pl.col("age")
cost = pl.col("cost")


# =============================================================================
# CUSTOMER RULE SETS
# =============================================================================

AGE_GROUP = rule_set(
    "age_group",
    [
        ("Unknown", age.is_null()),
        ("Under 20", age < 20),
        ("20-29", age.is_between(20, 29)),
        ("30-39", age.is_between(30, 39)),
        ("40-49", age.is_between(40, 49)),
    ],
    default="50+",
)

CUSTOMER_SEGMENT = rule_set(
    "customer_segment",
    [
        ("VIP", (lifespan >= 12) & (sales > 5000)),
        ("Regular", (lifespan >= 12) & (sales <= 5000)),
    ],
    default="New",
)

ENGAGEMENT_STATUS = rule_set(
    "engagement_status",
    [
        ("Active", recency <= 3),
        ("At Risk", recency.is_between(4, 6)),
        ("Dormant", recency.is_between(7, 12)),
    ],
    default="Churned",
)

VALUE_TIER = rule_set(
    "value_tier",
    [
        ("High Value", sales >= 10000),
        ("Medium Value", sales.is_between(5000, 9999)),
        ("Low Value", sales.is_between(1000, 4999)),
    ],
    default="Entry Level",
)

PURCHASE_FREQUENCY = rule_set(
    "purchase_frequency_segment",
    [
        ("Frequent Buyer", orders >= 10),
        ("Regular Buyer", orders.is_between(5, 9)),
        ("Occasional Buyer", orders.is_between(2, 4)),
    ],
    default="One-Time Buyer",
)

CUSTOMER_HEALTH = rule_set(
    "customer_health_score",
    [
        ("Excellent", (sales >= 5000) & (recency <= 3) & (orders >= 5)),
        ("Good", (sales >= 2000) & (recency <= 6)),
        ("Fair", (sales >= 1000) | (recency <= 6)),
    ],
    default="Poor",
)

CUSTOMER_RULE_SETS = (
    AGE_GROUP,
    CUSTOMER_SEGMENT,
    ENGAGEMENT_STATUS,
    VALUE_TIER,
    PURCHASE_FREQUENCY,
    CUSTOMER_HEALTH,
)


# =============================================================================
# PRODUCT RULE SETS
# =============================================================================

COST_RANGE = rule_set(
    "cost_range",
    [
        ("Below 100", cost < 100),
        ("100-499", cost.is_between(100, 499)),
        ("500-1000", cost.is_between(500, 1000)),
    ],
    default="Above 1000",
)

PERFORMANCE_SEGMENT = rule_set(
    "performance_segment",
    [
        ("Low Performance", sales < 200000),
        ("Mid Range", sales.is_between(200000, 749999)),
    ],
    default="High Performance",
)

RECENCY_STATUS = rule_set(
    "recency_status",
    [
        ("Active", recency <= 3),
        ("At Risk", recency.is_between(4, 6)),
        ("Dormant", recency.is_between(7, 12)),
    ],
    default="Inactive",
)

PRODUCT_HEALTH = rule_set(
    "product_health_score",
    [
        ("Excellent", (sales >= 750000) & (recency <= 3)),
        ("Good", (sales >= 200000) & (recency <= 6)),
        ("Fair", (sales >= 200000) | (recency <= 6)),
    ],
    default="Poor",
)

PRODUCT_RULE_SETS = (
    COST_RANGE,
    PERFORMANCE_SEGMENT,
    RECENCY_STATUS,
    PRODUCT_HEALTH,
)

# =============================================================================
# TREND RULE SETS
# =============================================================================

YOY_TREND = rule_set(
    "yoy_trend",
    [
        ("Growth", pl.col("yoy_sales_diff") > 0),
        ("Decline", pl.col("yoy_sales_diff") < 0),
    ],
    default="No Change",
)

PERFORMANCE_VS_AVG = rule_set(
    "performance_vs_avg",
    [
        ("Above Average", pl.col("diff_from_avg") > 0),
        ("Below Average", pl.col("diff_from_avg") < 0),
    ],
    default="At Average",
)

TREND_RULE_SETS = (YOY_TREND, PERFORMANCE_VS_AVG)

# Report segment families only
RULE_SETS = {rs.name: rs for rs in CUSTOMER_RULE_SETS + PRODUCT_RULE_SETS}


def apply_rule_sets(df: pl.DataFrame, rule_sets: Sequence[RuleSet]) -> pl.DataFrame:
    """Add one label column per rule set"""
    return df.with_columns([rs.to_expr() for rs in rule_sets])
