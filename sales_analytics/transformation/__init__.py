"""
Data Transformation Module
"""
from .joiner import TransactionJoiner, join_transactions
from .aggregator import (
    CUSTOMER_PROFILE,
    PRODUCT_PROFILE,
    EntityProfile,
    MetricAggregator,
    aggregate,
)
from .segmentation import RuleSet, SegmentRule, apply_rule_sets
from .ranking import add_ntiles, contribution_pct, dense_rank

__all__ = [
    "TransactionJoiner",
    "join_transactions",
    "CUSTOMER_PROFILE",
    "PRODUCT_PROFILE",
    "EntityProfile",
    "MetricAggregator",
    "aggregate",
    "RuleSet",
    "SegmentRule",
    "apply_rule_sets",
    "add_ntiles",
    "contribution_pct",
    "dense_rank",
]
