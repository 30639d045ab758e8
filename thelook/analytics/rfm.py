"""
RFM Segmentation

Scores every purchasing customer on Recency, Frequency and Monetary value
using equal-population buckets, then maps the score combination onto a
named segment.

- Recency: days since the customer's last completed item, measured from
  the latest order date in the snapshot (not the wall clock)
- Frequency: number of completed order items
- Monetary: total sale price of completed items
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

import polars as pl
import structlog

from thelook.config import get_settings
from thelook.warehouse.schema import OrderStatus
from thelook.warehouse.snapshot import WarehouseSnapshot
from .aggregator import days_between, ntile

logger = structlog.get_logger(__name__)
settings = get_settings()


class RFMSegment(str, Enum):
    """Customer segments, in matching precedence"""
    CHAMPIONS = "Champions"
    LOYAL = "Loyal"
    POTENTIAL_LOYALISTS = "Potential Loyalists"
    AT_RISK = "At Risk"
    LOST = "Lost"
    AVERAGE = "Average"


@dataclass
class RFMScores:
    """RFM scoring results for one customer"""
    recency_score: int  # top bucket = most recent
    frequency_score: int  # top bucket = most frequent
    monetary_score: int  # top bucket = highest value

    @property
    def code(self) -> str:
        return f"{self.recency_score}{self.frequency_score}{self.monetary_score}"

    def segment(self, top: int = 4) -> RFMSegment:
        """Named segment; the first matching rule wins"""
        r, f, m = self.recency_score, self.frequency_score, self.monetary_score
        if r == top and f == top and m == top:
            return RFMSegment.CHAMPIONS
        if r >= top - 1 and f >= top - 1 and m >= top - 1:
            return RFMSegment.LOYAL
        if r >= top - 1 and f == 1:
            return RFMSegment.POTENTIAL_LOYALISTS
        if r <= top - 2 and f >= top - 1:
            return RFMSegment.AT_RISK
        if r == 1 and f == 1:
            return RFMSegment.LOST
        return RFMSegment.AVERAGE


def segment_expr(top: int = 4) -> pl.Expr:
    """Vectorised form of :meth:`RFMScores.segment` over r/f/m score columns"""
    r, f, m = pl.col("r_score"), pl.col("f_score"), pl.col("m_score")
    return (
        pl.when((r == top) & (f == top) & (m == top))
        .then(pl.lit(RFMSegment.CHAMPIONS.value))
        .when((r >= top - 1) & (f >= top - 1) & (m >= top - 1))
        .then(pl.lit(RFMSegment.LOYAL.value))
        .when((r >= top - 1) & (f == 1))
        .then(pl.lit(RFMSegment.POTENTIAL_LOYALISTS.value))
        .when((r <= top - 2) & (f >= top - 1))
        .then(pl.lit(RFMSegment.AT_RISK.value))
        .when((r == 1) & (f == 1))
        .then(pl.lit(RFMSegment.LOST.value))
        .otherwise(pl.lit(RFMSegment.AVERAGE.value))
    )


def rfm_base(snapshot: WarehouseSnapshot) -> pl.DataFrame:
    """
    Per-user recency, frequency and monetary values over completed items.

    Users whose completed items all lack a creation timestamp have no
    recency and are left out.
    """
    reference = snapshot.max_order_date
    completed = snapshot.items_with_status(OrderStatus.COMPLETE)

    if reference is None or completed.is_empty():
        return pl.DataFrame(schema={
            "user_id": pl.Int64,
            "last_order_date": pl.Datetime("us"),
            "recency_days": pl.Int64,
            "frequency": pl.UInt32,
            "monetary": pl.Float64,
        })

    base = completed.group_by("user_id").agg([
        pl.col("created_at").max().alias("last_order_date"),
        pl.len().alias("frequency"),
        pl.col("sale_price").sum().round(2).alias("monetary"),
    ])

    base = base.with_columns(
        days_between(pl.col("last_order_date"), pl.lit(reference)).alias("recency_days")
    )

    dropped = base.filter(pl.col("recency_days").is_null()).height
    if dropped:
        logger.warning("Users without a usable order date left out of RFM", users=dropped)

    return (
        base.filter(pl.col("recency_days").is_not_null())
        .sort("user_id")
        .select(["user_id", "last_order_date", "recency_days", "frequency", "monetary"])
    )


def rfm_scores(snapshot: WarehouseSnapshot, buckets: Optional[int] = None) -> pl.DataFrame:
    """
    Calculate RFM scores and segments for every purchasing customer.

    Args:
        snapshot: Warehouse snapshot
        buckets: Buckets per metric (defaults to the configured value, 4)

    Returns:
        DataFrame with user_id, last_order_date, recency_days, frequency,
        monetary, r_score, f_score, m_score, rfm_code and segment
    """
    buckets = buckets if buckets is not None else settings.analytics.rfm_buckets
    base = rfm_base(snapshot)

    scored = base.with_columns([
        # Smallest recency lands in the top bucket
        ntile("recency_days", buckets, descending=True).alias("r_score"),
        ntile("frequency", buckets).alias("f_score"),
        ntile("monetary", buckets).alias("m_score"),
    ])

    scored = scored.with_columns(
        pl.concat_str([
            pl.col("r_score").cast(pl.Utf8),
            pl.col("f_score").cast(pl.Utf8),
            pl.col("m_score").cast(pl.Utf8),
        ]).alias("rfm_code"),
        segment_expr(buckets).alias("segment"),
    )

    logger.info("RFM scores calculated", users=scored.height, buckets=buckets)
    return scored


def rfm_segment_summary(snapshot: WarehouseSnapshot, buckets: Optional[int] = None) -> pl.DataFrame:
    """User count per RFM segment, largest first"""
    scores = rfm_scores(snapshot, buckets)
    return (
        scores.group_by("segment")
        .agg(pl.len().alias("total_users"))
        .sort(["total_users", "segment"], descending=[True, False])
    )
