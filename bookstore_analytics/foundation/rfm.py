"""RFM (Recency-Frequency-Monetary) ranking and segmentation.

Customers are ranked independently on three dimensions and binned into
quintiles by position, the same way SQL ``NTILE(5)`` does:

- Recency: last purchase date, most recent first
- Frequency: number of distinct orders, highest first
- Monetary: total spent, highest first

The first quintile of each ordering gets rank 1 and the last gets rank 5.
The three ranks are summed into ``rfm_total`` (3-15) which maps onto a
named segment.

Binning rules
-------------
- Ties on the sort key are broken by ``customer_id`` ascending, so equal
  values can land in different quintiles depending on that secondary key.
- With ``q, r = divmod(N, 5)`` the first ``r`` quintiles hold ``q + 1``
  customers and the rest hold ``q``.
- With fewer than 5 customers every customer is its own group and ranks
  compress to ``1..N``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Callable, Sequence

from bookstore_analytics.foundation.metrics import (
    CustomerMetrics,
    aggregate_customer_metrics,
)
from bookstore_analytics.foundation.records import RetailSnapshot

logger = logging.getLogger(__name__)

#: Number of groups each dimension is split into.
N_TILES = 5

MIN_RFM_TOTAL = 3
MAX_RFM_TOTAL = 3 * N_TILES


class Segment(str, Enum):
    """Customer segments derived from ``rfm_total``."""

    CHAMPIONS = "Champions"
    LOYAL = "Loyal"
    POTENTIAL = "Potential"
    AT_RISK = "At Risk"


@dataclass(frozen=True)
class RFMConfig:
    """Configuration for RFM scoring.

    Attributes
    ----------
    reverse_ranks:
        If False (default), the best quintile of each dimension (most
        recent, most frequent, highest spend) is rank 1. If True, the
        best quintile is rank 5.
    champions_min:
        Lowest ``rfm_total`` classified as Champions
    loyal_min:
        Lowest ``rfm_total`` classified as Loyal
    potential_min:
        Lowest ``rfm_total`` classified as Potential; anything below is
        At Risk
    parallel:
        Enable parallel metric aggregation for large batches
    parallel_threshold:
        Customer count at which parallel aggregation starts
    n_workers:
        Worker processes for parallel aggregation (None = CPU count)
    """

    reverse_ranks: bool = False
    champions_min: int = 12
    loyal_min: int = 9
    potential_min: int = 6
    parallel: bool = True
    parallel_threshold: int = 10_000_000
    n_workers: int | None = None

    def __post_init__(self) -> None:
        if not self.champions_min > self.loyal_min > self.potential_min:
            raise ValueError(
                "Segment thresholds must be strictly descending: "
                f"champions_min={self.champions_min}, loyal_min={self.loyal_min}, "
                f"potential_min={self.potential_min}"
            )
        if self.parallel_threshold < 1:
            raise ValueError(
                f"parallel_threshold must be positive: {self.parallel_threshold}"
            )
        if self.n_workers is not None and self.n_workers < 1:
            raise ValueError(f"n_workers must be positive: {self.n_workers}")


DEFAULT_CONFIG = RFMConfig()


@dataclass(frozen=True)
class QuintileRanks:
    """Per-dimension quintile ranks for a single customer."""

    customer_id: str
    recency_score: int
    frequency_score: int
    monetary_score: int

    @property
    def rfm_total(self) -> int:
        return self.recency_score + self.frequency_score + self.monetary_score


@dataclass(frozen=True)
class RFMScore:
    """Final RFM result for a single customer.

    Attributes
    ----------
    customer_id:
        Unique customer identifier
    name:
        Customer display name
    last_purchase_date:
        Most recent order date
    purchase_frequency:
        Number of distinct orders
    total_spent:
        Sum of quantity x price over all orders
    recency_score, frequency_score, monetary_score:
        Quintile ranks (1-5)
    rfm_total:
        Sum of the three ranks (3-15)
    customer_segment:
        Segment derived from ``rfm_total``
    """

    customer_id: str
    name: str
    last_purchase_date: date
    purchase_frequency: int
    total_spent: Decimal
    recency_score: int
    frequency_score: int
    monetary_score: int
    rfm_total: int
    customer_segment: Segment

    def __post_init__(self) -> None:
        """Validate RFM scores."""
        for score_name, score_value in [
            ("recency_score", self.recency_score),
            ("frequency_score", self.frequency_score),
            ("monetary_score", self.monetary_score),
        ]:
            if not 1 <= score_value <= N_TILES:
                raise ValueError(
                    f"{score_name} must be between 1 and {N_TILES}: {score_value} (customer_id={self.customer_id})"
                )
        expected_total = self.recency_score + self.frequency_score + self.monetary_score
        if self.rfm_total != expected_total:
            raise ValueError(
                f"rfm_total ({self.rfm_total}) does not match sum of scores ({expected_total}) (customer_id={self.customer_id})"
            )


def ntile_groups(n_rows: int, n_tiles: int = N_TILES) -> list[int]:
    """Return the 1-based group number for each position of a sorted list.

    Mirrors SQL ``NTILE``: groups are contiguous, their sizes differ by at
    most one, and the larger groups come first. With fewer rows than tiles
    each row gets its own group.

    >>> ntile_groups(7)
    [1, 1, 2, 2, 3, 4, 5]
    >>> ntile_groups(3)
    [1, 2, 3]
    """
    if n_rows < 0:
        raise ValueError(f"n_rows cannot be negative: {n_rows}")
    if n_tiles < 1:
        raise ValueError(f"n_tiles must be positive: {n_tiles}")

    base_size, remainder = divmod(n_rows, n_tiles)
    groups: list[int] = []
    for tile in range(1, n_tiles + 1):
        size = base_size + 1 if tile <= remainder else base_size
        groups.extend([tile] * size)
    return groups


def _rank_dimension(
    metrics: Sequence[CustomerMetrics],
    sort_key: Callable[[CustomerMetrics], object],
    reverse_ranks: bool,
) -> dict[str, int]:
    # Python's sort is stable even with reverse=True, so sorting by the
    # secondary key first leaves ties ordered by customer_id ascending.
    ordered = sorted(metrics, key=lambda m: m.customer_id)
    ordered.sort(key=sort_key, reverse=True)

    ranks: dict[str, int] = {}
    for customer, group in zip(ordered, ntile_groups(len(ordered))):
        ranks[customer.customer_id] = N_TILES + 1 - group if reverse_ranks else group
    return ranks


def assign_quintile_ranks(
    metrics: Sequence[CustomerMetrics], config: RFMConfig = DEFAULT_CONFIG
) -> list[QuintileRanks]:
    """Rank every customer into quintiles on recency, frequency and monetary.

    Ranks are relative to the population passed in: the same last purchase
    date can be rank 1 in one batch and rank 3 in another.

    Parameters
    ----------
    metrics:
        One entry per customer; typically the output of
        :func:`aggregate_customer_metrics`.
    config:
        Scoring configuration (only ``reverse_ranks`` is used here).

    Returns
    -------
    list[QuintileRanks]
        One entry per customer, sorted by customer_id

    Examples
    --------
    >>> from datetime import date
    >>> from decimal import Decimal
    >>> metrics = [
    ...     CustomerMetrics("C1", "Ada", date(2024, 5, 1), 4, Decimal("80.00")),
    ...     CustomerMetrics("C2", "Bo", date(2024, 1, 1), 1, Decimal("10.00")),
    ... ]
    >>> ranks = assign_quintile_ranks(metrics)
    >>> (ranks[0].recency_score, ranks[1].recency_score)
    (1, 2)
    """
    if not metrics:
        return []

    recency = _rank_dimension(
        metrics, lambda m: m.last_purchase_date, config.reverse_ranks
    )
    frequency = _rank_dimension(
        metrics, lambda m: m.purchase_frequency, config.reverse_ranks
    )
    monetary = _rank_dimension(metrics, lambda m: m.total_spent, config.reverse_ranks)

    ranks = [
        QuintileRanks(
            customer_id=m.customer_id,
            recency_score=recency[m.customer_id],
            frequency_score=frequency[m.customer_id],
            monetary_score=monetary[m.customer_id],
        )
        for m in metrics
    ]
    ranks.sort(key=lambda r: r.customer_id)
    return ranks


def classify_segment(rfm_total: int, config: RFMConfig = DEFAULT_CONFIG) -> Segment:
    """Map an ``rfm_total`` onto a :class:`Segment`.

    >>> classify_segment(13).value
    'Champions'
    >>> classify_segment(8).value
    'Potential'
    >>> classify_segment(3).value
    'At Risk'
    """
    if rfm_total >= config.champions_min:
        return Segment.CHAMPIONS
    if rfm_total >= config.loyal_min:
        return Segment.LOYAL
    if rfm_total >= config.potential_min:
        return Segment.POTENTIAL
    return Segment.AT_RISK


def score_customers(
    metrics: Sequence[CustomerMetrics], config: RFMConfig = DEFAULT_CONFIG
) -> list[RFMScore]:
    """Rank and classify aggregated customers.

    Returns
    -------
    list[RFMScore]
        Ordered by ``rfm_total`` descending, then customer_id ascending
    """
    if not metrics:
        return []

    ranks_by_customer = {r.customer_id: r for r in assign_quintile_ranks(metrics, config)}

    scores: list[RFMScore] = []
    for m in metrics:
        ranks = ranks_by_customer[m.customer_id]
        rfm_total = ranks.rfm_total
        scores.append(
            RFMScore(
                customer_id=m.customer_id,
                name=m.name,
                last_purchase_date=m.last_purchase_date,
                purchase_frequency=m.purchase_frequency,
                total_spent=m.total_spent,
                recency_score=ranks.recency_score,
                frequency_score=ranks.frequency_score,
                monetary_score=ranks.monetary_score,
                rfm_total=rfm_total,
                customer_segment=classify_segment(rfm_total, config),
            )
        )

    scores.sort(key=lambda s: s.customer_id)
    scores.sort(key=lambda s: s.rfm_total, reverse=True)
    return scores


def calculate_rfm_segmentation(
    snapshot: RetailSnapshot, config: RFMConfig = DEFAULT_CONFIG
) -> list[RFMScore]:
    """Run the full aggregate -> rank -> classify pipeline on a snapshot.

    Customers without orders are not part of the result. An empty order
    table yields an empty list.

    Raises
    ------
    ReferentialIntegrityError
        If any order references an unknown customer or book.
    """
    metrics = aggregate_customer_metrics(
        snapshot,
        parallel=config.parallel,
        parallel_threshold=config.parallel_threshold,
        n_workers=config.n_workers,
    )
    scores = score_customers(metrics, config)

    if scores:
        counts: dict[str, int] = {}
        for score in scores:
            counts[score.customer_segment.value] = (
                counts.get(score.customer_segment.value, 0) + 1
            )
        logger.info(f"Scored {len(scores)} customers: {counts}")
    else:
        logger.info("No customers with orders; nothing to score")
    return scores
