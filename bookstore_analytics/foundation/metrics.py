"""Per-customer purchase metrics.

The first stage of RFM segmentation joins every order to its customer and
book and collapses the result to one row per purchasing customer:

- last purchase date (the most recent order date),
- purchase frequency (number of distinct orders),
- total spent (sum of quantity x unit price).

Customers without orders produce no row. Orders that point at unknown
customers or books abort the whole computation.
"""

from __future__ import annotations

import logging
import multiprocessing
import os
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from bookstore_analytics.foundation.errors import ReferentialIntegrityError
from bookstore_analytics.foundation.records import RetailSnapshot

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CustomerMetrics:
    """Aggregated purchase behaviour for a single customer.

    Attributes
    ----------
    customer_id:
        Unique customer identifier
    name:
        Customer display name, carried through for reporting
    last_purchase_date:
        Most recent order date among the customer's orders
    purchase_frequency:
        Number of distinct orders placed
    total_spent:
        Sum of quantity x book price over all orders
    """

    customer_id: str
    name: str
    last_purchase_date: date
    purchase_frequency: int
    total_spent: Decimal

    def __post_init__(self) -> None:
        """Validate customer metrics."""
        if self.purchase_frequency < 1:
            raise ValueError(
                f"Purchase frequency must be at least 1: {self.purchase_frequency} (customer_id={self.customer_id})"
            )
        if self.total_spent < 0:
            raise ValueError(
                f"Total spent cannot be negative: {self.total_spent} (customer_id={self.customer_id})"
            )


def _build_metrics_for_customers(
    customer_data_chunk: dict[str, dict],
) -> list[CustomerMetrics]:
    """Turn grouped order data into :class:`CustomerMetrics`.

    Called directly for serial runs and by ``multiprocessing`` workers for
    parallel runs; each chunk is independent of the others.
    """
    metrics: list[CustomerMetrics] = []

    for customer_id, data in customer_data_chunk.items():
        total_spent = data["total_spent"].quantize(
            Decimal("0.01"), rounding=ROUND_HALF_UP
        )
        metrics.append(
            CustomerMetrics(
                customer_id=customer_id,
                name=data["name"],
                last_purchase_date=data["last_purchase_date"],
                purchase_frequency=len(data["order_ids"]),
                total_spent=total_spent,
            )
        )

    return metrics


def aggregate_customer_metrics(
    snapshot: RetailSnapshot,
    parallel: bool = True,
    parallel_threshold: int = 10_000_000,
    n_workers: Optional[int] = None,
) -> list[CustomerMetrics]:
    """Aggregate orders into one :class:`CustomerMetrics` per customer.

    Every order must reference a customer and a book present in the
    snapshot. All violations are collected first and raised together as a
    :class:`ReferentialIntegrityError`, so a single run reports every bad
    order rather than only the first.

    **Parallel Processing**: the per-customer stage is fanned out to a
    ``multiprocessing`` pool when ``parallel`` is set and the number of
    purchasing customers reaches ``parallel_threshold``. Workers receive
    disjoint customer chunks and the merged result is sorted, so the output
    is identical to a serial run.

    Parameters
    ----------
    snapshot:
        Input tables. Only books, customers and orders are read.
    parallel:
        Enable parallel processing for large batches (default: True).
    parallel_threshold:
        Number of purchasing customers above which parallel processing is
        used (default: 10,000,000).
    n_workers:
        Worker process count. If None (default), uses CPU count. Ignored
        when processing serially.

    Returns
    -------
    list[CustomerMetrics]
        One entry per customer with at least one order, sorted by customer_id

    Raises
    ------
    ReferentialIntegrityError
        If any order references an unknown customer_id or book_id.

    Examples
    --------
    >>> from datetime import date
    >>> from decimal import Decimal
    >>> from bookstore_analytics.foundation.records import Book, Customer, Order
    >>> snapshot = RetailSnapshot(
    ...     books=[Book("B1", "Dune", "Herbert", "SciFi", Decimal("12.50"), 4)],
    ...     customers=[Customer("C1", "Ada", "ada@example.com", "Leeds", date(2023, 1, 1))],
    ...     orders=[
    ...         Order("O1", "C1", "B1", 2, date(2023, 3, 1)),
    ...         Order("O2", "C1", "B1", 1, date(2023, 5, 9)),
    ...     ],
    ... )
    >>> metrics = aggregate_customer_metrics(snapshot)
    >>> metrics[0].purchase_frequency
    2
    >>> metrics[0].total_spent
    Decimal('37.50')
    """
    if not snapshot.orders:
        return []

    customers = snapshot.customers_by_id()
    books = snapshot.books_by_id()

    missing_customers: dict[str, str] = {}
    missing_books: dict[str, str] = {}
    customer_data: dict[str, dict] = {}

    for order in snapshot.orders:
        customer = customers.get(order.customer_id)
        book = books.get(order.book_id)
        if customer is None:
            missing_customers[order.order_id] = order.customer_id
        if book is None:
            missing_books[order.order_id] = order.book_id
        if customer is None or book is None:
            continue

        data = customer_data.get(order.customer_id)
        if data is None:
            data = customer_data[order.customer_id] = {
                "name": customer.name,
                "last_purchase_date": order.order_date,
                "order_ids": set(),
                "total_spent": Decimal("0"),
            }

        if order.order_date > data["last_purchase_date"]:
            data["last_purchase_date"] = order.order_date
        data["order_ids"].add(order.order_id)
        data["total_spent"] += book.price * order.quantity

    if missing_customers or missing_books:
        error = ReferentialIntegrityError(missing_customers, missing_books)
        logger.error(f"{len(error.order_ids)} orders failed referential checks")
        raise error

    num_customers = len(customer_data)
    use_parallel = parallel and num_customers >= parallel_threshold

    if use_parallel:
        if n_workers is None:
            workers = os.cpu_count() or 1
        else:
            workers = max(1, n_workers)

        customer_items = list(customer_data.items())
        chunk_size = max(1, num_customers // workers)
        chunks = [
            dict(customer_items[i : i + chunk_size])
            for i in range(0, num_customers, chunk_size)
        ]
        logger.info(
            f"Aggregating {num_customers} customers in {len(chunks)} chunks "
            f"with {workers} workers"
        )

        with multiprocessing.Pool(processes=workers) as pool:
            chunk_results = pool.map(_build_metrics_for_customers, chunks)

        metrics: list[CustomerMetrics] = []
        for chunk_result in chunk_results:
            metrics.extend(chunk_result)
    else:
        metrics = _build_metrics_for_customers(customer_data)

    metrics.sort(key=lambda m: m.customer_id)
    logger.debug(
        f"Aggregated {len(snapshot.orders)} orders into {len(metrics)} customer rows"
    )
    return metrics
