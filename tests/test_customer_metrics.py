"""Tests for per-customer metric aggregation."""

from datetime import date
from decimal import Decimal

import pytest

from bookstore_analytics.foundation.errors import (
    DataIntegrityError,
    ReferentialIntegrityError,
)
from bookstore_analytics.foundation.metrics import (
    CustomerMetrics,
    aggregate_customer_metrics,
)
from bookstore_analytics.foundation.records import (
    Book,
    Customer,
    Order,
    RetailSnapshot,
)
from bookstore_analytics.synthetic import SnapshotConfig, generate_snapshot


def _books():
    return [
        Book("B1", "Dune", "Frank Herbert", "Science Fiction", Decimal("12.50"), 10),
        Book("B2", "Emma", "Jane Austen", "Fiction", Decimal("8.99"), 5),
        Book("B3", "Atlas", "Ivo Vale", "History", Decimal("30.00"), 0),
    ]


def _customers():
    return [
        Customer("C1", "Ada Moss", "ada@example.com", "Leeds", date(2023, 1, 1)),
        Customer("C2", "Bo Reed", "bo@example.com", "Bristol", date(2023, 1, 2)),
        Customer("C3", "Cleo Hart", "cleo@example.com", "London", date(2023, 1, 3)),
    ]


class TestCustomerMetrics:
    """Test CustomerMetrics dataclass validation."""

    def test_valid_metrics(self):
        metrics = CustomerMetrics("C1", "Ada", date(2023, 5, 1), 2, Decimal("10.00"))
        assert metrics.purchase_frequency == 2

    def test_zero_frequency_raises_error(self):
        with pytest.raises(ValueError, match="Purchase frequency must be at least 1"):
            CustomerMetrics("C1", "Ada", date(2023, 5, 1), 0, Decimal("0"))

    def test_negative_total_raises_error(self):
        with pytest.raises(ValueError, match="Total spent cannot be negative"):
            CustomerMetrics("C1", "Ada", date(2023, 5, 1), 1, Decimal("-1"))


class TestAggregateCustomerMetrics:
    """Test aggregate_customer_metrics."""

    def test_empty_orders_returns_empty_list(self):
        """No orders means no metrics, not an error."""
        snapshot = RetailSnapshot(books=_books(), customers=_customers())
        assert aggregate_customer_metrics(snapshot) == []

    def test_single_customer_aggregation(self):
        """Frequency, total and last purchase date for one customer."""
        snapshot = RetailSnapshot(
            books=_books(),
            customers=_customers(),
            orders=[
                Order("O1", "C1", "B1", 2, date(2023, 3, 1)),
                Order("O2", "C1", "B2", 1, date(2023, 6, 15)),
                Order("O3", "C1", "B1", 1, date(2023, 4, 2)),
            ],
        )
        metrics = aggregate_customer_metrics(snapshot)

        assert len(metrics) == 1
        assert metrics[0].customer_id == "C1"
        assert metrics[0].name == "Ada Moss"
        assert metrics[0].purchase_frequency == 3
        # 2 * 12.50 + 1 * 8.99 + 1 * 12.50
        assert metrics[0].total_spent == Decimal("46.49")
        assert metrics[0].last_purchase_date == date(2023, 6, 15)

    def test_customers_without_orders_are_excluded(self):
        """Only customers with at least one order produce a row."""
        snapshot = RetailSnapshot(
            books=_books(),
            customers=_customers(),
            orders=[
                Order("O1", "C3", "B3", 1, date(2023, 3, 1)),
                Order("O2", "C1", "B1", 1, date(2023, 3, 2)),
            ],
        )
        metrics = aggregate_customer_metrics(snapshot)
        assert [m.customer_id for m in metrics] == ["C1", "C3"]

    def test_zero_price_book_contributes_nothing(self):
        """A free book still counts as an order but adds no spend."""
        books = _books() + [Book("B4", "Free", "Anon", "Fiction", Decimal("0"), 1)]
        snapshot = RetailSnapshot(
            books=books,
            customers=_customers(),
            orders=[Order("O1", "C2", "B4", 3, date(2023, 3, 1))],
        )
        metrics = aggregate_customer_metrics(snapshot)
        assert metrics[0].purchase_frequency == 1
        assert metrics[0].total_spent == Decimal("0.00")

    def test_total_spent_is_rounded_half_up(self):
        """Sub-cent prices are summed exactly, then rounded to cents."""
        books = [Book("B1", "Odd", "Anon", "Fiction", Decimal("0.005"), 1)]
        snapshot = RetailSnapshot(
            books=books,
            customers=_customers(),
            orders=[Order("O1", "C1", "B1", 1, date(2023, 3, 1))],
        )
        assert aggregate_customer_metrics(snapshot)[0].total_spent == Decimal("0.01")

    def test_unknown_book_raises_referential_error(self):
        """An order pointing at a missing book names the order."""
        snapshot = RetailSnapshot(
            books=_books(),
            customers=_customers(),
            orders=[
                Order("O1", "C1", "B1", 1, date(2023, 3, 1)),
                Order("O2", "C2", "B99", 1, date(2023, 3, 2)),
            ],
        )
        with pytest.raises(ReferentialIntegrityError, match="O2->B99") as excinfo:
            aggregate_customer_metrics(snapshot)

        assert excinfo.value.missing_books == {"O2": "B99"}
        assert excinfo.value.missing_customers == {}
        assert excinfo.value.order_ids == ["O2"]

    def test_all_violations_reported_together(self):
        """Every bad order is reported, not just the first one."""
        snapshot = RetailSnapshot(
            books=_books(),
            customers=_customers(),
            orders=[
                Order("O1", "C404", "B1", 1, date(2023, 3, 1)),
                Order("O2", "C1", "B404", 1, date(2023, 3, 2)),
                Order("O3", "C405", "B405", 1, date(2023, 3, 3)),
            ],
        )
        with pytest.raises(ReferentialIntegrityError) as excinfo:
            aggregate_customer_metrics(snapshot)

        error = excinfo.value
        assert error.missing_customers == {"O1": "C404", "O3": "C405"}
        assert error.missing_books == {"O2": "B404", "O3": "B405"}
        assert error.order_ids == ["O1", "O2", "O3"]

    def test_referential_error_is_data_integrity_error(self):
        """Callers can catch the broader DataIntegrityError."""
        snapshot = RetailSnapshot(
            books=_books(),
            customers=[],
            orders=[Order("O1", "C1", "B1", 1, date(2023, 3, 1))],
        )
        with pytest.raises(DataIntegrityError):
            aggregate_customer_metrics(snapshot)

    def test_matches_brute_force_recomputation(self):
        """Aggregates equal a naive per-customer recomputation."""
        snapshot = generate_snapshot(
            60, 15, date(2023, 1, 1), date(2023, 12, 31), SnapshotConfig(seed=7)
        )
        metrics = aggregate_customer_metrics(snapshot)
        books = snapshot.books_by_id()

        purchasing = {o.customer_id for o in snapshot.orders}
        assert {m.customer_id for m in metrics} == purchasing

        for m in metrics:
            orders = [o for o in snapshot.orders if o.customer_id == m.customer_id]
            assert m.purchase_frequency == len({o.order_id for o in orders})
            assert m.last_purchase_date == max(o.order_date for o in orders)
            expected = sum(
                (books[o.book_id].price * o.quantity for o in orders), Decimal("0")
            )
            assert m.total_spent == expected.quantize(Decimal("0.01"))


class TestParallelAggregation:
    """Test parallel processing in aggregate_customer_metrics."""

    def test_parallel_produces_same_results_as_serial(self):
        """Parallel and serial aggregation give identical output."""
        snapshot = generate_snapshot(
            120, 20, date(2023, 1, 1), date(2023, 12, 31), SnapshotConfig(seed=3)
        )
        serial = aggregate_customer_metrics(snapshot, parallel=False)
        parallel = aggregate_customer_metrics(
            snapshot, parallel=True, parallel_threshold=10, n_workers=2
        )
        assert serial == parallel

    def test_parallel_still_checks_references(self):
        """Referential checks run before any work is fanned out."""
        snapshot = RetailSnapshot(
            books=_books(),
            customers=_customers(),
            orders=[Order("O1", "C1", "B404", 1, date(2023, 3, 1))],
        )
        with pytest.raises(ReferentialIntegrityError):
            aggregate_customer_metrics(
                snapshot, parallel=True, parallel_threshold=1, n_workers=2
            )
