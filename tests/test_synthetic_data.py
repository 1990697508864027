"""Tests for the synthetic bookstore snapshot generator."""

from datetime import date

import pytest

from bookstore_analytics.synthetic import (
    SnapshotConfig,
    generate_books,
    generate_customers,
    generate_orders,
    generate_snapshot,
)

START = date(2023, 1, 1)
END = date(2023, 12, 31)


def test_same_seed_same_snapshot():
    config = SnapshotConfig(seed=42)
    assert generate_snapshot(50, 10, START, END, config) == generate_snapshot(
        50, 10, START, END, config
    )


def test_different_seed_different_orders():
    a = generate_snapshot(50, 10, START, END, SnapshotConfig(seed=1))
    b = generate_snapshot(50, 10, START, END, SnapshotConfig(seed=2))
    assert a.orders != b.orders


def test_orders_reference_existing_records():
    snapshot = generate_snapshot(80, 15, START, END, SnapshotConfig(seed=8))
    books = snapshot.books_by_id()
    customers = snapshot.customers_by_id()
    for order in snapshot.orders:
        assert order.book_id in books
        assert order.customer_id in customers
        assert customers[order.customer_id].signup_date <= order.order_date <= END


def test_some_customers_never_order():
    snapshot = generate_snapshot(
        100, 10, START, END, SnapshotConfig(seed=21, inactive_share=0.3)
    )
    purchasing = {o.customer_id for o in snapshot.orders}
    assert 0 < len(purchasing) < len(snapshot.customers)


def test_all_inactive_produces_no_orders():
    customers = generate_customers(10, START, END, seed=1)
    books = generate_books(3, seed=1)
    assert generate_orders(customers, books, END, SnapshotConfig(inactive_share=1.0)) == []


def test_invalid_inactive_share_raises_error():
    customers = generate_customers(2, START, END, seed=1)
    books = generate_books(2, seed=1)
    with pytest.raises(ValueError, match="inactive_share"):
        generate_orders(customers, books, END, SnapshotConfig(inactive_share=1.5))


def test_customer_signups_within_range():
    customers = generate_customers(30, START, END, seed=5)
    assert len({c.customer_id for c in customers}) == 30
    assert all(START <= c.signup_date <= END for c in customers)


def test_start_after_end_raises_error():
    with pytest.raises(ValueError, match="start date must be <= end date"):
        generate_customers(3, END, START)


def test_book_prices_positive():
    books = generate_books(40, seed=3)
    assert all(book.price > 0 for book in books)


def test_price_variability_controls_spread():
    def spread(variability):
        prices = [
            float(b.price)
            for b in generate_books(
                200, seed=9, mean_price=20.0, price_variability=variability
            )
        ]
        return max(prices) - min(prices)

    assert spread(0.01) < spread(1.0)


def test_snapshot_uses_configured_price_variability():
    tight = generate_snapshot(
        5, 50, START, END, SnapshotConfig(seed=4, price_variability=0.01)
    )
    assert all(abs(float(b.price) - 15.0) < 1.0 for b in tight.books)


def test_non_positive_counts_return_empty():
    assert generate_books(0) == []
    assert generate_customers(0, START, END) == []
