"""Bookstore snapshot records and validation utilities.

The snapshot is the read-only input to every analysis in this package:
four tables (books, customers, orders, marketing spend) captured at a
single point in time. The contract below turns raw row mappings, as
produced by a JSON export or a CSV reader, into validated frozen records
and enforces primary-key uniqueness so that downstream aggregation can
rely on one record per identifier.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Mapping, Sequence

from bookstore_analytics.foundation.errors import DataIntegrityError


@dataclass(frozen=True)
class Book:
    """A catalogue entry.

    Attributes
    ----------
    book_id:
        Primary key
    title, author, genre:
        Descriptive fields, not interpreted by the analyses
    price:
        Unit price (non-negative)
    stock_qty:
        Units currently in stock (non-negative)
    """

    book_id: str
    title: str
    author: str
    genre: str
    price: Decimal
    stock_qty: int

    def __post_init__(self) -> None:
        if self.price < 0:
            raise ValueError(
                f"Price cannot be negative: {self.price} (book_id={self.book_id})"
            )
        if self.stock_qty < 0:
            raise ValueError(
                f"Stock quantity cannot be negative: {self.stock_qty} (book_id={self.book_id})"
            )


@dataclass(frozen=True)
class Customer:
    """A registered customer."""

    customer_id: str
    name: str
    email: str
    city: str
    signup_date: date


@dataclass(frozen=True)
class Order:
    """A single-book order placed by a customer."""

    order_id: str
    customer_id: str
    book_id: str
    quantity: int
    order_date: date

    def __post_init__(self) -> None:
        if self.quantity <= 0:
            raise ValueError(
                f"Quantity must be positive: {self.quantity} (order_id={self.order_id})"
            )


@dataclass(frozen=True)
class MarketingSpend:
    """Marketing cost attributed to a customer on a given channel and day."""

    customer_id: str
    channel: str
    cost: Decimal
    spend_date: date

    def __post_init__(self) -> None:
        if self.cost < 0:
            raise ValueError(
                f"Marketing cost cannot be negative: {self.cost} (customer_id={self.customer_id})"
            )


@dataclass(frozen=True)
class RetailSnapshot:
    """Consistent read-only view of the four bookstore tables.

    Primary keys (``book_id``, ``customer_id``, ``order_id``) must be unique;
    a :class:`DataIntegrityError` is raised otherwise. Foreign keys are *not*
    checked here: referential integrity is verified by the aggregation stage
    so that every violation in a batch can be reported at once.
    """

    books: tuple[Book, ...] = ()
    customers: tuple[Customer, ...] = ()
    orders: tuple[Order, ...] = ()
    marketing_spend: tuple[MarketingSpend, ...] = ()

    def __post_init__(self) -> None:
        # Accept any sequence from callers but store tuples so the snapshot stays immutable.
        object.__setattr__(self, "books", tuple(self.books))
        object.__setattr__(self, "customers", tuple(self.customers))
        object.__setattr__(self, "orders", tuple(self.orders))
        object.__setattr__(self, "marketing_spend", tuple(self.marketing_spend))

        _ensure_unique("book_id", [book.book_id for book in self.books])
        _ensure_unique(
            "customer_id", [customer.customer_id for customer in self.customers]
        )
        _ensure_unique("order_id", [order.order_id for order in self.orders])

    def books_by_id(self) -> dict[str, Book]:
        return {book.book_id: book for book in self.books}

    def customers_by_id(self) -> dict[str, Customer]:
        return {customer.customer_id: customer for customer in self.customers}

    def as_dict(self) -> dict[str, list[dict[str, object]]]:
        """Return JSON-serialisable representation of the snapshot."""

        return {
            "books": [
                {
                    "book_id": book.book_id,
                    "title": book.title,
                    "author": book.author,
                    "genre": book.genre,
                    "price": str(book.price),
                    "stock_qty": book.stock_qty,
                }
                for book in self.books
            ],
            "customers": [
                {
                    "customer_id": customer.customer_id,
                    "name": customer.name,
                    "email": customer.email,
                    "city": customer.city,
                    "signup_date": customer.signup_date.isoformat(),
                }
                for customer in self.customers
            ],
            "orders": [
                {
                    "order_id": order.order_id,
                    "customer_id": order.customer_id,
                    "book_id": order.book_id,
                    "quantity": order.quantity,
                    "order_date": order.order_date.isoformat(),
                }
                for order in self.orders
            ],
            "marketing_spend": [
                {
                    "customer_id": spend.customer_id,
                    "channel": spend.channel,
                    "cost": str(spend.cost),
                    "spend_date": spend.spend_date.isoformat(),
                }
                for spend in self.marketing_spend
            ],
        }


def _ensure_unique(key_name: str, keys: Sequence[str]) -> None:
    seen: set[str] = set()
    duplicates: set[str] = set()
    for key in keys:
        if key in seen:
            duplicates.add(key)
        seen.add(key)
    if duplicates:
        raise DataIntegrityError(
            f"Duplicate {key_name} values in snapshot: {sorted(duplicates)}"
        )


class SnapshotContract:
    """Validate raw table rows and assemble a :class:`RetailSnapshot`."""

    #: Columns each table must provide.
    REQUIRED_FIELDS: Mapping[str, tuple[str, ...]] = {
        "books": ("book_id", "title", "author", "genre", "price", "stock_qty"),
        "customers": ("customer_id", "name", "email", "city", "signup_date"),
        "orders": ("order_id", "customer_id", "book_id", "quantity", "order_date"),
        "marketing_spend": ("customer_id", "channel", "cost", "spend_date"),
    }

    def build(self, payload: Mapping[str, Iterable[Mapping[str, Any]]]) -> RetailSnapshot:
        """Build a snapshot from a mapping of table name to row mappings.

        ``books``, ``customers`` and ``orders`` are required keys;
        ``marketing_spend`` is optional.
        """

        if not isinstance(payload, Mapping):
            raise DataIntegrityError(
                f"Snapshot payload must be a mapping of tables, got {type(payload).__name__}"
            )
        missing_tables = [
            table for table in ("books", "customers", "orders") if table not in payload
        ]
        if missing_tables:
            raise DataIntegrityError(
                f"Snapshot payload missing tables: {missing_tables}"
            )

        return RetailSnapshot(
            books=self.validate_books(payload["books"]),
            customers=self.validate_customers(payload["customers"]),
            orders=self.validate_orders(payload["orders"]),
            marketing_spend=self.validate_marketing_spend(
                payload.get("marketing_spend") or []
            ),
        )

    def validate_books(self, records: Iterable[Mapping[str, Any]]) -> list[Book]:
        books: list[Book] = []
        for idx, record in enumerate(records):
            self._check_required("books", record, idx)
            books.append(
                Book(
                    book_id=str(record["book_id"]),
                    title=str(record["title"]),
                    author=str(record["author"]),
                    genre=str(record["genre"]),
                    price=_to_decimal(record["price"], "price", idx),
                    stock_qty=_to_int(record["stock_qty"], "stock_qty", idx),
                )
            )
        return books

    def validate_customers(
        self, records: Iterable[Mapping[str, Any]]
    ) -> list[Customer]:
        customers: list[Customer] = []
        for idx, record in enumerate(records):
            self._check_required("customers", record, idx)
            customers.append(
                Customer(
                    customer_id=str(record["customer_id"]),
                    name=str(record["name"]),
                    email=str(record["email"]),
                    city=str(record["city"]),
                    signup_date=parse_date(record["signup_date"], "signup_date", idx),
                )
            )
        return customers

    def validate_orders(self, records: Iterable[Mapping[str, Any]]) -> list[Order]:
        orders: list[Order] = []
        for idx, record in enumerate(records):
            self._check_required("orders", record, idx)
            orders.append(
                Order(
                    order_id=str(record["order_id"]),
                    customer_id=str(record["customer_id"]),
                    book_id=str(record["book_id"]),
                    quantity=_to_int(record["quantity"], "quantity", idx),
                    order_date=parse_date(record["order_date"], "order_date", idx),
                )
            )
        return orders

    def validate_marketing_spend(
        self, records: Iterable[Mapping[str, Any]]
    ) -> list[MarketingSpend]:
        spends: list[MarketingSpend] = []
        for idx, record in enumerate(records):
            self._check_required("marketing_spend", record, idx)
            spends.append(
                MarketingSpend(
                    customer_id=str(record["customer_id"]),
                    channel=str(record["channel"]),
                    cost=_to_decimal(record["cost"], "cost", idx),
                    spend_date=parse_date(record["spend_date"], "spend_date", idx),
                )
            )
        return spends

    def _check_required(
        self, table: str, record: Mapping[str, Any], idx: int
    ) -> None:
        if not isinstance(record, Mapping):
            raise TypeError(
                f"Rows of table '{table}' must be mappings",
                {"record_index": idx, "value": record},
            )
        missing = [
            name
            for name in self.REQUIRED_FIELDS[table]
            if record.get(name) is None or record.get(name) == ""
        ]
        if missing:
            raise ValueError(
                f"Record in table '{table}' missing required fields",
                {"missing_fields": missing, "record_index": idx},
            )


def parse_date(value: object, field_name: str = "date", idx: int | None = None) -> date:
    """Coerce a date, datetime or ISO-8601 string to a :class:`date`."""

    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return date.fromisoformat(text)
        except ValueError:
            pass
        try:
            return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
        except ValueError as exc:
            raise ValueError(
                f"{field_name} is not an ISO-8601 date",
                {"record_index": idx, "value": value},
            ) from exc
    raise TypeError(
        f"{field_name} must be a date, datetime or ISO-8601 string",
        {"record_index": idx, "value": value},
    )


def _to_decimal(value: object, field_name: str, idx: int) -> Decimal:
    if isinstance(value, bool):
        raise TypeError(
            f"{field_name} must be numeric", {"record_index": idx, "value": value}
        )
    try:
        number = Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(
            f"{field_name} is not a valid decimal",
            {"record_index": idx, "value": value},
        ) from exc
    if not number.is_finite():
        raise ValueError(
            f"{field_name} must be a finite decimal",
            {"record_index": idx, "value": value},
        )
    return number


def _to_int(value: object, field_name: str, idx: int) -> int:
    if isinstance(value, bool):
        raise TypeError(
            f"{field_name} must be an integer", {"record_index": idx, "value": value}
        )
    try:
        number = Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(
            f"{field_name} is not a valid integer",
            {"record_index": idx, "value": value},
        ) from exc
    if not number.is_finite() or number != number.to_integral_value():
        raise ValueError(
            f"{field_name} must be a whole number",
            {"record_index": idx, "value": value},
        )
    return int(number)
