"""Exceptions raised when an input snapshot is internally inconsistent."""

from __future__ import annotations

from typing import Mapping


class DataIntegrityError(ValueError):
    """Snapshot violates a structural constraint (duplicate keys, bad payload)."""


class ReferentialIntegrityError(DataIntegrityError):
    """Orders reference customers or books that are not in the snapshot.

    Attributes
    ----------
    missing_customers:
        Mapping of order_id to the customer_id it references but which
        does not exist.
    missing_books:
        Mapping of order_id to the book_id it references but which does
        not exist.
    """

    def __init__(
        self,
        missing_customers: Mapping[str, str] | None = None,
        missing_books: Mapping[str, str] | None = None,
    ) -> None:
        self.missing_customers = dict(missing_customers or {})
        self.missing_books = dict(missing_books or {})
        super().__init__(self._build_message())

    @property
    def order_ids(self) -> list[str]:
        """Sorted order_ids involved in at least one violation."""
        return sorted(set(self.missing_customers) | set(self.missing_books))

    def _build_message(self) -> str:
        parts = []
        if self.missing_customers:
            details = ", ".join(
                f"{order_id}->{customer_id}"
                for order_id, customer_id in sorted(self.missing_customers.items())
            )
            parts.append(f"unknown customer_id for orders [{details}]")
        if self.missing_books:
            details = ", ".join(
                f"{order_id}->{book_id}"
                for order_id, book_id in sorted(self.missing_books.items())
            )
            parts.append(f"unknown book_id for orders [{details}]")
        return "Referential integrity violated: " + "; ".join(parts)
