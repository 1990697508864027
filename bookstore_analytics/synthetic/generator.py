from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
import math
import random
from decimal import Decimal
from typing import List, Optional, Sequence

from bookstore_analytics.foundation.records import (
    Book,
    Customer,
    MarketingSpend,
    Order,
    RetailSnapshot,
)

GENRES = ("Fiction", "Mystery", "Science Fiction", "Biography", "History", "Fantasy")
CITIES = ("London", "Manchester", "Leeds", "Bristol", "Glasgow", "Cardiff")
CHANNELS = ("Email", "Social", "Search", "Display")

_TITLE_WORDS = (
    "Silent", "River", "Empire", "Garden", "Shadow", "Winter", "Glass",
    "Harbor", "Atlas", "Ember", "Orchard", "Signal",
)
_FIRST_NAMES = ("Ada", "Bo", "Cleo", "Dev", "Eli", "Fay", "Gus", "Hana", "Ivo", "Juno")
_LAST_NAMES = ("Moss", "Reed", "Hart", "Lane", "Shaw", "Vale", "Webb", "York")


@dataclass(frozen=True)
class SnapshotConfig:
    """Configuration for synthetic snapshot generation.

    Attributes
    ----------
    inactive_share: Fraction of customers that never place an order.
    orders_per_customer_mean: Mean order count for active customers.
    mean_price: Average book price.
    price_variability: Coefficient in (0, 1] controlling price variance.
    quantity_mean: Average quantity per order.
    marketing_touches_mean: Mean marketing spend rows per customer.
    seed: Optional RNG seed for reproducibility.
    """

    inactive_share: float = 0.1
    orders_per_customer_mean: float = 3.0
    mean_price: float = 15.0
    price_variability: float = 0.4
    quantity_mean: float = 1.4
    marketing_touches_mean: float = 1.0
    seed: Optional[int] = None


def _poisson(rng: random.Random, lam: float) -> int:
    # Knuth's algorithm; adequate for the small lambdas used here
    if lam <= 0:
        return 0
    L = math.exp(-lam)
    k = 0
    p = 1.0
    while p > L:
        k += 1
        p *= rng.random()
    return k - 1


def _sample_price(rng: random.Random, mean: float, variability: float) -> Decimal:
    variability = min(max(variability, 0.01), 1.0)
    # Log-normal by exponentiating a normal draw for positivity
    sigma = variability
    mu = math.log(max(mean, 0.01)) - 0.5 * sigma * sigma
    price = math.exp(rng.normalvariate(mu, sigma))
    return Decimal(str(round(max(price, 0.99), 2)))


def _sample_quantity(rng: random.Random, mean_q: float) -> int:
    return 1 + _poisson(rng, max(0.0, mean_q - 1.0))


def generate_books(
    n: int,
    *,
    seed: Optional[int] = None,
    mean_price: float = 15.0,
    price_variability: float = 0.4,
) -> List[Book]:
    """Generate ``n`` books with log-normal prices.

    ``price_variability`` is the log-normal sigma, clamped to [0.01, 1].
    """

    if n <= 0:
        return []
    rng = random.Random(seed)
    books: List[Book] = []
    for i in range(n):
        title = f"The {rng.choice(_TITLE_WORDS)} {rng.choice(_TITLE_WORDS)}"
        author = f"{rng.choice(_FIRST_NAMES)} {rng.choice(_LAST_NAMES)}"
        books.append(
            Book(
                book_id=f"B-{i + 1}",
                title=title,
                author=author,
                genre=rng.choice(GENRES),
                price=_sample_price(rng, mean_price, price_variability),
                stock_qty=rng.randrange(0, 200),
            )
        )
    return books


def generate_customers(
    n: int,
    start: date,
    end: date,
    *,
    seed: Optional[int] = None,
) -> List[Customer]:
    """Generate ``n`` customers with signup dates uniformly between start/end."""

    if n <= 0:
        return []
    if start > end:
        raise ValueError("start date must be <= end date")

    rng = random.Random(seed)
    total_days = (end - start).days + 1

    customers: List[Customer] = []
    for i in range(n):
        first = rng.choice(_FIRST_NAMES)
        last = rng.choice(_LAST_NAMES)
        customers.append(
            Customer(
                customer_id=f"C-{i + 1}",
                name=f"{first} {last}",
                email=f"{first.lower()}.{last.lower()}{i + 1}@example.com",
                city=rng.choice(CITIES),
                signup_date=start + timedelta(days=rng.randrange(total_days)),
            )
        )
    return customers


def generate_orders(
    customers: Sequence[Customer],
    books: Sequence[Book],
    end: date,
    config: SnapshotConfig = SnapshotConfig(),
) -> List[Order]:
    """Generate orders for ``customers`` between each signup date and ``end``.

    A share of customers (``config.inactive_share``) is left without orders.
    Active customers place at least one order.
    """

    if not customers or not books:
        return []
    if not 0.0 <= config.inactive_share <= 1.0:
        raise ValueError("inactive_share must be within [0, 1]")

    rng = random.Random(config.seed)
    orders: List[Order] = []
    next_id = 1
    for customer in customers:
        if rng.random() < config.inactive_share:
            continue
        start = min(customer.signup_date, end)
        window_days = (end - start).days + 1
        n_orders = 1 + _poisson(rng, max(0.0, config.orders_per_customer_mean - 1.0))
        for _ in range(n_orders):
            book = rng.choice(books)
            orders.append(
                Order(
                    order_id=f"O-{next_id}",
                    customer_id=customer.customer_id,
                    book_id=book.book_id,
                    quantity=_sample_quantity(rng, config.quantity_mean),
                    order_date=start + timedelta(days=rng.randrange(window_days)),
                )
            )
            next_id += 1
    return orders


def generate_marketing_spend(
    customers: Sequence[Customer],
    end: date,
    *,
    touches_mean: float = 1.0,
    seed: Optional[int] = None,
) -> List[MarketingSpend]:
    """Generate marketing touches for ``customers`` up to ``end``."""

    rng = random.Random(seed)
    spends: List[MarketingSpend] = []
    for customer in customers:
        start = min(customer.signup_date, end)
        window_days = (end - start).days + 1
        for _ in range(_poisson(rng, touches_mean)):
            spends.append(
                MarketingSpend(
                    customer_id=customer.customer_id,
                    channel=rng.choice(CHANNELS),
                    cost=Decimal(str(round(rng.uniform(0.5, 20.0), 2))),
                    spend_date=start + timedelta(days=rng.randrange(window_days)),
                )
            )
    return spends


def generate_snapshot(
    n_customers: int,
    n_books: int,
    start: date,
    end: date,
    config: SnapshotConfig = SnapshotConfig(),
) -> RetailSnapshot:
    """Generate a full bookstore snapshot.

    Identical arguments (including ``config.seed``) produce an identical
    snapshot. Each table draws from its own seeded generator so that adding
    books does not reshuffle customers.
    """

    seed = config.seed
    books = generate_books(
        n_books,
        seed=None if seed is None else seed + 1,
        mean_price=config.mean_price,
        price_variability=config.price_variability,
    )
    customers = generate_customers(
        n_customers, start, end, seed=None if seed is None else seed + 2
    )
    orders = generate_orders(customers, books, end, config)
    spends = generate_marketing_spend(
        customers,
        end,
        touches_mean=config.marketing_touches_mean,
        seed=None if seed is None else seed + 3,
    )
    return RetailSnapshot(
        books=books, customers=customers, orders=orders, marketing_spend=spends
    )
