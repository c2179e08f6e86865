"""
Demo data for the library circulation service.

Seeding goes through the catalog manager, the membership manager and the
circulation engine rather than writing rows directly, so a seeded store
satisfies the availability invariant by construction:

- Books across a handful of categories, 1-5 copies each
- Active members with Faker names, emails and addresses
- Loans borrowed over the last two months, about half of them returned

Faker and ``random`` are seeded, so the same arguments produce the same data.

Usage:
    library-seed [--database-url URL] [--drop-existing] [--books N] ...
"""

import argparse
import logging
import random
import sys
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from faker import Faker

from ..services.library import Library
from .errors import BookUnavailableError
from .session import RecordStore

logger = logging.getLogger(__name__)

CATEGORIES = [
    "Fiction",
    "Science Fiction",
    "Mystery",
    "History",
    "Science",
    "Biography",
    "Poetry",
    "Children",
]


class SeedClock:
    """A clock the seeder moves by hand, so loans get spread-out dates."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@dataclass
class SeedSummary:
    book_ids: list[str] = field(default_factory=list)
    member_ids: list[str] = field(default_factory=list)
    loan_ids: list[str] = field(default_factory=list)
    returned_ids: list[str] = field(default_factory=list)
    skipped_borrows: int = 0


def generate_isbn13(rng: random.Random) -> str:
    """Generate a valid ISBN-13 number."""
    digits = f"978{rng.randint(0, 9)}{rng.randint(1000, 9999)}{rng.randint(1000, 9999)}"
    total = sum(int(d) * (3 if i % 2 else 1) for i, d in enumerate(digits))
    return f"{digits}{(10 - total % 10) % 10}"


def seed_library(
    store: RecordStore,
    books: int = 25,
    members: int = 10,
    loans: int = 20,
    seed: int = 42,
    now: datetime | None = None,
) -> SeedSummary:
    """
    Populate ``store`` with demo books, members and loans.

    Borrow attempts that find a book with no copies left are skipped and
    counted, so fewer than ``loans`` loans may be created.
    """
    fake = Faker()
    fake.seed_instance(seed)
    rng = random.Random(seed)
    end = now or datetime.now()
    clock = SeedClock(end)
    library = Library(store, notifier=None, clock=clock)
    summary = SeedSummary()

    for _ in range(books):
        book = library.catalog.create(
            {
                "title": fake.catch_phrase().title(),
                "author": fake.name(),
                "category": rng.choice(CATEGORIES),
                "publishYear": rng.randint(1850, end.year),
                "isbn": generate_isbn13(rng),
                "description": fake.text(max_nb_chars=300),
                "totalCopies": rng.randint(1, 5),
            }
        )
        summary.book_ids.append(book.id)
    logger.info("Seeded %d books", len(summary.book_ids))

    for _ in range(members):
        member = library.members.create(
            {
                "name": fake.name(),
                "email": fake.unique.email(),
                "phone": fake.phone_number()[:40],
                "address": fake.address().replace("\n", ", "),
            }
        )
        summary.member_ids.append(member.id)
    logger.info("Seeded %d members", len(summary.member_ids))

    if not summary.book_ids or not summary.member_ids:
        return summary

    borrow_dates = sorted(
        fake.date_time_between(start_date=end - timedelta(days=60), end_date=end)
        for _ in range(loans)
    )
    for borrowed_at in borrow_dates:
        clock.now = borrowed_at
        try:
            receipt = library.circulation.borrow(
                rng.choice(summary.book_ids), rng.choice(summary.member_ids)
            )
        except BookUnavailableError:
            summary.skipped_borrows += 1
            continue
        summary.loan_ids.append(receipt.loan_id)

        returned_at = borrowed_at + timedelta(days=rng.randint(1, 20))
        if returned_at < end and rng.random() < 0.5:
            clock.now = returned_at
            library.circulation.return_loan(receipt.loan_id)
            summary.returned_ids.append(receipt.loan_id)

    logger.info(
        "Seeded %d loans (%d returned, %d borrows skipped)",
        len(summary.loan_ids),
        len(summary.returned_ids),
        summary.skipped_borrows,
    )
    return summary


def main() -> None:
    """Create the schema and load demo data."""
    parser = argparse.ArgumentParser(description="Seed the library circulation database")
    parser.add_argument("--database-url", help="Override the configured database URL")
    parser.add_argument(
        "--drop-existing",
        action="store_true",
        help="Drop existing tables before seeding",
    )
    parser.add_argument("--books", type=int, default=25)
    parser.add_argument("--members", type=int, default=10)
    parser.add_argument("--loans", type=int, default=20)
    parser.add_argument("--seed", type=int, default=42)
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    store = RecordStore(args.database_url).open(drop_existing=args.drop_existing)
    try:
        if not store.verify_connection():
            logger.error("Failed to connect to database")
            sys.exit(1)
        seed_library(
            store, books=args.books, members=args.members, loans=args.loans, seed=args.seed
        )
    finally:
        store.close()


if __name__ == "__main__":
    main()
