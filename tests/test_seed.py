"""Tests for the demo data seeder."""

from datetime import datetime

from library_circulation.database.seed import generate_isbn13, seed_library
from library_circulation.services import Library

NOW = datetime(2024, 6, 1, 12, 0, 0)


class TestSeedLibrary:
    def test_seeded_store_satisfies_invariant(self, store, clock):
        summary = seed_library(store, books=8, members=4, loans=15, now=NOW)

        library = Library(store, clock=clock)
        assert len(library.catalog.list()) == 8
        assert len(library.members.list()) == 4
        assert len(summary.loan_ids) + summary.skipped_borrows == 15
        assert library.circulation.check_availability_invariant() == []

        open_loans = {loan.id for loan in library.circulation.active_loans()}
        assert open_loans == set(summary.loan_ids) - set(summary.returned_ids)

    def test_same_seed_gives_same_catalog(self, tmp_path):
        from library_circulation.database.session import RecordStore

        titles = []
        for name in ("a.db", "b.db"):
            store = RecordStore(f"sqlite:///{tmp_path / name}").open()
            seed_library(store, books=5, members=1, loans=0, now=NOW)
            titles.append([b.title for b in Library(store).catalog.list()])
            store.close()

        assert titles[0] == titles[1]

    def test_isbn_check_digit(self):
        import random

        isbn = generate_isbn13(random.Random(7))
        digits = [int(d) for d in isbn]
        assert len(digits) == 13
        assert sum(d * (3 if i % 2 else 1) for i, d in enumerate(digits)) % 10 == 0
