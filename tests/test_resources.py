"""Tests for the read-only resources and the server wiring."""

import pytest

from library_circulation.resources import (
    active_loans_resource,
    borrowing_history_resource,
    health_resource,
    library_resources,
    notifications_resource,
    overdue_loans_resource,
)


@pytest.fixture
def lib(installed_library):
    return installed_library


class TestLoanResources:
    @pytest.mark.asyncio
    async def test_active_and_overdue(self, lib, book, member, clock):
        lib.circulation.borrow(book.id, member.id)

        active = await active_loans_resource()
        assert [loan["bookId"] for loan in active] == [book.id]
        assert await overdue_loans_resource() == []

        clock.advance(days=20)
        [overdue] = await overdue_loans_resource()
        assert overdue["isOverdue"] is True

    @pytest.mark.asyncio
    async def test_member_history_and_notifications(self, lib, book, member):
        receipt = lib.circulation.borrow(book.id, member.id)

        history = await borrowing_history_resource(member.id)
        feed = await notifications_resource(member.id)

        assert [loan["id"] for loan in history] == [receipt.loan_id]
        assert feed[0]["message"] == 'You borrowed "The Left Hand of Darkness" by Ursula K. Le Guin'


class TestHealthResource:
    @pytest.mark.asyncio
    async def test_reports_running(self, lib):
        health = await health_resource()

        assert health["status"] == "running"
        assert health["database"] == "connected"
        assert "timestamp" in health
        assert health["invariantViolations"] == []


class TestResourceCatalog:
    def test_every_resource_has_a_handler(self):
        uris = [r["uri"] for r in library_resources]
        assert "library://loans/active" in uris
        assert "library://members/{member_id}/history" in uris
        assert all(callable(r["handler"]) for r in library_resources)


class TestServer:
    def test_server_module_builds_the_app(self):
        from library_circulation import server

        assert server.mcp.name == "library-circulation"
