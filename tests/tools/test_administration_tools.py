"""Tests for the inventory and settings administration tools."""

import pytest

from library_lending.tools.administration import (
    register_book_handler,
    resize_book_handler,
    update_policy_handler,
)


@pytest.fixture
def admin_args(admin):
    return {"actor_id": admin.user_id, "actor_role": "admin"}


class TestRegisterBookTool:
    async def test_register(self, service, admin_args):
        result = await register_book_handler(
            {**admin_args, "title": "Dune", "author": "Frank Herbert", "total_copies": 4}
        )

        book = result["data"]["book"]
        assert book["total_copies"] == 4
        assert book["available_copies"] == 4
        assert "with 4 copies" in result["content"][0]["text"]

    async def test_regular_user_cannot_register(self, service, alice):
        result = await register_book_handler(
            {
                "actor_id": alice.user_id,
                "title": "Dune",
                "author": "Frank Herbert",
                "total_copies": 1,
            }
        )

        assert result["error"]["code"] == "unauthorized"

    async def test_negative_copies_rejected(self, service, admin_args):
        result = await register_book_handler(
            {**admin_args, "title": "Dune", "author": "Frank Herbert", "total_copies": -1}
        )

        assert result["error"]["code"] == "invalid_request"


class TestResizeBookTool:
    async def test_resize_keeps_loans(self, service, admin_args, alice, make_book):
        book = make_book(total_copies=2)
        service.create_borrow(alice, book.id)

        result = await resize_book_handler({**admin_args, "book_id": book.id, "total_copies": 5})

        assert result["data"]["book"]["total_copies"] == 5
        assert result["data"]["book"]["available_copies"] == 4
        assert "(4 available)" in result["content"][0]["text"]

    async def test_shrink_below_loans_is_server_fault(self, service, admin_args, alice, make_book):
        book = make_book(total_copies=1)
        service.create_borrow(alice, book.id)

        result = await resize_book_handler({**admin_args, "book_id": book.id, "total_copies": 0})

        assert result["error"]["code"] == "invariant_violation"
        assert result["error"]["status"] == 500

    async def test_negative_total(self, service, admin_args, make_book):
        book = make_book()

        result = await resize_book_handler({**admin_args, "book_id": book.id, "total_copies": -2})

        assert result["error"]["code"] == "invalid_request"


class TestUpdatePolicyTool:
    async def test_partial_update(self, service, admin_args):
        result = await update_policy_handler({**admin_args, "max_extension_limit": 0})

        settings = result["data"]["settings"]
        assert settings["max_extension_limit"] == 0
        assert settings["max_borrow_limit"] == 3
        assert service.get_policy().max_extension_limit == 0

    async def test_regular_user_cannot_update(self, service, alice):
        result = await update_policy_handler({"actor_id": alice.user_id, "max_borrow_limit": 9})

        assert result["error"]["code"] == "unauthorized"
        assert service.get_policy().max_borrow_limit == 3

    async def test_invalid_value(self, service, admin_args):
        result = await update_policy_handler({**admin_args, "max_borrow_limit": 0})

        assert result["error"]["code"] == "invalid_request"
