"""
Unit tests for ResourceNotifier and NotifierFamily.
"""

import asyncio
from dataclasses import dataclass

import pytest

from periolifts_mcp.services.result import AppError, Failure, Success
from periolifts_mcp.state.notifier import DataState, ErrorState, LoadingState, NotifierFamily, ResourceNotifier


@dataclass(frozen=True)
class Item:
    id: str
    name: str = ""


class ListNotifier(ResourceNotifier[Item, str]):
    """Notifier over an in-memory list of items."""

    def __init__(self, items, page_size=2):
        super().__init__("all", page_size=page_size)
        self.backing = list(items)
        self.fetches = []
        self.fail_with = None
        self.gate = None

    async def fetch_page(self, offset, limit):
        self.fetches.append(offset)
        if self.gate is not None:
            await self.gate.wait()
        if self.fail_with is not None:
            return Failure(self.fail_with)
        return Success(self.backing[offset:offset + limit])

    async def create_item(self, item):
        if self.fail_with is not None:
            return Failure(self.fail_with)
        self.backing.append(item)
        return Success(item)

    async def update_item(self, item):
        return Success(item)

    async def delete_item(self, item_id):
        if self.fail_with is not None:
            return Failure(self.fail_with)
        return Success(None)


class HeadNotifier(ListNotifier):
    insert_at_head = True


def _items(*ids):
    return [Item(i) for i in ids]


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


@pytest.mark.unit
class TestLoading:
    @pytest.mark.asyncio
    async def test_states_published_in_order(self):
        notifier = ListNotifier(_items("a", "b", "c"))
        seen = []
        notifier.subscribe(seen.append, fire_immediately=True)

        await notifier.initialize()

        assert seen == [LoadingState(), LoadingState(), DataState(_items("a", "b"))]
        assert notifier.has_more

    @pytest.mark.asyncio
    async def test_refresh_is_idempotent(self):
        notifier = ListNotifier(_items("a", "b", "c"))
        await notifier.initialize()
        await notifier.load_more()

        await notifier.refresh()
        first = notifier.state
        await notifier.refresh()

        assert notifier.state == first == DataState(_items("a", "b"))

    @pytest.mark.asyncio
    async def test_load_more_appends_and_stops(self):
        notifier = ListNotifier(_items("a", "b", "c"))
        await notifier.initialize()

        await notifier.load_more()
        await notifier.load_more()

        assert [i.id for i in notifier.items] == ["a", "b", "c"]
        assert not notifier.has_more
        assert notifier.fetches == [0, 2]

    @pytest.mark.asyncio
    async def test_short_first_page_means_no_more(self):
        notifier = ListNotifier(_items("a"))
        await notifier.initialize()

        await notifier.load_more()

        assert notifier.fetches == [0]

    @pytest.mark.asyncio
    async def test_failed_load_more_keeps_list(self):
        notifier = ListNotifier(_items("a", "b", "c"))
        await notifier.initialize()
        notifier.fail_with = AppError.network("offline")

        await notifier.load_more()

        assert notifier.state == DataState(_items("a", "b"))
        assert notifier.last_error.message == "offline"
        assert not notifier.is_loading_more

    @pytest.mark.asyncio
    async def test_failed_first_page_is_error_state(self):
        notifier = ListNotifier([])
        notifier.fail_with = AppError.server("down")

        await notifier.initialize()

        assert isinstance(notifier.state, ErrorState)
        assert notifier.state.items == []

    @pytest.mark.asyncio
    async def test_page_from_before_refresh_is_dropped(self):
        notifier = ListNotifier(_items("a", "b", "c", "d"))
        await notifier.initialize()
        notifier.gate = asyncio.Event()

        pending = asyncio.create_task(notifier.load_more())
        await asyncio.sleep(0)
        notifier.backing = _items("x", "y")
        refreshing = asyncio.create_task(notifier.refresh())
        await asyncio.sleep(0)
        notifier.gate.set()
        await asyncio.gather(pending, refreshing)

        assert [i.id for i in notifier.items] == ["x", "y"]

    @pytest.mark.asyncio
    async def test_exceptions_from_hooks_become_errors(self):
        class Broken(ListNotifier):
            async def fetch_page(self, offset, limit):
                raise RuntimeError("boom")

        notifier = Broken([])
        await notifier.initialize()

        assert notifier.state.error.message == "boom"


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------


@pytest.mark.unit
class TestMutations:
    @pytest.mark.asyncio
    async def test_create_appends_exactly_once(self):
        notifier = ListNotifier(_items("a"))
        await notifier.initialize()

        await notifier.create(Item("b"))

        assert [i.id for i in notifier.items] == ["a", "b"]

    @pytest.mark.asyncio
    async def test_create_at_head_for_recent_first_lists(self):
        notifier = HeadNotifier(_items("a"))
        await notifier.initialize()

        await notifier.create(Item("b"))

        assert [i.id for i in notifier.items] == ["b", "a"]

    @pytest.mark.asyncio
    async def test_update_replaces_by_id(self):
        notifier = ListNotifier(_items("a", "b"))
        await notifier.initialize()

        await notifier.update(Item("b", name="renamed"))

        assert notifier.items[1].name == "renamed"

    @pytest.mark.asyncio
    async def test_delete_removes_id(self):
        notifier = ListNotifier(_items("a", "b"))
        await notifier.initialize()

        await notifier.delete("a")

        assert [i.id for i in notifier.items] == ["b"]

    @pytest.mark.asyncio
    async def test_failed_mutation_keeps_items(self):
        notifier = ListNotifier(_items("a", "b"))
        await notifier.initialize()
        notifier.fail_with = AppError.permission("nope")

        result = await notifier.delete("a")

        assert not result.is_success
        assert isinstance(notifier.state, ErrorState)
        assert notifier.state.items == _items("a", "b")
        assert notifier.last_error.message == "nope"

    @pytest.mark.asyncio
    async def test_load_more_after_failed_mutation(self):
        notifier = ListNotifier(_items("a", "b", "c"))
        await notifier.initialize()
        notifier.fail_with = AppError.network("offline")
        await notifier.delete("a")
        notifier.fail_with = None

        await notifier.load_more()

        assert notifier.state == DataState(_items("a", "b", "c"))

    @pytest.mark.asyncio
    async def test_load_more_after_failed_first_page_is_noop(self):
        notifier = ListNotifier(_items("a", "b", "c"))
        notifier.fail_with = AppError.server("down")
        await notifier.initialize()
        notifier.fail_with = None

        await notifier.load_more()

        assert notifier.fetches == [0]
        assert isinstance(notifier.state, ErrorState)

    @pytest.mark.asyncio
    async def test_unsubscribe(self):
        notifier = ListNotifier(_items("a"))
        seen = []
        unsubscribe = notifier.subscribe(seen.append)
        unsubscribe()

        await notifier.initialize()

        assert seen == []


# ---------------------------------------------------------------------------
# Families
# ---------------------------------------------------------------------------


@pytest.mark.unit
class TestNotifierFamily:
    def test_equal_filters_share_a_notifier(self):
        family = NotifierFamily(lambda f: object())

        assert family.get("a") is family["a"]
        assert family.get("a") is not family.get("b")
        assert len(family) == 2

    def test_dispose(self):
        family = NotifierFamily(lambda f: object())
        first = family.get("a")

        family.dispose("a")

        assert "a" not in family
        assert family.get("a") is not first
        family.dispose()
        assert len(family) == 0
