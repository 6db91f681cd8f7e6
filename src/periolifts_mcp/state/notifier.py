"""Paginated list state bound to a remote service.

A notifier owns one filtered view of a resource. It fetches pages through
the service, keeps the last known list in memory, applies successful
mutations to that list and publishes every new state to its subscribers.

State is one of :class:`LoadingState`, :class:`DataState` or
:class:`ErrorState`. An ``ErrorState`` always carries the last good list,
so a failed mutation never throws away what the user was looking at.
"""

import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, ClassVar, Generic, Hashable, TypeVar, Union

from periolifts_mcp.services.errors import to_app_error
from periolifts_mcp.services.result import AppError, Failure, Result

logger = logging.getLogger(__name__)

T = TypeVar("T")
F = TypeVar("F", bound=Hashable)
N = TypeVar("N")


@dataclass(frozen=True)
class LoadingState:
    pass


@dataclass(frozen=True)
class DataState(Generic[T]):
    items: list[T] = field(default_factory=list)


@dataclass(frozen=True)
class ErrorState(Generic[T]):
    error: AppError
    items: list[T] = field(default_factory=list)


ListState = Union[LoadingState, DataState[T], ErrorState[T]]
Listener = Callable[[ListState], None]


class ResourceNotifier(Generic[T, F]):
    """Base class for list notifiers.

    Subclasses implement :meth:`fetch_page` and whichever of
    :meth:`create_item`, :meth:`update_item` and :meth:`delete_item` the
    resource supports, and set ``insert_at_head`` for most-recent-first lists.
    """

    insert_at_head: ClassVar[bool] = False

    def __init__(self, filter: F, page_size: int):
        self.filter = filter
        self.page_size = page_size
        self.last_error: AppError | None = None
        self._state: ListState = LoadingState()
        self._items: list[T] = []
        self._has_more = True
        self._loading_more = False
        # Bumped by every first-page load; pages fetched under an older
        # generation are dropped.
        self._generation = 0
        self._listeners: list[Listener] = []

    # --- Hooks ---

    async def fetch_page(self, offset: int, limit: int) -> Result[list[T]]:
        raise NotImplementedError

    async def create_item(self, item: T) -> Result[T]:
        raise NotImplementedError(f"{type(self).__name__} does not support create")

    async def update_item(self, item: T) -> Result[T]:
        raise NotImplementedError(f"{type(self).__name__} does not support update")

    async def delete_item(self, item_id: str) -> Result[None]:
        raise NotImplementedError(f"{type(self).__name__} does not support delete")

    # --- State ---

    @property
    def state(self) -> ListState:
        return self._state

    @property
    def items(self) -> list[T]:
        return list(self._items)

    @property
    def has_more(self) -> bool:
        return self._has_more

    @property
    def is_loading_more(self) -> bool:
        return self._loading_more

    def subscribe(self, listener: Listener, fire_immediately: bool = False) -> Callable[[], None]:
        """Register a listener for state changes. Returns an unsubscribe callable."""
        self._listeners.append(listener)
        if fire_immediately:
            listener(self._state)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _set_state(self, state: ListState) -> None:
        self._state = state
        for listener in list(self._listeners):
            listener(state)

    def _publish(self) -> None:
        self._set_state(DataState(list(self._items)))

    def _fail(self, error: AppError) -> None:
        self.last_error = error
        self._set_state(ErrorState(error, list(self._items)))

    @staticmethod
    async def _guard(call: Awaitable[Result]) -> Result:
        try:
            return await call
        except Exception as e:
            return Failure(to_app_error(e))

    # --- Operations ---

    async def initialize(self) -> None:
        await self._load_first_page()

    async def refresh(self) -> None:
        """Re-fetch the first page and replace the held list."""
        await self._load_first_page()

    async def _load_first_page(self) -> None:
        self._generation += 1
        generation = self._generation
        self._set_state(LoadingState())

        result = await self._guard(self.fetch_page(0, self.page_size))
        if generation != self._generation:
            return

        if result.is_success:
            self._items = list(result.value)
            self._has_more = len(result.value) >= self.page_size
            self.last_error = None
            self._publish()
        else:
            # Only refresh recovers from a failed first page.
            self._has_more = False
            self._fail(result.error)

    async def load_more(self) -> None:
        """Append the next page. No-op while a load is running or when there is nothing more."""
        if self._loading_more or not self._has_more or isinstance(self._state, LoadingState):
            return

        self._loading_more = True
        generation = self._generation
        try:
            result = await self._guard(self.fetch_page(len(self._items), self.page_size))
        finally:
            self._loading_more = False

        if generation != self._generation:
            logger.debug("Dropping page for %s fetched before a refresh", type(self).__name__)
            return

        if not result.is_success:
            self.last_error = result.error
            logger.warning("Loading more %s failed: %s", type(self).__name__, result.error)
            return

        known = {_identity(item) for item in self._items}
        self._items.extend(item for item in result.value if _identity(item) not in known)
        self._has_more = len(result.value) >= self.page_size
        self._publish()

    async def create(self, item: T) -> Result[T]:
        result = await self._guard(self.create_item(item))
        if result.is_success:
            if self.insert_at_head:
                self._items.insert(0, result.value)
            else:
                self._items.append(result.value)
            self._publish()
        else:
            self._fail(result.error)
        return result

    async def update(self, item: T) -> Result[T]:
        result = await self._guard(self.update_item(item))
        if result.is_success:
            updated = result.value
            self._items = [updated if _identity(x) == _identity(updated) else x for x in self._items]
            self._publish()
        else:
            self._fail(result.error)
        return result

    async def delete(self, item_id: str) -> Result[None]:
        result = await self._guard(self.delete_item(item_id))
        if result.is_success:
            self._items = [x for x in self._items if _identity(x) != item_id]
            self._publish()
        else:
            self._fail(result.error)
        return result


def _identity(item) -> str:
    return getattr(item, "id", "")


class NotifierFamily(Generic[F, N]):
    """Cache of notifiers keyed by filter value.

    Equal filters share one notifier, so two views over the same query see
    the same list.
    """

    def __init__(self, factory: Callable[[F], N]):
        self._factory = factory
        self._instances: dict[F, N] = {}

    def get(self, filter: F) -> N:
        notifier = self._instances.get(filter)
        if notifier is None:
            notifier = self._factory(filter)
            self._instances[filter] = notifier
        return notifier

    __getitem__ = get

    def __contains__(self, filter: F) -> bool:
        return filter in self._instances

    def __len__(self) -> int:
        return len(self._instances)

    def dispose(self, filter: F | None = None) -> None:
        """Forget one cached notifier, or all of them."""
        if filter is None:
            self._instances.clear()
        else:
            self._instances.pop(filter, None)
