"""Filterable selector: search dropdown and pick-one select in one component.

The component state is an immutable :class:`SelectorState`. Every user action
is turned into an event and folded through :func:`transition`; subscribers are
notified whenever the resulting state differs from the previous one.

``SelectorMode.SEARCH`` filters plain labels by prefix and reports free text
through ``on_search``. ``SelectorMode.SELECT`` filters ``{id, nombre}`` options
by substring and binds the chosen id through ``on_change``.
"""

import threading
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Callable, Hashable, Iterable, Iterator, Mapping, Sequence

from app.services.ui_events import PendingCall, PointerEventBus, Region, Scheduler, TimerScheduler

NO_MATCHES_MESSAGE = "No hay coincidencias"
DEFAULT_BLUR_CLOSE_DELAY = 0.2


class SelectorMode(str, Enum):
    SEARCH = "search"
    SELECT = "select"


@dataclass(frozen=True)
class SelectOption:
    id: int
    nombre: str


@dataclass(frozen=True)
class SelectorState:
    query: str = ""
    is_open: bool = False
    value: str | None = None
    focused: bool = False


# --- Events ---


@dataclass(frozen=True)
class QueryChanged:
    text: str


@dataclass(frozen=True)
class Focused:
    pass


@dataclass(frozen=True)
class Blurred:
    pass


@dataclass(frozen=True)
class CloseRequested:
    pass


@dataclass(frozen=True)
class ItemSelected:
    item: Any


@dataclass(frozen=True)
class Submitted:
    pass


@dataclass(frozen=True)
class OutsideClick:
    pass


@dataclass(frozen=True)
class ValueSynced:
    value: str | None


SelectorEvent = (
    QueryChanged | Focused | Blurred | CloseRequested | ItemSelected | Submitted | OutsideClick | ValueSynced
)


def as_option(item: Any) -> SelectOption:
    """Coerce a mapping or option-like object into a :class:`SelectOption`."""
    if isinstance(item, SelectOption):
        return item
    if isinstance(item, Mapping):
        return SelectOption(id=int(item["id"]), nombre=str(item.get("nombre") or ""))
    return SelectOption(id=int(getattr(item, "id")), nombre=str(getattr(item, "nombre", "") or ""))


def transition(mode: SelectorMode, state: SelectorState, event: SelectorEvent) -> SelectorState:
    """Pure state transition for both selector modes."""
    if isinstance(event, QueryChanged):
        if mode is SelectorMode.SEARCH:
            return replace(state, query=event.text, is_open=bool(event.text))
        return replace(state, query=event.text, is_open=True)
    if isinstance(event, Focused):
        if mode is SelectorMode.SELECT:
            return replace(state, focused=True, is_open=True)
        return replace(state, focused=True)
    if isinstance(event, Blurred):
        # Closing is deferred; the component issues CloseRequested later.
        return replace(state, focused=False)
    if isinstance(event, ItemSelected):
        if mode is SelectorMode.SEARCH:
            return replace(state, query=str(event.item), is_open=False)
        option = as_option(event.item)
        return replace(state, value=str(option.id), query="", is_open=False)
    if isinstance(event, (CloseRequested, Submitted, OutsideClick)):
        return replace(state, is_open=False)
    if isinstance(event, ValueSynced):
        return replace(state, value=event.value if event.value else None)
    raise TypeError(f"Unknown selector event: {event!r}")


def prefix_matches(items: Iterable[str], query: str) -> Iterator[str]:
    needle = query.lower()
    return (item for item in items if item.lower().startswith(needle))


def contains_matches(options: Iterable[Any], query: str) -> Iterator[SelectOption]:
    """Name contains the query (case-insensitive) or id contains the raw query."""
    if not query:
        return (as_option(opt) for opt in options)
    needle = query.lower()
    return (
        opt
        for opt in (as_option(o) for o in options)
        if needle in opt.nombre.lower() or query in str(opt.id)
    )


class FilteredView:
    """Lazy, restartable view; each iteration re-filters the current items."""

    def __init__(self, mode: SelectorMode, items: Sequence[Any], query: str):
        self._mode = mode
        self._items = items
        self._query = query

    def __iter__(self):
        if self._mode is SelectorMode.SEARCH:
            return prefix_matches(self._items, self._query)
        return contains_matches(self._items, self._query)

    def to_list(self) -> list:
        return list(self)


@dataclass(frozen=True)
class SelectorView:
    """What the presentation layer needs to draw the selector."""

    mode: SelectorMode
    query: str
    is_open: bool
    items: list
    empty_message: str | None
    placeholder: str
    hidden_value: str | None


StateListener = Callable[[SelectorState], None]


class FilterableSelector:
    """Stateful selector component; one instance per rendered input."""

    def __init__(
        self,
        mode: SelectorMode,
        items: Sequence[Any] = (),
        *,
        on_search: Callable[[str], None] | None = None,
        on_change: Callable[[str], None] | None = None,
        value: str | None = None,
        placeholder: str = "",
        blur_close_delay: float = DEFAULT_BLUR_CLOSE_DELAY,
        max_options: int | None = None,
        scheduler: Scheduler | None = None,
        event_bus: PointerEventBus | None = None,
        region: Region | None = None,
    ):
        self.mode = SelectorMode(mode)
        self._items: Sequence[Any] = items
        self._on_search = on_search
        self._on_change = on_change
        self.placeholder = placeholder
        self.blur_close_delay = blur_close_delay
        self.max_options = max_options
        self._scheduler = scheduler or TimerScheduler()
        self._event_bus = event_bus
        self.region = region or Region()
        self._state = SelectorState(value=value if value else None)
        self._listeners: list[StateListener] = []
        self._pending_close: PendingCall | None = None
        self._close_generation = 0
        self._mounted = False
        self._lock = threading.RLock()

    # --- state plumbing ---

    @property
    def state(self) -> SelectorState:
        return self._state

    @property
    def query(self) -> str:
        return self._state.query

    @property
    def is_open(self) -> bool:
        return self._state.is_open

    @property
    def value(self) -> str | None:
        return self._state.value

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe():
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def dispatch(self, event: SelectorEvent, *, generation: int | None = None) -> SelectorState:
        """Fold ``event`` into the state and notify subscribers on change.

        With ``generation`` set the event is dropped when a newer event has
        cancelled the pending close since it was scheduled.
        """
        with self._lock:
            if generation is not None and generation != self._close_generation:
                return self._state
            previous = self._state
            self._state = transition(self.mode, previous, event)
            current = self._state
            listeners = list(self._listeners) if current != previous else []
        for listener in listeners:
            listener(current)
        return current

    def _cancel_pending_close(self):
        with self._lock:
            self._close_generation += 1
            pending, self._pending_close = self._pending_close, None
        if pending is not None:
            pending.cancel()

    # --- caller-owned inputs ---

    def set_items(self, items: Sequence[Any]):
        self._items = items

    def set_value(self, value: str | None) -> SelectorState:
        """Sync the externally owned bound value (select mode)."""
        return self.dispatch(ValueSynced(value))

    # --- lifecycle ---

    def mount(self) -> "FilterableSelector":
        with self._lock:
            if self._mounted:
                return self
            self._mounted = True
        if self._event_bus is not None:
            self._event_bus.add_listener(self._on_document_pointer_down)
        return self

    def unmount(self):
        with self._lock:
            was_mounted, self._mounted = self._mounted, False
        self._cancel_pending_close()
        if was_mounted and self._event_bus is not None:
            self._event_bus.remove_listener(self._on_document_pointer_down)

    def __enter__(self):
        return self.mount()

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.unmount()
        return False

    # --- user actions ---

    def set_query(self, text: str) -> SelectorState:
        return self.dispatch(QueryChanged(text))

    def focus(self) -> SelectorState:
        self._cancel_pending_close()
        return self.dispatch(Focused())

    def blur(self) -> SelectorState:
        """Select mode closes after ``blur_close_delay`` so a click on an option lands first.

        The delay is best-effort; correctness comes from every newer event
        cancelling the pending close.
        """
        state = self.dispatch(Blurred())
        if self.mode is SelectorMode.SELECT:
            self._cancel_pending_close()
            with self._lock:
                generation = self._close_generation
                self._pending_close = self._scheduler.call_later(
                    self.blur_close_delay, lambda: self._deferred_close(generation)
                )
        return state

    def _deferred_close(self, generation: int):
        with self._lock:
            if generation == self._close_generation:
                self._pending_close = None
        self.dispatch(CloseRequested(), generation=generation)

    def submit(self) -> SelectorState:
        query = self._state.query
        if self.mode is SelectorMode.SEARCH and self._on_search is not None:
            self._on_search(query)
        return self.dispatch(Submitted())

    def key_press(self, key: str) -> SelectorState:
        if key == "Enter" and self.mode is SelectorMode.SEARCH:
            return self.submit()
        return self._state

    def select_item(self, item: Any) -> SelectorState:
        self._cancel_pending_close()
        if self.mode is SelectorMode.SEARCH:
            label = str(item)
            state = self.dispatch(ItemSelected(label))
            if self._on_search is not None:
                self._on_search(label)
            return state
        option = as_option(item)
        state = self.dispatch(ItemSelected(option))
        if self._on_change is not None:
            self._on_change(str(option.id))
        return state

    def pointer_down(self, target: Hashable) -> SelectorState:
        """Handle a document-level pointer-down on ``target``."""
        if self.region.contains(target):
            return self._state
        self._cancel_pending_close()
        return self.dispatch(OutsideClick())

    def _on_document_pointer_down(self, target: Hashable):
        self.pointer_down(target)

    # --- derived views ---

    def filtered_view(self) -> FilteredView:
        return FilteredView(self.mode, self._items, self._state.query)

    def selected_option(self) -> SelectOption | None:
        value = self._state.value
        if not value:
            return None
        for item in self._items:
            option = as_option(item)
            if str(option.id) == value:
                return option
        return None

    def placeholder_text(self) -> str:
        if self.mode is SelectorMode.SELECT and not self._state.query:
            selected = self.selected_option()
            if selected is not None:
                return selected.nombre
        return self.placeholder

    def hidden_value(self) -> str | None:
        if self.mode is SelectorMode.SELECT:
            return self._state.value
        return None

    def render(self) -> SelectorView:
        state = self._state
        items: list = []
        empty_message = None
        if state.is_open:
            items = self.filtered_view().to_list()
            if self.mode is SelectorMode.SEARCH and not items:
                empty_message = NO_MATCHES_MESSAGE
            if self.mode is SelectorMode.SELECT and self.max_options is not None:
                items = items[: self.max_options]
        return SelectorView(
            mode=self.mode,
            query=state.query,
            is_open=state.is_open,
            items=items,
            empty_message=empty_message,
            placeholder=self.placeholder_text(),
            hidden_value=self.hidden_value(),
        )
