"""Debounced hover previews of linked pages.

The pointer entering a link arms a preview: loading starts at once but the
popover only opens after ``show_delay`` seconds, and only if the pointer is
still over the link. Once open, it stays open for at least ``min_visible``
seconds and until the pointer has left both the link and the popover.

States: IDLE -> ARMING -> VISIBLE -> CLOSING -> IDLE.
"""

import asyncio
import time
from collections import OrderedDict
from enum import Enum
from typing import Any, Awaitable, Callable, Generic, Hashable, Optional, TypeVar

import structlog

from graphsieve.models.config import HoverConfig
from graphsieve.models.preview import PreviewContent, PreviewState

logger = structlog.get_logger()

ACTIVITY_EXTENSION = 0.5
CLOSE_POLL_MIN = 0.1

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


class BoundedTTLCache(Generic[K, V]):
    """Insertion-ordered cache bounded by entry count and age.

    Entries expire ``ttl`` seconds after they were stored. When more than
    ``max_entries`` are held, the oldest *inserted* entries are dropped;
    reads do not refresh an entry's position (this is not an LRU).
    """

    def __init__(self, max_entries: int = 50, ttl: float = 120.0, clock: Callable[[], float] = time.monotonic):
        if max_entries < 1:
            raise ValueError(f"max_entries must be positive: {max_entries}")
        self.max_entries = max_entries
        self.ttl = ttl
        self._clock = clock
        self._entries: "OrderedDict[K, tuple[float, V]]" = OrderedDict()

    def get(self, key: K) -> Optional[V]:
        item = self._entries.get(key)
        if item is None:
            return None
        stored_at, value = item
        if self._clock() - stored_at >= self.ttl:
            del self._entries[key]
            return None
        return value

    def put(self, key: K, value: V) -> None:
        self._entries.pop(key, None)
        self._entries[key] = (self._clock(), value)
        self._evict()

    def pop(self, key: K) -> Optional[V]:
        item = self._entries.pop(key, None)
        return item[1] if item else None

    def clear(self) -> None:
        self._entries.clear()

    def _evict(self) -> None:
        now = self._clock()
        for key in [k for k, (stored_at, _) in self._entries.items() if now - stored_at >= self.ttl]:
            del self._entries[key]
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)

    def __contains__(self, key: object) -> bool:
        return self.get(key) is not None  # type: ignore[arg-type]

    def __len__(self) -> int:
        return len(self._entries)


class HoverState(Enum):
    IDLE = "idle"
    ARMING = "arming"
    VISIBLE = "visible"
    CLOSING = "closing"


class HoverPreviewCache:
    """State machine and cache behind hover previews.

    Only one target is active at a time. Loaded previews are kept in a
    BoundedTTLCache, and at most one load per page name is in flight; a
    second request for the same name awaits the running load.

    Args:
        loader: Coroutine function name -> PreviewContent (resolve + parse)
        show_delay: Seconds between arming and showing
        min_visible: Minimum seconds an opened popover stays open
        cache_max: Maximum number of cached previews
        cache_ttl: Lifetime of a cached preview in seconds
        clock: Monotonic clock used for visibility deadlines and the cache
        on_show: Optional callback(name, anchor) when the popover opens
        on_hide: Optional callback(name) when the popover closes

    Example:
        >>> hover = HoverPreviewCache(lambda name: load_page(name, session))
        >>> hover.request_preview("Projects/Acme", anchor=link)
        >>> content = await hover.get_preview("Projects/Acme")
    """

    def __init__(
        self,
        loader: Callable[[str], Awaitable[PreviewContent]],
        show_delay: float = 1.5,
        min_visible: float = 2.0,
        cache_max: int = 50,
        cache_ttl: float = 120.0,
        clock: Callable[[], float] = time.monotonic,
        on_show: Optional[Callable[[str, Any], None]] = None,
        on_hide: Optional[Callable[[str], None]] = None,
    ):
        self._loader = loader
        self.show_delay = show_delay
        self.min_visible = min_visible
        self._clock = clock
        self._on_show = on_show
        self._on_hide = on_hide
        self.cache: BoundedTTLCache[str, PreviewContent] = BoundedTTLCache(cache_max, cache_ttl, clock)

        self.state = HoverState.IDLE
        self.target: Optional[str] = None
        self.anchor: Any = None
        self.content: Optional[PreviewContent] = None
        self.min_visible_until = 0.0
        self.over_zone = False
        self.over_popover = False

        self._show_timer: Optional[asyncio.Task] = None
        self._close_task: Optional[asyncio.Task] = None
        self._inflight: dict[str, asyncio.Task] = {}

    @classmethod
    def from_config(
        cls,
        config: HoverConfig,
        loader: Callable[[str], Awaitable[PreviewContent]],
        **kwargs: Any,
    ) -> "HoverPreviewCache":
        """Build a cache from the millisecond settings of the hover config section."""
        return cls(
            loader,
            show_delay=config.show_delay_ms / 1000.0,
            min_visible=config.min_visible_ms / 1000.0,
            cache_max=config.cache_max,
            cache_ttl=config.cache_ttl_ms / 1000.0,
            **kwargs,
        )

    @property
    def visible(self) -> bool:
        return self.state in (HoverState.VISIBLE, HoverState.CLOSING)

    # Pointer events

    def request_preview(self, name: str, anchor: Any = None) -> None:
        """Pointer entered a hover zone for page ``name``."""
        self._cancel(self._close_task)
        self._cancel(self._show_timer)
        self.over_zone = True

        if name != self.target:
            if self.visible:
                self._hide()
            self.target = name
            self.content = None
        self.anchor = anchor

        self._start_loading(name)

        if self.visible:
            self.state = HoverState.VISIBLE
            return
        self.state = HoverState.ARMING
        self._show_timer = asyncio.create_task(self._show_after_delay(name))

    def cancel_hover(self) -> None:
        """Pointer left the hover zone."""
        self.over_zone = False
        if self.state is HoverState.ARMING:
            self._cancel(self._show_timer)
            self.state = HoverState.IDLE
            logger.debug("hover_preview_disarmed", name=self.target)
        elif self.visible:
            self._begin_closing()

    def popover_enter(self) -> None:
        self.over_popover = True
        self.popover_activity()
        if self.state is HoverState.CLOSING:
            self._cancel(self._close_task)
            self.state = HoverState.VISIBLE

    def popover_leave(self) -> None:
        self.over_popover = False
        if self.visible:
            self._begin_closing()

    def popover_activity(self) -> None:
        """Pointer activity over the popover keeps it open a little longer."""
        self.min_visible_until = max(self.min_visible_until, self._clock() + ACTIVITY_EXTENSION)

    # Loading

    def _start_loading(self, name: str) -> Optional[asyncio.Task]:
        cached = self.cache.get(name)
        if cached is not None:
            if name == self.target:
                self.content = cached
            return None
        task = self._inflight.get(name)
        if task is None:
            task = asyncio.create_task(self._load(name))
            self._inflight[name] = task
        return task

    async def _load(self, name: str) -> PreviewContent:
        try:
            content = await self._loader(name)
        except Exception as e:
            logger.warning("hover_preview_load_failed", name=name, error=str(e))
            content = PreviewContent(name=name, state=PreviewState.NOT_FOUND)
        finally:
            self._inflight.pop(name, None)
        self.cache.put(name, content)
        if name == self.target:
            self.content = content
        return content

    async def get_preview(self, name: str) -> PreviewContent:
        """Preview for name, from the cache or from a (shared) load."""
        cached = self.cache.get(name)
        if cached is not None:
            return cached
        task = self._start_loading(name)
        if task is None:
            return self.cache.get(name) or PreviewContent(name=name)
        return await asyncio.shield(task)

    # Timers

    async def _show_after_delay(self, name: str) -> None:
        await asyncio.sleep(self.show_delay)
        if self.state is not HoverState.ARMING or self.target != name or not self.over_zone:
            return
        self.state = HoverState.VISIBLE
        self.min_visible_until = self._clock() + self.min_visible
        logger.debug("hover_preview_shown", name=name)
        if self._on_show:
            self._on_show(name, self.anchor)

    def _begin_closing(self) -> None:
        self.state = HoverState.CLOSING
        self._cancel(self._close_task)
        self._close_task = asyncio.create_task(self._close_when_allowed())

    async def _close_when_allowed(self) -> None:
        while True:
            if self.over_zone or self.over_popover:
                self.state = HoverState.VISIBLE
                return
            remaining = self.min_visible_until - self._clock()
            if remaining <= 0:
                self._hide()
                return
            await asyncio.sleep(max(CLOSE_POLL_MIN, remaining))

    def _hide(self) -> None:
        name = self.target
        self.state = HoverState.IDLE
        self.over_popover = False
        logger.debug("hover_preview_hidden", name=name)
        if self._on_hide and name is not None:
            self._on_hide(name)

    @staticmethod
    def _cancel(task: Optional[asyncio.Task]) -> None:
        if task is not None and not task.done():
            task.cancel()

    async def aclose(self) -> None:
        """Cancel timers and pending loads."""
        tasks = [t for t in (self._show_timer, self._close_task, *self._inflight.values()) if t is not None]
        for task in tasks:
            self._cancel(task)
        await asyncio.gather(*tasks, return_exceptions=True)
        self._inflight.clear()
        self.state = HoverState.IDLE
