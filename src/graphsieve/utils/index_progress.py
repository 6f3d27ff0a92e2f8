"""Progress feedback for index rebuilds."""

from typing import Callable, Optional

from rich.console import Console
from rich.status import Status


def create_index_progress_callback(
    console: Console,
    label: str = "Indexing pages",
) -> tuple[Callable[[int, int], None], Callable[[], None]]:
    """Create a progress callback and cleanup function for IndexBuilder.rebuild().

    A spinner shows "<label>: current/total (percent%)" while pages are
    processed.

    Args:
        console: Rich Console instance for output
        label: Text shown in front of the counter

    Returns:
        Tuple of (progress_callback, cleanup_function)
        - progress_callback(current, total): Pass to IndexBuilder.rebuild()
        - cleanup_function(): Call this to stop the spinner

    Example:
        >>> progress_cb, cleanup = create_index_progress_callback(Console())
        >>> try:
        ...     await builder.rebuild(session, progress_callback=progress_cb)
        ... finally:
        ...     cleanup()
    """
    status_context: Optional[Status] = None

    def progress_callback(current: int, total: int) -> None:
        nonlocal status_context
        percent = int((current / total) * 100) if total > 0 else 0
        message = f"[bold green]{label}: {current}/{total} ({percent}%)"
        if status_context is None:
            status_context = console.status(message)
            status_context.__enter__()
        else:
            status_context.update(message)

    def cleanup() -> None:
        """Stop any active spinner (call this in finally block)."""
        nonlocal status_context
        if status_context:
            status_context.__exit__(None, None, None)
            status_context = None

    return progress_callback, cleanup
