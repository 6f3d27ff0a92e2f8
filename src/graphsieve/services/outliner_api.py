"""Logseq HTTP API server as an alternate metadata source.

Logseq's desktop app can expose its plugin API over HTTP
(``POST /api`` with ``{"method": "logseq.Editor.getAllPages", "args": []}``
and a bearer token). When the server is not running every call degrades to
"no records" instead of raising.
"""

from dataclasses import dataclass
from typing import Any, Optional, Protocol

import httpx
import structlog

from graphsieve.logseq.parser import ContentNode, nodes_from_tree

logger = structlog.get_logger()


@dataclass(frozen=True)
class PageInfo:
    """Lightweight page listing entry.

    Attributes:
        name: Original page name
        uuid: Page UUID
        updated_at: Last update time (epoch seconds, 0 when unknown)
        journal: True for journal pages
    """

    name: str
    uuid: str
    updated_at: float
    journal: bool


class OutlinerSource(Protocol):
    """Alternate metadata source collaborator."""

    async def list_pages_basic(self) -> list[PageInfo]:
        ...

    async def get_page_tree(self, id_or_name: str) -> Optional[list[ContentNode]]:
        ...


def _to_seconds(value: Any) -> float:
    """Normalize a timestamp that may be in milliseconds."""
    try:
        ts = float(value)
    except (TypeError, ValueError):
        return 0.0
    return ts / 1000.0 if ts > 1e11 else ts


def page_info_from_api(page: Any) -> Optional[PageInfo]:
    """Build a PageInfo from a getAllPages entry (None for unusable entries)."""
    if not isinstance(page, dict):
        return None
    name = page.get("originalName") or page.get("original-name") or page.get("title") or page.get("name")
    if not name:
        return None
    return PageInfo(
        name=str(name),
        uuid=str(page.get("uuid") or ""),
        updated_at=_to_seconds(page.get("updatedAt") or page.get("updated-at")),
        journal=bool(page.get("journal?") or page.get("journal")),
    )


class LogseqHttpSource:
    """OutlinerSource backed by the Logseq HTTP API server.

    Example:
        >>> source = LogseqHttpSource("http://127.0.0.1:12315", token="secret")
        >>> pages = await source.list_pages_basic()
    """

    def __init__(
        self,
        endpoint: str = "http://127.0.0.1:12315",
        token: str = "",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the source.

        Args:
            endpoint: Base URL of the API server
            token: Authorization token configured in Logseq
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.endpoint = endpoint.rstrip("/")
        self.token = token
        self.timeout = httpx.Timeout(timeout)
        self._transport = transport

    async def call(self, method: str, *args: Any) -> Any:
        """Invoke an API method; returns None when the server is unavailable."""
        headers = {"Authorization": f"Bearer {self.token}"} if self.token else {}
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(
                    f"{self.endpoint}/api",
                    json={"method": method, "args": list(args)},
                    headers=headers,
                )
                response.raise_for_status()
                return response.json()
        except httpx.HTTPStatusError as e:
            logger.warning("outliner_api_http_error", method=method, status_code=e.response.status_code)
        except httpx.HTTPError as e:
            logger.debug("outliner_api_unavailable", method=method, error=str(e))
        except ValueError as e:
            logger.warning("outliner_api_bad_response", method=method, error=str(e))
        return None

    async def list_pages_basic(self) -> list[PageInfo]:
        pages = await self.call("logseq.Editor.getAllPages")
        if not isinstance(pages, list):
            return []
        return [info for info in (page_info_from_api(p) for p in pages) if info is not None]

    async def get_page_tree(self, id_or_name: str) -> Optional[list[ContentNode]]:
        """Block tree of a page, trying common name variants.

        Returns:
            Nodes, or None when the page is unknown or the server unavailable
        """
        variants = [id_or_name]
        for variant in (
            id_or_name.replace("%2F", "/").replace("%2f", "/"),
            id_or_name.removeprefix("journals/"),
        ):
            if variant not in variants:
                variants.append(variant)
        for variant in variants:
            blocks = await self.call("logseq.Editor.getPageBlocksTree", variant)
            if isinstance(blocks, list) and blocks:
                return nodes_from_tree(blocks)
        return None
