"""SOQL result pages and the cursor used to walk them."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .exceptions import RemoteApiError


@dataclass(frozen=True)
class QueryCursor:
    """Position in a paginated result set.

    ``locator`` is the server's ``nextRecordsUrl``, kept verbatim. A new
    cursor is returned for every page, so the same cursor can be replayed.
    """

    soql: str
    locator: Optional[str] = None
    done: bool = False
    total_size: Optional[int] = None
    fetched: int = 0

    def __post_init__(self) -> None:
        if self.done and self.locator is not None:
            raise ValueError("A done cursor cannot carry a continuation locator")


@dataclass(frozen=True)
class QueryResult:
    records: List[Dict[str, Any]]
    total_size: Optional[int]
    done: bool
    cursor: QueryCursor = field(repr=False)

    @classmethod
    def from_page(
        cls,
        payload: Dict[str, Any],
        soql: str,
        previous: Optional[QueryCursor] = None,
    ) -> QueryResult:
        records = list(payload.get("records") or [])
        done = bool(payload.get("done", True))
        locator = None if done else payload.get("nextRecordsUrl")
        if not done and not locator:
            raise RemoteApiError(
                None,
                "MALFORMED_QUERY_PAGE",
                "Query page is not done but has no nextRecordsUrl",
            )

        if previous is not None and previous.total_size is not None:
            total_size = previous.total_size
        else:
            total_size = payload.get("totalSize")
        fetched = (previous.fetched if previous else 0) + len(records)

        cursor = QueryCursor(
            soql=soql,
            locator=locator,
            done=done,
            total_size=total_size,
            fetched=fetched,
        )
        return cls(records=records, total_size=total_size, done=done, cursor=cursor)
