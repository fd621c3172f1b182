import dataclasses

import pytest

from sfrest.exceptions import RemoteApiError
from sfrest.query import QueryCursor, QueryResult

SOQL = "SELECT Id FROM Account"


def test_done_cursor_cannot_have_locator():
    with pytest.raises(ValueError):
        QueryCursor(SOQL, locator="/services/data/v60.0/query/01g-2000", done=True)


def test_cursor_is_frozen():
    cursor = QueryCursor(SOQL)

    with pytest.raises(dataclasses.FrozenInstanceError):
        cursor.done = True  # type: ignore[misc]


def test_first_page_not_done():
    payload = {
        "totalSize": 3,
        "done": False,
        "nextRecordsUrl": "/services/data/v60.0/query/01gD0000002HU6KIAW-2",
        "records": [{"Id": "1"}, {"Id": "2"}],
    }

    page = QueryResult.from_page(payload, SOQL)

    assert page.total_size == 3
    assert not page.done
    assert page.records == [{"Id": "1"}, {"Id": "2"}]
    assert page.cursor == QueryCursor(
        SOQL,
        locator="/services/data/v60.0/query/01gD0000002HU6KIAW-2",
        done=False,
        total_size=3,
        fetched=2,
    )


def test_last_page_drops_locator_and_carries_total():
    previous = QueryCursor(SOQL, locator="/q/01g-2", total_size=3, fetched=2)
    # a stray nextRecordsUrl on a done page is ignored
    payload = {"totalSize": 999, "done": True, "records": [{"Id": "3"}], "nextRecordsUrl": "/x"}

    page = QueryResult.from_page(payload, SOQL, previous=previous)

    assert page.done
    assert page.cursor.locator is None
    assert page.total_size == 3
    assert page.cursor.fetched == 3


def test_not_done_without_locator_is_malformed():
    with pytest.raises(RemoteApiError) as exc_info:
        QueryResult.from_page({"totalSize": 5, "done": False, "records": []}, SOQL)

    assert exc_info.value.error_code == "MALFORMED_QUERY_PAGE"


def test_missing_records_key():
    page = QueryResult.from_page({"totalSize": 0, "done": True}, SOQL)

    assert page.records == []
    assert page.cursor.fetched == 0
