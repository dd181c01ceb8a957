import pytest

from gds_trainer.errors import PreconditionError
from gds_trainer.parse.commands import Availability
from gds_trainer.query.pagination import PaginationCursor
from gds_trainer.types import FlightRow


INTENT = Availability(mode="AN", date="15NOV", origin="BUE", destination="MAD")


def rows(*ids):
    return [
        FlightRow(
            id=i, airline_code="AR", flight_number=i, departure_airport_code="BUE",
            arrival_airport_code="MAD", departure_time="10:00", arrival_time="20:00",
            class_availability={"Y": 4},
        )
        for i in ids
    ]


def pages(*chunks):
    """Fake fetch serving ``chunks`` in order; each is (ids, next_marker, full)."""
    served = list(chunks)
    calls = []

    async def fetch(after):
        calls.append(after)
        ids, marker, full = served.pop(0)
        return rows(*ids), marker, full

    return fetch, calls


def test_start_resets_context_and_numbers_from_one():
    cursor = PaginationCursor()
    page = cursor.start(INTENT, 2, rows("a", "b"), "m1", True)
    assert page.start_index == 1
    assert page.end_index == 3
    assert page.next_cursor == "m1"
    assert cursor.context.previous_pages == []


def test_forward_marker_only_kept_for_full_pages():
    cursor = PaginationCursor()
    page = cursor.start(INTENT, 5, rows("a"), "m1", False)
    assert page.next_cursor is None


async def test_next_advances_global_numbering_and_previous_replays():
    cursor = PaginationCursor()
    cursor.start(INTENT, 2, rows("a", "b"), "m1", True)
    fetch, calls = pages((["c", "d"], "m2", True), (["e"], None, False))

    second = await cursor.next(fetch)
    assert calls == ["m1"]
    assert second.start_index == 3
    assert [r.id for r in second.rows] == ["c", "d"]

    third = await cursor.next(fetch)
    assert third.start_index == 5
    assert third.next_cursor is None

    back = cursor.previous()
    assert back.start_index == 3
    assert [r.id for r in back.rows] == ["c", "d"]
    # Replayed rows, no new query
    assert calls == ["m1", "m2"]

    first = cursor.previous()
    assert first.start_index == 1
    with pytest.raises(PreconditionError) as exc:
        cursor.previous()
    assert str(exc.value) == "NO PREVIOUS PAGES"


async def test_next_previous_next_keeps_numbering():
    cursor = PaginationCursor()
    cursor.start(INTENT, 2, rows("a", "b"), "m1", True)
    fetch, _ = pages((["c", "d"], "m2", True), (["c", "d"], "m2", True))

    shown = (await cursor.next(fetch)).start_index
    cursor.previous()
    again = (await cursor.next(fetch)).start_index
    assert shown == again == 3


async def test_next_without_marker_is_no_more_results():
    cursor = PaginationCursor()
    cursor.start(INTENT, 5, rows("a"), None, False)
    fetch, calls = pages()
    with pytest.raises(PreconditionError) as exc:
        await cursor.next(fetch)
    assert str(exc.value) == "NO MORE RESULTS"
    assert calls == []


async def test_empty_next_page_leaves_state_untouched():
    cursor = PaginationCursor()
    cursor.start(INTENT, 2, rows("a", "b"), "m1", True)
    fetch, _ = pages(([], None, False))
    with pytest.raises(PreconditionError):
        await cursor.next(fetch)
    assert cursor.context.current.start_index == 1
    assert cursor.context.previous_pages == []


async def test_failed_fetch_leaves_state_untouched():
    cursor = PaginationCursor()
    cursor.start(INTENT, 2, rows("a", "b"), "m1", True)

    async def boom(after):
        raise RuntimeError("repository down")

    with pytest.raises(RuntimeError):
        await cursor.next(boom)
    assert [r.id for r in cursor.context.current.rows] == ["a", "b"]


def test_navigation_without_search():
    cursor = PaginationCursor()
    with pytest.raises(PreconditionError) as exc:
        cursor.previous()
    assert str(exc.value) == "NO ACTIVE SEARCH - ENTER AN, SN OR TN FIRST"


def test_row_at_uses_displayed_numbers_and_returns_copy():
    cursor = PaginationCursor()
    cursor.start(INTENT, 2, rows("a", "b"), "m1", True)
    row = cursor.row_at(2)
    assert row.id == "b"
    row.class_availability["Y"] = 0
    assert cursor.context.current.rows[1].class_availability["Y"] == 4

    with pytest.raises(PreconditionError) as exc:
        cursor.row_at(3)
    assert str(exc.value) == "INVALID LINE NUMBER - MUST BE BETWEEN 1 AND 2"


def test_row_at_without_display():
    with pytest.raises(PreconditionError) as exc:
        PaginationCursor().row_at(1)
    assert "NO FLIGHTS DISPLAYED" in str(exc.value)
