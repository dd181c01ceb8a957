from gds_trainer.repository.base import FlightQuery
from gds_trainer.repository.memory import InMemoryFlightRepository, decode_cursor


def _row(id, time, **kw):
    base = {
        "id": id,
        "airline_code": "AR",
        "flight_number": id,
        "departure_airport_code": "BUE",
        "arrival_airport_code": "MAD",
        "departure_date": "2026-11-15",
        "departure_time": time,
        "arrival_time": "06:00",
        "class_availability": {"Y": 9},
    }
    base.update(kw)
    return base


def test_seed_dates_are_normalised(repository):
    dates = {r.departure_date for r in repository.flights if r.id.startswith("IB6844") or r.id.startswith("UX42")}
    assert dates == {"2026-11-15"}


async def test_find_filters_and_sorts_by_departure_time(repository):
    page = await repository.find(FlightQuery(origin="BUE", destination="MAD", date="2026-11-15"), 10)
    times = [r.departure_time for r in page.rows]
    assert times == sorted(times)
    assert all(r.departure_date == "2026-11-15" for r in page.rows)
    assert len(page.rows) == 7
    assert page.next_cursor is None


async def test_find_by_airline(repository):
    page = await repository.find(FlightQuery(origin="BUE", destination="MAD", airline="AR"), 10)
    assert {r.airline_code for r in page.rows} == {"AR"}


async def test_keyset_pagination_resumes_after_marker():
    repo = InMemoryFlightRepository(data={"flights": [
        _row("3", "12:00"), _row("1", "08:00"), _row("2", "08:00"), _row("4", "20:00"),
    ]})
    query = FlightQuery(origin="BUE", destination="MAD")
    first = await repo.find(query, 2)
    assert [r.id for r in first.rows] == ["1", "2"]
    assert decode_cursor(first.next_cursor) == ("08:00", "2")

    second = await repo.find(query, 2, first.next_cursor)
    assert [r.id for r in second.rows] == ["3", "4"]
    assert second.next_cursor is not None

    third = await repo.find(query, 2, second.next_cursor)
    assert third.rows == []
    assert third.next_cursor is None


async def test_rows_without_date_match_any_date():
    repo = InMemoryFlightRepository(data={"flights": [_row("1", "08:00", departure_date=None)]})
    page = await repo.find(FlightQuery(origin="BUE", destination="MAD", date="2026-12-01"), 5)
    assert [r.id for r in page.rows] == ["1"]


def test_invalid_rows_are_skipped_and_classes_normalised():
    repo = InMemoryFlightRepository(data={"flights": [
        _row("1", "08:00", class_availability={"y": 3, "j": -2}),
        _row("2", "09:00", class_availability={"Y1": 3}),
    ]})
    assert [r.id for r in repo.flights] == ["1"]
    assert repo.flights[0].class_availability == {"Y": 3, "J": 0}


async def test_returned_rows_are_copies():
    repo = InMemoryFlightRepository(data={"flights": [_row("1", "08:00")]})
    page = await repo.find(FlightQuery(origin="BUE", destination="MAD"), 5)
    page.rows[0].class_availability["Y"] = 0
    assert repo.flights[0].class_availability["Y"] == 9


async def test_reference_lookups(repository):
    city = await repository.city_info("EZE")
    assert city.code == "BUE"
    assert "EZE" in city.airports and "AEP" in city.airports

    decoded = await repository.decode_code("MAD")
    assert decoded["kind"] == "city"
    decoded = await repository.decode_code("CDG")
    assert decoded["kind"] == "airport"
    assert decoded["city"].name == "PARIS"
    assert await repository.decode_code("ZZZ") is None

    cities = await repository.find_cities("buenosaires")
    assert [c.code for c in cities] == ["BUE"]
    airlines = await repository.find_airlines("AIR")
    assert [a.code for a in airlines] == ["UX", "AF"]  # AIR EUROPA, AIR FRANCE
    assert (await repository.airport_info("ORY")).name == "ORLY"


def test_missing_seed_file_gives_empty_repository(tmp_path):
    repo = InMemoryFlightRepository(path=str(tmp_path / "nope.json"))
    assert repo.flights == []
