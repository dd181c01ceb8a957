from datetime import datetime

from gds_trainer.formatters.terminal import (
    Column,
    aircraft_code,
    banner,
    now_stamp,
    render_table,
    right_align_info,
    timetable_window,
)


def test_render_table_aligns_columns_and_strips_trailing_blanks():
    rows = [["1", "AR", "1132", ""], ["10", "IB", "42", "X"]]
    lines = render_table(rows, [Column(1), Column(2), Column(4, "right"), Column(1)])
    assert lines == [
        "1  AR 1132",
        "10 IB   42 X",
    ]


def test_render_table_respects_minimum_width():
    lines = render_table([["A", "B"]], [Column(3), Column(0)])
    assert lines == ["A   B"]


def test_render_table_empty():
    assert render_table([], [Column(1)]) == []


def test_right_align_info():
    assert right_align_info("LEFT", "INFO", 12) == "LEFT    INFO"
    # Never glued together when the left part is too long
    assert right_align_info("A VERY LONG LEFT", "INFO", 5) == "A VERY LONG LEFT INFO"


def test_now_stamp_and_banner():
    now = datetime(2026, 10, 19, 14, 30)
    assert now_stamp(now) == "MO 19OCT 1430"
    line = banner("AVAILABILITY - AN", "MAD", "MADRID", "ES", "27 MO 19OCT 1430")
    assert line == "** AMADEUS AVAILABILITY - AN ** MAD MADRID.ES 27 MO 19OCT 1430"
    with_suffix = banner("SCHEDULES - SN", "MAD", "MADRID", "ES", "X", width=60, suffix="NEXT PAGE")
    assert with_suffix.startswith("** AMADEUS SCHEDULES - SN ** MAD MADRID.ES (NEXT PAGE)")
    assert len(with_suffix) == 60
    assert with_suffix.endswith(" X")


def test_timetable_window():
    assert timetable_window(datetime(2026, 10, 19, 9, 0)) == "19OCT26 26OCT26"


def test_aircraft_code():
    assert aircraft_code("Airbus A330") == "330"
    assert aircraft_code("Boeing 737-800") == "738"
    assert aircraft_code("77W") == "77W"
    assert aircraft_code(None) == "---"
    assert aircraft_code("Tupolev 154") == "TUPOLEV 154"
