import pytest

from gds_trainer.errors import CommandSyntaxError, UnknownCommandError
from gds_trainer.parse.commands import (
    AddContact,
    AddEmailContact,
    AddName,
    AddOSI,
    AddRemark,
    AddSSR,
    Availability,
    CancelPNR,
    DecodeCode,
    DeleteElements,
    EncodeAirline,
    EncodeCity,
    EndTransaction,
    Help,
    Navigate,
    ReceivedFrom,
    RetrievePNR,
    SellSegment,
    Ticketing,
    command_family,
    parse,
    render_intent,
)


def test_availability_with_date_and_options():
    r = parse("an15novbuemad/aar/cy")
    assert isinstance(r, Availability)
    assert r.mode == "AN"
    assert r.date == "15NOV"
    assert r.origin == "BUE"
    assert r.destination == "MAD"
    assert r.airline == "AR"
    assert r.booking_class == "Y"


def test_single_digit_day_is_reassembled_without_eating_origin():
    r = parse("SN5NOVBUEMAD")
    assert r.mode == "SN"
    assert r.date == "05NOV"
    assert r.origin == "BUE"
    assert r.destination == "MAD"


def test_timetable_without_date():
    r = parse("  TNBUEMAD  ")
    assert r.mode == "TN"
    assert r.date is None
    assert (r.origin, r.destination) == ("BUE", "MAD")


@pytest.mark.parametrize("raw", [
    "AN15NOVBUEMAD",
    "SN1DECBUEMIA/AIB",
    "TNBUEMAD/CJ",
    "AN20JANMADBUE/AUX/CY",
])
def test_availability_round_trip_on_structured_fields(raw):
    first = parse(raw)
    second = parse(render_intent(first))
    assert second == first


@pytest.mark.parametrize("raw", [
    "AN15XYZBUEMAD",      # unknown month
    "AN32NOVBUEMAD",      # impossible day
    "AN31FEBBUEMAD",      # no such day in February
    "AN30FEBBUEMAD",
    "AN31APRBUEMAD",      # April has 30 days
    "AN15NOVBUEMA",       # short destination
    "AN15NOVBUEMAD/AAR/AIB",  # two airline filters
    "AN15NOVBUEMAD/CYY",  # class filter is one letter
    "AN15NOVBUEMAD/X1",   # unknown option
])
def test_availability_syntax_errors_name_example(raw):
    with pytest.raises(CommandSyntaxError) as exc:
        parse(raw)
    assert str(exc.value).startswith("INVALID FORMAT - EXPECTED: ")
    assert "15NOVBUEMAD" in str(exc.value)


def test_navigation_words():
    assert parse("MD") == Navigate(direction="next")
    assert parse("m") == Navigate(direction="next")
    assert parse("U") == Navigate(direction="previous")


def test_single_letters_only_match_whole_command():
    with pytest.raises(UnknownCommandError):
        parse("UX")


def test_sell():
    r = parse("SS2J3")
    assert r == SellSegment(quantity=2, class_code="J", line_number=3)


@pytest.mark.parametrize("raw", ["SS0Y1", "SS1Y0", "SSY1", "SS1YY1"])
def test_sell_rejects_bad_forms(raw):
    with pytest.raises(CommandSyntaxError):
        parse(raw)


def test_name_with_title():
    r = parse("NM1GARCIA/JUAN MR")
    assert isinstance(r, AddName)
    assert (r.quantity, r.last_name, r.first_name, r.title) == (1, "GARCIA", "JUAN", "MR")
    assert r.subtype is None


def test_name_with_compound_first_name_and_child():
    r = parse("NM1SMITH/JOHN PAUL(CHD/05MAY18)")
    assert r.first_name == "JOHN PAUL"
    assert r.title is None
    assert r.subtype == "CHD"
    assert r.subtype_info == "05MAY18"


def test_name_with_infant_block():
    r = parse("NM1LOPEZ/EVA MRS(INFLOPEZ/TOM/01JAN25)")
    assert r.title == "MRS"
    assert r.subtype == "INF"
    assert r.subtype_info == "LOPEZ/TOM/01JAN25"


def test_name_requires_slash():
    with pytest.raises(CommandSyntaxError) as exc:
        parse("NM1GARCIA JUAN")
    assert "NM1GARCIA/JUAN MR" in str(exc.value)


def test_contact_and_email():
    assert parse("AP BUE 12345678-M") == AddContact(city="BUE", phone="12345678", type="M")
    assert parse("AP MAD 91-555-1234") == AddContact(city="MAD", phone="91-555-1234", type="H")
    assert parse("APE-juan.garcia@example.com") == AddEmailContact(email="JUAN.GARCIA@EXAMPLE.COM")


def test_email_wins_over_phone_contact():
    assert isinstance(parse("APE JUAN@EXAMPLE.COM"), AddEmailContact)


def test_received_from_and_remark():
    assert parse("RF maria perez") == ReceivedFrom(name="MARIA PEREZ")
    assert parse("RM CLIENT PREFERS AISLE") == AddRemark(text="CLIENT PREFERS AISLE")


def test_confidential_and_itinerary_remarks():
    assert parse("RC CORPORATE RATE") == AddRemark(kind="RC", text="CORPORATE RATE")
    assert parse("rir check in early") == AddRemark(kind="RIR", text="CHECK IN EARLY")
    assert parse("RMRC IS TEXT") == AddRemark(kind="RM", text="RC IS TEXT")
    with pytest.raises(CommandSyntaxError) as exc:
        parse("RIR")
    assert str(exc.value) == "INVALID FORMAT - EXPECTED: RIR TEXT OF THE REMARK"


def test_ticketing_forms():
    assert parse("TKOK") == Ticketing(kind="OK")
    assert parse("TKTL15NOV/1600") == Ticketing(kind="TL", date="15NOV", time="1600")
    assert parse("TKXL1DEC/900") == Ticketing(kind="XL", date="01DEC", time="0900")
    with pytest.raises(CommandSyntaxError):
        parse("TKTL15NOV")


@pytest.mark.parametrize("raw", ["TKTL31APR/1600", "TKXL30FEB/1200", "TKTL32JAN/0900"])
def test_ticketing_rejects_impossible_dates(raw):
    with pytest.raises(CommandSyntaxError) as exc:
        parse(raw)
    assert "TKTL15NOV/1600" in str(exc.value)


def test_leap_day_parses():
    assert parse("AN29FEBBUEMAD").date == "29FEB"


def test_end_transaction_and_retrieve_and_cancel():
    assert parse("ET") == EndTransaction(keep_open=False)
    assert parse("er") == EndTransaction(keep_open=True)
    assert parse("RT ABC234") == RetrievePNR(locator="ABC234")
    assert parse("XI") == CancelPNR()
    with pytest.raises(CommandSyntaxError):
        parse("RTABC")


def test_delete_elements_forms():
    assert parse("XE3") == DeleteElements(numbers=[3])
    assert parse("XE6,3") == DeleteElements(numbers=[3, 6])
    assert parse("XE3-5") == DeleteElements(numbers=[3, 4, 5])
    with pytest.raises(CommandSyntaxError):
        parse("XE5-3")


def test_osi_and_ssr():
    assert parse("OS UX PAX VIP WAGNER /P1") == AddOSI(airline="UX", message="PAX VIP WAGNER", passenger_number=1)
    assert parse("OS YY FREQUENT FLYER") == AddOSI(airline="YY", message="FREQUENT FLYER")
    assert parse("SRVGML/P2") == AddSSR(code="VGML", passenger_number=2)
    assert parse("SRWCHR") == AddSSR(code="WCHR")


def test_reference_and_help_commands():
    assert parse("DANBUENOS AIRES") == EncodeCity(query="BUENOS AIRES")
    assert parse("DACEZE") == DecodeCode(code="EZE")
    assert parse("DNAIBERIA") == EncodeAirline(query="IBERIA")
    assert parse("HE") == Help(topic=None)
    assert parse("HELP") == Help(topic=None)
    assert parse("HEXE") == Help(topic="XE")
    assert parse("HE SSRCODES") == Help(topic="SSRCODES")


def test_unknown_word_names_first_token():
    with pytest.raises(UnknownCommandError) as exc:
        parse("FXP ALL")
    assert str(exc.value) == "UNKNOWN COMMAND: FXP. ENTER HE FOR HELP"


def test_empty_command_is_syntax_error():
    with pytest.raises(CommandSyntaxError):
        parse("   ")


def test_command_family_labels():
    assert command_family(parse("SN15NOVBUEMAD")) == "sn"
    assert command_family(parse("SS1Y1")) == "sell"
    assert command_family(parse("MD")) == "navigate"
