"""HE / HELP texts."""

from typing import Dict, Optional

from gds_trainer.pnr.builder import MAX_OSI_ELEMENTS, MAX_OSI_LENGTH, VALID_SSR_CODES


SUMMARY = """AVAILABLE COMMANDS

HELP
HE                              THIS SUMMARY
HE<COMMAND>                     HELP FOR ONE COMMAND (EXAMPLE: HEXE)

ENCODE/DECODE
DAN<CITY>                       ENCODE CITY/AIRPORT
DAC<CODE>                       DECODE CITY/AIRPORT CODE
DNA<AIRLINE>                    ENCODE AIRLINE

AVAILABILITY
AN<DATE><ORIGIN><DEST>          SEAT AVAILABILITY
SN<DATE><ORIGIN><DEST>          SCHEDULES
TN<DATE><ORIGIN><DEST>          TIMETABLE (FREQUENCIES)
MD OR M                         NEXT PAGE
U                               PREVIOUS PAGE

PNR
SS<SEATS><CLASS><LINE>          SELL SEATS FROM THE DISPLAY
NM<QTY><LAST>/<FIRST> <TITLE>   ADD PASSENGER NAME
AP <CITY> <PHONE>-<TYPE>        ADD PHONE CONTACT
APE-<EMAIL>                     ADD EMAIL CONTACT
OS <AIRLINE> <TEXT> /P<N>       ADD OTHER SERVICE INFORMATION (OSI)
SR<CODE>/P<N>                   ADD SPECIAL SERVICE REQUEST (SSR)
RM <TEXT>                       ADD GENERAL REMARK
RC <TEXT>                       ADD CONFIDENTIAL REMARK
RIR <TEXT>                      ADD ITINERARY REMARK
RF<NAME>                        RECEIVED FROM
TK<OPTION>                      TICKETING ARRANGEMENT
ET                              END TRANSACTION
ER                              END TRANSACTION AND REDISPLAY
RT<LOCATOR>                     RETRIEVE PNR
XE<ELEMENTS>                    DELETE PNR ELEMENT(S)
XI                              CANCEL PNR"""


def _ssr_codes() -> str:
    lines = ["VALID SSR CODES", ""]
    lines.extend(f"{code} - {text.upper()}" for code, text in sorted(VALID_SSR_CODES.items()))
    return "\n".join(lines)


TOPICS: Dict[str, str] = {
    "AN": """AN - NEUTRAL AVAILABILITY

FORMAT: AN<DATE><ORIGIN><DEST>[/A<AIRLINE>][/C<CLASS>]

AN15NOVBUEMAD         AVAILABILITY BUENOS AIRES TO MADRID ON 15 NOV
AN15NOVBUEMAD/AAR     ONLY AEROLINEAS ARGENTINAS (AR)
AN15NOVBUEMAD/CJ      ONLY FLIGHTS WITH SEATS IN CLASS J

USE MD FOR MORE RESULTS AND U FOR THE PREVIOUS PAGE.""",
    "SN": """SN - NEUTRAL SCHEDULES

FORMAT: SN<DATE><ORIGIN><DEST>[/A<AIRLINE>]

SN15NOVBUEMAD         SCHEDULES BUENOS AIRES TO MADRID ON 15 NOV
SN15NOVBUEMAD/AAR     ONLY AEROLINEAS ARGENTINAS (AR)

EVERY FLIGHT IS SHOWN; CLOSED CLASSES APPEAR AS C.
USE MD FOR MORE RESULTS AND U FOR THE PREVIOUS PAGE.""",
    "TN": """TN - TIMETABLE

FORMAT: TN[<DATE>]<ORIGIN><DEST>[/A<AIRLINE>]

TNBUEMAD              FREQUENCIES BETWEEN BUENOS AIRES AND MADRID
TNBUEMAD/AAR          ONLY AEROLINEAS ARGENTINAS (AR)

OPERATING DAYS: 1=MONDAY ... 7=SUNDAY, D=DAILY.
USE MD FOR MORE RESULTS AND U FOR THE PREVIOUS PAGE.""",
    "MD": """MD - MOVE DOWN

SHOWS THE NEXT PAGE OF AN AN, SN OR TN DISPLAY. M IS ACCEPTED TOO.""",
    "U": """U - MOVE UP

GOES BACK TO THE PREVIOUS PAGE AFTER MD. LINE NUMBERS ARE KEPT.""",
    "SS": """SS - SELL SEGMENT

FORMAT: SS<SEATS><CLASS><LINE>

SS1Y1                 SELL 1 SEAT IN CLASS Y FROM LINE 1
SS2J3                 SELL 2 SEATS IN CLASS J FROM LINE 3

THE LINE NUMBER IS THE ONE SHOWN ON THE CURRENT PAGE.""",
    "NM": """NM - PASSENGER NAME

FORMAT: NM<QTY><LAST>/<FIRST> <TITLE>

NM1GARCIA/JUAN MR     ADD JUAN GARCIA (MR)
NM1PEREZ/ANA MRS      ADD ANA PEREZ (MRS)
NM1SMITH/JOHN(CHD)    ADD A CHILD
NM1LOPEZ/EVA MRS(INFLOPEZ/TOM/01JAN25)   ADULT WITH AN INFANT

YOU CANNOT NAME MORE PASSENGERS THAN SEATS SOLD.""",
    "AP": """AP - PHONE CONTACT

FORMAT: AP <CITY> <PHONE>-<TYPE>

AP BUE 12345678-M     MOBILE PHONE IN BUENOS AIRES
AP MAD 98765432-H     HOME PHONE IN MADRID

TYPES: M MOBILE, H HOME, B BUSINESS.
ONE CONTACT IS REQUIRED TO END THE TRANSACTION.""",
    "APE": """APE - EMAIL CONTACT

FORMAT: APE-<EMAIL>

APE-USER@EXAMPLE.COM  ADD AN EMAIL ADDRESS""",
    "OS": f"""OS - OTHER SERVICE INFORMATION

FORMAT: OS <AIRLINE> <TEXT> /P<PASSENGER>

OS UX PAX VIP WAGNER /P1     OSI FOR UX ABOUT PASSENGER 1
OS YY FREQUENT FLYER         OSI FOR EVERY AIRLINE IN THE ITINERARY

THE TEXT CANNOT EXCEED {MAX_OSI_LENGTH} CHARACTERS.
A PNR CAN HOLD UP TO {MAX_OSI_ELEMENTS} OSI ELEMENTS.""",
    "SR": """SR - SPECIAL SERVICE REQUEST

FORMAT: SR<CODE>/P<PASSENGER>

SRVGML/P2             VEGETARIAN MEAL FOR PASSENGER 2
SRWCHR/P1             WHEELCHAIR FOR PASSENGER 1

ONE SSR IS CREATED FOR EACH SEGMENT OF THE ITINERARY.
ENTER HESSRCODES FOR THE LIST OF VALID CODES.""",
    "SSRCODES": _ssr_codes(),
    "RM": """RM - REMARKS

FORMAT: RM <TEXT>, RC <TEXT>, RIR <TEXT>

RM CLIENT PREFERS AISLE SEATS     GENERAL REMARK
RC CORPORATE RATE APPLIED         CONFIDENTIAL REMARK
RIR CHECK IN 3 HOURS BEFORE       ITINERARY REMARK

ALL THREE KINDS ARE NUMBERED TOGETHER, IN THE ORDER THEY WERE ADDED.""",
    "RF": """RF - RECEIVED FROM

FORMAT: RF<NAME>

RF AGENT              RECEIVED FROM THE AGENT
RFMARIA PEREZ         RECEIVED FROM MARIA PEREZ

REQUIRED TO END THE TRANSACTION.""",
    "TK": """TK - TICKETING ARRANGEMENT

TKOK                  TICKET IMMEDIATELY
TKTL15NOV/1600        TIME LIMIT 15 NOV AT 1600
TKXL16NOV/1200        AUTO CANCEL 16 NOV AT 1200

WITHOUT A TK ELEMENT, ET ADDS A TIME LIMIT FOR TODAY.""",
    "ET": """ET / ER - END TRANSACTION

ET                    SAVE THE PNR AND CLOSE IT
ER                    SAVE THE PNR AND REDISPLAY IT

ENDING THE TRANSACTION CONFIRMS ALL SEGMENTS AND ASSIGNS A
6 CHARACTER RECORD LOCATOR.""",
    "RT": """RT - RETRIEVE PNR

FORMAT: RT<LOCATOR>

RTABC234              RETRIEVE THE PNR WITH LOCATOR ABC234

THE PNR BECOMES ACTIVE AGAIN; END WITH ET OR ER AFTER CHANGES.""",
    "XE": """XE - DELETE PNR ELEMENTS

XE3                   DELETE ELEMENT 3
XE3,6                 DELETE ELEMENTS 3 AND 6
XE3-6                 DELETE ELEMENTS 3 TO 6

ELEMENTS ARE NUMBERED IN ORDER: PASSENGERS, SEGMENTS, CONTACTS, EMAILS,
OSI, SSR, REMARKS, TICKETING. IF ANY NUMBER DOES NOT EXIST NOTHING IS DELETED.""",
    "XI": """XI - CANCEL PNR

XI                    CANCEL THE ACTIVE PNR
RF<NAME>              CONFIRM, AS THE VERY NEXT COMMAND

AN UNSAVED PNR IS DISCARDED AT ONCE. A SAVED PNR ASKS FOR CONFIRMATION;
RF ON THE NEXT COMMAND MARKS IT CANCELLED AND IT CAN NO LONGER BE RETRIEVED
WITH RT. ANY OTHER COMMAND KEEPS THE PNR.""",
    "DAN": """DAN - ENCODE CITY/AIRPORT

FORMAT: DAN<NAME>

DANBUENOS AIRES       CODES FOR BUENOS AIRES
DANMAD                CITIES WHOSE NAME STARTS WITH MAD""",
    "DAC": """DAC - DECODE CITY/AIRPORT

FORMAT: DAC<CODE>

DACBUE                DECODE CITY CODE BUE
DACEZE                DECODE AIRPORT CODE EZE""",
    "DNA": """DNA - ENCODE AIRLINE

FORMAT: DNA<NAME>

DNAIBERIA             CODE FOR IBERIA
DNAAIR                AIRLINES WHOSE NAME STARTS WITH AIR""",
}

ALIASES = {"M": "MD", "ER": "ET", "SSR": "SR", "OSI": "OS", "RC": "RM", "RIR": "RM"}


def help_text(topic: Optional[str] = None) -> str:
    if not topic:
        return SUMMARY
    topic = topic.upper()
    text = TOPICS.get(ALIASES.get(topic, topic))
    if text is None:
        return f"NO HELP AVAILABLE FOR {topic}. ENTER HE FOR THE COMMAND LIST"
    return text
