"""City, airport and airline code lookups (DAN, DAC, DNA).

Thin rendering layer over the flight repository's reference records. A miss
is a normal answer the trainee has to read, so it comes back as text.
"""

from typing import List

from gds_trainer.obs.logger import log_event
from gds_trainer.parse.commands import DecodeCode, EncodeAirline, EncodeCity
from gds_trainer.repository.base import FlightRepository


LOCATION_LEGEND = "A:APT B:BUS C:CITY G:GRD H:HELI O:OFF-PT R:RAIL S:ASSOC TOWN"
MAX_MATCHES = 5


class ReferenceDecoder:
    def __init__(self, repository: FlightRepository):
        self.repository = repository

    async def _airport_name(self, code: str) -> str:
        airport = await self.repository.airport_info(code)
        return airport.name if airport else code

    async def encode_city(self, intent: EncodeCity) -> str:
        cities = await self.repository.find_cities(intent.query, MAX_MATCHES)
        log_event("reference_lookup", kind="city", query=intent.query, matches=len(cities))
        if not cities:
            return f"NO CITY FOUND MATCHING: {intent.query}"

        lines: List[str] = [f"DAN{intent.query}", LOCATION_LEGEND]
        for city in cities:
            lines.append(f"{city.code}*C {city.name} /{city.country_code}")
            for code in city.airports:
                lines.append(f"  A {code} - {await self._airport_name(code)} /{city.country_code}")
        return "\n".join(lines)

    async def decode(self, intent: DecodeCode) -> str:
        """City code first, then airport code."""
        decoded = await self.repository.decode_code(intent.code)
        log_event("reference_lookup", kind="code", query=intent.code, found=decoded is not None)
        if decoded is None:
            return f"NO CITY OR AIRPORT FOUND FOR CODE: {intent.code}"

        lines = [f"DAC{intent.code}"]
        if decoded["kind"] == "city":
            city = decoded["city"]
            lines.append(f"{city.code} C {city.name} /{city.country_code}")
            if city.airports:
                lines.append("AIRPORTS:")
                for code in city.airports:
                    lines.append(f"  {code} - {await self._airport_name(code)}")
            return "\n".join(lines)

        airport = decoded["airport"]
        city = decoded["city"]
        country = airport.country_code or (city.country_code if city else "")
        lines.append(f"{airport.code} A {airport.name} /{country}")
        lines.append(f"{airport.city_code} C {city.name if city else airport.city_code}")
        return "\n".join(lines)

    async def encode_airline(self, intent: EncodeAirline) -> str:
        airlines = await self.repository.find_airlines(intent.query, MAX_MATCHES)
        log_event("reference_lookup", kind="airline", query=intent.query, matches=len(airlines))
        if not airlines:
            return f"NO AIRLINE FOUND MATCHING: {intent.query}"
        lines = [f"DNA{intent.query}"]
        lines.extend(f"{a.code} {a.name}" + (f" /{a.country}" if a.country else "") for a in airlines)
        return "\n".join(lines)
