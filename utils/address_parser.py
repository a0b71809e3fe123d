"""Italian location parsing utilities."""

import re
from typing import Any, Dict, List, Optional


class ItalianLocationParser:
    """Parser for the location formats found on Italian agency sites."""

    # "Lucignano (AR), Villetta a schiera" -> "Lucignano"
    TITLE_CITY_PATTERN = re.compile(r"^(?P<city>[^(]+)\s*\(")

    # Icon text some WordPress themes render in front of the address
    MARKER_PREFIX_PATTERN = re.compile(r"^\s*map-marker\s*", re.IGNORECASE)

    # Province code in parentheses, e.g. "Siena (SI)"
    PROVINCE_PATTERN = re.compile(r"\s*\((?P<province>[A-Z]{2})\)\s*")

    # Words kept lowercase inside city names ("Mola di Bari")
    LOWERCASE_WORDS = {"di", "da", "del", "della", "dei", "sul", "sull", "in", "a", "al"}

    def __init__(
        self,
        known_cities: Optional[List[str]] = None,
        corrections: Optional[Dict[str, str]] = None,
        default_city: Optional[str] = None,
    ):
        """
        Initialize the parser.

        Args:
            known_cities: Cities searched for when a location has no comma
            corrections: Lowercased misspelling -> corrected city name
            default_city: City used when nothing else can be found
        """
        self.known_cities = known_cities or []
        self.corrections = corrections or {}
        self.default_city = default_city

    def city_from_title(self, title: str) -> str:
        """
        Extract the city from a listing title.

        Formats:
            "Lucignano (AR), Villetta a schiera..." -> "Lucignano"
            "Montepulciano, casale con piscina" -> "Montepulciano"
        """
        title = title.strip()
        match = self.TITLE_CITY_PATTERN.match(title)
        if match:
            return match.group("city").strip()
        comma_index = title.find(",")
        if comma_index > 0:
            return title[:comma_index].strip()
        return title

    def clean_location(self, text: Optional[str]) -> Optional[str]:
        """Strip icon prefixes and surrounding whitespace from a location line."""
        if not text:
            return None
        cleaned = self.MARKER_PREFIX_PATTERN.sub("", text)
        cleaned = re.sub(r"\s+", " ", cleaned).strip()
        return cleaned or None

    def city_from_location(self, text: Optional[str]) -> Optional[str]:
        """
        Extract the city from a "street, city" location line.

        The city is the last comma-separated part. Without a comma, known
        cities are searched in the text before falling back to the text
        itself or the default city.
        """
        cleaned = self.clean_location(text)
        city = ""
        if cleaned and "," in cleaned:
            city = cleaned.split(",")[-1].strip()

        if not city:
            lowered = (cleaned or "").lower()
            for known in self.known_cities:
                if known.lower() in lowered:
                    return known
            return cleaned or self.default_city

        return self.corrections.get(city.lower(), city)

    def parse_location(self, text: Optional[str]) -> Dict[str, Any]:
        """
        Parse a "city, address" line as used by gestionale-style sites.

        Example:
            "Belvedere Marittimo, Contrada Oracchio - Mappa | Google"
            -> {"city": "Belvedere Marittimo", "address": "Contrada Oracchio"}
        """
        result: Dict[str, Any] = {
            "city": None,
            "address": None,
            "province": None,
            "full_location": self.clean_location(text),
        }
        if not result["full_location"]:
            return result

        location = result["full_location"]
        province_match = self.PROVINCE_PATTERN.search(location)
        if province_match:
            result["province"] = province_match.group("province")
            location = self.PROVINCE_PATTERN.sub(" ", location).strip()

        parts = location.split(",")
        result["city"] = parts[0].strip() or None
        if len(parts) >= 2:
            address = parts[1].split("|")[0].split("-")[0].strip()
            result["address"] = address or None
        return result

    def normalize_city_name(self, name: Optional[str]) -> Optional[str]:
        """
        Title-case a city name.

        Example:
            "BELVEDERE MARITTIMO" -> "Belvedere Marittimo"
            "san-giovanni" -> "San Giovanni"
        """
        if not name:
            return None
        words = [w for w in re.split(r"[\s\-]+", name.strip()) if w]
        normalized = []
        for index, word in enumerate(words):
            lowered = word.lower()
            if index > 0 and lowered in self.LOWERCASE_WORDS:
                normalized.append(lowered)
            else:
                normalized.append(lowered[:1].upper() + lowered[1:])
        return " ".join(normalized) or None
