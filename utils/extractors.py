"""Italian real estate feature extraction patterns and utilities."""

import logging
import re
from datetime import datetime
from typing import Dict, List, Optional, Pattern

from models.constants import AMENITY_FIELDS, ENERGY_CLASSES, FEATURE_LABELS, MIN_YEAR_BUILT
from models.features import ExtractedFeatures

logger = logging.getLogger(__name__)


class FeatureExtractor:
    """Rule-based extractor for amenities described in Italian listing text."""

    # Positive indicators per amenity (matched against lowercased text)
    POSITIVE_PATTERNS: Dict[str, List[Pattern]] = {
        "has_sea_view": [
            re.compile(r"vista\s+mare"),
            re.compile(r"vista\s+sul\s+mare"),
            re.compile(r"affaccio\s+sul\s+mare"),
            re.compile(r"fronte\s+mare"),
            re.compile(r"sul\s+mare"),
            re.compile(r"panorama\s+marino"),
            re.compile(r"vista\s+oceano"),
        ],
        "has_garden": [
            re.compile(r"giardino"),
            re.compile(r"spazio\s+verde"),
            re.compile(r"area\s+verde"),
            re.compile(r"parco\s+privato"),
            re.compile(r"terreno\s+con\s+piante"),
        ],
        "has_pool": [
            re.compile(r"piscin[ae]"),
            re.compile(r"swimming\s+pool"),
        ],
        "has_terrace": [
            re.compile(r"terrazz[ao]"),
            re.compile(r"roof\s+terrace"),
            re.compile(r"lastrico\s+solare"),
        ],
        "has_balcony": [
            re.compile(r"balcon[ei]"),
            re.compile(r"loggi(?:a|etta)"),
        ],
        "has_parking": [
            re.compile(r"posti?\s+auto"),
            re.compile(r"parcheggio"),
            re.compile(r"parking"),
        ],
        "has_garage": [
            re.compile(r"garage"),
            re.compile(r"box\s+auto"),
            re.compile(r"(?:auto)?rimessa"),
        ],
        "has_fireplace": [
            re.compile(r"camin(?:o|etto)"),
            re.compile(r"stufa\s+a\s+legna"),
            re.compile(r"fireplace"),
        ],
        "has_air_conditioning": [
            re.compile(r"aria\s+condizionata"),
            re.compile(r"condizionator[ei]"),
            re.compile(r"climatizza(?:tore|tori|zione)"),
            re.compile(r"\ba/c\b"),
            re.compile(r"\bac\b"),
        ],
        "has_elevator": [
            re.compile(r"ascensore"),
            re.compile(r"elevatore"),
            re.compile(r"\blift\b"),
        ],
        "is_renovated": [
            re.compile(r"ristrutturat[oa]"),
            re.compile(r"rinnovat[oa]"),
            re.compile(r"nuova\s+costruzione"),
        ],
        "has_mountain_view": [
            re.compile(r"vista\s+(?:sulle\s+)?montagn[ae]"),
            re.compile(r"vista\s+monti"),
            re.compile(r"panorama\s+montano"),
            re.compile(r"vista\s+(?:appennini|alpi)"),
        ],
        "has_panoramic_view": [
            re.compile(r"vista\s+panoramica"),
            re.compile(r"panoramic[oa]"),
            re.compile(r"vista\s+mozzafiato"),
            re.compile(r"vista\s+spettacolare"),
        ],
    }

    # Negative indicators win over positive ones
    NEGATIVE_PATTERNS: Dict[str, List[Pattern]] = {
        "has_sea_view": [
            re.compile(r"senza\s+vista\s+(?:sul\s+)?mare"),
            re.compile(r"\bno\s+vista\s+mare"),
        ],
        "has_garden": [
            re.compile(r"senza\s+giardino"),
            re.compile(r"\bno\s+giardino"),
            re.compile(r"giardino\s+condominiale"),
        ],
        "has_pool": [
            re.compile(r"senza\s+piscina"),
            re.compile(r"\bno\s+piscina"),
            re.compile(r"piscina\s+comunale"),
        ],
        "has_elevator": [
            re.compile(r"senza\s+ascensore"),
            re.compile(r"\bno\s+ascensore"),
            re.compile(r"privo\s+di\s+ascensore"),
        ],
    }

    # Floor patterns: "piano 3", "3° piano", "al terzo piano"
    FLOOR_PATTERNS: List[Pattern] = [
        re.compile(r"(?:piano|floor)\s*(?:n\.?\s*)?(\d+)", re.IGNORECASE),
        re.compile(r"(\d+)\s*[°º]?\s*piano", re.IGNORECASE),
        re.compile(r"al\s+(\w+)\s+piano", re.IGNORECASE),
    ]

    # Spelled-out floors
    FLOOR_WORDS: Dict[str, int] = {
        "primo": 1, "prima": 1,
        "secondo": 2, "seconda": 2,
        "terzo": 3, "terza": 3,
        "quarto": 4, "quarta": 4,
        "quinto": 5, "quinta": 5,
        "sesto": 6, "sesta": 6,
        "settimo": 7, "settima": 7,
        "ottavo": 8, "ottava": 8,
        "nono": 9, "nona": 9,
        "decimo": 10, "decima": 10,
        "terra": 0,
        "pianterreno": 0,
    }

    GROUND_FLOOR_PATTERN = re.compile(r"piano\s+terra|pianterreno", re.IGNORECASE)

    # Year built patterns: "costruito nel 1990", "anno di costruzione 1985"
    YEAR_PATTERNS: List[Pattern] = [
        re.compile(r"costruit[oa]\s+(?:nel\s+)?(\d{4})", re.IGNORECASE),
        re.compile(r"anno\s+(?:di\s+costruzione\s*:?\s*)?(\d{4})", re.IGNORECASE),
        re.compile(r"(?:del|nel)\s+(\d{4})", re.IGNORECASE),
        re.compile(r"risalente\s+al\s+(\d{4})", re.IGNORECASE),
    ]

    # Energy class patterns: "classe energetica A", "APE: B", "classe A+"
    ENERGY_PATTERNS: List[Pattern] = [
        re.compile(r"classe\s+energetica\s*:?\s*([a-g]\+?)(?![a-z])", re.IGNORECASE),
        re.compile(r"\bape\s*:?\s*([a-g]\+?)(?![a-z])", re.IGNORECASE),
        re.compile(r"certificazione\s+energetica\s*:?\s*([a-g]\+?)(?![a-z])", re.IGNORECASE),
        re.compile(r"classe\s+([a-g]\+?)(?![a-z])", re.IGNORECASE),
    ]

    def extract_boolean(self, text: str, field: str) -> Optional[bool]:
        """
        Resolve one amenity with three-way logic.

        Returns:
            False if a negative indicator matches, True if a positive one
            matches, otherwise None (not mentioned)
        """
        for pattern in self.NEGATIVE_PATTERNS.get(field, []):
            if pattern.search(text):
                return False
        for pattern in self.POSITIVE_PATTERNS.get(field, []):
            if pattern.search(text):
                return True
        return None

    def extract_floor(self, text: str) -> Optional[int]:
        """Extract the floor number from digits or Italian ordinal words."""
        for pattern in self.FLOOR_PATTERNS:
            match = pattern.search(text)
            if not match:
                continue
            value = match.group(1)
            if value.isdigit():
                return int(value)
            floor = self.FLOOR_WORDS.get(value.lower())
            if floor is not None:
                return floor

        if self.GROUND_FLOOR_PATTERN.search(text):
            return 0
        return None

    def extract_year_built(self, text: str) -> Optional[int]:
        """Extract a plausible construction year (1800 through this year)."""
        current_year = datetime.now().year
        for pattern in self.YEAR_PATTERNS:
            for match in pattern.finditer(text):
                year = int(match.group(1))
                if MIN_YEAR_BUILT <= year <= current_year:
                    return year
                logger.debug(f"Rejected year {year} from '{match.group(0)}'")
        return None

    def extract_energy_class(self, text: str) -> Optional[str]:
        """Extract an energy class letter A-G with optional '+' (only A+ exists)."""
        for pattern in self.ENERGY_PATTERNS:
            match = pattern.search(text)
            if match and match.group(1).upper() in ENERGY_CLASSES:
                return match.group(1).upper()
        return None

    def extract(self, description: Optional[str]) -> ExtractedFeatures:
        """
        Extract all features from a description.

        Args:
            description: Listing description (Italian)

        Returns:
            ExtractedFeatures with every key present
        """
        features = ExtractedFeatures()
        if not description:
            return features

        text = description.lower()
        for field in AMENITY_FIELDS:
            setattr(features, field, self.extract_boolean(text, field))

        features.floor_number = self.extract_floor(text)
        features.year_built = self.extract_year_built(description)
        features.energy_class = self.extract_energy_class(description)
        return features

    @staticmethod
    def merge_features(
        existing: ExtractedFeatures, extracted: ExtractedFeatures
    ) -> ExtractedFeatures:
        """
        Merge freshly extracted features into known values.

        A known (non-null) value always wins; extraction only fills gaps.
        """
        merged = extracted.to_dict()
        for key, value in existing.to_dict().items():
            if value is not None:
                merged[key] = value
        return ExtractedFeatures(**merged)

    @staticmethod
    def feature_summary(features: ExtractedFeatures) -> List[str]:
        """Return human-readable labels for the features that are present."""
        summary = [
            label for field, label in FEATURE_LABELS.items()
            if getattr(features, field) is True
        ]
        if features.energy_class:
            summary.append(f"Energy Class {features.energy_class}")
        return summary
