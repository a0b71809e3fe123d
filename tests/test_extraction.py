"""Test amenity and detail extraction from Italian descriptions."""

import sys
from pathlib import Path

# Add parent directory to path to import project modules
sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest

from models.features import ExtractedFeatures
from models.listing import NormalizedListing
from utils.extractors import FeatureExtractor


class TestBooleanAmenities:
    """Test three-way amenity resolution."""

    def setup_method(self):
        """Setup extractor instance."""
        self.extractor = FeatureExtractor()

    def test_negation_takes_precedence(self):
        """'senza giardino' must not count as a garden."""
        features = self.extractor.extract("Appartamento senza giardino, vista mare")
        assert features.has_garden is False
        assert features.has_sea_view is True

    def test_unmentioned_is_none(self):
        features = self.extractor.extract("Appartamento in centro")
        assert features.has_pool is None
        assert features.has_garden is None

    def test_positive_matches(self):
        features = self.extractor.extract(
            "Villa con piscina, ampio terrazzo, camino, aria condizionata e box auto. "
            "Completamente ristrutturata, vista panoramica sulle colline."
        )
        assert features.has_pool is True
        assert features.has_terrace is True
        assert features.has_fireplace is True
        assert features.has_air_conditioning is True
        assert features.has_garage is True
        assert features.is_renovated is True
        assert features.has_panoramic_view is True

    def test_elevator_negation(self):
        features = self.extractor.extract("Terzo piano senza ascensore")
        assert features.has_elevator is False

    def test_condominium_garden_is_not_private(self):
        assert self.extractor.extract("Ampio giardino condominiale").has_garden is False


class TestDetailFields:
    """Test floor, year and energy class extraction."""

    def setup_method(self):
        self.extractor = FeatureExtractor()

    @pytest.mark.parametrize("text,expected", [
        ("Appartamento al piano 3 con balcone", 3),
        ("situato al 2° piano", 2),
        ("al terzo piano di una palazzina", 3),
        ("appartamento al piano terra", 0),
        ("bilocale al pianterreno", 0),
    ])
    def test_floor_number(self, text, expected):
        assert self.extractor.extract(text).floor_number == expected

    def test_year_built(self):
        assert self.extractor.extract("Villa costruita nel 1975").year_built == 1975

    def test_implausible_year_rejected(self):
        assert self.extractor.extract("Casa costruita nel 1650").year_built is None

    @pytest.mark.parametrize("text,expected", [
        ("Classe energetica: B", "B"),
        ("APE: a+", "A+"),
        ("immobile in classe g", "G"),
    ])
    def test_energy_class(self, text, expected):
        assert self.extractor.extract(text).energy_class == expected

    def test_unknown_energy_class_rejected(self):
        assert self.extractor.extract("Classe energetica B+").energy_class is None

    def test_empty_description(self):
        features = self.extractor.extract(None)
        assert not features.has_any()
        assert set(features.to_dict()) == set(ExtractedFeatures().to_dict())


class TestMerge:
    """Test that extraction only fills gaps."""

    def test_existing_values_win(self):
        existing = ExtractedFeatures(has_garden=True, energy_class="C")
        extracted = ExtractedFeatures(has_garden=False, has_pool=True, energy_class="A")
        merged = FeatureExtractor.merge_features(existing, extracted)
        assert merged.has_garden is True
        assert merged.energy_class == "C"
        assert merged.has_pool is True

    def test_listing_apply_features_fills_only_gaps(self):
        listing = NormalizedListing(
            region_id="r", source_id="s", listing_url="https://x/1", city="Siena",
            price_eur=150000, has_garden=True,
        )
        listing.apply_features(ExtractedFeatures(has_garden=False, has_terrace=True))
        assert listing.has_garden is True
        assert listing.has_terrace is True

    def test_feature_summary(self):
        features = ExtractedFeatures(has_sea_view=True, has_pool=True, has_garden=False, energy_class="B")
        summary = FeatureExtractor.feature_summary(features)
        assert "Sea View" in summary
        assert "Pool" in summary
        assert "Garden" not in summary
        assert "Energy Class B" in summary
