"""Tests for the rectangle country classifier."""

import pytest

from app.constants import UNKNOWN_COUNTRY
from app.services import geo


class TestClassify:
    """First matching rule wins."""

    def test_moscow_is_russia(self):
        assert geo.classify(55.75, 37.62) == "RU"

    def test_new_york_is_united_states(self):
        assert geo.classify(40.71, -74.00) == "US"

    def test_null_island_is_unknown(self):
        assert geo.classify(0, 0) == UNKNOWN_COUNTRY

    def test_classification_is_deterministic(self):
        assert {geo.classify(55.75, 37.62) for _ in range(10)} == {"RU"}

    def test_bounds_are_open(self):
        # Exactly on the southern edge of the Iceland box
        assert geo.classify(63, -20) != "IS"
        assert geo.classify(64, -20) == "IS"

    def test_refine_can_fall_through(self):
        """East of 25E and south of 68N the Norway box defers to later rules."""
        assert geo.classify(59.9, 10.75) == "NO"
        assert geo.classify(62.0, 28.0) == "FI"

    def test_shared_box_is_split_by_latitude(self):
        assert geo.classify(56.95, 24.1) == "LV"

    def test_alaska_and_chukotka(self):
        assert geo.classify(64.8, -147.7) == "US"
        assert geo.classify(66.0, -172.0) == "RU"

    def test_rules_are_an_ordered_sequence(self):
        assert isinstance(geo.COUNTRY_RULES, tuple)
        assert all(isinstance(rule, geo.CountryRule) for rule in geo.COUNTRY_RULES)


class TestWater:
    """Coarse ocean boxes."""

    @pytest.mark.parametrize(
        "lat,lng,body",
        [
            (0, -170, "Pacific Ocean"),
            (10, 170, "Pacific Ocean"),
            (0, -30, "Atlantic Ocean"),
            (-20, 75, "Indian Ocean"),
            (85, 0, "Arctic Ocean"),
            (-70, 0, "Southern Ocean"),
        ],
    )
    def test_open_ocean(self, lat, lng, body):
        assert geo.water_body(lat, lng) == body
        assert geo.is_water(lat, lng)

    def test_land_is_not_water(self):
        assert not geo.is_water(55.75, 37.62)
        assert not geo.is_water(40.71, -74.00)

    def test_atlantic_coastal_belt_is_excluded(self):
        assert not geo.is_water(30, -30)


class TestNamesAndFlags:
    def test_country_name(self):
        assert geo.country_name("RU") == "Russia"
        assert geo.country_name(UNKNOWN_COUNTRY) == "Unknown"

    def test_unlisted_code_falls_back_to_code(self):
        assert geo.country_name("QQ") == "QQ"

    def test_flag_from_iso_code(self):
        assert geo.country_flag("US") == "\U0001f1fa\U0001f1f8"

    def test_unknown_flag(self):
        assert geo.country_flag(UNKNOWN_COUNTRY) == "\U0001f3f3"

    def test_every_rule_has_a_name(self):
        for rule in geo.COUNTRY_RULES:
            assert rule.code in geo.COUNTRY_NAMES


class TestEstimatedCells:
    def test_large_countries_have_more_cells(self):
        estimates = geo.estimated_cells()
        assert estimates["RU"] > estimates["FR"] > 0
        assert UNKNOWN_COUNTRY not in estimates

    def test_every_classified_country_has_an_estimate(self):
        estimates = geo.estimated_cells()
        assert {"RU", "US", "BR", "AU"} <= set(estimates)
