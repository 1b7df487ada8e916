"""Tests for unknown-location detection."""

import json

import pytest

from ipgeo.geo.detector import (
    UNKNOWN_SENTINELS,
    has_unknown_stored_location,
    is_resolvable_ip,
    is_unknown_location,
    is_unknown_value,
    parse_location_field,
)
from ipgeo.models.location import DeviceLocationRef


class TestIsUnknownLocation:

    def test_both_unknown(self):
        assert is_unknown_location({"city": "Unknown", "country": "Unknown"}) is True

    def test_both_known(self):
        assert is_unknown_location({"city": "Baghdad", "country": "IQ"}) is False

    def test_one_known_is_not_unknown(self):
        assert is_unknown_location({"city": "Baghdad", "country": "Unknown"}) is False
        assert is_unknown_location({"city": "unknown", "country": "IQ"}) is False

    @pytest.mark.parametrize("sentinel", sorted(UNKNOWN_SENTINELS))
    def test_every_sentinel(self, sentinel):
        assert is_unknown_location({"city": sentinel, "country": sentinel}) is True

    def test_arabic_sentinels(self):
        assert is_unknown_location({"city": "غير محدد", "country": "غير معروف"}) is True

    def test_missing_fields_count_as_empty(self):
        assert is_unknown_location({}) is True
        assert is_unknown_location({"city": None, "country": "N/A"}) is True

    def test_none_location(self):
        assert is_unknown_location(None) is True

    def test_non_string_fields_are_real_values(self):
        assert is_unknown_location({"city": {"name": "Baghdad"}, "country": "IQ"}) is False
        assert is_unknown_location({"city": ["Basra"], "country": "Unknown"}) is False
        assert is_unknown_location({"city": "Unknown", "country": {"code": "IQ"}}) is False

    def test_stored_location_with_structured_city(self):
        assert has_unknown_stored_location({"location": {"city": {"name": "Erbil"}, "country": "IQ"}}) is False

    def test_accepts_models(self):
        device = DeviceLocationRef(ip="1.1.1.1", location={"city": "Mosul", "country": "IQ"})
        assert is_unknown_location(device.location) is False


class TestHasUnknownStoredLocation:

    def test_legacy_encoded_unknown_city(self):
        device = {"ip": "1.1.1.1", "location": {"city": json.dumps({"city": "unknown"})}}
        assert has_unknown_stored_location(device) is True

    def test_legacy_encoded_known_city(self):
        device = {"ip": "1.1.1.1", "location": {"city": json.dumps({"city": "Baghdad"})}}
        assert has_unknown_stored_location(device) is False

    def test_any_encoded_value_matching_is_enough(self):
        encoded = json.dumps({"city": "Baghdad", "country": "غير محدد"})
        device = {"ip": "1.1.1.1", "location": {"city": encoded, "country": "IQ"}}
        assert has_unknown_stored_location(device) is True

    def test_encoded_country(self):
        encoded = json.dumps({"country": " N/A "})
        device = {"ip": "1.1.1.1", "location": {"city": "Basra", "country": encoded}}
        assert has_unknown_stored_location(device) is True

    def test_malformed_encoding_is_unknown(self):
        device = {"ip": "1.1.1.1", "location": {"city": "{city: Baghdad", "country": "IQ"}}
        assert has_unknown_stored_location(device) is False
        device = {"ip": "1.1.1.1", "location": {"city": "{city: Baghdad}", "country": "IQ"}}
        assert has_unknown_stored_location(device) is True

    def test_non_string_values_ignored(self):
        encoded = json.dumps({"city": "Najaf", "lat": 32.0, "lon": None})
        device = {"ip": "1.1.1.1", "location": {"city": encoded}}
        assert has_unknown_stored_location(device) is False

    def test_plain_fields_fall_back_to_base_check(self):
        assert has_unknown_stored_location({"location": {"city": "Unknown", "country": "Unknown"}}) is True
        assert has_unknown_stored_location({"location": {"city": "Kirkuk", "country": "Unknown"}}) is False

    def test_missing_location(self):
        assert has_unknown_stored_location({"ip": "1.1.1.1"}) is True

    def test_model_input(self):
        device = DeviceLocationRef(ip="1.1.1.1", location={"city": '{"city":"unknown"}'})
        assert has_unknown_stored_location(device) is True


class TestIsResolvableIp:

    @pytest.mark.parametrize("ip", ["8.8.8.8", "169.224.94.21", "2001:4860:4860::8888"])
    def test_addresses(self, ip):
        assert is_resolvable_ip(ip) is True

    @pytest.mark.parametrize("ip", ["", "Unknown", "unknown", "N/A", "localhost", "1.2.3", None, 42])
    def test_rejected(self, ip):
        assert is_resolvable_ip(ip) is False


def test_is_unknown_value_strips_whitespace():
    assert is_unknown_value("  Unknown ") is True
    assert is_unknown_value(None) is True
    assert is_unknown_value("Baghdad") is False


class TestParseLocationField:

    def test_json_object(self):
        assert parse_location_field('{"city": "Erbil", "country": "IQ"}') == {"city": "Erbil", "country": "IQ"}

    def test_plain_string(self):
        assert parse_location_field("Erbil") == {"city": "Erbil"}

    def test_malformed(self):
        assert parse_location_field("{oops}") == {"city": "{oops}"}

    def test_empty(self):
        assert parse_location_field("") is None
        assert parse_location_field(None) is None
