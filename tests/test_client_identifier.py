"""Unit tests for client identification."""

import pytest
from starlette.datastructures import Headers

from app.utils.client_identifier import UNKNOWN_CLIENT, identify_client, identify_user


class TestIdentifyClient:
    def test_uses_first_forwarded_address(self) -> None:
        headers = Headers({"x-forwarded-for": "203.0.113.7, 10.0.0.2, 10.0.0.1"})

        assert identify_client(headers) == "203.0.113.7"

    def test_forwarded_address_is_trimmed(self) -> None:
        assert identify_client({"X-Forwarded-For": "  203.0.113.7 ,10.0.0.1"}) == "203.0.113.7"

    def test_falls_back_to_real_ip(self) -> None:
        assert identify_client(Headers({"x-real-ip": "198.51.100.4"})) == "198.51.100.4"

    def test_forwarded_takes_precedence_over_real_ip(self) -> None:
        headers = {"X-Forwarded-For": "203.0.113.7", "X-Real-IP": "198.51.100.4"}

        assert identify_client(headers) == "203.0.113.7"

    @pytest.mark.parametrize(
        "headers",
        [
            {},
            {"X-Forwarded-For": ""},
            {"X-Forwarded-For": " , 10.0.0.1", "X-Real-IP": "   "},
            {"User-Agent": "pytest"},
        ],
    )
    def test_unidentifiable_callers_share_unknown_bucket(self, headers: dict) -> None:
        assert identify_client(headers) == UNKNOWN_CLIENT

    def test_blank_forwarded_entry_falls_through_to_real_ip(self) -> None:
        headers = {"X-Forwarded-For": " ,10.0.0.1", "X-Real-IP": "198.51.100.4"}

        assert identify_client(headers) == "198.51.100.4"

    def test_plain_dict_lookup_is_case_insensitive(self) -> None:
        assert identify_client({"X-REAL-IP": "198.51.100.4"}) == "198.51.100.4"


class TestIdentifyUser:
    def test_prefixes_principal_id(self) -> None:
        assert identify_user("abc-123") == "user:abc-123"

    def test_accepts_integer_ids(self) -> None:
        assert identify_user(42) == "user:42"

    def test_user_and_network_keys_never_collide(self) -> None:
        assert identify_user("1.2.3.4") != identify_client({"X-Real-IP": "1.2.3.4"})
