"""
Tests del codec del token de correlacion del QR.
"""
from __future__ import annotations

import uuid

import pytest

from app.application.services import correlation_token
from app.shared.exceptions.domain import ValidationException


class TestEncode:
    def test_known_uuid_encodes_to_26_chars_with_prefix(self) -> None:
        token = correlation_token.encode("abcdef12-3456-7890-abcd-ef1234567890")

        assert token.startswith("mdy:")
        assert len(token) == 26
        assert "=" not in token

    def test_braces_and_dashes_are_ignored(self) -> None:
        plain = correlation_token.encode("abcdef1234567890abcdef1234567890")
        braced = correlation_token.encode("{ABCDEF12-3456-7890-ABCD-EF1234567890}")

        assert plain == braced

    def test_non_hex_value_is_kept_as_is(self) -> None:
        assert correlation_token.encode("row123") == "mdy:row123"

    def test_value_too_long_for_state_raises(self) -> None:
        with pytest.raises(ValidationException):
            correlation_token.encode("x" * 27)


class TestDecode:
    def test_known_uuid_round_trip(self) -> None:
        original = "abcdef12-3456-7890-abcd-ef1234567890"

        assert correlation_token.decode(correlation_token.encode(original)) == original

    @pytest.mark.parametrize("seed", range(20))
    def test_random_uuids_round_trip_and_fit(self, seed: int) -> None:
        value = str(uuid.UUID(int=(seed + 1) * 0x1F2E3D4C5B6A79880123456789ABCDEF % (1 << 128)))
        token = correlation_token.encode(value)

        assert len(token) <= 26
        assert correlation_token.decode(token) == value

    def test_uppercase_uuid_decodes_lowercase(self) -> None:
        token = correlation_token.encode("ABCDEF12-3456-7890-ABCD-EF1234567890")

        assert correlation_token.decode(token) == "abcdef12-3456-7890-abcd-ef1234567890"

    def test_invalid_payload_is_returned_without_prefix(self) -> None:
        assert correlation_token.decode("mdy:not*base64") == "not*base64"

    def test_payload_not_16_bytes_is_returned_unchanged(self) -> None:
        assert correlation_token.decode("mdy:row123") == "row123"

    def test_empty_values_never_raise(self) -> None:
        assert correlation_token.decode("") == ""
        assert correlation_token.decode("mdy:") == ""


class TestIsCorrelationState:
    def test_prefix_detection(self) -> None:
        assert correlation_token.is_correlation_state("mdy:abc")
        assert not correlation_token.is_correlation_state("other:abc")
        assert not correlation_token.is_correlation_state("")
