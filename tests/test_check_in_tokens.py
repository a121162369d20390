"""Tests for the check-in token service."""

import base64
import re
from datetime import UTC, date, datetime, timedelta, timezone
from unittest.mock import patch
from urllib.parse import parse_qs, urlparse

import pytest

from src.services.check_in_tokens import TokenService, to_utc_datetime

NOW = datetime(2026, 10, 17, 12, 0, tzinfo=UTC)
URL_SAFE = re.compile(r"^[A-Za-z0-9_-]+$")


@pytest.fixture
def tokens():
    return TokenService(base_url="https://app.example.com/", clock=lambda: NOW)


class TestGenerateToken:
    """Tests for token generation."""

    def test_token_has_256_bits(self, tokens):
        token = tokens.generate_token()
        raw = base64.urlsafe_b64decode(token + "=" * (-len(token) % 4))
        assert len(raw) == 32

    def test_token_is_url_safe_without_padding(self, tokens):
        for _ in range(50):
            token = tokens.generate_token()
            assert URL_SAFE.match(token)
            assert "=" not in token

    def test_tokens_are_independent(self, tokens):
        assert len({tokens.generate_token() for _ in range(100)}) == 100

    def test_random_source_failure_propagates(self, tokens):
        with patch("src.services.check_in_tokens.secrets.token_urlsafe", side_effect=OSError):
            with pytest.raises(OSError):
                tokens.generate_token()


class TestHashToken:
    """Tests for token hashing."""

    def test_hash_is_deterministic(self, tokens):
        assert tokens.hash_token("abc") == tokens.hash_token("abc")

    def test_hash_differs_per_token(self, tokens):
        assert tokens.hash_token("abc") != tokens.hash_token("abd")

    def test_hash_is_sha256_hex(self, tokens):
        assert (
            tokens.hash_token("abc")
            == "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"
        )

    def test_issue_hash_matches_redemption_hash(self, tokens):
        issued = tokens.issue()
        assert tokens.hash_token(issued.plaintext) == issued.token_hash
        assert issued.plaintext != issued.token_hash


class TestRedemptionUrl:
    """Tests for redemption URL building."""

    def test_url_shape(self, tokens):
        url = tokens.build_redemption_url(42, "tok_en-123")
        assert url == "https://app.example.com/check-in?v=42&t=tok_en-123"

    def test_entity_id_is_escaped(self, tokens):
        url = tokens.build_redemption_url("a b&c", "tok")
        query = parse_qs(urlparse(url).query)
        assert query == {"v": ["a b&c"], "t": ["tok"]}

    def test_generated_token_survives_url(self, tokens):
        token = tokens.generate_token()
        url = tokens.build_redemption_url(7, token)
        assert parse_qs(urlparse(url).query)["t"] == [token]
        assert url.endswith(f"t={token}")


class TestExpiry:
    """Tests for expiry checks."""

    def test_not_expired_before_expiry(self, tokens):
        assert tokens.is_expired(NOW + timedelta(seconds=1), now=NOW) is False

    def test_not_expired_at_exact_expiry(self, tokens):
        assert tokens.is_expired(NOW, now=NOW) is False

    def test_expired_after_expiry(self, tokens):
        assert tokens.is_expired(NOW - timedelta(microseconds=1), now=NOW) is True

    def test_uses_injected_clock(self, tokens):
        assert tokens.is_expired(NOW - timedelta(days=1)) is True
        assert tokens.is_expired(NOW + timedelta(days=1)) is False

    def test_accepts_iso_string(self, tokens):
        assert tokens.is_expired("2026-10-18T00:00:00Z", now=NOW) is False
        assert tokens.is_expired("2026-10-16T00:00:00+00:00", now=NOW) is True

    def test_accepts_date(self, tokens):
        assert tokens.is_expired(date(2026, 10, 17), now=NOW) is True
        assert tokens.is_expired(date(2026, 10, 18), now=NOW) is False

    def test_accepts_epoch_seconds(self, tokens):
        assert tokens.is_expired(NOW.timestamp() + 60, now=NOW) is False
        assert tokens.is_expired(NOW.timestamp() - 60, now=NOW) is True

    def test_naive_datetime_is_utc(self, tokens):
        assert tokens.is_expired(datetime(2026, 10, 17, 12, 0), now=NOW) is False
        assert tokens.is_expired(datetime(2026, 10, 17, 11, 59), now=NOW) is True

    @pytest.mark.parametrize(
        "value",
        ["not a date", "", None, True, [], float("inf"), "9999-12-31T23:59:59-05:00"],
    )
    def test_unreadable_expiry_fails_closed(self, tokens, value):
        assert tokens.is_expired(value, now=NOW) is True

    def test_to_utc_datetime_rejects_garbage(self):
        with pytest.raises(ValueError):
            to_utc_datetime("tomorrow")

    def test_to_utc_datetime_rejects_out_of_range_offset(self):
        with pytest.raises(ValueError):
            to_utc_datetime(datetime(1, 1, 1, 0, 0, tzinfo=timezone(timedelta(hours=5))))


class TestDaysRemaining:
    """Tests for display-only days remaining."""

    def test_rounds_up_partial_days(self, tokens):
        assert tokens.days_remaining(NOW + timedelta(hours=36), now=NOW) == 2

    def test_full_ttl(self, tokens):
        assert tokens.days_remaining(NOW + timedelta(days=7)) == 7

    def test_past_expiry_is_negative(self, tokens):
        assert tokens.days_remaining(NOW - timedelta(days=3), now=NOW) == -3

    def test_just_expired_is_not_positive(self, tokens):
        assert tokens.days_remaining(NOW - timedelta(hours=1), now=NOW) <= 0

    def test_unreadable_expiry_raises(self, tokens):
        with pytest.raises(ValueError):
            tokens.days_remaining("soon", now=NOW)


class TestIssueAndVerify:
    """Tests for issuing and verifying tokens."""

    def test_issue_sets_expiry_from_ttl(self):
        service = TokenService("https://x.test", ttl=timedelta(days=3), clock=lambda: NOW)
        assert service.issue().expires_at == NOW + timedelta(days=3)

    def test_verify_accepts_matching_token(self, tokens):
        issued = tokens.issue()
        assert tokens.verify(issued.plaintext, issued.token_hash, issued.expires_at) is True

    def test_verify_rejects_wrong_token(self, tokens):
        issued = tokens.issue()
        assert tokens.verify(tokens.generate_token(), issued.token_hash, issued.expires_at) is False

    def test_verify_rejects_expired_token(self, tokens):
        issued = tokens.issue()
        later = issued.expires_at + timedelta(seconds=1)
        assert tokens.verify(issued.plaintext, issued.token_hash, issued.expires_at, now=later) is False

    def test_verify_rejects_missing_record(self, tokens):
        issued = tokens.issue()
        assert tokens.verify(issued.plaintext, None, issued.expires_at) is False
        assert tokens.verify(issued.plaintext, issued.token_hash, None) is False

    def test_verify_rejects_presenting_the_hash(self, tokens):
        issued = tokens.issue()
        assert tokens.verify(issued.token_hash, issued.token_hash, issued.expires_at) is False

    def test_verify_rejects_out_of_range_expiry(self, tokens):
        issued = tokens.issue()
        expiry = "9999-12-31T23:59:59-05:00"
        assert tokens.verify(issued.plaintext, issued.token_hash, expiry) is False
