"""Tests for the otp module."""

from __future__ import annotations

import hashlib

import pyotp
import pytest

from twofactor_auth import base32
from twofactor_auth.errors import InvalidParameter, InvalidSecret, TwoFactorError
from twofactor_auth.otp import HASH_MAP, Algorithm, generate, hotp, progress, time_remaining

SEED_SHA1 = base32.encode(b"12345678901234567890")
SEED_SHA256 = base32.encode(b"12345678901234567890123456789012")
SEED_SHA512 = base32.encode(b"1234567890" * 6 + b"1234")

# RFC 6238 Appendix B
RFC6238_VECTORS = [
    (59, "94287082", "46119246", "90693936"),
    (1111111109, "07081804", "68084774", "25091201"),
    (1111111111, "14050471", "67062674", "99943326"),
    (1234567890, "89005924", "91819424", "93441116"),
    (2000000000, "69279037", "90698825", "38618901"),
    (20000000000, "65353130", "77737706", "47863826"),
]

# RFC 4226 Appendix D
RFC4226_VECTORS = [
    "755224",
    "287082",
    "359152",
    "969429",
    "338314",
    "254676",
    "287922",
    "162583",
    "399871",
    "520489",
]


class TestGenerate:
    @pytest.mark.parametrize(("timestamp", "sha1", "sha256", "sha512"), RFC6238_VECTORS)
    def test_rfc6238_vectors(self, timestamp: int, sha1: str, sha256: str, sha512: str) -> None:
        assert generate(SEED_SHA1, Algorithm.SHA1, 8, 30, timestamp) == sha1
        assert generate(SEED_SHA256, Algorithm.SHA256, 8, 30, timestamp) == sha256
        assert generate(SEED_SHA512, Algorithm.SHA512, 8, 30, timestamp) == sha512

    def test_six_digits_keeps_leading_zero(self) -> None:
        code = generate(SEED_SHA1, Algorithm.SHA1, 6, 30, 1111111109)
        assert code == "081804"

    @pytest.mark.parametrize("digits", [6, 8])
    def test_length_matches_digits(self, digits: int) -> None:
        for ts in range(0, 3000, 30):
            assert len(generate("JBSWY3DPEHPK3PXP", Algorithm.SHA1, digits, 30, ts)) == digits

    def test_deterministic(self) -> None:
        first = generate("JBSWY3DPEHPK3PXP", Algorithm.SHA256, 6, 30, 1_700_000_000)
        second = generate("JBSWY3DPEHPK3PXP", Algorithm.SHA256, 6, 30, 1_700_000_000)
        assert first == second

    def test_same_window_same_code(self) -> None:
        assert generate(SEED_SHA1, timestamp=60) == generate(SEED_SHA1, timestamp=89.9)
        assert generate(SEED_SHA1, timestamp=89.9) != generate(SEED_SHA1, timestamp=90)

    def test_secret_formatting_is_ignored(self) -> None:
        assert generate("jbsw y3dp ehpk 3pxp", timestamp=1234) == generate("JBSWY3DPEHPK3PXP", timestamp=1234)

    @pytest.mark.parametrize(
        ("algorithm", "digest"),
        [
            (Algorithm.SHA1, hashlib.sha1),
            (Algorithm.SHA256, hashlib.sha256),
            (Algorithm.SHA512, hashlib.sha512),
        ],
    )
    @pytest.mark.parametrize("period", [30, 60])
    def test_matches_pyotp(self, algorithm: Algorithm, digest: object, period: int) -> None:
        secret = "JBSWY3DPEHPK3PXP"
        reference = pyotp.TOTP(secret, digits=8, digest=digest, interval=period)
        for ts in (59, 1_000_000_007, 1_111_111_109, 1_700_000_000):
            assert generate(secret, algorithm, 8, period, ts) == reference.at(ts)

    def test_invalid_secret(self) -> None:
        with pytest.raises(InvalidSecret):
            generate("NOT-BASE32!", timestamp=0)

    def test_empty_secret(self) -> None:
        with pytest.raises(InvalidSecret):
            generate("", timestamp=0)
        with pytest.raises(InvalidSecret):
            generate("====", timestamp=0)

    def test_algorithm_accepts_plain_string(self) -> None:
        assert generate(SEED_SHA256, "SHA256", 8, 30, 59) == "46119246"  # type: ignore[arg-type]

    @pytest.mark.parametrize("secret", ["jbswy3dpehpk3pxp", "JBSW Y3DP EHPK 3PXP", " jbsw\ty3dp ehpk3pxp== "])
    @pytest.mark.parametrize("algorithm", list(Algorithm))
    def test_lenient_secret_matches_pyotp(self, secret: str, algorithm: Algorithm) -> None:
        reference = pyotp.TOTP("JBSWY3DPEHPK3PXP", digits=8, digest=HASH_MAP[algorithm], interval=30)
        for ts in (0, 59, 1_111_111_109, 2_000_000_000):
            assert generate(secret, algorithm, 8, 30, ts) == reference.at(ts)

    def test_fractional_timestamp_uses_whole_seconds(self) -> None:
        assert generate(SEED_SHA1, Algorithm.SHA1, 8, 30, 59.999) == "94287082"

    @pytest.mark.parametrize(
        ("kwargs", "message"),
        [
            ({"timestamp": -5}, "timestamp"),
            ({"period": 0}, "period"),
            ({"period": -30}, "period"),
            ({"digits": 0}, "digits"),
            ({"digits": 11}, "digits"),
        ],
    )
    def test_out_of_range_parameters(self, kwargs: dict[str, int], message: str) -> None:
        with pytest.raises(InvalidParameter, match=message):
            generate("JBSWY3DPEHPK3PXP", **kwargs)

    def test_parameter_errors_are_package_errors(self) -> None:
        with pytest.raises(TwoFactorError):
            generate("JBSWY3DPEHPK3PXP", timestamp=-1)


class TestHotp:
    @pytest.mark.parametrize(("counter", "expected"), list(enumerate(RFC4226_VECTORS)))
    def test_rfc4226_vectors(self, counter: int, expected: str) -> None:
        assert hotp(b"12345678901234567890", counter) == expected

    def test_sha256_eight_digits(self) -> None:
        key = b"12345678901234567890123456789012"
        assert hotp(key, 1, Algorithm.SHA256, 8) == generate(SEED_SHA256, Algorithm.SHA256, 8, 30, 59)

    def test_zero_digits_rejected(self) -> None:
        with pytest.raises(InvalidParameter):
            hotp(b"12345678901234567890", 0, digits=0)


class TestAlgorithm:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("SHA1", Algorithm.SHA1),
            ("sha256", Algorithm.SHA256),
            ("Sha512", Algorithm.SHA512),
            ("MD5", Algorithm.SHA1),
            ("", Algorithm.SHA1),
            (None, Algorithm.SHA1),
        ],
    )
    def test_parse(self, value: str | None, expected: Algorithm) -> None:
        assert Algorithm.parse(value) is expected


class TestTimeRemaining:
    def test_mid_window(self) -> None:
        assert time_remaining(30, 45) == 15
        assert progress(30, 45) == 0.5

    def test_window_start(self) -> None:
        assert time_remaining(30, 60) == 30
        assert progress(30, 60) == 0.0

    def test_progress_in_range(self) -> None:
        for now in range(0, 120):
            assert 0.0 <= progress(30, now) < 1.0
