"""Unit tests for Argon2id password hashing and strength validation"""

import pytest

import sys
from pathlib import Path
backend_src = Path(__file__).parent.parent.parent / "src"
sys.path.insert(0, str(backend_src))

from auth.password import hash_password, verify_password, validate_password_strength


class TestHashing:

    def test_hash_and_verify(self, monkeypatch):
        monkeypatch.setenv('PASSWORD_PEPPER', 'unit-test-pepper')

        hashed = hash_password("Vendor2025")

        assert hashed.startswith("$argon2id$")
        assert verify_password("Vendor2025", hashed) is True
        assert verify_password("vendor2025", hashed) is False

    def test_pepper_is_part_of_the_hash(self, monkeypatch):
        monkeypatch.setenv('PASSWORD_PEPPER', 'pepper-one')
        hashed = hash_password("Vendor2025")

        monkeypatch.setenv('PASSWORD_PEPPER', 'pepper-two')
        assert verify_password("Vendor2025", hashed) is False

    def test_empty_password_rejected(self, monkeypatch):
        monkeypatch.setenv('PASSWORD_PEPPER', 'unit-test-pepper')

        with pytest.raises(ValueError):
            hash_password("")

    def test_missing_pepper(self, monkeypatch):
        monkeypatch.delenv('PASSWORD_PEPPER', raising=False)

        with pytest.raises(ValueError, match="PASSWORD_PEPPER"):
            hash_password("Vendor2025")

    def test_verify_never_raises_on_bad_hash(self, monkeypatch):
        monkeypatch.setenv('PASSWORD_PEPPER', 'unit-test-pepper')

        assert verify_password("Vendor2025", "not-a-hash") is False
        assert verify_password("", "whatever") is False


class TestPasswordStrength:

    @pytest.mark.parametrize("password,fragment", [
        ("Ab1", "at least 8"),
        ("vendor2025", "uppercase"),
        ("VENDOR2025", "lowercase"),
        ("VendorCompliance", "digit"),
    ])
    def test_weak(self, password, fragment):
        is_valid, message = validate_password_strength(password)

        assert is_valid is False
        assert fragment in message

    def test_strong(self):
        assert validate_password_strength("Vendor2025") == (True, "")
