"""Tests for password hashing and the password policy."""
from __future__ import annotations

from onboarding_admin.security.passwords import hash_password, password_problems, verify_password


def test_hash_and_verify():
    hashed = hash_password("Correct@Horse1")
    assert hashed != "Correct@Horse1"
    assert verify_password("Correct@Horse1", hashed) is True
    assert verify_password("correct@horse1", hashed) is False


def test_verify_rejects_malformed_hash():
    assert verify_password("anything", "not-an-argon2-hash") is False


def test_password_policy_accepts_strong_password():
    assert password_problems("Welcome@123") == []


def test_password_policy_reports_every_missing_rule():
    problems = password_problems("abc")
    assert len(problems) == 4
    assert any("8 characters" in p for p in problems)
    assert any("digit" in p for p in problems)
    assert any("uppercase" in p for p in problems)
    assert any("non-alphanumeric" in p for p in problems)
