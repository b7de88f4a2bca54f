"""Tests for core.types module."""

from core.tokens import GoogleTokenizer, MicrosoftTokenizer
from core.types import ErrorCategory, Tokenizer


class TestErrorCategory:
    def test_values(self):
        assert ErrorCategory.TRANSIENT.value == "transient"
        assert ErrorCategory.AUTH.value == "auth"
        assert ErrorCategory.PERMANENT.value == "permanent"
        assert ErrorCategory.UNKNOWN.value == "unknown"

    def test_all_members(self):
        expected = {"TRANSIENT", "AUTH", "PERMANENT", "UNKNOWN"}
        assert set(ErrorCategory.__members__.keys()) == expected

    def test_from_value(self):
        assert ErrorCategory("transient") is ErrorCategory.TRANSIENT


class TestTokenizer:
    def test_is_protocol(self):
        """Tokenizer is a Protocol; verify it has expected members."""
        assert hasattr(Tokenizer, "token")
        assert hasattr(Tokenizer, "close")

    def test_providers_declare_subname_support(self):
        assert GoogleTokenizer.accepts_subnames is False
        assert MicrosoftTokenizer.accepts_subnames is False
