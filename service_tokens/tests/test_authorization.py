"""
Unit tests for the scope/audience authorization check.
"""

from service_tokens.app.tokens import Token, validate


class TestValidate:
    """Test cases for validate."""

    def test_required_scope_present(self):
        """Test a subset of the token scopes is accepted."""
        assert validate(Token(scopes=["a", "b"]), ["a"], []) is True

    def test_required_scope_missing(self):
        """Test that every required scope must be present."""
        assert validate(Token(scopes=["a"]), ["a", "b"], []) is False

    def test_nothing_required(self):
        """Test that an empty requirement accepts any token."""
        assert validate(Token()) is True

    def test_required_audience(self):
        """Test audience membership."""
        token = Token(scopes=["scim.read"], audiences=["client", "scim"])

        assert validate(token, ["scim.read"], ["scim"]) is True
        assert validate(token, ["scim.read"], ["uaa"]) is False

    def test_scope_and_audience_both_required(self):
        """Test that a matching audience does not make up for a missing scope."""
        token = Token(scopes=["openid"], audiences=["scim"])

        assert validate(token, ["scim.read"], ["scim"]) is False

    def test_case_sensitive(self):
        """Test that membership is exact."""
        assert validate(Token(scopes=["scim.read"]), ["SCIM.READ"]) is False

    def test_no_prefix_matching(self):
        """Test that a resource prefix is not a scope."""
        assert validate(Token(scopes=["scim.read"]), ["scim"]) is False

    def test_does_not_need_signature(self):
        """Test that validate only inspects claims."""
        token = Token(scopes=["a"], segments=None)

        assert validate(token, ["a"]) is True
