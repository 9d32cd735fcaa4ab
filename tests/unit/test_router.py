"""
Unit tests for the prefix router.
"""

from proxybricks.http.router import PrefixRouter, PrefixRoute


class TestPrefixRouter:
    """Tests for PrefixRouter."""

    def test_first_match_wins(self):
        """Test that earlier registrations take precedence."""
        router = PrefixRouter()
        router.add("/rest", "jira").add("/", "static")

        assert router.match("/rest/auth/1/session") == "jira"
        assert router.match("/index.html") == "static"

    def test_general_prefix_registered_first_shadows(self):
        router = PrefixRouter()
        router.add("/", "static").add("/rest", "jira")

        assert router.match("/rest/auth/1/session") == "static"

    def test_plain_string_prefix(self):
        """Test that prefixes are not path-segment aware."""
        router = PrefixRouter().add("/rest", "jira")
        assert router.match("/restaurant") == "jira"

    def test_no_match(self):
        router = PrefixRouter().add("/rest", "jira")
        assert router.match("/other") is None
        assert PrefixRouter().match("/") is None

    def test_routes_are_a_copy(self):
        router = PrefixRouter().add("/a", 1)
        router.routes.append(PrefixRoute("/b", 2))

        assert len(router) == 1
        assert router.routes == [PrefixRoute("/a", 1)]
