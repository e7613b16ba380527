"""Tests for error suggestion matching."""

from __future__ import annotations

from cqllens.services.suggestions import SUGGESTION_PATTERNS, SuggestionMatcher, suggest_for_error


class TestSuggestions:
    def setup_method(self):
        self.matcher = SuggestionMatcher()

    def test_all_patterns_compile(self):
        assert len(self.matcher._patterns) == len(SUGGESTION_PATTERNS)

    def test_unauthorized(self):
        hint = self.matcher.suggest("Unauthorized: User bob has no SELECT permission")
        assert "credentials" in hint

    def test_missing_keyspace(self):
        hint = self.matcher.suggest("Keyspace 'shop' does not exist")
        assert hint.startswith("The keyspace does not exist")

    def test_missing_table(self):
        hint = self.matcher.suggest("Table shop.orders does not exist")
        assert hint.startswith("The table does not exist")

    def test_unconfigured_table(self):
        hint = self.matcher.suggest("unconfigured table orders")
        assert hint.startswith("The table does not exist")

    def test_syntax_error(self):
        hint = self.matcher.suggest("line 1:7 Syntax Error: no viable alternative at input 'FORM'")
        assert "CQL syntax" in hint

    def test_allow_filtering(self):
        hint = self.matcher.suggest(
            "Cannot execute this query as it might involve data filtering; use ALLOW FILTERING"
        )
        assert "ALLOW FILTERING" in hint
        assert hint.startswith("This query requires")

    def test_partition_key(self):
        hint = self.matcher.suggest("Cannot restrict clustering columns: partition key is missing")
        assert "partition key" in hint

    def test_timeout(self):
        assert "LIMIT" in self.matcher.suggest("Operation timed out - received only 0 responses")
        assert "LIMIT" in self.matcher.suggest("ReadTimeout: Error from server")

    def test_consistency(self):
        hint = self.matcher.suggest("Cannot achieve consistency level QUORUM")
        assert "replicas" in hint

    def test_not_enough_replicas(self):
        assert "replicas" in self.matcher.suggest("Not enough replicas available for query")

    def test_multiline_message(self):
        hint = self.matcher.suggest("Error from server:\ntable users\nfor keyspace x does not exist")
        assert hint is not None

    def test_no_match(self):
        assert self.matcher.suggest("Something unexpected happened") is None
        assert self.matcher.suggest("") is None

    def test_first_match_wins(self):
        # Mentions both permission and a timeout.
        hint = self.matcher.suggest("Unauthorized after request timed out")
        assert "credentials" in hint

    def test_module_helper(self):
        assert suggest_for_error("unconfigured table t") == self.matcher.suggest("unconfigured table t")
