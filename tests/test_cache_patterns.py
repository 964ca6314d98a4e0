"""Tests for wildcard key patterns and cache key helpers."""

import pytest

from prpulse.cache import CacheKeys, KeyPattern, compile_pattern


class TestKeyPattern:
    def test_substring_pattern_matches_repository_keys(self):
        pattern = KeyPattern("prs:*acme/widgets*")

        assert pattern.matches("prs:acme/widgets:open")
        assert pattern.matches("prs:acme/gears,acme/widgets:all")
        assert not pattern.matches("prs:other/repo:open")
        assert not pattern.matches("user:acme/widgets")

    def test_pattern_is_anchored_at_both_ends(self):
        pattern = KeyPattern("prs:acme")

        assert pattern.is_literal
        assert pattern.matches("prs:acme")
        assert not pattern.matches("prs:acme:open")
        assert not pattern.matches("xprs:acme")

    def test_star_matches_everything(self):
        pattern = KeyPattern("*")

        assert pattern.matches_everything
        assert pattern.matches("")
        assert pattern.matches("anything:at:all")

    def test_regex_metacharacters_are_literal(self):
        pattern = KeyPattern("prs:a.b*")

        assert pattern.matches("prs:a.b:open")
        assert not pattern.matches("prs:axb:open")

    def test_substring_match_is_loose(self):
        """A repository name that prefixes another one matches both."""
        pattern = KeyPattern(CacheKeys.repository_pull_requests_pattern("acme/w"))

        assert pattern.matches("prs:acme/widgets:open")

    def test_empty_pattern_rejected(self):
        with pytest.raises(ValueError):
            KeyPattern("")

    def test_compile_pattern_passes_instances_through(self):
        pattern = KeyPattern("prs:*")
        assert compile_pattern(pattern) is pattern
        assert compile_pattern("prs:*") == pattern


class TestRenderings:
    def test_like_escapes_sql_wildcards(self):
        assert KeyPattern("prs:*acme/widgets*").to_like() == "prs:%acme/widgets%"
        assert KeyPattern("prs:my_repo%*").to_like() == "prs:my\\_repo\\%%"

    def test_glob_escapes_redis_specials(self):
        assert KeyPattern("prs:*acme/widgets*").to_glob() == "prs:*acme/widgets*"
        assert KeyPattern("prs:[a]?*").to_glob() == "prs:\\[a\\]\\?*"


class TestCacheKeys:
    def test_listing_key_keeps_repository_order(self):
        assert CacheKeys.pull_requests("acme/widgets,acme/gears", "open") == (
            "prs:acme/widgets,acme/gears:open"
        )

    def test_repository_pattern_covers_multi_repository_listings(self):
        pattern = KeyPattern(CacheKeys.repository_pull_requests_pattern("acme/gears"))

        assert pattern.matches(CacheKeys.pull_requests("acme/widgets,acme/gears", "all"))
        assert not pattern.matches(CacheKeys.pull_requests("acme/widgets", "all"))
