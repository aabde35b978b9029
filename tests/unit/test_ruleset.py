"""Tests for robots.txt parsing and rule precedence."""

from __future__ import annotations

import pytest

from exclusion import DirectiveKey, InvalidPathError, RuleSet


EQUIVALENT_PATHS = [
    ("/foo/bar?baz=quz", "/foo/bar?baz=quz"),
    ("/foo/bar?baz=http://foo.bar", "/foo/bar?baz=http%3A%2F%2Ffoo.bar"),
    ("/foo/bar/ツ", "/foo/bar/%E3%83%84"),
    ("/foo/bar/%E3%83%84", "/foo/bar/%E3%83%84"),
    ("/foo/bar/%62%61%7A", "/foo/bar/baz"),
]

THREE_GROUPS = "\n".join(
    ["User-Agent: Hello"]
    + [f"Disallow: {raw}" for raw, _ in EQUIVALENT_PATHS]
    + ["Crawl-Delay: 23", "", "User-Agent: *"]
    + [f"Allow: {raw}" for raw, _ in EQUIVALENT_PATHS]
    + ["Disallow: /", "Crawl-Delay: 1", "", "User-Agent: Goodbye"]
    + [f"Disallow: {raw}" for raw, _ in EQUIVALENT_PATHS]
    + ["Disallow: /", "Crawl-Delay: 7"]
)


# ============================================================================
# Evaluation
# ============================================================================

@pytest.mark.unit
def test_disallowed_prefix_blocks_subpaths():
    rule_set = RuleSet("User-agent: *\nDisallow: /a")

    assert rule_set.is_path_allowed("/a/b", "AnyBot") is False
    assert rule_set.is_path_allowed("/x", "AnyBot") is True


@pytest.mark.unit
@pytest.mark.parametrize(
    "text",
    [
        "",
        "Sitemap: https://example.com/sitemap.xml",
        "User-agent: OtherBot\nDisallow: /",
        "User-agent: *\nDisallow:",
        "# only a comment",
    ],
)
def test_paths_without_matching_rule_are_allowed(text: str):
    rule_set = RuleSet(text)

    assert rule_set.is_path_allowed("/", "Test_1") is True
    assert rule_set.is_path_allowed("/any/path?q=1", "Test_1") is True


@pytest.mark.unit
@pytest.mark.parametrize(
    "text",
    [
        "User-agent: *\nAllow: /\n\nUser-agent: MyBot\nDisallow: /private",
        "User-agent: MyBot\nDisallow: /private\n\nUser-agent: *\nAllow: /",
    ],
)
def test_named_group_outranks_catch_all_regardless_of_order(text: str):
    rule_set = RuleSet(text)

    assert rule_set.is_path_allowed("/private/page", "MyBot") is False
    assert rule_set.is_path_allowed("/private/page", "OtherBot") is True


@pytest.mark.unit
def test_longest_match_wins_within_a_group():
    rule_set = RuleSet("User-agent: *\nDisallow: /a\nAllow: /a/b")

    assert rule_set.is_path_allowed("/a/b/c", "AnyBot") is True
    assert rule_set.is_path_allowed("/a/c", "AnyBot") is False


@pytest.mark.unit
def test_longest_match_wins_regardless_of_file_order():
    rule_set = RuleSet("User-agent: *\nAllow: /a/b\nDisallow: /a")

    assert rule_set.is_path_allowed("/a/b/c", "AnyBot") is True
    assert rule_set.is_path_allowed("/a/c", "AnyBot") is False


@pytest.mark.unit
def test_equal_length_conflict_goes_to_first_line():
    assert RuleSet("User-agent: *\nDisallow: /page\nAllow: /page").is_path_allowed("/page", "A") is False
    assert RuleSet("User-agent: *\nAllow: /page\nDisallow: /page").is_path_allowed("/page", "A") is True


@pytest.mark.unit
def test_strict_anchor_only_matches_exact_path():
    rule_set = RuleSet("User-agent: *\nDisallow: /exactly$")

    assert rule_set.is_path_allowed("/exactly", "A") is False
    assert rule_set.is_path_allowed("/exactly/", "A") is True
    assert rule_set.is_path_allowed("/exactly?a=1", "A") is True


@pytest.mark.unit
def test_wildcard_does_not_collapse_segments():
    rule_set = RuleSet("User-agent: *\nDisallow: /foo/*/bar")

    assert rule_set.is_path_allowed("/foo/bar", "A") is True
    assert rule_set.is_path_allowed("/foo/x/bar", "A") is False


@pytest.mark.unit
def test_consecutive_user_agents_share_a_group():
    rule_set = RuleSet("User-agent: a\nUser-agent: b\nDisallow: /x")

    assert rule_set.is_path_allowed("/x", "a") is False
    assert rule_set.is_path_allowed("/x", "b") is False
    assert rule_set.is_path_allowed("/x", "c") is True


@pytest.mark.unit
def test_user_agent_after_directive_starts_a_new_group():
    rule_set = RuleSet("User-agent: a\nDisallow: /x\nUser-agent: b\nDisallow: /y")

    assert rule_set.is_path_allowed("/y", "a") is True
    assert rule_set.is_path_allowed("/x", "b") is True
    assert rule_set.is_path_allowed("/x", "a") is False


@pytest.mark.unit
def test_grouped_named_agent_with_empty_disallow_is_allowed():
    rule_set = RuleSet("User-agent: Hi\nUser-Agent: *\nUser-Agent: Test_1\nDisallow:")

    assert rule_set.is_path_allowed("/", "Test_1") is True


@pytest.mark.unit
def test_query_patterns_match_normalized_queries():
    rule_set = RuleSet("User-agent: *\nDisallow: /b?*node=9052533011")

    assert rule_set.is_path_allowed("/b?node=9052533011", "Test_1") is False
    assert rule_set.is_path_allowed("/b?hello&node=9052533011", "Test_1") is False
    assert rule_set.is_path_allowed("/b?node=1", "Test_1") is True


@pytest.mark.unit
def test_multiple_groups_with_equivalent_paths():
    rule_set = RuleSet(THREE_GROUPS)

    for raw, normalized in EQUIVALENT_PATHS:
        for path in (raw, normalized):
            assert rule_set.is_path_allowed(path, "Hello") is False, path
            assert rule_set.is_path_allowed(path, "Not_an_agent") is True, path
            assert rule_set.is_path_allowed(path, "Goodbye") is False, path

    for agent in ("Hello", "Not_an_agent", "Goodbye"):
        assert rule_set.is_path_allowed("/random", agent) is False
        assert rule_set.is_path_allowed("/", agent) is False


@pytest.mark.unit
def test_malformed_request_path_raises():
    rule_set = RuleSet("User-agent: *\nDisallow: /x")

    with pytest.raises(InvalidPathError):
        rule_set.is_path_allowed("/a%zz", "A")


# ============================================================================
# Crawl-delay
# ============================================================================

@pytest.mark.unit
def test_delay_comes_from_most_specific_group():
    rule_set = RuleSet("User-agent: Foo\nCrawl-Delay: 5\nUser-agent: *\nCrawl-Delay: 1")

    assert rule_set.get_delay("Foo") == 5000
    assert rule_set.get_delay("Other") == 1000


@pytest.mark.unit
def test_delay_per_group():
    rule_set = RuleSet(THREE_GROUPS)

    assert rule_set.get_delay("Hello") == 23_000
    assert rule_set.get_delay("Not_an_agent") == 1000
    assert rule_set.get_delay("Goodbye") == 7000


@pytest.mark.unit
def test_last_delay_in_a_group_wins():
    assert RuleSet("User-agent: *\nCrawl-delay: 1\nCrawl-delay: 3").get_delay("A") == 3000


@pytest.mark.unit
@pytest.mark.parametrize(
    "text",
    [
        "Sitemap: https://example.com/sitemap.xml",
        "User-Agent: *\nCrawl-Delay: a",
        "User-agent: Other\nCrawl-delay: 4",
        "Crawl-delay: 4",
    ],
)
def test_missing_or_invalid_delay_is_none(text: str):
    assert RuleSet(text).get_delay("Not_an_agent") is None


# ============================================================================
# Parsing
# ============================================================================

@pytest.mark.unit
def test_comments_and_line_endings_are_normalized():
    crlf = RuleSet("User-agent: *\r\nDisallow: /a # trailing\r\n# Disallow: /b\r\n")
    cr_only = RuleSet("User-agent: *\rDisallow: /a\rAllow: /a/ok")

    assert len(crlf) == 2
    assert crlf.is_path_allowed("/a", "A") is False
    assert crlf.is_path_allowed("/b", "A") is True
    assert cr_only.is_path_allowed("/a/x", "A") is False
    assert cr_only.is_path_allowed("/a/ok", "A") is True


@pytest.mark.unit
def test_unknown_and_empty_keys_are_ignored():
    rule_set = RuleSet("Sitemap: https://x.test/s.xml\nHost: x.test\n: /orphan\nUser-agent: *\nDisallow: /z")

    assert [line.key for line in rule_set] == [DirectiveKey.USER_AGENT, DirectiveKey.DISALLOW]


@pytest.mark.unit
def test_keys_are_case_insensitive():
    rule_set = RuleSet("USER-AGENT: *\nDISALLOW: /a\ncrawl-DELAY: 2")

    assert rule_set.is_path_allowed("/a", "A") is False
    assert rule_set.get_delay("A") == 2000


@pytest.mark.unit
def test_value_may_contain_colons():
    rule_set = RuleSet("User-agent: *\nDisallow: /a:b")

    assert rule_set.is_path_allowed("/a:b/c", "A") is False
    assert rule_set.is_path_allowed("/a", "A") is True


@pytest.mark.unit
def test_byte_order_mark_is_ignored():
    rule_set = RuleSet("\ufeffUser-agent: *\nDisallow: /a")

    assert rule_set.lines[0].key is DirectiveKey.USER_AGENT
    assert rule_set.is_path_allowed("/a", "A") is False


@pytest.mark.unit
def test_lines_keep_file_order_and_adjacency():
    rule_set = RuleSet("User-agent: a\nUser-agent: b\nDisallow: /x\nUser-agent: c")
    first, second, third, fourth = rule_set.lines

    assert [line.sequence_index for line in rule_set] == [0, 1, 2, 3]
    assert rule_set.previous_line(first) is None
    assert rule_set.previous_line(second) is first
    assert rule_set.next_line(second) is third
    assert rule_set.next_line(fourth) is None
    assert second.is_additional_user_agent is True
    assert fourth.is_additional_user_agent is False


@pytest.mark.unit
def test_allow_all_rule_set():
    rule_set = RuleSet.allow_all()

    assert rule_set.is_path_allowed("/anything", "A") is True
    assert rule_set.get_delay("A") is None


@pytest.mark.unit
def test_malformed_directive_path_fails_parsing():
    with pytest.raises(InvalidPathError):
        RuleSet("User-agent: *\nDisallow: /%E3%83")



# ============================================================================
# RFC 9309 section 5 examples
# ============================================================================

RFC_GROUPS = """\
User-Agent: *
Disallow: *.gif$
Disallow: /example/
Allow: /publications/

User-Agent: foobot
Disallow:/
Allow:/example/page.html
Allow:/example/allowed.gif

User-Agent: barbot
User-Agent: bazbot
Disallow: /example/page.html

User-Agent: quxbot

EOF
"""


@pytest.mark.unit
@pytest.mark.parametrize(
    ("agent", "path", "expected"),
    [
        ("Test_1", "/", True),
        ("Test_1", "/publications/", True),
        ("Test_1", "/example/x", False),
        ("Test_1", "/images/a.gif", False),
        ("Test_1", "/images/a.gif?size=2", True),
        ("foobot", "/example/page.html", True),
        ("foobot", "/example/allowed.gif", True),
        ("foobot", "/publications/", False),
        ("foobot", "/", False),
        ("barbot", "/example/page.html", False),
        ("bazbot", "/example/page.html", False),
        ("barbot", "/publications/", True),
        ("quxbot", "/publications/", True),
        ("quxbot", "/example/x", False),
    ],
)
def test_rfc_grouping_example(agent: str, path: str, expected: bool):
    assert RuleSet(RFC_GROUPS).is_path_allowed(path, agent) is expected


@pytest.mark.unit
def test_named_group_falls_back_to_catch_all_for_unmatched_paths():
    """A path the named group says nothing about is judged by the "*" group."""
    rule_set = RuleSet(RFC_GROUPS)

    assert rule_set.is_path_allowed("/example/other", "barbot") is False
    assert rule_set.is_path_allowed("/images/a.gif", "barbot") is False


@pytest.mark.unit
def test_rfc_longest_match_example():
    rule_set = RuleSet(
        "User-Agent: *\nAllow: /example/page/\nDisallow: /example/page/disallowed.gif"
    )

    assert rule_set.is_path_allowed("/example/page/", "Test_1") is True
    assert rule_set.is_path_allowed("/example/page/disallowed.gif", "Test_1") is False
