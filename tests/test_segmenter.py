"""Tests for statement segmentation."""

from __future__ import annotations

from cqllens.parsing.segmenter import (
    LexState,
    Scanner,
    Token,
    extract_table_path,
    is_command,
    join_statements,
    segment,
    strip_comments,
)
from cqllens.storage.models import Statement

SCRIPT = """-- @conn dev
CREATE TABLE IF NOT EXISTS app.users (
    id int PRIMARY KEY,
    name text
);

/* seed data */
INSERT INTO app.users (id, name) VALUES (1, 'a;b');
INSERT INTO app.users (id, name) VALUES (2, 'it''s');

-- check
SELECT *
FROM app.users
WHERE id = 1;
"""


class TestSegmentBasics:
    def test_empty_text(self):
        assert segment("") == []

    def test_whitespace_only(self):
        assert segment("  \n\t\n") == []

    def test_comment_only(self):
        assert segment("-- comment\n/* block */") == []

    def test_single_statement(self):
        assert segment("SELECT 1;") == [Statement("SELECT 1", 0, 0, 0)]

    def test_unterminated_final_statement(self):
        statements = segment("SELECT 1;\nSELECT 2")
        assert [s.text for s in statements] == ["SELECT 1", "SELECT 2"]
        assert statements[1].end_line == 1

    def test_unterminated_statement_ends_on_last_line(self):
        statements = segment("SELECT 1;\nSELECT 2\n")
        assert statements[1].start_line == 1
        assert statements[1].end_line == 2

    def test_empty_statements_skipped(self):
        assert [s.text for s in segment("SELECT 1;;\n;")] == ["SELECT 1"]

    def test_noise_without_keyword_dropped(self):
        assert [s.text for s in segment("foo bar;\nSELECT 1;")] == ["SELECT 1"]

    def test_keyword_case_insensitive(self):
        assert [s.text for s in segment("select 1;")] == ["select 1"]

    def test_keyword_must_be_whole_word(self):
        assert segment("SELECTED 1;") == []

    def test_first_line_offset(self):
        statements = segment("\nSELECT 1;", first_line=5)
        assert statements == [Statement("SELECT 1", 6, 6, 6)]


class TestStringAndCommentImmunity:
    def test_semicolon_in_single_quotes(self):
        statements = segment("SELECT * FROM t WHERE name = 'a;b';")
        assert len(statements) == 1
        assert statements[0].text == "SELECT * FROM t WHERE name = 'a;b'"

    def test_semicolon_in_double_quotes(self):
        assert len(segment('SELECT "we;ird" FROM t;')) == 1

    def test_escaped_quote_does_not_close(self):
        statements = segment("SELECT 'it\\'s;ok' FROM t;")
        assert len(statements) == 1

    def test_doubled_quote(self):
        assert len(segment("SELECT 'it''s;ok' FROM t;")) == 1

    def test_semicolon_in_block_comment(self):
        statements = segment("SELECT /* a;b */ 1 FROM t;")
        assert [s.text for s in statements] == ["SELECT /* a;b */ 1 FROM t"]

    def test_nested_block_comment(self):
        statements = segment("/* outer /* inner */ still; comment */ SELECT 1;")
        assert len(statements) == 1
        assert statements[0].text.endswith("SELECT 1")

    def test_semicolon_in_line_comment(self):
        statements = segment("SELECT 1 -- note; not a split\nFROM t;")
        assert len(statements) == 1
        assert statements[0].end_line == 1

    def test_apostrophe_in_line_comment(self):
        statements = segment("-- don't split here\nSELECT 1;\nSELECT 2;")
        assert [s.text for s in statements] == ["-- don't split here\nSELECT 1", "SELECT 2"]

    def test_unterminated_block_comment_swallows_rest(self):
        statements = segment("SELECT 1;\n/* never closed; SELECT 2;")
        assert [s.text for s in statements] == ["SELECT 1"]

    def test_comment_between_tokens_counts_as_space(self):
        assert len(segment("SELECT/* x */1;")) == 1


class TestLineTracking:
    def test_line_reset_after_unterminated_string(self):
        statements = segment("SELECT 'unterminated\nSELECT 1;")
        assert statements[-1] == Statement("SELECT 1", 1, 1, 1)
        assert statements[0].end_line == 0

    def test_leading_comment_block(self):
        text = "-- first\nSELECT *\nFROM t;\n\n/* second */\nINSERT INTO t (id) VALUES (1);\n"
        first, second = segment(text)
        assert (first.start_line, first.first_code_line, first.end_line) == (0, 1, 2)
        assert first.text == "-- first\nSELECT *\nFROM t"
        assert (second.start_line, second.first_code_line, second.end_line) == (4, 5, 5)
        assert second.text == "/* second */\nINSERT INTO t (id) VALUES (1)"

    def test_script_line_ranges(self):
        ranges = [(s.start_line, s.first_code_line, s.end_line) for s in segment(SCRIPT)]
        assert ranges == [(0, 1, 4), (6, 7, 7), (8, 8, 8), (10, 11, 13)]

    def test_line_coverage_invariant(self):
        statements = segment(SCRIPT)
        for statement in statements:
            assert statement.start_line <= statement.first_code_line <= statement.end_line
        for previous, current in zip(statements, statements[1:]):
            assert current.start_line > previous.end_line

    def test_statements_sharing_a_line(self):
        statements = segment("SELECT 1; SELECT 2; -- tail\nSELECT 3;")
        assert [s.text for s in statements][:2] == ["SELECT 1", "SELECT 2"]
        first, second, third = statements
        assert second.start_line == first.end_line == 0
        assert third.start_line > second.end_line

    def test_trailing_comment_stays_off_next_statement_range(self):
        first, second = segment("SELECT 1; -- note\nSELECT 2;")
        assert first == Statement("SELECT 1", 0, 0, 0)
        assert (second.start_line, second.first_code_line, second.end_line) == (1, 1, 1)
        assert second.start_line > first.end_line

    def test_trailing_block_comment_spanning_lines(self):
        first, second = segment("SELECT 1; /* a\nb */ SELECT 2;")
        assert first.end_line == 0
        assert second.start_line == 1
        assert second.text == "/* a\nb */ SELECT 2"

    def test_trailing_comment_alone_is_not_a_statement(self):
        assert segment("SELECT 1; -- done\n") == [Statement("SELECT 1", 0, 0, 0)]

    def test_crlf_line_endings(self):
        statements = segment("SELECT 1;\r\nSELECT 2;\r\n")
        assert [(s.text, s.start_line) for s in statements] == [("SELECT 1", 0), ("SELECT 2", 1)]


class TestScanner:
    def test_string_state_until_newline(self):
        scanner = Scanner()
        list(scanner.tokens("SELECT 'abc"))
        assert scanner.state is LexState.STRING
        list(scanner.tokens("\n"))
        assert scanner.state is LexState.CODE

    def test_broken_line_token(self):
        tokens = [token for token, _ in Scanner().tokens("'abc\nx")]
        assert Token.BROKEN_LINE in tokens
        assert Token.NEWLINE not in tokens

    def test_block_comment_survives_newline(self):
        scanner = Scanner()
        list(scanner.tokens("/* a\nb"))
        assert scanner.state is LexState.BLOCK_COMMENT
        assert scanner.depth == 1

    def test_stray_close_is_code(self):
        scanner = Scanner()
        tokens = [token for token, _ in scanner.tokens("*/")]
        assert tokens == [Token.CODE, Token.CODE]
        assert scanner.depth == 0


class TestHelpers:
    def test_strip_comments_keeps_strings(self):
        assert strip_comments("SELECT '--x' -- c\nFROM t /* b */") == "SELECT '--x' \nFROM t "

    def test_is_command(self):
        assert is_command("  DESCRIBE keyspaces")
        assert is_command("grant select on ks to bob")
        assert not is_command("hello world")

    def test_extract_table_path(self):
        assert extract_table_path("SELECT * FROM ks.users WHERE id = 1") == "ks.users"
        assert extract_table_path("select x from users") == "users"
        assert extract_table_path("INSERT INTO t (id) VALUES (1)") is None

    def test_extract_table_path_ignores_comments(self):
        assert extract_table_path("-- from old\nSELECT * FROM ks.t") == "ks.t"


class TestIdempotence:
    def test_resegmenting_joined_statements(self):
        original = segment(SCRIPT)
        again = segment(join_statements(original))
        assert [s.text for s in again] == [s.text for s in original]

    def test_trailing_line_comment_keeps_terminator(self):
        statements = segment("SELECT 1 -- note\n;\nSELECT 2;")
        joined = join_statements(statements)
        assert [s.text for s in segment(joined)] == ["SELECT 1 -- note", "SELECT 2"]
