"""Unit tests for importer parser module."""

import pytest

from profile_importer.lib.importer.errors import FeedFormatError
from profile_importer.lib.importer.parser import map_columns, normalize_header, parse_feed, parse_line
from profile_importer.lib.importer.types import IssueKind, Severity


class TestParseLine:
    """Tests for the quote-aware line scanner."""

    def test_plain_fields(self) -> None:
        """Unquoted fields split on commas."""
        assert parse_line("a,b,c") == ["a", "b", "c"]

    def test_fields_are_trimmed(self) -> None:
        """Whitespace around fields is trimmed."""
        assert parse_line("  John Doe , john@example.com ") == ["John Doe", "john@example.com"]

    def test_quoted_field_with_comma(self) -> None:
        """Commas inside quotes stay in the field."""
        assert parse_line('"Doe, John",john@example.com') == ["Doe, John", "john@example.com"]

    def test_escaped_quote(self) -> None:
        """A doubled quote inside quotes yields one literal quote."""
        assert parse_line('"He said ""hi""",x') == ['He said "hi"', "x"]

    def test_comma_and_escaped_quote_reproduce_literal(self) -> None:
        """Commas and escaped quotes reproduce the original text."""
        literal = 'Plot 5, "Kira" Road'
        quoted = '"' + literal.replace('"', '""') + '"'
        assert parse_line(f"{quoted},next") == [literal, "next"]

    def test_empty_fields_preserved(self) -> None:
        """Empty fields keep their position."""
        assert parse_line("a,,c,") == ["a", "", "c", ""]

    def test_single_empty_line(self) -> None:
        """An empty line is one empty field."""
        assert parse_line("") == [""]


class TestHeaderMapping:
    """Tests for header normalization and aliasing."""

    @pytest.mark.parametrize("header", ["full_name", "Full Name", "full-name", "FULL_NAME", " Name "])
    def test_full_name_variants(self, header: str) -> None:
        """Spelling variants of full_name map to the same field."""
        assert map_columns([header]) == ("full_name",)

    def test_aliases(self) -> None:
        """Known aliases map to canonical fields."""
        columns = map_columns(["Email Address", "Mobile", "User Type", "Town/City", "DOB", "Tax ID", "Country"])
        assert columns == (
            "email",
            "phone",
            "account_type",
            "town_city",
            "date_of_birth",
            "tin",
            "country_of_residence",
        )

    def test_unknown_column_is_none(self) -> None:
        """Unknown columns map to None."""
        assert map_columns(["full_name", "favourite_colour"]) == ("full_name", None)

    def test_normalize_header(self) -> None:
        """Headers are lowercased and separators collapsed."""
        assert normalize_header("  Town / City ") == "town_city"


class TestParseFeed:
    """Tests for whole-feed parsing."""

    def test_basic_feed(self) -> None:
        """A simple feed yields rows with line numbers and a field mapping."""
        feed = parse_feed("full_name,email,phone\nJohn Doe,john@example.com,0700000000\n")
        assert feed.columns == ("full_name", "email", "phone")
        assert len(feed.rows) == 1
        assert feed.rows[0].row_number == 2
        assert feed.to_mapping(feed.rows[0]) == {
            "full_name": "John Doe",
            "email": "john@example.com",
            "phone": "0700000000",
        }

    def test_crlf_and_blank_lines(self) -> None:
        """CRLF endings work and blank lines keep physical numbering."""
        feed = parse_feed("full_name,email\r\n\r\nJohn,j@x.com\r\n\r\nJane,jane@x.com\r\n")
        assert [row.row_number for row in feed.rows] == [3, 5]

    def test_unicode_line_separators_stay_in_field(self) -> None:
        """Only LF and CRLF end a row; U+2028 and friends are field content."""
        feed = parse_feed("full_name,email\nJohn\u2028Doe,john@x.com\nJane\x85Roe\x0bX,jane@x.com\n")

        assert feed.skipped == []
        assert [row.row_number for row in feed.rows] == [2, 3]
        assert feed.rows[0].fields == ("John\u2028Doe", "john@x.com")
        assert feed.rows[1].fields == ("Jane\x85Roe\x0bX", "jane@x.com")

    def test_strips_byte_order_mark(self) -> None:
        """A leading BOM is removed from the header."""
        feed = parse_feed("\ufefffull_name,email\nJohn,j@x.com")
        assert feed.headers[0] == "full_name"

    def test_short_row_is_skipped(self) -> None:
        """Rows shorter than the header become parse warnings."""
        feed = parse_feed("full_name,email,phone\nJohn,j@x.com\nJane,jane@x.com,0700000000")
        assert [row.row_number for row in feed.rows] == [3]
        assert len(feed.skipped) == 1
        issue = feed.skipped[0]
        assert issue.row == 2
        assert issue.kind == IssueKind.PARSE
        assert issue.severity == Severity.WARNING

    def test_longer_row_is_kept(self) -> None:
        """Extra trailing fields do not skip a row."""
        feed = parse_feed("full_name,email\nJohn,j@x.com,extra")
        assert len(feed.rows) == 1

    def test_first_alias_wins(self) -> None:
        """When two columns map to one field the first wins."""
        feed = parse_feed("name,full_name,email\nFirst,Second,a@x.com")
        assert feed.to_mapping(feed.rows[0])["full_name"] == "First"

    def test_empty_input(self) -> None:
        """Empty input is a feed format error."""
        with pytest.raises(FeedFormatError, match="at least a header row and one data row"):
            parse_feed("")

    def test_header_only(self) -> None:
        """A header without data rows is a feed format error."""
        with pytest.raises(FeedFormatError, match="at least a header row and one data row"):
            parse_feed("full_name,email\n\n")

    def test_missing_full_name_header(self) -> None:
        """A header without full_name is a feed format error."""
        with pytest.raises(FeedFormatError, match="Missing required headers: full_name"):
            parse_feed("email,phone\na@x.com,0700000000")

    def test_missing_contact_headers(self) -> None:
        """A header without email or phone is a feed format error."""
        with pytest.raises(FeedFormatError, match="contact method column"):
            parse_feed("full_name,gender\nJohn,male")

    def test_feed_format_error_is_value_error(self) -> None:
        """FeedFormatError is a ValueError."""
        with pytest.raises(ValueError):
            parse_feed("")
