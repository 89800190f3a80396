"""
Unit tests for the row reader and CSV writer.

Tests cover:
- header detection, blank lines and BOM handling
- ragged rows padded with "" and extra values ignored
- folded (case / whitespace / BOM insensitive) column lookup
- anchor-based row skipping and counting
- fatal errors for empty input and missing required headers
"""
import pytest

from catalog_normalizer.errors import EmptyInputError, HeaderValidationError
from catalog_normalizer.io import (
    HeaderIndex,
    check_headers,
    read_rows,
    rows_from_records,
    write_csv_text,
)

pytestmark = pytest.mark.unit


class TestReadRows:

    def test_rows_are_dicts_keyed_by_header(self):
        table = read_rows("Handle,Title\nabc,Shirt\n")
        assert table.header == ["Handle", "Title"]
        assert table.rows == [{"Handle": "abc", "Title": "Shirt"}]

    def test_short_rows_are_padded_with_empty_strings(self):
        table = read_rows("a,b,c\n1\n")
        assert table.rows == [{"a": "1", "b": "", "c": ""}]

    def test_extra_values_are_ignored(self):
        table = read_rows("a,b\n1,2,3,4\n")
        assert table.rows == [{"a": "1", "b": "2"}]

    def test_blank_lines_are_ignored(self):
        table = read_rows("\n\na,b\n\n1,2\n,\n")
        assert len(table) == 1

    def test_leading_bom_is_stripped(self):
        table = read_rows("\ufeffHandle,Title\nabc,Shirt\n")
        assert table.header[0] == "Handle"

    def test_values_are_stripped(self):
        table = read_rows("a,b\n  x  , y\n")
        assert table.rows[0] == {"a": "x", "b": "y"}

    def test_quoted_commas_and_newlines_survive(self):
        table = read_rows('a,b\n"1,5","line one\nline two"\n')
        assert table.rows[0]["a"] == "1,5"
        assert table.rows[0]["b"] == "line one\nline two"

    @pytest.mark.parametrize("text", ["", "   ", "\n\n"])
    def test_empty_input_is_fatal(self, text):
        with pytest.raises(EmptyInputError):
            read_rows(text)

    def test_rows_without_anchor_are_skipped_and_counted(self):
        table = read_rows("Handle,Title\nabc,Shirt\n,Orphan\nxyz,Hat\n", anchors=("Handle",))
        assert [r["Handle"] for r in table] == ["abc", "xyz"]
        assert table.skipped == 1


class TestHeaderIndex:

    def test_exact_match_wins(self):
        index = HeaderIndex(["sku", "SKU"])
        assert index.resolve("SKU") == "SKU"

    def test_folded_match_ignores_case_whitespace_and_bom(self):
        index = HeaderIndex(["\ufeff Variant SKU "])
        assert index.resolve("variant sku") == "\ufeff Variant SKU "
        assert "Variant SKU" in index

    def test_unknown_column_resolves_to_none(self):
        assert HeaderIndex(["a"]).resolve("b") is None

    def test_table_get_uses_folded_lookup(self):
        table = read_rows("HANDLE,title\nabc,Shirt\n")
        row = table.rows[0]
        assert table.get(row, "Handle") == "abc"
        assert table.get(row, "Missing", "x") == "x"


class TestRowsFromRecords:

    def test_union_of_keys_becomes_header(self):
        table = rows_from_records([{"a": "1"}, {"b": 2, "a": None}])
        assert table.header == ["a", "b"]
        assert table.rows == [{"a": "1", "b": ""}, {"a": "", "b": "2"}]

    def test_no_records_is_fatal(self):
        with pytest.raises(EmptyInputError):
            rows_from_records([])


class TestCheckHeaders:

    def test_missing_required_columns_raise(self):
        table = read_rows("Title\nShirt\n")
        with pytest.raises(HeaderValidationError) as exc:
            check_headers(table, ("Handle",), "shopify")
        assert exc.value.missing == ["Handle"]
        assert "Missing fields: Handle" in str(exc.value)

    def test_folded_headers_satisfy_requirements(self):
        table = read_rows(" handle \nabc\n")
        check_headers(table, ("Handle",), "shopify")


class TestWriteCsvText:

    def test_missing_keys_written_blank_and_extras_dropped(self):
        text = write_csv_text([{"a": "1", "zzz": "ignored"}], ["a", "b"])
        assert text.splitlines() == ["a,b", "1,"]
