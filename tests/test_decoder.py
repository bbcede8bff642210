"""Tests for delimiter detection and row splitting."""

from portfolio_lookthrough.parsing.decoder import (
    MODE_EMPTY,
    MODE_TABLE,
    MODE_TEXT,
    decode,
    detect_delimiter,
    score_delimiter,
)


class TestDetectDelimiter:
    def test_semicolon(self):
        text = "Symbol;Name;Quantity\nAAPL;Apple;10\nMSFT;Microsoft;5\n"
        assert detect_delimiter(text) == ";"

    def test_tab(self):
        text = "Symbol\tName\tQuantity\nAAPL\tApple, Inc.\t10\n"
        assert detect_delimiter(text) == "\t"

    def test_pipe(self):
        assert detect_delimiter("a|b|c\n1|2|3\n") == "|"

    def test_defaults_to_comma(self):
        """A single word per line gives every candidate a zero score."""
        assert detect_delimiter("hello\nworld\n") == ","

    def test_consistency_scores_higher(self):
        lines = ["a,b,c", "1,2,3"]
        assert score_delimiter(lines, ",") > score_delimiter(["a,b,c", "1,2"], ",")


class TestDecode:
    def test_empty_input_is_empty_table(self):
        for text in (None, "", "  \n\t\n"):
            table = decode(text)
            assert table.is_empty
            assert table.mode == MODE_EMPTY

    def test_separator_only_lines_are_blank(self):
        assert decode(",,,\n;;;\n").is_empty
        table = decode("Symbol,Quantity\n,,\nAAPL,10\n---\n")
        assert table.rows == [["Symbol", "Quantity"], ["AAPL", "10"]]

    def test_ragged_rows_are_kept(self):
        """Rows with fewer or more cells than the header do not raise."""
        table = decode("Symbol,Name,Quantity,Price\nAAPL,Apple\nMSFT,Microsoft,5,300,extra\n")
        assert table.mode == MODE_TABLE
        assert table.rows[1] == ["AAPL", "Apple"]
        assert len(table.rows[2]) == 5

    def test_blank_lines_are_skipped_and_cells_stripped(self):
        table = decode("Symbol , Quantity\n\n AAPL , 10 \n")
        assert table.rows == [["Symbol", "Quantity"], ["AAPL", "10"]]

    def test_quoted_cells(self):
        table = decode('Symbol,Name,Quantity\nAAPL,"Apple, Inc.",10\n')
        assert table.rows[1] == ["AAPL", "Apple, Inc.", "10"]

    def test_free_text_is_split_on_wide_gaps(self):
        text = "Relevé de portefeuille\nAAPL   Apple Inc.   100   150.00   USD\nPage 1\n"
        table = decode(text)
        assert table.mode == MODE_TEXT
        assert ["AAPL", "Apple Inc.", "100", "150.00", "USD"] in table.rows
