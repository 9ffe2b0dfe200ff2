import pytest

from households_etl.config_loader import IngestionConfig
from households_etl.parsing import (
    UnsupportedUploadError,
    detect_delimiter,
    ensure_tabular_upload,
    parse_bytes,
    parse_text,
    read_records,
    read_upload_rows,
)


def test_detect_delimiter_prefers_tab_then_semicolon():
    assert detect_delimiter("a\tb;c,d") == "\t"
    assert detect_delimiter("a;b,c") == ";"
    assert detect_delimiter("a,b") == ","
    assert detect_delimiter("single") == ","


def test_read_records_respects_quotes_and_escaped_quotes():
    assert read_records(['"Smith, John",  Jane ,x'], ",") == [["Smith, John", "Jane", "x"]]
    assert read_records(['"He said ""hi""",b'], ",") == [['He said "hi"', "b"]]
    assert read_records(["'Tan';Amy"], ";") == [["Tan", "Amy"]]
    assert read_records(["a,,b"], ",") == [["a", "", "b"]]


def test_read_records_pads_short_lines_and_drops_empty_trailing_columns():
    assert read_records(["a,b,,", "c"], ",") == [["a", "b"], ["c", ""]]
    assert read_records([], ",") == []


def test_read_records_unclosed_quote_falls_back_to_literal_quotes():
    records = read_records(['"Unclosed,Smith', "Amy,Tan"], ",")
    assert records == [["Unclosed", "Smith"], ["Amy", "Tan"]]


def test_read_records_keeps_one_record_per_line():
    records = read_records(['John,"a', 'b",Smith'], ",")
    assert records == [["John", "a"], ["b", "Smith"]]


def test_parse_text_with_header_and_blank_lines():
    text = "First,Last,Email\n\nJohn,Smith,j@x.com\n   \nJane,Smith\n"
    rows = parse_text(text)
    assert rows == [
        {"First": "John", "Last": "Smith", "Email": "j@x.com"},
        {"First": "Jane", "Last": "Smith", "Email": ""},
    ]


def test_parse_text_tab_and_semicolon_inputs():
    tab_rows = parse_text("first name\tlast name\nAmy\tTan")
    assert tab_rows == [{"first name": "Amy", "last name": "Tan"}]

    semi_rows = parse_text('Name;Surname;Notes\nBob;Brown;"likes; semicolons"')
    assert semi_rows[0]["Notes"] == "likes; semicolons"


def test_parse_text_quoted_field_keeps_delimiter():
    rows = parse_text('First,Last,Notes\n"John","Smith","likes, commas"')
    assert rows[0] == {"First": "John", "Last": "Smith", "Notes": "likes, commas"}


def test_parse_text_without_header_uses_positional_columns():
    rows = parse_text("John,Smith,j@x.com,555-1111,extra\nJane,Doe")
    assert rows[0] == {
        "first name": "John",
        "last name": "Smith",
        "email": "j@x.com",
        "mobile": "555-1111",
        "column_5": "extra",
    }
    assert rows[1] == {
        "first name": "Jane",
        "last name": "Doe",
        "email": "",
        "mobile": "",
        "column_5": "",
    }


def test_parse_text_surplus_cells_and_duplicate_headers():
    rows = parse_text("First,Last,Last\nJohn,Smith,Jones,extra")
    assert rows == [{"First": "John", "Last": "Smith", "Last_2": "Jones", "column_4": "extra"}]


@pytest.mark.parametrize("text", ["", "   ", "\n\n", None])
def test_parse_text_empty_input_yields_no_rows(text):
    assert parse_text(text) == []


def test_parse_text_header_only_yields_no_rows():
    assert parse_text("First Name,Last Name\n") == []


def test_parse_bytes_strips_bom_and_crlf():
    rows = parse_bytes(b"\xef\xbb\xbfFirst,Last\r\nJohn,Smith\r\n")
    assert rows == [{"First": "John", "Last": "Smith"}]


def test_parse_bytes_tolerates_undecodable_bytes():
    rows = parse_bytes(b"First,Last\nJos\xe9,Smith\n")
    assert rows[0]["Last"] == "Smith"
    assert rows[0]["First"].startswith("Jos")


def test_ensure_tabular_upload_accepts_csv_by_type_or_extension():
    settings = IngestionConfig()
    ensure_tabular_upload("text/csv; charset=utf-8", None, 10, settings)
    ensure_tabular_upload("application/octet-stream", "people.CSV", 10, settings)


def test_ensure_tabular_upload_rejects_non_tabular_and_oversize():
    settings = IngestionConfig(max_upload_bytes=100)
    with pytest.raises(UnsupportedUploadError):
        ensure_tabular_upload("application/pdf", "people.pdf", 10, settings)
    with pytest.raises(UnsupportedUploadError):
        ensure_tabular_upload("text/csv", "people.csv", 101, settings)


def test_read_upload_rows_rejects_before_parsing():
    with pytest.raises(UnsupportedUploadError):
        read_upload_rows(b"First,Last\nJohn,Smith", "image/png", "photo.png", IngestionConfig())
    rows = read_upload_rows(b"First,Last\nJohn,Smith", "text/csv", "people.csv", IngestionConfig())
    assert rows == [{"First": "John", "Last": "Smith"}]
