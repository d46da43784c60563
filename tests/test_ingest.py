import pytest

from expense_classifier.errors import EncodingError, ParseError
from expense_classifier.ingest import CSVIngestor, decode_statement, ingest, split_rows
from expense_classifier.models import NormalizedTransaction


def test_shift_jis_statement_end_to_end(statement_bytes: bytes):
    report = CSVIngestor().ingest_bytes(statement_bytes)

    assert report.encoding == "cp932"
    assert report.rejected_rows == 3  # header, section, total
    assert report.transactions == (
        NormalizedTransaction("2025/05/17", "スターバックス渋谷店", 1200),
        NormalizedTransaction("2025/05/17", "ENEOS中央店", 6800),
        NormalizedTransaction("2025/05/20", "ABC商事", 60000),
    )


def test_utf8_with_bom_is_read_as_utf8():
    raw = "\ufeff2025/05/17,ローソン,,\"1,080\"\n".encode()
    text, encoding = decode_statement(raw)
    assert encoding == "utf-8"
    assert text.startswith("2025/05/17")
    assert ingest(raw) == [NormalizedTransaction("2025/05/17", "ローソン", 1080)]


def test_undecodable_bytes_raise_encoding_error():
    # Invalid UTF-8 and an incomplete cp932 lead byte at the end.
    with pytest.raises(EncodingError):
        decode_statement(b"2025/05/17,\xff\xfe,\x81")


def test_malformed_quoting_raises_parse_error():
    with pytest.raises(ParseError):
        list(split_rows('a,"b"c\n'))


def test_parse_error_is_a_csv_error():
    import csv

    assert issubclass(ParseError, csv.Error)


def test_quoted_newlines_and_blank_lines():
    text = '\n2025/05/17,"ABC\nDEF",,"2,000"\n\n , ,\n'
    rows = list(split_rows(text))
    assert rows == [["2025/05/17", "ABC\nDEF", "", "2,000"]]


def test_section_boundary_stops_carry_forward():
    text = (
        "2025/05/17,ABC,,\"1,000\"\n"
        ",DEF,,\"2,000\"\n"
        "【カード名称 ゴールド】,,,\n"
        ",GHI,,\"3,000\"\n"
    )
    report = CSVIngestor().ingest_text(text)
    assert [t.merchant for t in report.transactions] == ["ABC", "DEF"]
    assert report.rejected_rows == 2


def test_ingest_path_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        CSVIngestor().ingest_path(tmp_path / "nope.csv")


def test_ingest_path_reads_file(tmp_path, statement_bytes: bytes):
    p = tmp_path / "statement.csv"
    p.write_bytes(statement_bytes)
    report = CSVIngestor().ingest_path(p)
    assert len(report.transactions) == 3


def test_oversized_cell_is_filtered_not_fatal():
    text = f"2025/05/17,ABC,,{'9' * 5000}\n2025/05/18,DEF,,\"2,000\"\n"
    report = CSVIngestor().ingest_text(text)
    assert [t.merchant for t in report.transactions] == ["DEF"]
    assert report.rejected_rows == 1
