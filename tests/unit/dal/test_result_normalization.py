import datetime
import uuid
from decimal import Decimal

from dal.normalization import column_names, normalize_row, normalize_rows, normalize_value
from dal.query_result import QueryResult


def test_scalars_pass_through():
    for value in (None, True, 3, 1.5, "text"):
        assert normalize_value(value) == value


def test_binary_values_decode_with_replacement():
    assert normalize_value(b"caf\xc3\xa9") == "café"
    assert normalize_value(bytearray(b"ok")) == "ok"
    assert normalize_value(memoryview(b"mv")) == "mv"
    assert normalize_value(b"\xff\xfe") == "\ufffd\ufffd"


def test_temporal_and_numeric_values():
    assert normalize_value(Decimal("12.50")) == "12.50"
    assert normalize_value(datetime.date(2024, 1, 2)) == "2024-01-02"
    assert normalize_value(datetime.datetime(2024, 1, 2, 3, 4, 5)) == "2024-01-02T03:04:05"
    assert normalize_value(datetime.time(7, 8)) == "07:08:00"
    assert normalize_value(datetime.timedelta(hours=1)) == "1:00:00"


def test_uuid_and_containers():
    ident = uuid.UUID("12345678-1234-5678-1234-567812345678")
    assert normalize_value(ident) == str(ident)
    assert normalize_value({"a": Decimal("1"), 2: [b"x"]}) == {"a": "1", "2": ["x"]}
    assert normalize_value((1, Decimal("2"))) == [1, "2"]


def test_rows_keep_column_order():
    rows = normalize_rows([{"z": 1, "a": b"x"}, {"z": 2, "a": None}])
    assert rows == [{"z": 1, "a": "x"}, {"z": 2, "a": None}]
    assert list(rows[0]) == ["z", "a"]
    assert column_names(rows) == ["z", "a"]
    assert column_names([]) == []


def test_mapping_like_records():
    class Record:
        def items(self):
            return [("id", 1), ("amount", Decimal("9.99"))]

    assert normalize_row(Record()) == {"id": 1, "amount": "9.99"}
    assert normalize_rows(None) == []


def test_query_result_properties():
    rows = QueryResult(rows=[{"id": 1}], limit_applied=10)
    assert rows.is_mutation is False
    assert rows.columns == ["id"]
    mutation = QueryResult(affected=0, message="Deleted 0 row(s)")
    assert mutation.is_mutation is True
    assert mutation.columns == []
