"""Unit tests — bind-kind inference and placeholder adaptation."""

from __future__ import annotations

import datetime
from decimal import Decimal

import pytest

from rowgate.binding import adapt_placeholders, bind_params, infer_bind_kind
from rowgate.exceptions import StatementError
from rowgate.types import BindKind


@pytest.mark.unit
class TestInferBindKind:
    @pytest.mark.parametrize(
        "value, kind",
        [
            (42, BindKind.INTEGER),
            (True, BindKind.INTEGER),
            (3.5, BindKind.FLOAT),
            ("abc", BindKind.TEXT),
            (None, BindKind.TEXT),
            (Decimal("1.20"), BindKind.TEXT),
            (b"\x00\x01", BindKind.TEXT),
        ],
    )
    def test_kind_follows_runtime_type(self, value, kind) -> None:
        assert infer_bind_kind(value) is kind


@pytest.mark.unit
class TestBindParams:
    def test_signature_and_values(self) -> None:
        values, signature = bind_params([1, 2.5, "x", None])
        assert signature == "idss"
        assert values == (1, 2.5, "x", None)

    def test_bool_becomes_int(self) -> None:
        values, _ = bind_params([True])
        assert values == (1,)
        assert type(values[0]) is int

    def test_non_string_text_is_stringified(self) -> None:
        values, _ = bind_params([Decimal("10.50"), datetime.date(2024, 1, 31)])
        assert values == ("10.50", "2024-01-31")

    def test_bytes_left_untouched(self) -> None:
        values, _ = bind_params([b"raw"])
        assert values == (b"raw",)

    def test_empty(self) -> None:
        assert bind_params([]) == ((), "")


@pytest.mark.unit
class TestAdaptPlaceholders:
    SQL = "UPDATE t SET a=? WHERE b=?"

    def test_qmark_unchanged(self) -> None:
        assert adapt_placeholders(self.SQL, (1, 2), "qmark") == (self.SQL, (1, 2))

    def test_format(self) -> None:
        sql, params = adapt_placeholders(self.SQL, (1, 2), "format")
        assert sql == "UPDATE t SET a=%s WHERE b=%s"
        assert params == (1, 2)

    def test_format_escapes_literal_percent(self) -> None:
        sql, _ = adapt_placeholders("SELECT * FROM t WHERE a LIKE '10%' AND b=?", (1,), "pyformat")
        assert sql == "SELECT * FROM t WHERE a LIKE '10%%' AND b=%s"

    def test_format_without_escaping(self) -> None:
        sql, params = adapt_placeholders(
            "SELECT DATE_FORMAT(d, '%Y') FROM t WHERE label='50%' AND id=?",
            (7,),
            "format",
            escape_percent=False,
        )
        assert sql == "SELECT DATE_FORMAT(d, '%Y') FROM t WHERE label='50%' AND id=%s"
        assert params == (7,)

    def test_format_without_params_left_alone(self) -> None:
        sql, _ = adapt_placeholders("SELECT '10%'", (), "format")
        assert sql == "SELECT '10%'"

    def test_numeric(self) -> None:
        sql, _ = adapt_placeholders(self.SQL, (1, 2), "numeric")
        assert sql == "UPDATE t SET a=:1 WHERE b=:2"

    def test_named(self) -> None:
        sql, params = adapt_placeholders(self.SQL, (1, 2), "named")
        assert sql == "UPDATE t SET a=:p1 WHERE b=:p2"
        assert params == {"p1": 1, "p2": 2}

    def test_unknown_paramstyle(self) -> None:
        with pytest.raises(StatementError):
            adapt_placeholders(self.SQL, (1, 2), "dollar")
