"""
Tests para utilidades de fechas y resultados

Las fechas del backend llegan en UTC; Bolivia es UTC-4 todo el año.
"""

import pytest
from datetime import date, datetime, timedelta, timezone

from cajapos.common.dates import (
    BOLIVIA_TZ, format_date, get_current_bolivia_time, get_day_name, get_day_range,
    get_end_of_day, get_start_of_day, is_today, to_bolivia_iso_string, to_bolivia_time
)
from cajapos.common.results import OperationResult, SaleResult


class TestBoliviaTime:

    def test_utc_string_converted(self):
        local = to_bolivia_time("2026-10-19T18:05:00Z")
        assert (local.hour, local.minute) == (14, 5)
        assert local.utcoffset() == timedelta(hours=-4)

    def test_naive_datetime_treated_as_utc(self):
        local = to_bolivia_time(datetime(2026, 10, 19, 2, 0))
        assert local.day == 18
        assert local.hour == 22

    def test_format_date(self):
        assert format_date("2026-10-19T18:05:00+00:00") == "19 oct 2026, 14:05"
        assert format_date("2026-10-19T18:05:00+00:00", include_time=False) == "19 oct 2026"

    def test_day_boundaries(self):
        start = get_start_of_day("2026-10-19T03:00:00Z")
        end = get_end_of_day("2026-10-19T03:00:00Z")

        # 03:00 UTC todavía es el 18 en Bolivia
        assert start == datetime(2026, 10, 18, 0, 0, tzinfo=BOLIVIA_TZ)
        assert end.date() == date(2026, 10, 18)
        assert (end.hour, end.minute, end.second) == (23, 59, 59)

    def test_day_range_for_date(self):
        day_range = get_day_range(date(2026, 10, 19))
        assert day_range["start"].isoformat() == "2026-10-19T00:00:00-04:00"
        assert day_range["end"].isoformat(timespec="seconds") == "2026-10-19T23:59:59-04:00"

    def test_iso_string_has_offset(self):
        assert to_bolivia_iso_string("2026-10-19T18:05:00Z") == "2026-10-19T14:05:00.000-04:00"

    def test_is_today(self):
        assert is_today(datetime.now(timezone.utc))
        assert not is_today(get_current_bolivia_time() - timedelta(days=1))

    @pytest.mark.parametrize("value,expected", [
        ("2026-10-19T15:00:00Z", "lunes"),
        ("2026-10-18T15:00:00Z", "domingo"),
        ("2026-10-20T02:00:00Z", "lunes"),
    ])
    def test_day_name(self, value, expected):
        assert get_day_name(value) == expected


class TestResults:

    def test_ok_and_fail(self):
        assert OperationResult.ok("listo").success is True
        failed = OperationResult.fail("mal", data={"x": 1})
        assert failed.success is False
        assert failed.data == {"x": 1}

    def test_sale_result_fail_keeps_type(self):
        result = SaleResult.fail("El carrito está vacío")
        assert isinstance(result, SaleResult)
        assert result.venta_id is None
