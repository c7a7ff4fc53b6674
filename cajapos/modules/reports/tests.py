"""
Tests para reportes de ventas
"""

import pytest
from datetime import date
from decimal import Decimal

from cajapos.conftest import request_json
from cajapos.modules.reports.schemas import SalesTotals
from cajapos.modules.reports.service import ReportsService

HISTORY_ROW = {
    "id_venta": 77,
    "fecha": "2026-10-19T18:05:00+00:00",
    "cajero": "Ana Quispe",
    "monto_total": 145,
    "tipo_pago": "efectivo",
    "monto_efectivo": 145,
    "monto_qr": None,
    "detalles": [{"id_producto": 1, "cantidad": 2}],
}


@pytest.fixture
def reports(supabase):
    return ReportsService(supabase)


class TestReports:

    async def test_sales_history(self, reports, backend):
        backend.on_rpc("get_sales_history", json_body=[HISTORY_ROW])

        result = await reports.get_sales_history("2026-10-19T04:00:00Z", "2026-10-20T03:59:59Z")

        assert result.success
        entry = result.data[0]
        assert entry.id_venta == 77
        assert entry.monto_qr == Decimal("0")
        body = request_json(backend.rpc_calls("get_sales_history")[0])
        assert body == {
            "_fecha_inicio": "2026-10-19T04:00:00+00:00",
            "_fecha_fin": "2026-10-20T03:59:59+00:00",
        }

    async def test_totals_without_rows(self, reports, backend):
        backend.on_rpc("get_sales_history_totals", json_body=[])

        result = await reports.get_sales_history_totals("2026-10-19", "2026-10-20")

        assert result.data == SalesTotals()

    async def test_dashboard_error(self, reports, backend):
        backend.on_rpc("get_dashboard_stats", json_body={"message": "function does not exist"}, status_code=404)

        result = await reports.get_dashboard_stats("2026-10-19", "2026-10-20")

        assert not result.success
        assert result.message == "function does not exist"

    async def test_for_day_uses_bolivia_range(self, reports, backend):
        backend.on_rpc("get_sales_history", json_body=[])
        backend.on_rpc("get_sales_history_totals", json_body=[{"total_vendido": 145, "total_ganancia": 55,
                                                                "ventas_count": 1}])

        results = await reports.for_day(date(2026, 10, 19))

        assert results["totals"].data.ventas_count == 1
        body = request_json(backend.rpc_calls("get_sales_history")[0])
        assert body["_fecha_inicio"] == "2026-10-19T00:00:00-04:00"
        assert body["_fecha_fin"].startswith("2026-10-19T23:59:59")
