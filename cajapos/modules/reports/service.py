"""
Reportes de ventas sobre las RPC de historial y estadísticas.

Los rangos se envían como ISO strings con zona de Bolivia.
"""
import logging
from typing import Any, Callable, Dict, Optional

from cajapos.common.dates import DateInput, get_day_range, to_datetime
from cajapos.common.results import OperationResult
from cajapos.database.client import SupabaseClient
from cajapos.modules.reports.schemas import SalesHistoryEntry, SalesTotals

logger = logging.getLogger(__name__)


def _range_params(start: DateInput, end: DateInput) -> Dict[str, str]:
    return {
        "_fecha_inicio": to_datetime(start).isoformat(),
        "_fecha_fin": to_datetime(end).isoformat(),
    }


class ReportsService:
    """Servicio de reportes"""

    def __init__(self, client: SupabaseClient):
        self.client = client

    async def _call(self, fn: str, start: DateInput, end: DateInput,
                    parse: Callable[[Any], Any], error_message: str) -> OperationResult:
        try:
            data = await self.client.rpc(fn, _range_params(start, end))
            return OperationResult.ok(data=parse(data))
        except Exception as e:
            logger.error(f"Error in {fn}: {str(e)}")
            return OperationResult.fail(str(e) or error_message)

    async def get_sales_history(self, start: DateInput, end: DateInput) -> OperationResult:
        """Ventas del rango; data es una lista de SalesHistoryEntry"""
        return await self._call(
            "get_sales_history", start, end,
            lambda rows: [SalesHistoryEntry.model_validate(r) for r in rows or []],
            "Error al obtener el historial de ventas",
        )

    async def get_sales_history_totals(self, start: DateInput, end: DateInput) -> OperationResult:
        return await self._call(
            "get_sales_history_totals", start, end,
            lambda rows: SalesTotals.model_validate(rows[0]) if rows else SalesTotals(),
            "Error al obtener los totales de ventas",
        )

    async def get_dashboard_stats(self, start: DateInput, end: DateInput) -> OperationResult:
        """El backend devuelve un JSON libre; se entrega tal cual"""
        return await self._call(
            "get_dashboard_stats", start, end,
            lambda data: data,
            "Error al obtener las estadísticas",
        )

    async def for_day(self, day: Optional[DateInput] = None) -> Dict[str, OperationResult]:
        """Historial y totales del día (hora de Bolivia)"""
        day_range = get_day_range(day)
        start, end = day_range["start"], day_range["end"]
        return {
            "history": await self.get_sales_history(start, end),
            "totals": await self.get_sales_history_totals(start, end),
        }
