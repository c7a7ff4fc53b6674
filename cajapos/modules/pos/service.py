"""
Coordinador del punto de venta.

Agrupa catálogo, carrito, caja y ventas sobre un mismo cliente para que
la pantalla de venta tenga un único punto de entrada.
"""
import logging
from typing import Optional

from cajapos.common.results import OperationResult, SaleResult
from cajapos.database.client import SupabaseClient
from cajapos.modules.cart.service import Amount, CartService
from cajapos.modules.cash_session.service import CashSessionService
from cajapos.modules.catalog.service import CatalogService
from cajapos.modules.sales.service import SaleService

logger = logging.getLogger(__name__)


class POSService:
    """Servicio de punto de venta"""

    def __init__(self, client: SupabaseClient, page_size: Optional[int] = None):
        self.client = client
        self.cart = CartService()
        self.catalog = CatalogService(client, page_size=page_size)
        self.cash_session = CashSessionService(client)
        self.sales = SaleService(client, self.cart, self.catalog)

    @property
    def can_sell(self) -> bool:
        return self.cash_session.is_open

    async def start(self) -> None:
        """Carga inicial: caja abierta, categorías y primera página"""
        await self.cash_session.check_open_session()
        await self.catalog.load_categories()
        await self.catalog.load_products()

    async def process_sale(self, id_usuario: int, monto_efectivo: Amount,
                           monto_qr: Amount = 0) -> SaleResult:
        """
        Cobrar el carrito actual en la caja abierta.

        El total se toma del carrito; el reparto efectivo/QR lo indica el
        cajero.
        """
        session = self.cash_session.current_session.get()

        return await self.sales.submit(
            id_cierre_caja=session.id_cierre_caja if session else None,
            id_usuario=id_usuario,
            monto_total=self.cart.total,
            monto_efectivo=monto_efectivo,
            monto_qr=monto_qr,
            cart_lines=self.cart.lines,
        )

    async def close_current_session(self, monto_final_efectivo: Amount,
                                    gastos_adicionales: Amount = 0) -> OperationResult:
        """
        Cerrar la caja abierta y obtener su resumen.

        El resumen se pide para el id de cierre que devolvió el cierre, no
        para la sesión en memoria.
        """
        result = await self.cash_session.close_session_by_self(monto_final_efectivo, gastos_adicionales)
        if not result.success:
            return result

        summary = await self.cash_session.fetch_close_summary(result.data)
        if summary.success:
            return OperationResult.ok(result.message, data=summary.data)

        logger.warning(f"Caja {result.data} cerrada sin resumen: {summary.message}")
        return OperationResult.ok(result.message)
