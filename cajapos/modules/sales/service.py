"""
Servicio de registro de ventas.

Transforma las líneas del carrito en el detalle de la RPC registrar_venta,
que inserta la venta, sus líneas y descuenta stock de forma atómica en el
backend.
"""
import logging
from typing import List, Optional

from cajapos.common.results import SaleResult
from cajapos.database.client import SupabaseClient
from cajapos.modules.cart.schemas import CartLine
from cajapos.modules.cart.service import Amount, CartService, to_decimal
from cajapos.modules.catalog.service import CatalogService
from cajapos.modules.sales.schemas import RegisterSaleRow, SaleLinePayload

logger = logging.getLogger(__name__)


class SaleService:
    """Envía ventas al backend y refresca el estado local al confirmarse"""

    def __init__(self, client: SupabaseClient, cart: CartService, catalog: CatalogService):
        self.client = client
        self.cart = cart
        self.catalog = catalog

    @staticmethod
    def build_details(cart_lines: List[CartLine]) -> List[dict]:
        return [SaleLinePayload.from_cart_line(line).model_dump() for line in cart_lines]

    async def submit(self, id_cierre_caja: Optional[int], id_usuario: int, monto_total: Amount,
                     monto_efectivo: Amount, monto_qr: Amount,
                     cart_lines: List[CartLine]) -> SaleResult:
        """
        Registrar una venta.

        Éxito solo si la RPC devuelve una fila con id_venta; entonces se vacía
        el carrito y se recarga el catálogo para reflejar el stock.
        Cualquier otro caso devuelve success=False con el mensaje del backend.
        """
        if not id_cierre_caja:
            return SaleResult.fail("No hay una caja abierta actualmente")

        if not cart_lines:
            return SaleResult.fail("El carrito está vacío")

        try:
            data = await self.client.rpc("registrar_venta", {
                "_id_cierre_caja": id_cierre_caja,
                "_id_usuario": id_usuario,
                "_monto_total": to_decimal(monto_total),
                "_monto_efectivo": to_decimal(monto_efectivo),
                "_monto_qr": to_decimal(monto_qr),
                "_detalles": self.build_details(cart_lines),
            })

            if not data:
                return SaleResult.fail("No se recibió respuesta de la base de datos")

            row = RegisterSaleRow.model_validate(data[0])

            if not row.id_venta:
                return SaleResult.fail(row.mensaje or "Error al procesar la venta")

        except Exception as e:
            logger.error(f"Error processing sale: {str(e)}")
            return SaleResult.fail(str(e) or "Error desconocido")

        self.cart.clear()

        # El backend ya descontó stock; recargar para mostrarlo
        await self.catalog.load_products()

        logger.info(f"Venta {row.id_venta} registrada en cierre {id_cierre_caja}")
        return SaleResult(success=True, message=row.mensaje or "", venta_id=row.id_venta)
