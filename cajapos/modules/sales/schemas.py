"""
Esquemas Pydantic para el registro de ventas.
"""
from pydantic import BaseModel, Field
from decimal import Decimal
from typing import Optional

from cajapos.modules.cart.schemas import CartLine


class SaleLinePayload(BaseModel):
    """Detalle de venta enviado en `_detalles` a la RPC registrar_venta"""
    id_producto: int = Field(description="ID del producto")
    cantidad: int = Field(description="Cantidad vendida")
    precio_venta: Decimal = Field(description="Precio unitario efectivo (original - descuento)")
    precio_compra: Decimal = Field(description="Costo unitario")
    precio_original: Decimal = Field(description="Precio unitario antes del descuento")
    descuento_aplicado: Decimal = Field(description="Descuento por unidad")
    porcentaje_descuento: Decimal = Field(description="Porcentaje de descuento")
    observacion: Optional[str] = Field(None, description="Observación, None si está vacía")

    @classmethod
    def from_cart_line(cls, line: CartLine) -> "SaleLinePayload":
        return cls(
            id_producto=line.product.id,
            cantidad=line.quantity,
            precio_venta=line.precio_efectivo,
            precio_compra=line.product.precio_compra,
            precio_original=line.precio_original,
            descuento_aplicado=line.descuento_aplicado,
            porcentaje_descuento=line.porcentaje_descuento,
            observacion=line.observacion if line.observacion and line.observacion.strip() else None,
        )


class RegisterSaleRow(BaseModel):
    """Fila devuelta por registrar_venta"""
    id_venta: Optional[int] = None
    mensaje: Optional[str] = None
