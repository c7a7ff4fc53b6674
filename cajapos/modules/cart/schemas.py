from pydantic import BaseModel, Field, computed_field
from decimal import Decimal

from cajapos.modules.catalog.schemas import Product


class CartLine(BaseModel):
    """Línea del carrito; el subtotal siempre se deriva de cantidad y descuento"""
    product: Product = Field(description="Copia del producto al momento de agregarlo")
    quantity: int = Field(..., gt=0, description="Cantidad")
    precio_original: Decimal = Field(description="Precio unitario capturado al agregar")
    descuento_aplicado: Decimal = Field(default=Decimal("0"), description="Descuento por unidad")
    porcentaje_descuento: Decimal = Field(default=Decimal("0"), description="Porcentaje derivado del descuento")
    observacion: str = Field(default="", description="Observación libre")

    @computed_field
    @property
    def subtotal(self) -> Decimal:
        return self.quantity * (self.precio_original - self.descuento_aplicado)

    @property
    def precio_efectivo(self) -> Decimal:
        return self.precio_original - self.descuento_aplicado
