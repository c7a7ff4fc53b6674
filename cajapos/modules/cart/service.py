"""
Servicio de carrito del punto de venta.

Estado puramente local: no hace I/O. Las líneas se publican en un Store y
los totales se recalculan en cada lectura a partir de las líneas actuales.
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional, Union

from cajapos.core.store import Store
from cajapos.modules.cart.schemas import CartLine
from cajapos.modules.catalog.schemas import Product

Amount = Union[Decimal, int, float, str]

CENT = Decimal("0.01")


def to_decimal(value: Amount) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def discount_percentage(descuento: Decimal, precio_original: Decimal) -> Decimal:
    """Porcentaje de descuento redondeado a 2 decimales (0 si el precio es 0)"""
    if precio_original <= 0:
        return Decimal("0")
    return (descuento * 100 / precio_original).quantize(CENT, rounding=ROUND_HALF_UP)


class CartService:
    """
    Carrito de compras en memoria.

    Operaciones sobre líneas inexistentes no hacen nada.
    """

    def __init__(self):
        self.lines_store: Store[List[CartLine]] = Store([])

    @property
    def lines(self) -> List[CartLine]:
        return self.lines_store.get()

    @property
    def total(self) -> Decimal:
        return sum((line.subtotal for line in self.lines), Decimal("0"))

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self.lines)

    @property
    def is_empty(self) -> bool:
        return not self.lines

    def get_line(self, product_id: int) -> Optional[CartLine]:
        for line in self.lines:
            if line.product.id == product_id:
                return line
        return None

    def add(self, product: Product, quantity: int = 1) -> None:
        """Agregar producto; si ya existe se incrementa la cantidad"""
        if quantity <= 0:
            return

        lines = list(self.lines)
        existing = self.get_line(product.id)

        if existing:
            existing.quantity += quantity
        else:
            lines.append(CartLine(
                product=product,
                quantity=quantity,
                precio_original=product.precio_venta,
                descuento_aplicado=Decimal("0"),
                porcentaje_descuento=Decimal("0"),
                observacion="",
            ))

        self.lines_store.set(lines)

    def remove(self, product_id: int) -> None:
        self.lines_store.set([line for line in self.lines if line.product.id != product_id])

    def set_quantity(self, product_id: int, quantity: int) -> None:
        if quantity <= 0:
            self.remove(product_id)
            return

        line = self.get_line(product_id)
        if line:
            line.quantity = quantity
            self.lines_store.set(list(self.lines))

    def apply_discount(self, product_id: int, amount: Amount) -> None:
        """
        Aplicar descuento por unidad.

        El monto se acota a [0, precio_original]; el porcentaje se deriva
        del monto acotado.
        """
        line = self.get_line(product_id)
        if not line:
            return

        descuento = min(max(Decimal("0"), to_decimal(amount)), line.precio_original)
        line.descuento_aplicado = descuento
        line.porcentaje_descuento = discount_percentage(descuento, line.precio_original)
        self.lines_store.set(list(self.lines))

    def set_observation(self, product_id: int, text: str) -> None:
        line = self.get_line(product_id)
        if line:
            line.observacion = text
            self.lines_store.set(list(self.lines))

    def clear(self) -> None:
        self.lines_store.set([])
