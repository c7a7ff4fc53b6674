"""
Tests para el registro de ventas

Cubre:
- Validaciones locales (sin caja, carrito vacío) sin llamada remota
- Payload de registrar_venta construido desde el carrito
- Rechazo lógico y respuesta vacía: el carrito no se toca
- Éxito: carrito vacío y catálogo recargado
"""

import pytest
from decimal import Decimal

from cajapos.conftest import make_product, request_json
from cajapos.modules.cart.service import CartService
from cajapos.modules.catalog.service import CatalogService
from cajapos.modules.sales.schemas import SaleLinePayload
from cajapos.modules.sales.service import SaleService


# ===== FIXTURES =====

@pytest.fixture
def cart():
    cart = CartService()
    cart.add(make_product(id=1, precio_venta="100", precio_compra="60"), 2)
    cart.apply_discount(1, 30)
    cart.add(make_product(id=2, precio_venta="5", precio_compra="3"), 1)
    cart.set_observation(2, "   ")
    return cart


@pytest.fixture
def catalog(supabase, backend):
    backend.on("GET", "/rest/v1/productos", json_body=[], headers={"Content-Range": "*/0"})
    return CatalogService(supabase)


@pytest.fixture
def sales(supabase, cart, catalog):
    return SaleService(supabase, cart, catalog)


async def submit(sales, cart, id_cierre_caja=12):
    return await sales.submit(
        id_cierre_caja=id_cierre_caja,
        id_usuario=3,
        monto_total=cart.total,
        monto_efectivo=cart.total,
        monto_qr=0,
        cart_lines=cart.lines,
    )


# ===== TESTS =====

class TestSalePayload:

    def test_line_payload_from_cart(self, cart):
        """Test precio efectivo, costo y observación vacía => None"""
        discounted = SaleLinePayload.from_cart_line(cart.get_line(1))
        assert discounted.precio_venta == Decimal("70")
        assert discounted.precio_original == Decimal("100")
        assert discounted.precio_compra == Decimal("60")
        assert discounted.porcentaje_descuento == Decimal("30.00")

        plain = SaleLinePayload.from_cart_line(cart.get_line(2))
        assert plain.observacion is None


class TestSubmitSale:

    async def test_success_clears_cart_and_reloads_catalog(self, sales, cart, backend):
        backend.on_rpc("registrar_venta", json_body=[{"id_venta": 77, "mensaje": "Venta registrada"}])

        result = await submit(sales, cart)

        assert result.success
        assert result.venta_id == 77
        assert result.message == "Venta registrada"
        assert cart.is_empty
        assert len(backend.calls("GET", "/rest/v1/productos")) == 1

        body = request_json(backend.rpc_calls("registrar_venta")[0])
        assert body["_id_cierre_caja"] == 12
        assert body["_id_usuario"] == 3
        assert body["_monto_total"] == 145.0
        assert body["_monto_qr"] == 0.0
        assert [d["id_producto"] for d in body["_detalles"]] == [1, 2]
        assert body["_detalles"][0]["precio_venta"] == 70.0
        assert body["_detalles"][0]["cantidad"] == 2

    async def test_empty_response_keeps_cart(self, sales, cart, backend):
        """Test cero filas => fallo y el carrito queda intacto"""
        backend.on_rpc("registrar_venta", json_body=[])

        result = await submit(sales, cart)

        assert result.success is False
        assert result.message == "No se recibió respuesta de la base de datos"
        assert len(cart.lines) == 2
        assert backend.calls("GET", "/rest/v1/productos") == []

    async def test_logical_rejection(self, sales, cart, backend):
        backend.on_rpc("registrar_venta", json_body=[{"id_venta": None, "mensaje": "Stock insuficiente"}])

        result = await submit(sales, cart)

        assert not result.success
        assert result.message == "Stock insuficiente"
        assert not cart.is_empty

    async def test_transport_error(self, sales, cart, backend):
        backend.on_rpc("registrar_venta", json_body={"message": "caja cerrada"}, status_code=400)

        result = await submit(sales, cart)

        assert not result.success
        assert result.message == "caja cerrada"
        assert not cart.is_empty

    async def test_without_session_no_remote_call(self, sales, cart, backend):
        result = await submit(sales, cart, id_cierre_caja=None)

        assert result.message == "No hay una caja abierta actualmente"
        assert backend.requests == []

    async def test_empty_cart_no_remote_call(self, sales, cart, backend):
        cart.clear()

        result = await submit(sales, cart)

        assert result.message == "El carrito está vacío"
        assert backend.requests == []
