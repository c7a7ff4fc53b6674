"""
Tests para el coordinador del punto de venta
"""

import pytest

from cajapos.conftest import make_product, request_json
from cajapos.modules.pos.service import POSService

OPEN_ROW = {"id_cierre_caja": 12, "id_caja": 1, "fecha_inicio": None, "descripcion_caja": "Caja 1"}


@pytest.fixture
def pos(supabase, backend):
    backend.on("GET", "/rest/v1/productos", json_body=[], headers={"Content-Range": "*/0"})
    backend.on("GET", "/rest/v1/categorias", json_body=[])
    return POSService(supabase, page_size=20)


class TestPOSService:

    async def test_cannot_sell_without_session(self, pos, backend):
        backend.on_rpc("get_open_cierre_caja", json_body=[])
        await pos.start()

        pos.cart.add(make_product())
        result = await pos.process_sale(id_usuario=3, monto_efectivo=100)

        assert not pos.can_sell
        assert result.message == "No hay una caja abierta actualmente"
        assert backend.rpc_calls("registrar_venta") == []

    async def test_process_sale_uses_session_and_cart_total(self, pos, backend):
        backend.on_rpc("get_open_cierre_caja", json_body=[OPEN_ROW])
        backend.on_rpc("registrar_venta", json_body=[{"id_venta": 5, "mensaje": None}])
        await pos.start()
        assert pos.can_sell

        pos.cart.add(make_product(precio_venta="100"), 2)
        result = await pos.process_sale(id_usuario=3, monto_efectivo=150, monto_qr=50)

        assert result.success
        assert result.venta_id == 5
        assert pos.cart.is_empty
        body = request_json(backend.rpc_calls("registrar_venta")[0])
        assert body["_id_cierre_caja"] == 12
        assert body["_monto_total"] == 200.0
        assert body["_monto_qr"] == 50.0
        assert backend.calls("GET", "/rest/v1/productos")[0].headers["Range"] == "0-19"

    async def test_close_current_session_returns_summary(self, pos, backend):
        backend.on("POST", "/auth/v1/token", json_body={"access_token": "t", "user": {"id": "auth-1"}})
        backend.on("GET", "/auth/v1/user", json_body={"id": "auth-1"})
        backend.on("GET", "/rest/v1/usuarios", json_body={"id": 3})
        backend.on_rpc("get_open_cierre_caja", json_body=[OPEN_ROW])
        backend.on_rpc("cerrar_caja", json_body="Caja cerrada")
        backend.on_rpc("get_cierre_caja_details", json_body={"success": True, "data": {"total_ventas": 200}})
        await pos.client.auth.sign_in_with_password("cajero@tienda.bo", "secreto")
        await pos.start()

        result = await pos.close_current_session(500)

        assert result.success
        assert result.message == "Caja cerrada"
        assert result.data.total_ventas == 200

    async def test_close_summary_for_closed_session_not_cached_one(self, pos, backend):
        """Test el resumen es del cierre que cerró el backend aunque la sesión en memoria sea otra"""
        backend.on("POST", "/auth/v1/token", json_body={"access_token": "t", "user": {"id": "auth-1"}})
        backend.on("GET", "/auth/v1/user", json_body={"id": "auth-1"})
        backend.on("GET", "/rest/v1/usuarios", json_body={"id": 3})
        backend.on_rpc("get_open_cierre_caja", json_body=[OPEN_ROW])
        backend.on_rpc("cerrar_caja", json_body="Caja cerrada")
        backend.on_rpc("get_cierre_caja_details", json_body={"success": True, "data": {"total_ventas": 80}})
        await pos.client.auth.sign_in_with_password("cajero@tienda.bo", "secreto")
        await pos.start()

        backend.on_rpc("get_open_cierre_caja", json_body=[{**OPEN_ROW, "id_cierre_caja": 13}])
        result = await pos.close_current_session(500)

        assert result.success
        assert request_json(backend.rpc_calls("cerrar_caja")[0])["_id_cierre_caja"] == 13
        assert request_json(backend.rpc_calls("get_cierre_caja_details")[0]) == {"p_cierre_id": 13}
        assert result.data.total_ventas == 80

    async def test_close_without_start_still_fetches_summary(self, pos, backend):
        backend.on("POST", "/auth/v1/token", json_body={"access_token": "t", "user": {"id": "auth-1"}})
        backend.on("GET", "/auth/v1/user", json_body={"id": "auth-1"})
        backend.on("GET", "/rest/v1/usuarios", json_body={"id": 3})
        backend.on_rpc("get_open_cierre_caja", json_body=[OPEN_ROW])
        backend.on_rpc("cerrar_caja", json_body="Caja cerrada")
        backend.on_rpc("get_cierre_caja_details", json_body={"success": True, "data": {"total_ventas": 200}})
        await pos.client.auth.sign_in_with_password("cajero@tienda.bo", "secreto")

        assert pos.cash_session.current_session.get() is None
        result = await pos.close_current_session(500)

        assert result.success
        assert request_json(backend.rpc_calls("get_cierre_caja_details")[0]) == {"p_cierre_id": 12}
        assert result.data.total_ventas == 200

    async def test_close_summary_failure_keeps_success(self, pos, backend):
        backend.on("POST", "/auth/v1/token", json_body={"access_token": "t", "user": {"id": "auth-1"}})
        backend.on("GET", "/auth/v1/user", json_body={"id": "auth-1"})
        backend.on("GET", "/rest/v1/usuarios", json_body={"id": 3})
        backend.on_rpc("get_open_cierre_caja", json_body=[OPEN_ROW])
        backend.on_rpc("cerrar_caja", json_body="Caja cerrada")
        backend.on_rpc("get_cierre_caja_details", json_body={"success": False, "message": "Cierre no encontrado"})
        await pos.client.auth.sign_in_with_password("cajero@tienda.bo", "secreto")

        result = await pos.close_current_session(500)

        assert result.success
        assert result.message == "Caja cerrada"
        assert result.data is None
