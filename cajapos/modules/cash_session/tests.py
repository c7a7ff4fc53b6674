"""
Tests para sesiones de caja

Cubre:
- Verificación de caja abierta (idempotente, errores => sin sesión, token vencido)
- Montos no numéricos rechazados sin llamar al backend
- Apertura con rechazo lógico del backend
- Cierre con detección del marcador "Error:"
- Cierre por el usuario autenticado (cadena sesión -> usuario -> cierre)
- Resumen de cierre calculado por el backend
"""

import httpx
import pytest
from decimal import Decimal

from cajapos.conftest import AUTH_SESSION, AUTH_USER, request_json
from cajapos.modules.cash_session.schemas import CloseSummary
from cajapos.modules.cash_session.service import CashSessionService

OPEN_ROW = {
    "id_cierre_caja": 12,
    "id_caja": 1,
    "fecha_inicio": "2026-10-19T12:00:00+00:00",
    "descripcion_caja": "Caja principal",
}


# ===== FIXTURES =====

@pytest.fixture
def cash(supabase):
    return CashSessionService(supabase)


@pytest.fixture
def cash_signed_in(signed_in):
    return CashSessionService(signed_in)


# ===== TESTS DE VERIFICACIÓN =====

class TestCheckOpenSession:

    async def test_open_session_found(self, cash, backend):
        backend.on_rpc("get_open_cierre_caja", json_body=[OPEN_ROW])

        session = await cash.check_open_session()

        assert session.id_cierre_caja == 12
        assert cash.current_session.get() == session
        assert cash.is_open

    async def test_check_is_idempotent(self, cash, backend):
        """Test dos verificaciones sin cambios remotos publican lo mismo"""
        backend.on_rpc("get_open_cierre_caja", json_body=[OPEN_ROW])

        first = await cash.check_open_session()
        second = await cash.check_open_session()

        assert first == second
        assert cash.current_session.get() == second

    async def test_no_open_session(self, cash, backend):
        backend.on_rpc("get_open_cierre_caja", json_body=[])

        assert await cash.check_open_session() is None
        assert not cash.is_open

    async def test_expired_login_is_refreshed(self, cash, backend):
        """Test con el token vencido se renueva y la caja abierta se encuentra"""
        def token(request):
            if request.url.params["grant_type"] == "password":
                return httpx.Response(200, json={**AUTH_SESSION, "access_token": "expired",
                                                 "refresh_token": "r1", "expires_at": 1})
            return httpx.Response(200, json={**AUTH_SESSION, "access_token": "fresh", "expires_in": 3600})

        def open_rows(request):
            if request.headers["Authorization"] != "Bearer fresh":
                return httpx.Response(401, json={"message": "JWT expired"})
            return httpx.Response(200, json=[OPEN_ROW])

        backend.on("POST", "/auth/v1/token", handler=token)
        backend.on("POST", "/rest/v1/rpc/get_open_cierre_caja", handler=open_rows)
        await cash.client.auth.sign_in_with_password("cajero@tienda.bo", "secreto")

        session = await cash.check_open_session()

        assert session.id_cierre_caja == 12

    async def test_error_clears_session(self, cash, backend):
        """Test un error al consultar deja el estado sin sesión"""
        backend.on_rpc("get_open_cierre_caja", json_body=[OPEN_ROW])
        await cash.check_open_session()

        backend.on_rpc("get_open_cierre_caja", json_body={"message": "timeout"}, status_code=500)
        assert await cash.check_open_session() is None
        assert cash.current_session.get() is None


# ===== TESTS DE APERTURA =====

class TestOpenSession:

    async def test_open_success_refreshes_state(self, cash, backend):
        backend.on_rpc("abrir_caja_simple", json_body=[{"id_cierre_caja": 12, "mensaje": "Caja abierta"}])
        backend.on_rpc("get_open_cierre_caja", json_body=[OPEN_ROW])

        result = await cash.open_session(Decimal("150.00"))

        assert result.success
        assert result.message == "Caja abierta"
        assert request_json(backend.rpc_calls("abrir_caja_simple")[0]) == {"_monto_apertura": 150.0}
        assert cash.current_session.get().id_cierre_caja == 12

    async def test_open_logical_rejection(self, cash, backend):
        """Test fila sin id => fallo con el mensaje del backend"""
        backend.on_rpc("abrir_caja_simple", json_body=[{"id_cierre_caja": None, "mensaje": "Ya existe una caja abierta"}])

        result = await cash.open_session(100)

        assert not result.success
        assert result.message == "Ya existe una caja abierta"
        assert backend.rpc_calls("get_open_cierre_caja") == []

    async def test_open_without_rows(self, cash, backend):
        backend.on_rpc("abrir_caja_simple", json_body=[])

        result = await cash.open_session(100)

        assert not result.success
        assert result.message == "Error desconocido al abrir la caja"

    async def test_open_negative_amount_rejected_locally(self, cash, backend):
        result = await cash.open_session(-1)

        assert not result.success
        assert backend.requests == []

    @pytest.mark.parametrize("monto", ["cien", "", "NaN"])
    async def test_open_invalid_amount(self, cash, backend, monto):
        """Test un monto no numérico devuelve fallo sin llamar al backend"""
        result = await cash.open_session(monto)

        assert not result.success
        assert result.message == f"Monto de apertura inválido: {monto}"
        assert backend.requests == []

    async def test_open_transport_error(self, cash, backend):
        backend.on_rpc("abrir_caja_simple", json_body={"message": "permission denied"}, status_code=403)

        result = await cash.open_session(100)

        assert not result.success
        assert result.message == "permission denied"


# ===== TESTS DE CIERRE =====

class TestCloseSession:

    async def test_close_success(self, cash, backend):
        backend.on_rpc("cerrar_caja", json_body="Caja cerrada. Diferencia: 0.00")
        backend.on_rpc("get_open_cierre_caja", json_body=[])

        result = await cash.close_session(12, 3, "500.50", 20)

        assert result.success
        assert result.message == "Caja cerrada. Diferencia: 0.00"
        assert result.data == 12
        assert request_json(backend.rpc_calls("cerrar_caja")[0]) == {
            "_id_cierre_caja": 12,
            "_id_usuario_cierre": 3,
            "_monto_real_contado_efectivo": 500.5,
            "_total_gastos_caja_chica": 20.0,
            "_monto_para_apertura_siguiente": 0.0,
        }
        assert cash.current_session.get() is None

    async def test_close_error_marker(self, cash, backend):
        """Test respuesta HTTP exitosa con "Error:" se trata como fallo"""
        backend.on_rpc("cerrar_caja", json_body="Error: caja ya cerrada")

        result = await cash.close_session(12, 3, 500)

        assert result.success is False
        assert result.message == "Error: caja ya cerrada"
        assert backend.rpc_calls("get_open_cierre_caja") == []

    @pytest.mark.parametrize("monto", ["abc", "nan", float("inf")])
    async def test_close_invalid_amount(self, cash, backend, monto):
        result = await cash.close_session(12, 3, monto)

        assert not result.success
        assert result.message.startswith("Monto inválido")
        assert backend.requests == []

    async def test_close_without_session_id(self, cash, backend):
        result = await cash.close_session(None, 3, 500)

        assert not result.success
        assert backend.requests == []


class TestCloseSessionBySelf:

    async def test_no_open_session_makes_no_close_call(self, cash_signed_in, backend):
        """Test sin caja abierta no se llama a cerrar_caja"""
        backend.on_rpc("get_open_cierre_caja", json_body=[])

        result = await cash_signed_in.close_session_by_self(500)

        assert not result.success
        assert result.message == "No hay una caja abierta actualmente"
        assert backend.rpc_calls("cerrar_caja") == []

    async def test_without_user(self, cash, backend):
        """Test sin sesión de auth no se puede cerrar"""
        backend.on_rpc("get_open_cierre_caja", json_body=[OPEN_ROW])

        result = await cash.close_session_by_self(500)

        assert result.message == "Error al obtener información del usuario"
        assert backend.rpc_calls("cerrar_caja") == []

    async def test_user_row_missing(self, cash_signed_in, backend):
        backend.on_rpc("get_open_cierre_caja", json_body=[OPEN_ROW])
        backend.on("GET", "/rest/v1/usuarios", json_body={"message": "JSON object requested, multiple (or no) rows returned"},
                   status_code=406)

        result = await cash_signed_in.close_session_by_self(500)

        assert result.message == "Error al obtener el ID del usuario"
        assert backend.rpc_calls("cerrar_caja") == []

    async def test_full_chain(self, cash_signed_in, backend):
        backend.on_rpc("get_open_cierre_caja", json_body=[OPEN_ROW])
        backend.on("GET", "/rest/v1/usuarios", json_body={"id": 3})
        backend.on_rpc("cerrar_caja", json_body="Caja cerrada")

        result = await cash_signed_in.close_session_by_self(800, gastos_adicionales=15)

        assert result.success
        user_query = backend.calls("GET", "/rest/v1/usuarios")[0]
        assert user_query.url.params["id_auth"] == f"eq.{AUTH_USER['id']}"
        body = request_json(backend.rpc_calls("cerrar_caja")[0])
        assert body["_id_cierre_caja"] == 12
        assert body["_id_usuario_cierre"] == 3
        assert body["_monto_real_contado_efectivo"] == 800.0
        assert body["_total_gastos_caja_chica"] == 15.0
        assert body["_monto_para_apertura_siguiente"] == 0.0


# ===== TESTS DE RESUMEN =====

class TestCloseSummary:

    async def test_summary_success(self, cash, backend):
        backend.on_rpc("get_cierre_caja_details", json_body={
            "success": True,
            "data": {"total_ventas": 1000, "ganancia_bruta": 300, "ganancia_empresa": 210,
                     "ganancia_cajero": 90, "productos_vendidos": 42},
        })

        result = await cash.fetch_close_summary(12)

        assert result.success
        summary = result.data
        assert isinstance(summary, CloseSummary)
        assert summary.ganancia_empresa == Decimal("210")
        assert summary.model_extra["productos_vendidos"] == 42
        assert request_json(backend.rpc_calls("get_cierre_caja_details")[0]) == {"p_cierre_id": 12}
        assert cash.is_loading_summary.get() is False

    async def test_summary_backend_failure(self, cash, backend):
        backend.on_rpc("get_cierre_caja_details", json_body={"success": False, "message": "Cierre no encontrado"})

        result = await cash.fetch_close_summary(99)

        assert not result.success
        assert result.message == "Cierre no encontrado"


class TestGetSession:

    async def test_get_session_row(self, cash, backend):
        backend.on("GET", "/rest/v1/cierrecaja", json_body={
            "id": 12,
            "id_caja": 1,
            "id_usuario_apertura": 3,
            "fecha_inicio": "2026-10-19T12:00:00+00:00",
            "fecha_cierre": None,
            "monto_apertura_inicial": 150,
        })

        result = await cash.get_session(12)

        assert result.success
        assert result.data.is_open
        request = backend.calls("GET", "/rest/v1/cierrecaja")[0]
        assert request.headers["Accept"] == "application/vnd.pgrst.object+json"
