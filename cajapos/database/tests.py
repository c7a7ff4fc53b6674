"""
Tests para el cliente del backend

Cubre:
- Construcción de consultas PostgREST y cabeceras
- Conteo desde Content-Range
- Conversión de respuestas no exitosas y fallas de transporte a GatewayError
- Eventos de sesión de auth y renovación del token vencido
- Operaciones de storage
"""

import httpx
import pytest
from decimal import Decimal

from cajapos.conftest import AUTH_SESSION, request_json
from cajapos.database.client import GatewayError, _parse_content_range, create_client


class TestContentRange:

    @pytest.mark.parametrize("header,expected", [
        ("0-9/42", 42),
        ("*/0", 0),
        ("0-9/*", None),
        (None, None),
        ("", None),
    ])
    def test_parse(self, header, expected):
        assert _parse_content_range(header) == expected


class TestTableQuery:

    async def test_headers_and_params(self, supabase, backend):
        backend.on("GET", "/rest/v1/productos", json_body=[{"id": 1}], headers={"Content-Range": "0-0/1"})

        response = await (
            supabase.table("productos")
            .select("id,\n  nombre", count="exact")
            .eq("activo", True)
            .eq("id_categoria", None)
            .order("nombre", desc=True)
            .limit(5)
            .execute()
        )

        assert response.data == [{"id": 1}]
        assert response.count == 1
        request = backend.calls("GET", "/rest/v1/productos")[0]
        assert request.url.params["select"] == "id,nombre"
        assert request.url.params["activo"] == "eq.true"
        assert request.url.params["id_categoria"] == "eq.null"
        assert request.url.params["order"] == "nombre.desc"
        assert request.url.params["limit"] == "5"
        assert request.headers["apikey"] == "anon-key"
        assert request.headers["Authorization"] == "Bearer anon-key"

    async def test_error_response(self, supabase, backend):
        backend.on("GET", "/rest/v1/productos", status_code=400, json_body={
            "message": "column productos.foo does not exist",
            "code": "42703",
            "details": None,
            "hint": "Perhaps you meant productos.id",
        })

        with pytest.raises(GatewayError) as exc_info:
            await supabase.table("productos").select("foo").execute()

        error = exc_info.value
        assert error.message == "column productos.foo does not exist"
        assert error.code == "42703"
        assert error.status_code == 400
        assert error.to_dict()["hint"] == "Perhaps you meant productos.id"

    async def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = create_client("http://supabase.test", "anon-key", transport=httpx.MockTransport(handler))
        async with client:
            with pytest.raises(GatewayError) as exc_info:
                await client.rpc("get_open_cierre_caja")

        assert "connection refused" in exc_info.value.message

    async def test_rpc_serializes_decimals(self, supabase, backend):
        backend.on_rpc("abrir_caja_simple", json_body=[])

        await supabase.rpc("abrir_caja_simple", {"_monto_apertura": Decimal("10.25")})

        assert request_json(backend.rpc_calls("abrir_caja_simple")[0]) == {"_monto_apertura": 10.25}


class TestAuthClient:

    async def test_sign_in_emits_event(self, supabase, backend):
        backend.on("POST", "/auth/v1/token", json_body=AUTH_SESSION)
        events = []

        async def listener(event, session):
            events.append((event, session is not None))

        unsubscribe = supabase.auth.on_auth_state_change(listener)
        await supabase.auth.sign_in_with_password("cajero@tienda.bo", "secreto")
        await supabase.auth.sign_out()
        unsubscribe()
        await supabase.auth.sign_in_with_password("cajero@tienda.bo", "secreto")

        assert events == [("SIGNED_IN", True), ("SIGNED_OUT", False)]
        token_request = backend.calls("POST", "/auth/v1/token")[0]
        assert token_request.url.params["grant_type"] == "password"

    async def test_expired_session_is_refreshed(self, supabase, backend):
        """Test un access token vencido se renueva antes de la siguiente llamada"""
        def token(request):
            if request.url.params["grant_type"] == "password":
                return httpx.Response(200, json={**AUTH_SESSION, "access_token": "expired",
                                                 "refresh_token": "r1", "expires_at": 1})
            return httpx.Response(200, json={**AUTH_SESSION, "access_token": "fresh",
                                             "refresh_token": "r2", "expires_in": 3600})

        backend.on("POST", "/auth/v1/token", handler=token)
        backend.on_rpc("get_open_cierre_caja", json_body=[])
        events = []

        async def listener(event, session):
            events.append(event)

        await supabase.auth.sign_in_with_password("cajero@tienda.bo", "secreto")
        supabase.auth.on_auth_state_change(listener)

        await supabase.rpc("get_open_cierre_caja")
        await supabase.rpc("get_open_cierre_caja")

        refreshes = [r for r in backend.calls("POST", "/auth/v1/token")
                     if r.url.params["grant_type"] == "refresh_token"]
        assert len(refreshes) == 1
        assert request_json(refreshes[0]) == {"refresh_token": "r1"}
        assert refreshes[0].headers["Authorization"] == "Bearer anon-key"
        assert [r.headers["Authorization"] for r in backend.rpc_calls("get_open_cierre_caja")] == [
            "Bearer fresh", "Bearer fresh"
        ]
        assert events == ["TOKEN_REFRESHED"]
        assert not supabase.auth.is_expired()

    async def test_valid_session_not_refreshed(self, supabase, backend):
        backend.on("POST", "/auth/v1/token", json_body={**AUTH_SESSION, "refresh_token": "r1", "expires_in": 3600})
        backend.on_rpc("get_open_cierre_caja", json_body=[])

        await supabase.auth.sign_in_with_password("cajero@tienda.bo", "secreto")
        await supabase.rpc("get_open_cierre_caja")

        assert len(backend.calls("POST", "/auth/v1/token")) == 1
        assert backend.rpc_calls("get_open_cierre_caja")[0].headers["Authorization"] == "Bearer user-token"

    async def test_expired_without_refresh_token(self, supabase, backend):
        backend.on("POST", "/auth/v1/token", json_body={**AUTH_SESSION, "expires_at": 1})
        await supabase.auth.sign_in_with_password("cajero@tienda.bo", "secreto")

        with pytest.raises(GatewayError) as exc_info:
            await supabase.rpc("get_open_cierre_caja")

        assert exc_info.value.status_code == 401
        assert backend.rpc_calls("get_open_cierre_caja") == []

    async def test_sign_out_without_session_skips_logout(self, supabase, backend):
        await supabase.auth.sign_out()
        assert backend.requests == []

    async def test_get_user_without_session(self, supabase, backend):
        assert await supabase.auth.get_user() is None
        assert backend.requests == []


class TestStorage:

    async def test_upload_and_public_url(self, supabase, backend):
        backend.on("POST", "/storage/v1/object/product-images/productos/a.jpg",
                   json_body={"Key": "product-images/productos/a.jpg"})
        bucket = supabase.storage.from_("product-images")

        result = await bucket.upload("productos/a.jpg", b"data", content_type="image/jpeg", cache_control="3600")

        assert result == {"path": "productos/a.jpg", "full_path": "product-images/productos/a.jpg"}
        request = backend.requests[0]
        assert request.headers["Content-Type"] == "image/jpeg"
        assert request.headers["cache-control"] == "max-age=3600"
        assert request.headers["x-upsert"] == "false"
        assert request.content == b"data"
        assert bucket.get_public_url("productos/a.jpg") == (
            "http://supabase.test/storage/v1/object/public/product-images/productos/a.jpg"
        )

    async def test_remove_and_list(self, supabase, backend):
        backend.on("DELETE", "/storage/v1/object/product-images", json_body=[])
        backend.on("POST", "/storage/v1/object/list/product-images", json_body=[{"name": "a.jpg"}])
        bucket = supabase.storage.from_("product-images")

        await bucket.remove(["productos/a.jpg"])
        files = await bucket.list("productos", limit=1)

        assert files == [{"name": "a.jpg"}]
        assert request_json(backend.calls("DELETE", "/storage/v1/object/product-images")[0]) == {
            "prefixes": ["productos/a.jpg"]
        }
        assert request_json(backend.calls("POST", "/storage/v1/object/list/product-images")[0])["limit"] == 1
