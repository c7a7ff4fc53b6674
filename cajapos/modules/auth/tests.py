"""
Tests para la sesión de usuario

Cubre:
- Estado inicial y publicación tras login/logout
- Perfil con nombre de rol (join roles!inner)
- Usuario autenticado sin perfil cuando la consulta falla
- Endpoint de diagnóstico /api/test-auth
"""

import pytest

from cajapos.conftest import AUTH_SESSION, AUTH_USER, request_json
from cajapos.modules.auth.schemas import AuthState, CompanyCreate
from cajapos.modules.auth.service import AuthService

PROFILE_ROW = {
    "id": 3,
    "nombres": "Ana Quispe",
    "usuario": "ana",
    "direccion": "Av. Blanco Galindo",
    "telefono": "70000000",
    "id_rol": 2,
    "estado": "activo",
    "roles": {"nombre": "cajero"},
}


# ===== FIXTURES =====

@pytest.fixture
def auth(supabase, backend):
    backend.on("POST", "/auth/v1/token", json_body=AUTH_SESSION)
    backend.on("POST", "/auth/v1/logout", status_code=204)
    return AuthService(supabase)


# ===== TESTS DEL SERVICIO =====

class TestAuthService:

    def test_initial_state_is_loading(self, auth):
        state = auth.state.get()
        assert state.loading is True
        assert state.user is None

    async def test_init_without_session(self, auth):
        await auth.init()

        assert auth.state.get() == AuthState(user=None, profile=None, loading=False)

    async def test_sign_in_publishes_profile(self, auth, backend):
        backend.on("GET", "/rest/v1/usuarios", json_body=PROFILE_ROW)
        await auth.init()

        await auth.sign_in("cajero@tienda.bo", "secreto")

        state = auth.state.get()
        assert state.is_authenticated
        assert state.profile.role == "cajero"
        assert state.profile.nombres == "Ana Quispe"
        request = backend.calls("GET", "/rest/v1/usuarios")[0]
        assert request.url.params["id_auth"] == f"eq.{AUTH_USER['id']}"
        assert "roles!inner(nombre)" in request.url.params["select"]
        assert request.headers["Authorization"] == "Bearer user-token"

    async def test_profile_failure_keeps_user(self, auth, backend):
        """Test si el perfil falla se publica el usuario con profile=None"""
        backend.on("GET", "/rest/v1/usuarios", json_body={"message": "no rows"}, status_code=406)
        await auth.init()

        await auth.sign_in("cajero@tienda.bo", "secreto")

        state = auth.state.get()
        assert state.user == AUTH_USER
        assert state.profile is None
        assert state.loading is False

    async def test_sign_out_clears_state(self, auth, backend):
        backend.on("GET", "/rest/v1/usuarios", json_body=PROFILE_ROW)
        await auth.init()
        await auth.sign_in("cajero@tienda.bo", "secreto")

        await auth.sign_out()

        assert not auth.state.get().is_authenticated
        assert len(backend.calls("POST", "/auth/v1/logout")) == 1

    async def test_close_stops_listening(self, auth, backend):
        await auth.init()
        auth.close()

        await auth.sign_in("cajero@tienda.bo", "secreto")

        assert auth.state.get().user is None

    async def test_create_company(self, auth, backend):
        backend.on_rpc("crear_empresa", json_body={"id_empresa": 1})

        result = await auth.create_company(CompanyCreate(nombre="Tienda Don Pepe"))

        assert result == {"id_empresa": 1}
        assert request_json(backend.rpc_calls("crear_empresa")[0]) == {
            "_nombre": "Tienda Don Pepe",
            "_direccion_fiscal": "",
            "_simbolo_moneda": "Bs",
        }


# ===== TESTS DEL ENDPOINT =====

class TestAuthEndpoint:
    """Tests para POST /api/test-auth"""

    def test_auth_ok(self, api):
        test_client, backend = api
        backend.on("POST", "/auth/v1/token", json_body=AUTH_SESSION)
        backend.on("GET", "/rest/v1/usuarios", json_body=PROFILE_ROW)

        response = test_client.post("/api/test-auth", json={"email": "cajero@tienda.bo", "password": "secreto"})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["auth_data"]["id"] == AUTH_USER["id"]
        assert body["profile_data"]["roles"]["nombre"] == "cajero"

    def test_auth_failed(self, api):
        test_client, backend = api
        backend.on("POST", "/auth/v1/token", json_body={"error": "invalid_grant",
                                                         "error_description": "Invalid login credentials"},
                   status_code=400)

        response = test_client.post("/api/test-auth", json={"email": "cajero@tienda.bo", "password": "mal"})

        assert response.status_code == 401
        assert response.json()["error"] == "Authentication failed"
        assert response.json()["details"]["message"] == "Invalid login credentials"

    def test_user_query_failed(self, api):
        test_client, backend = api
        backend.on("POST", "/auth/v1/token", json_body=AUTH_SESSION)
        backend.on("GET", "/rest/v1/usuarios", json_body={"message": "permission denied", "code": "42501"},
                   status_code=403)

        response = test_client.post("/api/test-auth", json={"email": "cajero@tienda.bo", "password": "secreto"})

        assert response.status_code == 500
        body = response.json()
        assert body["error"] == "User query failed"
        assert body["details"]["code"] == "42501"
        assert body["user_id"] == AUTH_USER["id"]

    def test_invalid_email(self, api):
        test_client, _ = api

        response = test_client.post("/api/test-auth", json={"email": "no-es-email", "password": "x"})

        assert response.status_code == 422
