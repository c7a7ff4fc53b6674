"""
Fixtures compartidas: backend Supabase simulado con httpx.MockTransport.
"""
import json
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, Tuple

import httpx
import pytest
from fastapi.testclient import TestClient

from cajapos.database.client import SupabaseClient
from cajapos.dependencies.clientDependencies import get_supabase_client
from cajapos.main import app
from cajapos.modules.catalog.schemas import Product

SUPABASE_TEST_URL = "http://supabase.test"

Handler = Callable[[httpx.Request], Any]


class FakeBackend:
    """
    Registra respuestas por (método, ruta) y guarda cada request recibido.

    Una ruta terminada en "*" coincide por prefijo (útil para storage, donde
    el nombre del objeto es aleatorio).
    """

    def __init__(self):
        self.routes: Dict[Tuple[str, str], Handler] = {}
        self.requests: List[httpx.Request] = []

    def on(self, method: str, path: str, json_body: Any = None, status_code: int = 200,
           headers: Optional[Dict[str, str]] = None, handler: Optional[Handler] = None) -> None:
        if handler is None:
            def handler(request: httpx.Request) -> httpx.Response:
                return httpx.Response(status_code, json=json_body, headers=headers)
        self.routes[(method, path)] = handler

    def on_rpc(self, fn: str, json_body: Any = None, status_code: int = 200) -> None:
        self.on("POST", f"/rest/v1/rpc/{fn}", json_body=json_body, status_code=status_code)

    def calls(self, method: str, path: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.method == method and self._matches(path, r.url.path)]

    def rpc_calls(self, fn: str) -> List[httpx.Request]:
        return self.calls("POST", f"/rest/v1/rpc/{fn}")

    @staticmethod
    def _matches(route_path: str, path: str) -> bool:
        if route_path.endswith("*"):
            return path.startswith(route_path[:-1])
        return route_path == path

    def _find(self, request: httpx.Request):
        for (method, path), route in self.routes.items():
            if method == request.method and self._matches(path, request.url.path):
                return route
        return None

    def __call__(self, request: httpx.Request):
        self.requests.append(request)
        route = self._find(request)
        if route is None:
            return httpx.Response(404, json={"message": f"No route for {request.method} {request.url.path}"})
        return route(request)


def request_json(request: httpx.Request) -> Any:
    return json.loads(request.content)


def make_product(id: int = 1, precio_venta: str = "100", precio_compra: str = "60",
                 nombre: Optional[str] = None, stock: int = 10) -> Product:
    return Product(
        id=id,
        nombre=nombre or f"Producto {id}",
        precio_venta=Decimal(precio_venta),
        precio_compra=Decimal(precio_compra),
        stock=stock,
    )


AUTH_USER = {"id": "auth-uuid-1", "email": "cajero@tienda.bo"}
AUTH_SESSION = {"access_token": "user-token", "token_type": "bearer", "user": AUTH_USER}


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
async def supabase(backend):
    client = SupabaseClient(url=SUPABASE_TEST_URL, key="anon-key", transport=httpx.MockTransport(backend))
    yield client
    await client.aclose()


@pytest.fixture
async def signed_in(supabase, backend):
    """Cliente con sesión iniciada y /auth/v1/user respondiendo"""
    backend.on("POST", "/auth/v1/token", json_body=AUTH_SESSION)
    backend.on("GET", "/auth/v1/user", json_body=AUTH_USER)
    await supabase.auth.sign_in_with_password("cajero@tienda.bo", "secreto")
    return supabase


@pytest.fixture
def api():
    """TestClient con el cliente de Supabase de cada request apuntando a un FakeBackend"""
    fake = FakeBackend()

    async def override():
        client = SupabaseClient(url=SUPABASE_TEST_URL, key="anon-key", transport=httpx.MockTransport(fake))
        try:
            yield client
        finally:
            await client.aclose()

    app.dependency_overrides[get_supabase_client] = override
    with TestClient(app) as test_client:
        yield test_client, fake
    app.dependency_overrides.clear()
