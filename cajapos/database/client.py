"""
Cliente del backend Supabase sobre httpx.

Cubre las tres superficies que consume la aplicación:
- PostgREST: lecturas de tablas con filtros/paginación y llamadas RPC
- Auth: login, registro, logout, usuario actual, renovación del token
  y eventos de sesión
- Storage: subida, borrado, listado y URL pública de objetos

Cualquier respuesta no exitosa o falla de transporte se convierte en
GatewayError; las capas superiores deciden cómo normalizarla.
"""
import asyncio
import json
import logging
import time
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

import httpx
from pydantic import BaseModel

from cajapos.core.config import settings

logger = logging.getLogger(__name__)

AuthListener = Callable[[str, Optional[Dict[str, Any]]], Awaitable[None]]

SIGNED_IN = "SIGNED_IN"
SIGNED_OUT = "SIGNED_OUT"
TOKEN_REFRESHED = "TOKEN_REFRESHED"


class GatewayError(Exception):
    """Error devuelto por el backend o por el transporte HTTP"""

    def __init__(self, message: str, code: Optional[str] = None, details: Any = None,
                 hint: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details
        self.hint = hint
        self.status_code = status_code

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message": self.message,
            "code": self.code,
            "details": self.details,
            "hint": self.hint,
        }


class QueryResponse(BaseModel):
    data: Any = None
    count: Optional[int] = None


def _json_default(value: Any) -> Any:
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def dumps(payload: Any) -> str:
    return json.dumps(payload, default=_json_default)


def _format_filter_value(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _parse_content_range(header: Optional[str]) -> Optional[int]:
    # "0-9/42", "*/0"
    if not header or "/" not in header:
        return None
    total = header.split("/", 1)[1]
    return int(total) if total.isdigit() else None


def _decode(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


def _raise_for_response(response: httpx.Response) -> None:
    if response.is_success:
        return
    body = _decode(response)
    if not isinstance(body, dict):
        body = {}
    message = (
        body.get("message")
        or body.get("msg")
        or body.get("error_description")
        or body.get("error")
        or response.text
        or f"HTTP {response.status_code}"
    )
    raise GatewayError(
        message,
        code=str(body["code"]) if body.get("code") is not None else None,
        details=body.get("details"),
        hint=body.get("hint"),
        status_code=response.status_code,
    )


class TableQuery:
    """Constructor de consultas PostgREST para una tabla"""

    def __init__(self, client: "SupabaseClient", table: str):
        self._client = client
        self._table = table
        self._select = "*"
        self._params: List[Tuple[str, str]] = []
        self._headers: Dict[str, str] = {}

    def select(self, columns: str = "*", count: Optional[str] = None) -> "TableQuery":
        # PostgREST no admite espacios en la lista de columnas
        self._select = "".join(columns.split())
        if count:
            self._headers["Prefer"] = f"count={count}"
        return self

    def eq(self, column: str, value: Any) -> "TableQuery":
        self._params.append((column, f"eq.{_format_filter_value(value)}"))
        return self

    def ilike(self, column: str, pattern: str) -> "TableQuery":
        self._params.append((column, f"ilike.{pattern}"))
        return self

    def or_(self, filters: str) -> "TableQuery":
        self._params.append(("or", f"({filters})"))
        return self

    def order(self, column: str, desc: bool = False) -> "TableQuery":
        self._params.append(("order", f"{column}.{'desc' if desc else 'asc'}"))
        return self

    def limit(self, count: int) -> "TableQuery":
        self._params.append(("limit", str(count)))
        return self

    def range(self, start: int, end: int) -> "TableQuery":
        self._headers["Range-Unit"] = "items"
        self._headers["Range"] = f"{start}-{end}"
        return self

    def single(self) -> "TableQuery":
        self._headers["Accept"] = "application/vnd.pgrst.object+json"
        return self

    @property
    def params(self) -> List[Tuple[str, str]]:
        return [("select", self._select)] + self._params

    async def execute(self) -> QueryResponse:
        response = await self._client.request(
            "GET",
            f"{self._client.rest_url}/{self._table}",
            params=self.params,
            headers=self._headers,
        )
        return QueryResponse(
            data=_decode(response),
            count=_parse_content_range(response.headers.get("Content-Range")),
        )


class AuthClient:
    """
    Sesión de Supabase Auth mantenida en memoria.

    Antes de cada request autenticado se verifica expires_at; si el access
    token está por vencer se renueva con el refresh token y se emite
    TOKEN_REFRESHED a los listeners.
    """

    def __init__(self, client: "SupabaseClient"):
        self._client = client
        self._session: Optional[Dict[str, Any]] = None
        self._listeners: List[AuthListener] = []
        self._refresh_lock = asyncio.Lock()

    @property
    def access_token(self) -> Optional[str]:
        if self._session:
            return self._session.get("access_token")
        return None

    def is_expired(self) -> bool:
        expires_at = self._session.get("expires_at") if self._session else None
        if expires_at is None:
            return False
        return time.time() >= expires_at - settings.TOKEN_REFRESH_MARGIN

    async def ensure_fresh_session(self) -> None:
        if not self.is_expired():
            return
        async with self._refresh_lock:
            # Otra corrutina pudo renovarla mientras se esperaba el lock
            if self.is_expired():
                await self.refresh_session()

    async def refresh_session(self) -> Dict[str, Any]:
        refresh_token = self._session.get("refresh_token") if self._session else None
        if not refresh_token:
            raise GatewayError("Sesión expirada y sin refresh token", status_code=401)

        try:
            response = await self._client.request(
                "POST",
                f"{self._client.auth_url}/token",
                params={"grant_type": "refresh_token"},
                json_body={"refresh_token": refresh_token},
                headers={"Authorization": f"Bearer {self._client.key}"},
                refresh=False,
            )
        except GatewayError as e:
            logger.error(f"Error refreshing session: {e.message}")
            raise

        session = response.json()
        await self._set_session(session, TOKEN_REFRESHED)
        return session

    async def sign_in_with_password(self, email: str, password: str) -> Dict[str, Any]:
        response = await self._client.request(
            "POST",
            f"{self._client.auth_url}/token",
            params={"grant_type": "password"},
            json_body={"email": email, "password": password},
            refresh=False,
        )
        session = response.json()
        await self._set_session(session, SIGNED_IN)
        return session

    async def sign_up(self, email: str, password: str) -> Dict[str, Any]:
        response = await self._client.request(
            "POST",
            f"{self._client.auth_url}/signup",
            json_body={"email": email, "password": password},
            refresh=False,
        )
        data = response.json()
        # Con confirmación automática el registro ya trae sesión
        if isinstance(data, dict) and data.get("access_token"):
            await self._set_session(data, SIGNED_IN)
        return data

    async def sign_out(self) -> None:
        if self.access_token:
            await self._client.request("POST", f"{self._client.auth_url}/logout")
        await self._set_session(None, SIGNED_OUT)

    async def get_session(self) -> Optional[Dict[str, Any]]:
        return self._session

    async def get_user(self) -> Optional[Dict[str, Any]]:
        """Usuario autenticado según el servidor de auth, o None sin sesión"""
        if not self.access_token:
            return None
        response = await self._client.request("GET", f"{self._client.auth_url}/user")
        return response.json()

    def on_auth_state_change(self, callback: AuthListener) -> Callable[[], None]:
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    async def _set_session(self, session: Optional[Dict[str, Any]], event: str) -> None:
        if session and session.get("expires_at") is None and session.get("expires_in"):
            session = {**session, "expires_at": int(time.time()) + int(session["expires_in"])}
        self._session = session
        logger.debug(f"Auth state change: {event}")
        for listener in list(self._listeners):
            await listener(event, session)


class StorageBucket:
    def __init__(self, client: "SupabaseClient", bucket: str):
        self._client = client
        self.bucket = bucket

    async def upload(self, path: str, content: bytes, content_type: str = "application/octet-stream",
                     cache_control: str = "3600", upsert: bool = False) -> Dict[str, Any]:
        response = await self._client.request(
            "POST",
            f"{self._client.storage_url}/object/{self.bucket}/{path}",
            content=content,
            headers={
                "Content-Type": content_type,
                "cache-control": f"max-age={cache_control}",
                "x-upsert": "true" if upsert else "false",
            },
        )
        body = _decode(response) or {}
        return {"path": path, "full_path": body.get("Key") if isinstance(body, dict) else None}

    def get_public_url(self, path: str) -> str:
        return f"{self._client.storage_url}/object/public/{self.bucket}/{path}"

    async def remove(self, paths: List[str]) -> Any:
        response = await self._client.request(
            "DELETE",
            f"{self._client.storage_url}/object/{self.bucket}",
            json_body={"prefixes": paths},
        )
        return _decode(response)

    async def list(self, prefix: str = "", limit: int = 100, offset: int = 0) -> List[Dict[str, Any]]:
        response = await self._client.request(
            "POST",
            f"{self._client.storage_url}/object/list/{self.bucket}",
            json_body={
                "prefix": prefix,
                "limit": limit,
                "offset": offset,
                "sortBy": {"column": "name", "order": "asc"},
            },
        )
        return _decode(response) or []


class StorageClient:
    def __init__(self, client: "SupabaseClient"):
        self._client = client

    def from_(self, bucket: str) -> StorageBucket:
        return StorageBucket(self._client, bucket)

    async def list_buckets(self) -> List[Dict[str, Any]]:
        response = await self._client.request("GET", f"{self._client.storage_url}/bucket")
        return _decode(response) or []


class SupabaseClient:
    """Punto único de acceso al backend"""

    def __init__(self, url: Optional[str] = None, key: Optional[str] = None,
                 timeout: Optional[float] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.url = (url or settings.SUPABASE_URL).rstrip("/")
        self.key = key if key is not None else settings.SUPABASE_ANON_KEY
        self._http = httpx.AsyncClient(
            timeout=timeout or settings.REQUEST_TIMEOUT,
            transport=transport,
        )
        self.auth = AuthClient(self)
        self.storage = StorageClient(self)

    @property
    def rest_url(self) -> str:
        return f"{self.url}/rest/v1"

    @property
    def auth_url(self) -> str:
        return f"{self.url}/auth/v1"

    @property
    def storage_url(self) -> str:
        return f"{self.url}/storage/v1"

    def table(self, name: str) -> TableQuery:
        return TableQuery(self, name)

    async def rpc(self, fn: str, params: Optional[Dict[str, Any]] = None) -> Any:
        response = await self.request("POST", f"{self.rest_url}/rpc/{fn}", json_body=params or {})
        return _decode(response)

    async def request(self, method: str, url: str, *, params: Any = None, json_body: Any = None,
                      content: Optional[bytes] = None, headers: Optional[Dict[str, str]] = None,
                      refresh: bool = True) -> httpx.Response:
        if refresh:
            await self.auth.ensure_fresh_session()

        merged = {
            "apikey": self.key,
            "Authorization": f"Bearer {self.auth.access_token or self.key}",
        }
        merged.update(headers or {})
        if json_body is not None:
            content = dumps(json_body).encode("utf-8")
            merged.setdefault("Content-Type", "application/json")

        try:
            response = await self._http.request(method, url, params=params, content=content, headers=merged)
        except httpx.HTTPError as e:
            logger.error(f"HTTP error on {method} {url}: {e}")
            raise GatewayError(str(e) or e.__class__.__name__) from e

        _raise_for_response(response)
        return response

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> "SupabaseClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()


def create_client(url: Optional[str] = None, key: Optional[str] = None, **kwargs) -> SupabaseClient:
    return SupabaseClient(url=url, key=key, **kwargs)
