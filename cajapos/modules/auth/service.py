"""
Puente entre la sesión de Supabase Auth y el perfil de aplicación.

Publica en un Store el estado {user, profile, loading}. Si el perfil no
se puede resolver, el usuario autenticado se publica igual con
profile=None.
"""
import logging
from typing import Any, Callable, Dict, Optional

from cajapos.core.store import Store
from cajapos.database.client import SupabaseClient
from cajapos.modules.auth.schemas import AuthState, CompanyCreate, UserProfile

logger = logging.getLogger(__name__)

PROFILE_COLUMNS = """
    id,
    nombres,
    usuario,
    direccion,
    telefono,
    id_rol,
    estado,
    roles!inner(nombre)
"""


class AuthService:
    """
    Servicio de sesión de usuario.
    """

    def __init__(self, client: SupabaseClient):
        self.client = client
        self.state: Store[AuthState] = Store(AuthState())
        self._unsubscribe: Optional[Callable[[], None]] = None

    async def init(self) -> None:
        """Cargar la sesión actual y escuchar cambios de autenticación"""
        session = await self.client.auth.get_session()
        await self._apply_session(session)

        if self._unsubscribe is None:
            self._unsubscribe = self.client.auth.on_auth_state_change(self._on_auth_state_change)

    def close(self) -> None:
        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None

    async def _on_auth_state_change(self, event: str, session: Optional[Dict[str, Any]]) -> None:
        logger.debug(f"Auth event received: {event}")
        await self._apply_session(session)

    async def _apply_session(self, session: Optional[Dict[str, Any]]) -> None:
        user = session.get("user") if session else None
        if user:
            await self.load_user_profile(user)
        else:
            self.state.set(AuthState(user=None, profile=None, loading=False))

    async def fetch_profile(self, auth_user_id: str) -> UserProfile:
        response = await (
            self.client.table("usuarios")
            .select(PROFILE_COLUMNS)
            .eq("id_auth", auth_user_id)
            .single()
            .execute()
        )
        row = dict(response.data)
        roles = row.pop("roles", None) or {}
        row["role"] = roles.get("nombre")
        return UserProfile.model_validate(row)

    async def load_user_profile(self, user: Dict[str, Any]) -> None:
        try:
            profile = await self.fetch_profile(user["id"])
            self.state.set(AuthState(user=user, profile=profile, loading=False))
        except Exception as e:
            logger.error(f"Error loading user profile: {str(e)}")
            self.state.set(AuthState(user=user, profile=None, loading=False))

    async def sign_in(self, email: str, password: str) -> Dict[str, Any]:
        return await self.client.auth.sign_in_with_password(email, password)

    async def sign_up(self, email: str, password: str) -> Dict[str, Any]:
        return await self.client.auth.sign_up(email, password)

    async def sign_out(self) -> None:
        await self.client.auth.sign_out()

    async def create_company(self, company_data: CompanyCreate) -> Any:
        """Crear empresa para el usuario autenticado vía la RPC crear_empresa"""
        return await self.client.rpc("crear_empresa", {
            "_nombre": company_data.nombre,
            "_direccion_fiscal": company_data.direccion_fiscal,
            "_simbolo_moneda": company_data.simbolo_moneda,
        })
