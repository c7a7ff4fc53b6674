"""
Endpoint de diagnóstico de autenticación.

Reproduce paso a paso el login y la resolución del perfil para
identificar en qué punto falla (auth, fila de usuario o join con roles).
"""
from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
import logging

from cajapos.database.client import GatewayError
from cajapos.dependencies.clientDependencies import client_dependency
from cajapos.modules.auth.schemas import AuthProbeRequest
from cajapos.modules.auth.service import PROFILE_COLUMNS

logger = logging.getLogger(__name__)

auth_router = APIRouter(prefix="/api", tags=["Auth"])


@auth_router.post("/test-auth")
async def check_auth(data: AuthProbeRequest, client: client_dependency):
    try:
        # 1. Autenticación
        try:
            auth_data = await client.auth.sign_in_with_password(data.email, data.password)
        except GatewayError as e:
            logger.error(f"Auth error: {e.message}")
            return JSONResponse(
                status_code=status.HTTP_401_UNAUTHORIZED,
                content={"error": "Authentication failed", "details": e.to_dict()}
            )

        user = auth_data.get("user") or {}

        # 2. Consulta directa a usuarios
        try:
            user_response = await (
                client.table("usuarios").select("*").eq("id_auth", user.get("id")).single().execute()
            )
        except GatewayError as e:
            logger.error(f"User query error: {e.message}")
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={"error": "User query failed", "details": e.to_dict(), "user_id": user.get("id")}
            )

        # 3. Consulta con join a roles
        try:
            profile_response = await (
                client.table("usuarios").select(PROFILE_COLUMNS).eq("id_auth", user.get("id")).single().execute()
            )
        except GatewayError as e:
            logger.error(f"Profile query error: {e.message}")
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={"error": "Profile query failed", "details": e.to_dict(), "user_data": user_response.data}
            )

        return {
            "success": True,
            "auth_data": user,
            "user_data": user_response.data,
            "profile_data": profile_response.data,
        }

    except Exception as e:
        logger.error(f"Unexpected error: {str(e)}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Unexpected error", "details": str(e)}
        )
