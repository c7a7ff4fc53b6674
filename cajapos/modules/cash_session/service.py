"""
Servicio de sesiones de caja (apertura, consulta y cierre).

La resolución de caja y usuario al abrir, el arqueo al cerrar y el reparto
de ganancias se hacen en las RPC del backend; este servicio solo orquesta
las llamadas y mantiene en memoria la sesión abierta actual.
"""
import logging
from decimal import Decimal, InvalidOperation
from typing import Optional

from cajapos.common.results import OperationResult
from cajapos.core.store import Store
from cajapos.database.client import SupabaseClient
from cajapos.modules.cart.service import Amount, to_decimal
from cajapos.modules.cash_session.schemas import (
    CashSession, CloseSummary, OpenCashSession, OpenSessionRow
)

logger = logging.getLogger(__name__)

ERROR_MARKER = "Error:"


def parse_amount(value: Amount) -> Optional[Decimal]:
    """Monto como Decimal finito, o None si no es numérico"""
    try:
        amount = to_decimal(value)
    except (InvalidOperation, ValueError):
        return None
    return amount if amount.is_finite() else None


class CashSessionService:
    """Orquestador del ciclo abierta -> cerrada de una caja"""

    def __init__(self, client: SupabaseClient):
        self.client = client
        self.current_session: Store[Optional[OpenCashSession]] = Store(None)
        self.is_loading_summary: Store[bool] = Store(False)

    @property
    def is_open(self) -> bool:
        return self.current_session.get() is not None

    async def _fetch_open_session(self) -> Optional[OpenCashSession]:
        data = await self.client.rpc("get_open_cierre_caja")
        if data:
            return OpenCashSession.model_validate(data[0])
        return None

    async def check_open_session(self) -> Optional[OpenCashSession]:
        """Refrescar la sesión abierta; None si no hay o si la consulta falla"""
        try:
            session = await self._fetch_open_session()
        except Exception as e:
            logger.error(f"Error checking caja abierta: {e}")
            session = None

        self.current_session.set(session)
        return session

    async def open_session(self, monto_apertura: Amount) -> OperationResult:
        """
        Abrir caja con abrir_caja_simple.

        El backend elige la caja y el usuario a partir del usuario
        autenticado. Un rechazo lógico (sin id_cierre_caja) se devuelve como
        fallo con el mensaje del backend.
        """
        monto = parse_amount(monto_apertura)
        if monto is None:
            return OperationResult.fail(f"Monto de apertura inválido: {monto_apertura}")

        if monto < 0:
            return OperationResult.fail("El monto de apertura no puede ser negativo")

        try:
            data = await self.client.rpc("abrir_caja_simple", {
                "_monto_apertura": monto,
            })
            row = OpenSessionRow.model_validate(data[0]) if data else None
        except Exception as e:
            logger.error(f"Error en abrir_caja_simple: {str(e)}")
            return OperationResult.fail(str(e) or "Error al abrir la caja")

        if row is None:
            return OperationResult.fail("Error desconocido al abrir la caja")

        if not row.id_cierre_caja:
            return OperationResult.fail(row.mensaje or "Error al abrir la caja")

        await self.check_open_session()
        return OperationResult.ok(row.mensaje or "Caja abierta exitosamente")

    async def close_session(self, id_cierre_caja: Optional[int], id_usuario_cierre: int,
                            monto_real_contado_efectivo: Amount,
                            total_gastos_caja_chica: Amount = 0,
                            monto_para_apertura_siguiente: Amount = 0) -> OperationResult:
        """
        Cerrar caja con cerrar_caja.

        El backend calcula la diferencia de efectivo y las ganancias. La RPC
        devuelve un texto; si contiene "Error:" se trata como fallo aunque la
        respuesta HTTP sea exitosa.
        """
        if not id_cierre_caja:
            return OperationResult.fail("No se indicó el cierre de caja a cerrar")

        amounts = {
            "_monto_real_contado_efectivo": monto_real_contado_efectivo,
            "_total_gastos_caja_chica": total_gastos_caja_chica,
            "_monto_para_apertura_siguiente": monto_para_apertura_siguiente,
        }
        parsed = {key: parse_amount(value) for key, value in amounts.items()}
        invalid = [str(amounts[key]) for key, value in parsed.items() if value is None]
        if invalid:
            return OperationResult.fail(f"Monto inválido: {', '.join(invalid)}")

        try:
            data = await self.client.rpc("cerrar_caja", {
                "_id_cierre_caja": id_cierre_caja,
                "_id_usuario_cierre": id_usuario_cierre,
                **parsed,
            })
        except Exception as e:
            logger.error(f"Error cerrando caja {id_cierre_caja}: {str(e)}")
            return OperationResult.fail(str(e) or "Error al cerrar la caja")

        logger.debug(f"Respuesta de cerrar_caja: {data!r}")

        if isinstance(data, str) and ERROR_MARKER in data:
            logger.error(f"cerrar_caja rechazó el cierre {id_cierre_caja}: {data}")
            return OperationResult.fail(data)

        await self.check_open_session()

        logger.info(f"Caja {id_cierre_caja} cerrada exitosamente")
        return OperationResult.ok(data or "Caja cerrada exitosamente", data=id_cierre_caja)

    async def close_session_by_self(self, monto_final_efectivo: Amount,
                                    gastos_adicionales: Amount = 0) -> OperationResult:
        """
        Cerrar la caja abierta actual como el usuario autenticado.

        Busca la sesión abierta y el ID interno del usuario y delega en
        close_session con monto de apertura siguiente 0.
        """
        try:
            session = await self._fetch_open_session()
        except Exception as e:
            logger.error(f"Error in close_session_by_self: {str(e)}")
            return OperationResult.fail(str(e) or "Error al obtener información de la caja")

        if session is None:
            return OperationResult.fail("No hay una caja abierta actualmente")

        try:
            user = await self.client.auth.get_user()
        except Exception as e:
            logger.error(f"Error obteniendo usuario autenticado: {str(e)}")
            user = None

        if not user:
            return OperationResult.fail("Error al obtener información del usuario")

        try:
            response = await (
                self.client.table("usuarios")
                .select("id")
                .eq("id_auth", user["id"])
                .single()
                .execute()
            )
            id_usuario = response.data["id"] if response.data else None
        except Exception as e:
            logger.error(f"Error obteniendo ID de usuario para {user.get('id')}: {str(e)}")
            id_usuario = None

        if not id_usuario:
            return OperationResult.fail("Error al obtener el ID del usuario")

        return await self.close_session(
            session.id_cierre_caja,
            id_usuario,
            monto_final_efectivo,
            gastos_adicionales,
            Decimal("0"),
        )

    async def fetch_close_summary(self, id_cierre_caja: int) -> OperationResult:
        """Resumen de cierre (ventas por método de pago, ganancia y reparto 70/30)"""
        self.is_loading_summary.set(True)
        try:
            result = await self.client.rpc("get_cierre_caja_details", {"p_cierre_id": id_cierre_caja})

            if not isinstance(result, dict) or not result.get("success"):
                message = result.get("message") if isinstance(result, dict) else None
                return OperationResult.fail(message or "Error al obtener datos del cierre")

            return OperationResult.ok(data=CloseSummary.model_validate(result.get("data") or {}))

        except Exception as e:
            logger.error(f"Error obteniendo datos del cierre (RPC): {str(e)}")
            return OperationResult.fail(str(e) or "Error al obtener datos del cierre")
        finally:
            self.is_loading_summary.set(False)

    async def get_session(self, id_cierre_caja: int) -> OperationResult:
        """Fila completa de cierrecaja para mostrar el detalle de una sesión"""
        try:
            response = await (
                self.client.table("cierrecaja")
                .select("*")
                .eq("id", id_cierre_caja)
                .single()
                .execute()
            )
            return OperationResult.ok(data=CashSession.model_validate(response.data))
        except Exception as e:
            logger.error(f"Error obteniendo cierre de caja {id_cierre_caja}: {str(e)}")
            return OperationResult.fail(str(e) or "Error al obtener el cierre de caja")
