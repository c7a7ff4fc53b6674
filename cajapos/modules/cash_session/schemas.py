"""
Esquemas Pydantic para sesiones de caja (cierrecaja).

Define:
- OpenCashSession: fila de get_open_cierre_caja
- CashSession: fila completa de la tabla cierrecaja
- OpenSessionRow: respuesta de abrir_caja_simple
- CloseSummary: resumen previo al cierre calculado por el backend
"""
from pydantic import BaseModel, ConfigDict, Field
from decimal import Decimal
from typing import Optional
from datetime import datetime


class OpenCashSession(BaseModel):
    """Sesión de caja abierta actualmente"""
    id_cierre_caja: int = Field(description="ID del cierre de caja")
    id_caja: int = Field(description="ID de la caja")
    fecha_inicio: Optional[datetime] = Field(None, description="Fecha y hora de apertura")
    descripcion_caja: Optional[str] = Field(None, description="Descripción de la caja")


class CashSession(BaseModel):
    """Fila de la tabla cierrecaja"""
    id: int
    id_caja: int
    id_usuario_apertura: int
    id_usuario_cierre: Optional[int] = None
    fecha_inicio: Optional[datetime] = None
    fecha_cierre: Optional[datetime] = None
    monto_apertura_inicial: Decimal
    monto_cierre_real_efectivo: Optional[Decimal] = None
    monto_apertura_siguiente: Optional[Decimal] = None
    gastos_caja_chica: Optional[Decimal] = None
    total_capital_generado: Optional[Decimal] = None
    total_ganancia_generada: Optional[Decimal] = None
    diferencia_efectivo: Optional[Decimal] = None
    estado: Optional[int] = None

    @property
    def is_open(self) -> bool:
        return self.fecha_cierre is None


class OpenSessionRow(BaseModel):
    id_cierre_caja: Optional[int] = None
    mensaje: Optional[str] = None


class CloseSummary(BaseModel):
    """
    Resumen de cierre devuelto por get_cierre_caja_details.

    El reparto 70/30 de la ganancia lo calcula el backend; aquí solo se
    transporta. Las claves adicionales del backend se conservan.
    """
    model_config = ConfigDict(extra="allow")

    monto_apertura: Optional[Decimal] = None
    total_ventas: Optional[Decimal] = None
    total_efectivo: Optional[Decimal] = None
    total_qr: Optional[Decimal] = None
    ganancia_bruta: Optional[Decimal] = None
    ganancia_empresa: Optional[Decimal] = None
    ganancia_cajero: Optional[Decimal] = None
