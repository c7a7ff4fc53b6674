"""
Esquemas de reportes de ventas
"""
from pydantic import BaseModel, Field, field_validator
from typing import Any, Optional
from datetime import datetime
from decimal import Decimal


class SalesHistoryEntry(BaseModel):
    """Venta en el historial"""
    id_venta: int
    fecha: datetime
    cajero: Optional[str] = None
    monto_total: Decimal = Decimal("0")
    tipo_pago: Optional[str] = None
    monto_efectivo: Decimal = Decimal("0")
    monto_qr: Decimal = Decimal("0")
    detalles: Optional[Any] = None

    @field_validator("monto_total", "monto_efectivo", "monto_qr", mode="before")
    @classmethod
    def none_as_zero(cls, v):
        return Decimal("0") if v is None else v


class SalesTotals(BaseModel):
    """Totales del período"""
    total_vendido: Decimal = Field(default=Decimal("0"))
    total_ganancia: Decimal = Field(default=Decimal("0"))
    ventas_count: int = Field(default=0)

    @field_validator("total_vendido", "total_ganancia", "ventas_count", mode="before")
    @classmethod
    def none_as_zero(cls, v):
        return 0 if v is None else v
