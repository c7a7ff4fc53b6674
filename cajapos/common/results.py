"""
Resultados uniformes de los servicios.

Toda operación pública que habla con el backend devuelve uno de estos
modelos en lugar de propagar excepciones.
"""
from pydantic import BaseModel, Field
from typing import Any, Optional


class OperationResult(BaseModel):
    """Resultado de una operación remota"""
    success: bool = Field(description="Indica si la operación fue exitosa")
    message: str = Field(default="", description="Mensaje apto para mostrar al usuario")
    data: Optional[Any] = Field(None, description="Datos devueltos por el backend")

    @classmethod
    def ok(cls, message: str = "", data: Any = None) -> "OperationResult":
        return cls(success=True, message=message, data=data)

    @classmethod
    def fail(cls, message: str, data: Any = None) -> "OperationResult":
        return cls(success=False, message=message, data=data)


class SaleResult(OperationResult):
    """Resultado de registrar una venta"""
    venta_id: Optional[int] = Field(None, description="ID de la venta creada")


class UploadResult(BaseModel):
    """Resultado de una subida al storage"""
    success: bool
    url: Optional[str] = None
    error: Optional[str] = None
    path: Optional[str] = None
