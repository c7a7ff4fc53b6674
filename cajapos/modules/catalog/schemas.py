"""
Esquemas Pydantic del catálogo de productos.

Los nombres de campo son los de las tablas remotas `productos` y
`categorias`.
"""
from pydantic import BaseModel, Field, field_validator
from decimal import Decimal
from typing import Optional


class Product(BaseModel):
    """Producto tal como lo devuelve la consulta de catálogo"""
    id: int = Field(description="ID del producto")
    nombre: str = Field(description="Nombre del producto")
    precio_venta: Decimal = Field(default=Decimal("0"), description="Precio de venta")
    precio_compra: Decimal = Field(default=Decimal("0"), description="Precio de compra (costo)")
    codigo_barras: Optional[str] = Field(None, description="Código de barras")
    imagen_url: Optional[str] = Field(None, description="URL pública de la imagen")
    id_categoria: Optional[int] = Field(None, description="ID de la categoría")
    categoria: Optional[str] = Field(None, description="Nombre de la categoría (join)")
    stock: int = Field(default=0, description="Stock actual")

    model_config = {"frozen": True}

    @field_validator("precio_venta", "precio_compra", mode="before")
    @classmethod
    def default_price(cls, v):
        return Decimal("0") if v is None else v

    @field_validator("stock", mode="before")
    @classmethod
    def default_stock(cls, v):
        return v or 0


class Category(BaseModel):
    id: int
    nombre: str
    color: Optional[str] = None
