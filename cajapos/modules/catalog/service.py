"""
Servicio de catálogo: búsqueda paginada de productos y categorías.
"""
import logging
from typing import Any, Dict, List, Optional

from cajapos.common.results import OperationResult
from cajapos.core.config import settings
from cajapos.core.store import Store
from cajapos.database.client import SupabaseClient
from cajapos.modules.catalog.schemas import Category, Product

logger = logging.getLogger(__name__)

PRODUCT_COLUMNS = """
    id,
    nombre,
    precio_venta,
    precio_compra,
    codigo_barras,
    imagen_url,
    id_categoria,
    categorias(nombre),
    stock
"""


def row_to_product(row: Dict[str, Any]) -> Product:
    """Convierte una fila de `productos` con join de categoría en Product"""
    joined = row.get("categorias") or {}
    data = {key: value for key, value in row.items() if key != "categorias"}
    data["categoria"] = joined.get("nombre") if isinstance(joined, dict) else None
    data["stock"] = row.get("stock") or 0
    return Product.model_validate(data)


class CatalogService:
    """Consulta de productos con filtros, paginación y scroll infinito"""

    def __init__(self, client: SupabaseClient, page_size: Optional[int] = None):
        self.client = client
        self.page_size = page_size or settings.CATALOG_PAGE_SIZE

        self.products: Store[List[Product]] = Store([])
        self.categories: Store[List[Category]] = Store([])
        self.total_products: Store[int] = Store(0)
        self.current_page: Store[int] = Store(1)
        self.is_loading: Store[bool] = Store(False)
        self.selected_category: Store[Optional[int]] = Store(None)
        self.search_term: Store[str] = Store("")

    async def search(self, term: str = "", category_id: Optional[int] = None,
                     page: int = 1, append: bool = False) -> None:
        """
        Buscar productos activos.

        Filtra por categoría si se indica y por nombre o código de barras
        (ilike) si hay término. Con append=True los resultados se agregan a
        la lista actual; si no, la reemplazan. Los errores se registran y
        dejan la lista vacía.
        """
        self.search_term.set(term or "")
        self.selected_category.set(category_id)
        self.is_loading.set(True)
        try:
            query = (
                self.client.table("productos")
                .select(PRODUCT_COLUMNS, count="exact")
                .eq("activo", True)
            )

            if category_id:
                query = query.eq("id_categoria", category_id)

            term = (term or "").strip()
            if term:
                pattern = f"%{term}%"
                query = query.or_(f"nombre.ilike.{pattern},codigo_barras.ilike.{pattern}")

            start = (page - 1) * self.page_size
            end = start + self.page_size - 1
            query = query.range(start, end).order("nombre")

            response = await query.execute()
            rows = [row_to_product(row) for row in (response.data or [])]

            if append:
                self.products.update(lambda current: current + rows)
            else:
                self.products.set(rows)

            self.total_products.set(response.count or 0)
            self.current_page.set(page)

        except Exception as e:
            logger.error(f"Error searching products: {e}")
            self.products.set([])
        finally:
            self.is_loading.set(False)

    async def load_products(self) -> None:
        await self.search()

    async def load_more(self) -> None:
        """Siguiente página con los filtros actuales"""
        await self.search(
            self.search_term.get(),
            self.selected_category.get(),
            page=self.current_page.get() + 1,
            append=True,
        )

    @property
    def has_more(self) -> bool:
        return len(self.products.get()) < self.total_products.get()

    async def load_categories(self) -> None:
        try:
            response = await self.client.table("categorias").select("*").order("nombre").execute()
            self.categories.set([Category.model_validate(row) for row in (response.data or [])])
        except Exception as e:
            logger.error(f"Error loading categories: {e}")

    async def adjust_stock(self, product_id: int, cantidad: int, tipo_movimiento: str,
                           motivo: str, id_usuario: int) -> OperationResult:
        """Ajuste manual de stock vía la RPC actualizar_stock"""
        try:
            await self.client.rpc("actualizar_stock", {
                "_id_producto": product_id,
                "_cantidad": cantidad,
                "_tipo_movimiento": tipo_movimiento,
                "_motivo": motivo,
                "_id_usuario": id_usuario,
            })
            return OperationResult.ok("Stock actualizado")
        except Exception as e:
            logger.error(f"Error adjusting stock for product {product_id}: {str(e)}")
            return OperationResult.fail(str(e) or "Error al actualizar el stock")
