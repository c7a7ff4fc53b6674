"""
Tests para el catálogo

Cubre:
- Parámetros PostgREST de la búsqueda (activo, categoría, término, rango, orden)
- Conteo total desde Content-Range
- Scroll infinito con append
- Lista vacía cuando la consulta falla
"""

import httpx
import pytest
from decimal import Decimal

from cajapos.conftest import request_json
from cajapos.modules.catalog.service import CatalogService, row_to_product

PRODUCTS_PATH = "/rest/v1/productos"


def product_row(id, nombre="Coca Cola 2L", categoria="Bebidas", stock=5):
    return {
        "id": id,
        "nombre": nombre,
        "precio_venta": 15.5,
        "precio_compra": 11,
        "codigo_barras": f"77{id:05d}",
        "imagen_url": None,
        "id_categoria": 3,
        "categorias": {"nombre": categoria} if categoria else None,
        "stock": stock,
    }


# ===== FIXTURES =====

@pytest.fixture
def catalog(supabase):
    return CatalogService(supabase, page_size=2)


# ===== TESTS =====

class TestRowMapping:

    def test_row_to_product_resolves_category_and_stock(self):
        product = row_to_product(product_row(1, stock=None))
        assert product.categoria == "Bebidas"
        assert product.stock == 0
        assert product.precio_venta == Decimal("15.5")

    def test_row_without_category(self):
        product = row_to_product(product_row(1, categoria=None))
        assert product.categoria is None


class TestCatalogSearch:
    """Tests de búsqueda paginada"""

    async def test_search_builds_query(self, catalog, backend):
        """Test filtros, rango y orden enviados a PostgREST"""
        backend.on("GET", PRODUCTS_PATH, json_body=[product_row(3), product_row(4)],
                   headers={"Content-Range": "2-3/7"})

        await catalog.search("coca", category_id=3, page=2)

        request = backend.calls("GET", PRODUCTS_PATH)[0]
        params = request.url.params
        assert params["activo"] == "eq.true"
        assert params["id_categoria"] == "eq.3"
        assert params["or"] == "(nombre.ilike.%coca%,codigo_barras.ilike.%coca%)"
        assert params["order"] == "nombre.asc"
        assert "categorias(nombre)" in params["select"]
        assert request.headers["Range"] == "2-3"
        assert request.headers["Prefer"] == "count=exact"

        assert [p.id for p in catalog.products.get()] == [3, 4]
        assert catalog.total_products.get() == 7
        assert catalog.current_page.get() == 2
        assert catalog.is_loading.get() is False

    async def test_search_without_term_has_no_or_filter(self, catalog, backend):
        backend.on("GET", PRODUCTS_PATH, json_body=[], headers={"Content-Range": "*/0"})

        await catalog.search("   ")

        params = backend.calls("GET", PRODUCTS_PATH)[0].url.params
        assert "or" not in params
        assert "id_categoria" not in params
        assert catalog.total_products.get() == 0

    async def test_load_more_appends(self, catalog, backend):
        """Test la segunda página se agrega a la primera"""
        pages = iter([
            [product_row(1), product_row(2)],
            [product_row(3)],
        ])

        def handler(request):
            return httpx.Response(200, json=next(pages), headers={"Content-Range": "0-1/3"})

        backend.on("GET", PRODUCTS_PATH, handler=handler)

        await catalog.load_products()
        assert catalog.has_more
        await catalog.load_more()

        assert [p.id for p in catalog.products.get()] == [1, 2, 3]
        assert catalog.current_page.get() == 2
        assert not catalog.has_more
        assert backend.calls("GET", PRODUCTS_PATH)[1].headers["Range"] == "2-3"

    async def test_failure_resets_list(self, catalog, backend):
        """Test un error deja la lista vacía y apaga el indicador de carga"""
        backend.on("GET", PRODUCTS_PATH, json_body=[product_row(1)], headers={"Content-Range": "0-0/1"})
        await catalog.load_products()
        assert len(catalog.products.get()) == 1

        backend.on("GET", PRODUCTS_PATH, json_body={"message": "boom"}, status_code=500)
        await catalog.search("x")

        assert catalog.products.get() == []
        assert catalog.is_loading.get() is False

    async def test_loading_flag_during_query(self, catalog, backend):
        seen = []
        backend.on("GET", PRODUCTS_PATH, json_body=[])
        catalog.is_loading.subscribe(seen.append)

        await catalog.load_products()

        assert seen == [False, True, False]


class TestCategoriesAndStock:

    async def test_load_categories(self, catalog, backend):
        backend.on("GET", "/rest/v1/categorias", json_body=[{"id": 1, "nombre": "Bebidas", "color": "#f00"}])

        await catalog.load_categories()

        assert catalog.categories.get()[0].nombre == "Bebidas"

    async def test_load_categories_failure_keeps_previous(self, catalog, backend):
        backend.on("GET", "/rest/v1/categorias", json_body=[{"id": 1, "nombre": "Bebidas"}])
        await catalog.load_categories()

        backend.on("GET", "/rest/v1/categorias", json_body={"message": "down"}, status_code=503)
        await catalog.load_categories()

        assert len(catalog.categories.get()) == 1

    async def test_adjust_stock(self, catalog, backend):
        backend.on_rpc("actualizar_stock", json_body=None)

        result = await catalog.adjust_stock(5, 10, "entrada", "reposición", 2)

        assert result.success
        body = request_json(backend.rpc_calls("actualizar_stock")[0])
        assert body == {
            "_id_producto": 5,
            "_cantidad": 10,
            "_tipo_movimiento": "entrada",
            "_motivo": "reposición",
            "_id_usuario": 2,
        }

    async def test_adjust_stock_error(self, catalog, backend):
        backend.on_rpc("actualizar_stock", json_body={"message": "Stock insuficiente"}, status_code=400)

        result = await catalog.adjust_stock(5, -10, "salida", "merma", 2)

        assert not result.success
        assert result.message == "Stock insuficiente"
