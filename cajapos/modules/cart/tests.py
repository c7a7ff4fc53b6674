"""
Tests para el carrito

Cubre:
- Agregar, incrementar, quitar y cambiar cantidades
- Descuentos acotados a [0, precio_original] y porcentaje derivado
- Totales recalculados y publicación en el Store
- Total igual a la suma de subtotales en secuencias aleatorias de operaciones
- Precio capturado al agregar (inmune a cambios del catálogo)
"""

import random

import pytest
from decimal import Decimal

from cajapos.conftest import make_product
from cajapos.modules.cart.service import CartService, discount_percentage


# ===== FIXTURES =====

@pytest.fixture
def cart():
    return CartService()


@pytest.fixture
def product():
    return make_product(id=1, precio_venta="100")


# ===== TESTS DE LÍNEAS =====

class TestCartLines:
    """Tests de agregar y modificar líneas"""

    def test_add_new_product(self, cart, product):
        """Test agregar un producto nuevo crea una línea sin descuento"""
        cart.add(product)

        line = cart.get_line(product.id)
        assert line is not None
        assert line.quantity == 1
        assert line.precio_original == Decimal("100")
        assert line.descuento_aplicado == Decimal("0")
        assert line.observacion == ""

    def test_add_existing_product_increments(self, cart, product):
        """Test agregar dos veces el mismo producto suma cantidades en una línea"""
        cart.add(product)
        cart.add(product, 2)

        assert len(cart.lines) == 1
        assert cart.get_line(product.id).quantity == 3

    def test_add_non_positive_quantity_is_ignored(self, cart, product):
        cart.add(product, 0)
        cart.add(product, -3)
        assert cart.is_empty

    def test_set_quantity_zero_removes_line(self, cart, product):
        """Test cantidad <= 0 elimina la línea"""
        cart.add(product, 3)
        cart.set_quantity(product.id, 0)
        assert cart.get_line(product.id) is None

    def test_set_quantity_updates_subtotal(self, cart, product):
        cart.add(product)
        cart.apply_discount(product.id, 10)
        cart.set_quantity(product.id, 4)

        assert cart.get_line(product.id).subtotal == Decimal("360")

    def test_remove_missing_product_is_noop(self, cart, product):
        cart.add(product)
        cart.remove(999)
        assert len(cart.lines) == 1

    def test_price_captured_at_add_time(self, cart, product):
        """Test el precio de la línea no cambia si el producto cambia después"""
        cart.add(product)
        repriced = product.model_copy(update={"precio_venta": Decimal("150")})

        cart.add(repriced)

        line = cart.get_line(product.id)
        assert line.precio_original == Decimal("100")
        assert line.quantity == 2

    def test_set_observation(self, cart, product):
        cart.add(product)
        cart.set_observation(product.id, "sin hielo")
        assert cart.get_line(product.id).observacion == "sin hielo"


# ===== TESTS DE DESCUENTOS =====

class TestCartDiscounts:
    """Tests de descuentos por unidad"""

    def test_discount_scenario(self, cart, product):
        """Test 2 x 100 con descuento 30 => subtotal 140 y 30.00%"""
        cart.add(product, 2)
        assert cart.total == Decimal("200")

        cart.apply_discount(product.id, 30)

        line = cart.get_line(product.id)
        assert line.subtotal == Decimal("140")
        assert line.porcentaje_descuento == Decimal("30.00")
        assert cart.total == Decimal("140")

    def test_discount_clamped_to_price(self, cart, product):
        """Test descuento mayor al precio se acota al precio"""
        cart.add(product)
        cart.apply_discount(product.id, 250)

        line = cart.get_line(product.id)
        assert line.descuento_aplicado == Decimal("100")
        assert line.porcentaje_descuento == Decimal("100.00")
        assert line.subtotal == Decimal("0")

    def test_negative_discount_clamped_to_zero(self, cart, product):
        cart.add(product)
        cart.apply_discount(product.id, -5)

        line = cart.get_line(product.id)
        assert line.descuento_aplicado == Decimal("0")
        assert line.subtotal == Decimal("100")

    def test_percentage_rounding(self):
        """Test porcentaje redondeado a 2 decimales"""
        assert discount_percentage(Decimal("1"), Decimal("3")) == Decimal("33.33")
        assert discount_percentage(Decimal("2"), Decimal("3")) == Decimal("66.67")

    def test_percentage_zero_price(self):
        assert discount_percentage(Decimal("0"), Decimal("0")) == Decimal("0")


# ===== TESTS DE TOTALES Y STORE =====

class TestCartTotals:
    """Tests de totales y notificaciones"""

    def test_totals_across_lines(self, cart):
        cart.add(make_product(id=1, precio_venta="10.50"), 2)
        cart.add(make_product(id=2, precio_venta="3"), 3)

        assert cart.total == Decimal("30.00")
        assert cart.item_count == 5

    @pytest.mark.parametrize("seed", range(25))
    def test_total_matches_lines_for_random_sequences(self, cart, seed):
        """Test el total coincide con un cálculo independiente tras cada operación"""
        rng = random.Random(seed)
        products = [make_product(id=i, precio_venta=price)
                    for i, price in enumerate(["0.99", "10.50", "3", "125.75", "0"], start=1)]
        expected = {}  # id -> [cantidad, precio, descuento]

        for _ in range(40):
            product = rng.choice(products)
            op = rng.choice(["add", "set_quantity", "apply_discount", "remove"])

            if op == "add":
                quantity = rng.randint(-1, 4)
                cart.add(product, quantity)
                if quantity > 0:
                    if product.id in expected:
                        expected[product.id][0] += quantity
                    else:
                        expected[product.id] = [quantity, product.precio_venta, Decimal("0")]
            elif op == "set_quantity":
                quantity = rng.randint(-1, 6)
                cart.set_quantity(product.id, quantity)
                if quantity <= 0:
                    expected.pop(product.id, None)
                elif product.id in expected:
                    expected[product.id][0] = quantity
            elif op == "apply_discount":
                amount = Decimal(rng.randint(-500, 15000)) / 100
                cart.apply_discount(product.id, amount)
                if product.id in expected:
                    price = expected[product.id][1]
                    expected[product.id][2] = min(max(Decimal("0"), amount), price)
            else:
                cart.remove(product.id)
                expected.pop(product.id, None)

            total = sum((q * (price - disc) for q, price, disc in expected.values()), Decimal("0"))
            assert cart.total == total
            assert cart.total == sum((line.subtotal for line in cart.lines), Decimal("0"))
            assert cart.item_count == sum(q for q, _, _ in expected.values())
            assert all(Decimal("0") <= line.descuento_aplicado <= line.precio_original for line in cart.lines)

    def test_empty_cart_total_is_zero(self, cart):
        assert cart.total == Decimal("0")
        assert cart.item_count == 0

    def test_clear(self, cart, product):
        cart.add(product, 2)
        cart.clear()
        assert cart.is_empty
        assert cart.total == Decimal("0")

    def test_subscribers_receive_every_mutation(self, cart, product):
        """Test cada mutación publica una nueva lista"""
        published = []
        cart.lines_store.subscribe(lambda lines: published.append(len(lines)))

        cart.add(product)
        cart.apply_discount(product.id, 5)
        cart.remove(product.id)

        assert published == [0, 1, 1, 0]
