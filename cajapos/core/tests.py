"""
Tests para el Store observable y la raíz de la API
"""

from fastapi.testclient import TestClient

from cajapos.core.store import Store
from cajapos.main import app


class TestStore:

    def test_subscribe_receives_current_value(self):
        store = Store(1)
        seen = []

        store.subscribe(seen.append)

        assert seen == [1]

    def test_set_and_update_notify(self):
        store = Store([])
        seen = []
        store.subscribe(seen.append)

        store.set([1])
        store.update(lambda items: items + [2])

        assert seen == [[], [1], [1, 2]]
        assert store.get() == [1, 2]

    def test_unsubscribe(self):
        store = Store(0)
        seen = []
        unsubscribe = store.subscribe(seen.append)

        unsubscribe()
        store.set(5)
        unsubscribe()

        assert seen == [0]


class TestRoot:

    def test_root_status(self):
        response = TestClient(app).get("/")

        assert response.status_code == 200
        assert response.json()["message"] == "CajaPOS is running"
