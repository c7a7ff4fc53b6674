"""
Contenedor de estado observable.

Cada servicio es dueño de sus propios Store; la UI (o cualquier consumidor)
se suscribe con un callback y recibe el valor actual de inmediato y cada
valor nuevo publicado con set/update.
"""
import logging
from typing import Callable, Generic, List, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

Subscriber = Callable[[T], None]


class Store(Generic[T]):
    """Valor mutable con suscriptores"""

    def __init__(self, value: T):
        self._value = value
        self._subscribers: List[Subscriber] = []

    def get(self) -> T:
        return self._value

    def set(self, value: T) -> None:
        self._value = value
        self._notify()

    def update(self, fn: Callable[[T], T]) -> None:
        self.set(fn(self._value))

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """
        Registrar un suscriptor.

        Returns:
            Callable: función que cancela la suscripción
        """
        self._subscribers.append(callback)
        callback(self._value)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _notify(self) -> None:
        for callback in list(self._subscribers):
            callback(self._value)
