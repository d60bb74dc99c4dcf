import threading
import uuid
from typing import Dict, List, Optional

from .models import Order


def new_order_id() -> str:
    return f"ord_{uuid.uuid4().hex}"


class OrderStore:
    """
    In-memory, append-only record of confirmed orders.

    Lives for the life of the process; nothing is ever updated or removed.
    """

    def __init__(self):
        self._orders: List[Order] = []
        self._by_id: Dict[str, Order] = {}
        self._lock = threading.Lock()

    def append(self, order: Order) -> None:
        with self._lock:
            self._orders.append(order)
            # ids are unique by construction; a repeat keeps the first entry reachable
            self._by_id.setdefault(order.id, order)

    def get(self, order_id: str) -> Optional[Order]:
        with self._lock:
            return self._by_id.get(order_id)

    def snapshot(self) -> List[Order]:
        with self._lock:
            return list(self._orders)

    def __len__(self) -> int:
        with self._lock:
            return len(self._orders)
