"""
Cart store.

Holds an ordered list of line items, writes the whole list as JSON to a
key-value storage adapter after every mutation and notifies subscribers
("cart changed") so counters can refresh.

Usage:
    store = CartStore(MemoryStorage())
    store.subscribe(lambda cart: print(cart.count()))
    store.add("A", "Food", 250.5)
"""
import json
import logging
from dataclasses import dataclass, replace
from decimal import Decimal, InvalidOperation
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)

CART_STORAGE_KEY = "cart"


@dataclass
class CartItem:
    id: str
    name: str
    price: Decimal
    qty: int = 1

    @property
    def subtotal(self) -> Decimal:
        return self.price * self.qty

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "price": float(self.price), "qty": self.qty}

    @classmethod
    def from_dict(cls, data: dict) -> "CartItem":
        """Build an item from its stored form. Raises ValueError on bad shape."""
        if not isinstance(data, dict):
            raise ValueError("cart entry is not an object")
        try:
            item_id = data["id"]
            name = data["name"]
            price = to_price(data["price"])
            qty = data["qty"]
        except KeyError as e:
            raise ValueError(f"cart entry missing {e.args[0]}") from e
        if isinstance(qty, bool) or not isinstance(qty, int) or qty < 1:
            raise ValueError(f"invalid qty {qty!r}")
        return cls(id=str(item_id), name=str(name), price=price, qty=qty)


def to_price(value) -> Decimal:
    """Convert a JSON number (or numeric string) to an exact Decimal."""
    if isinstance(value, bool):
        raise ValueError(f"invalid price {value!r}")
    try:
        price = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, TypeError) as e:
        raise ValueError(f"invalid price {value!r}") from e
    if not price.is_finite():
        raise ValueError(f"invalid price {value!r}")
    return price


CartListener = Callable[["CartStore"], None]


class CartStore:
    """Ordered cart persisted through an injected storage adapter."""

    def __init__(self, storage, key: str = CART_STORAGE_KEY):
        self.storage = storage
        self.key = key
        self._items: List[CartItem] = self._load()
        self._listeners: List[CartListener] = []

    def _load(self) -> List[CartItem]:
        raw = self.storage.get(self.key)
        if not raw:
            return []
        try:
            entries = json.loads(raw)
            if not isinstance(entries, list):
                raise ValueError("stored cart is not a list")
            items: List[CartItem] = []
            seen = set()
            for entry in entries:
                item = CartItem.from_dict(entry)
                if item.id in seen:
                    continue
                seen.add(item.id)
                items.append(item)
            return items
        except ValueError as e:
            logger.warning(f"Discarding malformed stored cart: {e}")
            return []

    def _save(self) -> None:
        self.storage.set(self.key, json.dumps([item.to_dict() for item in self._items]))

    def _changed(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:
                logger.exception("Cart listener failed")

    def _find(self, item_id: str) -> Optional[CartItem]:
        return next((item for item in self._items if item.id == item_id), None)

    # Observers

    def subscribe(self, listener: CartListener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: CartListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    # Mutations

    def add(self, item_id: str, name: str, price) -> None:
        """Add one unit of a product; an existing line gets qty + 1. A bad price is logged and ignored."""
        existing = self._find(item_id)
        if existing:
            existing.qty += 1
        else:
            try:
                item = CartItem(id=item_id, name=name, price=to_price(price), qty=1)
            except ValueError as e:
                logger.warning(f"Ignoring add of {item_id!r}: {e}")
                return
            self._items.append(item)
        self._save()
        self._changed()

    def remove(self, item_id: str) -> None:
        self._items = [item for item in self._items if item.id != item_id]
        self._save()
        self._changed()

    def set_quantity(self, item_id: str, delta: int) -> None:
        """Shift the quantity by ``delta``; dropping to zero or below removes the line."""
        if isinstance(delta, bool) or not isinstance(delta, int):
            logger.warning(f"Ignoring quantity change {delta!r} for {item_id!r}")
            return
        item = self._find(item_id)
        if not item:
            return
        item.qty += delta
        if item.qty <= 0:
            self.remove(item_id)
            return
        self._save()
        self._changed()

    def clear(self) -> None:
        self._items = []
        self.storage.delete(self.key)
        self._changed()

    # Reads

    def items(self) -> List[CartItem]:
        return [replace(item) for item in self._items]

    def total(self) -> Decimal:
        return sum((item.subtotal for item in self._items), Decimal("0"))

    def count(self) -> int:
        return sum(item.qty for item in self._items)

    def to_payload(self) -> List[dict]:
        """Items in the shape POST /create-checkout-session expects."""
        return [item.to_dict() for item in self._items]

    def __len__(self) -> int:
        return len(self._items)
