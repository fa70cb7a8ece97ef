from src.session.cart_engine import CartEngine
from src.session.storage import JsonFileStorage, MemoryStorage, Storage

__all__ = [
    "CartEngine",
    "Storage",
    "MemoryStorage",
    "JsonFileStorage",
]
