"""
Catalogue and order-history store.

``CatalogStore`` is the read-only interface the matcher and orchestrator
consume. ``InMemoryCatalogStore`` is a mock with a small construction
supply catalogue; in production this would query the ordering backend's
database (project products, supplier preference ranks, worker favourites,
and past orders).
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from src.schemas.catalog_schema import CatalogProduct, FavoriteRecord, PastOrder, SupplierRecord

logger = logging.getLogger(__name__)


class CatalogStore(ABC):
    """Async read-only access to catalogue and history data."""

    @abstractmethod
    async def list_project_products(self, project_id: str) -> list[CatalogProduct]:
        """Products assigned to a project."""

    @abstractmethod
    async def get_supplier_ranks(self, project_id: str) -> dict[str, int]:
        """Supplier id -> preference rank (1 is best) for a project."""

    @abstractmethod
    async def list_favorites(self, user_id: str, project_id: str) -> list[FavoriteRecord]:
        """A worker's per-product history in a project, most used first."""

    @abstractmethod
    async def list_external_suppliers(self) -> list[SupplierRecord]:
        """Suppliers that have both an external catalogue link and a description."""

    @abstractmethod
    async def list_orders(
        self,
        user_id: str,
        project_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        limit: int = 5,
    ) -> list[PastOrder]:
        """A worker's past orders in a project, newest first."""


DEMO_SUPPLIERS: list[SupplierRecord] = [
    SupplierRecord(
        id="sup-baumax", name="BauMax Supply",
        shop_url="https://shop.baumax.example/punchout",
        description="Fasteners, screws, anchors, adhesives and general building hardware.",
    ),
    SupplierRecord(
        id="sup-safeline", name="SafeLine PPE",
        shop_url="https://safeline.example/catalog",
        description="Personal protective equipment: gloves, helmets, hi-vis vests, ear protection.",
    ),
    SupplierRecord(
        id="sup-elektra", name="Elektra Wholesale",
        shop_url="https://elektra.example/shop",
        description="Electrical cable, conduit, switches, sockets and lighting.",
    ),
    SupplierRecord(
        id="sup-local", name="Local Timber Yard",
        shop_url=None,
        description="Timber and boards, pickup only.",
    ),
]

DEMO_PRODUCTS: list[CatalogProduct] = [
    CatalogProduct(
        id="prod-screw-4x40", supplier_id="sup-baumax", name="Wood Screws 4x40mm",
        sku="WS-440", description="Countersunk wood screws, box of 200",
        unit="box", price_per_unit=1290, category_name="Fasteners", subcategory_name="Screws",
    ),
    CatalogProduct(
        id="prod-screw-drywall", supplier_id="sup-safeline", name="Drywall Screws 3.5x35mm",
        sku="DS-335", description="Phosphated drywall screws, box of 500",
        unit="box", price_per_unit=1450, category_name="Fasteners", subcategory_name="Screws",
    ),
    CatalogProduct(
        id="prod-anchor-8", supplier_id="sup-baumax", name="Nylon Wall Anchors 8mm",
        sku="NA-8", description="Universal plugs for concrete and brick, pack of 100",
        unit="pack", price_per_unit=890, category_name="Fasteners", subcategory_name="Anchors",
    ),
    CatalogProduct(
        id="prod-tape-duct", supplier_id="sup-baumax", name="Duct Tape 50mm",
        sku="DT-50", description="Silver cloth tape, 50 m roll",
        unit="roll", price_per_unit=750, category_name="Adhesives", subcategory_name="Tape",
    ),
    CatalogProduct(
        id="prod-tape-masking", supplier_id="sup-baumax", name="Masking Tape 30mm",
        sku="MT-30", description="Painter's masking tape, 50 m roll",
        unit="roll", price_per_unit=420, category_name="Adhesives", subcategory_name="Tape",
    ),
    CatalogProduct(
        id="prod-gloves-nitrile", supplier_id="sup-safeline", name="Nitrile Work Gloves",
        sku="GL-NIT-9", description="Coated safety gloves size 9, pair",
        unit="pair", price_per_unit=500, category_name="PPE", subcategory_name="Gloves",
    ),
    CatalogProduct(
        id="prod-helmet", supplier_id="sup-safeline", name="Safety Helmet White",
        sku="HM-W", description="EN 397 hard hat with ratchet",
        unit="piece", price_per_unit=1990, category_name="PPE", subcategory_name="Head",
    ),
    CatalogProduct(
        id="prod-cable-3g15", supplier_id="sup-elektra", name="Installation Cable 3G1.5",
        sku="CB-3G15", description="PVC sheathed cable, 100 m drum",
        unit="drum", price_per_unit=8900, category_name="Electrical", subcategory_name="Cable",
    ),
]

DEMO_PROJECT_ID = "proj-demo"
DEMO_USER_ID = "worker-demo"


class InMemoryCatalogStore(CatalogStore):
    """Mock catalogue store seeded with demo data. Used by tests and the console demo."""

    def __init__(
        self,
        products: Optional[dict[str, list[CatalogProduct]]] = None,
        supplier_ranks: Optional[dict[str, dict[str, int]]] = None,
        suppliers: Optional[list[SupplierRecord]] = None,
        favorites: Optional[dict[tuple[str, str], list[FavoriteRecord]]] = None,
        orders: Optional[dict[tuple[str, str], list[PastOrder]]] = None,
    ) -> None:
        self._products = products if products is not None else {DEMO_PROJECT_ID: list(DEMO_PRODUCTS)}
        self._ranks = supplier_ranks if supplier_ranks is not None else {
            DEMO_PROJECT_ID: {"sup-baumax": 1, "sup-safeline": 2},
        }
        self._suppliers = suppliers if suppliers is not None else list(DEMO_SUPPLIERS)
        self._favorites = favorites or {}
        self._orders = orders or {}

    async def list_project_products(self, project_id: str) -> list[CatalogProduct]:
        return list(self._products.get(project_id, []))

    async def get_supplier_ranks(self, project_id: str) -> dict[str, int]:
        return dict(self._ranks.get(project_id, {}))

    async def list_favorites(self, user_id: str, project_id: str) -> list[FavoriteRecord]:
        favorites = self._favorites.get((user_id, project_id), [])
        return sorted(favorites, key=lambda f: f.usage_count, reverse=True)

    async def list_external_suppliers(self) -> list[SupplierRecord]:
        return [s for s in self._suppliers if s.shop_url and s.description]

    async def list_orders(
        self,
        user_id: str,
        project_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        limit: int = 5,
    ) -> list[PastOrder]:
        orders = self._orders.get((user_id, project_id), [])
        if start is not None:
            orders = [o for o in orders if o.created_at >= start]
        if end is not None:
            orders = [o for o in orders if o.created_at <= end]
        orders = sorted(orders, key=lambda o: o.created_at, reverse=True)
        return orders[:limit]

    def add_favorite(self, user_id: str, project_id: str, favorite: FavoriteRecord) -> None:
        self._favorites.setdefault((user_id, project_id), []).append(favorite)

    def add_order(self, user_id: str, project_id: str, order: PastOrder) -> None:
        self._orders.setdefault((user_id, project_id), []).append(order)
        logger.debug("Order %s recorded for %s in %s", order.order_id, user_id, project_id)
