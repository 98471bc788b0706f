"""
Resource registry: which proxy route serves each dataset the dashboard
caches, and how long a fetch of it may take.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List

from wmsdash.apps.proxy.client import DEFAULT_TIMEOUT_MS, LARGE_TIMEOUT_MS


@dataclass(frozen=True)
class Resource:
    name: str
    endpoint: str
    top_level: bool = True
    large: bool = False


_RESOURCES: List[Resource] = [
    Resource("products", "products-single/all", large=True),
    Resource("locations", "locations"),
    Resource("warehouses", "warehouses"),
    Resource("quants", "quants", large=True),
    Resource("pickings", "pickings", large=True),
    Resource("pickingTransfers", "picking-transfers"),
    Resource("waves", "picking-transfers/waves"),
    Resource("stockMoves", "stock-moves", large=True),
    Resource("stockMoveLines", "move-lines", large=True),
    Resource("productions", "productions"),
    Resource("uom", "uom"),
    Resource("categories", "categories"),
    Resource("stockPickingTypes", "picking-types"),
    Resource("lots", "lots"),
    Resource("inventory", "inventory"),
    Resource("inventoryLines", "inventory-lines"),
    Resource("landedCosts", "landed-costs"),
    Resource("packages", "quant-packages"),
    Resource("stockRules", "stock-rules"),
    Resource("stockRoutes", "stock-routes"),
    Resource("scraps", "scraps"),
    Resource("partnerTitles", "partner-titles"),
    Resource("partners", "partners"),
    Resource("productPackaging", "product-packaging"),
    Resource("productTemplates", "product-templates", large=True),
    Resource("putawayRules", "putaway-rules"),
    Resource("storageCategories", "storage-categories"),
    Resource("packageTypes", "package-types"),
    Resource("removalStrategies", "removal-strategies"),
    Resource("attributes", "attributes"),
    Resource("attributeValues", "attribute-values"),
    Resource("supplierinfo", "supplierinfo"),
    Resource("workcenters", "workcenters"),
    Resource("projects", "projects"),
    Resource("vendorBills", "account-moves"),
]

RESOURCES: Dict[str, Resource] = {r.name: r for r in _RESOURCES}
RESOURCE_TYPES: List[str] = [r.name for r in _RESOURCES]

# Refetched together when a page reports stale lot/inventory data.
PROBLEMATIC_TYPES = ("lots", "inventory", "inventoryLines")


def is_known(data_type: str) -> bool:
    return data_type in RESOURCES


def get_endpoint(data_type: str) -> str:
    resource = RESOURCES.get(data_type)
    return resource.endpoint if resource else data_type


def get_url(data_type: str) -> str:
    """
    Path relative to the proxy base URL.

    Per-model routes are mounted at the API root; anything else falls back
    to the legacy routes grouped under /products.
    """
    endpoint = get_endpoint(data_type)
    resource = RESOURCES.get(data_type)
    if resource and resource.top_level:
        return f"/{endpoint}"
    return f"/products/{endpoint}"


def default_timeout_ms(data_type: str) -> int:
    resource = RESOURCES.get(data_type)
    if resource and resource.large:
        return LARGE_TIMEOUT_MS
    return DEFAULT_TIMEOUT_MS
