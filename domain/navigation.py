"""
Domain: role-based navigation and route access.

Two static tables drive the back-office chrome:
- NAVIGATION: the ordered menu shown to each role (entries nest one level).
- ROUTE_PERMISSIONS: the route allow-list for each role.

`has_access` matches a requested path against the role's allow-list by prefix,
treating `:param` segments as wildcards. Public routes are open to everyone and
the developer role is allowed everywhere.

Pure lookups, no state.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Dict, Optional, Pattern, Tuple


@dataclass(frozen=True, slots=True)
class NavigationItem:
    title: str
    path: str
    icon: str
    description: Optional[str] = None
    children: Tuple["NavigationItem", ...] = ()


def _item(title: str, path: str, icon: str, description: Optional[str] = None,
          children: Tuple[NavigationItem, ...] = ()) -> NavigationItem:
    return NavigationItem(title=title, path=path, icon=icon, description=description, children=children)


NAVIGATION: Dict[str, Tuple[NavigationItem, ...]] = {
    # Tenant-level
    "owner": (
        _item("Dashboard", "/tenant/dashboard", "dashboard", "Tenant overview and analytics"),
        _item("Branches", "/tenant/branches", "store", "Branch management"),
        _item("Users", "/tenant/users", "people", "User management across all branches"),
        _item("Reports", "/tenant/reports", "analytics", "Consolidated reports across all branches"),
        _item("Settings", "/tenant/settings", "settings", "Tenant-wide settings"),
    ),
    # Branch-level
    "manager": (
        _item("Dashboard", "/branch/dashboard", "dashboard", "Branch overview and analytics"),
        _item("Sales", "/branch/sales", "point_of_sale", "Sales management and POS", (
            _item("POS", "/branch/sales/pos", "point_of_sale"),
            _item("History", "/branch/sales/history", "history"),
            _item("Refunds", "/branch/sales/refunds", "money_off"),
        )),
        _item("Inventory", "/branch/stock", "inventory", "Stock management and products", (
            _item("Inventory", "/branch/stock/inventory", "inventory"),
            _item("Add Product", "/branch/stock/add-product", "add_box"),
        )),
        _item("Purchases", "/branch/purchases", "shopping_cart", "Purchase orders and procurement"),
        _item("Customers", "/branch/customers", "people", "Customer management", (
            _item("All Customers", "/branch/customers", "people"),
            _item("Add Customer", "/branch/customers/add", "person_add"),
        )),
        _item("Suppliers", "/branch/suppliers", "business", "Supplier management", (
            _item("All Suppliers", "/branch/suppliers", "business"),
            _item("Add Supplier", "/branch/suppliers/add", "add_business"),
        )),
        _item("Reports", "/branch/reports", "analytics", "Reports and analytics"),
        _item("Settings", "/branch/settings", "settings", "Branch settings"),
    ),
    "cashier": (
        _item("POS", "/branch/sales/pos", "point_of_sale", "Point of sale system"),
        _item("Inventory", "/branch/stock/inventory", "inventory", "View inventory"),
        _item("Customers", "/branch/customers", "people", "Customer management"),
    ),
    "staff": (
        _item("Inventory", "/branch/stock/inventory", "inventory", "View inventory"),
        _item("Customers", "/branch/customers", "people", "View customers"),
    ),
    "salesperson": (
        _item("Sales Dashboard", "/branch/dashboard", "dashboard", "Sales overview and daily metrics"),
        _item("Sales", "/branch/sales", "point_of_sale", "Point of sale and transactions", (
            _item("POS", "/branch/sales", "point_of_sale"),
            _item("History", "/branch/sales/history", "history"),
            _item("Refunds", "/branch/sales/refunds", "money_off"),
        )),
        _item("Inventory", "/branch/stock", "inventory", "Stock management and products", (
            _item("Stock", "/branch/stock", "inventory"),
            _item("Add Product", "/branch/stock/add", "add_box"),
        )),
        _item("Customers", "/branch/customers", "people", "Customer management"),
        _item("Reports", "/branch/reports", "analytics", "Reports and analytics"),
    ),
    "developer": (
        _item("Tenant Dashboard", "/tenant/dashboard", "dashboard", "Tenant-level overview"),
        _item("Branches", "/tenant/branches", "business", "Branch management"),
        _item("Users", "/tenant/users", "people", "User management"),
        _item("Sales Dashboard", "/branch/dashboard", "dashboard", "Branch sales overview"),
        _item("Sales", "/branch/sales", "point_of_sale", "Sales management"),
        _item("Inventory", "/branch/stock", "inventory", "Stock management"),
        _item("Customers", "/branch/customers", "people", "Customer management"),
        _item("Reports", "/branch/reports", "analytics", "Reports and analytics"),
    ),
}

PUBLIC_ROUTES: Tuple[str, ...] = ("/login", "/subscription-expired", "/unauthorized")

_BRANCH_ROUTES: Tuple[str, ...] = (
    "/branch",
    "/branch/dashboard",
    "/branch/sales",
    "/branch/sales/history",
    "/branch/sales/refunds",
    "/branch/stock",
    "/branch/stock/add",
    "/branch/stock/edit/:id",
    "/branch/stock/view/:id",
    "/branch/customers",
    "/branch/customers/add",
    "/branch/suppliers",
    "/branch/suppliers/add",
    "/branch/suppliers/edit/:id",
    "/branch/suppliers/view/:id",
    "/branch/reports",
    "/branch/settings",
)

ROUTE_PERMISSIONS: Dict[str, Tuple[str, ...]] = {
    "owner": ("/tenant", "/tenant/dashboard") + _BRANCH_ROUTES + ("/branch/purchases",),
    "manager": ("/tenant", "/tenant/dashboard", "/manager") + _BRANCH_ROUTES + (
        "/branch/purchases",
        "/branch/purchases/:id",
    ),
    "salesperson": _BRANCH_ROUTES + ("/sales",),
    "cashier": (
        "/branch/sales/pos",
        "/branch/stock/inventory",
        "/branch/stock/view/:id",
        "/branch/customers",
        "/branch/customers/add",
    ),
    "staff": (
        "/branch/stock/inventory",
        "/branch/stock/view/:id",
        "/branch/customers",
    ),
    "developer": ("/tenant", "/tenant/dashboard") + _BRANCH_ROUTES + ("/manager", "/sales"),
}

_PARAM_SEGMENT = re.compile(r":\w+")


@lru_cache(maxsize=None)
def _route_pattern(route: str) -> Pattern[str]:
    parts = _PARAM_SEGMENT.split(route)
    return re.compile("[^/]+".join(re.escape(part) for part in parts))


def get_navigation_items(role: str) -> Tuple[NavigationItem, ...]:
    """Ordered menu for a role. Unknown roles get an empty menu."""
    return NAVIGATION.get(role, ())


def has_access(path: str, role: Optional[str]) -> bool:
    """
    Check whether `role` may open `path`.

    A route grants access to every path it is a prefix of, once its `:param`
    segments are replaced by a single-segment wildcard.
    """

    if path in PUBLIC_ROUTES:
        return True

    if role == "developer":
        return True

    allowed = ROUTE_PERMISSIONS.get(role or "", ())
    return any(_route_pattern(route).match(path) for route in allowed)


__all__ = [
    "NavigationItem",
    "NAVIGATION",
    "PUBLIC_ROUTES",
    "ROUTE_PERMISSIONS",
    "get_navigation_items",
    "has_access",
]
