from typing import Iterable, Set
from creditsales.models.users import UserRole

ADMIN_PERMISSIONS = frozenset(
    [
        "menu.dashboard",
        "menu.users",
        "menu.products",
        "menu.customers",
        "menu.sales",
        "menu.settings",
        "menu.customer.requests",
    ]
)

# main menu permission -> the sub-menus it opens
SUB_PERMISSIONS = {
    "menu.users": ["menu.users.list", "menu.users.roles"],
    "menu.products": [
        "menu.products.category",
        "menu.products.subcategory",
        "menu.products.add",
    ],
    "menu.customers": ["menu.customers.list"],
    "menu.sales": ["menu.sales.orders", "menu.sales.reports"],
    "menu.deliveries": [
        "menu.deliveries.arrived",
        "menu.deliveries.accepted",
        "menu.deliveries.delivered",
        "menu.deliveries.cancelled",
    ],
    "menu.customer.requests": [
        "menu.customer.requests.create",
        "menu.customer.requests.my",
    ],
}


def ExpandPermissions(role_name: str, stored_permissions: Iterable[str]) -> Set[str]:
    """Effective permissions of a role.

    Admin always gets the fixed admin table whatever is stored for it. Any other
    role gets its stored permissions plus the sub-menus of each main menu.
    """
    if role_name == UserRole.ADMIN.value:
        return set(ADMIN_PERMISSIONS)

    permissions = set()
    for permission in stored_permissions or []:
        permissions.add(permission)
        permissions.update(SUB_PERMISSIONS.get(permission, []))
    return permissions
