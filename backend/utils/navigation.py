# backend/utils/navigation.py
"""Client route table of the storefront.

``access`` tells the client which guard protects a route: ``public``,
``auth`` (signed-in user) or ``admin``.
"""

ROUTE_TABLE = [
    {"name": "home", "path": "/", "access": "public"},
    {"name": "auth", "path": "/auth", "access": "public"},
    {"name": "menu", "path": "/menu", "access": "public"},
    {"name": "dashboard", "path": "/dashboard", "access": "auth"},
    {"name": "cart", "path": "/cart", "access": "auth"},
    {"name": "address", "path": "/address", "access": "auth"},
    {"name": "payment", "path": "/payment", "access": "auth"},
    {"name": "orders", "path": "/orders", "access": "auth"},
    {"name": "admin", "path": "/admin", "access": "admin"},
    {"name": "reset-password", "path": "/reset-password", "access": "public"},
]

HOME = "/"
NOT_FOUND_BODY = {"detail": "Not Found", "home": HOME}

QUICK_ACTIONS = [
    {"title": "Browse Menu", "description": "Explore our delicious food options", "path": "/menu"},
    {"title": "My Cart", "description": "Review items in your cart", "path": "/cart"},
    {"title": "My Orders", "description": "Track your current and past orders", "path": "/orders"},
]
