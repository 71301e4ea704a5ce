from .tenant import Tenant, TenantFeatureFlag
from .user import User
from .password_reset import PasswordResetToken
from .invitation import TeamInvitation
from .gallery import Favorite, Gallery, Photo
from .product import Product, ProductType
from .order import Order, OrderItem, Payment

__all__ = [
    "Tenant",
    "TenantFeatureFlag",
    "User",
    "PasswordResetToken",
    "TeamInvitation",
    "Gallery",
    "Photo",
    "Favorite",
    "Product",
    "ProductType",
    "Order",
    "OrderItem",
    "Payment",
]
