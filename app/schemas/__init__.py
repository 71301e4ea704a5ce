from .api_key import ApiGallery, ApiGalleryList, ApiKeyCreated, ApiKeyStatus
from .auth import SignupRequest, SignupResponse
from .billing import PortalSessionResponse, SubscriptionResponse
from .gallery import (
    FavoritesResponse,
    FavoriteToggle,
    GalleryCreate,
    GalleryResponse,
    GalleryUpdate,
    PhotoResponse,
    PublicGalleryResponse,
)
from .order import OrderCreate, OrderPlacedResponse, OrderResponse, OrderStatusResponse, OrderStatusUpdate
from .password_reset import PasswordResetConfirm, PasswordResetRequest, PasswordResetResponse
from .product import ProductCreate, ProductResponse, ProductStatusUpdate
from .team import AcceptInvitationRequest, AcceptInvitationResponse, InvitationCreate, InvitationResponse, MemberResponse
from .tenant import FeatureState, TenantFeaturesResponse
from .token import Token

# Define the public API of this module
__all__ = [
    "SignupRequest",
    "SignupResponse",
    "Token",
    "PasswordResetRequest",
    "PasswordResetConfirm",
    "PasswordResetResponse",
    "GalleryCreate",
    "GalleryUpdate",
    "GalleryResponse",
    "PhotoResponse",
    "PublicGalleryResponse",
    "FavoriteToggle",
    "FavoritesResponse",
    "ProductCreate",
    "ProductResponse",
    "ProductStatusUpdate",
    "OrderCreate",
    "OrderPlacedResponse",
    "OrderResponse",
    "OrderStatusResponse",
    "OrderStatusUpdate",
    "FeatureState",
    "TenantFeaturesResponse",
    "InvitationCreate",
    "InvitationResponse",
    "MemberResponse",
    "AcceptInvitationRequest",
    "AcceptInvitationResponse",
    "ApiKeyCreated",
    "ApiKeyStatus",
    "ApiGallery",
    "ApiGalleryList",
    "SubscriptionResponse",
    "PortalSessionResponse",
]
