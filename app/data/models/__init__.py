#import all models so SQLAlchemy registers them in Base.metadata

from app.data.models.user import UserModel
from app.data.models.category import CategoryModel
from app.data.models.product import ProductModel, ProductVariantModel
from app.data.models.cart import CartModel
from app.data.models.cart_item import CartItemModel
from app.data.models.order import OrderModel, OrderItemModel
from app.data.models.wishlist import WishlistModel, WishlistItemModel

__all__ = [
    "UserModel",
    "CategoryModel",
    "ProductModel",
    "ProductVariantModel",
    "CartModel",
    "CartItemModel",
    "OrderModel",
    "OrderItemModel",
    "WishlistModel",
    "WishlistItemModel",
]
