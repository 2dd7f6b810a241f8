import secrets
from datetime import datetime
from typing import List, Optional

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import CartServiceBase, CartServiceBaseModel, utcnow


def generate_checkout_token() -> str:
    return secrets.token_hex(16)


class Cart(CartServiceBaseModel):
    __tablename__ = "carts"

    user_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)
    session_id: Mapped[str] = mapped_column(
        String(255), unique=True, nullable=False, index=True
    )
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False), nullable=False, index=True
    )
    # Never reused, unlike session_id which callers may supply again
    checkout_token: Mapped[str] = mapped_column(
        String(64), unique=True, nullable=False, default=generate_checkout_token
    )

    items: Mapped[List["CartItem"]] = relationship(
        "CartItem",
        back_populates="cart",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="CartItem.id",
        lazy="selectin",
    )

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return self.expires_at <= (now or utcnow())

    def find_item(self, product_id: int) -> Optional["CartItem"]:
        for item in self.items:
            if item.product_id == product_id:
                return item
        return None

    def get_item(self, item_id: int) -> Optional["CartItem"]:
        for item in self.items:
            if item.id == item_id:
                return item
        return None

    def __repr__(self):
        return f"<Cart(id={self.id}, session_id={self.session_id}, user_id={self.user_id})>"


class CartItem(CartServiceBase):
    __tablename__ = "cart_items"
    __table_args__ = (
        UniqueConstraint("cart_id", "product_id", name="uq_cart_items_cart_product"),
        CheckConstraint("quantity > 0", name="ck_cart_items_quantity_positive"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    cart_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("carts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    product_id: Mapped[int] = mapped_column(Integer, nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    added_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False), default=utcnow, nullable=False
    )

    cart: Mapped["Cart"] = relationship("Cart", back_populates="items")

    def __repr__(self):
        return f"<CartItem(id={self.id}, product_id={self.product_id}, quantity={self.quantity})>"
