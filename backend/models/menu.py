# backend/models/menu.py
from sqlalchemy import Column, Integer, String, Float, Boolean, ForeignKey, DateTime, CheckConstraint, func
from sqlalchemy.orm import relationship
from database import Base

# A dish on the menu; purchasable only through its variants
class FoodItem(Base):
    __tablename__ = "food_items"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False, index=True)
    description = Column(String, nullable=True)
    image_url = Column(String, nullable=True)
    category = Column(String, nullable=True, index=True)
    in_stock = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    variants = relationship(
        "FoodItemVariant",
        back_populates="food_item",
        cascade="all, delete-orphan",
        order_by="FoodItemVariant.price",
    )

    # Items without variants cannot be added to a cart
    @property
    def orderable(self) -> bool:
        return len(self.variants) > 0


# Size/portion option of a food item with its own price
class FoodItemVariant(Base):
    __tablename__ = "food_item_variants"

    id = Column(Integer, primary_key=True, index=True)
    food_item_id = Column(Integer, ForeignKey("food_items.id"), nullable=False, index=True)
    label = Column(String, nullable=False)
    price = Column(Float, CheckConstraint("price >= 0"), nullable=False)

    food_item = relationship("FoodItem", back_populates="variants")
