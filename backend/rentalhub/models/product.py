from sqlalchemy import Boolean, CheckConstraint, Column, Integer, String, Text

from rentalhub.db import Base


class Product(Base):
    __tablename__ = "products"
    __table_args__ = (
        CheckConstraint("quantity_on_hand >= 0", name="products_quantity_on_hand_check"),
    )

    id = Column(Integer, primary_key=True, index=True)
    sku = Column(String(100), unique=True, index=True, nullable=False)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    vendor_id = Column(Integer, nullable=True, index=True)
    quantity_on_hand = Column(Integer, default=0, nullable=False)
    is_rentable = Column(Boolean, default=True, nullable=False)
    active = Column(Boolean, default=True, nullable=False)

    def __repr__(self):
        return f"<Product sku={self.sku} on_hand={self.quantity_on_hand}>"
