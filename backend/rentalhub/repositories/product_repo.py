from typing import Optional

from sqlalchemy.orm import Session

from rentalhub.models.product import Product
from rentalhub.repositories.base import ProductCatalog
from rentalhub.services.errors import NotFoundError


class ProductRepository(ProductCatalog):
    def __init__(self, db: Session):
        self.db = db

    def get(self, product_id: int) -> Optional[Product]:
        return self.db.get(Product, product_id)

    def get_by_sku(self, sku: str) -> Optional[Product]:
        return self.db.query(Product).filter(Product.sku == sku).first()

    def quantity_on_hand(self, product_id: int) -> int:
        p = self.get(product_id)
        if not p or not p.active:
            raise NotFoundError(f"Product {product_id} not found")
        if not p.is_rentable:
            raise NotFoundError(f"Product {product_id} is not available for rental")
        return int(p.quantity_on_hand or 0)

    def create_or_update(
        self,
        sku: str,
        name: str,
        quantity_on_hand: int = 0,
        vendor_id: int = None,
        description: str = None,
        is_rentable: bool = True,
    ) -> Product:
        p = self.get_by_sku(sku)
        if p:
            p.name = name
            p.quantity_on_hand = quantity_on_hand
            p.vendor_id = vendor_id
            p.description = description
            p.is_rentable = is_rentable
        else:
            p = Product(
                sku=sku,
                name=name,
                quantity_on_hand=quantity_on_hand,
                vendor_id=vendor_id,
                description=description,
                is_rentable=is_rentable,
            )
            self.db.add(p)
        self.db.flush()
        return p
