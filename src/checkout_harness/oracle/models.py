from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field


class ProductRef(BaseModel):
    """Catalog item as observed on a listing or detail page"""
    model_config = {'frozen': True}

    id: str
    name: str
    unit_price: Decimal
    available: bool = True


class CartLine(BaseModel):
    product_id: str
    name: str
    unit_price: Decimal
    quantity: int
    line_total: Decimal


class CartSnapshot(BaseModel):
    """Ordered cart lines plus the grand total"""
    lines: List[CartLine] = Field(default_factory=list)
    total: Decimal = Decimal('0')
    displayed_total: bool = False  # total was read from the page, not computed

    @property
    def is_empty(self) -> bool:
        return not self.lines

    @property
    def product_ids(self) -> List[str]:
        return [line.product_id for line in self.lines]

    def line(self, product_id: str) -> Optional[CartLine]:
        for line in self.lines:
            if line.product_id == str(product_id):
                return line
        return None

    def quantity_of(self, product_id: str) -> int:
        line = self.line(product_id)
        return line.quantity if line else 0


class ObservedRow(BaseModel):
    """Raw text of one cart/review table row"""
    product_id: str
    name: str = ''
    price_text: str
    quantity_text: str
    total_text: str


class CartObservation(BaseModel):
    """Everything read from a cart-like table in one pass"""
    rows: List[ObservedRow] = Field(default_factory=list)
    total_text: Optional[str] = None
    source: str = 'cart'
    empty_landmark_visible: bool = False
