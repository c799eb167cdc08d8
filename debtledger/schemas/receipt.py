from typing import List

from pydantic import BaseModel, ConfigDict, Field, field_validator

from debtledger.models.bill import BillItem


class ReceiptLine(BaseModel):
    name: str = ""
    price: float = 0.0
    quantity: float = 1.0

    # The extraction model answers null for values it could not read
    @field_validator("name", mode="before")
    @classmethod
    def default_name(cls, value):
        return "" if value is None else value

    @field_validator("price", mode="before")
    @classmethod
    def default_price(cls, value):
        return 0 if value is None else value

    @field_validator("quantity", mode="before")
    @classmethod
    def default_quantity(cls, value):
        return 1 if value is None else value


class ReceiptData(BaseModel):
    """Itemized amounts read off a receipt image."""
    items: List[ReceiptLine] = []
    subtotal: float = 0.0
    tax: float = 0.0
    service_charge: float = Field(default=0.0, alias="serviceCharge")
    total: float = 0.0

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("subtotal", "tax", "service_charge", "total", mode="before")
    @classmethod
    def default_amount(cls, value):
        return 0 if value is None else value

    @field_validator("items", mode="before")
    @classmethod
    def default_items(cls, value):
        return [] if value is None else value

    def to_bill_items(self) -> List[BillItem]:
        """Unassigned bill items ready for assignment."""
        return [
            BillItem(name=line.name, price=line.price, quantity=line.quantity)
            for line in self.items
        ]
