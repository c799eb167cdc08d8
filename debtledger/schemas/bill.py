from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from debtledger.models.bill import BillItem


class SplitRequest(BaseModel):
    """Itemized bill with assignments; zero hints mean "derive it"."""
    title: str = Field(..., min_length=1, max_length=200)
    items: List[BillItem]
    subtotal: float = 0
    tax: float = 0
    service_charge: float = 0
    total: float = 0
    date: Optional[datetime] = None


class SplitRetryRequest(SplitRequest):
    """The original split plus what its 207 response reported."""
    failed: List[str] = []
    bill_id: Optional[str] = None


class AllocationResponse(BaseModel):
    allocations: Dict[str, float]
    subtotal: float
    total: float
    multiplier: float
    unassigned_items: List[str]


class SplitResponse(BaseModel):
    bill_id: Optional[str] = None
    date: datetime
    allocations: Dict[str, float]
    transaction_ids: Dict[str, str]
    failed: Dict[str, str]
    bill_error: Optional[str] = None
    complete: bool


class BillResponse(BaseModel):
    id: str
    date: datetime
    title: str
    items: List[BillItem]
    subtotal: float
    tax: float
    service_charge: float
    total: float
    payer_id: str

    model_config = ConfigDict(from_attributes=True)
