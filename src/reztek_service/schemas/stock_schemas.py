from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field


class StockStatus(str, Enum):
    OUT_OF_STOCK = "out_of_stock"
    LOW_STOCK = "low_stock"
    IN_STOCK = "in_stock"


class StockItemBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    quantity: int = Field(..., ge=0)
    category: str = Field("", max_length=100)
    notes: str = Field("", max_length=1000)
    low_stock_threshold: int = Field(5, ge=0)


class StockItemCreate(StockItemBase):
    residence: str = Field(..., min_length=1, max_length=100)


class StockItemUpdate(StockItemBase):
    pass


class StockItemResponse(StockItemBase):
    id: str
    residence: str
    last_restocked: Optional[datetime] = None

    model_config = ConfigDict(extra="ignore")

    @computed_field
    @property
    def status(self) -> StockStatus:
        if self.quantity <= 0:
            return StockStatus.OUT_OF_STOCK
        if self.quantity <= self.low_stock_threshold:
            return StockStatus.LOW_STOCK
        return StockStatus.IN_STOCK
