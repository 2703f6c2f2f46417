"""Material schemas"""
from typing import List, Literal, Optional
from datetime import datetime
from pydantic import BaseModel, Field

MaterialStatus = Literal["available", "reserved", "damaged", "expired"]


class MaterialBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, description="Name")
    weight: Optional[float] = Field(None, ge=0, description="Weight per unit")
    length: Optional[float] = Field(None, ge=0)
    width: Optional[float] = Field(None, ge=0)
    type: Optional[str] = Field(None, max_length=50)
    grammage: Optional[float] = Field(None, ge=0)
    invoice_number: Optional[str] = Field(None, max_length=50)
    quality: Optional[str] = Field(None, max_length=50)
    roll_number: Optional[str] = Field(None, max_length=50)
    source: Optional[str] = Field(None, max_length=100)
    cost: float = Field(default=0, ge=0, description="Total cost of the stock line")


class MaterialCreate(MaterialBase):
    warehouse_id: int = Field(..., description="Warehouse")
    quantity: int = Field(..., ge=0, description="Opening quantity")


class MaterialUpdate(BaseModel):
    """Descriptive fields only; quantity changes go through the ledger"""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    weight: Optional[float] = Field(None, ge=0)
    length: Optional[float] = Field(None, ge=0)
    width: Optional[float] = Field(None, ge=0)
    type: Optional[str] = Field(None, max_length=50)
    grammage: Optional[float] = Field(None, ge=0)
    invoice_number: Optional[str] = Field(None, max_length=50)
    quality: Optional[str] = Field(None, max_length=50)
    roll_number: Optional[str] = Field(None, max_length=50)
    source: Optional[str] = Field(None, max_length=100)
    cost: Optional[float] = Field(None, ge=0)


class MaterialStatusUpdate(BaseModel):
    status: MaterialStatus


class MaterialResponse(MaterialBase):
    id: int
    warehouse_id: int
    warehouse_name: str = ""
    quantity: int
    status: str
    total_weight: float = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class MaterialListResponse(BaseModel):
    data: List[MaterialResponse]
    total: int
    page: int
    limit: int


class StockMovementResponse(BaseModel):
    id: int
    material_id: int
    warehouse_id: Optional[int] = None
    movement_type: str
    type_display: str = ""
    quantity: int
    weight: Optional[float] = None
    quantity_before: int
    quantity_after: int
    reference_type: Optional[str] = None
    reference_id: Optional[int] = None
    notes: Optional[str] = None
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class MaterialUsage(BaseModel):
    """One order line that drew on a material"""
    order_id: int
    order_number: str
    customer_name: str
    order_status: str
    order_date: Optional[datetime] = None
    used_quantity: int
    reserved_quantity: int = 0
    total_price: float
