"""Invoice schemas"""
from typing import List, Literal, Optional
from datetime import datetime
from pydantic import BaseModel, Field

InvoiceStatus = Literal["draft", "approved", "paid", "delivered", "cancelled"]


class InvoiceItemCreate(BaseModel):
    material_name: str = Field(..., min_length=1, max_length=100, description="Line description")
    description: Optional[str] = None
    quantity: int = Field(..., gt=0)
    unit_price: float = Field(..., ge=0)
    material_id: Optional[int] = None
    notes: Optional[str] = None


class InvoiceItemUpdate(BaseModel):
    material_name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    quantity: Optional[int] = Field(None, gt=0)
    unit_price: Optional[float] = Field(None, ge=0)
    notes: Optional[str] = None


class InvoiceCreate(BaseModel):
    order_id: int = Field(..., description="Completed order being invoiced")
    customer_name: Optional[str] = Field(None, max_length=100, description="Defaults to the order's customer")
    customer_phone: Optional[str] = Field(None, max_length=20)
    customer_address: Optional[str] = None
    cutting_fee: float = Field(default=0, ge=0)
    discount: float = Field(default=0, ge=0)
    notes: Optional[str] = None
    items: List[InvoiceItemCreate] = Field(..., min_length=1)


class InvoiceUpdate(BaseModel):
    """Replaces customer fields, fees and every item"""
    customer_name: str = Field(..., min_length=1, max_length=100)
    customer_phone: Optional[str] = Field(None, max_length=20)
    customer_address: Optional[str] = None
    cutting_fee: float = Field(default=0, ge=0)
    discount: float = Field(default=0, ge=0)
    notes: Optional[str] = None
    items: List[InvoiceItemCreate] = Field(..., min_length=1)


class InvoiceStatusUpdate(BaseModel):
    status: InvoiceStatus


class InvoiceItemResponse(BaseModel):
    id: int
    invoice_id: int
    material_id: Optional[int] = None
    material_name: str
    description: Optional[str] = None
    quantity: int
    unit_price: float
    total_price: float
    notes: Optional[str] = None

    class Config:
        from_attributes = True


class InvoiceResponse(BaseModel):
    id: int
    invoice_number: str
    order_id: int
    order_number: Optional[str] = None
    customer_name: str
    customer_phone: Optional[str] = None
    customer_address: Optional[str] = None
    subtotal: float
    cutting_fee: float
    discount: float
    tax: float
    total_amount: float
    status: str
    status_display: str = ""
    notes: Optional[str] = None
    created_by: Optional[int] = None
    approved_by: Optional[int] = None
    approved_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    items: List[InvoiceItemResponse] = []

    class Config:
        from_attributes = True


class InvoiceListResponse(BaseModel):
    data: List[InvoiceResponse]
    total: int
    page: int
    limit: int
