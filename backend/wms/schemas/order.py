"""Order schemas"""
from typing import List, Literal, Optional
from datetime import datetime
from pydantic import BaseModel, Field, field_validator

OrderStatus = Literal["pending", "processing", "sorting", "cutting", "completed", "cancelled"]
DeliveryMethod = Literal["direct", "sort_then_delivery", "cut_then_delivery", "sort_cut_delivery"]


class OrderItemCreate(BaseModel):
    material_id: int = Field(..., description="Material")
    quantity: int = Field(..., gt=0, description="Units")
    notes: Optional[str] = None


class OrderCreate(BaseModel):
    customer_name: str = Field(..., min_length=1, max_length=100, description="Customer")
    customer_phone: Optional[str] = Field(None, max_length=20)
    customer_address: Optional[str] = None
    delivery_method: DeliveryMethod = Field(..., description="Delivery method")
    plate_count: Optional[int] = Field(None, ge=0)
    notes: Optional[str] = None
    items: List[OrderItemCreate] = Field(..., min_length=1, description="At least one line")

    @field_validator("items")
    @classmethod
    def distinct_materials(cls, v: List[OrderItemCreate]) -> List[OrderItemCreate]:
        material_ids = [item.material_id for item in v]
        if len(material_ids) != len(set(material_ids)):
            raise ValueError("each material may appear only once per order")
        return v


class OrderStatusUpdate(BaseModel):
    status: OrderStatus
    notes: Optional[str] = None


class OrderItemResponse(BaseModel):
    id: int
    order_id: int
    material_id: int
    material_name: str = ""
    quantity: int
    reserved_quantity: int
    weight: Optional[float] = None
    unit_price: float
    total_price: float
    notes: Optional[str] = None

    class Config:
        from_attributes = True


class OrderResponse(BaseModel):
    id: int
    order_number: str
    customer_name: str
    customer_phone: Optional[str] = None
    customer_address: Optional[str] = None
    plate_count: Optional[int] = None
    delivery_method: str
    delivery_method_display: str = ""
    status: str
    status_display: str = ""
    total_amount: float
    cutting_fee: float
    notes: Optional[str] = None
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    items: List[OrderItemResponse] = []

    class Config:
        from_attributes = True


class OrderListResponse(BaseModel):
    data: List[OrderResponse]
    total: int
    page: int
    limit: int
