"""Warehouse schemas"""
from typing import List, Literal, Optional
from datetime import datetime
from pydantic import BaseModel, Field

WarehouseType = Literal["main", "cutting", "sorting", "safekeeping"]


class WarehouseBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, description="Name")
    type: WarehouseType = Field(..., description="Warehouse type")
    capacity: Optional[float] = Field(None, ge=0, description="Capacity by weight")
    location: Optional[str] = None
    manager_id: Optional[int] = None


class WarehouseCreate(WarehouseBase):
    pass


class WarehouseUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    type: Optional[WarehouseType] = None
    capacity: Optional[float] = Field(None, ge=0)
    location: Optional[str] = None
    manager_id: Optional[int] = None
    is_active: Optional[bool] = None


class WarehouseResponse(WarehouseBase):
    id: int
    is_active: bool
    type_display: str = ""
    manager_name: Optional[str] = None
    material_count: int = 0
    total_quantity: int = 0
    total_weight: float = 0
    total_value: float = 0
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class WarehouseListResponse(BaseModel):
    data: List[WarehouseResponse]
    total: int
    page: int
    limit: int


class WarehouseUtilization(BaseModel):
    warehouse_id: int
    capacity: Optional[float] = None
    total_weight: float
    utilization: Optional[float] = Field(None, description="Weight / capacity, advisory")


class TransferRequest(BaseModel):
    material_id: int
    from_warehouse_id: int
    to_warehouse_id: int
    quantity: int = Field(..., gt=0)
    notes: Optional[str] = None


class TransferResponse(BaseModel):
    source_material_id: int
    source_quantity: int
    destination_material_id: int
    destination_quantity: int
    quantity: int
