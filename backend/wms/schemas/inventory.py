"""Inventory count schemas"""
from typing import List, Literal, Optional
from datetime import datetime
from pydantic import BaseModel, Field


class InventoryCountCreate(BaseModel):
    warehouse_id: int
    material_id: int
    counted_quantity: int = Field(..., ge=0)
    notes: Optional[str] = None


class CountSessionCreate(BaseModel):
    warehouse_id: int
    material_ids: List[int] = Field(..., min_length=1)
    notes: Optional[str] = None


class CountApproval(BaseModel):
    counted_quantity: Optional[int] = Field(None, ge=0, description="Fills in a count started by a session")
    notes: Optional[str] = None


class InventoryCountResponse(BaseModel):
    id: int
    warehouse_id: int
    material_id: int
    material_name: str = ""
    counted_quantity: Optional[int] = None
    system_quantity: int
    variance: Optional[int] = None
    status: Literal["pending", "approved"]
    notes: Optional[str] = None
    counted_by: Optional[int] = None
    approved_by: Optional[int] = None
    approved_at: Optional[datetime] = None
    count_date: Optional[datetime] = None

    class Config:
        from_attributes = True


class InventoryCountListResponse(BaseModel):
    data: List[InventoryCountResponse]
    total: int
    page: int
    limit: int
