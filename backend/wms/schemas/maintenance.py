"""Maintenance request schemas"""
from typing import List, Literal, Optional
from datetime import datetime
from pydantic import BaseModel, Field

Priority = Literal["low", "medium", "high", "urgent"]
MaintenanceStatus = Literal["pending", "in_progress", "completed", "cancelled"]


class MaintenanceCreate(BaseModel):
    warehouse_id: int
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    priority: Priority = "medium"
    scheduled_date: Optional[datetime] = None
    estimated_cost: Optional[float] = Field(None, ge=0)
    notes: Optional[str] = None


class MaintenanceStatusUpdate(BaseModel):
    status: MaintenanceStatus
    actual_cost: Optional[float] = Field(None, ge=0)
    notes: Optional[str] = None


class MaintenanceAssign(BaseModel):
    assigned_to: int


class MaintenanceResponse(BaseModel):
    id: int
    warehouse_id: int
    warehouse_name: str = ""
    title: str
    description: Optional[str] = None
    priority: str
    status: str
    requested_by: Optional[int] = None
    assigned_to: Optional[int] = None
    scheduled_date: Optional[datetime] = None
    completed_date: Optional[datetime] = None
    estimated_cost: Optional[float] = None
    actual_cost: Optional[float] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class MaintenanceListResponse(BaseModel):
    data: List[MaintenanceResponse]
    total: int
    page: int
    limit: int
