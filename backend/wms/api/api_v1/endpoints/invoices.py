"""Invoice API"""

from typing import Any, Optional
from datetime import date, datetime, time, timedelta
from fastapi import APIRouter, Depends, Query
from sqlalchemy import select, func, and_
from sqlalchemy.ext.asyncio import AsyncSession

from wms.core.auth.deps import Principal, require_permission
from wms.core.deps import get_db
from wms.core.permissions import MANAGE_INVOICES
from wms.models.invoice import Invoice, InvoiceItem
from wms.schemas.common import Message
from wms.schemas.invoice import (
    InvoiceCreate, InvoiceItemCreate, InvoiceItemResponse, InvoiceItemUpdate, InvoiceListResponse,
    InvoiceResponse, InvoiceStatus, InvoiceStatusUpdate, InvoiceUpdate,
)
from wms.services import invoice_engine
from wms.services.invoice_engine import base_invoice_query, load_invoice

router = APIRouter()


def build_invoice_item_response(item: InvoiceItem) -> InvoiceItemResponse:
    return InvoiceItemResponse(
        id=item.id,
        invoice_id=item.invoice_id,
        material_id=item.material_id,
        material_name=item.material_name,
        description=item.description,
        quantity=item.quantity,
        unit_price=float(item.unit_price),
        total_price=float(item.total_price),
        notes=item.notes)


def build_invoice_response(invoice: Invoice) -> InvoiceResponse:
    return InvoiceResponse(
        id=invoice.id,
        invoice_number=invoice.invoice_number,
        order_id=invoice.order_id,
        order_number=invoice.order.order_number if invoice.order else None,
        customer_name=invoice.customer_name,
        customer_phone=invoice.customer_phone,
        customer_address=invoice.customer_address,
        subtotal=float(invoice.subtotal or 0),
        cutting_fee=float(invoice.cutting_fee or 0),
        discount=float(invoice.discount or 0),
        tax=float(invoice.tax or 0),
        total_amount=float(invoice.total_amount or 0),
        status=invoice.status,
        status_display=invoice.status_display,
        notes=invoice.notes,
        created_by=invoice.created_by,
        approved_by=invoice.approved_by,
        approved_at=invoice.approved_at,
        paid_at=invoice.paid_at,
        delivered_at=invoice.delivered_at,
        created_at=invoice.created_at,
        updated_at=invoice.updated_at,
        items=[build_invoice_item_response(item) for item in invoice.items])


@router.get("/", response_model=InvoiceListResponse)
async def list_invoices(
    *,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_permission(MANAGE_INVOICES)),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status: Optional[InvoiceStatus] = Query(None),
    customer: Optional[str] = Query(None, description="Customer name contains"),
    order_id: Optional[int] = Query(None),
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None)) -> Any:
    """List invoices"""
    query = base_invoice_query()
    conditions = []

    if status:
        conditions.append(Invoice.status == status)
    if customer:
        conditions.append(Invoice.customer_name.ilike(f"%{customer}%"))
    if order_id:
        conditions.append(Invoice.order_id == order_id)
    if date_from:
        conditions.append(Invoice.created_at >= datetime.combine(date_from, time.min))
    if date_to:
        conditions.append(Invoice.created_at < datetime.combine(date_to + timedelta(days=1), time.min))

    if conditions:
        query = query.where(and_(*conditions))

    total_result = await db.execute(select(func.count()).select_from(query.subquery()))
    total = total_result.scalar() or 0

    query = query.order_by(Invoice.created_at.desc(), Invoice.id.desc())
    result = await db.execute(query.offset((page - 1) * limit).limit(limit))

    return InvoiceListResponse(
        data=[build_invoice_response(i) for i in result.scalars().unique().all()],
        total=total,
        page=page,
        limit=limit
    )


@router.post("/", response_model=InvoiceResponse, status_code=201)
async def create_invoice(
    *,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_permission(MANAGE_INVOICES)),
    invoice_in: InvoiceCreate) -> Any:
    """Invoice a completed order"""
    invoice = await invoice_engine.create_invoice(db, invoice_in, created_by=principal.user_id)
    return build_invoice_response(invoice)


@router.get("/{invoice_id}", response_model=InvoiceResponse)
async def get_invoice(
    *,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_permission(MANAGE_INVOICES)),
    invoice_id: int) -> Any:
    """Invoice detail"""
    return build_invoice_response(await load_invoice(db, invoice_id))


@router.put("/{invoice_id}", response_model=InvoiceResponse)
async def update_invoice(
    *,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_permission(MANAGE_INVOICES)),
    invoice_id: int,
    invoice_in: InvoiceUpdate) -> Any:
    """Replace customer details, fees and items"""
    return build_invoice_response(await invoice_engine.update_invoice(db, invoice_id, invoice_in))


@router.patch("/{invoice_id}/status", response_model=InvoiceResponse)
async def update_invoice_status(
    *,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_permission(MANAGE_INVOICES)),
    invoice_id: int,
    status_in: InvoiceStatusUpdate) -> Any:
    """Set the invoice status"""
    invoice = await invoice_engine.set_status(db, invoice_id, status_in.status, changed_by=principal.user_id)
    return build_invoice_response(invoice)


@router.put("/{invoice_id}/approve", response_model=InvoiceResponse)
async def approve_invoice(
    *,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_permission(MANAGE_INVOICES)),
    invoice_id: int) -> Any:
    """Approve an invoice"""
    invoice = await invoice_engine.set_status(db, invoice_id, "approved", changed_by=principal.user_id)
    return build_invoice_response(invoice)


@router.put("/{invoice_id}/pay", response_model=InvoiceResponse)
async def pay_invoice(
    *,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_permission(MANAGE_INVOICES)),
    invoice_id: int) -> Any:
    """Mark an invoice paid"""
    invoice = await invoice_engine.set_status(db, invoice_id, "paid", changed_by=principal.user_id)
    return build_invoice_response(invoice)


@router.post("/{invoice_id}/items", response_model=InvoiceResponse, status_code=201)
async def add_invoice_item(
    *,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_permission(MANAGE_INVOICES)),
    invoice_id: int,
    item_in: InvoiceItemCreate) -> Any:
    """Add a line and recompute totals"""
    return build_invoice_response(await invoice_engine.add_item(db, invoice_id, item_in))


@router.put("/{invoice_id}/items/{item_id}", response_model=InvoiceResponse)
async def update_invoice_item(
    *,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_permission(MANAGE_INVOICES)),
    invoice_id: int,
    item_id: int,
    item_in: InvoiceItemUpdate) -> Any:
    """Edit a line and recompute totals"""
    return build_invoice_response(await invoice_engine.update_item(db, invoice_id, item_id, item_in))


@router.delete("/{invoice_id}/items/{item_id}", response_model=InvoiceResponse)
async def delete_invoice_item(
    *,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_permission(MANAGE_INVOICES)),
    invoice_id: int,
    item_id: int) -> Any:
    """Remove a line and recompute totals"""
    return build_invoice_response(await invoice_engine.delete_item(db, invoice_id, item_id))


@router.delete("/{invoice_id}", response_model=Message)
async def delete_invoice(
    *,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_permission(MANAGE_INVOICES)),
    invoice_id: int) -> Any:
    """Delete an invoice with its items"""
    await invoice_engine.delete_invoice(db, invoice_id)
    return Message(message="Invoice deleted", id=invoice_id)
