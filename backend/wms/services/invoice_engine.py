"""
Invoice engine

Totals are a pure function of the items plus the invoice's cutting fee and
discount:

    subtotal = sum(item.total_price)
    tax      = round((subtotal - discount + cutting_fee) * TAX_RATE, 2)
    total    = subtotal - discount + cutting_fee + tax

``recompute_totals`` is the only writer of subtotal / tax / total_amount and
runs inside the same transaction as every item mutation.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, List, Optional

from sqlalchemy import select, delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from wms.core.config import settings
from wms.core.exceptions import (
    DuplicateInvoiceError, NotFoundError, OrderNotCompletedError, ValidationError,
)
from wms.models.invoice import Invoice, InvoiceItem, INVOICE_STATUSES
from wms.models.order import Order
from wms.schemas.invoice import InvoiceCreate, InvoiceItemCreate, InvoiceItemUpdate, InvoiceUpdate
from wms.services import notifications
from wms.services.numbering import flush_numbered, generate_number
from wms.services.transaction import atomic

logger = logging.getLogger(__name__)

INVOICE_PREFIX = "INV"
CENT = Decimal("0.01")


@dataclass(frozen=True)
class InvoiceTotals:
    subtotal: Decimal
    tax: Decimal
    total_amount: Decimal


def money(value) -> Decimal:
    return Decimal(str(value or 0)).quantize(CENT, rounding=ROUND_HALF_UP)


def line_total(quantity: int, unit_price) -> Decimal:
    return money(Decimal(quantity) * Decimal(str(unit_price)))


def compute_totals(
    item_totals: Iterable[Decimal],
    discount=0,
    cutting_fee=0,
    tax_rate=None,
) -> InvoiceTotals:
    rate = Decimal(str(settings.TAX_RATE if tax_rate is None else tax_rate))
    subtotal = money(sum((Decimal(str(t)) for t in item_totals), Decimal("0")))
    taxable = subtotal - money(discount) + money(cutting_fee)
    tax = money(taxable * rate)
    return InvoiceTotals(
        subtotal=subtotal,
        tax=tax,
        total_amount=taxable + tax,
    )


def base_invoice_query():
    return select(Invoice).options(
        selectinload(Invoice.items),
        selectinload(Invoice.order),
    )


async def load_invoice(db: AsyncSession, invoice_id: int) -> Invoice:
    result = await db.execute(
        base_invoice_query()
        .where(Invoice.id == invoice_id)
        .execution_options(populate_existing=True)
    )
    invoice = result.scalar_one_or_none()
    if not invoice:
        raise NotFoundError("Invoice", invoice_id)
    return invoice


async def recompute_totals(db: AsyncSession, invoice_id: int) -> Invoice:
    """Re-derive subtotal, tax and total from the stored items and fees"""
    await db.flush()
    invoice = await db.get(Invoice, invoice_id, populate_existing=True)
    if not invoice:
        raise NotFoundError("Invoice", invoice_id)
    result = await db.execute(
        select(InvoiceItem.total_price).where(InvoiceItem.invoice_id == invoice_id)
    )
    totals = compute_totals(
        [row[0] for row in result],
        discount=invoice.discount,
        cutting_fee=invoice.cutting_fee,
    )
    invoice.subtotal = totals.subtotal
    invoice.tax = totals.tax
    invoice.total_amount = totals.total_amount
    return invoice


def _build_items(invoice_id: int, items_in: List[InvoiceItemCreate]) -> List[InvoiceItem]:
    return [
        InvoiceItem(
            invoice_id=invoice_id,
            material_id=item_in.material_id,
            material_name=item_in.material_name,
            description=item_in.description,
            quantity=item_in.quantity,
            unit_price=money(item_in.unit_price),
            total_price=line_total(item_in.quantity, item_in.unit_price),
            notes=item_in.notes,
        )
        for item_in in items_in
    ]


async def create_invoice(db: AsyncSession, invoice_in: InvoiceCreate, created_by: Optional[int] = None) -> Invoice:
    if not invoice_in.items:
        raise ValidationError("An invoice needs at least one item")

    async with atomic(db, "Invoice creation"):
        order = await db.get(Order, invoice_in.order_id)
        if not order or order.status != "completed":
            raise OrderNotCompletedError(invoice_in.order_id)

        existing = await db.execute(select(Invoice.id).where(Invoice.order_id == order.id))
        if existing.first():
            raise DuplicateInvoiceError(order.id)

        invoice_number = await generate_number(db, Invoice.invoice_number, INVOICE_PREFIX)
        invoice = Invoice(
            invoice_number=invoice_number,
            order_id=order.id,
            customer_name=invoice_in.customer_name or order.customer_name,
            customer_phone=invoice_in.customer_phone if invoice_in.customer_phone is not None else order.customer_phone,
            customer_address=invoice_in.customer_address if invoice_in.customer_address is not None else order.customer_address,
            cutting_fee=money(invoice_in.cutting_fee),
            discount=money(invoice_in.discount),
            status="draft",
            notes=invoice_in.notes,
            created_by=created_by,
        )
        db.add(invoice)
        try:
            await flush_numbered(db, Invoice.invoice_number, invoice_number)
        except IntegrityError as exc:
            # A concurrent request invoiced the same order first
            if "order_id" in str(exc.orig):
                raise DuplicateInvoiceError(order.id) from exc
            raise

        db.add_all(_build_items(invoice.id, invoice_in.items))
        await recompute_totals(db, invoice.id)

    logger.info(f"Invoice {invoice.invoice_number} created for order {order.order_number}, total {invoice.total_amount}")
    await notifications.notify_invoice_created(db, invoice, created_by)
    return await load_invoice(db, invoice.id)


async def update_invoice(db: AsyncSession, invoice_id: int, invoice_in: InvoiceUpdate) -> Invoice:
    """Replace customer fields, fees and all items"""
    async with atomic(db, "Invoice update"):
        invoice = await db.get(Invoice, invoice_id)
        if not invoice:
            raise NotFoundError("Invoice", invoice_id)

        invoice.customer_name = invoice_in.customer_name
        invoice.customer_phone = invoice_in.customer_phone
        invoice.customer_address = invoice_in.customer_address
        invoice.cutting_fee = money(invoice_in.cutting_fee)
        invoice.discount = money(invoice_in.discount)
        invoice.notes = invoice_in.notes

        await db.execute(delete(InvoiceItem).where(InvoiceItem.invoice_id == invoice_id))
        db.add_all(_build_items(invoice_id, invoice_in.items))
        await recompute_totals(db, invoice_id)

    return await load_invoice(db, invoice_id)


async def add_item(db: AsyncSession, invoice_id: int, item_in: InvoiceItemCreate) -> Invoice:
    async with atomic(db, "Invoice item creation"):
        if not await db.get(Invoice, invoice_id):
            raise NotFoundError("Invoice", invoice_id)
        db.add_all(_build_items(invoice_id, [item_in]))
        await recompute_totals(db, invoice_id)
    return await load_invoice(db, invoice_id)


async def _get_item(db: AsyncSession, invoice_id: int, item_id: int) -> InvoiceItem:
    result = await db.execute(
        select(InvoiceItem).where(InvoiceItem.id == item_id, InvoiceItem.invoice_id == invoice_id)
    )
    item = result.scalar_one_or_none()
    if not item:
        raise NotFoundError("Invoice item", item_id)
    return item


async def update_item(db: AsyncSession, invoice_id: int, item_id: int, item_in: InvoiceItemUpdate) -> Invoice:
    async with atomic(db, "Invoice item update"):
        item = await _get_item(db, invoice_id, item_id)
        update_data = item_in.model_dump(exclude_unset=True)
        for field in ("material_name", "description", "notes"):
            if field in update_data:
                setattr(item, field, update_data[field])
        if update_data.get("quantity") is not None:
            item.quantity = update_data["quantity"]
        if update_data.get("unit_price") is not None:
            item.unit_price = money(update_data["unit_price"])
        item.total_price = line_total(item.quantity, item.unit_price)
        await recompute_totals(db, invoice_id)
    return await load_invoice(db, invoice_id)


async def delete_item(db: AsyncSession, invoice_id: int, item_id: int) -> Invoice:
    async with atomic(db, "Invoice item deletion"):
        item = await _get_item(db, invoice_id, item_id)
        await db.delete(item)
        await recompute_totals(db, invoice_id)
    return await load_invoice(db, invoice_id)


async def set_status(db: AsyncSession, invoice_id: int, status: str, changed_by: Optional[int] = None) -> Invoice:
    """Any status may follow any other; approval, payment and delivery are stamped"""
    if status not in INVOICE_STATUSES:
        raise ValidationError(f"Unknown invoice status '{status}'")

    async with atomic(db, "Invoice status change"):
        invoice = await db.get(Invoice, invoice_id)
        if not invoice:
            raise NotFoundError("Invoice", invoice_id)
        now = datetime.utcnow()
        invoice.status = status
        if status == "approved":
            invoice.approved_by = changed_by
            invoice.approved_at = now
        elif status == "paid":
            invoice.paid_at = now
        elif status == "delivered":
            invoice.delivered_at = now

    logger.info(f"Invoice {invoice.invoice_number} -> {status}")
    return await load_invoice(db, invoice_id)


async def delete_invoice(db: AsyncSession, invoice_id: int) -> None:
    async with atomic(db, "Invoice deletion"):
        await db.execute(delete(InvoiceItem).where(InvoiceItem.invoice_id == invoice_id))
        result = await db.execute(delete(Invoice).where(Invoice.id == invoice_id))
        if result.rowcount != 1:
            raise NotFoundError("Invoice", invoice_id)
