# inventario/services/supplier_service.py
from __future__ import annotations

import re
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from inventario.core.tx import tx_scope
from inventario.models.supplier import Supplier
from inventario.ports import AuditSink
from inventario.schemas.inventory import RegisterSupplierIn
from inventario.services.audit_writer import DbAuditSink
from inventario.services.errors import DuplicateSupplier, InvalidSupplierData

_TAX_ID_RE = re.compile(r"^\d{11}$")
_PHONE_RE = re.compile(r"^[0-9+()\-\s]{6,20}$")
_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


class SupplierService:
    """
    供应商登记：按税号 upsert

    - 同税号 + 同名：视为同一家，更新联系方式并返回原记录
    - 同税号 + 不同名：DuplicateSupplier
    """

    def __init__(self, audit: Optional[AuditSink] = None) -> None:
        self._audit = audit or DbAuditSink()

    @staticmethod
    def _validate(dto: RegisterSupplierIn) -> RegisterSupplierIn:
        name = _clean(dto.name)
        if not name:
            raise InvalidSupplierData("supplier name is required", context={"field": "name"})
        tax_id = (dto.tax_id or "").strip()
        if not _TAX_ID_RE.match(tax_id):
            raise InvalidSupplierData("tax id must have 11 digits", context={"field": "tax_id"})

        phone = _clean(dto.phone)
        contact_phone = _clean(dto.contact_phone)
        for field, value in (("phone", phone), ("contact_phone", contact_phone)):
            if value and not _PHONE_RE.match(value):
                raise InvalidSupplierData(f"invalid {field}", context={"field": field})

        email = _clean(dto.email)
        if email and not _EMAIL_RE.match(email):
            raise InvalidSupplierData("invalid email", context={"field": "email"})

        return dto.model_copy(
            update={
                "name": name,
                "tax_id": tax_id,
                "trade_name": _clean(dto.trade_name),
                "contact": _clean(dto.contact),
                "contact_phone": contact_phone,
                "phone": phone,
                "email": email.lower() if email else None,
            }
        )

    async def register_supplier(self, session: AsyncSession, dto: RegisterSupplierIn) -> Supplier:
        data = self._validate(dto)
        try:
            async with tx_scope(session):
                stmt = (
                    select(Supplier)
                    .where(Supplier.tax_id == data.tax_id)
                    .with_for_update()
                    .execution_options(populate_existing=True)
                )
                supplier = (await session.execute(stmt)).scalar_one_or_none()

                if supplier is None:
                    supplier = Supplier(
                        name=data.name,
                        tax_id=data.tax_id,
                        trade_name=data.trade_name,
                        contact=data.contact,
                        contact_phone=data.contact_phone,
                        phone=data.phone,
                        email=data.email,
                        active=True,
                    )
                    session.add(supplier)
                    action = "PROVEEDOR_REGISTRADO"
                elif supplier.name.casefold() != data.name.casefold():
                    raise DuplicateSupplier(
                        "tax id already registered for another supplier",
                        context={"tax_id": data.tax_id, "supplier_id": supplier.id},
                    )
                else:
                    for field in ("trade_name", "contact", "contact_phone", "phone", "email"):
                        value = getattr(data, field)
                        if value is not None:
                            setattr(supplier, field, value)
                    action = "PROVEEDOR_ACTUALIZADO"
                await session.flush()

                await self._audit.record(
                    session,
                    actor_id=data.actor_user_id,
                    action=action,
                    description=f"Proveedor {supplier.name} (RUC {supplier.tax_id})",
                    table="suppliers",
                    ref=f"proveedor:{supplier.id}",
                )
        except IntegrityError as e:
            # 并发登记同一税号，唯一约束兜底
            raise DuplicateSupplier(
                "tax id already registered", context={"tax_id": data.tax_id}
            ) from e
        return supplier
