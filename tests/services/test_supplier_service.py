from __future__ import annotations

import pytest
from sqlalchemy import func, select

from inventario.models import AuditEvent, Supplier
from inventario.schemas.inventory import RegisterSupplierIn
from inventario.services.errors import DuplicateSupplier, InvalidSupplierData
from inventario.services.supplier_service import SupplierService


async def _supplier_count(session) -> int:
    return int((await session.execute(select(func.count()).select_from(Supplier))).scalar_one())


@pytest.mark.asyncio
async def test_register_new_supplier(session):
    s = await SupplierService().register_supplier(
        session,
        RegisterSupplierIn(
            name="  Distribuidora Andina  ",
            tax_id="20555555555",
            email="Ventas@Andina.PE",
            phone="+51 (1) 555-1234",
            actor_user_id=4,
        ),
    )

    assert s.id is not None
    assert s.name == "Distribuidora Andina"
    assert s.email == "ventas@andina.pe"
    assert s.active is True
    actions = (await session.execute(select(AuditEvent.action))).scalars().all()
    assert actions == ["PROVEEDOR_REGISTRADO"]


@pytest.mark.asyncio
async def test_same_tax_id_and_name_updates_contact(session):
    s = await SupplierService().register_supplier(
        session,
        RegisterSupplierIn(name="ferretería lima sac", tax_id="20123456789", contact="Rosa"),
    )

    assert s.id == 1
    assert s.contact == "Rosa"
    assert await _supplier_count(session) == 2


@pytest.mark.asyncio
async def test_same_tax_id_other_name_is_duplicate(session):
    with pytest.raises(DuplicateSupplier):
        await SupplierService().register_supplier(
            session, RegisterSupplierIn(name="Otra Empresa", tax_id="20123456789")
        )
    assert await _supplier_count(session) == 2


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    [
        {"name": "   ", "tax_id": "20555555555"},
        {"name": "X", "tax_id": "2055555555"},
        {"name": "X", "tax_id": "2055555555A"},
        {"name": "X", "tax_id": "20555555555", "email": "no-es-correo"},
        {"name": "X", "tax_id": "20555555555", "phone": "abc"},
    ],
)
async def test_invalid_supplier_data(session, payload):
    with pytest.raises(InvalidSupplierData):
        await SupplierService().register_supplier(session, RegisterSupplierIn(**payload))
    assert await _supplier_count(session) == 2
