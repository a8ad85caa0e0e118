"""
Contract Service
================

Read access to contracts for their two parties. Contracts are created
only by accepting a proposal (see ``proposalService``).
"""

from __future__ import annotations

import uuid
from typing import Optional, Sequence

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from manpower.models.contract import Contract, ContractStatus
from manpower.models.user import User


class ContractError(Exception):
    """Base exception for contract service errors."""


class ContractNotFoundError(ContractError):
    def __init__(self, contract_id: uuid.UUID) -> None:
        self.contract_id = contract_id
        super().__init__(f"Contract with id '{contract_id}' not found.")


class ContractPermissionError(ContractError):
    pass


def _with_relations(stmt):
    return stmt.options(
        selectinload(Contract.job),
        selectinload(Contract.client),
        selectinload(Contract.employee),
    )


async def list_contracts(
    db: AsyncSession,
    user: User,
    *,
    status_filter: Optional[str] = None,
) -> Sequence[Contract]:
    """Contracts where the user is client or employee, newest first."""
    filters = [or_(Contract.client_id == user.id, Contract.employee_id == user.id)]
    if status_filter:
        filters.append(Contract.status == ContractStatus(status_filter))
    stmt = _with_relations(select(Contract).where(*filters).order_by(Contract.created_at.desc()))
    return (await db.execute(stmt)).scalars().all()


async def get_contract(db: AsyncSession, contract_id: uuid.UUID, user: User) -> Contract:
    stmt = _with_relations(select(Contract).where(Contract.id == contract_id))
    contract = (await db.execute(stmt)).scalar_one_or_none()
    if contract is None:
        raise ContractNotFoundError(contract_id)
    if user.id not in (contract.client_id, contract.employee_id):
        raise ContractPermissionError("You are not a party to this contract.")
    return contract


async def get_contract_for_proposal(db: AsyncSession, proposal_id: uuid.UUID) -> Optional[Contract]:
    stmt = select(Contract).where(Contract.proposal_id == proposal_id)
    return (await db.execute(stmt)).scalar_one_or_none()
