"""
Contract API Routes
===================

Contracts are created by accepting a proposal; these routes only read.

Routes:
  GET /api/v1/contracts                  -- contracts the caller is party to
  GET /api/v1/contracts/{contract_id}    -- contract detail
"""

from __future__ import annotations

import uuid
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, status

from manpower.api.deps import CurrentUser, DBSession
from manpower.api.schemas.contract import (
    ContractDetailOut,
    ContractListResponse,
    ContractResponse,
)
from manpower.models.contract import ContractStatus
from manpower.services import contractService

router = APIRouter(prefix="/contracts", tags=["Contracts"])


@router.get("", response_model=ContractListResponse, summary="Own contracts")
async def list_contracts(
    db: DBSession,
    current_user: CurrentUser,
    status_filter: Optional[ContractStatus] = Query(default=None, alias="status"),
) -> ContractListResponse:
    contracts = await contractService.list_contracts(
        db, current_user, status_filter=status_filter.value if status_filter else None
    )
    return ContractListResponse(data=[ContractDetailOut.model_validate(c) for c in contracts])


@router.get("/{contract_id}", response_model=ContractResponse, summary="Contract detail")
async def get_contract(
    contract_id: uuid.UUID,
    db: DBSession,
    current_user: CurrentUser,
) -> ContractResponse:
    try:
        contract = await contractService.get_contract(db, contract_id, current_user)
    except contractService.ContractNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    except contractService.ContractPermissionError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc))
    return ContractResponse(data=ContractDetailOut.model_validate(contract))
