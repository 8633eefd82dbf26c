"""Bangladesh address router.

Reads are open to any authenticated user; writes are Admin only.
"""


from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.addresses.schemas import AddressCreate, AddressResponse
from hrms.addresses.service import AddressService
from hrms.auth.dependencies import get_current_user, has_role, require_role
from hrms.auth.models import User
from hrms.common.constants import UserRole
from hrms.common.pagination import PaginationParams
from hrms.database import get_db

router = APIRouter(prefix="", tags=["addresses"])


def _one(address) -> dict:
    return AddressResponse.model_validate(address).model_dump(mode="json")


@router.get("")
async def list_addresses(
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    pagination: PaginationParams = Depends(),
    division: Optional[str] = Query(None),
    district: Optional[str] = Query(None),
    upazila: Optional[str] = Query(None),
    union: Optional[str] = Query(None),
    postal_code: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    include_inactive: bool = Query(False, description="Admin only"),
):
    result = await AddressService.list_addresses(
        db,
        pagination,
        division=division,
        district=district,
        upazila=upazila,
        union=union,
        postal_code=postal_code,
        search=search,
        include_inactive=include_inactive and has_role(request, UserRole.admin),
    )
    return {"data": [_one(a) for a in result.data], "meta": result.meta.model_dump()}


@router.get("/postal-code/{postal_code}")
async def get_by_postal_code(
    postal_code: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    address = await AddressService.by_postal_code(db, postal_code)
    return {"data": _one(address), "message": "Address found successfully."}


@router.get("/divisions")
async def list_divisions(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    places = await AddressService.divisions(db)
    return {
        "data": [p.model_dump() for p in places],
        "message": f"Found {len(places)} division(s).",
    }


@router.get("/districts")
async def list_districts(
    division: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    places = await AddressService.districts(db, division)
    return {
        "data": [p.model_dump() for p in places],
        "message": f"Found {len(places)} district(s).",
    }


@router.get("/upazilas")
async def list_upazilas(
    district: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    places = await AddressService.upazilas(db, district)
    return {
        "data": [p.model_dump() for p in places],
        "message": f"Found {len(places)} upazila(s).",
    }


@router.get("/statistics")
async def address_statistics(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    stats = await AddressService.statistics(db)
    return {"data": stats, "message": "Address statistics retrieved successfully."}


@router.get("/{address_id}")
async def get_address(
    address_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    address = await AddressService.get_address(db, address_id)
    return {"data": _one(address), "message": "Address retrieved successfully."}


@router.post("", status_code=201)
async def create_address(
    body: AddressCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.admin)),
):
    address = await AddressService.create_address(db, body, actor_id=current_user.id)
    return {"data": _one(address), "message": "Address created successfully."}


@router.delete("/{address_id}")
async def delete_address(
    address_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.admin)),
):
    await AddressService.delete_address(db, address_id, actor_id=current_user.id)
    return {"data": None, "message": "Address deleted successfully."}
