# pte_portal/api/v1/endpoints/materials.py

import logging
from typing import List, Dict, Any
from fastapi import APIRouter, Depends, HTTPException, status
from motor.motor_asyncio import AsyncIOMotorDatabase

from ....db import crud
from ....models.material import Material, MaterialInDB, MaterialWrite
from ....core.security import get_current_user_payload
from ...deps import get_db, require_admin, user_id_from_payload, parse_object_id

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/materials",
    tags=["Materials"]
)


def _require_material_fields(material_in: MaterialWrite) -> None:
    if not material_in.title or not material_in.type:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Title and type are required")


@router.get(
    "",
    response_model=List[Material],
    status_code=status.HTTP_200_OK,
    summary="List active learning materials",
)
async def read_materials(
    current_user_payload: Dict[str, Any] = Depends(get_current_user_payload),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    return await crud.list_materials(db)


@router.post(
    "",
    response_model=Material,
    status_code=status.HTTP_201_CREATED,
    summary="Publish a learning material (Admin)",
)
async def create_material(
    material_in: MaterialWrite,
    current_user_payload: Dict[str, Any] = Depends(require_admin),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    _require_material_fields(material_in)
    admin_id = user_id_from_payload(current_user_payload)

    material_doc = MaterialInDB(
        **material_in.model_dump(),
        uploaded_by=admin_id,
    )
    created = await crud.create_material(db, material_doc)
    logger.info(f"Admin {admin_id} created material {created.id} ({created.type}, {created.language})")
    return created


@router.put(
    "/{material_id}",
    response_model=Material,
    status_code=status.HTTP_200_OK,
    summary="Replace a learning material (Admin)",
    description="Full replacement: optional fields left out of the body return to their defaults."
)
async def update_material(
    material_id: str,
    material_in: MaterialWrite,
    current_user_payload: Dict[str, Any] = Depends(require_admin),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    target_id = parse_object_id(material_id, "material id")
    _require_material_fields(material_in)

    updated = await crud.replace_material(db, target_id, material_in.model_dump())
    if updated is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Material not found")
    logger.info(f"Admin {current_user_payload.get('sub')} replaced material {target_id}")
    return updated


@router.delete(
    "/{material_id}",
    status_code=status.HTTP_200_OK,
    summary="Soft-delete a learning material (Admin)",
)
async def delete_material(
    material_id: str,
    current_user_payload: Dict[str, Any] = Depends(require_admin),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    target_id = parse_object_id(material_id, "material id")
    if not await crud.soft_delete_material(db, target_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Material not found")
    logger.info(f"Admin {current_user_payload.get('sub')} soft-deleted material {target_id}")
    return {"message": "Material deleted successfully"}
