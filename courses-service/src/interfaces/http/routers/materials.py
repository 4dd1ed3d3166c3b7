from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from sqlalchemy.orm import Session
from ....domain.entities import ItemType, Viewer
from ....infrastructure.blob_store import get_blob_store
from ....infrastructure.cache import invalidate_course
from ....infrastructure.db import get_db
from ....infrastructure.locks import get_course_locks
from ....infrastructure.metrics import db_queries_total, locked_content_requests_total
from ..authz import get_viewer, require_admin
from ..deps import (
    add_content, admin_view, list_content, record_mutation, remove_content, restore_content, to_uploaded, update_content,
)
from ..schemas import MaterialListOut, MaterialMutationOut, MaterialUpdate, material_list_out, material_out

router = APIRouter(prefix="/api/courses", tags=["materials"])

def _mutation_out(result, kind: str) -> MaterialMutationOut:
    record_mutation(result, kind)
    return MaterialMutationOut(
        material=material_out(admin_view(result.item)), version=result.version.version_number, forked=result.forked
    )

@router.get("/{course_id}/materials", response_model=MaterialListOut)
def list_materials(course_id: int, version: int | None = Query(None, ge=1), db: Session = Depends(get_db),
                   blob_store=Depends(get_blob_store), viewer: Viewer = Depends(get_viewer)):
    db_queries_total.inc()
    listing = list_content(db, blob_store).execute(course_id, ItemType.MATERIAL, viewer, version=version)
    locked = sum(1 for m in listing.items if not m.access.has_access)
    if locked:
        locked_content_requests_total.labels(item_type="material").inc(locked)
    return material_list_out(listing)

# --- Admin-only:

@router.post("/{course_id}/materials", response_model=MaterialMutationOut, status_code=status.HTTP_201_CREATED)
def upload_material(course_id: int,
                    file: UploadFile | None = File(None),
                    title: str | None = Form(None),
                    description: str | None = Form(None),
                    order: int = Form(0),
                    db: Session = Depends(get_db),
                    blob_store=Depends(get_blob_store),
                    locks=Depends(get_course_locks),
                    claims: dict = Depends(require_admin)):
    metadata = {"title": title, "description": description, "order": order}
    result = add_content(db, blob_store, locks).execute(
        course_id, ItemType.MATERIAL, to_uploaded(file), metadata, actor=claims.get("sub")
    )
    invalidate_course(course_id)
    return _mutation_out(result, "add")

@router.patch("/{course_id}/materials/{material_id}", response_model=MaterialMutationOut)
def update_material(course_id: int, material_id: int, payload: MaterialUpdate, db: Session = Depends(get_db),
                    claims: dict = Depends(require_admin)):
    fields = payload.model_dump(exclude_unset=True, exclude_none=True)
    result = update_content(db).execute(course_id, ItemType.MATERIAL, material_id, fields, actor=claims.get("sub"))
    invalidate_course(course_id)
    return _mutation_out(result, "editMetadata")

@router.delete("/{course_id}/materials/{material_id}", response_model=MaterialMutationOut)
def delete_material(course_id: int, material_id: int, db: Session = Depends(get_db),
                    locks=Depends(get_course_locks), claims: dict = Depends(require_admin)):
    result = remove_content(db, locks).execute(course_id, ItemType.MATERIAL, material_id, actor=claims.get("sub"))
    invalidate_course(course_id)
    return _mutation_out(result, "remove")

@router.post("/{course_id}/materials/{material_id}/restore", response_model=MaterialMutationOut)
def restore_material(course_id: int, material_id: int, db: Session = Depends(get_db),
                     locks=Depends(get_course_locks), claims: dict = Depends(require_admin)):
    result = restore_content(db, locks).execute(course_id, ItemType.MATERIAL, material_id, actor=claims.get("sub"))
    invalidate_course(course_id)
    return _mutation_out(result, "restore")
