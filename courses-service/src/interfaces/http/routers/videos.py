from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from sqlalchemy.orm import Session
from ....domain.entities import ItemType, Viewer
from ....domain.errors import ForbiddenError
from ....infrastructure.blob_store import get_blob_store
from ....infrastructure.cache import invalidate_course
from ....infrastructure.db import get_db
from ....infrastructure.locks import get_course_locks
from ....infrastructure.metrics import db_queries_total, locked_content_requests_total
from ..authz import get_viewer, require_admin
from ..deps import (
    add_content, admin_view, get_video, list_content, record_mutation, remove_content, restore_content, to_uploaded,
    update_content,
)
from ..schemas import VideoListOut, VideoMutationOut, VideoOut, VideoUpdate, video_list_out, video_out

router = APIRouter(prefix="/api/courses", tags=["videos"])

def _mutation_out(result, kind: str) -> VideoMutationOut:
    record_mutation(result, kind)
    return VideoMutationOut(
        video=video_out(admin_view(result.item)), version=result.version.version_number, forked=result.forked
    )

@router.get("/{course_id}/videos", response_model=VideoListOut)
def list_videos(course_id: int, version: int | None = Query(None, ge=1), db: Session = Depends(get_db),
                blob_store=Depends(get_blob_store), viewer: Viewer = Depends(get_viewer)):
    # ответ зависит от зрителя, поэтому не кэшируется
    db_queries_total.inc()
    listing = list_content(db, blob_store).execute(course_id, ItemType.VIDEO, viewer, version=version)
    locked = sum(1 for v in listing.items if not v.access.has_access)
    if locked:
        locked_content_requests_total.labels(item_type="video").inc(locked)
    return video_list_out(listing)

@router.get("/{course_id}/videos/{video_id}", response_model=VideoOut)
def stream_video(course_id: int, video_id: int, db: Session = Depends(get_db),
                 blob_store=Depends(get_blob_store), viewer: Viewer = Depends(get_viewer)):
    db_queries_total.inc()
    try:
        view = get_video(db, blob_store).execute(course_id, video_id, viewer)
    except ForbiddenError:
        locked_content_requests_total.labels(item_type="video").inc()
        raise
    return video_out(view)

# --- Admin-only:

@router.post("/{course_id}/videos", response_model=VideoMutationOut, status_code=status.HTTP_201_CREATED)
def upload_video(course_id: int,
                 file: UploadFile | None = File(None),
                 title: str | None = Form(None),
                 description: str | None = Form(None),
                 order: int = Form(0),
                 duration: str | None = Form(None),
                 is_free_preview: bool = Form(False),
                 db: Session = Depends(get_db),
                 blob_store=Depends(get_blob_store),
                 locks=Depends(get_course_locks),
                 claims: dict = Depends(require_admin)):
    metadata = {
        "title": title,
        "description": description,
        "order": order,
        "duration": duration,
        "is_free_preview": is_free_preview,
    }
    result = add_content(db, blob_store, locks).execute(
        course_id, ItemType.VIDEO, to_uploaded(file), metadata, actor=claims.get("sub")
    )
    invalidate_course(course_id)
    return _mutation_out(result, "add")

@router.patch("/{course_id}/videos/{video_id}", response_model=VideoMutationOut)
def update_video(course_id: int, video_id: int, payload: VideoUpdate, db: Session = Depends(get_db),
                 claims: dict = Depends(require_admin)):
    # null в PATCH значит "не менять"
    fields = payload.model_dump(exclude_unset=True, exclude_none=True)
    result = update_content(db).execute(course_id, ItemType.VIDEO, video_id, fields, actor=claims.get("sub"))
    invalidate_course(course_id)
    return _mutation_out(result, "editMetadata")

@router.delete("/{course_id}/videos/{video_id}", response_model=VideoMutationOut)
def delete_video(course_id: int, video_id: int, db: Session = Depends(get_db),
                 locks=Depends(get_course_locks), claims: dict = Depends(require_admin)):
    result = remove_content(db, locks).execute(course_id, ItemType.VIDEO, video_id, actor=claims.get("sub"))
    invalidate_course(course_id)
    return _mutation_out(result, "remove")

@router.post("/{course_id}/videos/{video_id}/restore", response_model=VideoMutationOut)
def restore_video(course_id: int, video_id: int, db: Session = Depends(get_db),
                  locks=Depends(get_course_locks), claims: dict = Depends(require_admin)):
    result = restore_content(db, locks).execute(course_id, ItemType.VIDEO, video_id, actor=claims.get("sub"))
    invalidate_course(course_id)
    return _mutation_out(result, "restore")
