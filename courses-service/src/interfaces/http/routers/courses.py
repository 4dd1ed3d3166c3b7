from fastapi import APIRouter, Depends, File, Query, UploadFile, status
from sqlalchemy.orm import Session
from ....application.use_cases.list_content import VersionHistory
from ....application.use_cases.manage_course import (
    ArchiveCourse, CreateCourse, DeactivateCourse, EnrollStudent, ReactivateCourse, UnarchiveCourse,
    UpdateCourseDetails, UploadCourseThumbnail,
)
from ....config import settings
from ....domain.entities import Course, CourseStatus
from ....infrastructure.blob_store import get_blob_store
from ....infrastructure.cache import get_cache, set_cache, course_key, course_list_key, invalidate_course
from ....infrastructure.db import get_db
from ....infrastructure.locks import get_course_locks
from ....infrastructure.metrics import cache_hits_total, cache_misses_total, db_queries_total
from ....infrastructure.repositories import CourseRepository, EnrollmentRepository, VersionLedger
from ..authz import require_admin
from ..deps import to_uploaded
from ..schemas import (
    BilingualOut, CourseCreate, CourseOut, CourseUpdate, EnrollmentCreate, EnrollmentOut, VersionOut,
)

router = APIRouter(prefix="/api/courses", tags=["courses"])

def course_out(course: Course, blob_store) -> CourseOut:
    thumbnail_url = None
    if course.thumbnail_key:
        thumbnail_url = blob_store.sign_get(course.thumbnail_key, settings.THUMBNAIL_URL_TTL)
    return CourseOut(
        id=course.id,
        title=BilingualOut.model_validate(course.title),
        description=BilingualOut.model_validate(course.description),
        current_version=course.current_version,
        status=course.status,
        thumbnail_url=thumbnail_url,
        student_count=len(course.enrolled_student_ids),
        created_at=course.created_at,
    )

@router.get("/health")
def health(): return {"status":"ok"}

@router.get("", response_model=list[CourseOut])
def list_courses(db: Session = Depends(get_db),
                 blob_store=Depends(get_blob_store),
                 limit: int = Query(10, ge=1, le=100),
                 offset: int = Query(0, ge=0)):
    # Кэширование списка курсов
    cache_key = course_list_key(limit, offset)
    cached = get_cache(cache_key)
    if cached:
        cache_hits_total.inc()
        return cached

    cache_misses_total.inc()
    db_queries_total.inc()
    # в публичном списке только активные курсы
    courses = CourseRepository(db).list(limit, offset, status=CourseStatus.ACTIVE)
    result = [course_out(c, blob_store) for c in courses]
    set_cache(cache_key, [r.model_dump(mode="json") for r in result])
    return result

@router.get("/{course_id}", response_model=CourseOut)
def get_course(course_id: int, db: Session = Depends(get_db), blob_store=Depends(get_blob_store)):
    cache_key = course_key(course_id, "details")
    cached = get_cache(cache_key)
    if cached:
        cache_hits_total.inc()
        return cached

    cache_misses_total.inc()
    db_queries_total.inc()
    result = course_out(CourseRepository(db).get(course_id), blob_store)
    set_cache(cache_key, result.model_dump(mode="json"))
    return result

# --- Admin-only:

@router.get("/{course_id}/versions", response_model=list[VersionOut], dependencies=[Depends(require_admin)])
def list_versions(course_id: int, db: Session = Depends(get_db)):
    cache_key = course_key(course_id, "versions")
    cached = get_cache(cache_key)
    if cached:
        cache_hits_total.inc()
        return cached

    cache_misses_total.inc()
    db_queries_total.inc()
    versions = VersionHistory(CourseRepository(db), VersionLedger(db)).list(course_id)
    result = [VersionOut.model_validate(v) for v in versions]
    set_cache(cache_key, [r.model_dump(mode="json") for r in result])
    return result

@router.get("/{course_id}/versions/{version_number}", response_model=VersionOut, dependencies=[Depends(require_admin)])
def get_version(course_id: int, version_number: int, db: Session = Depends(get_db)):
    db_queries_total.inc()
    version = VersionHistory(CourseRepository(db), VersionLedger(db)).get(course_id, version_number)
    return VersionOut.model_validate(version)

@router.post("", response_model=CourseOut, status_code=status.HTTP_201_CREATED)
def create_course(payload: CourseCreate, db: Session = Depends(get_db),
                  blob_store=Depends(get_blob_store), claims: dict = Depends(require_admin)):
    course = CreateCourse(CourseRepository(db), VersionLedger(db), db).execute(
        payload.title, payload.description, created_by=claims.get("sub")
    )
    # Инвалидируем кэш списка курсов
    invalidate_course(course.id)
    return course_out(course, blob_store)

@router.put("/{course_id}", response_model=CourseOut)
def update_course(course_id: int, payload: CourseUpdate, db: Session = Depends(get_db),
                  blob_store=Depends(get_blob_store), claims: dict = Depends(require_admin)):
    course = UpdateCourseDetails(CourseRepository(db), db).execute(
        course_id, title=payload.title, description=payload.description, actor=claims.get("sub")
    )
    invalidate_course(course_id)
    return course_out(course, blob_store)

def _change_status(use_case_cls, course_id: int, db: Session, blob_store, claims: dict) -> CourseOut:
    course = use_case_cls(CourseRepository(db), db).execute(course_id, actor=claims.get("sub"))
    invalidate_course(course_id)
    return course_out(course, blob_store)

@router.post("/{course_id}/archive", response_model=CourseOut)
def archive_course(course_id: int, db: Session = Depends(get_db),
                   blob_store=Depends(get_blob_store), claims: dict = Depends(require_admin)):
    return _change_status(ArchiveCourse, course_id, db, blob_store, claims)

@router.post("/{course_id}/unarchive", response_model=CourseOut)
def unarchive_course(course_id: int, db: Session = Depends(get_db),
                     blob_store=Depends(get_blob_store), claims: dict = Depends(require_admin)):
    return _change_status(UnarchiveCourse, course_id, db, blob_store, claims)

@router.post("/{course_id}/deactivate", response_model=CourseOut)
def deactivate_course(course_id: int, db: Session = Depends(get_db),
                      blob_store=Depends(get_blob_store), claims: dict = Depends(require_admin)):
    return _change_status(DeactivateCourse, course_id, db, blob_store, claims)

@router.post("/{course_id}/reactivate", response_model=CourseOut)
def reactivate_course(course_id: int, db: Session = Depends(get_db),
                      blob_store=Depends(get_blob_store), claims: dict = Depends(require_admin)):
    return _change_status(ReactivateCourse, course_id, db, blob_store, claims)

@router.post("/{course_id}/thumbnail", response_model=CourseOut)
def upload_thumbnail(course_id: int, file: UploadFile | None = File(None), db: Session = Depends(get_db),
                     blob_store=Depends(get_blob_store), claims: dict = Depends(require_admin)):
    use_case = UploadCourseThumbnail(CourseRepository(db), blob_store, db, max_size=settings.MAX_THUMBNAIL_SIZE)
    course = use_case.execute(course_id, to_uploaded(file), actor=claims.get("sub"))
    invalidate_course(course_id)
    return course_out(course, blob_store)

@router.post("/{course_id}/enrollments", response_model=EnrollmentOut, status_code=status.HTTP_201_CREATED,
             dependencies=[Depends(require_admin)])
def enroll_student(course_id: int, payload: EnrollmentCreate, db: Session = Depends(get_db),
                   locks=Depends(get_course_locks)):
    use_case = EnrollStudent(CourseRepository(db), EnrollmentRepository(db), db, locks)
    enrollment = use_case.execute(course_id, payload.user_id, granted_by=payload.granted_by)
    invalidate_course(course_id)
    return EnrollmentOut.model_validate(enrollment)
