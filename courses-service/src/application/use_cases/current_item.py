from ...domain.entities import ContentItem, Course, ItemType
from ...domain.errors import NotFoundError
from ..ports import IContentRegistry


def resolve_current_item(registry: IContentRegistry, course: Course, item_type: ItemType,
                         item_id: int) -> ContentItem:
    """Строка текущей версии, которую надо менять вместо item_id.

    Строки старых версий не меняются никогда: если item_id из старой версии,
    ищем в текущей строку с тем же файлом.
    """
    item = registry.get(item_type, item_id)
    if item.course_id != course.id:
        raise NotFoundError(f"{item_type.value} not found")
    if item.course_version == course.current_version:
        if not item.is_active:
            raise NotFoundError(f"{item_type.value} already removed")
        return item
    counterpart = registry.find_in_version(item_type, course.id, course.current_version, item.blob_key)
    if counterpart is None:
        raise NotFoundError(f"{item_type.value} is not part of the current version")
    return counterpart
