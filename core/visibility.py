"""
core/visibility.py
Who may see a prayer request.

can_view() decides for a single row; visible_to() is the same rule as a SQL
clause so list queries return exactly the rows can_view() would allow.
Admins get no override for PRIVATE or ADMIN_ONLY.
"""

import uuid
from typing import Collection, Optional

from sqlalchemy import ColumnElement, and_, false, or_

from shared.models.models import PrayerRequest, Visibility


def can_view(
    request: PrayerRequest,
    viewer_id: Optional[uuid.UUID],
    viewer_is_admin: bool,
    member_group_ids: Collection[uuid.UUID],
) -> bool:
    """Pure and total over Visibility. Unknown values fail closed."""
    match request.visibility:
        case Visibility.PUBLIC:
            return True
        case Visibility.PRIVATE:
            return viewer_id is not None and viewer_id == request.author_id
        case Visibility.GROUP_ONLY:
            return request.group_id is not None and request.group_id in member_group_ids
        case Visibility.ADMIN_ONLY:
            # viewer_is_admin deliberately not consulted
            return viewer_id is not None and viewer_id == request.author_id
        case _:
            return False


def visible_to(
    viewer_id: Optional[uuid.UUID],
    member_group_ids: Collection[uuid.UUID],
) -> ColumnElement[bool]:
    clauses = [PrayerRequest.visibility == Visibility.PUBLIC]
    if viewer_id is not None:
        clauses.append(
            and_(
                PrayerRequest.visibility.in_([Visibility.PRIVATE, Visibility.ADMIN_ONLY]),
                PrayerRequest.author_id == viewer_id,
            )
        )
    if member_group_ids:
        clauses.append(
            and_(
                PrayerRequest.visibility == Visibility.GROUP_ONLY,
                PrayerRequest.group_id.in_(list(member_group_ids)),
            )
        )
    return or_(false(), *clauses)
