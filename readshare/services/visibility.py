"""Visibility rules for reading logs.

Pure functions over id sets; the caller loads friend and block sets once per
request and passes them in.
"""

from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from readshare.domain.errors import ValidationError


@dataclass(frozen=True)
class OwnerFilter:
    """Candidate owners for a listing. ``owner_ids`` of ``None`` means any owner."""

    owner_ids: Optional[frozenset[UUID]]
    excluded_owner_ids: frozenset[UUID]


def is_visible(
    viewer_id: UUID,
    owner_id: UUID,
    visibility: str,
    friend_ids: frozenset[UUID],
    blocked_ids: frozenset[UUID],
) -> bool:
    # Blocking wins over ownership, friendship and public visibility.
    if owner_id in blocked_ids:
        return False
    if viewer_id == owner_id:
        return True
    if visibility == "private":
        return False
    if visibility == "public":
        return True
    if visibility == "friends":
        return owner_id in friend_ids
    return False


def scope_to_owner_filter(
    viewer_id: UUID,
    scope: str,
    friend_ids: frozenset[UUID],
    blocked_ids: frozenset[UUID] = frozenset(),
) -> OwnerFilter:
    """Narrow candidate owners by the viewer's requested scope.

    This only prefilters; ``is_visible`` still has to pass for every row.
    """
    if scope == "me":
        owners: Optional[frozenset[UUID]] = frozenset({viewer_id})
    elif scope == "friends":
        owners = frozenset(friend_ids) | {viewer_id}
    elif scope == "all":
        owners = None
    else:
        raise ValidationError(f"Invalid scope: {scope}")
    return OwnerFilter(owner_ids=owners, excluded_owner_ids=frozenset(blocked_ids))
