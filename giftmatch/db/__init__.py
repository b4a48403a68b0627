from giftmatch.db.models import (
    Assignment,
    AssignmentHistory,
    Base,
    Exclusion,
    Group,
    GroupStatus,
    User,
    WishlistItem,
    group_participants,
)
from giftmatch.db.session import SessionLocal, get_session, init_engine

__all__ = [
    "Assignment",
    "AssignmentHistory",
    "Base",
    "Exclusion",
    "Group",
    "GroupStatus",
    "User",
    "WishlistItem",
    "group_participants",
    "SessionLocal",
    "get_session",
    "init_engine",
]
