from __future__ import annotations

import datetime
from typing import Dict, List, Optional, Tuple

from sqlalchemy import and_, delete, func, select
from sqlalchemy.exc import IntegrityError

from giftmatch.db.models import (
    Assignment,
    AssignmentHistory,
    Exclusion,
    Group,
    GroupStatus,
    User,
    WishlistItem,
    group_participants,
)


def get_user_by_telegram_id(session, telegram_id: int) -> Optional[User]:
    return session.scalar(select(User).where(User.telegram_id == telegram_id))


def get_user_by_id(session, user_id: int) -> Optional[User]:
    return session.get(User, user_id)


def upsert_user(
    session,
    telegram_id: int,
    telegram_username: Optional[str],
    display_name: Optional[str],
) -> User:
    user = get_user_by_telegram_id(session, telegram_id)
    if user:
        user.telegram_username = telegram_username
        user.display_name = display_name
        return user

    user = User(
        telegram_id=telegram_id,
        telegram_username=telegram_username,
        display_name=display_name,
    )
    session.add(user)
    session.flush()
    return user


def find_group_participant_by_username(session, group_id: int, username: str) -> Optional[User]:
    return session.scalar(
        select(User)
        .join(group_participants, group_participants.c.user_id == User.id)
        .where(
            and_(
                group_participants.c.group_id == group_id,
                func.lower(User.telegram_username) == username.lower(),
            )
        )
    )


def get_group_by_telegram_id(session, telegram_id: int) -> Optional[Group]:
    return session.scalar(select(Group).where(Group.telegram_id == telegram_id))


def get_group_by_id(session, group_id: int) -> Optional[Group]:
    return session.scalar(select(Group).where(Group.id == group_id))


def create_group(
    session,
    telegram_id: int,
    created_by_telegram_id: Optional[int],
    title: Optional[str],
) -> Group:
    group = Group(
        telegram_id=telegram_id,
        created_by_telegram_id=created_by_telegram_id,
        title=title,
    )
    session.add(group)
    session.flush()
    return group


def get_or_create_group(
    session,
    telegram_id: int,
    created_by_telegram_id: Optional[int],
    title: Optional[str],
) -> Group:
    group = get_group_by_telegram_id(session, telegram_id)
    if group:
        if title and group.title != title:
            group.title = title
        if created_by_telegram_id and group.created_by_telegram_id is None:
            group.created_by_telegram_id = created_by_telegram_id
        return group
    return create_group(session, telegram_id, created_by_telegram_id, title)


def count_group_participants(session, group_id: int) -> int:
    return session.scalar(
        select(func.count()).select_from(group_participants).where(group_participants.c.group_id == group_id)
    )


def is_user_in_group(session, user_id: int, group_id: int) -> bool:
    return session.scalar(
        select(func.count())
        .select_from(group_participants)
        .where(
            and_(group_participants.c.user_id == user_id, group_participants.c.group_id == group_id)
        )
    ) > 0


def add_user_to_group(session, user_id: int, group_id: int) -> bool:
    if is_user_in_group(session, user_id, group_id):
        return False
    try:
        session.execute(group_participants.insert().values(user_id=user_id, group_id=group_id))
        return True
    except IntegrityError:
        return False


def list_group_participants(session, group_id: int) -> List[User]:
    return list(
        session.scalars(
            select(User)
            .join(group_participants, group_participants.c.user_id == User.id)
            .where(group_participants.c.group_id == group_id)
            .order_by(User.id)
        ).all()
    )


def list_groups_for_user(session, user_id: int) -> List[Group]:
    return list(
        session.scalars(
            select(Group)
            .join(group_participants, group_participants.c.group_id == Group.id)
            .where(group_participants.c.user_id == user_id)
            .order_by(Group.id)
        ).all()
    )


def update_group_status(
    session,
    group: Group,
    status: GroupStatus,
    locked_at: Optional[datetime.datetime] = None,
    assigned_at: Optional[datetime.datetime] = None,
) -> None:
    group.status = status
    group.locked_at = locked_at
    group.assigned_at = assigned_at


def update_group_assignment_seed(session, group: Group, seed: Optional[int]) -> None:
    group.last_assignment_seed = seed


def update_group_avoid_repeats(session, group: Group, enabled: bool) -> None:
    group.avoid_repeats = enabled


def replace_assignments(session, group_id: int, assignments: Dict[int, int]) -> None:
    """Delete the group's stored assignments and insert ``assignments``.

    Runs inside the caller's transaction, so the swap is atomic.
    """
    clear_assignments(session, group_id)
    session.flush()
    session.add_all(
        [
            Assignment(group_id=group_id, giver_user_id=giver_id, receiver_user_id=receiver_id)
            for giver_id, receiver_id in assignments.items()
        ]
    )
    session.flush()


def list_assignments(session, group_id: int) -> List[Assignment]:
    return list(session.scalars(select(Assignment).where(Assignment.group_id == group_id)).all())


def get_assignment_for_giver(session, group_id: int, giver_user_id: int) -> Optional[Assignment]:
    return session.scalar(
        select(Assignment).where(
            and_(Assignment.group_id == group_id, Assignment.giver_user_id == giver_user_id)
        )
    )


def archive_assignments(session, group_id: int) -> int:
    assignments = list_assignments(session, group_id)
    if not assignments:
        return 0
    round_number = (latest_history_round(session, group_id) or 0) + 1
    history_rows = [
        AssignmentHistory(
            group_id=group_id,
            giver_user_id=assignment.giver_user_id,
            receiver_user_id=assignment.receiver_user_id,
            round_number=round_number,
        )
        for assignment in assignments
    ]
    session.add_all(history_rows)
    session.flush()
    return len(history_rows)


def clear_assignments(session, group_id: int) -> None:
    session.execute(delete(Assignment).where(Assignment.group_id == group_id))


def latest_history_round(session, group_id: int) -> Optional[int]:
    return session.scalar(
        select(func.max(AssignmentHistory.round_number)).where(AssignmentHistory.group_id == group_id)
    )


def get_latest_assignment_history(session, group_id: int) -> List[AssignmentHistory]:
    round_number = latest_history_round(session, group_id)
    if round_number is None:
        return []
    return list(
        session.scalars(
            select(AssignmentHistory).where(
                and_(
                    AssignmentHistory.group_id == group_id,
                    AssignmentHistory.round_number == round_number,
                )
            )
        ).all()
    )


def _ordered(first_user_id: int, second_user_id: int) -> Tuple[int, int]:
    return (first_user_id, second_user_id) if first_user_id < second_user_id else (second_user_id, first_user_id)


def get_exclusion(session, group_id: int, first_user_id: int, second_user_id: int) -> Optional[Exclusion]:
    first, second = _ordered(first_user_id, second_user_id)
    return session.scalar(
        select(Exclusion).where(
            and_(
                Exclusion.group_id == group_id,
                Exclusion.first_user_id == first,
                Exclusion.second_user_id == second,
            )
        )
    )


def add_exclusion(session, group_id: int, first_user_id: int, second_user_id: int) -> bool:
    if get_exclusion(session, group_id, first_user_id, second_user_id):
        return False
    first, second = _ordered(first_user_id, second_user_id)
    session.add(Exclusion(group_id=group_id, first_user_id=first, second_user_id=second))
    session.flush()
    return True


def remove_exclusion(session, group_id: int, first_user_id: int, second_user_id: int) -> bool:
    exclusion = get_exclusion(session, group_id, first_user_id, second_user_id)
    if not exclusion:
        return False
    session.delete(exclusion)
    session.flush()
    return True


def list_exclusions(session, group_id: int) -> List[Exclusion]:
    return list(
        session.scalars(
            select(Exclusion)
            .where(Exclusion.group_id == group_id)
            .order_by(Exclusion.first_user_id, Exclusion.second_user_id)
        ).all()
    )


def list_wishlist_items(session, group_id: int, user_id: int) -> List[WishlistItem]:
    return list(
        session.scalars(
            select(WishlistItem)
            .where(and_(WishlistItem.group_id == group_id, WishlistItem.user_id == user_id))
            .order_by(WishlistItem.id)
        ).all()
    )


def add_wishlist_item(session, group_id: int, user_id: int, text: str) -> WishlistItem:
    item = WishlistItem(group_id=group_id, user_id=user_id, text=text)
    session.add(item)
    session.flush()
    return item


def clear_wishlist_items(session, group_id: int, user_id: int) -> int:
    result = session.execute(
        delete(WishlistItem).where(
            and_(WishlistItem.group_id == group_id, WishlistItem.user_id == user_id)
        )
    )
    return result.rowcount or 0
