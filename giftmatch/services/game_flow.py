from __future__ import annotations

import datetime
import html
import random
from dataclasses import dataclass
from typing import Dict, List, Optional, Set, Tuple

from loguru import logger
from sqlalchemy.exc import IntegrityError

from giftmatch.db import Group, GroupStatus, User, repo
from giftmatch.services.assignment import (
    AssignmentError,
    ConstraintsTooStrictError,
    generate_assignments,
    symmetric_exclusions,
)


MAX_WISHES = 10
MAX_WISH_LENGTH = 200


class ExclusionError(RuntimeError):
    pass


class WishlistError(RuntimeError):
    pass


@dataclass(frozen=True)
class JoinResult:
    added: bool
    message: str
    group: Group
    user: User


@dataclass(frozen=True)
class AssignmentResult:
    assignments: Dict[int, int]
    participants: List[User]
    group: Group
    seed: int


def format_user_label(user: User) -> str:
    if user.telegram_username:
        return f"@{html.escape(user.telegram_username)}"
    if user.display_name:
        return html.escape(user.display_name)
    return f"user-{user.telegram_id}"


def format_user_display(user: User) -> str:
    if user.display_name:
        return html.escape(user.display_name)
    if user.telegram_username:
        return f"@{html.escape(user.telegram_username)}"
    return f"user-{user.telegram_id}"


def ensure_user(
    session,
    telegram_id: int,
    telegram_username: Optional[str],
    first_name: Optional[str],
    last_name: Optional[str],
) -> User:
    display_name = " ".join(filter(None, [first_name, last_name])) or None
    return repo.upsert_user(session, telegram_id, telegram_username, display_name)


def register_private_chat(
    session,
    telegram_id: int,
    telegram_username: Optional[str],
    first_name: Optional[str],
    last_name: Optional[str],
) -> User:
    user = ensure_user(session, telegram_id, telegram_username, first_name, last_name)
    user.has_private_chat = True
    return user


def join_group(
    session,
    telegram_user_id: int,
    telegram_username: Optional[str],
    first_name: Optional[str],
    last_name: Optional[str],
    group_telegram_id: int,
    group_title: Optional[str],
) -> JoinResult:
    user = ensure_user(session, telegram_user_id, telegram_username, first_name, last_name)
    group = repo.get_or_create_group(session, group_telegram_id, telegram_user_id, group_title)

    if group.status in {GroupStatus.ASSIGNED, GroupStatus.ARCHIVED}:
        return JoinResult(False, "This Secret Santa is already finished.", group, user)

    already_member = repo.is_user_in_group(session, user.id, group.id)
    if group.status == GroupStatus.LOCKED and not already_member:
        return JoinResult(False, "This Secret Santa is locked. Ask an admin to unlock it.", group, user)

    if already_member or not repo.add_user_to_group(session, user.id, group.id):
        return JoinResult(False, "You are already in this Secret Santa game!", group, user)

    return JoinResult(True, "You have joined the Secret Santa game!", group, user)


def list_participants(session, group: Group) -> List[User]:
    return repo.list_group_participants(session, group.id)


def lock_group(session, group: Group) -> bool:
    if group.status != GroupStatus.OPEN:
        return False
    repo.update_group_status(session, group, GroupStatus.LOCKED, locked_at=datetime.datetime.utcnow())
    return True


def unlock_group(session, group: Group) -> bool:
    if group.status != GroupStatus.LOCKED:
        return False
    repo.update_group_status(session, group, GroupStatus.OPEN, locked_at=None)
    return True


def reset_group(session, group: Group) -> int:
    archived = repo.archive_assignments(session, group.id)
    repo.clear_assignments(session, group.id)
    repo.update_group_status(session, group, GroupStatus.OPEN, locked_at=None, assigned_at=None)
    repo.update_group_assignment_seed(session, group, None)
    logger.bind(group_id=group.id, archived=archived).info("Group reset")
    return archived


def set_avoid_repeats(session, group: Group, enabled: bool) -> None:
    repo.update_group_avoid_repeats(session, group, enabled)


def resolve_user_group(session, telegram_user_id: int, group_identifier: Optional[str]) -> Optional[Group]:
    user = repo.get_user_by_telegram_id(session, telegram_user_id)
    if not user:
        return None

    groups = [
        group
        for group in repo.list_groups_for_user(session, user.id)
        if group.status in {GroupStatus.OPEN, GroupStatus.LOCKED, GroupStatus.ASSIGNED}
    ]
    if not groups:
        return None

    if group_identifier:
        group = repo.get_group_by_telegram_id(session, int(group_identifier))
        if group and group in groups:
            return group
        group = repo.get_group_by_id(session, int(group_identifier))
        if group and group in groups:
            return group
        return None

    if len(groups) == 1:
        return groups[0]
    return None


def _is_owner(group: Group, user: User) -> bool:
    return group.created_by_telegram_id is not None and group.created_by_telegram_id == user.telegram_id


def _check_exclusion_pair(session, group: Group, first: User, second: User) -> None:
    if first.id == second.id:
        raise ExclusionError("A participant can't be excluded from themselves.")
    for user in (first, second):
        if not repo.is_user_in_group(session, user.id, group.id):
            raise ExclusionError(f"{format_user_label(user)} is not in this Secret Santa.")


def add_exclusion(session, group: Group, first: User, second: User) -> bool:
    if group.status in {GroupStatus.ASSIGNED, GroupStatus.ARCHIVED}:
        raise ExclusionError("Exclusions can't be changed after assignment. Use /reset first.")
    _check_exclusion_pair(session, group, first, second)
    if _is_owner(group, first) or _is_owner(group, second):
        raise ExclusionError("The group owner can't be part of an exclusion.")
    return repo.add_exclusion(session, group.id, first.id, second.id)


def remove_exclusion(session, group: Group, first: User, second: User) -> bool:
    if group.status in {GroupStatus.ASSIGNED, GroupStatus.ARCHIVED}:
        raise ExclusionError("Exclusions can't be changed after assignment. Use /reset first.")
    return repo.remove_exclusion(session, group.id, first.id, second.id)


def list_exclusions(session, group: Group) -> List[Tuple[User, User]]:
    return [(item.first_user, item.second_user) for item in repo.list_exclusions(session, group.id)]


def build_exclusions(session, group: Group, participant_ids: Set[int]) -> Set[Tuple[int, int]]:
    pairs = [
        (item.first_user_id, item.second_user_id)
        for item in repo.list_exclusions(session, group.id)
        if item.first_user_id in participant_ids and item.second_user_id in participant_ids
    ]
    return symmetric_exclusions(pairs)


def build_no_repeat_map(session, group: Group) -> Dict[int, int]:
    history = repo.get_latest_assignment_history(session, group.id)
    return {item.giver_user_id: item.receiver_user_id for item in history}


def assign_group(
    session,
    group: Group,
    seed: Optional[int] = None,
) -> AssignmentResult:
    if group.status == GroupStatus.ASSIGNED:
        raise AssignmentError("Secret Santa has already been assigned for this group.")
    if group.status == GroupStatus.ARCHIVED:
        raise AssignmentError("This Secret Santa is archived.")

    participants = repo.list_group_participants(session, group.id)
    if len(participants) < 2:
        raise AssignmentError("Not enough participants to start Secret Santa.")

    if any(not participant.has_private_chat for participant in participants):
        missing = [format_user_display(p) for p in participants if not p.has_private_chat]
        raise AssignmentError(
            "The following participants must start a private chat with the bot: "
            + ", ".join(missing)
        )

    participant_ids = [participant.id for participant in participants]
    exclusions = build_exclusions(session, group, set(participant_ids))
    no_repeat_map: Dict[int, int] = {}
    if group.avoid_repeats:
        no_repeat_map = build_no_repeat_map(session, group)

    if seed is None:
        seed = random.SystemRandom().randint(1, 2**31 - 1)

    try:
        assignments = generate_assignments(
            participant_ids,
            exclusions=exclusions,
            no_repeat_map=no_repeat_map,
            seed=seed,
        )
    except ConstraintsTooStrictError as exc:
        logger.bind(group_id=group.id, seed=seed, matched=exc.matched, total=exc.total).warning(
            "Incomplete matching, nothing stored"
        )
        raise

    try:
        repo.replace_assignments(session, group.id, assignments)
    except IntegrityError as exc:
        raise AssignmentError("Secret Santa assignments could not be stored for this group.") from exc
    repo.update_group_status(
        session,
        group,
        GroupStatus.ASSIGNED,
        locked_at=group.locked_at,
        assigned_at=datetime.datetime.utcnow(),
    )
    repo.update_group_assignment_seed(session, group, seed)
    logger.bind(group_id=group.id, seed=seed, exclusions=len(exclusions) // 2).info("Assignments generated")

    return AssignmentResult(assignments=assignments, participants=participants, group=group, seed=seed)


def get_assignment(session, group: Group, user: User) -> Optional[User]:
    assignment = repo.get_assignment_for_giver(session, group.id, user.id)
    if not assignment:
        return None
    return repo.get_user_by_id(session, assignment.receiver_user_id)


def _require_participant(session, group: Group, user: User) -> None:
    if not repo.is_user_in_group(session, user.id, group.id):
        raise WishlistError("You're not in this Secret Santa.")


def add_wishlist_item(session, group: Group, user: User, text: str) -> None:
    _require_participant(session, group, user)
    text = (text or "").strip()
    if not text:
        raise WishlistError("Wishlist item text cannot be empty.")
    if len(text) > MAX_WISH_LENGTH:
        raise WishlistError(f"Wishlist items are limited to {MAX_WISH_LENGTH} characters.")
    if len(repo.list_wishlist_items(session, group.id, user.id)) >= MAX_WISHES:
        raise WishlistError(f"You can keep up to {MAX_WISHES} wishlist items per game.")
    repo.add_wishlist_item(session, group.id, user.id, text)


def list_wishlist_items(session, group: Group, user: User) -> List[str]:
    return [item.text for item in repo.list_wishlist_items(session, group.id, user.id)]


def clear_wishlist_items(session, group: Group, user: User) -> int:
    _require_participant(session, group, user)
    return repo.clear_wishlist_items(session, group.id, user.id)


def list_group_assignments(session, group: Group, user: User) -> List[Tuple[User, User]]:
    """All drawn pairs of a group, for the owner to verify the draw."""
    if not _is_owner(group, user):
        raise AssignmentError("Only the group owner can view all pairs.")
    pairs = []
    for assignment in repo.list_assignments(session, group.id):
        giver = repo.get_user_by_id(session, assignment.giver_user_id)
        receiver = repo.get_user_by_id(session, assignment.receiver_user_id)
        pairs.append((giver, receiver))
    pairs.sort(key=lambda pair: format_user_display(pair[0]).lower())
    return pairs
