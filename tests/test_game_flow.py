import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from giftmatch.db import GroupStatus, repo
from giftmatch.db.models import Base
from giftmatch.services import game_flow
from giftmatch.services.assignment import AssignmentError, ConstraintsTooStrictError
from giftmatch.services.game_flow import ExclusionError, WishlistError

OWNER_TELEGRAM_ID = 1000


def create_session():
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, expire_on_commit=False)()


def setup_group(session, size, private_chat=True):
    group = repo.create_group(session, -100, OWNER_TELEGRAM_ID, "Office")
    users = []
    for offset in range(size):
        user = repo.upsert_user(session, OWNER_TELEGRAM_ID + offset, f"user{offset}", None)
        user.has_private_chat = private_chat
        repo.add_user_to_group(session, user.id, group.id)
        users.append(user)
    session.commit()
    return group, users


def test_join_group_adds_participant_once():
    session = create_session()
    first = game_flow.join_group(session, 1, "ann", "Ann", None, -5, "Family")
    second = game_flow.join_group(session, 1, "ann", "Ann", None, -5, "Family")
    assert first.added
    assert not second.added
    assert repo.count_group_participants(session, first.group.id) == 1
    assert first.group.created_by_telegram_id == 1


def test_locked_group_rejects_new_members():
    session = create_session()
    group, _ = setup_group(session, 2)
    assert game_flow.lock_group(session, group)
    result = game_flow.join_group(session, 5, "late", None, None, group.telegram_id, None)
    assert not result.added
    assert game_flow.unlock_group(session, group)
    assert group.status == GroupStatus.OPEN


def test_assign_group_persists_complete_mapping():
    session = create_session()
    group, users = setup_group(session, 4)
    owner, second, third, fourth = users
    assert game_flow.add_exclusion(session, group, second, third)

    result = game_flow.assign_group(session, group, seed=42)
    session.commit()

    ids = sorted(user.id for user in users)
    assert sorted(result.assignments) == ids
    assert sorted(result.assignments.values()) == ids
    assert result.assignments[second.id] != third.id
    assert result.assignments[third.id] != second.id
    stored = {row.giver_user_id: row.receiver_user_id for row in repo.list_assignments(session, group.id)}
    assert stored == result.assignments
    assert group.status == GroupStatus.ASSIGNED
    assert group.last_assignment_seed == 42


def test_assign_group_twice_is_refused():
    session = create_session()
    group, _ = setup_group(session, 3)
    game_flow.assign_group(session, group, seed=1)
    with pytest.raises(AssignmentError):
        game_flow.assign_group(session, group, seed=2)


def test_assign_group_requires_private_chats():
    session = create_session()
    group, _ = setup_group(session, 3, private_chat=False)
    with pytest.raises(AssignmentError) as excinfo:
        game_flow.assign_group(session, group, seed=1)
    assert "private chat" in str(excinfo.value)


def test_assign_group_requires_two_participants():
    session = create_session()
    group, _ = setup_group(session, 1)
    with pytest.raises(AssignmentError):
        game_flow.assign_group(session, group, seed=1)


def test_incomplete_matching_stores_nothing():
    session = create_session()
    group, users = setup_group(session, 3)
    _, second, third = users
    game_flow.add_exclusion(session, group, second, third)

    with pytest.raises(ConstraintsTooStrictError) as excinfo:
        game_flow.assign_group(session, group, seed=5)

    assert excinfo.value.matched == 2
    assert excinfo.value.total == 3
    assert repo.list_assignments(session, group.id) == []
    assert group.status == GroupStatus.OPEN


def test_exclusion_rules():
    session = create_session()
    group, users = setup_group(session, 4)
    owner, second, third, _ = users
    outsider = repo.upsert_user(session, 9999, "outsider", None)

    with pytest.raises(ExclusionError):
        game_flow.add_exclusion(session, group, second, second)
    with pytest.raises(ExclusionError):
        game_flow.add_exclusion(session, group, owner, second)
    with pytest.raises(ExclusionError):
        game_flow.add_exclusion(session, group, second, outsider)

    assert game_flow.add_exclusion(session, group, third, second)
    assert not game_flow.add_exclusion(session, group, second, third)
    pairs = game_flow.list_exclusions(session, group)
    assert [(first.id, other.id) for first, other in pairs] == [(second.id, third.id)]

    assert game_flow.build_exclusions(session, group, {user.id for user in users}) == {
        (second.id, third.id),
        (third.id, second.id),
    }
    assert game_flow.build_exclusions(session, group, {owner.id, second.id}) == set()

    assert game_flow.remove_exclusion(session, group, third, second)
    assert not game_flow.remove_exclusion(session, group, third, second)


def test_exclusions_frozen_after_assignment():
    session = create_session()
    group, users = setup_group(session, 4)
    game_flow.assign_group(session, group, seed=3)
    with pytest.raises(ExclusionError):
        game_flow.add_exclusion(session, group, users[1], users[2])


def test_reset_archives_and_next_round_avoids_repeats():
    session = create_session()
    group, users = setup_group(session, 3)

    first = game_flow.assign_group(session, group, seed=1)
    assert game_flow.reset_group(session, group) == 3
    assert repo.list_assignments(session, group.id) == []
    assert group.status == GroupStatus.OPEN
    assert group.last_assignment_seed is None
    assert game_flow.build_no_repeat_map(session, group) == first.assignments

    second = game_flow.assign_group(session, group, seed=2)
    assert all(second.assignments[giver] != receiver for giver, receiver in first.assignments.items())


def test_repeats_allowed_when_disabled():
    session = create_session()
    group, _ = setup_group(session, 2)
    game_flow.assign_group(session, group, seed=1)
    game_flow.reset_group(session, group)

    with pytest.raises(ConstraintsTooStrictError):
        game_flow.assign_group(session, group, seed=2)

    game_flow.set_avoid_repeats(session, group, False)
    result = game_flow.assign_group(session, group, seed=2)
    assert len(result.assignments) == 2


def test_history_uses_latest_round_only():
    session = create_session()
    group, _ = setup_group(session, 2)
    repo.replace_assignments(session, group.id, {1: 2, 2: 1})
    repo.archive_assignments(session, group.id)
    repo.replace_assignments(session, group.id, {1: 2})
    repo.archive_assignments(session, group.id)

    assert repo.latest_history_round(session, group.id) == 2
    assert game_flow.build_no_repeat_map(session, group) == {1: 2}


def test_replace_assignments_swaps_previous_rows():
    session = create_session()
    group, users = setup_group(session, 3)
    a, b, c = (user.id for user in users)
    repo.replace_assignments(session, group.id, {a: b, b: c, c: a})
    repo.replace_assignments(session, group.id, {a: c, c: b, b: a})
    session.commit()

    stored = {row.giver_user_id: row.receiver_user_id for row in repo.list_assignments(session, group.id)}
    assert stored == {a: c, c: b, b: a}


def test_get_assignment_returns_receiver():
    session = create_session()
    group, users = setup_group(session, 2)
    owner, other = users
    assert game_flow.get_assignment(session, group, owner) is None

    game_flow.assign_group(session, group, seed=4)
    assert game_flow.get_assignment(session, group, owner).id == other.id


def test_resolve_user_group_single_membership():
    session = create_session()
    group, users = setup_group(session, 2)
    assert game_flow.resolve_user_group(session, users[0].telegram_id, None) == group
    assert game_flow.resolve_user_group(session, users[0].telegram_id, str(group.id)) == group
    assert game_flow.resolve_user_group(session, 424242, None) is None


def test_find_participant_by_username_is_case_insensitive():
    session = create_session()
    group, users = setup_group(session, 2)
    assert repo.find_group_participant_by_username(session, group.id, "USER1").id == users[1].id
    assert repo.find_group_participant_by_username(session, group.id, "nobody") is None


def test_wishlist_is_kept_per_group_and_user():
    session = create_session()
    group, users = setup_group(session, 2)
    owner, other = users
    other_group = repo.create_group(session, -200, OWNER_TELEGRAM_ID, "Family")
    repo.add_user_to_group(session, owner.id, other_group.id)

    game_flow.add_wishlist_item(session, group, owner, "  Socks ")
    game_flow.add_wishlist_item(session, group, owner, "Tea")
    game_flow.add_wishlist_item(session, other_group, owner, "Book")

    assert game_flow.list_wishlist_items(session, group, owner) == ["Socks", "Tea"]
    assert game_flow.list_wishlist_items(session, other_group, owner) == ["Book"]
    assert game_flow.list_wishlist_items(session, group, other) == []

    assert game_flow.clear_wishlist_items(session, group, owner) == 2
    assert game_flow.list_wishlist_items(session, group, owner) == []
    assert game_flow.list_wishlist_items(session, other_group, owner) == ["Book"]


def test_wishlist_rules():
    session = create_session()
    group, users = setup_group(session, 2)
    outsider = repo.upsert_user(session, 9999, "outsider", None)

    with pytest.raises(WishlistError):
        game_flow.add_wishlist_item(session, group, users[0], "   ")
    with pytest.raises(WishlistError):
        game_flow.add_wishlist_item(session, group, users[0], "x" * (game_flow.MAX_WISH_LENGTH + 1))
    with pytest.raises(WishlistError):
        game_flow.add_wishlist_item(session, group, outsider, "Socks")

    for number in range(game_flow.MAX_WISHES):
        game_flow.add_wishlist_item(session, group, users[1], f"wish {number}")
    with pytest.raises(WishlistError):
        game_flow.add_wishlist_item(session, group, users[1], "one more")


def test_wishlist_survives_assignment():
    session = create_session()
    group, users = setup_group(session, 2)
    owner, other = users
    game_flow.add_wishlist_item(session, group, other, "Scarf")

    game_flow.assign_group(session, group, seed=6)
    receiver = game_flow.get_assignment(session, group, owner)

    assert receiver.id == other.id
    assert game_flow.list_wishlist_items(session, group, receiver) == ["Scarf"]


def test_owner_reviews_all_pairs():
    session = create_session()
    group, users = setup_group(session, 3)
    owner, second, _ = users

    assert game_flow.list_group_assignments(session, group, owner) == []
    with pytest.raises(AssignmentError):
        game_flow.list_group_assignments(session, group, second)

    result = game_flow.assign_group(session, group, seed=7)
    pairs = game_flow.list_group_assignments(session, group, owner)

    assert {giver.id: receiver.id for giver, receiver in pairs} == result.assignments
    assert [giver.telegram_username for giver, _ in pairs] == ["user0", "user1", "user2"]
