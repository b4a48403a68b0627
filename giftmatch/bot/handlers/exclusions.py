from __future__ import annotations

from aiogram import Router, types
from aiogram.filters import Command

from giftmatch.bot.utils import check_rate_limit, is_admin, log_handler_exception, parse_usernames
from giftmatch.db import repo
from giftmatch.db import get_session
from giftmatch.services import game_flow
from giftmatch.services.game_flow import ExclusionError

router = Router()


def _resolve_pair(session, group, usernames):
    users = []
    for username in usernames:
        user = repo.find_group_participant_by_username(session, group.id, username)
        if not user:
            raise ExclusionError(f"@{username} is not in this Secret Santa.")
        users.append(user)
    return users


async def _change_exclusion(message: types.Message, action: str) -> None:
    if not check_rate_limit(message.from_user.id, action):
        await message.answer("You're doing that too often. Please slow down.")
        return

    if message.chat.type not in {"group", "supergroup"}:
        await message.answer("This command can only be used in a group chat.")
        return

    if not await is_admin(message.bot, message.chat.id, message.from_user.id):
        await message.answer("Only group admins can manage exclusions.")
        return

    usernames = parse_usernames(message.text)
    if len(usernames) != 2:
        await message.answer(f"Usage: /{action} @first @second")
        return

    try:
        with get_session() as session:
            group = repo.get_group_by_telegram_id(session, message.chat.id)
            if not group:
                await message.answer("This group is not currently active in Secret Santa.")
                return

            first, second = _resolve_pair(session, group, usernames)
            labels = f"{game_flow.format_user_label(first)} and {game_flow.format_user_label(second)}"
            if action == "exclude":
                changed = game_flow.add_exclusion(session, group, first, second)
                reply = (
                    f"{labels} won't draw each other."
                    if changed
                    else f"{labels} are already excluded from each other."
                )
            else:
                changed = game_flow.remove_exclusion(session, group, first, second)
                reply = (
                    f"{labels} may draw each other again."
                    if changed
                    else f"There was no exclusion between {labels}."
                )
        await message.answer(reply)
    except ExclusionError as exc:
        await message.answer(str(exc))
    except Exception as exc:
        log_handler_exception(action, message.from_user.id, message.chat.id, exc)
        await message.answer("Something went wrong. Please try again later.")


@router.message(Command("exclude"))
async def exclude_command_handler(message: types.Message) -> None:
    await _change_exclusion(message, "exclude")


@router.message(Command("unexclude"))
async def unexclude_command_handler(message: types.Message) -> None:
    await _change_exclusion(message, "unexclude")


@router.message(Command("exclusions"))
async def exclusions_command_handler(message: types.Message) -> None:
    if not check_rate_limit(message.from_user.id, "exclusions"):
        await message.answer("You're doing that too often. Please slow down.")
        return

    try:
        with get_session() as session:
            group = repo.get_group_by_telegram_id(session, message.chat.id)
            if not group:
                await message.answer("This group is not currently active in Secret Santa.")
                return

            pairs = game_flow.list_exclusions(session, group)
            if not pairs:
                await message.answer("No exclusions. Anyone may draw anyone else.")
                return

            lines = [
                f"{game_flow.format_user_label(first)} ↔ {game_flow.format_user_label(second)}"
                for first, second in pairs
            ]
            await message.answer("Exclusions:\n" + "\n".join(lines))
    except Exception as exc:
        log_handler_exception("exclusions", message.from_user.id, message.chat.id, exc)
        await message.answer("Something went wrong. Please try again later.")
