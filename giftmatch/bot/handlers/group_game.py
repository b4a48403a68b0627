from __future__ import annotations

from aiogram import F, Router, types
from aiogram.filters import Command

from giftmatch.bot.keyboards import CONFIRM_END_CALLBACK, JOIN_CALLBACK, confirm_end_keyboard
from giftmatch.bot.utils import check_rate_limit, is_admin, log_handler_exception
from giftmatch.core.config import Settings
from giftmatch.db import GroupStatus, get_session
from giftmatch.db import repo
from giftmatch.services import game_flow, notifications
from giftmatch.services.assignment import AssignmentError

router = Router()

SLOW_DOWN = "You're doing that too often. Please slow down."
NOT_ACTIVE = "This group is not currently active in Secret Santa."
GENERIC_ERROR = "Something went wrong. Please try again later."


@router.callback_query(F.data == JOIN_CALLBACK)
async def join_callback_handler(query: types.CallbackQuery) -> None:
    if not check_rate_limit(query.from_user.id, "join"):
        await query.answer(SLOW_DOWN, show_alert=True)
        return

    try:
        with get_session() as session:
            result = game_flow.join_group(
                session,
                query.from_user.id,
                query.from_user.username,
                query.from_user.first_name,
                query.from_user.last_name,
                query.message.chat.id,
                query.message.chat.title,
            )
            user_label = game_flow.format_user_label(result.user)
            group_id = result.group.telegram_id

        await query.answer(result.message, show_alert=True)
        if result.added:
            await query.message.bot.send_message(group_id, f"{user_label} joined the Secret Santa game!")
    except Exception as exc:
        log_handler_exception("join", query.from_user.id, query.message.chat.id, exc)
        await query.answer("Error joining the Secret Santa game.", show_alert=True)


@router.message(Command("list"))
async def list_command_handler(message: types.Message) -> None:
    if not check_rate_limit(message.from_user.id, "list"):
        await message.answer(SLOW_DOWN)
        return

    try:
        with get_session() as session:
            group = repo.get_group_by_telegram_id(session, message.chat.id)
            if not group:
                await message.answer(NOT_ACTIVE)
                return

            participants = game_flow.list_participants(session, group)
            if not participants:
                await message.answer("No participants found in this Secret Santa game.")
                return

            lines = []
            for user in participants:
                label = game_flow.format_user_label(user)
                suffix = " ✓" if user.has_private_chat else ""
                lines.append(f"{label}{suffix}")

            message_text = "Participants in Secret Santa:\n" + "\n".join(lines)
            if any(not user.has_private_chat for user in participants):
                message_text += (
                    "\n\nNote: Users without a ✓ need to start a private chat with the bot by sending /start."
                )

            exclusion_count = len(game_flow.list_exclusions(session, group))
            if exclusion_count:
                message_text += f"\n\nExclusions: {exclusion_count} (see /exclusions)"
            if not group.avoid_repeats:
                message_text += "\nRepeating last round's pairs is allowed."

            await message.answer(message_text)
    except Exception as exc:
        log_handler_exception("list", message.from_user.id, message.chat.id, exc)
        await message.answer(GENERIC_ERROR)


@router.message(Command("end"))
async def end_command_handler(message: types.Message) -> None:
    if not check_rate_limit(message.from_user.id, "end"):
        await message.answer(SLOW_DOWN)
        return

    if message.chat.type not in {"group", "supergroup"}:
        await message.answer("This command can only be used in a group chat.")
        return

    if not await is_admin(message.bot, message.chat.id, message.from_user.id):
        await message.answer("Only group admins can end the Secret Santa.")
        return

    try:
        with get_session() as session:
            group = repo.get_group_by_telegram_id(session, message.chat.id)
            if not group:
                await message.answer(NOT_ACTIVE)
                return

            if group.status == GroupStatus.ASSIGNED:
                await message.answer("Secret Santa assignments already exist for this group.")
                return
            if group.status == GroupStatus.ARCHIVED:
                await message.answer("This Secret Santa is archived.")
                return

        await message.answer(
            "Are you sure you want to end the Secret Santa and draw the pairs?",
            reply_markup=confirm_end_keyboard(),
        )
    except Exception as exc:
        log_handler_exception("end", message.from_user.id, message.chat.id, exc)
        await message.answer(GENERIC_ERROR)


@router.callback_query(F.data == CONFIRM_END_CALLBACK)
async def confirm_end_callback_handler(query: types.CallbackQuery, settings: Settings) -> None:
    if not check_rate_limit(query.from_user.id, "confirm_end"):
        await query.answer(SLOW_DOWN, show_alert=True)
        return

    if not await is_admin(query.message.bot, query.message.chat.id, query.from_user.id):
        await query.answer("Only group admins can end the Secret Santa.", show_alert=True)
        return

    try:
        with get_session() as session:
            group = repo.get_group_by_telegram_id(session, query.message.chat.id)
            if not group:
                await query.answer(NOT_ACTIVE, show_alert=True)
                return
            result = game_flow.assign_group(session, group, seed=settings.assignment_seed)
    except AssignmentError as exc:
        await query.answer(str(exc), show_alert=True)
        return
    except Exception as exc:
        log_handler_exception("confirm_end", query.from_user.id, query.message.chat.id, exc)
        await query.answer(GENERIC_ERROR, show_alert=True)
        return

    # committed; delivery problems from here on are only logged
    delivered = await notifications.send_assignment_notifications(
        query.message.bot, result.assignments, result.participants
    )
    await query.answer("Secret Santa distribution completed!", show_alert=True)
    await notifications.announce_assignments(
        query.message.bot, query.message.chat.id, delivered, len(result.assignments)
    )


@router.message(Command("lock"))
async def lock_command_handler(message: types.Message) -> None:
    if not check_rate_limit(message.from_user.id, "lock"):
        await message.answer(SLOW_DOWN)
        return

    if not await is_admin(message.bot, message.chat.id, message.from_user.id):
        await message.answer("Only group admins can lock the Secret Santa.")
        return

    try:
        with get_session() as session:
            group = repo.get_group_by_telegram_id(session, message.chat.id)
            if not group:
                await message.answer(NOT_ACTIVE)
                return

            if game_flow.lock_group(session, group):
                await message.answer("Secret Santa is now locked.")
            else:
                await message.answer("Secret Santa is already locked or assigned.")
    except Exception as exc:
        log_handler_exception("lock", message.from_user.id, message.chat.id, exc)
        await message.answer(GENERIC_ERROR)


@router.message(Command("unlock"))
async def unlock_command_handler(message: types.Message) -> None:
    if not check_rate_limit(message.from_user.id, "unlock"):
        await message.answer(SLOW_DOWN)
        return

    if not await is_admin(message.bot, message.chat.id, message.from_user.id):
        await message.answer("Only group admins can unlock the Secret Santa.")
        return

    try:
        with get_session() as session:
            group = repo.get_group_by_telegram_id(session, message.chat.id)
            if not group:
                await message.answer(NOT_ACTIVE)
                return

            if game_flow.unlock_group(session, group):
                await message.answer("Secret Santa is now open.")
            else:
                await message.answer("Secret Santa is not locked.")
    except Exception as exc:
        log_handler_exception("unlock", message.from_user.id, message.chat.id, exc)
        await message.answer(GENERIC_ERROR)


@router.message(Command("reset"))
async def reset_command_handler(message: types.Message) -> None:
    if not check_rate_limit(message.from_user.id, "reset"):
        await message.answer(SLOW_DOWN)
        return

    if not await is_admin(message.bot, message.chat.id, message.from_user.id):
        await message.answer("Only group admins can reset the Secret Santa.")
        return

    try:
        with get_session() as session:
            group = repo.get_group_by_telegram_id(session, message.chat.id)
            if not group:
                await message.answer(NOT_ACTIVE)
                return
            game_flow.reset_group(session, group)
        await message.answer(
            "Secret Santa has been reset. Participants and exclusions are kept, assignments cleared."
        )
    except Exception as exc:
        log_handler_exception("reset", message.from_user.id, message.chat.id, exc)
        await message.answer(GENERIC_ERROR)


@router.message(Command("repeats"))
async def repeats_command_handler(message: types.Message) -> None:
    if not check_rate_limit(message.from_user.id, "repeats"):
        await message.answer(SLOW_DOWN)
        return

    if not await is_admin(message.bot, message.chat.id, message.from_user.id):
        await message.answer("Only group admins can change this setting.")
        return

    parts = (message.text or "").split()
    if len(parts) != 2 or parts[1].lower() not in {"on", "off"}:
        await message.answer("Usage: /repeats on | /repeats off")
        return
    allow = parts[1].lower() == "on"

    try:
        with get_session() as session:
            group = repo.get_group_by_telegram_id(session, message.chat.id)
            if not group:
                await message.answer(NOT_ACTIVE)
                return
            game_flow.set_avoid_repeats(session, group, not allow)
        if allow:
            await message.answer("Last round's pairs may be drawn again.")
        else:
            await message.answer("Nobody will draw the same person as last round.")
    except Exception as exc:
        log_handler_exception("repeats", message.from_user.id, message.chat.id, exc)
        await message.answer(GENERIC_ERROR)
