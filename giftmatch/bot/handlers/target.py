from __future__ import annotations

import html

from aiogram import Router, types
from aiogram.filters import Command

from giftmatch.bot.utils import check_rate_limit, log_handler_exception
from giftmatch.db import get_session
from giftmatch.db import repo
from giftmatch.services import game_flow
from giftmatch.services.assignment import AssignmentError

router = Router()


@router.message(Command("target"))
async def target_command_handler(message: types.Message) -> None:
    if not check_rate_limit(message.from_user.id, "target"):
        await message.answer("You're doing that too often. Please slow down.")
        return

    if message.chat.type != "private":
        await message.answer("Ask me in a private chat so your recipient stays secret.")
        return

    tokens = (message.text or "").split()
    group_identifier = None
    if len(tokens) >= 2:
        if not tokens[1].lstrip("-").isdigit():
            await message.answer("Usage: /target or /target ID")
            return
        group_identifier = tokens[1]

    try:
        with get_session() as session:
            group = game_flow.resolve_user_group(session, message.from_user.id, group_identifier)
            if not group:
                user = repo.get_user_by_telegram_id(session, message.from_user.id)
                groups = repo.list_groups_for_user(session, user.id) if user else []
                if not groups:
                    await message.answer("You're not in any Secret Santa game yet.")
                    return
                options = "\n".join(f"{g.id}: {html.escape(g.title or str(g.telegram_id))}" for g in groups)
                await message.answer(
                    "Pick a game with /target ID:\n" + options
                )
                return

            user = repo.get_user_by_telegram_id(session, message.from_user.id)
            receiver = game_flow.get_assignment(session, group, user)
            if not receiver:
                await message.answer("The pairs for this game haven't been drawn yet.")
                return
            text = (
                f"In {html.escape(group.title or 'your group')} you're giving a gift to "
                f"{game_flow.format_user_label(receiver)}!"
            )
            wishes = game_flow.list_wishlist_items(session, group, receiver)
            if wishes:
                text += "\n\nTheir wishlist:\n" + "\n".join(f"- {html.escape(item)}" for item in wishes)
            await message.answer(text)
    except Exception as exc:
        log_handler_exception("target", message.from_user.id, message.chat.id, exc)
        await message.answer("Something went wrong. Please try again later.")


@router.message(Command("pairs"))
async def pairs_command_handler(message: types.Message) -> None:
    if not check_rate_limit(message.from_user.id, "pairs"):
        await message.answer("You're doing that too often. Please slow down.")
        return

    if message.chat.type != "private":
        await message.answer("Ask me in a private chat so the pairs stay secret.")
        return

    tokens = (message.text or "").split()
    if len(tokens) != 2 or not tokens[1].lstrip("-").isdigit():
        await message.answer("Usage: /pairs ID")
        return

    try:
        with get_session() as session:
            group = game_flow.resolve_user_group(session, message.from_user.id, tokens[1])
            if not group:
                await message.answer("No Secret Santa game with that ID for you.")
                return
            user = repo.get_user_by_telegram_id(session, message.from_user.id)
            pairs = game_flow.list_group_assignments(session, group, user)
            if not pairs:
                await message.answer("The pairs for this game haven't been drawn yet.")
                return
            lines = [
                f"{game_flow.format_user_display(giver)} → {game_flow.format_user_display(receiver)}"
                for giver, receiver in pairs
            ]
            await message.answer(
                f"Pairs in {html.escape(group.title or 'your group')}:\n" + "\n".join(lines)
            )
    except AssignmentError as exc:
        await message.answer(str(exc))
    except Exception as exc:
        log_handler_exception("pairs", message.from_user.id, message.chat.id, exc)
        await message.answer("Something went wrong. Please try again later.")
