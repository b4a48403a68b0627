from __future__ import annotations

import html

from aiogram import Router, types
from aiogram.filters import Command

from giftmatch.bot.utils import check_rate_limit, log_handler_exception
from giftmatch.db import get_session
from giftmatch.db import repo
from giftmatch.services import game_flow
from giftmatch.services.game_flow import WishlistError

router = Router()

USAGE = "Usage: /wish add TEXT | /wish list | /wish clear (add a game ID after the action if you're in several)"


@router.message(Command("wish"))
async def wish_command_handler(message: types.Message) -> None:
    if not check_rate_limit(message.from_user.id, "wish"):
        await message.answer("You're doing that too often. Please slow down.")
        return

    if message.chat.type != "private":
        await message.answer("Wishlist commands only work in a private chat.")
        return

    tokens = (message.text or "").split()
    if len(tokens) < 2:
        await message.answer(USAGE)
        return

    action = tokens[1].lower()
    group_identifier = None
    text = None

    if action == "add":
        if len(tokens) < 3:
            await message.answer("Usage: /wish add TEXT")
            return
        if tokens[2].lstrip("-").isdigit():
            if len(tokens) < 4:
                await message.answer("Usage: /wish add ID TEXT")
                return
            group_identifier = tokens[2]
            text = " ".join(tokens[3:])
        else:
            text = " ".join(tokens[2:])
    elif action in {"list", "clear"}:
        if len(tokens) >= 3 and tokens[2].lstrip("-").isdigit():
            group_identifier = tokens[2]
    else:
        await message.answer(USAGE)
        return

    try:
        with get_session() as session:
            group = game_flow.resolve_user_group(session, message.from_user.id, group_identifier)
            user = repo.get_user_by_telegram_id(session, message.from_user.id)
            if not group:
                groups = repo.list_groups_for_user(session, user.id) if user else []
                if not groups:
                    await message.answer("You are not in any Secret Santa groups yet.")
                else:
                    group_lines = [f"{g.id}: {html.escape(g.title or str(g.telegram_id))}" for g in groups]
                    await message.answer(
                        "You are in several games. Add the game ID to the command, e.g.\n"
                        f"/wish add {groups[0].id} Socks\n"
                        "Games:\n" + "\n".join(group_lines)
                    )
                return

            if action == "add":
                game_flow.add_wishlist_item(session, group, user, text)
                await message.answer("Wishlist item added.")
                return

            if action == "list":
                items = game_flow.list_wishlist_items(session, group, user)
                if not items:
                    await message.answer("Your wishlist is empty.")
                    return
                await message.answer(
                    "Your wishlist:\n" + "\n".join(f"- {html.escape(item)}" for item in items)
                )
                return

            cleared = game_flow.clear_wishlist_items(session, group, user)
            await message.answer(f"Cleared {cleared} wishlist items.")
    except WishlistError as exc:
        await message.answer(html.escape(str(exc)))
    except Exception as exc:
        log_handler_exception("wish", message.from_user.id, message.chat.id, exc)
        await message.answer("Something went wrong. Please try again later.")
