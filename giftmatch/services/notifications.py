from __future__ import annotations

from typing import Dict, Iterable

from aiogram.enums import ParseMode
from loguru import logger

from giftmatch.db import User
from giftmatch.services.game_flow import format_user_label


def format_assignment_message(receiver: User) -> str:
    return f"Secret Santa: You're giving a gift to {format_user_label(receiver)}!"


async def send_assignment_notifications(
    bot,
    assignments: Dict[int, int],
    participants: Iterable[User],
) -> int:
    """DM every giver their receiver. Failures are logged, never raised.

    Call only after the assignments are committed.
    """
    by_id = {participant.id: participant for participant in participants}
    delivered = 0
    for giver_id, receiver_id in assignments.items():
        giver = by_id.get(giver_id)
        receiver = by_id.get(receiver_id)
        if giver is None or receiver is None:
            logger.bind(giver_id=giver_id, receiver_id=receiver_id).warning(
                "Skipping notification for unknown participant"
            )
            continue
        try:
            await bot.send_message(
                giver.telegram_id,
                format_assignment_message(receiver),
                parse_mode=ParseMode.HTML,
            )
        except Exception as exc:
            logger.bind(user_id=giver.telegram_id).warning(
                "Failed to send assignment DM: {error}", error=str(exc)
            )
            continue
        delivered += 1

    logger.bind(delivered=delivered, total=len(assignments)).info("Assignment notifications sent")
    return delivered


async def announce_assignments(bot, chat_id: int, delivered: int, total: int) -> bool:
    text = "Secret Santa distribution completed! Check your private messages."
    if delivered < total:
        text += (
            f"\n\n{total - delivered} participant(s) could not be reached. "
            "They can use /target in a private chat with the bot."
        )
    try:
        await bot.send_message(chat_id, text)
    except Exception as exc:
        logger.bind(chat_id=chat_id).warning("Failed to announce assignments: {error}", error=str(exc))
        return False
    return True
