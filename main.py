from __future__ import annotations

import asyncio

import uvloop
from aiogram.types import BotCommand, BotCommandScopeDefault
from loguru import logger

from giftmatch.bot import bot, dp, settings
from giftmatch.core.logging import setup_logging
from giftmatch.db import init_engine


USERS_COMMANDS: dict[str, str] = {
    "start": "start",
    "list": "list participants",
    "end": "draw the pairs",
    "lock": "lock joining",
    "unlock": "unlock joining",
    "reset": "reset assignments",
    "exclude": "keep two people from drawing each other",
    "unexclude": "remove an exclusion",
    "exclusions": "list exclusions",
    "repeats": "allow or forbid last round's pairs",
    "target": "show who you're gifting",
    "wish": "wishlist commands",
    "pairs": "owner: review all pairs",
}


async def set_default_commands() -> None:
    await bot.set_my_commands(
        [
            BotCommand(command=command, description=description)
            for command, description in USERS_COMMANDS.items()
        ],
        scope=BotCommandScopeDefault(),
    )


async def on_startup() -> None:
    logger.info("bot starting...")

    await set_default_commands()

    bot_info = await bot.get_me()

    logger.info("Name     - {name}", name=bot_info.full_name)
    logger.info("Username - @{username}", username=bot_info.username)
    logger.info("ID       - {id}", id=bot_info.id)

    if settings.assignment_seed is not None:
        logger.warning("ASSIGNMENT_SEED is set, every draw is reproducible")

    logger.info("bot started")


async def on_shutdown() -> None:
    logger.info("bot stopping...")

    await dp.storage.close()

    await bot.session.close()

    logger.info("bot stopped")


async def main() -> None:
    setup_logging(settings.log_level, settings.log_path)
    init_engine(settings.database_url)

    dp.startup.register(on_startup)
    dp.shutdown.register(on_shutdown)

    await dp.start_polling(bot, allowed_updates=dp.resolve_used_update_types())


if __name__ == "__main__":
    if not getattr(asyncio, "debug", False):
        uvloop.install()

    asyncio.run(main())
