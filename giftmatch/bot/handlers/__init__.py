from aiogram import Router

from giftmatch.bot.handlers import exclusions, group_game, start, target, wishlist

router = Router()
router.include_router(start.router)
router.include_router(group_game.router)
router.include_router(exclusions.router)
router.include_router(target.router)
router.include_router(wishlist.router)
