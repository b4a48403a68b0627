from aiogram.utils.keyboard import InlineKeyboardBuilder

JOIN_CALLBACK = "join"
CONFIRM_END_CALLBACK = "confirm_end"


def join_keyboard():
    keyboard = InlineKeyboardBuilder()
    keyboard.button(text="Join Secret Santa!", callback_data=JOIN_CALLBACK)
    return keyboard.as_markup()


def confirm_end_keyboard():
    keyboard = InlineKeyboardBuilder()
    keyboard.button(text="Yes, draw the pairs!", callback_data=CONFIRM_END_CALLBACK)
    return keyboard.as_markup()
