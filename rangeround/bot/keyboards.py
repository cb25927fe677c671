from typing import Optional, Sequence

from telegram import InlineKeyboardButton, InlineKeyboardMarkup

from rangeround.constants import DIRECTIONS, HOLE_COUNTS


def holes_keyboard() -> InlineKeyboardMarkup:
    """Build inline keyboard for round length selection."""
    return InlineKeyboardMarkup([
        [InlineKeyboardButton(f"{n} holes", callback_data=f"holes:{n}") for n in HOLE_COUNTS]
    ])


def club_keyboard(clubs: Sequence[str], suggested: Optional[str] = None,
                  can_mulligan: bool = False) -> InlineKeyboardMarkup:
    """Build inline keyboard for club selection plus the hole actions."""
    buttons = []
    row: list[InlineKeyboardButton] = []
    for club in clubs:
        label = f"★ {club}" if club == suggested else club
        row.append(InlineKeyboardButton(label, callback_data=f"club:{club}"))
        if len(row) == 3:
            buttons.append(row)
            row = []
    if row:
        buttons.append(row)

    actions = [InlineKeyboardButton("Undo", callback_data="act:undo")]
    if can_mulligan:
        actions.append(InlineKeyboardButton("Mulligan", callback_data="act:mulligan"))
    buttons.append(actions)
    buttons.append([
        InlineKeyboardButton("Hole out", callback_data="act:holeout"),
        InlineKeyboardButton("Skip hole", callback_data="act:skip"),
    ])
    return InlineKeyboardMarkup(buttons)


def direction_keyboard() -> InlineKeyboardMarkup:
    """Build inline keyboard for shot direction, laid out left to right."""
    return InlineKeyboardMarkup([
        [InlineKeyboardButton(d, callback_data=f"dir:{d}") for d in DIRECTIONS[:2]],
        [InlineKeyboardButton(DIRECTIONS[2], callback_data=f"dir:{DIRECTIONS[2]}")],
        [InlineKeyboardButton(d, callback_data=f"dir:{d}") for d in DIRECTIONS[3:]],
    ])


def putts_keyboard() -> InlineKeyboardMarkup:
    """Build inline keyboard for putts on the hole."""
    return InlineKeyboardMarkup([
        [InlineKeyboardButton(str(n), callback_data=f"putts:{n}") for n in range(0, 4)],
        [InlineKeyboardButton(str(n), callback_data=f"putts:{n}") for n in range(4, 7)],
    ])
