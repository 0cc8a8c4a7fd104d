from typing import Any, Dict, Iterable

from aiogram.types import (
    InlineKeyboardButton,
    InlineKeyboardMarkup,
    KeyboardButton,
    ReplyKeyboardMarkup,
)


def main_kb() -> ReplyKeyboardMarkup:
    return ReplyKeyboardMarkup(
        keyboard=[
            [KeyboardButton(text="/products"), KeyboardButton(text="/deals")],
            [KeyboardButton(text="/category"), KeyboardButton(text="/cart")],
            [KeyboardButton(text="/gift"), KeyboardButton(text="/contact")],
        ],
        resize_keyboard=True,
    )


def products_kb(products: Iterable[Dict[str, Any]], has_more: bool) -> InlineKeyboardMarkup:
    rows = []
    for p in products:
        rows.append(
            [
                InlineKeyboardButton(text=f"🛒 {p['id']}", callback_data=f"add:{p['id']}"),
                InlineKeyboardButton(text="Details", callback_data=f"details:{p['id']}"),
            ]
        )
    if has_more:
        rows.append([InlineKeyboardButton(text="Load more", callback_data="more")])
    return InlineKeyboardMarkup(inline_keyboard=rows)


def product_kb(product_id: str) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(
        inline_keyboard=[[InlineKeyboardButton(text="Add to cart", callback_data=f"add:{product_id}")]]
    )


def categories_kb(categories: Iterable[str]) -> InlineKeyboardMarkup:
    rows = [[InlineKeyboardButton(text="All", callback_data="cat:")]]
    for c in categories:
        rows.append([InlineKeyboardButton(text=c, callback_data=f"cat:{c}")])
    return InlineKeyboardMarkup(inline_keyboard=rows)
