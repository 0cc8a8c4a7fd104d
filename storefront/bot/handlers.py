from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Awaitable, Dict, List, Optional

from aiogram import Bot, F, Router
from aiogram.filters import Command, CommandObject
from aiogram.fsm.context import FSMContext
from aiogram.types import CallbackQuery, Message, ReplyKeyboardRemove
from aiogram.utils.text_decorations import html_decoration

from storefront.bot import states
from storefront.bot.keyboards import categories_kb, main_kb, product_kb, products_kb
from storefront.bot.states import ContactForm, GiftForm, SellForm, Session, SigninForm
from storefront.client.api import ProductNotFound, StorefrontClient, StorefrontError
from storefront.client.cart import CartStore
from storefront.client.controller import CartController, CatalogBrowser, set_location, sign_in
from storefront.client.storage import LocalStorage
from storefront.client.toast import ToastQueue
from storefront.config import settings
from storefront.constants import BOT_PAGE_MAX
from storefront.utils.formatters import money
from storefront.utils.validators import coerce_int

logger = logging.getLogger(__name__)

quote = html_decoration.quote

router = Router()


def _client() -> StorefrontClient:
    if states.CLIENT is None:
        states.CLIENT = StorefrontClient()
    return states.CLIENT


def get_session(bot: Bot, chat_id: int) -> Session:
    s = states.SESSIONS.get(chat_id)
    if s is not None:
        return s

    async def show(text: str) -> Message:
        return await bot.send_message(chat_id, text)

    async def hide(msg: Optional[Message]) -> None:
        if msg is not None:
            await msg.delete()

    client = _client()
    storage = LocalStorage(Path(settings.client_dir) / f"{chat_id}.json")
    toasts = ToastQueue(show, hide)
    s = Session(
        chat_id=chat_id,
        storage=storage,
        cart=CartController(CartStore(storage), client, toasts),
        browser=CatalogBrowser(client, limit=min(settings.page_limit, BOT_PAGE_MAX), max_limit=BOT_PAGE_MAX),
        toasts=toasts,
    )
    states.SESSIONS[chat_id] = s
    return s


def format_product(p: Dict[str, Any]) -> str:
    deal = " 🔥 deal" if p.get("deal") else ""
    return f"• <b>{quote(p['id'])}</b> {quote(p['title'])} | {quote(p['category'])} | {money(p['price'])}{deal}"


def format_page(browser: CatalogBrowser, page: List[Dict[str, Any]]) -> str:
    total = browser.total or 0
    if not page:
        return f"{total} results" if total else "Nothing found"
    lines = [f"<b>{total} results</b> (showing {browser.offset})"]
    lines.extend(format_product(p) for p in page)
    return "\n".join(lines)


async def _answer_page(
    message: Message,
    browser: CatalogBrowser,
    fetch: Awaitable[Optional[List[Dict[str, Any]]]],
) -> None:
    try:
        page = await fetch
    except StorefrontError:
        await message.answer("❌ Catalog unavailable, try later")
        return
    if page is None:
        # a newer listing superseded this one
        return
    await message.answer(format_page(browser, page), reply_markup=products_kb(page, browser.has_more))


@router.message(Command("start"))
async def cmd_start(message: Message, bot: Bot):
    s = get_session(bot, message.chat.id)
    await message.answer(
        f"🛍 Welcome to the storefront. Cart: {s.cart.count} items.\n/help — commands",
        reply_markup=main_kb(),
    )


@router.message(Command("cancel"))
async def cmd_cancel(message: Message, state: FSMContext):
    await state.clear()
    await message.answer("❎ Cancelled.", reply_markup=ReplyKeyboardRemove())


@router.message(Command("help"))
async def cmd_help(message: Message):
    text = (
        "<b>Storefront — commands</b>\n\n"
        "<b>Catalog</b>\n"
        "/products — all products\n"
        "/search TEXT — search titles and categories\n"
        "/category [NAME] — filter by category\n"
        "/deals — today's deals\n"
        "/electronics_deals — deals in Electronics\n"
        "/author NAME — search books\n"
        "/product ID — product details\n"
        "/more — next page\n"
        "/per_page N — results per page\n\n"
        "<b>Cart</b>\n"
        "/cart — show cart\n"
        "/cart_set ID QTY — change quantity (0 removes)\n"
        "/cart_remove ID — remove an item\n"
        "/cart_clear — empty the cart\n"
        "/checkout — checkout\n\n"
        "<b>Other</b>\n"
        "/contact, /gift, /signin, /sell — forms\n"
        "/location COUNTRY — delivery location\n"
        "/cancel — cancel a form\n"
        "/ping — backend check\n"
    )
    await message.answer(text)


@router.message(Command("ping"))
async def cmd_ping(message: Message):
    ok = await _client().health()
    await message.answer("pong ✅" if ok else "❌ backend unreachable")


# ---------------- catalog ----------------

@router.message(Command("products"))
async def cmd_products(message: Message, bot: Bot):
    s = get_session(bot, message.chat.id)
    await _answer_page(message, s.browser, s.browser.home())


@router.message(Command("search"))
async def cmd_search(message: Message, bot: Bot, command: CommandObject):
    s = get_session(bot, message.chat.id)
    await _answer_page(message, s.browser, s.browser.search(command.args or ""))


@router.message(Command("deals"))
async def cmd_deals(message: Message, bot: Bot):
    s = get_session(bot, message.chat.id)
    await _answer_page(message, s.browser, s.browser.todays_deals())


@router.message(Command("electronics_deals"))
async def cmd_electronics_deals(message: Message, bot: Bot):
    s = get_session(bot, message.chat.id)
    await _answer_page(message, s.browser, s.browser.electronics_deals())


@router.message(Command("author"))
async def cmd_author(message: Message, bot: Bot, command: CommandObject):
    name = (command.args or "").strip()
    if not name:
        await message.answer("Usage: /author NAME")
        return
    s = get_session(bot, message.chat.id)
    await _answer_page(message, s.browser, s.browser.author(name))


@router.message(Command("category"))
async def cmd_category(message: Message, bot: Bot, command: CommandObject):
    name = (command.args or "").strip()
    if not name:
        try:
            categories = await _client().categories()
        except StorefrontError:
            await message.answer("❌ Catalog unavailable, try later")
            return
        await message.answer("Choose a category:", reply_markup=categories_kb(categories))
        return
    s = get_session(bot, message.chat.id)
    await _answer_page(message, s.browser, s.browser.set_category(name))


@router.callback_query(F.data.startswith("cat:"))
async def cb_category(callback: CallbackQuery, bot: Bot):
    s = get_session(bot, callback.message.chat.id)
    name = callback.data.split(":", 1)[1]
    await callback.answer()
    await _answer_page(callback.message, s.browser, s.browser.set_category(name))


@router.message(Command("per_page"))
async def cmd_per_page(message: Message, bot: Bot, command: CommandObject):
    s = get_session(bot, message.chat.id)
    limit = coerce_int(command.args, settings.page_limit)
    await _answer_page(message, s.browser, s.browser.set_limit(limit))


@router.message(Command("more"))
async def cmd_more(message: Message, bot: Bot):
    s = get_session(bot, message.chat.id)
    if not s.browser.has_more:
        await message.answer("That's everything.")
        return
    await _answer_page(message, s.browser, s.browser.load_more())


@router.callback_query(F.data == "more")
async def cb_more(callback: CallbackQuery, bot: Bot):
    s = get_session(bot, callback.message.chat.id)
    await callback.answer()
    if s.browser.has_more:
        await _answer_page(callback.message, s.browser, s.browser.load_more())


async def _show_details(message: Message, s: Session, product_id: str) -> None:
    try:
        p = await s.browser.product(product_id)
    except ProductNotFound:
        await message.answer(f"❌ Product not found: {quote(product_id)}")
        return
    except StorefrontError as e:
        logger.warning("product %s not loaded: %s", product_id, e)
        await message.answer("❌ Catalog unavailable, try later")
        return
    title = quote(p["title"])
    text = (
        f"<b>{title}</b>\n"
        f"{quote(p['category'])} | {money(p['price'])}\n\n"
        f"Detailed description for <b>{title}</b>. This is a demo product."
    )
    await message.answer(text, reply_markup=product_kb(p["id"]))


@router.message(Command("product"))
async def cmd_product(message: Message, bot: Bot, command: CommandObject):
    pid = (command.args or "").strip()
    if not pid:
        await message.answer("Usage: /product ID")
        return
    await _show_details(message, get_session(bot, message.chat.id), pid)


@router.callback_query(F.data.startswith("details:"))
async def cb_details(callback: CallbackQuery, bot: Bot):
    s = get_session(bot, callback.message.chat.id)
    await callback.answer()
    await _show_details(callback.message, s, callback.data.split(":", 1)[1])


# ---------------- cart ----------------

@router.callback_query(F.data.startswith("add:"))
async def cb_add(callback: CallbackQuery, bot: Bot):
    s = get_session(bot, callback.message.chat.id)
    pid = callback.data.split(":", 1)[1]
    try:
        product = await s.browser.product(pid)
    except StorefrontError:
        await callback.answer("❌ Product unavailable")
        return
    s.cart.add(product)
    await callback.answer(f"Added ✓ ({s.cart.count} in cart)")


@router.message(Command("cart"))
async def cmd_cart(message: Message, bot: Bot):
    s = get_session(bot, message.chat.id)
    await message.answer(quote(s.cart.render()))


@router.message(Command("cart_set"))
async def cmd_cart_set(message: Message, bot: Bot, command: CommandObject):
    parts = (command.args or "").split()
    if len(parts) != 2:
        await message.answer("Usage: /cart_set ID QTY")
        return
    s = get_session(bot, message.chat.id)
    pid, qty = parts[0], coerce_int(parts[1], -1)
    if qty < 0:
        await message.answer("Usage: /cart_set ID QTY (QTY is a whole number, 0 removes)")
        return
    if pid not in s.cart.store:
        await message.answer(f"❌ {quote(pid)} is not in the cart")
        return
    s.cart.set_qty(pid, qty)
    await message.answer(quote(s.cart.render()))


@router.message(Command("cart_remove"))
async def cmd_cart_remove(message: Message, bot: Bot, command: CommandObject):
    pid = (command.args or "").strip()
    if not pid:
        await message.answer("Usage: /cart_remove ID")
        return
    s = get_session(bot, message.chat.id)
    s.cart.remove(pid)
    await message.answer(quote(s.cart.render()))


@router.message(Command("cart_clear"))
async def cmd_cart_clear(message: Message, bot: Bot):
    s = get_session(bot, message.chat.id)
    s.cart.clear()
    await message.answer("🧹 Cart cleared")


@router.message(Command("checkout"))
async def cmd_checkout(message: Message):
    await message.answer("Checkout is a demo — integrate a payment gateway")


# ---------------- location ----------------

@router.message(Command("location"))
async def cmd_location(message: Message, bot: Bot, command: CommandObject):
    country = (command.args or "").strip()
    if not country:
        await message.answer("Usage: /location COUNTRY")
        return
    s = get_session(bot, message.chat.id)
    await set_location(_client(), s.storage, {"country": country})
    await message.answer(f"📍 Delivering to {quote(country)}")


# ---------------- contact ----------------

@router.message(Command("contact"))
async def cmd_contact(message: Message, state: FSMContext):
    await state.clear()
    await state.set_state(ContactForm.waiting_name)
    await message.answer("1/3) Your name?\nCancel: /cancel", reply_markup=ReplyKeyboardRemove())


@router.message(ContactForm.waiting_name)
async def contact_name(message: Message, state: FSMContext):
    name = (message.text or "").strip()
    if not name or name.startswith("/"):
        await message.answer("Type your name. Cancel: /cancel")
        return
    await state.update_data(name=name)
    await state.set_state(ContactForm.waiting_email)
    await message.answer("2/3) Your email?\nCancel: /cancel")


@router.message(ContactForm.waiting_email)
async def contact_email(message: Message, state: FSMContext):
    email = (message.text or "").strip()
    if not email or email.startswith("/"):
        await message.answer("Type your email. Cancel: /cancel")
        return
    await state.update_data(email=email)
    await state.set_state(ContactForm.waiting_message)
    await message.answer("3/3) Your message?\nCancel: /cancel")


@router.message(ContactForm.waiting_message)
async def contact_message(message: Message, state: FSMContext):
    text = (message.text or "").strip()
    if not text or text.startswith("/"):
        await message.answer("Type your message. Cancel: /cancel")
        return
    data = await state.get_data()
    try:
        await _client().send_contact({**data, "message": text})
        await message.answer("✅ Thanks — message received")
    except StorefrontError:
        await message.answer("❌ Failed to send — try later")
    finally:
        await state.clear()


# ---------------- gift ----------------

@router.message(Command("gift"))
async def cmd_gift(message: Message, state: FSMContext):
    await state.clear()
    await state.set_state(GiftForm.waiting_to)
    await message.answer("1/3) Recipient email?\nCancel: /cancel", reply_markup=ReplyKeyboardRemove())


@router.message(GiftForm.waiting_to)
async def gift_to(message: Message, state: FSMContext):
    to = (message.text or "").strip()
    if not to or to.startswith("/"):
        await message.answer("Type the recipient. Cancel: /cancel")
        return
    await state.update_data(to=to)
    await state.set_state(GiftForm.waiting_amount)
    await message.answer("2/3) Amount?\nCancel: /cancel")


@router.message(GiftForm.waiting_amount)
async def gift_amount(message: Message, state: FSMContext):
    amount = coerce_int(message.text, 0)
    if amount <= 0:
        await message.answer("Amount must be a whole number, e.g. 500\nCancel: /cancel")
        return
    await state.update_data(amount=amount)
    await state.set_state(GiftForm.waiting_message)
    await message.answer("3/3) A message for the card, or '-' to skip\nCancel: /cancel")


@router.message(GiftForm.waiting_message)
async def gift_message(message: Message, state: FSMContext):
    text = (message.text or "").strip()
    if text.startswith("/"):
        await message.answer("Type a message or '-'. Cancel: /cancel")
        return
    data = await state.get_data()
    if text and text != "-":
        data["message"] = text
    try:
        await _client().send_gift(data)
        await message.answer("🎁 Gift saved")
    except StorefrontError:
        await message.answer("❌ Failed to send gift")
    finally:
        await state.clear()


# ---------------- sign in / sell ----------------

@router.message(Command("signin"))
async def cmd_signin(message: Message, state: FSMContext):
    await state.clear()
    await state.set_state(SigninForm.waiting_name)
    await message.answer("1/2) Your name?\nCancel: /cancel", reply_markup=ReplyKeyboardRemove())


@router.message(SigninForm.waiting_name)
async def signin_name(message: Message, state: FSMContext):
    name = (message.text or "").strip()
    if not name or name.startswith("/"):
        await message.answer("Type your name. Cancel: /cancel")
        return
    await state.update_data(name=name)
    await state.set_state(SigninForm.waiting_email)
    await message.answer("2/2) Your email?\nCancel: /cancel")


@router.message(SigninForm.waiting_email)
async def signin_email(message: Message, state: FSMContext, bot: Bot):
    email = (message.text or "").strip()
    if not email or email.startswith("/"):
        await message.answer("Type your email. Cancel: /cancel")
        return
    data = await state.get_data()
    s = get_session(bot, message.chat.id)
    try:
        await sign_in(_client(), s.storage, {**data, "email": email})
        await message.answer(f"✅ Signed in as {quote(str(data.get('name', '')))}")
    except StorefrontError:
        await message.answer("❌ Sign-in failed")
    finally:
        await state.clear()


@router.message(Command("sell"))
async def cmd_sell(message: Message, state: FSMContext):
    await state.clear()
    await state.set_state(SellForm.waiting_name)
    await message.answer("1/2) Seller name?\nCancel: /cancel", reply_markup=ReplyKeyboardRemove())


@router.message(SellForm.waiting_name)
async def sell_name(message: Message, state: FSMContext):
    name = (message.text or "").strip()
    if not name or name.startswith("/"):
        await message.answer("Type your name. Cancel: /cancel")
        return
    await state.update_data(name=name)
    await state.set_state(SellForm.waiting_product)
    await message.answer("2/2) What would you like to sell?\nCancel: /cancel")


@router.message(SellForm.waiting_product)
async def sell_product(message: Message, state: FSMContext):
    product = (message.text or "").strip()
    if not product or product.startswith("/"):
        await message.answer("Describe the product. Cancel: /cancel")
        return
    data = await state.get_data()
    try:
        # sell requests are stored with the users
        await _client().sign_in({**data, "product": product, "type": "sell"})
        await message.answer("✅ Thanks — your sell request has been received")
    except StorefrontError:
        await message.answer("❌ Failed to submit")
    finally:
        await state.clear()
