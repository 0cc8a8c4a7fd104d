from dataclasses import dataclass
from typing import Dict, Optional

from aiogram.fsm.state import State, StatesGroup

from storefront.client.api import StorefrontClient
from storefront.client.controller import CartController, CatalogBrowser
from storefront.client.storage import LocalStorage
from storefront.client.toast import ToastQueue


class ContactForm(StatesGroup):
    waiting_name = State()
    waiting_email = State()
    waiting_message = State()


class GiftForm(StatesGroup):
    waiting_to = State()
    waiting_amount = State()
    waiting_message = State()


class SigninForm(StatesGroup):
    waiting_name = State()
    waiting_email = State()


class SellForm(StatesGroup):
    waiting_name = State()
    waiting_product = State()


@dataclass
class Session:
    chat_id: int
    storage: LocalStorage
    cart: CartController
    browser: CatalogBrowser
    toasts: Optional[ToastQueue] = None


SESSIONS: Dict[int, Session] = {}  # chat_id -> session

CLIENT: Optional[StorefrontClient] = None  # shared backend client, set on startup
