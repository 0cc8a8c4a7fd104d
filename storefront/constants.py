CATEGORIES = [
    "Electronics",
    "Home & Kitchen",
    "Tools",
    "Books",
    "Fashion",
    "Sports",
    "Beauty",
]

# json "tables" kept under settings.data_dir
PRODUCTS = "products"
CONTACTS = "contacts"
USERS = "users"
CARTS = "carts"
GIFTS = "gifts"

LOGS = (CONTACTS, USERS, CARTS, GIFTS)

DEFAULT_LIMIT = 50
DEFAULT_OFFSET = 0

# local storage keys on the client side
CART_KEY = "storefront_cart"
LOCATION_KEY = "storefront_location"
USER_KEY = "storefront_user"

# telegram: 4096 chars per message, ~100 inline buttons per keyboard
BOT_PAGE_MAX = 25
