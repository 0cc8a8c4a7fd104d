from storefront.config import settings

def money(v: int | float) -> str:
    return f"{settings.currency}{v}"
