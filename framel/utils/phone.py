import re

from framel.config import settings

_SEPARATORS = re.compile(r"[\s\-+().]")


def normalize_phone(phone: str, country_code: str = None) -> str:
    """
    Canonical `<countrycode><subscriber>` digit string used for M-Pesa.

    0712 345 678, +254-712-345678 and 712345678 all become 254712345678.
    """
    country_code = country_code or settings.PHONE_COUNTRY_CODE

    formatted = _SEPARATORS.sub("", phone or "")

    if not formatted.isdigit():
        raise ValueError(f"Invalid phone number: {phone!r}")

    # national trunk prefix
    if formatted.startswith("0"):
        formatted = country_code + formatted[1:]

    if not formatted.startswith(country_code):
        formatted = country_code + formatted

    subscriber = formatted[len(country_code):]
    if len(subscriber) != 9:
        raise ValueError(f"Invalid phone number: {phone!r}")

    return formatted
