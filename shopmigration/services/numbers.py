"""Product order number validation."""

import re

MAX_NUMBER_LENGTH = 30

_INVALID_CHARS = re.compile(r"[^a-zA-Z0-9\-_. ]")


def is_valid_number(number) -> bool:
    """
    Check an order number.

    A valid number is not empty, at most 30 characters long and only
    contains `a-zA-Z0-9-_.` and space.
    """
    if number is None:
        return False
    number = str(number)
    if not number or len(number) > MAX_NUMBER_LENGTH:
        return False
    return not _INVALID_CHARS.search(number)


def make_valid_number(number, product_id) -> str:
    """
    Turn an invalid order number into a valid one.

    Disallowed characters become '-'. Numbers that are too long are cut and
    get the product id appended, so the result only depends on the input and
    the source product id. The result is not guaranteed to be unique.
    """
    number = _INVALID_CHARS.sub("-", "" if number is None else str(number)).strip()
    suffix = _INVALID_CHARS.sub("-", str(product_id))

    if not number:
        return f"sw-{suffix}"[:MAX_NUMBER_LENGTH]

    if len(number) > MAX_NUMBER_LENGTH:
        keep = MAX_NUMBER_LENGTH - len(suffix) - 1
        if keep <= 0:
            return number[:MAX_NUMBER_LENGTH]
        number = f"{number[:keep]}-{suffix}"

    return number
