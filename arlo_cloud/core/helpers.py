"""Small helpers shared by the client services."""
import base64
import math
import random
import time

from arlo_cloud.core.constants import TRANSID_PREFIX

MAX_HEX_DIGITS = 15


def float2hex(value: float) -> str:
    """Render a non-negative float in hexadecimal, fraction included.

    Mirrors ``Number.prototype.toString(16)`` as used by the Arlo web app.
    """
    whole = int(value // 1)
    fraction = value % 1

    result = format(whole, "x")
    if fraction == 0:
        return result

    result += "."
    count = 0
    while fraction and count <= MAX_HEX_DIGITS:
        fraction *= 16
        digit, fraction = divmod(fraction, 1)
        result += format(int(digit), "x")
        count += 1

    return result


def create_transaction_id(trans_type: str = TRANSID_PREFIX) -> str:
    """Create a transaction id the way the Arlo web app does.

    Format: ``<type>!<hex random>!<epoch millis>``. The random part plus the
    millisecond clock make collisions within one process impractical.
    """
    rand_hex = float2hex(random.random() * math.pow(2, 32))
    return f"{trans_type}!{rand_hex}!{int(time.time() * 1000)}"


def b64encode_str(value: str) -> str:
    """Base64-encode a text value (reversible encoding, not encryption)."""
    return base64.b64encode(value.encode("utf-8")).decode("ascii")


def b64decode_str(value: str) -> str:
    """Reverse :func:`b64encode_str`."""
    return base64.b64decode(value.encode("ascii")).decode("utf-8")


def strings_equal_insensitive(one: str, two: str) -> bool:
    """Compare two strings ignoring case."""
    return one.casefold() == two.casefold()
