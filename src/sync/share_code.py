import re
import secrets
import string

from store import TreeStore, TripPaths

_ALPHABET = string.ascii_letters + string.digits + "_-"


def slugify(text: str) -> str:
    slug = re.sub(r"[^\w\s-]", "", text.lower())
    slug = re.sub(r"\s+", "-", slug.strip())
    return re.sub(r"--+", "-", slug).strip("-")


def random_code(length: int) -> str:
    return "".join(secrets.choice(_ALPHABET) for _ in range(length))


async def generate_share_code(store: TreeStore, trip_name: str) -> str:
    """
    Readable trip id such as ``lisbon-weekend-x7Qa``.

    Falls back to a fully random ``trip-<8>`` code if the readable one is taken.
    """
    code = f"{slugify(trip_name) or 'trip'}-{random_code(4)}"
    if await store.read(TripPaths(code).root) is not None:
        return f"trip-{random_code(8)}"
    return code
