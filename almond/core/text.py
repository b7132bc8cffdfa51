import re
import unicodedata

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def slugify(value: str, max_length: int = 120) -> str:
    """
    Lowercase, ASCII-normalized, hyphen-separated form of `value`.

        slugify("Cars & Trucks")  -> "cars-trucks"
        slugify("Électronique")   -> "electronique"
    """
    normalized = unicodedata.normalize("NFKD", value).encode("ascii", "ignore").decode("ascii")
    slug = _NON_ALNUM.sub("-", normalized.lower()).strip("-")
    return slug[:max_length].rstrip("-")
