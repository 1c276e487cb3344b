import re
import unicodedata


def normalize_query_value(text: str) -> str:
    """Normalize a raw query string value.

    Applies NFKC normalization (folding full-width and compatibility
    characters), collapses runs of whitespace into single spaces and trims.

    Args:
        text: Raw query parameter value.

    Returns:
        str: Normalized and trimmed text.
    """
    text = unicodedata.normalize("NFKC", text)
    text = re.sub(r"\s+", " ", text)
    return text.strip()
