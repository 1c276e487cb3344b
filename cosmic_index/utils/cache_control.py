"""Cache-Control header values for public catalog responses."""

HOUR = 60 * 60
DAY = 24 * HOUR


def cache_control_header(ttl_seconds: int) -> str:
    """Shared-cache policy: fresh for ``ttl_seconds``, then served stale
    while revalidating for twice as long.

    Example:
        >>> cache_control_header(60)
        'public, s-maxage=60, stale-while-revalidate=120'
    """
    if ttl_seconds < 0:
        raise ValueError("ttl_seconds must be >= 0")
    return f"public, s-maxage={ttl_seconds}, stale-while-revalidate={ttl_seconds * 2}"
