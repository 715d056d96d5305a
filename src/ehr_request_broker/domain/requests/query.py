"""Query signature extraction.

A request is identified for caching purposes by the data subset it asks
for, not by the exact URL the caller used. The signature keeps the
resource path below the ``r2da`` segment and the query string with its
parameters sorted, so ``/r2da/Encounter?b=2&a=1`` and
``https://host/r2da/Encounter?a=1&b=2`` are equivalent.
"""

from urllib.parse import parse_qsl, urlencode, urlsplit

R2DA_SEGMENT = "r2da"


def extract_query_signature(resource_locator: str) -> str:
    """Derive the normalized query signature of a resource locator.

    Parameters
    ----------
    resource_locator : str
        Absolute URL, absolute path, or bare sub-query such as
        ``Encounter?date=2024``

    Returns
    -------
    str
        Resource path without leading or trailing slashes, followed by the
        sorted query string when one is present

    Raises
    ------
    ValueError
        If the locator contains no resource path

    Examples
    --------
    >>> extract_query_signature("https://h/api/r2da/Encounter?b=2&a=1")
    'Encounter?a=1&b=2'
    >>> extract_query_signature("/r2da/Patient/$everything")
    'Patient/$everything'
    """
    if resource_locator is None:
        raise ValueError("Resource locator is required")

    parts = urlsplit(resource_locator.strip())
    segments = [s for s in parts.path.split("/") if s]

    if R2DA_SEGMENT in segments:
        segments = segments[segments.index(R2DA_SEGMENT) + 1 :]

    path = "/".join(segments)
    if not path:
        raise ValueError(
            f"Resource locator has no resource path: {resource_locator!r}"
        )

    params = sorted(parse_qsl(parts.query, keep_blank_values=True))
    if params:
        return f"{path}?{urlencode(params, safe='$:,')}"
    return path
