"""
Parameter expansion and encoding for query strings, form bodies and
multipart/form-data bodies.
"""

import random
from collections.abc import Iterable
from typing import Any, List, Mapping, Optional, Tuple
from urllib.parse import quote

# Characters left as-is besides ASCII letters, digits and "_.-~". This is the
# classic URI escape set minus ";", "+" and "&", which servers commonly treat
# as separators inside a query string.
SAFE_CHARS = "/?:@=$,[]!*'()"

ParamMap = Optional[Mapping[Any, Any]]


def _is_multi_value(value: Any) -> bool:
    if isinstance(value, (str, bytes, bytearray)):
        return False
    return isinstance(value, Iterable)


def expand_params(params: ParamMap) -> List[Tuple[Any, Any]]:
    """
    Flatten a parameter mapping into sorted (key, value) pairs.

    A value that is a non-string iterable contributes one pair per element.
    Pairs are sorted by the string form of the key, then of the value, so the
    result does not depend on the iteration order of ``params``.

    Args:
        params: Mapping of keys to a scalar or an iterable of scalars

    Returns:
        List of (key, value) pairs
    """
    expanded = []

    for key, value in (params or {}).items():
        if _is_multi_value(value):
            expanded.extend((key, item) for item in value)
        else:
            expanded.append((key, value))

    return sorted(expanded, key=lambda pair: (str(pair[0]), str(pair[1])))


def escape(value: Any) -> str:
    """Percent-encode ``value``; ``;``, ``+`` and ``&`` are always escaped.

    Bytes are encoded as they are, anything else as ``str(value)``.
    """
    if isinstance(value, (bytes, bytearray)):
        return quote(bytes(value), safe=SAFE_CHARS)
    return quote(str(value), safe=SAFE_CHARS)


def encode_query(params: ParamMap) -> str:
    """Encode ``params`` as an ``&``-joined ``key=value`` string."""
    return "&".join(f"{escape(k)}={escape(v)}" for k, v in expand_params(params))


def make_boundary(rng: Optional[random.Random] = None) -> str:
    """Return eight ``_``-joined hex groups, e.g. ``ac_2f_75_c0_43_fb_c3_67``."""
    source = rng or random
    return "_".join(format(source.randrange(255), "x") for _ in range(8))


def _to_bytes(value: Any) -> bytes:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    return str(value).encode("utf-8")


def make_multipart(
    params: ParamMap, rng: Optional[random.Random] = None
) -> Tuple[str, bytes]:
    """
    Build a multipart/form-data body for ``params``.

    Fields appear in :func:`expand_params` order. Lines end with CRLF and the
    body ends with the closing boundary, without a trailing newline.

    Args:
        params: Mapping of field names to a scalar or an iterable of scalars
        rng: Random source for the boundary; the ``random`` module if omitted

    Returns:
        Tuple of the boundary token and the encoded body
    """
    boundary = make_boundary(rng)
    delimiter = f"--{boundary}".encode("ascii")

    parts = []
    for key, value in expand_params(params):
        parts.append(
            b"\r\n".join(
                [
                    delimiter,
                    f'Content-Disposition: form-data; name="{key}"'.encode("utf-8"),
                    b"",
                    _to_bytes(value),
                ]
            )
        )
    parts.append(delimiter + b"--")

    return boundary, b"\r\n".join(parts)
