"""
Parameter sets and canonical query strings.

The canonical query string is used twice for every private call: once inside
the signed payload and once as the query (or POST body) actually sent. Both
must come from the same function so the exchange can rebuild the payload
byte for byte.
"""

from typing import Any, Dict, Iterator, Mapping, Optional
from urllib.parse import quote


class _Absent:
    """Marker for an optional parameter that is not present."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return 'ABSENT'

    def __bool__(self) -> bool:
        return False


ABSENT = _Absent()

# Characters left unescaped by JavaScript's encodeURIComponent, which the
# exchange uses when rebuilding the payload.
_SAFE_CHARS = "-_.!~*'()"


def is_present(value: Any) -> bool:
    """Return True unless value is None or ABSENT."""
    return value is not None and value is not ABSENT


def format_value(value: Any) -> str:
    """Render a scalar parameter value as it appears on the wire."""
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def encode_component(text: str) -> str:
    return quote(text, safe=_SAFE_CHARS)


def clean_up_params(params: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """Return a new dict holding only the present entries of params."""
    if not params:
        return {}
    return {key: value for key, value in params.items() if is_present(value)}


class ParameterSet(Mapping):
    """
    Immutable mapping of request parameters with an explicit presence concept.

    Optional fields may be stored as ABSENT (or None); they stay visible
    through the mapping interface but are excluded by present() and never
    reach a canonical query string.
    """

    def __init__(self, params: Optional[Mapping[str, Any]] = None, **kwargs: Any):
        data: Dict[str, Any] = dict(params or {})
        data.update(kwargs)
        self._data = data

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"ParameterSet({self._data!r})"

    def present(self) -> Dict[str, Any]:
        """Return the present entries as a plain dict."""
        return clean_up_params(self._data)

    def with_values(self, **kwargs: Any) -> 'ParameterSet':
        """Return a copy with the given entries added or replaced."""
        return ParameterSet(self._data, **kwargs)


def canonicalize(params: Optional[Mapping[str, Any]] = None) -> str:
    """
    Build the canonical query string for a parameter mapping.

    Absent entries are dropped, every key and value is percent-encoded on its
    own, and the pairs are sorted by encoded key before joining with '&'.
    The result does not depend on the mapping's iteration order.

    Args:
        params: Mapping of parameter names to scalar values

    Returns:
        str: Canonical query string (empty when nothing is present)
    """
    pairs = [
        (encode_component(str(key)), encode_component(format_value(value)))
        for key, value in clean_up_params(params).items()
    ]
    pairs.sort(key=lambda pair: pair[0])
    return '&'.join(f"{key}={value}" for key, value in pairs)
