"""Immutable, case-insensitive request headers.

Keeps the raw byte pairs from the ASGI scope and a lower-cased index
built once at construction, so the conditional-GET lookups done per
request never re-scan the raw list.
"""

from collections.abc import Iterator, Mapping
from types import MappingProxyType


def _index(raw: tuple[tuple[bytes, bytes], ...]) -> Mapping[str, tuple[str, ...]]:
    values: dict[str, list[str]] = {}
    for name, value in raw:
        values.setdefault(name.decode("latin-1").lower(), []).append(value.decode("latin-1"))
    return MappingProxyType({name: tuple(found) for name, found in values.items()})


class Headers(Mapping[str, str]):
    """Immutable, case-insensitive HTTP headers.

    Indexing gives the first value sent for a name; ``get_list`` gives
    all of them, in the order they arrived.
    """

    __slots__ = ("_by_name", "_raw")

    def __init__(self, raw: tuple[tuple[bytes, bytes], ...] = ()) -> None:
        object.__setattr__(self, "_raw", raw)
        object.__setattr__(self, "_by_name", _index(raw))

    @classmethod
    def from_mapping(cls, headers: Mapping[str, str]) -> "Headers":
        """Build from a plain ``{name: value}`` mapping."""
        return cls(
            tuple(
                (name.lower().encode("latin-1"), value.encode("latin-1"))
                for name, value in headers.items()
            )
        )

    def __setattr__(self, name: str, value: object) -> None:
        msg = "Headers are immutable"
        raise AttributeError(msg)

    def __getitem__(self, key: str) -> str:
        found = self._by_name.get(key.lower())
        if not found:
            raise KeyError(key)
        return found[0]

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and key.lower() in self._by_name

    def __iter__(self) -> Iterator[str]:
        return iter(self._by_name)

    def __len__(self) -> int:
        return len(self._by_name)

    def __repr__(self) -> str:
        return f"Headers({dict(self)!r})"

    def get(self, key: str, default: str | None = None) -> str | None:  # type: ignore[override]
        """First value for *key*, or *default*."""
        found = self._by_name.get(key.lower())
        return found[0] if found else default

    def get_list(self, key: str) -> list[str]:
        """Every value sent for *key*."""
        return list(self._by_name.get(key.lower(), ()))

    @property
    def raw(self) -> tuple[tuple[bytes, bytes], ...]:
        """The byte pairs exactly as received."""
        return self._raw
