"""Author identities and the operator's own validator set."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Mapping


def normalize_key(author: str) -> str:
    """Return the comparison form of a hex public key (lowercase, no 0x prefix)."""

    key = author.strip().lower()
    if key.startswith("0x"):
        key = key[2:]
    return key


def parse_address_entry(entry: str) -> tuple[str, str]:
    """Split an ``hex`` or ``hex:name`` entry into key and display name."""

    key, _, name = entry.strip().partition(":")
    key = key.strip()
    if not key:
        raise ValueError(f"invalid address entry '{entry}', expected hex or hex:name")
    return key, name.strip()


@dataclass(frozen=True)
class AuthorIdentity:
    author: str
    author_dns: str
    operated_by_us: bool

    def labels(self) -> dict[str, str]:
        return {
            "author": self.author,
            "author_dns": self.author_dns,
            "operated_by_us": "true" if self.operated_by_us else "false",
        }


class OurAddresses:
    """Immutable set of author keys operated locally, fixed at startup."""

    def __init__(self, entries: Iterable[str] = ()) -> None:
        names: dict[str, str] = {}
        for entry in entries:
            key, name = parse_address_entry(entry)
            names[normalize_key(key)] = name
        self._names: Mapping[str, str] = names

    def __contains__(self, author: object) -> bool:
        return isinstance(author, str) and normalize_key(author) in self._names

    def __len__(self) -> int:
        return len(self._names)

    def name_for(self, author: str) -> str | None:
        return self._names.get(normalize_key(author))

    def identify(self, author: str, author_dns: str = "") -> AuthorIdentity:
        return AuthorIdentity(author=author, author_dns=author_dns, operated_by_us=author in self)

    def describe(self) -> dict[str, str]:
        """Return key -> name pairs for startup logging."""

        return dict(self._names)
