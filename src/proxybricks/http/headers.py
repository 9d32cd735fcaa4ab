"""
=============================================================================
HTTP HEADER COLLECTION
=============================================================================

An ordered, duplicate-friendly store for HTTP header fields.

=============================================================================
WHY NOT A DICT?
=============================================================================

A plain dict loses two things a proxy must keep intact:

    1. ORDER - fields are written back in the order they arrived
    2. DUPLICATES - some headers legitimately repeat

        HTTP/1.1 200 OK\\r\\n
        Set-Cookie: session=abc\\r\\n      ← field #1
        Set-Cookie: theme=dark\\r\\n       ← field #2, same name!
        Content-Type: text/html\\r\\n

    A dict keyed by name would keep only one Set-Cookie. Folding them into
    "session=abc, theme=dark" breaks cookies, which can contain commas.

So the collection is a LIST of fields:

    ┌─────────────────────────────────────────────────────────────────┐
    │  HeaderCollection                                                │
    ├─────────────────────────────────────────────────────────────────┤
    │  [0] HeaderField("Set-Cookie",   "session=abc")                  │
    │  [1] HeaderField("Set-Cookie",   "theme=dark")                   │
    │  [2] HeaderField("Content-Type", "text/html")                    │
    └─────────────────────────────────────────────────────────────────┘

Lookups match the name EXACTLY as it was received. A rewrite hook that
calls replace("Host", ...) touches "Host", not "host".

=============================================================================
"""

from typing import Iterator, List, Optional


CRLF = "\r\n"


class HeaderField:
    """
    A single header line.

    The name is fixed once the field exists; only the value may change.
    Rename a header with remove() + add() on the collection instead.
    """

    __slots__ = ("_name", "value")

    def __init__(self, name: str, value: str):
        self._name = name
        self.value = value

    @property
    def name(self) -> str:
        return self._name

    def to_text(self) -> str:
        """Wire form: ``name: value`` terminated by CRLF."""
        return f"{self._name}: {self.value}{CRLF}"

    def __eq__(self, other) -> bool:
        if not isinstance(other, HeaderField):
            return NotImplemented
        return self._name == other._name and self.value == other.value

    def __repr__(self) -> str:
        return f"HeaderField({self._name!r}, {self.value!r})"


class HeaderCollection:
    """
    Ordered list of header fields with name-based helpers.

    =========================================================================
    OPERATIONS
    =========================================================================

        add(name, value)      Append, never deduplicates
        value(name)           First matching value, or None
        remove(name)          Drop EVERY field with that name
        replace(name, value)  remove() + add() → exactly one field left
        to_text()             "name: value\\r\\n" per field, in order

    Iterating yields the live HeaderField objects, so a hook can walk all
    Set-Cookie fields and edit their values in place:

        for field in response.headers.fields("Set-Cookie"):
            field.value = field.value.replace("; Secure", "")

    =========================================================================
    """

    def __init__(self):
        self._fields: List[HeaderField] = []

    def add(self, name: str, value: str) -> None:
        self._fields.append(HeaderField(name, value))

    def value(self, name: str) -> Optional[str]:
        """Return the value of the first field called ``name``."""
        for field in self._fields:
            if field.name == name:
                return field.value
        return None

    def values(self, name: str) -> List[str]:
        """Return every value for ``name`` in arrival order."""
        return [field.value for field in self._fields if field.name == name]

    def remove(self, name: str) -> None:
        self._fields = [field for field in self._fields if field.name != name]

    def replace(self, name: str, value: str) -> None:
        """Collapse all ``name`` fields into one with the given value."""
        self.remove(name)
        self.add(name, value)

    def fields(self, name: Optional[str] = None) -> Iterator[HeaderField]:
        """
        Lazily walk the fields, optionally only those called ``name``.

        Each call starts a fresh pass over the collection.
        """
        for field in self._fields:
            if name is None or field.name == name:
                yield field

    def to_text(self) -> str:
        return "".join(field.to_text() for field in self._fields)

    # Alias matching the wire-format vocabulary used by the parser
    serialize = to_text

    def __iter__(self) -> Iterator[HeaderField]:
        return self.fields()

    def __len__(self) -> int:
        return len(self._fields)

    def __contains__(self, name: str) -> bool:
        return self.value(name) is not None

    def __repr__(self) -> str:
        inner = ", ".join(f"{f.name}={f.value!r}" for f in self._fields)
        return f"HeaderCollection({inner})"
