"""Accept header negotiation for CoSERV responses.

The service produces a single media type, ``application/coserv+cbor``. A
request is acceptable when the most specific media range in its Accept
header that matches (exact, ``application/*`` or ``*/*``) has q > 0, or when
no Accept header is sent at all.

Profile parameters are quoted strings that may contain commas and
semicolons, e.g.::

    Accept: application/coserv+cbor; profile="tag:arm.com,2023:cca_platform#1.0.0"

so the header is split with quote awareness. When the matched range is the
exact media type and carries a profile, the response content type echoes
it.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from endorsement_distribution.coserv.result import MEDIA_TYPE


@dataclass(frozen=True)
class MediaRange:
    """One media range from an Accept header.

    Attributes:
        type: Top-level type (may be ``*``).
        subtype: Subtype (may be ``*``).
        params: Parameters other than q, quotes removed.
        q: Quality value.
    """

    type: str
    subtype: str
    params: dict[str, str] = field(default_factory=dict)
    q: float = 1.0

    @property
    def specificity(self) -> int:
        if self.type == "*":
            return 0
        if self.subtype == "*":
            return 1
        return 2

    def matches(self, media_type: str) -> bool:
        type_, _, subtype = media_type.partition("/")
        if self.type == "*":
            return True
        return self.type == type_ and self.subtype in ("*", subtype)


def _split(text: str, separator: str) -> list[str]:
    """Split on separator, ignoring separators inside double quotes."""
    parts: list[str] = []
    current: list[str] = []
    quoted = False
    escaped = False

    for char in text:
        if escaped:
            escaped = False
        elif char == "\\" and quoted:
            escaped = True
        elif char == '"':
            quoted = not quoted
        elif char == separator and not quoted:
            parts.append("".join(current))
            current = []
            continue
        current.append(char)

    parts.append("".join(current))
    return parts


def _unquote(value: str) -> str:
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] == '"':
        value = value[1:-1].replace('\\"', '"').replace("\\\\", "\\")
    return value


def parse_accept(header: str) -> list[MediaRange]:
    """Parse an Accept header into media ranges, skipping malformed ones."""
    ranges: list[MediaRange] = []

    for element in _split(header, ","):
        pieces = _split(element, ";")
        type_, slash, subtype = pieces[0].strip().lower().partition("/")
        if not slash or not type_ or not subtype:
            continue

        params: dict[str, str] = {}
        q = 1.0
        for piece in pieces[1:]:
            name, eq, value = piece.partition("=")
            name = name.strip().lower()
            if not eq or not name:
                continue
            if name == "q":
                try:
                    q = float(value.strip())
                except ValueError:
                    q = 0.0
            else:
                params[name] = _unquote(value)

        ranges.append(MediaRange(type_, subtype, params, q))

    return ranges


def negotiate(accept: str | None, media_type: str = MEDIA_TYPE) -> str | None:
    """Pick the response content type for a request.

    Args:
        accept: Raw Accept header value, or None when absent.
        media_type: The media type the service produces.

    Returns:
        The content type to send (with an echoed profile parameter when
        one was requested), or None if the request does not accept the
        media type.
    """
    if accept is None or not accept.strip():
        return media_type

    candidates = [r for r in parse_accept(accept) if r.matches(media_type)]
    if not candidates:
        return None

    # first of the most specific ranges wins
    best = max(candidates, key=lambda r: r.specificity)
    if best.q <= 0:
        return None

    profile = best.params.get("profile")
    if best.specificity == 2 and profile:
        escaped = profile.replace("\\", "\\\\").replace('"', '\\"')
        return f'{media_type}; profile="{escaped}"'
    return media_type
