"""Property path model: segments, canonical rendering and path sets.

A path is an ordered, non-empty sequence of segments rooted implicitly at the
props object:

    props.a[2].c        -> Key('a'), Element, Key('c')   -> "a[].c"
    const {x, ...r} = p -> RestOf(...) consumed as         -> "..."
"""
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Tuple, Union


@dataclass(frozen=True)
class Key:
    """A statically known property name."""
    name: str


@dataclass(frozen=True)
class Element:
    """Wildcard for any array element (numeric, variable or computed index)."""


@dataclass(frozen=True)
class Rest:
    """All sibling keys not otherwise named (rest destructuring, spreads)."""


ELEMENT = Element()
REST = Rest()

Segment = Union[Key, Element, Rest]

ELEMENT_MARK = '[]'
REST_MARK = '...'


class PropPath:
    """Immutable access path. Equality and hashing follow the canonical string."""

    __slots__ = ('_segments', '_text')

    def __init__(self, segments):
        segments = tuple(segments)
        if not segments:
            raise ValueError("A property path needs at least one segment")
        self._segments: Tuple[Segment, ...] = segments
        self._text = _render(segments)

    @classmethod
    def of(cls, *names: str) -> 'PropPath':
        """Build a path of plain keys: PropPath.of('a', 'b') -> a.b"""
        return cls(Key(name) for name in names)

    @classmethod
    def parse(cls, text: str) -> 'PropPath':
        """Parse a canonical string back into a path.

        Args:
            text: Canonical form such as ``a[].b.c`` or ``foo...``

        Returns:
            PropPath with the same canonical string

        Raises:
            ValueError: If the text holds no segment
        """
        has_rest = text.endswith(REST_MARK)
        if has_rest:
            text = text[:-len(REST_MARK)]

        segments: List[Segment] = []
        for part in text.split('.') if text else []:
            elements = 0
            while part.endswith(ELEMENT_MARK):
                part = part[:-len(ELEMENT_MARK)]
                elements += 1
            if part:
                segments.append(Key(part))
            segments.extend([ELEMENT] * elements)
        if has_rest:
            segments.append(REST)
        return cls(segments)

    @property
    def segments(self) -> Tuple[Segment, ...]:
        return self._segments

    @property
    def root_key(self) -> Optional[str]:
        first = self._segments[0]
        return first.name if isinstance(first, Key) else None

    @property
    def last(self) -> Segment:
        return self._segments[-1]

    @property
    def parent(self) -> Optional['PropPath']:
        if len(self._segments) == 1:
            return None
        return PropPath(self._segments[:-1])

    def key(self, name: str) -> 'PropPath':
        return PropPath(self._segments + (Key(name),))

    def element(self) -> 'PropPath':
        return PropPath(self._segments + (ELEMENT,))

    def rest(self) -> 'PropPath':
        return PropPath(self._segments + (REST,))

    def without_trailing_elements(self) -> Optional['PropPath']:
        """Drop trailing ``[]`` segments: reading an element depends on the array."""
        segments = self._segments
        while segments and segments[-1] is ELEMENT:
            segments = segments[:-1]
        return PropPath(segments) if segments else None

    def startswith(self, other: 'PropPath') -> bool:
        """True when ``other`` is this path or one of its ancestors."""
        size = len(other._segments)
        return size <= len(self._segments) and self._segments[:size] == other._segments

    def render(self) -> str:
        return self._text

    def __len__(self) -> int:
        return len(self._segments)

    def __eq__(self, other) -> bool:
        if not isinstance(other, PropPath):
            return NotImplemented
        return self._text == other._text

    def __hash__(self) -> int:
        return hash(self._text)

    def __str__(self) -> str:
        return self._text

    def __repr__(self) -> str:
        return f"PropPath({self._text!r})"


def root_path(segment: Segment) -> PropPath:
    return PropPath((segment,))


def extend(base: Optional[PropPath], segment: Segment) -> PropPath:
    """Append a segment, treating ``None`` as the props root."""
    if base is None:
        return root_path(segment)
    return PropPath(base.segments + (segment,))


def _render(segments: Tuple[Segment, ...]) -> str:
    text = ''
    for segment in segments:
        if isinstance(segment, Key):
            text = f"{text}.{segment.name}" if text else segment.name
        elif isinstance(segment, Element):
            text += ELEMENT_MARK
        else:
            text += REST_MARK
    return text


class PathSet:
    """Unique paths keyed by canonical string, keeping the first location seen."""

    def __init__(self):
        self._paths: Dict[str, PropPath] = {}
        self._locations: Dict[str, object] = {}

    def add(self, path: PropPath, location=None) -> bool:
        """Add a path. Returns False when the canonical string was already present."""
        text = path.render()
        if text in self._paths:
            return False
        self._paths[text] = path
        self._locations[text] = location
        return True

    def location_of(self, path: PropPath):
        return self._locations.get(path.render())

    def strings(self) -> List[str]:
        return list(self._paths)

    def __contains__(self, item) -> bool:
        if isinstance(item, PropPath):
            item = item.render()
        return item in self._paths

    def __iter__(self) -> Iterator[PropPath]:
        return iter(list(self._paths.values()))

    def __len__(self) -> int:
        return len(self._paths)

    def __eq__(self, other) -> bool:
        if not isinstance(other, PathSet):
            return NotImplemented
        return set(self._paths) == set(other._paths)

    def __repr__(self) -> str:
        return f"PathSet({sorted(self._paths)!r})"
