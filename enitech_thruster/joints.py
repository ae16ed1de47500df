"""Named vectors of elements and joint state samples."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Generic, Iterable, Iterator, Optional, Sequence, TypeVar, Union

from enitech_thruster.jointstate import JointState

T = TypeVar("T")


class InvalidName(LookupError):
    """No element carries the requested name."""

    def __init__(self, name: str) -> None:
        super().__init__(
            f"trying to access element {name}, but there is no element with that name "
            "on this structure"
        )
        self.name = name


@dataclass
class NamedVector(Generic[T]):
    """Elements with optional names, in the same order."""

    names: list[str] = field(default_factory=list)
    elements: list[T] = field(default_factory=list)

    def _new_element(self) -> Optional[T]:
        return None

    def has_names(self) -> bool:
        """Whether the names are filled in."""
        return bool(self.names) and bool(self.names[0])

    def element_by_name(self, name: str) -> T:
        """The element carrying ``name``; raises InvalidName if absent."""
        return self._element_at(self.index_of(name))

    def index_of(self, name: str) -> int:
        """The index of ``name``; raises InvalidName if absent."""
        try:
            return self.names.index(name)
        except ValueError:
            raise InvalidName(name) from None

    def resize(self, size: int) -> None:
        """Grow or shrink both elements and names to ``size``."""
        del self.elements[size:]
        del self.names[size:]
        self.elements.extend(self._new_element() for _ in range(size - len(self.elements)))
        self.names.extend("" for _ in range(size - len(self.names)))

    def clear(self) -> None:
        """Remove all elements and names."""
        self.elements.clear()
        self.names.clear()

    def _position(self, key: Union[int, str]) -> int:
        if isinstance(key, str):
            return self.index_of(key)
        if not 0 <= key < len(self.elements):
            raise IndexError(f"element index {key} out of range")
        return key

    def _element_at(self, index: int) -> T:
        if not 0 <= index < len(self.elements):
            raise IndexError(f"element index {index} out of range")
        return self.elements[index]

    def __getitem__(self, key: Union[int, str]) -> T:
        return self.elements[self._position(key)]

    def __setitem__(self, key: Union[int, str], value: T) -> None:
        self.elements[self._position(key)] = value

    def __len__(self) -> int:
        return len(self.elements)

    def __iter__(self) -> Iterator[T]:
        return iter(self.elements)


@dataclass
class Joints(NamedVector[JointState]):
    """State readings or commands for a set of joints, with a timestamp."""

    time: float = 0.0

    def _new_element(self) -> JointState:
        return JointState()

    @classmethod
    def _build(
        cls, attribute: str, values: Iterable[float], names: Optional[Sequence[str]]
    ) -> Joints:
        elements = [JointState(**{attribute: value}) for value in values]
        if names is None:
            return cls(elements=elements)
        if len(names) != len(elements):
            raise ValueError("the values and names vectors do not match in size")
        return cls(names=list(names), elements=elements)

    @classmethod
    def positions(cls, values: Iterable[float], names: Optional[Sequence[str]] = None) -> Joints:
        return cls._build("position", values, names)

    @classmethod
    def speeds(cls, values: Iterable[float], names: Optional[Sequence[str]] = None) -> Joints:
        return cls._build("speed", values, names)

    @classmethod
    def efforts(cls, values: Iterable[float], names: Optional[Sequence[str]] = None) -> Joints:
        return cls._build("effort", values, names)

    @classmethod
    def raws(cls, values: Iterable[float], names: Optional[Sequence[str]] = None) -> Joints:
        return cls._build("raw", values, names)

    @classmethod
    def accelerations(
        cls, values: Iterable[float], names: Optional[Sequence[str]] = None
    ) -> Joints:
        return cls._build("acceleration", values, names)