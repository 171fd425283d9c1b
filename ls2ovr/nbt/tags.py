"""The tagged value tree : a closed set of tag classes mirroring the NBT
format, every tag knows its own TagType"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import (
    ClassVar,
    Dict,
    Iterator,
    Mapping,
    Optional,
    Sequence,
    Tuple,
    Type,
    TypeVar,
    Union,
)

from ls2ovr.errors import FieldInvalidValue, MissingRequiredField


class TagType(int, Enum):
    END = 0
    BYTE = 1
    SHORT = 2
    INT = 3
    LONG = 4
    FLOAT = 5
    DOUBLE = 6
    BYTE_ARRAY = 7
    STRING = 8
    LIST = 9
    COMPOUND = 10
    INT_ARRAY = 11
    LONG_ARRAY = 12


def check_int_range(value: int, bits: int, signed: bool = True) -> None:
    if signed:
        low, high = -(2 ** (bits - 1)), 2 ** (bits - 1)
    else:
        low, high = 0, 2 ** bits
    if not low <= value < high:
        raise ValueError(f"{value} does not fit in a {bits} bit integer tag")


@dataclass(frozen=True)
class Byte:
    """Unsigned, like the reference readers of the format treat it"""

    value: int
    tag_type: ClassVar[TagType] = TagType.BYTE

    def __post_init__(self) -> None:
        check_int_range(self.value, 8, signed=False)


@dataclass(frozen=True)
class Short:
    value: int
    tag_type: ClassVar[TagType] = TagType.SHORT

    def __post_init__(self) -> None:
        check_int_range(self.value, 16)


@dataclass(frozen=True)
class Int:
    value: int
    tag_type: ClassVar[TagType] = TagType.INT

    def __post_init__(self) -> None:
        check_int_range(self.value, 32)


@dataclass(frozen=True)
class Long:
    value: int
    tag_type: ClassVar[TagType] = TagType.LONG

    def __post_init__(self) -> None:
        check_int_range(self.value, 64)


@dataclass(frozen=True)
class Float:
    value: float
    tag_type: ClassVar[TagType] = TagType.FLOAT


@dataclass(frozen=True)
class Double:
    value: float
    tag_type: ClassVar[TagType] = TagType.DOUBLE


@dataclass(frozen=True)
class ByteArray:
    value: bytes
    tag_type: ClassVar[TagType] = TagType.BYTE_ARRAY


@dataclass(frozen=True)
class String:
    value: str
    tag_type: ClassVar[TagType] = TagType.STRING


@dataclass(frozen=True)
class IntArray:
    value: Tuple[int, ...]
    tag_type: ClassVar[TagType] = TagType.INT_ARRAY

    def __post_init__(self) -> None:
        object.__setattr__(self, "value", tuple(self.value))
        for v in self.value:
            check_int_range(v, 32)


@dataclass(frozen=True)
class LongArray:
    value: Tuple[int, ...]
    tag_type: ClassVar[TagType] = TagType.LONG_ARRAY

    def __post_init__(self) -> None:
        object.__setattr__(self, "value", tuple(self.value))
        for v in self.value:
            check_int_range(v, 64)


@dataclass
class List:
    """Homogeneous list, empty lists may use END as their item type"""

    item_type: TagType
    items: Sequence[Tag] = field(default_factory=list)
    tag_type: ClassVar[TagType] = TagType.LIST

    def __post_init__(self) -> None:
        self.item_type = TagType(self.item_type)
        self.items = list(self.items)
        if self.item_type == TagType.END and self.items:
            raise ValueError("Only empty lists can have END as their item type")
        for item in self.items:
            if item.tag_type != self.item_type:
                raise ValueError(
                    f"{item.tag_type.name} tag found in a list of "
                    f"{self.item_type.name} tags"
                )

    @classmethod
    def of(cls, item_type: TagType, items: Sequence[Tag]) -> List:
        return cls(item_type=item_type if items else TagType.END, items=items)

    def __iter__(self) -> Iterator[Tag]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)


T = TypeVar("T", bound="Tag")


@dataclass
class Compound:
    entries: Dict[str, Tag] = field(default_factory=dict)
    tag_type: ClassVar[TagType] = TagType.COMPOUND

    def __post_init__(self) -> None:
        self.entries = dict(self.entries)

    @classmethod
    def from_optional_entries(cls, entries: Mapping[str, Optional[Tag]]) -> Compound:
        """Build a compound, leaving out the entries set to None"""
        return cls({k: v for k, v in entries.items() if v is not None})

    def __getitem__(self, name: str) -> Tag:
        return self.entries[name]

    def __setitem__(self, name: str, tag: Tag) -> None:
        self.entries[name] = tag

    def __contains__(self, name: object) -> bool:
        return name in self.entries

    def __iter__(self) -> Iterator[str]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def require(self, name: str, tag_class: Type[T]) -> T:
        """Get a tag that must be there and must be of the given class"""
        try:
            tag = self.entries[name]
        except KeyError:
            raise MissingRequiredField(name)

        if not isinstance(tag, tag_class):
            raise FieldInvalidValue(name, "invalid type")

        return tag

    def require_string(self, name: str) -> str:
        value = self.require(name, String).value
        if not value:
            raise FieldInvalidValue(name, "empty")

        return value

    def optional(self, name: str, tag_class: Type[T]) -> Optional[T]:
        """Missing tags and tags of the wrong type both count as absent"""
        tag = self.entries.get(name)
        if isinstance(tag, tag_class):
            return tag
        else:
            return None


Tag = Union[
    Byte,
    Short,
    Int,
    Long,
    Float,
    Double,
    ByteArray,
    String,
    List,
    Compound,
    IntArray,
    LongArray,
]

TAG_CLASSES: Dict[TagType, Type[Tag]] = {
    cls.tag_type: cls
    for cls in (
        Byte,
        Short,
        Int,
        Long,
        Float,
        Double,
        ByteArray,
        String,
        List,
        Compound,
        IntArray,
        LongArray,
    )
}
