"""
Record, RecordHeader and Set entities.
"""

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Tuple

from .datestamp import UTCdatetime
from .exceptions import InvariantViolation
from .values import RecordIdentifier, SetSpec


@dataclass(frozen=True)
class RecordHeader:
    """
    Header of an OAI-PMH record.

    Attributes:
        identifier: Unique identifier of the item
        datestamp: Date of creation, modification or deletion of the record
        deleted: True when the record has status="deleted"
        set_specs: Sets the record belongs to, in declaration order
    """
    identifier: RecordIdentifier
    datestamp: UTCdatetime
    deleted: bool = False
    set_specs: Tuple[SetSpec, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if not isinstance(self.identifier, RecordIdentifier):
            raise TypeError(
                f"identifier must be RecordIdentifier, got {type(self.identifier).__name__}"
            )
        if not isinstance(self.datestamp, UTCdatetime):
            raise TypeError(
                f"datestamp must be UTCdatetime, got {type(self.datestamp).__name__}"
            )
        set_specs = tuple(self.set_specs)
        for spec in set_specs:
            if not isinstance(spec, SetSpec):
                raise TypeError(f"set_specs must contain SetSpec, got {type(spec).__name__}")
        object.__setattr__(self, 'deleted', bool(self.deleted))
        object.__setattr__(self, 'set_specs', set_specs)

    def belongs_to_set(self, spec: SetSpec) -> bool:
        """True if one of the header's set specs equals ``spec``."""
        return any(own == spec for own in self.set_specs)

    def in_set_hierarchy(self, spec: SetSpec) -> bool:
        """True if the record is in ``spec`` or in one of its subsets."""
        return any(spec.contains(own) for own in self.set_specs)


@dataclass(frozen=True, eq=False)
class Record:
    """
    A single OAI-PMH record: header plus an optional metadata payload.

    A deleted record never carries metadata. Two records are the same
    record when their identifiers are equal, whatever their payload.

    Example:
        >>> header = RecordHeader(RecordIdentifier('oai:example.org:1'),
        ...                       UTCdatetime.from_string('2024-01-01'))
        >>> Record(header, {'dc:title': 'Title'}).metadata
        {'dc:title': 'Title'}
    """
    header: RecordHeader
    metadata: Optional[Mapping[str, Any]] = None

    def __post_init__(self) -> None:
        if not isinstance(self.header, RecordHeader):
            raise TypeError(f"header must be RecordHeader, got {type(self.header).__name__}")
        if self.header.deleted and self.metadata is not None:
            raise InvariantViolation("deleted record cannot carry metadata")

    @property
    def identifier(self) -> RecordIdentifier:
        return self.header.identifier

    @property
    def deleted(self) -> bool:
        return self.header.deleted

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Record):
            return NotImplemented
        return self.header.identifier == other.header.identifier

    def __hash__(self) -> int:
        return hash(self.header.identifier)


@dataclass(frozen=True, eq=False)
class Set:
    """
    A set used for selective harvesting.

    Attributes:
        spec: Unique set path (e.g., 'math:algebra')
        name: Human readable name
        description: Optional free-text description; '' is stored as None
    """
    spec: SetSpec
    name: str
    description: Optional[str] = None

    def __post_init__(self) -> None:
        if not isinstance(self.spec, SetSpec):
            raise TypeError(f"spec must be SetSpec, got {type(self.spec).__name__}")
        if not self.description:
            object.__setattr__(self, 'description', None)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Set):
            return NotImplemented
        return self.spec == other.spec

    def __hash__(self) -> int:
        return hash(self.spec)
