"""
Lexical value objects.

Each class wraps one string and validates it against the grammar the
OAI-PMH protocol (or XML Schema) defines for it. Instances are immutable,
compare by value and render as their raw value.

Example:
    >>> prefix = MetadataPrefix('oai_dc')
    >>> str(prefix)
    'oai_dc'
    >>> MetadataPrefix('oai dc')
    Traceback (most recent call last):
        ...
    oairepo.exceptions.ValidationError: Invalid metadata_prefix: 'oai dc'
"""

import re
import threading
from dataclasses import dataclass
from functools import lru_cache
from typing import ClassVar, Pattern, Tuple

from lxml import etree

from .exceptions import ValidationError


@dataclass(frozen=True)
class LexicalValue:
    """Base class for a validated, immutable string."""
    value: str

    field_name: ClassVar[str] = 'value'

    def __post_init__(self) -> None:
        if not isinstance(self.value, str):
            raise ValidationError(
                self.field_name, self.value,
                f"{self.field_name} must be a string, got {type(self.value).__name__}"
            )
        self._validate(self.value)

    def _validate(self, value: str) -> None:
        raise NotImplementedError

    def __str__(self) -> str:
        return self.value


class PatternValue(LexicalValue):
    """A lexical value whose whole text must match ``pattern``."""

    pattern: ClassVar[Pattern[str]]

    def _validate(self, value: str) -> None:
        if self.pattern.fullmatch(value) is None:
            raise ValidationError(self.field_name, value)


# ==================== anyURI ====================

_ANYURI_XSD = b"""<?xml version="1.0" encoding="UTF-8"?>
<xs:schema xmlns:xs="http://www.w3.org/2001/XMLSchema">
  <xs:element name="root">
    <xs:complexType>
      <xs:sequence>
        <xs:element name="uri" type="xs:anyURI"/>
      </xs:sequence>
    </xs:complexType>
  </xs:element>
</xs:schema>
"""

# lxml schemas keep a per-validation error log
_ANYURI_LOCK = threading.Lock()


@lru_cache(maxsize=None)
def _anyuri_schema() -> etree.XMLSchema:
    """Compile the anyURI schema once."""
    return etree.XMLSchema(etree.fromstring(_ANYURI_XSD))


def is_any_uri(value: str) -> bool:
    """
    Check a string against the XML Schema anyURI type.

    The string is placed in a one-element document and validated with
    libxml2's schema validator.

    Args:
        value: Candidate URI

    Returns:
        True if the string is a valid xs:anyURI literal
    """
    root = etree.Element('root')
    uri = etree.SubElement(root, 'uri')
    try:
        uri.text = value
    except ValueError:
        # control characters and NUL cannot appear in XML text
        return False
    with _ANYURI_LOCK:
        return _anyuri_schema().validate(root)


class AnyUri(LexicalValue):
    """A URI conforming to the XML Schema anyURI type."""

    field_name = 'uri'

    def _validate(self, value: str) -> None:
        if not is_any_uri(value):
            raise ValidationError(self.field_name, value, f"Invalid URI: {value!r}")


# ==================== Prefixes and names ====================

class NamespacePrefix(PatternValue):
    """XML namespace prefix, e.g. 'dc' or 'oai_dc'."""

    field_name = 'namespace_prefix'
    pattern = re.compile(r'[A-Za-z_][A-Za-z0-9_.-]*')


class MetadataPrefix(PatternValue):
    """
    OAI-PMH metadataPrefix.

    Any combination of unreserved URI characters:
    letters, digits and ``-_.!~*'()``.
    """

    field_name = 'metadata_prefix'
    pattern = re.compile(r"[A-Za-z0-9\-_.!~*'()]+")


class MetadataRootTag(PatternValue):
    """Root element name of a metadata record, optionally qualified (``oai_dc:dc``)."""

    field_name = 'root_tag'
    pattern = re.compile(r'[A-Za-z_][A-Za-z0-9_.-]*(?::[A-Za-z_][A-Za-z0-9_.-]*)?')

    @property
    def prefix(self) -> str:
        """Namespace prefix of the tag, '' when unqualified."""
        return self.value.rpartition(':')[0]

    @property
    def local_name(self) -> str:
        return self.value.rpartition(':')[2]


class Email(PatternValue):
    """Administrator e-mail address announced by Identify."""

    field_name = 'email'
    pattern = re.compile(
        r"[A-Za-z0-9.!#$%&'*+/=?^_`{|}~-]+"
        r"@[A-Za-z0-9](?:[A-Za-z0-9-]{0,61}[A-Za-z0-9])?"
        r"(?:\.[A-Za-z0-9](?:[A-Za-z0-9-]{0,61}[A-Za-z0-9])?)+"
    )

    def _validate(self, value: str) -> None:
        if self.pattern.fullmatch(value) is None:
            raise ValidationError(self.field_name, value, f"Invalid email address: {value}")


# ==================== Identifiers ====================

class RecordIdentifier(LexicalValue):
    """Unique identifier of an item in the repository. Opaque, but never blank."""

    field_name = 'identifier'

    def _validate(self, value: str) -> None:
        if not value.strip():
            raise ValidationError(self.field_name, value, "Record identifier cannot be empty")


class SetSpec(PatternValue):
    """
    Colon-separated path identifying a set, e.g. ``math:algebra``.

    Each segment holds letters, digits, ``-``, ``_`` and ``.``.
    """

    field_name = 'set_spec'
    pattern = re.compile(r'[A-Za-z0-9\-_.]+(?::[A-Za-z0-9\-_.]+)*')

    @property
    def segments(self) -> Tuple[str, ...]:
        return tuple(self.value.split(':'))

    def contains(self, other: 'SetSpec') -> bool:
        """True if ``other`` is this set or one of its descendants."""
        return other.segments[:len(self.segments)] == self.segments
