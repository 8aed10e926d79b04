"""
Metadata format descriptors.

A metadata format is declared by its metadataPrefix, the XML namespaces
its records use, the schema they validate against and the root element
they start with.

Example:
    >>> fmt = MetadataFormat(
    ...     prefix=MetadataPrefix('oai_dc'),
    ...     namespaces=MetadataNamespaceCollection(
    ...         MetadataNamespace(NamespacePrefix('oai_dc'),
    ...                           AnyUri('http://www.openarchives.org/OAI/2.0/oai_dc/')),
    ...     ),
    ...     schema=AnyUri('http://www.openarchives.org/OAI/2.0/oai_dc.xsd'),
    ...     root_tag=MetadataRootTag('oai_dc:dc'),
    ... )
    >>> registry = MetadataFormatRegistry([fmt])
    >>> registry.get('oai_dc') == fmt
    True
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, Iterator, Mapping, Optional, Tuple, Union

from .exceptions import (
    CannotDisseminateFormatError,
    DuplicateEntryError,
    EmptyCollectionError,
    ValidationError,
)
from .values import AnyUri, MetadataPrefix, MetadataRootTag, NamespacePrefix


def _require(value, expected: type, name: str) -> None:
    if not isinstance(value, expected):
        raise TypeError(f"{name} must be {expected.__name__}, got {type(value).__name__}")


@dataclass(frozen=True)
class MetadataNamespace:
    """
    A namespace used by a metadata format.

    Attributes:
        prefix: Namespace prefix (e.g., 'dc')
        uri: Namespace URI (e.g., 'http://purl.org/dc/elements/1.1/')
    """
    prefix: NamespacePrefix
    uri: AnyUri

    def __post_init__(self) -> None:
        _require(self.prefix, NamespacePrefix, 'prefix')
        _require(self.uri, AnyUri, 'uri')

    def as_pair(self) -> Tuple[str, str]:
        return self.prefix.value, self.uri.value

    def __str__(self) -> str:
        return f"{self.prefix}={self.uri}"


class MetadataNamespaceCollection:
    """
    Non-empty, ordered set of namespaces.

    No two namespaces may share a prefix or a URI. Iteration follows
    insertion order; equality ignores it.
    """

    def __init__(self, *namespaces: Union[MetadataNamespace, Iterable[MetadataNamespace]]) -> None:
        if len(namespaces) == 1 and not isinstance(namespaces[0], MetadataNamespace):
            namespaces = tuple(namespaces[0])

        for namespace in namespaces:
            _require(namespace, MetadataNamespace, 'namespace')
        if not namespaces:
            raise EmptyCollectionError(
                'namespaces', "At least one MetadataNamespace must be provided"
            )

        self._check_unique((ns.prefix.value for ns in namespaces), 'namespace prefix')
        self._check_unique((ns.uri.value for ns in namespaces), 'namespace URI')
        self._namespaces: Tuple[MetadataNamespace, ...] = tuple(namespaces)

    @staticmethod
    def _check_unique(values: Iterable[str], field: str) -> None:
        seen = set()
        for value in values:
            if value in seen:
                raise DuplicateEntryError(field, value)
            seen.add(value)

    def __iter__(self) -> Iterator[MetadataNamespace]:
        return iter(self._namespaces)

    def __len__(self) -> int:
        return len(self._namespaces)

    def __getitem__(self, index: int) -> MetadataNamespace:
        return self._namespaces[index]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MetadataNamespaceCollection):
            return NotImplemented
        return self._pairs() == other._pairs()

    def __hash__(self) -> int:
        return hash(self._pairs())

    def __repr__(self) -> str:
        inner = ', '.join(str(ns) for ns in self._namespaces)
        return f"MetadataNamespaceCollection({inner})"

    def _pairs(self) -> frozenset:
        return frozenset(ns.as_pair() for ns in self._namespaces)

    def find(self, prefix: str) -> Optional[MetadataNamespace]:
        """Namespace declared under ``prefix``, if any."""
        for namespace in self._namespaces:
            if namespace.prefix.value == prefix:
                return namespace
        return None

    def to_nsmap(self) -> Dict[str, str]:
        """Prefix -> URI mapping, as lxml expects for ``nsmap``."""
        return dict(ns.as_pair() for ns in self._namespaces)


@dataclass(frozen=True)
class MetadataFormat:
    """
    Declaration of a metadata format a repository can disseminate.

    Attributes:
        prefix: metadataPrefix used in requests (e.g., 'oai_dc')
        namespaces: Namespaces used inside records of this format
        schema: URL of the XML schema for the format
        root_tag: Root element of a record in this format
    """
    prefix: MetadataPrefix
    namespaces: MetadataNamespaceCollection
    schema: AnyUri
    root_tag: MetadataRootTag

    def __post_init__(self) -> None:
        _require(self.prefix, MetadataPrefix, 'prefix')
        _require(self.namespaces, MetadataNamespaceCollection, 'namespaces')
        _require(self.schema, AnyUri, 'schema')
        _require(self.root_tag, MetadataRootTag, 'root_tag')

    @property
    def root_namespace(self) -> MetadataNamespace:
        """Namespace of the root tag (the first namespace when the tag is unqualified)."""
        return self.namespaces.find(self.root_tag.prefix) or self.namespaces[0]


class MetadataFormatRegistry:
    """Metadata formats of a repository, looked up by metadataPrefix."""

    def __init__(self, formats: Iterable[MetadataFormat] = ()) -> None:
        self._formats: Dict[str, MetadataFormat] = {}
        for fmt in formats:
            self.register(fmt)

    def register(self, fmt: MetadataFormat) -> None:
        """
        Add a format.

        Raises:
            DuplicateEntryError: If the prefix is already registered
        """
        _require(fmt, MetadataFormat, 'format')
        if fmt.prefix.value in self._formats:
            raise DuplicateEntryError('metadata_prefix', fmt.prefix.value)
        self._formats[fmt.prefix.value] = fmt

    def get(self, prefix: str) -> MetadataFormat:
        """
        Get the format for a metadataPrefix.

        Raises:
            CannotDisseminateFormatError: If no format uses the prefix
        """
        try:
            return self._formats[str(prefix)]
        except KeyError:
            raise CannotDisseminateFormatError(
                f'The metadata format "{prefix}" is not supported by this repository'
            ) from None

    def __contains__(self, prefix: object) -> bool:
        return str(prefix) in self._formats

    def __iter__(self) -> Iterator[MetadataFormat]:
        return iter(self._formats.values())

    def __len__(self) -> int:
        return len(self._formats)


# Dublin Core, the format every OAI-PMH repository must support
OAI_DC = MetadataFormat(
    prefix=MetadataPrefix('oai_dc'),
    namespaces=MetadataNamespaceCollection(
        MetadataNamespace(
            NamespacePrefix('oai_dc'),
            AnyUri('http://www.openarchives.org/OAI/2.0/oai_dc/')
        ),
        MetadataNamespace(
            NamespacePrefix('dc'),
            AnyUri('http://purl.org/dc/elements/1.1/')
        ),
    ),
    schema=AnyUri('http://www.openarchives.org/OAI/2.0/oai_dc.xsd'),
    root_tag=MetadataRootTag('oai_dc:dc'),
)


def check_element_name(key: str) -> None:
    """
    Check a payload key is a 'local' or 'prefix:local' XML name.

    Raises:
        ValidationError: If the key is not a valid element name
    """
    prefix, _, local = key.rpartition(':')
    try:
        if prefix:
            NamespacePrefix(prefix)
        NamespacePrefix(local)
    except ValidationError:
        raise ValidationError(
            'metadata key', key, f"Metadata key {key!r} is not a valid element name"
        ) from None


@dataclass(frozen=True)
class Description:
    """
    A container of repository-level information rendered inside Identify.

    The payload is rendered under the format's root tag like a record's
    metadata: keys are 'prefix:local' or 'local', list values repeat.

    Example:
        >>> about = Description(OAI_DC, {'dc:description': 'Theses and papers'})
    """
    format: MetadataFormat
    payload: Mapping[str, Any]

    def __post_init__(self) -> None:
        _require(self.format, MetadataFormat, 'format')
        if not isinstance(self.payload, Mapping):
            raise TypeError(f"payload must be a mapping, got {type(self.payload).__name__}")
        for key in self.payload:
            check_element_name(key)
