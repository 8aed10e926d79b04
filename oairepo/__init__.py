"""
oairepo - OAI-PMH repository core: value objects, records and request validation.

Quick usage:
    >>> import oairepo
    >>> result = oairepo.validate_request('verb=ListRecords&metadataPrefix=oai_dc')
    >>> result.ok
    True

Full usage:
    >>> from oairepo import OAIApplication, RepositoryConfig
    >>> config = RepositoryConfig('https://repo.example.org/oai', ['admin@example.org'])
    >>> app = OAIApplication(config)
    >>> xml = app.run('verb=Identify')
"""

from typing import Iterable, List, Optional

from .values import (
    AnyUri,
    Email,
    MetadataPrefix,
    MetadataRootTag,
    NamespacePrefix,
    RecordIdentifier,
    SetSpec,
)
from .datestamp import Granularity, UTCdatetime
from .metadata import (
    OAI_DC,
    Description,
    MetadataFormat,
    MetadataFormatRegistry,
    MetadataNamespace,
    MetadataNamespaceCollection,
)
from .record import Record, RecordHeader, Set
from .query import ParsedQuery
from .request import ErrorAccumulator, RequestDTO, RequestValidator, ValidationResult
from .renderer import OAIRenderer
from .handlers import InMemoryRepository, OAIRequestHandler
from .application import OAIApplication
from .config import RepositoryConfig
from .log import configure_library_defaults
from .exceptions import (
    OAIError,
    ValidationError,
    EmptyCollectionError,
    DuplicateEntryError,
    InvariantViolation,
    OAIProtocolError,
    AggregatedProtocolError,
    BadArgumentError,
    BadVerbError,
    BadResumptionTokenError,
    CannotDisseminateFormatError,
    IdDoesNotExistError,
    NoRecordsMatchError,
    NoMetadataFormatsError,
    NoSetHierarchyError,
)

__version__ = '0.1.0'

configure_library_defaults()

__all__ = [
    # Convenience functions
    'validate_request',
    'respond',

    # Lexical values
    'AnyUri',
    'Email',
    'MetadataPrefix',
    'MetadataRootTag',
    'NamespacePrefix',
    'RecordIdentifier',
    'SetSpec',
    'Granularity',
    'UTCdatetime',

    # Metadata formats
    'OAI_DC',
    'Description',
    'MetadataFormat',
    'MetadataFormatRegistry',
    'MetadataNamespace',
    'MetadataNamespaceCollection',

    # Records
    'Record',
    'RecordHeader',
    'Set',

    # Request pipeline
    'ParsedQuery',
    'ErrorAccumulator',
    'RequestDTO',
    'RequestValidator',
    'ValidationResult',

    # Responses
    'OAIRenderer',
    'InMemoryRepository',
    'OAIRequestHandler',
    'OAIApplication',
    'RepositoryConfig',

    # Exceptions
    'OAIError',
    'ValidationError',
    'EmptyCollectionError',
    'DuplicateEntryError',
    'InvariantViolation',
    'OAIProtocolError',
    'AggregatedProtocolError',
    'BadArgumentError',
    'BadVerbError',
    'BadResumptionTokenError',
    'CannotDisseminateFormatError',
    'IdDoesNotExistError',
    'NoRecordsMatchError',
    'NoMetadataFormatsError',
    'NoSetHierarchyError',
]


# ==================== Convenience Functions ====================

def validate_request(query_string: str) -> ValidationResult:
    """
    Validate a raw OAI-PMH query string with the standard rules.

    Args:
        query_string: Raw query, e.g. 'verb=Identify'

    Returns:
        ValidationResult holding the RequestDTO or every error found

    Example:
        >>> import oairepo
        >>> result = oairepo.validate_request('verb=Foo&bogus=1')
        >>> result.errors.codes()
        ['badVerb', 'badArgument']
    """
    return RequestValidator().validate_query(query_string)


def respond(
    query_string: str,
    base_url: str,
    admin_emails: List[str],
    records: Iterable[Record] = (),
    sets: Iterable[Set] = (),
    formats: Optional[MetadataFormatRegistry] = None,
    **kwargs
) -> bytes:
    """
    Answer one OAI-PMH request from in-memory records.

    Args:
        query_string: Raw query, e.g. 'verb=ListRecords&metadataPrefix=oai_dc'
        base_url: Repository base URL
        admin_emails: Administrator addresses announced by Identify
        records: Records to serve
        sets: Sets to serve
        formats: Metadata formats (default: oai_dc only)
        **kwargs: Additional arguments passed to RepositoryConfig

    Returns:
        Serialized OAI-PMH XML document

    Example:
        >>> import oairepo
        >>> xml = oairepo.respond(
        ...     'verb=Identify', 'https://repo.example.org/oai', ['admin@example.org'])
    """
    config = RepositoryConfig(base_url, admin_emails, **kwargs)
    repository = InMemoryRepository(records, sets, formats)
    return OAIApplication(config, repository).run(query_string)
