"""
Verb handlers answering validated OAI-PMH requests.

Records and sets live in memory; every record can be disseminated in
every registered metadata format. List responses are never split, so no
resumption token is ever issued.
"""

from datetime import timedelta
from typing import Callable, Dict, Iterable, List, Optional, Tuple

import structlog
from lxml import etree

from .config import RepositoryConfig
from .datestamp import Granularity, UTCdatetime
from .exceptions import (
    BAD_ARGUMENT,
    BadResumptionTokenError,
    BadVerbError,
    DuplicateEntryError,
    IdDoesNotExistError,
    NoMetadataFormatsError,
    NoRecordsMatchError,
    NoSetHierarchyError,
    ValidationError,
)
from .metadata import OAI_DC, MetadataFormat, MetadataFormatRegistry, check_element_name
from .record import Record, RecordHeader, Set
from .renderer import XSI_NS, XSI_SCHEMA_LOCATION, oai_element, oai_subelement, xml_safe
from .request import ErrorAccumulator, RequestDTO
from .values import RecordIdentifier, SetSpec

logger = structlog.get_logger('oairepo.handlers')

PROTOCOL_VERSION = '2.0'

# verb -> (required arguments, optional arguments)
VERB_ARGUMENTS: Dict[str, Tuple[Tuple[str, ...], Tuple[str, ...]]] = {
    'Identify': ((), ()),
    'ListMetadataFormats': ((), ('identifier',)),
    'ListSets': ((), ()),
    'GetRecord': (('identifier', 'metadataPrefix'), ()),
    'ListIdentifiers': (('metadataPrefix',), ('from', 'until', 'set')),
    'ListRecords': (('metadataPrefix',), ('from', 'until', 'set')),
}


class InMemoryRepository:
    """
    Records, sets and metadata formats held in memory.

    Example:
        >>> repo = InMemoryRepository()
        >>> repo.add_record(Record(RecordHeader(
        ...     RecordIdentifier('oai:example.org:1'),
        ...     UTCdatetime.from_string('2024-01-01'))))
        >>> len(repo)
        1
    """

    def __init__(
        self,
        records: Iterable[Record] = (),
        sets: Iterable[Set] = (),
        formats: Optional[MetadataFormatRegistry] = None,
    ) -> None:
        self.formats = formats if formats is not None else MetadataFormatRegistry([OAI_DC])
        self._records: Dict[RecordIdentifier, Record] = {}
        self._sets: Dict[SetSpec, Set] = {}
        for record in records:
            self.add_record(record)
        for set_ in sets:
            self.add_set(set_)

    def add_record(self, record: Record) -> None:
        """
        Store a record, replacing any record with the same identifier.

        Raises:
            ValidationError: If a metadata key is not a valid element name
        """
        if not isinstance(record, Record):
            raise TypeError(f"record must be Record, got {type(record).__name__}")
        for key in (record.metadata or {}):
            check_element_name(key)
        self._records[record.identifier] = record

    def add_set(self, set_: Set) -> None:
        """
        Store a set.

        Raises:
            DuplicateEntryError: If a set with the same spec exists
        """
        if not isinstance(set_, Set):
            raise TypeError(f"set must be Set, got {type(set_).__name__}")
        if set_.spec in self._sets:
            raise DuplicateEntryError('set_spec', set_.spec.value)
        self._sets[set_.spec] = set_

    def get_record(self, identifier: RecordIdentifier) -> Record:
        """
        Raises:
            IdDoesNotExistError: If no record has the identifier
        """
        try:
            return self._records[identifier]
        except KeyError:
            raise IdDoesNotExistError(
                f'The identifier "{identifier}" is unknown in this repository'
            ) from None

    def find_records(
        self,
        from_date: Optional[UTCdatetime] = None,
        until_date: Optional[UTCdatetime] = None,
        set_spec: Optional[SetSpec] = None,
    ) -> List[Record]:
        """
        Records matching a selective-harvesting request, in insertion order.

        Bounds are inclusive; a day-granularity ``until`` covers the whole day.
        """
        lower = from_date.datetime if from_date else None
        upper = None
        if until_date:
            upper = until_date.datetime
            if until_date.granularity is Granularity.DATE:
                upper += timedelta(days=1, seconds=-1)

        result = []
        for record in self._records.values():
            stamp = record.header.datestamp.datetime
            if lower is not None and stamp < lower:
                continue
            if upper is not None and stamp > upper:
                continue
            if set_spec is not None and not record.header.in_set_hierarchy(set_spec):
                continue
            result.append(record)
        return result

    @property
    def sets(self) -> List[Set]:
        return list(self._sets.values())

    def earliest_datestamp(self) -> Optional[UTCdatetime]:
        if not self._records:
            return None
        return min(record.header.datestamp for record in self._records.values())

    def __len__(self) -> int:
        return len(self._records)


class OAIRequestHandler:
    """
    Dispatches a validated request to the handler for its verb.

    Each handler returns the verb element of the response (e.g.
    <ListSets>) or raises a protocol error.
    """

    def __init__(self, repository: InMemoryRepository, config: RepositoryConfig) -> None:
        self.repository = repository
        self.config = config
        self._handlers: Dict[str, Callable[[RequestDTO], etree._Element]] = {
            'Identify': self.identify,
            'ListMetadataFormats': self.list_metadata_formats,
            'ListSets': self.list_sets,
            'GetRecord': self.get_record,
            'ListIdentifiers': self.list_identifiers,
            'ListRecords': self.list_records,
        }

    def handle(self, request: RequestDTO) -> etree._Element:
        """
        Answer a validated request.

        Raises:
            BadVerbError: If no handler exists for the verb
            AggregatedProtocolError: If the arguments do not fit the verb
            OAIProtocolError: For any other protocol condition
        """
        handler = self._handlers.get(request.verb)
        if handler is None:
            raise BadVerbError(f'The verb "{request.verb}" is not supported by this repository')
        self._check_arguments(request)
        logger.debug('request.dispatch', verb=request.verb)
        return handler(request)

    # ==================== Argument checks ====================

    def _check_arguments(self, request: RequestDTO) -> None:
        """Collect every argument problem for the verb, then raise them together."""
        errors = ErrorAccumulator()
        required, optional = VERB_ARGUMENTS[request.verb]
        arguments = request.arguments

        if 'resumptionToken' in arguments:
            for argument in arguments:
                if argument != 'resumptionToken':
                    errors.add(
                        BAD_ARGUMENT,
                        f'Argument "{argument}" cannot be combined with resumptionToken'
                    )
            # no list is ever split, so no token can be valid
            errors.add_error(BadResumptionTokenError(
                f'The resumptionToken "{request.resumption_token}" is invalid or expired'
            ))
            errors.raise_for_errors()

        for argument in arguments:
            if argument not in required and argument not in optional:
                errors.add(
                    BAD_ARGUMENT,
                    f'Argument "{argument}" is not allowed for the verb {request.verb}'
                )
        for argument in required:
            if argument not in arguments:
                errors.add(
                    BAD_ARGUMENT,
                    f'Required argument "{argument}" is missing for the verb {request.verb}'
                )

        if request.identifier is not None:
            self._collect(errors, RecordIdentifier, request.identifier)
        if request.set_spec is not None:
            self._collect(errors, SetSpec, request.set_spec)
        self._check_date_range(request, errors)

        errors.raise_for_errors()

    @staticmethod
    def _collect(errors: ErrorAccumulator, factory: Callable, value: str) -> None:
        try:
            factory(value)
        except ValidationError as e:
            errors.add(BAD_ARGUMENT, e.message)

    def _check_date_range(self, request: RequestDTO, errors: ErrorAccumulator) -> None:
        """
        from and until must be valid datestamps of the same granularity,
        no finer than the repository's, with from <= until.
        """
        stamps = {}
        for argument, value in (('from', request.from_date), ('until', request.until_date)):
            if value is None:
                continue
            try:
                stamp = UTCdatetime.from_string(value)
            except ValidationError:
                errors.add(
                    BAD_ARGUMENT,
                    f'Invalid {argument} date "{value}". Use YYYY-MM-DD or YYYY-MM-DDThh:mm:ssZ'
                )
                continue
            if (stamp.granularity is Granularity.DATE_TIME_SECOND
                    and self.config.granularity is Granularity.DATE):
                errors.add(
                    BAD_ARGUMENT,
                    f'The {argument} date "{value}" is finer than the repository granularity'
                )
            stamps[argument] = stamp

        if len(stamps) == 2:
            if stamps['from'].granularity is not stamps['until'].granularity:
                errors.add(BAD_ARGUMENT, 'from and until dates must use the same granularity')
            elif stamps['from'] > stamps['until']:
                errors.add(
                    BAD_ARGUMENT,
                    f'from date ({request.from_date}) must be <= until date ({request.until_date})'
                )

    # ==================== Verbs ====================

    def identify(self, request: RequestDTO) -> etree._Element:
        body = oai_element('Identify')
        oai_subelement(body, 'repositoryName', self.config.repository_name)
        oai_subelement(body, 'baseURL', self.config.base_url)
        oai_subelement(body, 'protocolVersion', PROTOCOL_VERSION)
        for email in self.config.admin_emails:
            oai_subelement(body, 'adminEmail', email)
        oai_subelement(body, 'earliestDatestamp', self._earliest_datestamp())
        oai_subelement(body, 'deletedRecord', self.config.deleted_record)
        oai_subelement(body, 'granularity', self.config.granularity.value)
        for description in self.config.descriptions:
            container = oai_subelement(body, 'description')
            self._format_payload(container, description.format, description.payload)
        return body

    def _earliest_datestamp(self) -> str:
        earliest = self.repository.earliest_datestamp()
        if earliest is None:
            earliest = UTCdatetime.from_string(self.config.earliest_datestamp)
        return self._datestamp(earliest)

    def _datestamp(self, stamp: UTCdatetime) -> str:
        """A datestamp expressed in the repository granularity."""
        return stamp.datetime.strftime(self.config.granularity.strptime_format)

    def list_metadata_formats(self, request: RequestDTO) -> etree._Element:
        if request.identifier is not None:
            self.repository.get_record(RecordIdentifier(request.identifier))

        formats = list(self.repository.formats)
        if not formats:
            raise NoMetadataFormatsError('There are no metadata formats available')

        body = oai_element('ListMetadataFormats')
        for fmt in formats:
            elem = oai_subelement(body, 'metadataFormat')
            oai_subelement(elem, 'metadataPrefix', fmt.prefix.value)
            oai_subelement(elem, 'schema', fmt.schema.value)
            oai_subelement(elem, 'metadataNamespace', fmt.root_namespace.uri.value)
        return body

    def list_sets(self, request: RequestDTO) -> etree._Element:
        sets = self.repository.sets
        if not sets:
            raise NoSetHierarchyError('This repository does not support sets')

        body = oai_element('ListSets')
        for set_ in sets:
            elem = oai_subelement(body, 'set')
            oai_subelement(elem, 'setSpec', set_.spec.value)
            oai_subelement(elem, 'setName', xml_safe(set_.name))
            if set_.description is not None:
                container = oai_subelement(elem, 'setDescription')
                self._format_payload(container, OAI_DC, {'dc:description': set_.description})
        return body

    def get_record(self, request: RequestDTO) -> etree._Element:
        fmt = self.repository.formats.get(request.metadata_prefix)
        record = self.repository.get_record(RecordIdentifier(request.identifier))

        body = oai_element('GetRecord')
        self._record_element(body, record, fmt)
        return body

    def list_identifiers(self, request: RequestDTO) -> etree._Element:
        body = oai_element('ListIdentifiers')
        for record in self._select(request):
            self._header_element(body, record.header)
        return body

    def list_records(self, request: RequestDTO) -> etree._Element:
        fmt = self.repository.formats.get(request.metadata_prefix)
        body = oai_element('ListRecords')
        for record in self._select(request):
            self._record_element(body, record, fmt)
        return body

    def _select(self, request: RequestDTO) -> List[Record]:
        """Records for ListIdentifiers/ListRecords; arguments are already checked."""
        self.repository.formats.get(request.metadata_prefix)

        set_spec = None
        if request.set_spec is not None:
            if not self.repository.sets:
                raise NoSetHierarchyError('This repository does not support sets')
            set_spec = SetSpec(request.set_spec)

        records = self.repository.find_records(
            from_date=UTCdatetime.from_string(request.from_date) if request.from_date else None,
            until_date=UTCdatetime.from_string(request.until_date) if request.until_date else None,
            set_spec=set_spec,
        )
        if not records:
            raise NoRecordsMatchError(
                'The combination of the values of the from, until, set and '
                'metadataPrefix arguments results in an empty list'
            )
        return records

    # ==================== Elements ====================

    def _header_element(self, parent, header: RecordHeader) -> etree._Element:
        elem = oai_subelement(parent, 'header')
        if header.deleted:
            elem.set('status', 'deleted')
        oai_subelement(elem, 'identifier', xml_safe(header.identifier.value))
        oai_subelement(elem, 'datestamp', self._datestamp(header.datestamp))
        for spec in header.set_specs:
            oai_subelement(elem, 'setSpec', spec.value)
        return elem

    def _record_element(self, parent, record: Record, fmt: MetadataFormat) -> etree._Element:
        elem = oai_subelement(parent, 'record')
        self._header_element(elem, record.header)
        if record.metadata is not None:
            container = oai_subelement(elem, 'metadata')
            self._format_payload(container, fmt, record.metadata)
        return elem

    @staticmethod
    def _format_payload(parent, fmt: MetadataFormat, payload) -> etree._Element:
        """
        Render a key -> value payload under the format's root tag.

        Keys are 'prefix:local' or 'local'; a list value gives one element
        per item. Prefixes the format does not declare fall back to the
        root tag's namespace.
        """
        root_uri = fmt.root_namespace.uri.value
        nsmap = fmt.namespaces.to_nsmap()
        nsmap.setdefault('xsi', XSI_NS)

        root = etree.SubElement(parent, f'{{{root_uri}}}{fmt.root_tag.local_name}', nsmap=nsmap)
        root.set(XSI_SCHEMA_LOCATION, f'{root_uri} {fmt.schema.value}')

        for key, value in payload.items():
            prefix, _, local = key.rpartition(':')
            namespace = fmt.namespaces.find(prefix) if prefix else None
            uri = namespace.uri.value if namespace else root_uri
            items = value if isinstance(value, (list, tuple)) else [value]
            for item in items:
                etree.SubElement(root, f'{{{uri}}}{local}').text = xml_safe(str(item))
        return root
