"""
OAI-PMH request validation.

A parsed query goes through every check below; all failures are collected
before anything is reported, because an OAI-PMH error response has to list
every problem with the request at once.

Example:
    >>> result = RequestValidator().validate_query('verb=Foo&bogus=1')
    >>> result.ok
    False
    >>> result.errors.codes()
    ['badVerb', 'badArgument']
    >>> request = RequestValidator().validate_query('verb=Identify').unwrap()
    >>> request.verb
    'Identify'
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Tuple

import requests
import structlog

from .exceptions import (
    AggregatedProtocolError,
    BAD_ARGUMENT,
    BAD_VERB,
    OAIProtocolError,
)
from .query import ParsedQuery

logger = structlog.get_logger('oairepo.request')

ALLOWED_VERBS: Tuple[str, ...] = (
    'Identify',
    'GetRecord',
    'ListIdentifiers',
    'ListMetadataFormats',
    'ListRecords',
    'ListSets',
)

ALLOWED_ARGUMENTS: Tuple[str, ...] = (
    'verb',
    'identifier',
    'metadataPrefix',
    'from',
    'until',
    'set',
    'resumptionToken',
)


class ErrorAccumulator:
    """
    Protocol errors grouped by OAI-PMH error code.

    Codes keep the order in which they were first reported; one code may
    carry several messages.
    """

    def __init__(self) -> None:
        self._errors: Dict[str, List[str]] = {}

    @classmethod
    def from_error(cls, error: OAIProtocolError) -> 'ErrorAccumulator':
        errors = cls()
        errors.add_error(error)
        return errors

    def add(self, code: str, message: str) -> None:
        """Add a message under an error code."""
        self._errors.setdefault(code, []).append(message)

    def add_error(self, error: OAIProtocolError) -> None:
        self.add(error.code, error.message)

    def extend(self, other: 'ErrorAccumulator') -> None:
        """Append every message of another accumulator."""
        for code, messages in other.items():
            for message in messages:
                self.add(code, message)

    def codes(self) -> List[str]:
        return list(self._errors)

    def messages(self, code: str) -> List[str]:
        """Messages reported under a code (empty list if none)."""
        return list(self._errors.get(code, []))

    def items(self) -> Iterator[Tuple[str, List[str]]]:
        for code, messages in self._errors.items():
            yield code, list(messages)

    def to_dict(self) -> Dict[str, List[str]]:
        return {code: list(messages) for code, messages in self._errors.items()}

    def raise_for_errors(self) -> None:
        """
        Raise everything collected so far as one error.

        Raises:
            AggregatedProtocolError: If at least one error was added
        """
        if self:
            raise AggregatedProtocolError(self)

    def __contains__(self, code: object) -> bool:
        return code in self._errors

    def __len__(self) -> int:
        """Total number of messages."""
        return sum(len(messages) for messages in self._errors.values())

    def __bool__(self) -> bool:
        return bool(self._errors)

    def __repr__(self) -> str:
        return f"ErrorAccumulator({self._errors!r})"


@dataclass(frozen=True)
class RequestDTO:
    """
    A validated OAI-PMH request.

    Each argument holds the first value given in the query, or None when
    the argument was not supplied.
    """
    verb: str
    metadata_prefix: Optional[str] = None
    identifier: Optional[str] = None
    from_date: Optional[str] = None
    until_date: Optional[str] = None
    set_spec: Optional[str] = None
    resumption_token: Optional[str] = None

    # OAI-PMH argument name -> attribute
    ARGUMENT_FIELDS = {
        'identifier': 'identifier',
        'metadataPrefix': 'metadata_prefix',
        'from': 'from_date',
        'until': 'until_date',
        'set': 'set_spec',
        'resumptionToken': 'resumption_token',
    }

    @classmethod
    def from_query(cls, query: ParsedQuery) -> 'RequestDTO':
        """Build a request from the first occurrence of each argument."""
        values = {
            attr: query.first(argument)
            for argument, attr in cls.ARGUMENT_FIELDS.items()
        }
        return cls(verb=query.first('verb'), **values)

    @property
    def arguments(self) -> Dict[str, str]:
        """Supplied arguments other than verb, keyed by their OAI-PMH name."""
        result = {}
        for argument, attr in self.ARGUMENT_FIELDS.items():
            value = getattr(self, attr)
            if value is not None:
                result[argument] = value
        return result

    def request_url(self, base_url: str) -> str:
        """
        Full URL of this request against a repository base URL.

        Args:
            base_url: Repository base URL (e.g., 'https://repo.example.org/oai')

        Returns:
            URL with verb and arguments encoded in the query string
        """
        params = {'verb': self.verb}
        params.update(self.arguments)
        return requests.Request('GET', base_url, params=params).prepare().url


@dataclass(frozen=True)
class ValidationResult:
    """
    Outcome of validating one request: a request or the errors, never both.

    Attributes:
        request: The validated request, None when rejected
        errors: Every violation found, empty when accepted
    """
    request: Optional[RequestDTO] = None
    errors: ErrorAccumulator = field(default_factory=ErrorAccumulator)

    @property
    def ok(self) -> bool:
        return self.request is not None and not self.errors

    def unwrap(self) -> RequestDTO:
        """
        Get the validated request.

        Raises:
            AggregatedProtocolError: If the request was rejected
        """
        self.errors.raise_for_errors()
        return self.request


class RequestValidator:
    """
    Checks a parsed query against the OAI-PMH verb and argument rules.

    Every check runs, in order, whatever the previous ones found:

    1. the verb is present
    2. the verb is not repeated
    3. the verb is supported
    4. every argument is legal
    5. no argument other than verb is repeated
    """

    def __init__(
        self,
        allowed_verbs: Iterable[str] = ALLOWED_VERBS,
        allowed_arguments: Iterable[str] = ALLOWED_ARGUMENTS,
    ) -> None:
        self.allowed_verbs = tuple(allowed_verbs)
        self.allowed_arguments = tuple(allowed_arguments)
        self._checks: Tuple[Callable[[ParsedQuery, ErrorAccumulator], None], ...] = (
            self._check_verb_present,
            self._check_verb_not_repeated,
            self._check_verb_supported,
            self._check_arguments_legal,
            self._check_arguments_not_repeated,
        )

    def validate(self, query: ParsedQuery) -> ValidationResult:
        """
        Validate a parsed query.

        Args:
            query: Tokenized query string

        Returns:
            ValidationResult holding either the RequestDTO or all errors
        """
        errors = ErrorAccumulator()
        for check in self._checks:
            check(query, errors)

        if errors:
            logger.info('request.rejected', codes=errors.codes(), errors=len(errors))
            return ValidationResult(errors=errors)

        request = RequestDTO.from_query(query)
        logger.debug('request.validated', verb=request.verb)
        return ValidationResult(request=request)

    def validate_query(self, query_string: str) -> ValidationResult:
        """
        Parse and validate a raw query string.

        A query rejected by the parser (too long) gives a result carrying
        that single error.
        """
        try:
            query = ParsedQuery(query_string)
        except OAIProtocolError as e:
            logger.info('request.rejected', codes=[e.code], errors=1)
            return ValidationResult(errors=ErrorAccumulator.from_error(e))
        return self.validate(query)

    # ==================== Checks ====================

    def _check_verb_present(self, query: ParsedQuery, errors: ErrorAccumulator) -> None:
        if 'verb' not in query:
            errors.add(BAD_VERB, 'The verb argument is missing in the request')

    def _check_verb_not_repeated(self, query: ParsedQuery, errors: ErrorAccumulator) -> None:
        if query.count('verb') > 1:
            errors.add(BAD_VERB, 'The verb argument is repeated in the request')

    def _check_verb_supported(self, query: ParsedQuery, errors: ErrorAccumulator) -> None:
        if 'verb' not in query:
            return
        verb = query.first('verb')
        if verb not in self.allowed_verbs:
            errors.add(
                BAD_VERB,
                f'The value "{verb}" of the verb argument is not supported by the OAI-PMH protocol'
            )

    def _check_arguments_legal(self, query: ParsedQuery, errors: ErrorAccumulator) -> None:
        for key in query.keys():
            if key not in self.allowed_arguments:
                errors.add(BAD_ARGUMENT, f'Illegal argument "{key}" in the request')

    def _check_arguments_not_repeated(self, query: ParsedQuery, errors: ErrorAccumulator) -> None:
        for argument in self.allowed_arguments:
            # verb repetition is a badVerb, reported above
            if argument == 'verb':
                continue
            if query.count(argument) > 1:
                errors.add(BAD_ARGUMENT, f'Argument "{argument}" is repeated in the request')
