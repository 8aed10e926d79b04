"""
Exceptions raised by the OAI-PMH repository core.

Includes the OAI-PMH error codes as defined by the protocol:
https://www.openarchives.org/OAI/openarchivesprotocol.html#ErrorConditions
"""

from typing import Any, Dict, List, TYPE_CHECKING

if TYPE_CHECKING:
    from .request import ErrorAccumulator


# OAI-PMH 2.0 error codes
BAD_ARGUMENT = 'badArgument'
BAD_RESUMPTION_TOKEN = 'badResumptionToken'
BAD_VERB = 'badVerb'
CANNOT_DISSEMINATE_FORMAT = 'cannotDisseminateFormat'
ID_DOES_NOT_EXIST = 'idDoesNotExist'
NO_RECORDS_MATCH = 'noRecordsMatch'
NO_METADATA_FORMATS = 'noMetadataFormats'
NO_SET_HIERARCHY = 'noSetHierarchy'


class OAIError(Exception):
    """Base class for exceptions raised by the repository core."""


# ==================== Domain Errors ====================

class ValidationError(OAIError, ValueError):
    """
    A value does not satisfy the grammar or constraints of its type.

    Attributes:
        kind: Failure category ('InvalidFormat', 'EmptyCollection', ...)
        field: Name of the validated field
        value: The rejected value
    """

    kind = 'InvalidFormat'

    def __init__(self, field: str, value: Any, message: str = ''):
        self.field = field
        self.value = value
        self.message = message or f"Invalid {field}: {value!r}"
        super().__init__(self.message)


class EmptyCollectionError(ValidationError):
    """A collection that must hold at least one entry was given none."""

    kind = 'EmptyCollection'

    def __init__(self, field: str, message: str = ''):
        super().__init__(field, None, message or f"{field} requires at least one entry")


class DuplicateEntryError(ValidationError):
    """A collection that requires unique entries was given a repeated one."""

    kind = 'DuplicateEntry'

    def __init__(self, field: str, value: Any, message: str = ''):
        super().__init__(field, value, message or f"Duplicate {field} found: {value}")


class InvariantViolation(OAIError, ValueError):
    """An entity was built with fields that contradict each other."""


# ==================== OAI-PMH Protocol Errors ====================

class OAIProtocolError(OAIError):
    """
    Base class for OAI-PMH protocol errors.

    These errors end up in the XML response body as <error> elements,
    not as HTTP status codes.
    """

    def __init__(self, code: str, message: str = ''):
        self.code = code
        self.message = message
        super().__init__(f"[{code}] {message}" if message else code)


class BadArgumentError(OAIProtocolError):
    """
    The request includes illegal arguments, is missing required arguments,
    includes a repeated argument, or values for arguments have an illegal syntax.
    """

    def __init__(self, message: str = ''):
        super().__init__(BAD_ARGUMENT, message)


class BadVerbError(OAIProtocolError):
    """
    Value of the verb argument is not a legal OAI-PMH verb,
    the verb argument is missing, or the verb argument is repeated.
    """

    def __init__(self, message: str = ''):
        super().__init__(BAD_VERB, message)


class BadResumptionTokenError(OAIProtocolError):
    """
    The value of the resumptionToken argument is invalid or expired.
    """

    def __init__(self, message: str = ''):
        super().__init__(BAD_RESUMPTION_TOKEN, message)


class CannotDisseminateFormatError(OAIProtocolError):
    """
    The metadata format identified by the value given for the metadataPrefix
    argument is not supported by the item or by the repository.
    """

    def __init__(self, message: str = ''):
        super().__init__(CANNOT_DISSEMINATE_FORMAT, message)


class IdDoesNotExistError(OAIProtocolError):
    """
    The value of the identifier argument is unknown or illegal in this repository.
    """

    def __init__(self, message: str = ''):
        super().__init__(ID_DOES_NOT_EXIST, message)


class NoRecordsMatchError(OAIProtocolError):
    """
    The combination of the values of the from, until, set and metadataPrefix
    arguments results in an empty list.
    """

    def __init__(self, message: str = ''):
        super().__init__(NO_RECORDS_MATCH, message)


class NoMetadataFormatsError(OAIProtocolError):
    """
    There are no metadata formats available for the specified item.
    """

    def __init__(self, message: str = ''):
        super().__init__(NO_METADATA_FORMATS, message)


class NoSetHierarchyError(OAIProtocolError):
    """
    The repository does not support sets.
    """

    def __init__(self, message: str = ''):
        super().__init__(NO_SET_HIERARCHY, message)


class AggregatedProtocolError(OAIError):
    """
    Every protocol violation found in one request, grouped by error code.

    Raised once, after all checks ran, so that the response can list
    every problem at the same time.
    """

    def __init__(self, errors: 'ErrorAccumulator'):
        self.errors = errors
        summary = ', '.join(
            f"{code} ({len(messages)})" for code, messages in errors.items()
        )
        super().__init__(f"OAI-PMH request rejected: {summary}")

    def to_dict(self) -> Dict[str, List[str]]:
        """Full code -> messages map."""
        return self.errors.to_dict()
