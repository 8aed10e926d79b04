"""
Query string tokenizer for incoming OAI-PMH requests.
"""

from typing import List, NamedTuple, Optional, Tuple
from urllib.parse import unquote_plus

import structlog

from .exceptions import BadArgumentError

logger = structlog.get_logger('oairepo.query')

# Longest raw query string accepted before any parsing takes place
MAX_QUERY_LENGTH = 1000


class QueryPair(NamedTuple):
    """One ``key=value`` token of a query string."""
    key: str
    value: str


class ParsedQuery:
    """
    Raw query string split into url-decoded key/value pairs.

    Every pair is preserved in its original order, repeated keys included,
    so that later validation can detect repetitions.

    Example:
        >>> query = ParsedQuery('verb=ListRecords&metadataPrefix=oai_dc')
        >>> query.first('verb')
        'ListRecords'
        >>> query.keys()
        ['verb', 'metadataPrefix']
    """

    def __init__(self, query_string: str) -> None:
        """
        Parse a query string.

        Args:
            query_string: Raw query, e.g. 'verb=Identify'

        Raises:
            BadArgumentError: If the query is longer than MAX_QUERY_LENGTH
        """
        if len(query_string) > MAX_QUERY_LENGTH:
            logger.debug('query.too_long', length=len(query_string))
            raise BadArgumentError('Request is too long')

        self.raw = query_string
        self._pairs: Tuple[QueryPair, ...] = tuple(self._tokenize(query_string))
        logger.debug('query.parsed', pairs=len(self._pairs))

    @staticmethod
    def _tokenize(query_string: str) -> List[QueryPair]:
        pairs = []
        for token in query_string.split('&'):
            if not token.strip():
                continue
            key, _, value = token.partition('=')
            pairs.append(QueryPair(
                key=unquote_plus(key.strip()),
                value=unquote_plus(value.strip())
            ))
        return pairs

    def values(self, key: str) -> List[str]:
        """All values given for a key, in order."""
        return [pair.value for pair in self._pairs if pair.key == key]

    def first(self, key: str) -> Optional[str]:
        """First value given for a key, or None."""
        for pair in self._pairs:
            if pair.key == key:
                return pair.value
        return None

    def keys(self) -> List[str]:
        """Every key, once per occurrence."""
        return [pair.key for pair in self._pairs]

    def count(self, key: str) -> int:
        """Number of times a key occurs."""
        return sum(1 for pair in self._pairs if pair.key == key)

    def pairs(self) -> List[QueryPair]:
        return list(self._pairs)

    def __contains__(self, key: object) -> bool:
        return any(pair.key == key for pair in self._pairs)

    def __len__(self) -> int:
        return len(self._pairs)

    def __repr__(self) -> str:
        return f"ParsedQuery({self.raw!r})"
