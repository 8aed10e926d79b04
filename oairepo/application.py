"""
Request-to-response pipeline: parse, validate, dispatch, render.
"""

from datetime import datetime
from typing import Callable, Optional

import structlog

from .config import RepositoryConfig
from .exceptions import (
    AggregatedProtocolError,
    BAD_ARGUMENT,
    OAIProtocolError,
    ValidationError,
)
from .handlers import InMemoryRepository, OAIRequestHandler
from .renderer import OAIRenderer
from .request import ErrorAccumulator, RequestValidator, ValidationResult

logger = structlog.get_logger('oairepo.application')


class OAIApplication:
    """
    Turns a raw OAI-PMH query string into a complete XML response.

    Protocol errors never escape: they become <error> elements.

    Example:
        >>> config = RepositoryConfig('https://repo.example.org/oai', ['admin@example.org'])
        >>> app = OAIApplication(config)
        >>> xml = app.run('verb=Identify')
    """

    def __init__(
        self,
        config: RepositoryConfig,
        repository: Optional[InMemoryRepository] = None,
        validator: Optional[RequestValidator] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        """
        Initialize application.

        Args:
            config: Repository configuration
            repository: Records and sets to serve (default: empty repository)
            validator: Request validator (default: standard OAI-PMH rules)
            clock: Current UTC time for responseDate (default: system clock)
        """
        self.config = config
        self.repository = repository if repository is not None else InMemoryRepository()
        self.validator = validator or RequestValidator()
        self.handler = OAIRequestHandler(self.repository, config)
        self.renderer = OAIRenderer(config.base_url, clock=clock)

    def validate(self, query_string: str) -> ValidationResult:
        return self.validator.validate_query(query_string)

    def run(self, query_string: str) -> bytes:
        """
        Answer one request.

        Args:
            query_string: Raw query string, e.g. 'verb=ListSets'

        Returns:
            Serialized OAI-PMH XML document
        """
        result = self.validate(query_string)
        if not result.ok:
            return self.renderer.render_error(result.errors)

        request = result.request
        try:
            body = self.handler.handle(request)
        except AggregatedProtocolError as e:
            logger.warning('request.failed', verb=request.verb, codes=e.errors.codes())
            return self.renderer.render_error(e.errors, request)
        except OAIProtocolError as e:
            logger.warning('request.failed', verb=request.verb, codes=[e.code])
            return self.renderer.render_error(ErrorAccumulator.from_error(e), request)
        except ValidationError as e:
            logger.warning('request.failed', verb=request.verb, codes=[BAD_ARGUMENT])
            errors = ErrorAccumulator()
            errors.add(BAD_ARGUMENT, e.message)
            return self.renderer.render_error(errors, request)

        return self.renderer.render_response(request, body)
