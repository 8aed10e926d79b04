"""
OAI-PMH XML response rendering.

Builds the <OAI-PMH> envelope around a verb response or a list of errors.
"""

import re
from datetime import datetime, timezone
from typing import Callable, Optional

from lxml import etree

from .request import ErrorAccumulator, RequestDTO

OAI_NS = 'http://www.openarchives.org/OAI/2.0/'
XSI_NS = 'http://www.w3.org/2001/XMLSchema-instance'
OAI_SCHEMA_LOCATION = f'{OAI_NS} http://www.openarchives.org/OAI/2.0/OAI-PMH.xsd'
XSI_SCHEMA_LOCATION = f'{{{XSI_NS}}}schemaLocation'

# Characters that XML 1.0 does not allow in text or attributes
_XML_ILLEGAL = re.compile("[^\x09\x0a\x0d\x20-\ud7ff\ue000-\ufffd\U00010000-\U0010ffff]")


def xml_safe(text: str) -> str:
    """Replace characters XML cannot carry with U+FFFD."""
    return _XML_ILLEGAL.sub("\ufffd", text)


def oai(tag: str) -> str:
    """Build OAI namespace-qualified tag."""
    return f'{{{OAI_NS}}}{tag}'


def oai_element(tag: str, text: Optional[str] = None, **attrib: str) -> etree._Element:
    """New element in the OAI namespace, declared as the default namespace."""
    elem = etree.Element(oai(tag), attrib, nsmap={None: OAI_NS})
    if text is not None:
        elem.text = text
    return elem


def oai_subelement(parent, tag: str, text: Optional[str] = None, **attrib: str) -> etree._Element:
    """Child element in the OAI namespace."""
    elem = etree.SubElement(parent, oai(tag), attrib)
    if text is not None:
        elem.text = text
    return elem


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OAIRenderer:
    """
    Renders OAI-PMH responses as UTF-8 XML.

    Example:
        >>> renderer = OAIRenderer('https://repo.example.org/oai')
        >>> errors = ErrorAccumulator()
        >>> errors.add('badVerb', 'The verb argument is missing in the request')
        >>> xml = renderer.render_error(errors)
    """

    def __init__(
        self,
        base_url: str,
        clock: Optional[Callable[[], datetime]] = None,
        pretty_print: bool = True,
    ) -> None:
        """
        Initialize renderer.

        Args:
            base_url: Repository base URL, echoed in the <request> element
            clock: Returns the current UTC time (defaults to the system clock)
            pretty_print: Indent the output
        """
        self.base_url = base_url
        self.clock = clock or _utcnow
        self.pretty_print = pretty_print

    def response_date(self) -> str:
        """Current time as YYYY-MM-DDThh:mm:ssZ."""
        now = self.clock()
        if now.tzinfo is not None:
            now = now.astimezone(timezone.utc)
        return now.strftime('%Y-%m-%dT%H:%M:%SZ')

    def _root(self, request: Optional[RequestDTO]) -> etree._Element:
        root = etree.Element(oai('OAI-PMH'), nsmap={None: OAI_NS, 'xsi': XSI_NS})
        root.set(XSI_SCHEMA_LOCATION, OAI_SCHEMA_LOCATION)
        oai_subelement(root, 'responseDate', self.response_date())

        request_elem = oai_subelement(root, 'request', self.base_url)
        # attributes only for requests that passed validation
        if request is not None:
            request_elem.set('verb', request.verb)
            for argument, value in request.arguments.items():
                request_elem.set(argument, xml_safe(value))
        return root

    def _serialize(self, root) -> bytes:
        return etree.tostring(
            root,
            xml_declaration=True,
            encoding='UTF-8',
            pretty_print=self.pretty_print
        )

    def render_error(self, errors: ErrorAccumulator, request: Optional[RequestDTO] = None) -> bytes:
        """
        Render an error response.

        Emits one <error> element per message, grouped by code.

        Args:
            errors: Errors to report
            request: The validated request, if validation succeeded

        Returns:
            Serialized XML document
        """
        root = self._root(request)
        for code, messages in errors.items():
            for message in messages:
                oai_subelement(root, 'error', xml_safe(message), code=code)
        return self._serialize(root)

    def render_response(self, request: RequestDTO, body) -> bytes:
        """
        Render a successful response.

        Args:
            request: The validated request
            body: Verb element (e.g. <ListRecords>) in the OAI namespace

        Returns:
            Serialized XML document
        """
        root = self._root(request)
        root.append(body)
        return self._serialize(root)
