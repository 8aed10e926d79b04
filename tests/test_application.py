import io
import unittest
from contextlib import redirect_stdout
from datetime import datetime, timezone

import structlog
from lxml import etree

import oairepo
from oairepo.application import OAIApplication
from oairepo.config import RepositoryConfig
from oairepo.datestamp import UTCdatetime
from oairepo.handlers import InMemoryRepository
from oairepo.log import configure_library_defaults
from oairepo.record import Record, RecordHeader
from oairepo.renderer import OAI_NS
from oairepo.values import RecordIdentifier

NS = {'oai': OAI_NS}
BASE_URL = 'https://repo.example.org/oai'
ADMINS = ['admin@example.org']


def fixed_clock():
    return datetime(2025, 1, 1, tzinfo=timezone.utc)


class TestOAIApplication(unittest.TestCase):
    def setUp(self):
        repository = InMemoryRepository(records=[
            Record(
                RecordHeader(RecordIdentifier('oai:example.org:1'),
                             UTCdatetime.from_string('2024-01-10')),
                {'dc:title': 'Groups'},
            ),
        ])
        config = RepositoryConfig(BASE_URL, ADMINS)
        self.app = OAIApplication(config, repository, clock=fixed_clock)

    def run_query(self, query):
        return etree.fromstring(self.app.run(query))

    def error_codes(self, root):
        return [e.get('code') for e in root.findall('oai:error', NS)]

    def test_rejected_request(self):
        root = self.run_query('verb=Foo&bogus=1')
        self.assertEqual(self.error_codes(root), ['badVerb', 'badArgument'])
        self.assertEqual(dict(root.find('oai:request', NS).attrib), {})
        self.assertEqual(root.findtext('oai:responseDate', namespaces=NS), '2025-01-01T00:00:00Z')

    def test_too_long(self):
        root = self.run_query('verb=Identify&x=' + 'a' * 1000)
        self.assertEqual(self.error_codes(root), ['badArgument'])
        self.assertEqual(root.findtext('oai:error', namespaces=NS), 'Request is too long')

    def test_identify(self):
        root = self.run_query('verb=Identify')
        self.assertEqual(self.error_codes(root), [])
        self.assertEqual(root.find('oai:request', NS).get('verb'), 'Identify')
        self.assertEqual(root.findtext('oai:Identify/oai:baseURL', namespaces=NS), BASE_URL)
        self.assertEqual(root.findtext('oai:Identify/oai:adminEmail', namespaces=NS),
                         'admin@example.org')

    def test_handler_errors_keep_request_attributes(self):
        root = self.run_query('verb=GetRecord&metadataPrefix=oai_dc&identifier=oai:example.org:9')
        self.assertEqual(self.error_codes(root), ['idDoesNotExist'])
        request = root.find('oai:request', NS)
        self.assertEqual(request.get('verb'), 'GetRecord')
        self.assertEqual(request.get('identifier'), 'oai:example.org:9')

    def test_aggregated_handler_errors(self):
        root = self.run_query('verb=GetRecord')
        self.assertEqual(self.error_codes(root), ['badArgument', 'badArgument'])

    def test_list_records(self):
        root = self.run_query('verb=ListRecords&metadataPrefix=oai_dc')
        self.assertEqual(len(root.findall('oai:ListRecords/oai:record', NS)), 1)

    def test_validate(self):
        self.assertTrue(self.app.validate('verb=ListSets').ok)


class TestConvenienceFunctions(unittest.TestCase):
    def test_validate_request(self):
        result = oairepo.validate_request('verb=ListRecords&metadataPrefix=oai_dc')
        self.assertEqual(result.request.metadata_prefix, 'oai_dc')

    def test_respond(self):
        xml = oairepo.respond('verb=ListSets', BASE_URL, ADMINS)
        root = etree.fromstring(xml)
        self.assertEqual(root.find('oai:error', NS).get('code'), 'noSetHierarchy')

    def test_respond_requires_admin_emails(self):
        with self.assertRaises(oairepo.EmptyCollectionError):
            oairepo.respond('verb=Identify', BASE_URL, [])


class TestLibraryLogging(unittest.TestCase):
    def setUp(self):
        self.addCleanup(configure_library_defaults)
        self.addCleanup(structlog.reset_defaults)
        structlog.reset_defaults()
        configure_library_defaults()

    def test_debug_events_not_printed(self):
        app = OAIApplication(RepositoryConfig(BASE_URL, ADMINS))
        out = io.StringIO()
        with redirect_stdout(out):
            app.run('verb=Identify')
        self.assertEqual(out.getvalue(), '')

    def test_existing_configuration_kept(self):
        structlog.configure(processors=[structlog.processors.JSONRenderer()])
        configure_library_defaults()
        processors = structlog.get_config()['processors']
        self.assertEqual(len(processors), 1)
        self.assertIsInstance(processors[0], structlog.processors.JSONRenderer)


if __name__ == '__main__':
    unittest.main()
