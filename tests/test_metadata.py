import unittest

from oairepo.exceptions import (
    CannotDisseminateFormatError,
    DuplicateEntryError,
    EmptyCollectionError,
    ValidationError,
)
from oairepo.metadata import (
    OAI_DC,
    Description,
    MetadataFormat,
    MetadataFormatRegistry,
    MetadataNamespace,
    MetadataNamespaceCollection,
)
from oairepo.values import AnyUri, MetadataPrefix, MetadataRootTag, NamespacePrefix


def namespace(prefix, uri):
    return MetadataNamespace(NamespacePrefix(prefix), AnyUri(uri))


DC = namespace('dc', 'http://purl.org/dc/elements/1.1/')
OAI = namespace('oai_dc', 'http://www.openarchives.org/OAI/2.0/oai_dc/')
MARC = namespace('marc', 'http://www.loc.gov/MARC21/slim')


class TestMetadataNamespace(unittest.TestCase):
    def test_fields(self):
        self.assertEqual(DC.as_pair(), ('dc', 'http://purl.org/dc/elements/1.1/'))
        self.assertEqual(DC, namespace('dc', 'http://purl.org/dc/elements/1.1/'))

    def test_raw_strings_rejected(self):
        with self.assertRaises(TypeError):
            MetadataNamespace('dc', AnyUri('http://purl.org/dc/elements/1.1/'))


class TestMetadataNamespaceCollection(unittest.TestCase):
    def test_empty(self):
        with self.assertRaises(EmptyCollectionError) as ctx:
            MetadataNamespaceCollection([])
        self.assertEqual(ctx.exception.kind, 'EmptyCollection')
        with self.assertRaises(EmptyCollectionError):
            MetadataNamespaceCollection()

    def test_duplicate_prefix(self):
        with self.assertRaises(DuplicateEntryError) as ctx:
            MetadataNamespaceCollection(DC, namespace('dc', 'http://example.org/other/'))
        self.assertEqual(ctx.exception.kind, 'DuplicateEntry')

    def test_duplicate_uri(self):
        with self.assertRaises(DuplicateEntryError):
            MetadataNamespaceCollection([DC, namespace('dc2', 'http://purl.org/dc/elements/1.1/')])

    def test_duplicates_are_validation_errors(self):
        with self.assertRaises(ValidationError):
            MetadataNamespaceCollection(DC, DC)

    def test_insertion_order(self):
        collection = MetadataNamespaceCollection([MARC, DC, OAI])
        self.assertEqual(list(collection), [MARC, DC, OAI])
        self.assertEqual(len(collection), 3)
        self.assertEqual(collection[1], DC)

    def test_equality_ignores_order(self):
        a = MetadataNamespaceCollection(DC, OAI)
        b = MetadataNamespaceCollection(OAI, DC)
        self.assertEqual(a, b)
        self.assertEqual(hash(a), hash(b))
        self.assertNotEqual(a, MetadataNamespaceCollection(DC))

    def test_find_and_nsmap(self):
        collection = MetadataNamespaceCollection(OAI, DC)
        self.assertEqual(collection.find('dc'), DC)
        self.assertIsNone(collection.find('marc'))
        self.assertEqual(collection.to_nsmap(), {
            'oai_dc': 'http://www.openarchives.org/OAI/2.0/oai_dc/',
            'dc': 'http://purl.org/dc/elements/1.1/',
        })

    def test_generator_accepted(self):
        collection = MetadataNamespaceCollection(ns for ns in (DC, OAI))
        self.assertEqual(list(collection), [DC, OAI])

    def test_wrong_type(self):
        with self.assertRaises(TypeError):
            MetadataNamespaceCollection(['dc'])


class TestMetadataFormat(unittest.TestCase):
    def make_format(self, root_tag='marc:record'):
        return MetadataFormat(
            prefix=MetadataPrefix('marc21'),
            namespaces=MetadataNamespaceCollection(MARC),
            schema=AnyUri('http://www.loc.gov/standards/marcxml/schema/MARC21slim.xsd'),
            root_tag=MetadataRootTag(root_tag),
        )

    def test_root_namespace(self):
        self.assertEqual(self.make_format().root_namespace, MARC)
        self.assertEqual(OAI_DC.root_namespace, OAI)

    def test_unqualified_root_uses_first_namespace(self):
        self.assertEqual(self.make_format('record').root_namespace, MARC)

    def test_equality(self):
        self.assertEqual(self.make_format(), self.make_format())
        self.assertNotEqual(self.make_format(), OAI_DC)

    def test_types_checked(self):
        with self.assertRaises(TypeError):
            MetadataFormat(
                prefix='marc21',
                namespaces=MetadataNamespaceCollection(MARC),
                schema=AnyUri('http://www.loc.gov/standards/marcxml/schema/MARC21slim.xsd'),
                root_tag=MetadataRootTag('marc:record'),
            )


class TestMetadataFormatRegistry(unittest.TestCase):
    def test_lookup(self):
        registry = MetadataFormatRegistry([OAI_DC])
        self.assertIs(registry.get('oai_dc'), OAI_DC)
        self.assertIn('oai_dc', registry)
        self.assertEqual(len(registry), 1)
        self.assertEqual(list(registry), [OAI_DC])

    def test_unknown_prefix(self):
        with self.assertRaises(CannotDisseminateFormatError) as ctx:
            MetadataFormatRegistry([OAI_DC]).get('nope')
        self.assertEqual(ctx.exception.code, 'cannotDisseminateFormat')

    def test_duplicate_prefix(self):
        registry = MetadataFormatRegistry([OAI_DC])
        with self.assertRaises(DuplicateEntryError):
            registry.register(OAI_DC)


class TestDescription(unittest.TestCase):
    def test_fields(self):
        description = Description(OAI_DC, {'dc:description': 'Theses', 'dc:subject': ['a', 'b']})
        self.assertIs(description.format, OAI_DC)
        self.assertEqual(description.payload['dc:subject'], ['a', 'b'])

    def test_invalid_key(self):
        for key in ('dc:bad key', '', 'dc:', '1dc:title'):
            with self.assertRaises(ValidationError):
                Description(OAI_DC, {key: 'x'})

    def test_types_checked(self):
        with self.assertRaises(TypeError):
            Description(OAI_DC, [('dc:description', 'Theses')])
        with self.assertRaises(TypeError):
            Description('oai_dc', {'dc:description': 'Theses'})


if __name__ == '__main__':
    unittest.main()
