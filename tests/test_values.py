import unittest

from oairepo.exceptions import ValidationError
from oairepo.values import (
    AnyUri,
    Email,
    MetadataPrefix,
    MetadataRootTag,
    NamespacePrefix,
    RecordIdentifier,
    SetSpec,
    is_any_uri,
)


class TestAnyUri(unittest.TestCase):
    def test_valid_uris_keep_their_value(self):
        for value in (
            'http://www.openarchives.org/OAI/2.0/oai_dc/',
            'https://repo.example.org/oai?verb=Identify',
            'urn:isbn:0451450523',
        ):
            self.assertEqual(AnyUri(value).value, value)

    def test_control_character_rejected(self):
        with self.assertRaises(ValidationError) as ctx:
            AnyUri('http://example.com/\x01')
        self.assertEqual(ctx.exception.field, 'uri')
        self.assertEqual(ctx.exception.kind, 'InvalidFormat')

    def test_is_any_uri(self):
        self.assertTrue(is_any_uri('http://purl.org/dc/elements/1.1/'))
        self.assertFalse(is_any_uri('http://example.com/\x00'))

    def test_non_string_rejected(self):
        with self.assertRaises(ValidationError):
            AnyUri(42)


class TestNamespacePrefix(unittest.TestCase):
    def test_valid(self):
        for value in ('dc', 'oai_dc', '_x', 'a.b-c'):
            self.assertEqual(str(NamespacePrefix(value)), value)

    def test_invalid(self):
        for value in ('', '1dc', 'oai dc', 'dc:title'):
            with self.assertRaises(ValidationError):
                NamespacePrefix(value)


class TestMetadataPrefix(unittest.TestCase):
    def test_valid(self):
        for value in ('oai_dc', 'marc21', "a-b_c.d!e~f*g'h(i)"):
            self.assertEqual(MetadataPrefix(value).value, value)

    def test_invalid(self):
        for value in ('', 'oai dc', 'oai/dc', 'oai:dc'):
            with self.assertRaises(ValidationError) as ctx:
                MetadataPrefix(value)
            self.assertEqual(ctx.exception.field, 'metadata_prefix')


class TestMetadataRootTag(unittest.TestCase):
    def test_qualified(self):
        tag = MetadataRootTag('oai_dc:dc')
        self.assertEqual(tag.prefix, 'oai_dc')
        self.assertEqual(tag.local_name, 'dc')

    def test_unqualified(self):
        tag = MetadataRootTag('record')
        self.assertEqual(tag.prefix, '')
        self.assertEqual(tag.local_name, 'record')

    def test_invalid(self):
        for value in ('', 'a:b:c', ':dc', 'dc:', '1dc'):
            with self.assertRaises(ValidationError):
                MetadataRootTag(value)


class TestEmail(unittest.TestCase):
    def test_valid(self):
        for value in ('admin@example.org', 'first.last+oai@repo.example.ac.uk'):
            self.assertEqual(Email(value).value, value)

    def test_invalid(self):
        for value in ('', 'admin', 'admin@', '@example.org', 'admin@localhost',
                      'ad min@example.org', 'admin@example..org'):
            with self.assertRaises(ValidationError):
                Email(value)


class TestRecordIdentifier(unittest.TestCase):
    def test_opaque_value_accepted(self):
        self.assertEqual(RecordIdentifier('oai:arXiv.org:cs/0112017').value,
                         'oai:arXiv.org:cs/0112017')

    def test_blank_rejected(self):
        for value in ('', '   ', '\t'):
            with self.assertRaises(ValidationError):
                RecordIdentifier(value)


class TestSetSpec(unittest.TestCase):
    def test_valid(self):
        for value in ('math', 'math:algebra', 'a-b_c.d:e'):
            self.assertEqual(SetSpec(value).value, value)

    def test_invalid(self):
        for value in ('', 'math:', ':math', 'math::algebra', 'math algebra'):
            with self.assertRaises(ValidationError):
                SetSpec(value)

    def test_hierarchy(self):
        parent = SetSpec('math')
        self.assertTrue(parent.contains(SetSpec('math')))
        self.assertTrue(parent.contains(SetSpec('math:algebra')))
        self.assertFalse(parent.contains(SetSpec('mathematics')))
        self.assertFalse(SetSpec('math:algebra').contains(parent))
        self.assertEqual(SetSpec('a:b:c').segments, ('a', 'b', 'c'))


class TestValueEquality(unittest.TestCase):
    def test_equality_is_structural(self):
        a, b, c = SetSpec('math'), SetSpec('math'), SetSpec('math')
        self.assertEqual(a, a)
        self.assertEqual(a, b)
        self.assertEqual(b, a)
        self.assertEqual(b, c)
        self.assertEqual(a, c)
        self.assertEqual(hash(a), hash(b))
        self.assertNotEqual(a, SetSpec('physics'))

    def test_different_types_never_equal(self):
        self.assertNotEqual(NamespacePrefix('dc'), MetadataPrefix('dc'))

    def test_immutable(self):
        prefix = MetadataPrefix('oai_dc')
        with self.assertRaises(AttributeError):
            prefix.value = 'marc21'


if __name__ == '__main__':
    unittest.main()
