import unittest
from pathlib import Path

import ldap_mock.test.app
import ldap_mock.test.app2
from ldap_mock import LDAPMessage, MockLDAP, ResultCode, TargetRegistry, registry
from ldap_mock.test.app import UserDirectory
from ldap_mock.test.app2 import GroupDirectory
from ldap_mock.unittest import (
    LDAPMockMixin,
    ldap_mockify,
    ldap_result_is,
    ldap_result_ok,
)


FIXTURES = Path(__file__).parent


class TestLdapResultIs(unittest.TestCase):

    def test_returns_actual_on_match(self):
        mesg = LDAPMessage('add')
        self.assertIs(ldap_result_is(mesg), mesg)
        self.assertIs(ldap_result_ok(mesg), mesg)
        self.assertEqual(ldap_result_is(68, ResultCode.ALREADY_EXISTS), 68)

    def test_expected_may_be_a_message(self):
        mesg = LDAPMessage('add', code=68)
        self.assertIs(ldap_result_is(mesg, LDAPMessage('add', code=68, error='other')), mesg)

    def test_failure_message(self):
        mesg = LDAPMessage('add', code=68, error='entry already exists: uid=user1,dc=example,dc=com')
        with self.assertRaises(AssertionError) as cm:
            ldap_result_ok(mesg, name='add user1')
        self.assertEqual(
            str(cm.exception),
            'add user1\n'
            '         got: ALREADY_EXISTS (68): entry already exists: uid=user1,dc=example,dc=com\n'
            '    expected: SUCCESS (0)'
        )

    def test_failure_message_without_name_uses_description(self):
        with self.assertRaises(AssertionError) as cm:
            ldap_result_is(LDAPMessage('bind', code=49), ResultCode.SUCCESS)
        lines = str(cm.exception).split('\n')
        self.assertEqual(len(lines), 2)
        self.assertTrue(lines[0].startswith('         got: INVALID_CREDENTIALS (49): '))
        self.assertEqual(lines[1], '    expected: SUCCESS (0)')


class TestLdapMockify(unittest.TestCase):

    def setUp(self):
        registry.reset()
        self.addCleanup(registry.reset)

    def test_patches_and_restores(self):
        original = ldap_mock.test.app.LDAPConnection
        with ldap_mockify(['ldap_mock.test.app']) as registry:
            self.assertIsInstance(registry, TargetRegistry)
            directory = UserDirectory()
            self.assertIsInstance(directory.conn, MockLDAP)
            ldap_result_ok(directory.create_user('user9', 'User Nine', 'Nine'))
            self.assertTrue(
                registry.get('ldap.example.com').exists('uid=user9,ou=users,dc=example,dc=com')
            )
        self.assertIs(ldap_mock.test.app.LDAPConnection, original)

    def test_uses_process_wide_registry_by_default(self):
        with ldap_mockify(['ldap_mock.test.app']) as mocked:
            self.assertIs(mocked, registry)

    def test_data_persists_across_blocks(self):
        MockLDAP('ldap.example.com').add('uid=user1,ou=users,dc=example,dc=com', attrs={'sn': 'One'})
        with ldap_mockify(['ldap_mock.test.app']):
            ldap_result_ok(UserDirectory().create_user('user9', 'User Nine', 'Nine'))
            self.assertEqual(UserDirectory().conn.search('dc=example,dc=com').count(), 2)
        with ldap_mockify(['ldap_mock.test.app']):
            conn = UserDirectory().conn
            self.assertEqual(
                sorted(e.dn for e in conn.search('dc=example,dc=com').entries),
                ['uid=user1,ou=users,dc=example,dc=com', 'uid=user9,ou=users,dc=example,dc=com']
            )

    def test_uses_given_registry(self):
        registry = TargetRegistry()
        registry.load_from_file(FIXTURES / 'server1.json', 'ldap://ldap.example.com')
        with ldap_mockify(['ldap_mock.test.app', 'ldap_mock.test.app2'], registry=registry):
            self.assertEqual(UserDirectory().get_user('user2').get_value('cn'), ['User Two'])
            self.assertEqual(len(GroupDirectory().members('staff')), 2)


class TestLDAPMockMixin_check(unittest.TestCase):

    def test_ldap_modules_is_required(self):
        class NoModules(LDAPMockMixin, unittest.TestCase):

            def test_nothing(self):
                pass

        with self.assertRaises(ValueError):
            NoModules('test_nothing')


class TestLDAPMockMixin_patches_modules(LDAPMockMixin, unittest.TestCase):
    ldap_modules = ['ldap_mock.test.app', 'ldap_mock.test.app2']

    def test_modules_were_patched(self):
        self.assertEqual(ldap_mock.test.app.LDAPConnection, self.connect)
        self.assertEqual(ldap_mock.test.app2.LDAPConnection, self.connect)

    def test_connections_are_recorded(self):
        users = UserDirectory()
        groups = GroupDirectory()
        self.assertEqual(self.get_connections(), [users.conn, groups.conn])
        self.assertIs(self.last_connection(), groups.conn)
        self.assertEqual(self.get_connections('ldap://ldap.example.com:389'), [users.conn, groups.conn])
        self.assertEqual(self.get_connections('ldap://other.example.com'), [])

    def test_empty_by_default(self):
        self.assertIsNone(self.last_connection())
        self.assertIsNone(UserDirectory().get_user('user1'))


class TestLDAPMockMixin_loads_default_fixture(LDAPMockMixin, unittest.TestCase):
    ldap_modules = ['ldap_mock.test.app', 'ldap_mock.test.app2']
    ldap_fixtures = 'server1.json'

    def test_every_target_gets_the_fixture(self):
        self.assertIsNotNone(self.ldap_registry.default)
        self.assertEqual(UserDirectory().get_user('user1').get_value('sn'), ['One'])
        conn = self.connect('ldap://elsewhere.example.com')
        self.assertLDAPMethodIs(
            conn, 'compare', ResultCode.COMPARE_TRUE,
            'uid=user1,ou=users,dc=example,dc=com', attr='sn', value='One'
        )

    def test_changes_do_not_leak_between_tests_1(self):
        GroupDirectory().add_member('staff', 'uid=user3,ou=users,dc=example,dc=com')
        self.assertEqual(len(GroupDirectory().members('staff')), 3)

    def test_changes_do_not_leak_between_tests_2(self):
        self.assertEqual(len(GroupDirectory().members('staff')), 2)


class TestLDAPMockMixin_loads_default_fixture_with_tags(LDAPMockMixin, unittest.TestCase):
    ldap_modules = ['ldap_mock.test.app']
    ldap_fixtures = ('server1.json', ['foo'])

    def test_tree_was_loaded_with_tags(self):
        self.assertEqual(self.ldap_registry.default.tags, ['foo'])
        self.assertEqual(UserDirectory().conn.mock_data.tags, ['foo'])


class TestLDAPMockMixin_loads_named_fixtures(LDAPMockMixin, unittest.TestCase):
    ldap_modules = ['ldap_mock.test.app']
    ldap_fixtures = [
        ('server1.json', 'ldap://ldap.example.com', ['foo']),
        ('server2.ldif', 'ldap://ldap.example.org', []),
    ]

    def test_registry_was_loaded_with_named_trees(self):
        # With named fixtures there is no default tree
        self.assertIsNone(self.ldap_registry.default)
        self.assertEqual(self.registry.get('ldap://ldap.example.com').tags, ['foo'])
        self.assertTrue(
            self.registry.get('ldap://ldap.example.org').exists('uid=bob,ou=people,dc=example,dc=org')
        )

    def test_other_targets_start_empty(self):
        conn = self.connect('ldap://ldap.example.net')
        self.assertEqual(conn.search('').count(), 0)


class TestLDAPMockMixin_asserts(LDAPMockMixin, unittest.TestCase):
    ldap_modules = ['ldap_mock.test.app']
    ldap_fixtures = 'server1.json'

    def setUp(self):
        super().setUp()
        self.directory = UserDirectory()
        self.conn = self.directory.conn

    def test_assertLDAPResultOK(self):
        self.assertLDAPResultOK(self.directory.create_user('user3', 'User Three', 'Three'))
        with self.assertRaises(AssertionError):
            self.assertLDAPResultOK(self.directory.create_user('user3', 'User Three', 'Three'))

    def test_assertLDAPResultIs(self):
        self.assertLDAPResultIs(
            self.directory.create_user('user1', 'User One', 'One'), ResultCode.ALREADY_EXISTS
        )

    def test_assertLDAPMethodIs_names_the_call(self):
        with self.assertRaises(AssertionError) as cm:
            self.assertLDAPMethodIs(self.conn, 'delete', ResultCode.SUCCESS, 'uid=nobody,dc=example,dc=com')
        self.assertIn("delete('uid=nobody,dc=example,dc=com')", str(cm.exception))
        self.assertIn('NO_SUCH_OBJECT (32)', str(cm.exception))

    def test_authenticate_with_bind_override(self):
        self.conn.mock_bind(
            lambda dn, password=None, **kwargs: None if password == 'secret'
            else ResultCode.INVALID_CREDENTIALS
        )
        self.assertTrue(self.directory.authenticate('user1', 'secret'))
        self.assertFalse(self.directory.authenticate('user1', 'wrong'))

    def test_assertLDAPConnectionMethodCalled(self):
        self.directory.get_user('user1')
        self.assertLDAPConnectionMethodCalled(self.conn, 'search')
        self.assertLDAPConnectionMethodCalled(
            self.conn, 'search',
            {'base': 'ou=users,dc=example,dc=com', 'scope': 'one', 'filter': '(uid=user1)'}
        )
        with self.assertRaises(AssertionError):
            self.assertLDAPConnectionMethodCalled(self.conn, 'search', {'base': 'dc=other'})

    def test_assertLDAPConnectionMethodCalledAfter(self):
        self.directory.authenticate('user1', 'secret')
        self.directory.get_user('user1')
        self.assertLDAPConnectionMethodCalledAfter(self.conn, 'search', 'bind')
        with self.assertRaises(AssertionError):
            self.assertLDAPConnectionMethodCalledAfter(self.conn, 'bind', 'search')
