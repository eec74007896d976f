import unittest
from pathlib import Path

import ldap

from ldap_mock import (
    DirectoryTree,
    HookDefinition,
    HookRegistry,
    MockLDAP,
    ResultCode,
    TargetRegistry,
    hooks,
)
from ldap_mock.hooks import as_refusal


class TestHookRegistry(unittest.TestCase):

    def setUp(self):
        self.hooks = HookRegistry()
        self.hooks.register_hook_definition('pre_add', 'Callable[[DirectoryTree, Entry], None]')

    def test_definitions(self):
        self.assertEqual(
            self.hooks.definitions,
            [HookDefinition(name='pre_add', signature='Callable[[DirectoryTree, Entry], None]')]
        )

    def test_duplicate_definition_raises_ValueError(self):
        with self.assertRaises(ValueError):
            self.hooks.register_hook_definition('pre_add', 'Callable[[], None]')

    def test_unknown_hook_raises_ValueError(self):
        with self.assertRaises(ValueError):
            self.hooks.register_hook('pre_frobnicate', print)
        with self.assertRaises(ValueError):
            self.hooks.get('pre_frobnicate')

    def test_hooks_are_returned_in_registration_order(self):
        def first(tree, entry):
            pass

        def second(tree, entry):
            pass

        self.hooks.register_hook('pre_add', first)
        self.hooks.register_hook('pre_add', second)
        self.assertEqual(self.hooks.get('pre_add'), [first, second])

    def test_tag_filtering(self):
        def untagged(tree, entry):
            pass

        def tagged(tree, entry):
            pass

        self.hooks.register_hook('pre_add', untagged)
        self.hooks.register_hook('pre_add', tagged, tags=['audit', 'other'])
        self.assertEqual(self.hooks.get('pre_add'), [untagged])
        self.assertEqual(self.hooks.get('pre_add', ['foo']), [untagged])
        self.assertEqual(self.hooks.get('pre_add', ['audit']), [untagged, tagged])

    def test_pre_points_can_refuse(self):
        self.assertTrue(self.hooks.definition('pre_add').can_refuse)
        self.hooks.register_hook_definition('post_add', 'Callable[[DirectoryTree, Entry], None]')
        self.assertFalse(self.hooks.definition('post_add').can_refuse)

    def test_run_stops_at_first_refusal(self):
        called = []

        def allow(tree, entry):
            called.append('allow')

        def refuse(tree, entry):
            called.append('refuse')
            return ResultCode.INSUFFICIENT_ACCESS, 'read only'

        def never(tree, entry):
            called.append('never')

        for func in [allow, refuse, never]:
            self.hooks.register_hook('pre_add', func)
        self.assertEqual(self.hooks.run('pre_add', [], None, None), (50, 'read only'))
        self.assertEqual(called, ['allow', 'refuse'])

    def test_post_results_are_ignored(self):
        self.hooks.register_hook_definition('post_add', 'Callable[[DirectoryTree, Entry], None]')
        self.hooks.register_hook('post_add', lambda tree, entry: ResultCode.OTHER)
        self.assertIsNone(self.hooks.run('post_add', [], None, None))

    def test_unregister_hook(self):
        def hook(tree, entry):
            pass

        self.hooks.register_hook('pre_add', hook)
        self.hooks.register_hook('pre_add', hook, tags=['audit'])
        self.hooks.unregister_hook('pre_add', hook)
        self.assertEqual(self.hooks.get('pre_add', ['audit']), [])


class TestAsRefusal(unittest.TestCase):

    def test_none_and_zero_allow(self):
        self.assertIsNone(as_refusal(None))
        self.assertIsNone(as_refusal(ResultCode.SUCCESS))
        self.assertIsNone(as_refusal((0, 'fine')))

    def test_code(self):
        self.assertEqual(as_refusal(ResultCode.UNWILLING_TO_PERFORM), (53, ''))

    def test_code_and_message(self):
        self.assertEqual(as_refusal((50, 'read only')), (50, 'read only'))


class TestDirectoryTreeHooks(unittest.TestCase):
    """
    These register hooks on the module level registry, tagged so that only
    trees built here see them.
    """

    tags = ['hook-test']

    def setUp(self):
        self.seen = []
        self.registered = []

    def tearDown(self):
        for name, func in self.registered:
            hooks.unregister_hook(name, func)

    def register(self, name, func):
        hooks.register_hook(name, func, tags=self.tags)
        self.registered.append((name, func))

    def record(self, name):
        def hook(tree, *args):
            self.seen.append((name, *args))
        self.register(name, hook)

    def test_post_tree_init(self):
        self.register('post_tree_init', lambda tree: tree.add('dc=example,dc=com'))
        tree = DirectoryTree(tags=self.tags)
        self.assertTrue(tree.exists('dc=example,dc=com'))
        self.assertFalse(DirectoryTree().exists('dc=example,dc=com'))

    def test_pre_add_can_change_the_entry(self):
        self.register('pre_add', lambda tree, entry: entry.replace('description', 'stamped'))
        tree = DirectoryTree(tags=self.tags)
        tree.add('uid=user1,dc=example,dc=com', {'sn': 'One'})
        self.assertEqual(tree.get('uid=user1,dc=example,dc=com').get_value('description'), ['stamped'])

    def test_pre_hook_exception_aborts_the_operation(self):
        def refuse(tree, entry):
            raise RuntimeError('refused')

        self.register('pre_delete', refuse)
        tree = DirectoryTree(tags=self.tags)
        tree.add('dc=example,dc=com')
        with self.assertRaises(RuntimeError):
            tree.delete('dc=example,dc=com')
        self.assertTrue(tree.exists('dc=example,dc=com'))

    def test_mutation_hooks_fire_in_order(self):
        for name in ['pre_add', 'post_add', 'pre_modify', 'post_modify',
                     'pre_rename', 'post_rename', 'pre_delete', 'post_delete']:
            self.record(name)
        tree = DirectoryTree(tags=self.tags)
        tree.add('uid=user1,dc=example,dc=com')
        tree.modify('uid=user1,dc=example,dc=com', [('add', 'sn', 'One')])
        tree.rename('uid=user1,dc=example,dc=com', 'uid=one')
        tree.delete('uid=one,dc=example,dc=com')
        self.assertEqual(
            [event[0] for event in self.seen],
            ['pre_add', 'post_add', 'pre_modify', 'post_modify',
             'pre_rename', 'post_rename', 'pre_delete', 'post_delete']
        )
        self.assertEqual(self.seen[2][1:], ('uid=user1,dc=example,dc=com', [('add', 'sn', 'One')]))
        self.assertEqual(self.seen[4][1:], ('uid=user1,dc=example,dc=com', 'uid=one,dc=example,dc=com'))
        self.assertEqual(self.seen[5][1].dn, 'uid=one,dc=example,dc=com')

    def test_failed_operations_do_not_fire_hooks(self):
        self.record('pre_delete')
        tree = DirectoryTree(tags=self.tags)
        with self.assertRaises(ldap.NO_SUCH_OBJECT):
            tree.delete('uid=nobody,dc=example,dc=com')
        self.assertEqual(self.seen, [])

    def test_load_objects_hooks(self):
        self.record('pre_load_objects')
        self.record('post_load_objects')
        tree = DirectoryTree(tags=self.tags)
        tree.load_objects(Path(__file__).parent / 'server1.json')
        self.assertEqual([event[0] for event in self.seen], ['pre_load_objects', 'post_load_objects'])
        self.assertTrue(self.seen[0][1].endswith('server1.json'))

    def test_pre_add_refusal_stops_the_add(self):
        self.register('pre_add', lambda tree, entry: ResultCode.UNWILLING_TO_PERFORM)
        tree = DirectoryTree(tags=self.tags)
        with self.assertRaises(ldap.UNWILLING_TO_PERFORM) as cm:
            tree.add('uid=user1,dc=example,dc=com')
        self.assertEqual(cm.exception.args[0]['result'], 53)
        self.assertEqual(cm.exception.args[0]['info'], 'refused by pre_add hook')
        self.assertEqual(tree.count, 0)

    def test_refusal_skips_post_hook(self):
        self.register('pre_delete', lambda tree, entry: (ResultCode.INSUFFICIENT_ACCESS, 'read only'))
        self.record('post_delete')
        tree = DirectoryTree(tags=self.tags)
        tree.add('dc=example,dc=com')
        with self.assertRaises(ldap.INSUFFICIENT_ACCESS):
            tree.delete('dc=example,dc=com')
        self.assertTrue(tree.exists('dc=example,dc=com'))
        self.assertEqual(self.seen, [])

    def test_refusal_of_unknown_code_is_LDAPError(self):
        self.register('pre_modify', lambda tree, dn, changes: 4242)
        tree = DirectoryTree(tags=self.tags)
        tree.add('uid=user1,dc=example,dc=com')
        with self.assertRaises(ldap.LDAPError) as cm:
            tree.modify('uid=user1,dc=example,dc=com', [('add', 'sn', 'One')])
        self.assertEqual(cm.exception.args[0]['result'], 4242)
        self.assertFalse(tree.get('uid=user1,dc=example,dc=com').exists('sn'))

    def test_refusal_reaches_the_client(self):
        def refuse_protected(tree, old_dn, new_dn):
            if 'ou=protected' in old_dn.lower():
                return ResultCode.UNWILLING_TO_PERFORM, 'protected entry'
            return None

        self.register('pre_rename', refuse_protected)
        registry = TargetRegistry()
        registry.register(DirectoryTree(tags=self.tags), 'ldap://ldap.example.com')
        conn = MockLDAP('ldap.example.com', registry=registry)
        conn.add('uid=user1,ou=protected,dc=example,dc=com')
        conn.add('uid=user2,ou=people,dc=example,dc=com')
        mesg = conn.moddn('uid=user1,ou=protected,dc=example,dc=com', newrdn='uid=one')
        self.assertEqual(mesg.code, ResultCode.UNWILLING_TO_PERFORM)
        self.assertEqual(mesg.error, 'protected entry')
        self.assertTrue(conn.mock_data.exists('uid=user1,ou=protected,dc=example,dc=com'))
        mesg = conn.moddn('uid=user2,ou=people,dc=example,dc=com', newrdn='uid=two')
        self.assertEqual(mesg.code, ResultCode.SUCCESS)
