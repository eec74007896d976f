from ldap.filter import escape_filter_chars

from ldap_mock import LDAPConnection


class UserDirectory:

    LDAP_URI = 'ldap://ldap.example.com'
    BASE = 'ou=users,dc=example,dc=com'

    def __init__(self):
        self.conn = LDAPConnection(self.LDAP_URI)

    def authenticate(self, uid: str, password: str) -> bool:
        mesg = self.conn.bind(f'uid={uid},{self.BASE}', password=password)
        return not mesg.is_error

    def get_user(self, uid: str):
        mesg = self.conn.search(
            self.BASE, scope='one', filter=f'(uid={escape_filter_chars(uid)})'
        )
        return mesg.entry(0)

    def create_user(self, uid: str, cn: str, sn: str):
        return self.conn.add(
            f'uid={uid},{self.BASE}',
            attrs={'objectClass': ['top', 'person', 'inetOrgPerson'], 'cn': cn, 'sn': sn},
        )
