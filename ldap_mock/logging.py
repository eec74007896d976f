import logging

#: The logger for the whole package.  Attach handlers to ``ldap_mock`` to see
#: the call history and tree mutations as they happen.
logger = logging.getLogger("ldap_mock")
