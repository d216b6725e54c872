"""LDAP/AD login gateway."""

__version__ = "2.0.0"
