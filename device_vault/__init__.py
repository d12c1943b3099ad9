"""Device Vault.

Issues device identities and brokers delivery of a rotating master key
and named credentials to registered devices.
"""
from .version import __version__

__all__ = ["__version__"]
