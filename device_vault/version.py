"""Device Vault Meta information.
   Device Vault issues device identities and brokers delivery of a
   rotating master key and named credentials to registered devices.
"""
__title__ = 'device_vault'
__description__ = (
   'Device Vault issues device identities and brokers delivery of a '
   'rotating master key and named credentials to registered devices.'
)
__version__ = '0.1.0'
__copyright__ = 'Copyright (c) 2026 Device Vault Authors'
__author__ = 'Device Vault Authors'
__author_email__ = 'devices@device-vault.dev'
__license__ = 'Apache-2.0'
__url__ = 'https://github.com/device-vault/device-vault'
