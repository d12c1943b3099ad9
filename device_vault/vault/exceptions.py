"""
Vault Exceptions — Error taxonomy for the device vault.

Security Note:
    Exception messages may carry identifiers or truncated signatures,
    never master key values or credential plaintext.
"""


class VaultError(Exception):
    """Base class for every error raised by the device vault."""


class DuplicateIdentifierError(VaultError):
    """An identifier was registered twice."""

    def __init__(self, identifier: str):
        self.identifier = identifier
        super().__init__(f"Identifier already registered: {identifier}")


# ---------------------------------------------------------------------------
# Envelope errors
# ---------------------------------------------------------------------------

class EnvelopeError(VaultError):
    """Base class for envelope integrity or shape violations."""


class AuthenticationError(EnvelopeError):
    """Authentication tag did not verify, or plaintext could not be decoded."""


class FormatError(EnvelopeError, ValueError):
    """An envelope field is missing or is not valid hex."""


class KeyFormatError(EnvelopeError, ValueError):
    """Key is not exactly 32 bytes (64 hex characters)."""


# ---------------------------------------------------------------------------
# Store errors
# ---------------------------------------------------------------------------

class StoreError(VaultError):
    """Base class for document store failures."""


class StoreUnavailable(StoreError):
    """The document store could not be reached or failed the operation."""


class DuplicateDocument(StoreError):
    """A store-level uniqueness constraint rejected an insert."""

    def __init__(self, collection: str, fields: tuple):
        self.collection = collection
        self.fields = fields
        super().__init__(
            f"Unique constraint on {collection}{list(fields)} violated"
        )
