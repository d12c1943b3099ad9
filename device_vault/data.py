"""Persisted records of the device vault.

Records are created by the core and owned by the document store;
they are never updated in place.
"""
from typing import Optional, Any
from datetime import datetime, timezone
from datamodel import BaseModel


def _as_datetime(value: Any) -> datetime:
    """Coerce a store timestamp (datetime, ISO string or epoch) to UTC datetime."""
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, tz=timezone.utc)
    if isinstance(value, str):
        dt = datetime.fromisoformat(value.replace('Z', '+00:00'))
        return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)
    raise ValueError(f"Unsupported timestamp value: {value!r}")


class DeviceRecord(BaseModel):
    """A registered device.

    One record per accepted identifier.
    """
    identifier: str
    signature: str
    created_at: datetime
    document_id: Optional[str] = None

    @classmethod
    def from_document(cls, doc: dict) -> 'DeviceRecord':
        return cls(
            identifier=doc['identifier'],
            signature=doc['signature'],
            created_at=_as_datetime(doc['created_at']),
            document_id=doc.get('id')
        )

    def __repr__(self) -> str:
        # signature doubles as a bearer credential
        return (
            f'<DeviceRecord identifier={self.identifier!r} '
            f'signature={self.signature[:8]}...>'
        )


class MasterKeyRecord(BaseModel):
    """One generated master key."""
    value: str
    created_at: datetime
    document_id: Optional[str] = None

    @classmethod
    def from_document(cls, doc: dict) -> 'MasterKeyRecord':
        return cls(
            value=doc['value'],
            created_at=_as_datetime(doc['created_at']),
            document_id=doc.get('id')
        )

    def __repr__(self) -> str:
        return (
            f'<MasterKeyRecord id={self.document_id} '
            f'created_at={self.created_at.isoformat()}>'
        )
