"""
Datenbank Models

Relational records of the device pairing registry plus the durable
per-connection attachments of stream rooms.
"""
import time

from sqlalchemy import BigInteger, Boolean, Column, ForeignKey, Index, String, Text
from sqlalchemy.orm import declarative_base

Base = declarative_base()


# Device types
DEVICE_TYPE_MOBILE = "mobile"
DEVICE_TYPE_WEB = "web"
DEVICE_TYPES = [DEVICE_TYPE_MOBILE, DEVICE_TYPE_WEB]

# Older mobile builds still register as "ios"
DEVICE_TYPE_ALIASES = {
    "ios": DEVICE_TYPE_MOBILE,
}

# Stream roles
ROLE_PUBLISHER = "publisher"
ROLE_SUBSCRIBER = "subscriber"


def now_ms() -> int:
    """Current wall clock time as epoch milliseconds."""
    return int(time.time() * 1000)


class PairingGroup(Base):
    """Pairing group. Membership is derived from Device.current_group_id."""
    __tablename__ = "pairing_groups"

    group_id = Column(String(36), primary_key=True)
    group_name = Column(String(255), nullable=False)
    created_by = Column(String(255), nullable=False)
    created_at = Column(BigInteger, nullable=False, default=now_ms)


class Device(Base):
    """Registered mobile or web device of an owner"""
    __tablename__ = "devices"

    device_id = Column(String(36), primary_key=True)
    device_name = Column(String(255), nullable=False)
    owner_id = Column(String(255), nullable=False, index=True)
    current_group_id = Column(
        String(36),
        ForeignKey("pairing_groups.group_id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    device_type = Column(String(20), nullable=False)  # mobile, web
    created_at = Column(BigInteger, nullable=False, default=now_ms)
    last_seen = Column(BigInteger, nullable=False, default=now_ms)
    is_active = Column(Boolean, nullable=False, default=True)
    # Stable across app reinstalls, used for idempotent re-registration
    device_identifier = Column(String(255), nullable=True, index=True)

    __table_args__ = (
        Index("idx_devices_owner_identifier", "owner_id", "device_identifier"),
    )

    def to_dict(self) -> dict:
        return {
            "device_id": self.device_id,
            "device_name": self.device_name,
            "owner_id": self.owner_id,
            "current_group_id": self.current_group_id,
            "device_type": self.device_type,
            "created_at": self.created_at,
            "last_seen": self.last_seen,
            "is_active": bool(self.is_active),
            "device_identifier": self.device_identifier,
        }


class PairingSession(Base):
    """Single-use, TTL-bound invite into a pairing group"""
    __tablename__ = "pairing_sessions"

    session_id = Column(String(36), primary_key=True)
    group_id = Column(
        String(36),
        ForeignKey("pairing_groups.group_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    created_by = Column(String(255), nullable=False)
    expires_at = Column(BigInteger, nullable=False, index=True)
    payload = Column(Text, nullable=False)  # QR code content

    def is_expired(self, now: int) -> bool:
        return now > self.expires_at


class SocketAttachment(Base):
    """
    Durable attachment of one accepted WebSocket connection.

    Holds everything a stream room needs to make a decision about the
    connection, so the room instance can be recycled between events.
    """
    __tablename__ = "socket_attachments"

    connection_id = Column(String(36), primary_key=True)
    partition_key = Column(String(255), nullable=False, index=True)
    role = Column(String(20), nullable=True)  # None until the first role message
    subject_id = Column(String(255), nullable=True)
    attached_at = Column(BigInteger, nullable=False, default=now_ms)

    def to_dict(self) -> dict:
        return {
            "role": self.role,
            "subject_id": self.subject_id,
            "attached_at": self.attached_at,
        }
