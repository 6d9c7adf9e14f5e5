"""
Granular permission grants for junior administrators.
"""

from sqlalchemy import String, ForeignKey, Uuid, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from homesapp.database import Base
import uuid

KNOWN_PERMISSIONS = (
    "properties:read",
    "properties:write",
    "properties:approve",
    "users:read",
    "users:approve",
    "appointments:manage",
    "offers:manage",
    "commissions:manage",
    "accounting:read",
)


class Permission(Base):
    __tablename__ = "permissions"

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    permission: Mapped[str] = mapped_column(String(80), nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "permission", name="uq_user_permission"),
    )

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "user_id": str(self.user_id),
            "permission": self.permission,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
