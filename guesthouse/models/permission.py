from sqlalchemy import String, DateTime, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime, timezone
from guesthouse.db.session import Base

class Permission(Base):
    __tablename__ = "permissions"
    __table_args__ = (
        UniqueConstraint("role", "permission_key", name="uq_permission_role_key"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    role: Mapped[str] = mapped_column(String(30), index=True)
    permission_key: Mapped[str] = mapped_column(String(60), index=True)  # e.g. bookings, reports
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
