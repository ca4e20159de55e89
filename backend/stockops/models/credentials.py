from datetime import datetime
from sqlalchemy import Boolean, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from stockops.core.database import Base


class StoreCredentials(Base):
    """Upstream store API credentials, encrypted at rest."""
    __tablename__ = "store_credentials"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    store_url: Mapped[str] = mapped_column(String(500), nullable=False)
    consumer_key_encrypted: Mapped[str] = mapped_column(Text, nullable=False)
    consumer_secret_encrypted: Mapped[str] = mapped_column(Text, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(default=datetime.utcnow, onupdate=datetime.utcnow)
