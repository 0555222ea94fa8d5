from datetime import datetime

from sqlalchemy import DateTime, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from grade_speeder.db.base_class import Base


class LocalStateEntry(Base):
    __tablename__ = "local_state"

    key: Mapped[str] = mapped_column(String(100), primary_key=True)
    # JSON-encoded; readers fall back to defaults when it does not parse
    value: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now(), nullable=False
    )
