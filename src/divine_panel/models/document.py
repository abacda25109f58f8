# src/divine_panel/models/document.py
"""Storage model backing the persistence port."""


from sqlalchemy import BigInteger, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from divine_panel.db.session import Base


class StoredDocument(Base):
    """A whole aggregate serialized as JSON, overwritten on every save.

    One row per aggregate key (`site_state`, `access`); the body is opaque to
    the storage layer.
    """

    __tablename__ = "documents"

    key: Mapped[str] = mapped_column(String(64), primary_key=True)
    body: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
