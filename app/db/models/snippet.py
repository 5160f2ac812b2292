from sqlalchemy import Column, String, Text, Index

from app.db.base import Base, UTCDateTime


class Snippet(Base):
    __tablename__ = "snippets"

    id = Column(String(64), primary_key=True)
    content = Column(Text, nullable=False)
    password_hash = Column(String(255), nullable=False)
    created_at = Column(UTCDateTime, nullable=False)
    modified_at = Column(UTCDateTime, nullable=False)
    expires_at = Column(UTCDateTime, nullable=False)

    __table_args__ = (
        Index("ix_snippets_expires_at", "expires_at"),
        Index("ix_snippets_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return f"Snippet(id={self.id}, expires_at={self.expires_at})"
