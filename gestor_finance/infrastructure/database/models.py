"""SQLAlchemy ORM models backing the record store"""

from sqlalchemy import Column, DateTime, Integer, JSON, Text
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()


class StoredRecord(Base):
    """One record of a named collection, kept as a JSON payload"""

    __tablename__ = "stored_record"

    collection = Column(Text, primary_key=True)
    id = Column(Text, primary_key=True)
    position = Column(Integer, nullable=False)  # Insertion order inside the collection
    payload = Column(JSON, nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())
