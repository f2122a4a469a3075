# backend/models/counter.py
from sqlalchemy import Column, Integer, String
from database import Base

# Last number issued per document series, e.g. "ADJ-2026" -> 17.
# Incremented in SQL inside the caller's transaction, so the row lock
# serializes concurrent writers.
class DocumentCounter(Base):
    __tablename__ = "document_counters"

    name = Column(String(50), primary_key=True)
    current_value = Column(Integer, nullable=False, default=0)
