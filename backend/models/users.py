# backend/models/users.py
from sqlalchemy import Column, Integer, String
from database import Base

# Actor recorded on movements, receipts and audit log entries
class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, nullable=False, index=True)
    role = Column(String, nullable=False, default="WAREHOUSE")
    first_name = Column(String, nullable=True)
    last_name = Column(String, nullable=True)
