from sqlalchemy import Column, Integer, String, DateTime, Boolean
from datetime import datetime
from database import Base

class VerificationLog(Base):
    """Append-only record of public hash verification attempts."""
    __tablename__ = 'verification_logs'

    id = Column(Integer, primary_key=True)
    document_hash = Column(String(64), nullable=False, index=True)
    ip_address = Column(String, nullable=True)
    user_agent = Column(String, nullable=True)
    is_verified = Column(Boolean, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
