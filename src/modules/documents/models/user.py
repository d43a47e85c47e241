from sqlalchemy import Column, Integer, String, Enum, DateTime, Boolean
from sqlalchemy.orm import relationship
from enum import Enum as PyEnum
from datetime import datetime
from database import Base

class UserRole(PyEnum):
    STUDENT = "student"
    ACADEMIC_STAFF = "academic_staff"
    DEPARTMENT_HEAD = "department_head"
    DEAN = "dean"
    VICE_CHANCELLOR = "vice_chancellor"
    ASSISTANT_REGISTRAR = "assistant_registrar"
    COURSE_UNIT = "course_unit"
    ADMIN = "admin"

class User(Base):
    __tablename__ = 'users'

    id = Column(Integer, primary_key=True)
    username = Column(String, unique=True, nullable=False)
    full_name = Column(String, nullable=False)
    email = Column(String, unique=True, nullable=False)
    role = Column(Enum(UserRole), nullable=False)

    is_active = Column(Boolean, default=True)
    # Graduated students follow a different transcript path
    is_graduated = Column(Boolean, default=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationship with documents
    documents = relationship("Document", back_populates="user")
