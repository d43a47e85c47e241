from sqlalchemy import Column, Integer, String, Text, DateTime, Enum, Boolean, ForeignKey, JSON
from sqlalchemy.orm import relationship
from datetime import datetime
from enum import Enum as PyEnum
from database import Base

class ActionType(PyEnum):
    UPLOADED = "uploaded"
    APPROVED = "approved"
    FORWARDED = "forwarded"
    REJECTED = "rejected"
    SIGNED = "signed"

class Workflow(Base):
    __tablename__ = 'workflows'

    id = Column(Integer, primary_key=True)
    document_id = Column(Integer, ForeignKey('documents.id'), unique=True, nullable=False)
    step_roles = Column(JSON, nullable=False)
    current_step = Column(Integer, nullable=False, default=0)
    total_steps = Column(Integer, nullable=False)
    is_completed = Column(Boolean, nullable=False, default=False)
    # Bumped on every update; conditional writes compare against it
    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    document = relationship("Document", back_populates="workflow")
    actions = relationship(
        "WorkflowAction",
        back_populates="workflow",
        order_by="WorkflowAction.id",
        cascade="all, delete-orphan"
    )

    @property
    def current_role(self):
        if self.is_completed or self.current_step >= len(self.step_roles):
            return None
        return self.step_roles[self.current_step]

class WorkflowAction(Base):
    __tablename__ = 'workflow_actions'

    id = Column(Integer, primary_key=True)
    workflow_id = Column(Integer, ForeignKey('workflows.id'), nullable=False)
    user_id = Column(Integer, ForeignKey('users.id'), nullable=False)
    actor_role = Column(String, nullable=False)
    action = Column(Enum(ActionType), nullable=False)
    comment = Column(Text, nullable=True)
    step = Column(Integer, nullable=False)
    signature = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    workflow = relationship("Workflow", back_populates="actions")
    user = relationship("User")
