"""
Approval workflow configuration: ordered approver roles per leave type and/or department
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from leave_mgmt.db.base import Base


class WorkflowConfig(Base):
    """
    leave_type / department_id of NULL mean "any". The most specific active
    config wins when a request is submitted.
    """
    __tablename__ = "workflow_configs"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(200), nullable=False)
    leave_type = Column(String(50), nullable=True)
    department_id = Column(Integer, ForeignKey("departments.id"), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), onupdate=func.current_timestamp(), nullable=False)

    steps = relationship(
        "WorkflowConfigStep",
        back_populates="config",
        cascade="all, delete-orphan",
        order_by="WorkflowConfigStep.step_order",
    )

    @property
    def role_sequence(self):
        return [step.role for step in self.steps]


class WorkflowConfigStep(Base):
    __tablename__ = "workflow_config_steps"

    id = Column(Integer, primary_key=True, index=True)
    config_id = Column(Integer, ForeignKey("workflow_configs.id", ondelete="CASCADE"), nullable=False, index=True)
    step_order = Column(Integer, nullable=False)
    role = Column(String(50), nullable=False)

    config = relationship("WorkflowConfig", back_populates="steps")

    __table_args__ = (
        UniqueConstraint("config_id", "step_order", name="uq_workflow_config_steps_order"),
    )
