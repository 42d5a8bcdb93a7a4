from sqlalchemy import Column, Integer, String, Date, DateTime, Enum as SQLEnum, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum
from app.database import Base


class EmployeeStatus(str, enum.Enum):
    active = "active"
    on_leave = "on_leave"
    resigned = "resigned"


class Employee(Base):
    __tablename__ = "employees"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, unique=True)
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False, default="")
    email = Column(String, index=True, nullable=True)
    division = Column(String, nullable=True)
    position = Column(String, nullable=True)
    join_date = Column(Date, nullable=True)
    status = Column(SQLEnum(EmployeeStatus), default=EmployeeStatus.active, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("User", back_populates="employee_profile")
    evaluations = relationship(
        "EmployeeEvaluation", back_populates="employee", cascade="all", passive_deletes=True
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def __repr__(self):
        return f"<Employee {self.id}: {self.full_name} ({self.status.value})>"
