# db/models.py
from datetime import datetime, timezone

from sqlalchemy import (
    Column, Integer, String, Text, Boolean, Date, DateTime, ForeignKey, Float, Index, CheckConstraint
)
from sqlalchemy.orm import relationship
from training_service.core.database import Base

TEST_TYPES = ("strength", "speed", "endurance", "agility", "technique", "power", "reaction", "coordination")
TEST_UNITS = ("kg", "reps", "sec", "min", "cm", "m", "km/h", "score", "percent")


def utcnow():
    # Python-side so ordering by created_at keeps sub-second resolution on every backend
    return datetime.now(timezone.utc)


def _in_values(column: str, values) -> str:
    quoted = ", ".join(f"'{v}'" for v in values)
    return f"{column} IN ({quoted})"


# Test definitions
class Test(Base):
    __tablename__ = 'tests'

    id           = Column(Integer, primary_key=True, index=True)
    name         = Column(String(100), unique=True, nullable=False)
    description  = Column(Text)
    test_type    = Column(String(50), nullable=False)
    unit         = Column(String(20), nullable=False)
    instructions = Column(Text)
    is_active    = Column(Boolean, nullable=False, default=True)
    created_by   = Column(Integer)
    created_at   = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at   = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    # Relationships
    results = relationship("TestResult", back_populates="test", passive_deletes=True)

    __table_args__ = (
        CheckConstraint(_in_values("test_type", TEST_TYPES), name="ck_tests_test_type"),
        CheckConstraint(_in_values("unit", TEST_UNITS), name="ck_tests_unit"),
    )


# Test results
class TestResult(Base):
    __tablename__ = 'test_results'

    id                     = Column(Integer, primary_key=True, index=True)
    test_id                = Column(Integer, ForeignKey('tests.id'), nullable=False)
    user_id                = Column(Integer, nullable=False)
    team_id                = Column(Integer, nullable=True)
    test_date              = Column(Date, nullable=False)
    result                 = Column(Float, nullable=False)
    unit                   = Column(String(20), nullable=False)
    test_type              = Column(String(50), nullable=False)
    notes                  = Column(Text)
    comparison_to_previous = Column(Float, nullable=True)
    created_by             = Column(Integer)
    updated_by             = Column(Integer)
    created_at             = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at             = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    # Relationships
    test = relationship("Test", back_populates="results")

    # Indexes
    __table_args__ = (
        Index('idx_test_results_user_test', 'user_id', 'test_id'),
        Index('idx_test_results_team_test', 'team_id', 'test_id'),
        CheckConstraint(_in_values("test_type", TEST_TYPES), name="ck_test_results_test_type"),
        CheckConstraint(_in_values("unit", TEST_UNITS), name="ck_test_results_unit"),
    )

    @property
    def test_name(self):
        return self.test.name if self.test is not None else None
