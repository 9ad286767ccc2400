# training_service/models/test.py
from datetime import date, datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field, model_validator


class TestType(str, Enum):
    strength = "strength"
    speed = "speed"
    endurance = "endurance"
    agility = "agility"
    technique = "technique"
    power = "power"
    reaction = "reaction"
    coordination = "coordination"


class TestUnit(str, Enum):
    kg = "kg"
    reps = "reps"
    sec = "sec"
    min = "min"
    cm = "cm"
    m = "m"
    kmh = "km/h"
    score = "score"
    percent = "percent"


# ----------------------------
# Test definitions
# ----------------------------
class TestDefinitionBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    test_type: TestType
    unit: TestUnit
    instructions: Optional[str] = None

    model_config = {"use_enum_values": True}

class TestDefinitionCreate(TestDefinitionBase):
    pass

class TestDefinition(TestDefinitionBase):
    id: int
    is_active: bool
    created_by: Optional[int] = None
    created_at: datetime

    model_config = {"from_attributes": True, "use_enum_values": True}


# ----------------------------
# Test results
# ----------------------------
class TestResultCreate(BaseModel):
    test_id: int = Field(..., ge=1)
    user_id: int = Field(..., ge=1)
    team_id: Optional[int] = Field(None, ge=1)
    test_date: date      # "yyyy-mm-dd"
    result: float
    unit: TestUnit
    test_type: TestType
    notes: Optional[str] = None

    # comparison_to_previous is derived and never accepted from a client
    model_config = {"extra": "forbid", "use_enum_values": True}


class TestResultUpdate(BaseModel):
    """
    Partial update of a test result.

    Only the fields listed here can change; ``id``, ``created_at``, ``created_by``
    and the derived comparison are never writable. A changed ``result`` is
    compared against the stored ``user_id``/``test_id`` pair, before any
    reassignment in the same update is applied.
    Unknown keys are rejected, and only fields the client actually sent are
    applied.
    """
    user_id: Optional[int] = Field(None, ge=1)
    test_id: Optional[int] = Field(None, ge=1)
    team_id: Optional[int] = Field(None, ge=1)
    test_date: Optional[date] = None
    result: Optional[float] = None
    unit: Optional[TestUnit] = None
    test_type: Optional[TestType] = None
    notes: Optional[str] = None

    model_config = {"extra": "forbid", "use_enum_values": True}

    @model_validator(mode="after")
    def _required_columns_not_null(self):
        for name in ("user_id", "test_id", "test_date", "result", "unit", "test_type"):
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True)


class TestResult(BaseModel):
    id: int
    test_id: int
    test_name: Optional[str] = None
    user_id: int
    team_id: Optional[int] = None
    test_date: date
    result: float
    unit: str
    test_type: str
    notes: Optional[str] = None
    comparison_to_previous: Optional[float] = None
    created_by: Optional[int] = None
    updated_by: Optional[int] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
