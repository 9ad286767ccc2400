# models/__init__.py
"""
Pydantic models for request/response validation
"""

from .responses import (
    BaseResponse,
    DataResponse,
    ErrorResponse
)

from .test import (
    TestType,
    TestUnit,
    TestDefinitionBase,
    TestDefinitionCreate,
    TestDefinition,
    TestResultCreate,
    TestResultUpdate,
    TestResult
)

__all__ = [
    # Envelopes
    "BaseResponse",
    "DataResponse",
    "ErrorResponse",

    # Tests
    "TestType",
    "TestUnit",
    "TestDefinitionBase",
    "TestDefinitionCreate",
    "TestDefinition",

    # Test results
    "TestResultCreate",
    "TestResultUpdate",
    "TestResult"
]
