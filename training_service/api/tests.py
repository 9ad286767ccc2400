# training_service/api/tests.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from typing import List, Optional

from training_service.core.database import get_db
from training_service.core.dependencies import get_current_principal
from training_service.core.exceptions import ForbiddenError, NotFoundError, translate_integrity_error
from training_service.db.models import Test as DBTest
from training_service.models.responses import DataResponse
from training_service.models.test import TestDefinition, TestDefinitionCreate, TestType
from training_service.services.access_policy import UNRESTRICTED_ROLES, Principal

router = APIRouter(prefix="/api/tests", tags=["Tests"])


@router.get("", response_model=DataResponse[List[TestDefinition]])
def list_tests(
    test_type: Optional[TestType] = Query(None, alias="type"),
    active_only: bool = Query(True, alias="activeOnly"),
    actor: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    query = db.query(DBTest)
    if active_only:
        query = query.filter(DBTest.is_active.is_(True))
    if test_type:
        query = query.filter(DBTest.test_type == test_type.value)
    rows = [TestDefinition.model_validate(t) for t in query.order_by(DBTest.name.asc()).all()]
    return DataResponse(count=len(rows), data=rows)


@router.get("/{test_id}", response_model=DataResponse[TestDefinition])
def get_test(
    test_id: int,
    actor: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    test = db.query(DBTest).filter(DBTest.id == test_id).first()
    if not test:
        raise NotFoundError("Test not found")
    return DataResponse(data=TestDefinition.model_validate(test))


@router.post("", response_model=DataResponse[TestDefinition], status_code=201)
def create_test_definition(
    payload: TestDefinitionCreate,
    actor: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    if actor.role not in UNRESTRICTED_ROLES:
        raise ForbiddenError("Admin or team admin permission required")

    db_test = DBTest(**payload.model_dump(), created_by=actor.id)
    try:
        db.add(db_test); db.commit(); db.refresh(db_test)
    except IntegrityError as e:
        db.rollback()
        raise translate_integrity_error(e) from e
    return DataResponse(message="Test created", data=TestDefinition.model_validate(db_test))
