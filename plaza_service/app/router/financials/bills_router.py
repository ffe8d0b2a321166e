from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from uuid import UUID

from shared.core.config import settings
from shared.core.database import get_plaza_db as get_db
from shared.core.auth import allow_admin, validate_current_token
from shared.core.schemas import JsonOutResult, UserToken
from shared.helpers.json_response_helper import success_response
from shared.utils.app_status_code import AppStatusCode
from ...crud.financials import bills_crud as crud
from ...crud.financials import bill_lifecycle, bulk_generation
from ...enum.billing_enum import BillKind
from ...schemas.financials.bills_schemas import (
    BillChargesUpdate, BillCreate, BillNumberPreview, BillOut, BillsRequest,
    BillsResponse, BillStatement, BulkGenerateRequest, BulkGenerationResult, StatusChange
)
from ...schemas.financials.terms_schemas import TermsConditionCreate, TermsConditionOut

router = APIRouter(
    prefix="/api/bills",
    tags=["bills"],
    dependencies=[Depends(validate_current_token)]
)


@router.get("/all", response_model=BillsResponse)
def get_bills(
    params: BillsRequest = Depends(),
    db: Session = Depends(get_db),
):
    return crud.get_bills(db, params)


@router.post("/create", response_model=BillOut)
def create_bill(
    bill: BillCreate,
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(validate_current_token)
):
    return crud.create_bill(db, bill, current_user)


@router.post("/generate-bulk", response_model=JsonOutResult[BulkGenerationResult])
def generate_bulk(
    request: BulkGenerateRequest,
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(allow_admin)
):
    result = bulk_generation.generate_all(
        db,
        month=request.month,
        year=request.year,
        due_date=request.due_date,
        business_ids=request.business_ids,
        terms_ids=request.terms_conditions_ids,
        actor=current_user,
    )
    summary = result.model_copy(update={
        "errors": result.errors[:settings.BULK_ERROR_SUMMARY_LIMIT]
    })
    return success_response(
        data=summary,
        message=f"Generated {result.success_count}, skipped {result.skip_count}, failed {result.failed_count}"
    )


@router.get("/next-number", response_model=BillNumberPreview)
def preview_bill_number(
    kind: BillKind = Query(...),
    year: Optional[int] = Query(None),
    db: Session = Depends(get_db),
):
    return BillNumberPreview(bill_number=crud.preview_bill_number(db, kind, year))


@router.get("/terms", response_model=List[TermsConditionOut])
def get_terms(db: Session = Depends(get_db)):
    return crud.get_terms(db)


@router.post("/terms", response_model=TermsConditionOut)
def create_terms(
    terms: TermsConditionCreate,
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(allow_admin)
):
    return crud.create_terms(db, terms)


@router.get("/{bill_id:uuid}", response_model=BillOut)
def get_bill_detail(bill_id: UUID, db: Session = Depends(get_db)):
    return crud.bill_out(crud.get_bill(db, bill_id))


@router.get("/{bill_id:uuid}/statement", response_model=BillStatement)
def get_bill_statement(bill_id: UUID, db: Session = Depends(get_db)):
    return crud.get_bill_statement(db, bill_id)


@router.put("/{bill_id:uuid}/charges", response_model=BillOut)
def update_bill_charges(
    bill_id: UUID,
    changes: BillChargesUpdate,
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(allow_admin)
):
    return crud.update_bill_charges(db, bill_id, changes)


@router.put("/{bill_id:uuid}/status", response_model=BillOut)
def change_bill_status(
    bill_id: UUID,
    change: StatusChange,
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(validate_current_token)
):
    bill = bill_lifecycle.change_bill_status(db, bill_id, change, current_user)
    return crud.bill_out(bill)


@router.delete("/{bill_id:uuid}", response_model=JsonOutResult[None])
def delete_bill(
    bill_id: UUID,
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(allow_admin)
):
    crud.delete_bill(db, bill_id)
    return success_response(message="Bill deleted successfully",
                            status_code=AppStatusCode.OPERATION_SUCCESSFUL)
