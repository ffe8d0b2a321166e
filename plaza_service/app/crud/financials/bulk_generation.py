import logging
from datetime import date
from typing import List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from shared.core.exceptions import DuplicateRecord
from shared.core.schemas import UserToken
from ...enum.billing_enum import BillKind, BusinessStatus
from ...models.tenants.businesses import Business
from ...schemas.financials.bills_schemas import (
    BulkGenerationResult, BusinessGenerationError, SkippedBusiness
)
from . import advances_crud, bills_crud
from .charges import compute_charges, obligation_for

logger = logging.getLogger(__name__)


def rent_cohort(db: Session, business_ids: Optional[List[UUID]] = None) -> List[Business]:
    query = db.query(Business)
    if business_ids:
        query = query.filter(Business.id.in_(business_ids))
    else:
        query = query.filter(
            Business.status == BusinessStatus.active.value,
            Business.rent_management == True,
        )
    return query.order_by(Business.floor_number, Business.shop_number).all()


def generate_all(
    db: Session,
    month: int,
    year: int,
    due_date: date,
    business_ids: Optional[List[UUID]] = None,
    terms_ids: Optional[List[UUID]] = None,
    bill_date: Optional[date] = None,
    actor: Optional[UserToken] = None,
) -> BulkGenerationResult:
    """
    Generates the rent bill of the period for every business in the cohort.

    Each business is committed on its own. A failure rolls back only that
    business and is reported in `errors`; the run always continues.
    Scheduled runs pass no `actor`.
    """
    bill_date = bill_date or date.today()
    result = BulkGenerationResult()
    terms_ids, terms_text = bills_crud.render_terms(db, terms_ids)

    cohort = rent_cohort(db, business_ids)
    # plain values, the ORM instances expire on every rollback
    targets = [(b.id, b.name) for b in cohort]
    logger.info("Rent generation for %s/%s over %s business(es)", month, year, len(targets))

    for business_id, business_name in targets:
        try:
            business = db.query(Business).filter(Business.id == business_id).one()

            gross = compute_charges(BillKind.rent, base_rent=business.rent_amount)
            resolution = advances_crud.resolve(
                db, business.id, BillKind.rent, month, year,
                obligation_for(BillKind.rent, gross),
            )
            if resolution.blocks_generation:
                result.skipped.append(SkippedBusiness(
                    business_id=business_id, business_name=business_name,
                    reason=f"Advance of {resolution.advance_amount} covers the full rent",
                ))
                logger.warning("Skipped %s: advance covers the rent", business_name)
                continue

            if bills_crud.find_existing_bill(db, business.id, BillKind.rent, month, year):
                result.skipped.append(SkippedBusiness(
                    business_id=business_id, business_name=business_name,
                    reason="Bill already exists for the period",
                ))
                continue

            breakdown = compute_charges(
                BillKind.rent, base_rent=business.rent_amount, advance_offset=resolution.offset
            )
            bill = bills_crud.insert_bill(
                db, business, BillKind.rent, month, year,
                bill_date=bill_date,
                due_date=due_date,
                breakdown=breakdown,
                advance_offset=resolution.offset,
                terms_ids=terms_ids,
                terms_text=terms_text,
            )
            if resolution.advance_id:
                advances_crud.mark_applied(db, resolution.advance_id, bill.id)
            bills_crud.log_bill_generated(db, bill, business, actor)
            db.commit()

            result.generated_bill_numbers.append(bill.bill_number)
        except DuplicateRecord:
            # another run created it first
            db.rollback()
            result.skipped.append(SkippedBusiness(
                business_id=business_id, business_name=business_name,
                reason="Bill already exists for the period",
            ))
        except Exception as e:
            db.rollback()
            logger.exception("Rent bill generation failed for %s", business_name)
            result.errors.append(BusinessGenerationError(
                business_id=business_id, business_name=business_name, message=str(e),
            ))

    result.success_count = len(result.generated_bill_numbers)
    result.skip_count = len(result.skipped)
    result.failed_count = len(result.errors)

    logger.info("Rent generation for %s/%s: %s generated, %s skipped, %s failed",
                month, year, result.success_count, result.skip_count, result.failed_count)
    return result
