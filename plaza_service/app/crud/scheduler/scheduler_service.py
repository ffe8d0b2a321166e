import logging
from datetime import date, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from shared.core.config import settings
from ...models.financials.terms_conditions import TermsCondition
from ..financials import bill_lifecycle, bulk_generation

logger = logging.getLogger(__name__)


def process_scheduled_rent_bills(db: Session, today: Optional[date] = None) -> dict:
    today = today or date.today()

    # =====================================================
    # 1️⃣ ONLY ON THE CONFIGURED GENERATION DAY
    # =====================================================
    if not settings.RENT_BILL_GENERATION_DAY:
        logger.info("No rent generation day configured, nothing generated")
        return {"message": "No rent bill generation day configured", "generated": 0}

    if today.day != settings.RENT_BILL_GENERATION_DAY:
        logger.info("Not the rent generation day (%s), nothing generated",
                    settings.RENT_BILL_GENERATION_DAY)
        return {
            "message": f"Rent bills are generated on day {settings.RENT_BILL_GENERATION_DAY} of the month",
            "generated": 0,
        }

    # =====================================================
    # 2️⃣ GENERATE WITH EVERY TERM SELECTED
    # =====================================================
    terms_ids = [t.id for t in db.query(TermsCondition.id).all()]
    result = bulk_generation.generate_all(
        db,
        month=today.month,
        year=today.year,
        due_date=today + timedelta(days=settings.RENT_BILL_DUE_DAYS),
        terms_ids=terms_ids,
        bill_date=today,
    )

    return {
        "message": f"Generated {result.success_count} rent bill(s) for {today.month}/{today.year}",
        "generated": result.success_count,
        "skipped": result.skip_count,
        "failed": result.failed_count,
        "errors": [e.model_dump(mode="json") for e in result.errors[:settings.BULK_ERROR_SUMMARY_LIMIT]],
    }


def process_overdue_bills(db: Session, today: Optional[date] = None) -> dict:
    count = bill_lifecycle.mark_overdue_bills(db, today)
    return {"message": f"Marked {count} bill(s) overdue", "updated": count}
