from enum import Enum


class BillKind(str, Enum):
    rent = "rent"
    maintenance = "maintenance"
    electricity = "electricity"
    gas = "gas"
    combined = "combined"


class BillStatus(str, Enum):
    pending = "pending"
    paid = "paid"
    overdue = "overdue"
    waveoff = "waveoff"


class AdvanceType(str, Enum):
    rent = "rent"
    electricity = "electricity"
    maintenance = "maintenance"


class AdvanceStatus(str, Enum):
    active = "active"
    used = "used"
    cancelled = "cancelled"


class PartialPaymentStatus(str, Enum):
    active = "active"
    completed = "completed"
    cancelled = "cancelled"


class MeterType(str, Enum):
    electricity = "electricity"
    gas = "gas"


class PaymentMethod(str, Enum):
    cash = "cash"
    cheque = "cheque"
    bank_transfer = "bank_transfer"
    upi = "upi"
    card = "card"


class PaymentApprovalStatus(str, Enum):
    approved = "approved"
    pending_approval = "pending_approval"
    rejected = "rejected"


class BusinessStatus(str, Enum):
    active = "active"
    inactive = "inactive"
    terminated = "terminated"


BILL_NUMBER_PREFIXES = {
    BillKind.rent: "RENT",
    BillKind.electricity: "ELE",
    BillKind.gas: "GAS",
    BillKind.maintenance: "MAIN",
    BillKind.combined: "COMB",
}

METER_READING_PREFIXES = {
    MeterType.electricity: "ELE-MR",
    MeterType.gas: "GAS-MR",
}

# bill kinds that can be offset by an advance of the same name
ADVANCE_TYPE_FOR_KIND = {
    BillKind.rent: AdvanceType.rent,
    BillKind.electricity: AdvanceType.electricity,
    BillKind.maintenance: AdvanceType.maintenance,
}


class ActivityAction(str, Enum):
    bill_generated = "bill_generated"
    bill_status_changed = "bill_status_changed"
    meter_reading_status_changed = "meter_reading_status_changed"
    payment_recorded = "payment_recorded"
    payment_approved = "payment_approved"
    payment_rejected = "payment_rejected"
    advance_created = "advance_created"
    instalment_payment = "instalment_payment"


class ActivityEntity(str, Enum):
    bill = "bill"
    meter_reading = "meter_reading"
    payment = "payment"
    advance = "advance"
    partial_payment = "partial_payment"
