# Import all models to ensure they are registered with SQLAlchemy
from .tenants.businesses import Business
from .financials.bills import Bill
from .financials.payments import Payment
from .financials.advances import Advance
from .financials.partial_payments import PartialPayment, PartialPaymentEntry
from .financials.terms_conditions import TermsCondition
from .energy.meter_readings import MeterReading
from .system.activity_logs import ActivityLog
