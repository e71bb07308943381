"""Job cost engine services."""

from jobcost_engine.services.state_machine import TimeEntryStateMachine
from jobcost_engine.services.completion_service import CompletionService
from jobcost_engine.services.rate_service import RateService
from jobcost_engine.services.report_service import ReportService
from jobcost_engine.services.settlement_service import SettlementService
from jobcost_engine.services.time_entry_service import TimeEntryService

__all__ = [
    "TimeEntryStateMachine",
    "CompletionService",
    "RateService",
    "ReportService",
    "SettlementService",
    "TimeEntryService",
]
