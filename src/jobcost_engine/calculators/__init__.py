"""Job costing calculators."""

from jobcost_engine.calculators.completion import ProjectCompletion, project_completion
from jobcost_engine.calculators.cost_calculator import (
    LaborCostBreakdown,
    entry_cost,
    rate_reference_date,
    total_labor_cost,
)
from jobcost_engine.calculators.financials import ProfitAnalysis, ProjectFinancials
from jobcost_engine.calculators.rate_resolver import RateResolver
from jobcost_engine.calculators.types import HourBreakdown, RateResolution

__all__ = [
    "HourBreakdown",
    "LaborCostBreakdown",
    "ProfitAnalysis",
    "ProjectCompletion",
    "ProjectFinancials",
    "RateResolution",
    "RateResolver",
    "entry_cost",
    "project_completion",
    "rate_reference_date",
    "total_labor_cost",
]
