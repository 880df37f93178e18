"""XBRL concept → canonical base metric mappings for insurance filers.

Two-layer architecture:
  Layer 1: Canonical schema  (base metric name → storage unit)
  Layer 2: Synonym mapping   (each canonical maps to ordered XBRL tags)

Aliases are ordered most-authoritative first. The extractor takes the first
alias that yields data and never merges across aliases, so the order here is
policy: a carrier that switched tags mid-history keeps the preferred tag's
series rather than a spliced one.

Segment-specific behaviour (which ratios apply, which growth metric to track)
lives next to the segment enum so every gate reads from one place.
"""

from __future__ import annotations

from enum import Enum
from typing import NamedTuple


# ═══════════════════════════════════════════════════════════════════════════
#  Industry segments
# ═══════════════════════════════════════════════════════════════════════════

class Segment(str, Enum):
    PROPERTY_CASUALTY = "P&C"
    LIFE = "Life"
    HEALTH = "Health"
    REINSURANCE = "Reinsurance"
    BROKERS = "Brokers"
    TITLE = "Title"
    MORTGAGE_INSURANCE = "Mortgage Insurance"


# Loss / expense / combined ratios only mean something for these
UNDERWRITING_SEGMENTS: frozenset[Segment] = frozenset({
    Segment.PROPERTY_CASUALTY,
    Segment.REINSURANCE,
})

# Segment → (base metric tracked for growth, growth metric name).
# Segments measured by capital return rather than volume are absent.
GROWTH_METRICS: dict[Segment, tuple[str, str]] = {
    Segment.PROPERTY_CASUALTY: ("net_premiums_earned", "premium_growth_yoy"),
    Segment.REINSURANCE: ("net_premiums_earned", "premium_growth_yoy"),
    Segment.HEALTH: ("revenue", "revenue_growth_yoy"),
    Segment.BROKERS: ("revenue", "revenue_growth_yoy"),
}


# SIC-based classification, used when a company row carries no segment
_SIC_SEGMENTS: dict[int, Segment] = {
    6311: Segment.LIFE,
    6321: Segment.HEALTH,
    6324: Segment.HEALTH,
    6331: Segment.PROPERTY_CASUALTY,
    6351: Segment.MORTGAGE_INSURANCE,
    6361: Segment.TITLE,
    6399: Segment.REINSURANCE,
    6411: Segment.BROKERS,
}


def detect_segment(sic_code: str | int | None) -> Segment:
    """Map a SIC code to a Segment, defaulting to P&C."""
    if sic_code is None:
        return Segment.PROPERTY_CASUALTY
    try:
        sic = int(str(sic_code).strip())
    except (ValueError, TypeError):
        return Segment.PROPERTY_CASUALTY
    return _SIC_SEGMENTS.get(sic, Segment.PROPERTY_CASUALTY)


# ═══════════════════════════════════════════════════════════════════════════
#  Concept entry
# ═══════════════════════════════════════════════════════════════════════════

class ConceptEntry(NamedTuple):
    metric_name: str            # canonical base metric
    aliases: tuple[str, ...]    # XBRL tags, most authoritative first
    unit_key: str = "USD"       # preferred companyfacts unit bucket
    taxonomy: str = "us-gaap"
    cover_page: bool = False    # dated at the cover page, not the period end


# Periodic forms worth ingesting, in processing order
ANNUAL_FORM = "10-K"
QUARTERLY_FORM = "10-Q"
PERIODIC_FORMS: tuple[str, ...] = (ANNUAL_FORM, QUARTERLY_FORM)


# ═══════════════════════════════════════════════════════════════════════════
#  Base metrics
#  Entries sharing a metric_name are consulted in list order: earlier entries
#  win per period, later ones only fill gaps.
# ═══════════════════════════════════════════════════════════════════════════

CONCEPTS: list[ConceptEntry] = [
    ConceptEntry("net_premiums_earned", (
        "PremiumsEarnedNet",
        "NetPremiumsEarned",
        "PremiumsEarned",
        "PremiumsEarnedNetPropertyAndCasualty",
        "SupplementaryInsuranceInformationPremiumRevenue",
    )),
    ConceptEntry("losses_incurred", (
        "PolicyholderBenefitsAndClaimsIncurredNet",
        "IncurredClaimsPropertyCasualtyAndLiability",
        "LossesAndLossAdjustmentExpense",
        "LiabilityForUnpaidClaimsAndClaimsAdjustmentExpenseIncurredClaims1",
    )),
    ConceptEntry("net_income", (
        "NetIncomeLoss",
        "ProfitLoss",
        "NetIncomeLossAvailableToCommonStockholdersBasic",
    )),
    ConceptEntry("stockholders_equity", (
        "StockholdersEquity",
        "StockholdersEquityIncludingPortionAttributableToNoncontrollingInterest",
    )),
    ConceptEntry("total_assets", ("Assets",)),
    ConceptEntry("total_liabilities", ("Liabilities",)),
    ConceptEntry("eps", (
        "EarningsPerShareDiluted",
        "EarningsPerShareBasic",
    ), unit_key="USD/shares"),
    ConceptEntry("shares_outstanding", (
        "EntityCommonStockSharesOutstanding",
    ), unit_key="shares", taxonomy="dei", cover_page=True),
    ConceptEntry("shares_outstanding", (
        "CommonStockSharesOutstanding",
        "WeightedAverageNumberOfShareOutstandingBasicAndDiluted",
        "WeightedAverageNumberOfSharesOutstandingBasic",
    ), unit_key="shares"),
    ConceptEntry("investment_income", (
        "NetInvestmentIncome",
        "InvestmentIncomeNet",
        "InvestmentIncomeInterestAndDividend",
    )),
    ConceptEntry("total_debt", (
        "LongTermDebt",
        "LongTermDebtAndCapitalLeaseObligations",
        "LongTermDebtNoncurrent",
        "DebtInstrumentCarryingAmount",
        "DebtLongtermAndShorttermCombinedAmount",
        "DebtAndCapitalLeaseObligations",
        "SeniorLongTermNotes",
        "SeniorNotes",
    )),
    ConceptEntry("revenue", (
        "Revenues",
        "RevenueFromContractWithCustomerExcludingAssessedTax",
        "HealthCareOrganizationRevenue",
        "RevenueFromContractWithCustomerIncludingAssessedTax",
    )),
    ConceptEntry("medical_claims_expense", (
        "PolicyholderBenefitsAndClaimsIncurredHealthCare",
        "BenefitExpenseHealthCareOrganizations",
        "PolicyholderBenefitsAndClaimsIncurredNet",
        "HealthCareCostsBenefitExpense",
    )),
    ConceptEntry("acquisition_costs", (
        "DeferredPolicyAcquisitionCostAmortizationExpense",
        "PolicyAcquisitionCosts",
        "AmortizationOfDeferredPolicyAcquisitionCosts",
        "SupplementaryInsuranceInformationAmortizationOfDeferredPolicyAcquisitionCosts",
    )),
    ConceptEntry("underwriting_expenses", (
        "UnderwritingExpenses",
        "OtherUnderwritingExpense",
        "GeneralAndAdministrativeExpense",
        "SellingGeneralAndAdministrativeExpense",
        "SupplementaryInsuranceInformationOtherOperatingExpense",
    )),
]

BASE_METRICS: tuple[str, ...] = tuple(dict.fromkeys(c.metric_name for c in CONCEPTS))


def concepts_for(metric_name: str) -> list[ConceptEntry]:
    """All concept entries feeding *metric_name*, in priority order."""
    return [c for c in CONCEPTS if c.metric_name == metric_name]
