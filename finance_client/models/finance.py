"""
Finance Domain Models

Typed schemas for every payload the backend returns. Responses are
decoded into these models right after JSON parsing, so a malformed
payload fails at the client boundary instead of deep inside UI code.

Amounts are JSON numbers on the wire and stay floats here; formatting
and business validation belong to the callers.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import Field, field_validator

from finance_client.models.base import ApiModel, RequestModel


# =============================================================================
# ENUMS
# =============================================================================

class TransactionType(str, Enum):
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"


class PaymentMethodType(str, Enum):
    CASH = "CASH"
    DEBIT_CARD = "DEBIT_CARD"
    CREDIT_CARD = "CREDIT_CARD"
    BANK_ACCOUNT = "BANK_ACCOUNT"
    OTHER = "OTHER"


class CreditAccountKind(str, Enum):
    CREDIT_CARD = "CREDIT_CARD"
    LOAN = "LOAN"


class PayoutSchedule(str, Enum):
    MONTHLY = "MONTHLY"
    QUARTERLY = "QUARTERLY"
    AT_MATURITY = "AT_MATURITY"
    CUSTOM = "CUSTOM"


class GoalStatus(str, Enum):
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    CANCELED = "CANCELED"


class InvestmentAssetType(str, Enum):
    STOCK = "STOCK"
    BOND = "BOND"
    ETF = "ETF"
    CRYPTO = "CRYPTO"
    OTHER = "OTHER"
    # Only returned by search
    FUTURES = "FUTURES"


class PopularCategory(str, Enum):
    POPULAR = "popular"
    FALLING = "falling"
    RISING = "rising"
    DIVIDEND = "dividend"


class CandleInterval(str, Enum):
    ONE_MIN = "1_MIN"
    FIVE_MIN = "5_MIN"
    FIFTEEN_MIN = "15_MIN"
    HOUR = "HOUR"
    DAY = "DAY"


# =============================================================================
# GENERIC RESPONSES
# =============================================================================

class MessageResponse(ApiModel):
    message: str = ""


class HealthStatus(ApiModel):
    status: str
    message: Optional[str] = None


# =============================================================================
# CATEGORIES & PAYMENT METHODS
# =============================================================================

class Category(ApiModel):
    id: int
    type: TransactionType
    name: str
    icon_key: Optional[str] = None
    parent_id: Optional[int] = None
    sort_order: Optional[int] = None
    is_system: Optional[bool] = None


class PaymentMethod(ApiModel):
    id: int
    type: PaymentMethodType
    name: str
    icon_key: Optional[str] = None
    sort_order: Optional[int] = None
    is_system: Optional[bool] = None
    credit_account_id: Optional[int] = None


# =============================================================================
# CREDITS & DEPOSITS
# =============================================================================

class CreditAccount(ApiModel):
    id: int
    kind: CreditAccountKind
    name: str
    currency: str
    principal: Optional[float] = None
    current_balance: float
    credit_limit: Optional[float] = None
    billing_day: Optional[int] = None
    interest_rate: Optional[float] = None
    payment_day: Optional[int] = None
    next_payment_at: Optional[datetime] = None
    minimum_payment: Optional[float] = None


class CreditAccountCreate(RequestModel):
    kind: CreditAccountKind
    name: str
    currency: Optional[str] = None
    principal: Optional[float] = None
    current_balance: Optional[float] = None
    credit_limit: Optional[float] = None
    billing_day: Optional[int] = None
    interest_rate: Optional[float] = None
    payment_day: Optional[int] = None
    next_payment_at: Optional[datetime] = None
    minimum_payment: Optional[float] = None
    opened_at: Optional[datetime] = None


class CreditAccountUpdate(RequestModel):
    name: Optional[str] = None
    principal: Optional[float] = None
    current_balance: Optional[float] = None
    credit_limit: Optional[float] = None
    billing_day: Optional[int] = None
    interest_rate: Optional[float] = None
    payment_day: Optional[int] = None
    next_payment_at: Optional[datetime] = None
    minimum_payment: Optional[float] = None


class DepositAccount(ApiModel):
    id: int
    name: str
    currency: str
    principal: float
    interest_rate: float
    payout_schedule: PayoutSchedule
    next_payout_at: Optional[datetime] = None
    maturity_at: Optional[datetime] = None


class DepositAccountCreate(RequestModel):
    name: str
    principal: float
    interest_rate: float
    currency: Optional[str] = None
    payout_schedule: Optional[PayoutSchedule] = None
    next_payout_at: Optional[datetime] = None
    maturity_at: Optional[datetime] = None


class DepositAccountUpdate(RequestModel):
    name: Optional[str] = None
    principal: Optional[float] = None
    interest_rate: Optional[float] = None
    payout_schedule: Optional[PayoutSchedule] = None
    next_payout_at: Optional[datetime] = None
    maturity_at: Optional[datetime] = None


# =============================================================================
# GOALS
# =============================================================================

class GoalContribution(ApiModel):
    id: str
    amount: float
    currency: str
    occurred_at: Optional[datetime] = None
    note: Optional[str] = None
    created_at: Optional[datetime] = None


class Goal(ApiModel):
    id: int
    name: str
    target_amount: float
    currency: str
    target_date: Optional[str] = None
    status: GoalStatus
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    current_amount: float
    remaining_amount: float
    progress_percent: float
    contributions: list[GoalContribution] = Field(default_factory=list)


class GoalCreate(RequestModel):
    name: str
    target_amount: float
    currency: Optional[str] = None
    target_date: Optional[str] = None


class GoalUpdate(RequestModel):
    """Pass target_date=None explicitly to clear the goal's deadline."""

    name: Optional[str] = None
    target_amount: Optional[float] = None
    currency: Optional[str] = None
    target_date: Optional[str] = None


class GoalContributionCreate(RequestModel):
    amount: float
    currency: Optional[str] = None
    occurred_at: Optional[datetime] = None
    note: Optional[str] = None


# =============================================================================
# TRANSACTIONS
# =============================================================================

class EntityRef(ApiModel):
    id: int
    name: str


class Transaction(ApiModel):
    # bigint on the server, serialized as a string
    id: str
    type: TransactionType
    amount: float
    currency: str
    occurred_at: datetime
    note: Optional[str] = None
    category_id: Optional[int] = None
    payment_method_id: Optional[int] = None
    category: Optional[EntityRef] = None
    payment_method: Optional[EntityRef] = None


class TransactionCreate(RequestModel):
    type: TransactionType
    amount: float
    occurred_at: datetime
    currency: Optional[str] = None
    note: Optional[str] = None
    category_id: Optional[int] = None
    payment_method_id: Optional[int] = None


class Pagination(ApiModel):
    page: int
    limit: int
    total: int
    total_pages: int


class ListTransactionsResponse(ApiModel):
    data: list[Transaction]
    pagination: Pagination


class AnalyticsPeriod(ApiModel):
    from_: str = Field(alias="from")
    to: str
    timezone: str


class AnalyticsTotals(ApiModel):
    income: float
    expense: float
    total: float


class DonutChart(ApiModel):
    income_percent: float
    expense_percent: float


class CategoryBreakdown(ApiModel):
    category_id: int
    category_name: str
    amount: float
    percent: float


class AnalyticsBreakdown(ApiModel):
    income: list[CategoryBreakdown] = Field(default_factory=list)
    expense: list[CategoryBreakdown] = Field(default_factory=list)


class TransactionsAnalyticsResponse(ApiModel):
    period: AnalyticsPeriod
    totals: AnalyticsTotals
    donut_chart: DonutChart
    breakdown: AnalyticsBreakdown


# =============================================================================
# INVESTMENTS
# =============================================================================

class AssetSearchResult(ApiModel):
    symbol: str
    name: str
    type: InvestmentAssetType
    currency: str
    exchange: Optional[str] = None


class InvestmentPortfolioAsset(ApiModel):
    asset_id: int
    symbol: str
    name: str
    asset_type: str
    currency: str
    exchange: Optional[str] = None
    total_quantity: float
    average_buy_price: float
    total_cost: float
    current_value: Optional[float] = None
    pnl_value: Optional[float] = None
    pnl_percent: Optional[float] = None


class InvestmentsPortfolioResponse(ApiModel):
    assets: list[InvestmentPortfolioAsset]
    total_cost: float
    total_current_value: Optional[float] = None
    total_pnl_value: Optional[float] = None
    total_pnl_percent: Optional[float] = None


class PopularAsset(ApiModel):
    ticker: str
    name: str
    price: float
    change: float
    change_percent: float
    currency: str
    exchange: Optional[str] = None
    type: str
    logo: Optional[str] = None


class Candle(ApiModel):
    time: datetime
    open: float
    high: float
    low: float
    close: float
    volume: float


class AssetQuote(ApiModel):
    ticker: str
    name: str
    price: float
    currency: str
    exchange: Optional[str] = None
    timestamp: datetime


class InvestmentAssetCreate(RequestModel):
    ticker_or_name: str
    asset_type: Optional[InvestmentAssetType] = None
    exchange: Optional[str] = None


class InvestmentLotCreate(RequestModel):
    asset_id: int
    quantity: float
    price_per_unit: float
    bought_at: datetime
    fees: Optional[float] = None


class MarketNewsItem(ApiModel):
    id: str
    title: str
    content: str
    source: Optional[str] = None
    source_url: Optional[str] = None
    published_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator("published_at", mode="before")
    @classmethod
    def default_missing_date(cls, v: Any) -> Any:
        """Some news sources omit the date; treat the item as just published."""
        return v if v else datetime.now(timezone.utc)


# =============================================================================
# BROKER INTEGRATION
# =============================================================================

class BrokerTokenRequest(RequestModel):
    token: str


class BrokerPosition(ApiModel):
    figi: Optional[str] = None
    ticker: str
    name: Optional[str] = None
    instrument_type: Optional[str] = None
    quantity: float
    average_price: Optional[float] = None
    current_price: Optional[float] = None
    currency: Optional[str] = None
    expected_yield: Optional[float] = None


class BrokerPortfolio(ApiModel):
    positions: list[BrokerPosition] = Field(default_factory=list)
    total_amount: Optional[float] = None
    expected_yield: Optional[float] = None
    currency: Optional[str] = None


# =============================================================================
# AI CHAT
# =============================================================================

class ChartSlice(ApiModel):
    name: str
    value: float


class ChartDateRange(ApiModel):
    start: str
    end: str


class ChatChartData(ApiModel):
    chart_type: str
    income_total: float
    expense_total: float
    income_by_category: list[ChartSlice] = Field(default_factory=list)
    expense_by_category: list[ChartSlice] = Field(default_factory=list)
    date_range: ChartDateRange


class AiChatRequest(RequestModel):
    message: str
    thread_id: Optional[str] = None


class AiChatResponse(ApiModel):
    message: str
    thread_id: str
    message_id: str
    chart_data: Optional[ChatChartData] = None


# =============================================================================
# PIN
# =============================================================================

class PinStatusResponse(ApiModel):
    pin_set: bool
    pin_length: int
    biometric_enabled: bool
    failed_attempts: int
    locked_until: Optional[datetime] = None
    last_verified_at: Optional[datetime] = None


class PinSetRequest(RequestModel):
    pin: str
    biometric_enabled: Optional[bool] = None
    pin_length: Optional[int] = None


class PinVerifyRequest(RequestModel):
    pin: str


class PinVerifyResponse(ApiModel):
    message: str
    pin_length: int
    biometric_enabled: bool


# Investment endpoints that return loosely shaped documents
InvestmentDocument = dict[str, Any]
