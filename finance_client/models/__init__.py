"""
Data Models Package

This package contains all Pydantic models used by the finance client.
Every payload crossing the HTTP boundary must conform to these schemas.
"""

from finance_client.models.audit import (
    AuditSeverity,
    AuthEvent,
    AuthEventBuilder,
    AuthEventType,
)
from finance_client.models.auth import (
    AuthResponse,
    AuthState,
    CredentialBundle,
    GoogleLoginRequest,
    LoginRequest,
    ProfileResponse,
    ProfileUpdate,
    RefreshRequest,
    RefreshResponse,
    RegisterRequest,
    UserProfile,
)
from finance_client.models.base import ApiModel, RequestModel
from finance_client.models.finance import (
    AiChatRequest,
    AiChatResponse,
    AssetQuote,
    AssetSearchResult,
    BrokerPortfolio,
    BrokerPosition,
    BrokerTokenRequest,
    Candle,
    CandleInterval,
    Category,
    CreditAccount,
    CreditAccountCreate,
    CreditAccountKind,
    CreditAccountUpdate,
    DepositAccount,
    DepositAccountCreate,
    DepositAccountUpdate,
    Goal,
    GoalContribution,
    GoalContributionCreate,
    GoalCreate,
    GoalStatus,
    GoalUpdate,
    HealthStatus,
    InvestmentAssetCreate,
    InvestmentAssetType,
    InvestmentDocument,
    InvestmentLotCreate,
    InvestmentPortfolioAsset,
    InvestmentsPortfolioResponse,
    ListTransactionsResponse,
    MarketNewsItem,
    MessageResponse,
    Pagination,
    PaymentMethod,
    PaymentMethodType,
    PayoutSchedule,
    PinSetRequest,
    PinStatusResponse,
    PinVerifyRequest,
    PinVerifyResponse,
    PopularAsset,
    PopularCategory,
    Transaction,
    TransactionCreate,
    TransactionsAnalyticsResponse,
    TransactionType,
)

__all__ = [
    # Base
    "ApiModel",
    "RequestModel",
    # Auth models
    "AuthResponse",
    "AuthState",
    "CredentialBundle",
    "GoogleLoginRequest",
    "LoginRequest",
    "ProfileResponse",
    "ProfileUpdate",
    "RefreshRequest",
    "RefreshResponse",
    "RegisterRequest",
    "UserProfile",
    # Finance models
    "AiChatRequest",
    "AiChatResponse",
    "AssetQuote",
    "AssetSearchResult",
    "BrokerPortfolio",
    "BrokerPosition",
    "BrokerTokenRequest",
    "Candle",
    "CandleInterval",
    "Category",
    "CreditAccount",
    "CreditAccountCreate",
    "CreditAccountKind",
    "CreditAccountUpdate",
    "DepositAccount",
    "DepositAccountCreate",
    "DepositAccountUpdate",
    "Goal",
    "GoalContribution",
    "GoalContributionCreate",
    "GoalCreate",
    "GoalStatus",
    "GoalUpdate",
    "HealthStatus",
    "InvestmentAssetCreate",
    "InvestmentAssetType",
    "InvestmentDocument",
    "InvestmentLotCreate",
    "InvestmentPortfolioAsset",
    "InvestmentsPortfolioResponse",
    "ListTransactionsResponse",
    "MarketNewsItem",
    "MessageResponse",
    "Pagination",
    "PaymentMethod",
    "PaymentMethodType",
    "PayoutSchedule",
    "PinSetRequest",
    "PinStatusResponse",
    "PinVerifyRequest",
    "PinVerifyResponse",
    "PopularAsset",
    "PopularCategory",
    "Transaction",
    "TransactionCreate",
    "TransactionsAnalyticsResponse",
    "TransactionType",
    # Audit models
    "AuditSeverity",
    "AuthEvent",
    "AuthEventBuilder",
    "AuthEventType",
]
