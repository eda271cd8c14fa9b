"""
API Client Facade

This module ties together the credential store, the request executor
and the refresh coordinator, and exposes one coroutine per backend
operation.

Every authenticated call follows the same path:
1. Attempt 1 with the stored access token
2. On UnauthorizedError: refresh the token (shared with concurrent calls)
3. Attempt 2 with the refreshed token, whose outcome is final
If the refresh fails, the ORIGINAL unauthorized error is raised.

Methods return typed models and raise ApiError on any failure. Business
validation (amounts, dates, PIN format) is left to callers and server.
"""

from datetime import datetime
from typing import Any, Callable, Optional, Union
from urllib.parse import quote

import structlog
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
)

from finance_client.audit import (
    AuthAuditLogger,
    configure_logging,
    create_correlation_id,
)
from finance_client.config import (
    ApiSettings,
    HealthSettings,
    StorageSettings,
    get_settings,
    validate_all_settings,
)
from finance_client.models.auth import (
    AuthResponse,
    AuthState,
    GoogleLoginRequest,
    LoginRequest,
    ProfileResponse,
    ProfileUpdate,
    RegisterRequest,
    UserProfile,
)
from finance_client.models.finance import (
    AiChatRequest,
    AiChatResponse,
    AssetQuote,
    AssetSearchResult,
    BrokerPortfolio,
    BrokerTokenRequest,
    Candle,
    CandleInterval,
    Category,
    CreditAccount,
    CreditAccountCreate,
    CreditAccountUpdate,
    DepositAccount,
    DepositAccountCreate,
    DepositAccountUpdate,
    Goal,
    GoalContributionCreate,
    GoalCreate,
    GoalUpdate,
    HealthStatus,
    InvestmentAssetCreate,
    InvestmentAssetType,
    InvestmentDocument,
    InvestmentLotCreate,
    InvestmentsPortfolioResponse,
    ListTransactionsResponse,
    MarketNewsItem,
    MessageResponse,
    PaymentMethod,
    PaymentMethodType,
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
from finance_client.services.api import (
    ApiError,
    BackendHealthMonitor,
    ErrorKind,
    RefreshCoordinator,
    RequestExecutor,
    RequestOptions,
    TransportError,
    UnauthorizedError,
)
from finance_client.services.storage import (
    CredentialStore,
    CredentialStoreError,
    FileKeyValueStorage,
    KeyValueStorageInterface,
)


DateLike = Union[str, datetime]


def _iso(value: Optional[DateLike]) -> Optional[str]:
    if isinstance(value, datetime):
        return value.isoformat()
    return value


class ApiClient:
    """
    Facade over the backend API.

    Owns the shared HTTP client; use it as an async context manager or
    call aclose() when done.
    """

    def __init__(
        self,
        executor: RequestExecutor,
        store: CredentialStore,
        refresher: RefreshCoordinator,
        audit_logger: Optional[AuthAuditLogger] = None,
        health_settings: Optional[HealthSettings] = None,
    ):
        self._executor = executor
        self._store = store
        self._refresher = refresher
        self._audit_logger = audit_logger or AuthAuditLogger()
        self._health_settings = health_settings or HealthSettings()
        self._logger = structlog.get_logger(__name__)

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._executor.aclose()

    @property
    def store(self) -> CredentialStore:
        return self._store

    # =========================================================================
    # SESSION STATE
    # =========================================================================

    def set_auth_invalidated_handler(self, handler: Optional[Callable[[], None]]) -> None:
        """Called when the session ends because the refresh token is gone or rejected."""
        self._refresher.set_auth_invalidated_handler(handler)

    def set_backend_unavailable_handler(self, handler: Optional[Callable[[], None]]) -> None:
        """Called when several requests in a row could not reach the backend."""
        self._executor.health_monitor.set_unavailable_handler(handler)

    async def auth_state(self) -> AuthState:
        if self._refresher.is_refreshing:
            return AuthState.EXPIRED
        if await self._store.has_credentials():
            return AuthState.LOGGED_IN
        return AuthState.LOGGED_OUT

    async def get_cached_user(self) -> Optional[UserProfile]:
        """User profile from the last login or profile fetch; may be stale."""
        return await self._store.get_user()

    # =========================================================================
    # REQUEST PIPELINE
    # =========================================================================

    async def _request(
        self,
        endpoint: str,
        *,
        method: str = "GET",
        body: Optional[Any] = None,
        params: Optional[dict[str, Any]] = None,
        response_type: Any = None,
        authenticated: bool = True,
    ) -> Any:
        """Run one logical API call: attempt, refresh on 401, retry once."""
        options = RequestOptions(method=method, body=body, params=params)
        correlation_id = create_correlation_id()

        with structlog.contextvars.bound_contextvars(correlation_id=str(correlation_id)):
            if not authenticated:
                return await self._executor.execute(endpoint, options, None, response_type)

            token = await self._store.get_access_token()
            try:
                return await self._executor.execute(endpoint, options, token, response_type)
            except UnauthorizedError as original:
                self._logger.info("api_unauthorized", endpoint=endpoint, had_token=token is not None)
                try:
                    new_token = await self._refresher.refresh(
                        stale_token=token,
                        correlation_id=correlation_id,
                    )
                except ApiError as refresh_error:
                    raise original from refresh_error

            self._logger.info("api_retry_after_refresh", endpoint=endpoint)
            return await self._executor.execute(endpoint, options, new_token, response_type)

    async def _persist_session(self, response: AuthResponse) -> None:
        try:
            await self._store.save_bundle(response.to_bundle())
        except CredentialStoreError as e:
            raise ApiError(
                "Signed in, but the session could not be saved on this device.",
                kind=ErrorKind.STORAGE,
            ) from e

    async def _cache_user(self, user: UserProfile) -> None:
        # The server already has the data; a stale cache is tolerable
        try:
            await self._store.set_user(user)
        except CredentialStoreError as e:
            self._logger.warning("user_cache_update_failed", error=str(e))

    # =========================================================================
    # AUTH
    # =========================================================================

    async def register(self, data: RegisterRequest) -> AuthResponse:
        """Create an account and start a session with it."""
        self._logger.info("register_requested", email=data.email)
        response = await self._request(
            "/auth/register",
            method="POST",
            body=data.to_request_body(),
            response_type=AuthResponse,
            authenticated=False,
        )
        await self._persist_session(response)
        await self._audit_logger.log_registered(response.user.id)
        return response

    async def login(self, data: LoginRequest) -> AuthResponse:
        self._logger.info("login_requested", email=data.email)
        response = await self._request(
            "/auth/login",
            method="POST",
            body=data.to_request_body(),
            response_type=AuthResponse,
            authenticated=False,
        )
        await self._persist_session(response)
        await self._audit_logger.log_logged_in(response.user.id, "password")
        return response

    async def login_with_google(self, id_token: str) -> AuthResponse:
        response = await self._request(
            "/auth/google",
            method="POST",
            body=GoogleLoginRequest(id_token=id_token).to_request_body(),
            response_type=AuthResponse,
            authenticated=False,
        )
        await self._persist_session(response)
        await self._audit_logger.log_logged_in(response.user.id, "google")
        return response

    async def logout(self) -> None:
        """End the session locally by clearing the whole credential bundle."""
        try:
            await self._store.clear()
        except CredentialStoreError as e:
            raise ApiError(
                "Could not remove the session from this device.",
                kind=ErrorKind.STORAGE,
            ) from e
        await self._audit_logger.log_logged_out()

    async def get_me(self) -> ProfileResponse:
        response = await self._request("/auth/me", response_type=ProfileResponse)
        await self._cache_user(response.user)
        return response

    async def update_profile(self, data: ProfileUpdate) -> ProfileResponse:
        response = await self._request(
            "/auth/me",
            method="PATCH",
            body=data.to_request_body(),
            response_type=ProfileResponse,
        )
        await self._cache_user(response.user)
        return response

    # =========================================================================
    # CATEGORIES & PAYMENT METHODS
    # =========================================================================

    async def list_categories(self, type: Optional[TransactionType] = None) -> list[Category]:
        return await self._request(
            "/categories",
            params={"type": type},
            response_type=list[Category],
        )

    async def list_payment_methods(
        self,
        type: Optional[PaymentMethodType] = None,
    ) -> list[PaymentMethod]:
        return await self._request(
            "/payment-methods",
            params={"type": type},
            response_type=list[PaymentMethod],
        )

    # =========================================================================
    # CREDITS & DEPOSITS
    # =========================================================================

    async def list_credit_accounts(self) -> list[CreditAccount]:
        return await self._request("/credit-accounts", response_type=list[CreditAccount])

    async def create_credit_account(self, data: CreditAccountCreate) -> CreditAccount:
        return await self._request(
            "/credit-accounts",
            method="POST",
            body=data.to_request_body(),
            response_type=CreditAccount,
        )

    async def update_credit_account(self, account_id: int, data: CreditAccountUpdate) -> CreditAccount:
        return await self._request(
            f"/credit-accounts/{account_id}",
            method="PATCH",
            body=data.to_request_body(),
            response_type=CreditAccount,
        )

    async def delete_credit_account(self, account_id: int) -> None:
        await self._request(f"/credit-accounts/{account_id}", method="DELETE")

    async def list_deposit_accounts(self) -> list[DepositAccount]:
        return await self._request("/deposit-accounts", response_type=list[DepositAccount])

    async def create_deposit_account(self, data: DepositAccountCreate) -> DepositAccount:
        return await self._request(
            "/deposit-accounts",
            method="POST",
            body=data.to_request_body(),
            response_type=DepositAccount,
        )

    async def update_deposit_account(self, account_id: int, data: DepositAccountUpdate) -> DepositAccount:
        return await self._request(
            f"/deposit-accounts/{account_id}",
            method="PATCH",
            body=data.to_request_body(),
            response_type=DepositAccount,
        )

    async def delete_deposit_account(self, account_id: int) -> None:
        await self._request(f"/deposit-accounts/{account_id}", method="DELETE")

    # =========================================================================
    # GOALS
    # =========================================================================

    async def list_goals(self) -> list[Goal]:
        return await self._request("/goals", response_type=list[Goal])

    async def create_goal(self, data: GoalCreate) -> Goal:
        return await self._request(
            "/goals",
            method="POST",
            body=data.to_request_body(),
            response_type=Goal,
        )

    async def update_goal(self, goal_id: int, data: GoalUpdate) -> Goal:
        return await self._request(
            f"/goals/{goal_id}",
            method="PATCH",
            body=data.to_request_body(),
            response_type=Goal,
        )

    async def delete_goal(self, goal_id: int) -> Optional[MessageResponse]:
        return await self._request(
            f"/goals/{goal_id}",
            method="DELETE",
            response_type=Optional[MessageResponse],
        )

    async def add_goal_contribution(self, goal_id: int, data: GoalContributionCreate) -> Goal:
        return await self._request(
            f"/goals/{goal_id}/contributions",
            method="POST",
            body=data.to_request_body(),
            response_type=Goal,
        )

    # =========================================================================
    # INVESTMENTS
    # =========================================================================

    async def get_investments_portfolio(self) -> InvestmentsPortfolioResponse:
        return await self._request(
            "/investments/portfolio",
            response_type=InvestmentsPortfolioResponse,
        )

    async def add_investment_asset(self, data: InvestmentAssetCreate) -> InvestmentDocument:
        return await self._request(
            "/investments/assets",
            method="POST",
            body=data.to_request_body(),
            response_type=InvestmentDocument,
        )

    async def get_investment_asset(self, asset_id: int) -> InvestmentDocument:
        return await self._request(
            f"/investments/assets/{asset_id}",
            response_type=InvestmentDocument,
        )

    async def delete_investment_asset(self, asset_id: int) -> None:
        await self._request(f"/investments/assets/{asset_id}", method="DELETE")

    async def add_investment_lot(self, data: InvestmentLotCreate) -> InvestmentDocument:
        return await self._request(
            "/investments/lots",
            method="POST",
            body=data.to_request_body(),
            response_type=InvestmentDocument,
        )

    async def search_investment_assets(
        self,
        query: str,
        asset_type: Optional[InvestmentAssetType] = None,
    ) -> list[AssetSearchResult]:
        return await self._request(
            "/investments/search",
            params={"query": query, "assetType": asset_type},
            response_type=list[AssetSearchResult],
        )

    async def get_popular_assets(
        self,
        category: PopularCategory = PopularCategory.POPULAR,
    ) -> list[PopularAsset]:
        return await self._request(
            "/investments/popular",
            params={"category": category},
            response_type=list[PopularAsset],
        )

    async def get_asset_candles(
        self,
        ticker: str,
        from_: DateLike,
        to: DateLike,
        interval: Optional[CandleInterval] = None,
    ) -> list[Candle]:
        return await self._request(
            "/investments/candles",
            params={
                "ticker": ticker,
                "from": _iso(from_),
                "to": _iso(to),
                "interval": interval,
            },
            response_type=list[Candle],
        )

    async def get_asset_quote(self, ticker: str) -> AssetQuote:
        return await self._request(
            f"/investments/quotes/{quote(ticker, safe='')}",
            response_type=AssetQuote,
        )

    async def get_market_news(self, limit: int = 10) -> list[MarketNewsItem]:
        return await self._request(
            "/market-news",
            params={"limit": limit},
            response_type=list[MarketNewsItem],
        )

    # =========================================================================
    # BROKER INTEGRATION
    # =========================================================================

    async def set_broker_token(self, token: str) -> Optional[MessageResponse]:
        """Hand a brokerage API token to the backend; it is never stored locally."""
        return await self._request(
            "/broker/token",
            method="POST",
            body=BrokerTokenRequest(token=token).to_request_body(),
            response_type=Optional[MessageResponse],
        )

    async def remove_broker_token(self) -> Optional[MessageResponse]:
        return await self._request(
            "/broker/token",
            method="DELETE",
            response_type=Optional[MessageResponse],
        )

    async def get_broker_portfolio(self) -> BrokerPortfolio:
        return await self._request("/broker/portfolio", response_type=BrokerPortfolio)

    async def search_broker_instruments(self, query: str) -> list[AssetSearchResult]:
        return await self._request(
            "/broker/search",
            params={"query": query},
            response_type=list[AssetSearchResult],
        )

    # =========================================================================
    # AI CHAT
    # =========================================================================

    async def send_ai_message(self, message: str, thread_id: Optional[str] = None) -> AiChatResponse:
        if thread_id is None:
            data = AiChatRequest(message=message)
        else:
            data = AiChatRequest(message=message, thread_id=thread_id)
        return await self._request(
            "/ai/chat",
            method="POST",
            body=data.to_request_body(),
            response_type=AiChatResponse,
        )

    # =========================================================================
    # TRANSACTIONS
    # =========================================================================

    async def list_transactions(
        self,
        page: Optional[int] = None,
        limit: Optional[int] = None,
        type: Optional[TransactionType] = None,
        from_: Optional[DateLike] = None,
        to: Optional[DateLike] = None,
        timezone: Optional[str] = None,
    ) -> ListTransactionsResponse:
        return await self._request(
            "/transactions",
            params={
                "page": page,
                "limit": limit,
                "type": type,
                "from": _iso(from_),
                "to": _iso(to),
                "timezone": timezone,
            },
            response_type=ListTransactionsResponse,
        )

    async def create_transaction(self, data: TransactionCreate) -> Transaction:
        return await self._request(
            "/transactions",
            method="POST",
            body=data.to_request_body(),
            response_type=Transaction,
        )

    async def delete_transaction(self, transaction_id: str) -> Optional[MessageResponse]:
        return await self._request(
            f"/transactions/{transaction_id}",
            method="DELETE",
            response_type=Optional[MessageResponse],
        )

    async def get_transactions_analytics(
        self,
        from_: Optional[DateLike] = None,
        to: Optional[DateLike] = None,
        timezone: Optional[str] = None,
    ) -> TransactionsAnalyticsResponse:
        return await self._request(
            "/transactions/analytics",
            params={"from": _iso(from_), "to": _iso(to), "timezone": timezone},
            response_type=TransactionsAnalyticsResponse,
        )

    # =========================================================================
    # PIN
    # =========================================================================

    async def get_pin_status(self) -> PinStatusResponse:
        return await self._request("/pin/status", response_type=PinStatusResponse)

    async def set_pin(self, data: PinSetRequest) -> MessageResponse:
        return await self._request(
            "/pin/set",
            method="POST",
            body=data.to_request_body(),
            response_type=MessageResponse,
        )

    async def verify_pin(self, pin: str) -> PinVerifyResponse:
        return await self._request(
            "/pin/verify",
            method="POST",
            body=PinVerifyRequest(pin=pin).to_request_body(),
            response_type=PinVerifyResponse,
        )

    # =========================================================================
    # HEALTH
    # =========================================================================

    async def health_check(self) -> HealthStatus:
        """
        Probe the backend without credentials.

        Only transport failures are retried; an HTTP error response
        means the backend is reachable and is raised immediately.
        """
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._health_settings.check_attempts),
            wait=wait_fixed(self._health_settings.check_delay_seconds),
            retry=retry_if_exception_type(TransportError),
            reraise=True,
        )
        return await retrying(
            self._request,
            "/health",
            response_type=HealthStatus,
            authenticated=False,
        )


def create_api_client(
    api_settings: Optional[ApiSettings] = None,
    storage_settings: Optional[StorageSettings] = None,
    health_settings: Optional[HealthSettings] = None,
    storage: Optional[KeyValueStorageInterface] = None,
    on_auth_invalidated: Optional[Callable[[], None]] = None,
    on_backend_unavailable: Optional[Callable[[], None]] = None,
) -> ApiClient:
    """
    Wire the default component graph.

    Settings not given explicitly are loaded from the environment.
    Without `storage`, credentials persist to the configured JSON file.

    Raises:
        ValueError: If settings loaded from the environment are invalid
    """
    explicit = {
        "api": api_settings,
        "storage": storage_settings,
        "health": health_settings,
    }
    results = validate_all_settings()
    errors = [
        f"{name}: {results[f'{name}_error']}"
        for name in ("api", "storage", "health", "app")
        if not results[name] and explicit.get(name) is None
    ]
    if errors:
        raise ValueError("Invalid finance client configuration:\n" + "\n".join(errors))

    settings = get_settings()
    api_settings = api_settings or settings.api
    storage_settings = storage_settings or settings.storage
    health_settings = health_settings or settings.health
    configure_logging(settings.app.log_level)

    audit_logger = AuthAuditLogger()
    store = CredentialStore(
        storage or FileKeyValueStorage(storage_settings.credentials_path),
        key_prefix=storage_settings.key_prefix,
    )
    health_monitor = BackendHealthMonitor(
        max_consecutive_failures=health_settings.max_consecutive_failures,
        audit_logger=audit_logger,
        on_unavailable=on_backend_unavailable,
    )
    executor = RequestExecutor(api_settings, health_monitor=health_monitor)
    refresher = RefreshCoordinator(
        store,
        executor,
        refresh_endpoint=api_settings.refresh_endpoint,
        audit_logger=audit_logger,
        on_auth_invalidated=on_auth_invalidated,
    )
    return ApiClient(
        executor,
        store,
        refresher,
        audit_logger=audit_logger,
        health_settings=health_settings,
    )
