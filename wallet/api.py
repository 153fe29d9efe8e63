import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware

from .config import Settings
from .exceptions import ConfigurationError, RemoteRejectedError, UnauthenticatedError
from .models import (
    AddPayoutAddressRequest, AmountRequest, CreateWithdrawRequest, DepositTxRequest,
    Identity, IncomeRequest, LoginRequest, MembershipSnapshot, PayoutAddress,
    TeamMember, WalletState, WithdrawRequest, WithdrawResult,
)
from .service import WalletService

logger = logging.getLogger(__name__)


def create_app(service: Optional[WalletService] = None, root_path: str = "") -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        wallet = service
        if wallet is None:
            settings = Settings.from_env()
            logging.basicConfig(level=settings.log_level)
            wallet = WalletService.from_settings(settings)
        app.state.wallet = wallet
        await wallet.start()
        logger.info("Wallet API ready")
        try:
            yield
        finally:
            await wallet.close()

    app = FastAPI(
        title="Wallet Client API",
        description="Optimistic wallet, VIP level and payout helpers backed by the remote ledger",
        version="1.0.0",
        root_path=root_path,
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    _register_routes(app)
    return app


def _wallet(request: Request) -> WalletService:
    return request.app.state.wallet


def _register_routes(app: FastAPI) -> None:
    @app.get("/health", tags=["System"])
    def health_check():
        return {"status": "healthy", "service": "wallet-client"}

    @app.post("/session", response_model=Identity, tags=["Session"])
    async def login(body: LoginRequest, request: Request) -> Identity:
        try:
            return await _wallet(request).login(body.user_id, body.phone)
        except ConfigurationError as e:
            raise HTTPException(status_code=status.HTTP_501_NOT_IMPLEMENTED, detail=str(e))

    @app.delete("/session", status_code=status.HTTP_204_NO_CONTENT, tags=["Session"])
    async def logout(request: Request) -> None:
        try:
            _wallet(request).logout()
        except ConfigurationError as e:
            raise HTTPException(status_code=status.HTTP_501_NOT_IMPLEMENTED, detail=str(e))

    @app.get("/user", response_model=Identity, tags=["Session"])
    def get_user(request: Request) -> Identity:
        return _wallet(request).get_user()

    @app.get("/wallet", response_model=WalletState, tags=["Wallet"])
    async def get_wallet(request: Request, fresh: bool = False) -> WalletState:
        wallet = _wallet(request)
        return await wallet.get_wallet_async() if fresh else wallet.get_wallet()

    @app.post("/wallet/deposit", response_model=WalletState, tags=["Wallet"])
    async def record_deposit(body: AmountRequest, request: Request) -> WalletState:
        wallet = _wallet(request)
        wallet.record_deposit(body.amount)
        return wallet.get_wallet()

    @app.post("/wallet/withdraw", response_model=WithdrawResult, tags=["Wallet"])
    async def withdraw(body: AmountRequest, request: Request) -> WithdrawResult:
        result = _wallet(request).withdraw(body.amount)
        if result is None:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid amount or insufficient balance")
        return result

    @app.post("/wallet/income", response_model=WalletState, tags=["Wallet"])
    async def add_income(body: IncomeRequest, request: Request) -> WalletState:
        wallet = _wallet(request)
        wallet.add_income(body.n)
        return wallet.get_wallet()

    @app.get("/vip", response_model=MembershipSnapshot, tags=["Membership"])
    async def get_vip_info(request: Request) -> MembershipSnapshot:
        return await _wallet(request).get_vip_info()

    @app.get("/team", response_model=list[TeamMember], tags=["Membership"])
    async def get_team_summary(request: Request) -> list[TeamMember]:
        return await _wallet(request).get_team_summary()

    @app.get("/payout-addresses", response_model=list[PayoutAddress], tags=["Payouts"])
    async def list_payout_addresses(request: Request) -> list[PayoutAddress]:
        return await _wallet(request).list_payout_addresses()

    @app.post("/payout-addresses", response_model=Optional[PayoutAddress], status_code=status.HTTP_201_CREATED, tags=["Payouts"])
    async def add_payout_address(body: AddPayoutAddressRequest, request: Request) -> Optional[PayoutAddress]:
        try:
            return await _wallet(request).add_payout_address(body.currency, body.network, body.address)
        except UnauthenticatedError as e:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(e))
        except RemoteRejectedError as e:
            raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))

    @app.post("/withdraw-requests", response_model=Optional[WithdrawRequest], status_code=status.HTTP_201_CREATED, tags=["Payouts"])
    async def request_withdraw(body: CreateWithdrawRequest, request: Request) -> Optional[WithdrawRequest]:
        try:
            return await _wallet(request).request_withdraw(
                body.currency, body.network, body.address, body.amount, body.fee,
            )
        except UnauthenticatedError as e:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(e))
        except ValueError as e:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
        except RemoteRejectedError as e:
            raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))

    @app.post("/deposits/tx", status_code=status.HTTP_202_ACCEPTED, tags=["Payouts"])
    async def submit_deposit_tx(body: DepositTxRequest, request: Request):
        _wallet(request).submit_deposit_tx(body.tx_hash, body.network, body.currency)
        return {"status": "accepted"}


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
