from fastapi import APIRouter, Depends, HTTPException, Request

from app.account.api.dto import LoginDTO
from app.account.service.account_service import (
    AccountService,
    AccountUnavailableError,
    InvalidCredentialsError,
)
from app.core.dto import BaseResponse

account_router = APIRouter(prefix="/account", tags=["Account"])


def get_account_service(request: Request) -> AccountService:
    service = getattr(request.app.state, "account_service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Account service not available")
    return service


@account_router.post("/login", response_model=BaseResponse)
async def login(body: LoginDTO, account_service: AccountService = Depends(get_account_service)):
    """Log in to an existing account, or create it if the ID is new."""
    try:
        result = await account_service.login(body.account_id, body.password)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except InvalidCredentialsError as e:
        raise HTTPException(status_code=401, detail=str(e))
    except AccountUnavailableError as e:
        raise HTTPException(status_code=503, detail=f"Account directory unavailable: {e}")

    return BaseResponse(
        status=True,
        message="Account created" if result.created else "Login successful",
        data={"account_id": result.account_id, "created": result.created},
    )


@account_router.post("/logout", response_model=BaseResponse)
async def logout(account_service: AccountService = Depends(get_account_service)):
    await account_service.logout()
    return BaseResponse(status=True, message="Logged out")


@account_router.get("/status", response_model=BaseResponse)
async def status(account_service: AccountService = Depends(get_account_service)):
    account_id = account_service.authorized_account
    return BaseResponse(
        status=True,
        message="Authorized" if account_id else "Not authorized",
        data={
            "authorized": account_id is not None,
            "account_id": account_id,
            "sync_enabled": account_service.sync.enabled,
        },
    )
