from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Query
from fastapi.responses import RedirectResponse

from app.config import APP_URL
from app.core import OAuthStateError, Provider, ProviderError, log_error
from app.services import AccountService
from app.api.deps import get_account_service, get_user_id

from .schemas import ConnectUrlResponse, ProviderStatus, ProviderStatusList, account_info

router = APIRouter()


def _frontend_redirect(**params: str) -> RedirectResponse:
    return RedirectResponse(f"{APP_URL}/providers?{urlencode(params)}", status_code=302)


@router.get("", response_model=ProviderStatusList)
def list_providers(
    user_id: str = Depends(get_user_id),
    accounts: AccountService = Depends(get_account_service),
) -> ProviderStatusList:
    """
    Supported providers and whether the caller has connected each of them.
    """
    statuses = []
    for entry in accounts.get_provider_status(user_id):
        account = entry["account"]
        statuses.append(
            ProviderStatus(
                id=entry["id"],
                name=entry["name"],
                connected=entry["connected"],
                account=account_info(account) if account is not None else None,
            )
        )
    return ProviderStatusList(providers=statuses)


@router.get("/{provider}/connect")
def connect_provider(
    provider: Provider,
    redirect: bool = Query(default=True),
    user_id: str = Depends(get_user_id),
    accounts: AccountService = Depends(get_account_service),
):
    """
    Start the OAuth flow: redirect to the provider, or return the URL when
    `redirect=false` (for single-page frontends).
    """
    auth_url = accounts.get_oauth_url(user_id, provider)
    if not redirect:
        return ConnectUrlResponse(auth_url=auth_url)
    return RedirectResponse(auth_url, status_code=302)


@router.get("/{provider}/callback")
def provider_callback(
    provider: Provider,
    code: str | None = Query(default=None),
    state: str | None = Query(default=None),
    error: str | None = Query(default=None),
    accounts: AccountService = Depends(get_account_service),
):
    """
    Provider redirect target. Always answers with a redirect to the frontend.
    """
    if error:
        return _frontend_redirect(error=error)
    if not code or not state:
        return _frontend_redirect(error="invalid_request")

    try:
        accounts.handle_oauth_callback(provider, code, state)
    except OAuthStateError:
        return _frontend_redirect(error="invalid_state")
    except ProviderError as exc:
        log_error(f"OAuth callback for {provider.value} failed: {exc}")
        return _frontend_redirect(error="callback_failed")

    return _frontend_redirect(success=provider.value)


@router.delete("/{provider}")
def disconnect_provider(
    provider: Provider,
    user_id: str = Depends(get_user_id),
    accounts: AccountService = Depends(get_account_service),
) -> dict:
    accounts.disconnect_provider(user_id, provider)
    return {"message": "Provider disconnected successfully"}
