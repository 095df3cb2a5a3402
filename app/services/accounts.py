"""Linked provider accounts and the OAuth handshake."""

from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core import NotFoundError, OAuthStateError, Provider, log_success
from app.data import ProviderAccount
from app.providers import MusicProvider, OAuthStateService, ProviderRegistry

from .tokens import TokenVault

PROVIDER_NAMES = {
    Provider.SPOTIFY: "Spotify",
    Provider.SOUNDCLOUD: "SoundCloud",
}


class AccountService:
    def __init__(
        self,
        session: Session,
        registry: ProviderRegistry,
        oauth_states: OAuthStateService,
        vault: Optional[TokenVault] = None,
    ) -> None:
        self.session = session
        self.registry = registry
        self.oauth_states = oauth_states
        self.vault = vault or TokenVault(session, registry)

    def get_provider_accounts(self, user_id: str) -> List[ProviderAccount]:
        return list(
            self.session.scalars(
                select(ProviderAccount)
                .where(ProviderAccount.user_id == user_id)
                .order_by(ProviderAccount.created_at)
            )
        )

    def get_provider_account(
        self, user_id: str, provider: Provider
    ) -> Optional[ProviderAccount]:
        return self.session.scalars(
            select(ProviderAccount).where(
                ProviderAccount.user_id == user_id,
                ProviderAccount.provider == Provider(provider),
            )
        ).first()

    def get_provider_status(self, user_id: str) -> List[Dict[str, Any]]:
        """One entry per supported provider, connected or not."""
        accounts = {a.provider: a for a in self.get_provider_accounts(user_id)}
        return [
            {
                "id": provider,
                "name": PROVIDER_NAMES.get(provider, provider.value),
                "connected": provider in accounts,
                "account": accounts.get(provider),
            }
            for provider in self.registry.providers
        ]

    def get_oauth_url(self, user_id: str, provider: Provider) -> str:
        connector = self.registry.connector(provider)
        state = self.oauth_states.generate_state(user_id)
        return connector.authorize_url(state)

    def handle_oauth_callback(
        self, provider: Provider, code: str, state: str
    ) -> ProviderAccount:
        """
        Finish an authorization: consume `state`, exchange `code`, and
        create or refresh the caller's account for `provider`.

        Raises OAuthStateError for any unusable state, before contacting
        the provider.
        """
        user_id = self.oauth_states.validate_and_consume(state)
        if user_id is None:
            raise OAuthStateError("Invalid or expired OAuth state")

        connector = self.registry.connector(provider)
        grant = connector.exchange_code(code)
        profile = connector.with_token(grant.access_token).get_current_user()

        account = self.get_provider_account(user_id, provider)
        if account is None:
            account = ProviderAccount(user_id=user_id, provider=Provider(provider))
            self.session.add(account)

        account.provider_user_id = profile.id
        account.display_name = profile.display_name
        account.email = profile.email
        account.profile_url = profile.profile_url
        account.image_url = profile.image_url
        self.session.flush()

        self.vault.save_token(
            account.id,
            grant.access_token,
            grant.refresh_token,
            grant.expires_at,
            grant.scope,
            grant.token_type,
        )
        log_success(f"Connected {account.provider.value} account {account.id}")
        return account

    def disconnect_provider(self, user_id: str, provider: Provider) -> None:
        """Delete the account; its token, playlists and items go with it."""
        account = self.get_provider_account(user_id, provider)
        if account is None:
            raise NotFoundError("Provider account not found")
        self.session.delete(account)
        self.session.flush()

    def get_adapter(self, user_id: str, provider: Provider) -> MusicProvider:
        account = self.get_provider_account(user_id, provider)
        if account is None:
            raise NotFoundError(f"{Provider(provider).value} account not connected")
        return self.adapter_for(account)

    def adapter_for(self, account: ProviderAccount) -> MusicProvider:
        access_token = self.vault.get_valid_access_token(account.id)
        return self.registry.client(account.provider, access_token)
