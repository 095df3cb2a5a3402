"""Provider lookup by Provider enum."""

from typing import Dict, Iterable, List

from app.core import Provider, ValidationError

from .base import MusicProvider, ProviderConnector
from .soundcloud import SoundCloudConnector
from .spotify import SpotifyConnector


class ProviderRegistry:
    def __init__(self, connectors: Iterable[ProviderConnector]) -> None:
        self._connectors: Dict[Provider, ProviderConnector] = {
            c.provider: c for c in connectors
        }

    @property
    def providers(self) -> List[Provider]:
        return list(self._connectors)

    def connector(self, provider: Provider) -> ProviderConnector:
        try:
            return self._connectors[Provider(provider)]
        except (KeyError, ValueError):
            raise ValidationError(f"Unsupported provider: {provider}") from None

    def client(self, provider: Provider, access_token: str) -> MusicProvider:
        return self.connector(provider).with_token(access_token)


def default_registry() -> ProviderRegistry:
    return ProviderRegistry([SpotifyConnector(), SoundCloudConnector()])
