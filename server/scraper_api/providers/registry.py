"""Provider registry - one entry per supported catalog."""

import logging
from typing import Iterable, Optional

from ..errors import ProviderUnavailableError
from ..models import ProviderInfo
from ..services.http import PoliteFetcher
from . import mangadex, mangaupdates
from .base import MangaProvider, ProviderConfig, ProviderId

logger = logging.getLogger(__name__)

PROVIDER_CLASSES: dict[ProviderId, type[MangaProvider]] = {
    ProviderId.MANGAUPDATES: mangaupdates.MangaUpdatesProvider,
    ProviderId.MANGADEX: mangadex.MangaDexProvider,
}


def configs_from_settings(settings) -> list[ProviderConfig]:
    """Capability descriptors for every provider, enabled or not."""
    return [
        mangaupdates.default_config(
            enabled=settings.mangaupdates_enabled,
            api_base=settings.mangaupdates_api_base,
            polite_delay=settings.mangaupdates_polite_delay,
        ),
        mangadex.default_config(
            enabled=settings.mangadex_enabled,
            api_base=settings.mangadex_api_base,
            polite_delay=(
                settings.polite_delay
                if settings.mangadex_polite_delay is None
                else settings.mangadex_polite_delay
            ),
        ),
    ]


class ProviderRegistry:
    """Lookup of provider implementations by id."""

    def __init__(self, providers: Iterable[MangaProvider]):
        self._providers: dict[ProviderId, MangaProvider] = {
            provider.config.id: provider for provider in providers
        }

    @classmethod
    def from_configs(cls, configs: Iterable[ProviderConfig], fetcher: PoliteFetcher) -> "ProviderRegistry":
        return cls(PROVIDER_CLASSES[config.id](config, fetcher) for config in configs)

    def find(self, name: str) -> Optional[MangaProvider]:
        """Enabled provider for ``name``, or ``None``."""
        provider_id = ProviderId.parse(name)
        provider = self._providers.get(provider_id) if provider_id else None
        if provider is None or not provider.config.enabled:
            return None
        return provider

    def get(self, name: str) -> MangaProvider:
        """Enabled provider for ``name``; raises if unknown or disabled."""
        provider = self.find(name)
        if provider is None:
            raise ProviderUnavailableError(name)
        return provider

    def enabled(self, names: Iterable[str]) -> list[MangaProvider]:
        """Enabled providers among ``names``, in order, unknown ones dropped."""
        selected: list[MangaProvider] = []
        for name in names:
            provider = self.find(name)
            if provider is None:
                logger.debug("Skipping unavailable provider %r", name)
                continue
            if provider not in selected:
                selected.append(provider)
        return selected

    def infos(self) -> list[ProviderInfo]:
        return [p.config.info() for p in self._providers.values() if p.config.enabled]
