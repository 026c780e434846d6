"""City search service - read-through cache in front of a city search provider."""
import logging
from typing import Callable

from geodb_provider import GeoDBProvider
from ttl_cache import BoundedTTLCache


class CitySearchService:
    """
    Serves raw city search bodies, caching successful upstream responses.

    The provider is built per call by ``provider_factory`` so the API key is
    read for every request; a factory that raises ``ConfigurationError``
    surfaces as an upstream failure. Failed fetches are never cached.
    """

    def __init__(self, provider_factory: Callable[[], GeoDBProvider], cache: BoundedTTLCache):
        self.provider_factory = provider_factory
        self.cache = cache

    def search(self, query: str) -> dict:
        """
        Return the upstream JSON for ``query``, from cache when fresh.

        Raises:
            RateLimited: If the upstream API throttled the request
            UpstreamError: For configuration, network or upstream failures
        """
        def load() -> dict:
            logging.info(f"Cache miss for city query '{query}', fetching from provider")
            return self.provider_factory().search_raw(query)

        return self.cache.get_or_load(query, load)
