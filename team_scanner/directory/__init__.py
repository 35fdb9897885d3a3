from .client import DirectoryClient
from .service import NOT_FOUND, TeamLookupService, stats_cache_key

__all__ = ["NOT_FOUND", "DirectoryClient", "TeamLookupService", "stats_cache_key"]
