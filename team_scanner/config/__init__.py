from .settings import CACHE_BACKENDS, DEFAULT_API_BASE_URL, ScannerSettings

__all__ = ["CACHE_BACKENDS", "DEFAULT_API_BASE_URL", "ScannerSettings"]
