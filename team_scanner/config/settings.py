from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

DEFAULT_API_BASE_URL = "https://api.ftcscout.org/rest/v1"
CACHE_BACKENDS = ("sqlite", "json", "memory")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() not in {"0", "false", "no", "off"}


def _env_choice(name: str, default: str, choices: Sequence[str]) -> str:
    raw = os.getenv(name)
    if raw is None:
        return default
    value = raw.strip().lower()
    return value if value in choices else default


@dataclass
class ScannerSettings:
    project_root: Path
    api_base_url: str = DEFAULT_API_BASE_URL
    request_timeout_seconds: float = 8.0
    lookup_workers: int = 8
    cache_backend: str = "sqlite"
    cache_path: Path = Path("team_scanner/state/team_cache.db")
    preview_width: int = 390
    preview_height: int = 844
    ocr_languages: Sequence[str] = ("en",)
    ocr_confidence: float = 0.35
    prefer_gpu: bool = True
    log_to_file: bool = True

    @property
    def resolved_cache_path(self) -> Path:
        if self.cache_path.is_absolute():
            return self.cache_path
        return self.project_root / self.cache_path

    @property
    def log_dir(self) -> Path:
        return self.project_root / "team_scanner/logs"

    def ensure_directories(self) -> None:
        if self.log_to_file:
            self.log_dir.mkdir(parents=True, exist_ok=True)
        if self.cache_backend == "json":
            self.resolved_cache_path.mkdir(parents=True, exist_ok=True)
        elif self.cache_backend == "sqlite":
            self.resolved_cache_path.parent.mkdir(parents=True, exist_ok=True)

    @classmethod
    def from_env(cls, project_root: Path) -> "ScannerSettings":
        backend = _env_choice("SCANNER_CACHE_BACKEND", "sqlite", CACHE_BACKENDS)
        default_cache = "team_scanner/state/cache" if backend == "json" else "team_scanner/state/team_cache.db"
        return cls(
            project_root=project_root,
            api_base_url=os.getenv("SCANNER_API_BASE_URL", DEFAULT_API_BASE_URL).rstrip("/"),
            request_timeout_seconds=max(0.5, _env_float("SCANNER_REQUEST_TIMEOUT", 8.0)),
            lookup_workers=max(1, _env_int("SCANNER_LOOKUP_WORKERS", 8)),
            cache_backend=backend,
            cache_path=Path(os.getenv("SCANNER_CACHE_PATH", default_cache)),
            preview_width=max(0, _env_int("SCANNER_PREVIEW_WIDTH", 390)),
            preview_height=max(0, _env_int("SCANNER_PREVIEW_HEIGHT", 844)),
            ocr_languages=tuple(
                token.strip() for token in os.getenv("SCANNER_OCR_LANGS", "en").split(",") if token.strip()
            )
            or ("en",),
            ocr_confidence=_env_float("SCANNER_OCR_CONF", 0.35),
            prefer_gpu=_env_bool("SCANNER_PREFER_GPU", True),
            log_to_file=_env_bool("SCANNER_LOG_TO_FILE", True),
        )
