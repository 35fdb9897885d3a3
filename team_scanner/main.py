from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable

from team_scanner.config import ScannerSettings
from team_scanner.database import open_cache_store
from team_scanner.directory import DirectoryClient, TeamLookupService
from team_scanner.directory.formatting import overlay_label
from team_scanner.enrichment import EnrichmentCoordinator
from team_scanner.geometry import calculate_font_size, layout_overlays
from team_scanner.ocr_module import NumberExtractor, TextRecognizer
from team_scanner.utils import configure_logger
from team_scanner.utils.types import FrameSize, PublishedBatch, QuickStats, TeamInfo


@dataclass(frozen=True)
class OverlayView:
    number: str
    label: str
    left: float
    top: float
    width: float
    height: float
    angle_degrees: float
    font_size: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "number": self.number,
            "label": self.label,
            "left": round(self.left, 2),
            "top": round(self.top, 2),
            "width": round(self.width, 2),
            "height": round(self.height, 2),
            "angle_degrees": round(self.angle_degrees, 2),
            "font_size": self.font_size,
        }


class ScannerRuntime:
    def __init__(
        self,
        settings: ScannerSettings,
        recognizer: TextRecognizer | None = None,
        service: TeamLookupService | None = None,
    ) -> None:
        self.settings = settings
        self.settings.ensure_directories()
        self.logger = configure_logger(settings.log_dir if settings.log_to_file else None)
        self.service = service or TeamLookupService(
            client=DirectoryClient(
                base_url=settings.api_base_url,
                timeout_seconds=settings.request_timeout_seconds,
            ),
            store=open_cache_store(settings.cache_backend, settings.resolved_cache_path),
        )
        self.coordinator = EnrichmentCoordinator(self.service, lookup_workers=settings.lookup_workers)
        self._recognizer = recognizer
        self._extractor: NumberExtractor | None = None

    @property
    def preview_size(self) -> FrameSize:
        return FrameSize(width=self.settings.preview_width, height=self.settings.preview_height)

    @property
    def extractor(self) -> NumberExtractor:
        if self._extractor is None:
            if self._recognizer is None:
                from team_scanner.ocr_module.recognizer import EasyOCRRecognizer

                self._recognizer = EasyOCRRecognizer(
                    languages=self.settings.ocr_languages,
                    prefer_gpu=self.settings.prefer_gpu,
                    min_confidence=self.settings.ocr_confidence,
                )
            self._extractor = NumberExtractor(recognizer=self._recognizer)
        return self._extractor

    def scan_frames(self, frames: Iterable[Any], poll_seconds: float = 0.05) -> PublishedBatch:
        """Analyze frames on a worker thread and pump the coordinator here until all settle."""
        extractor = self.extractor
        done = threading.Event()
        failures: list[BaseException] = []

        def analysis_worker() -> None:
            try:
                for frame in frames:
                    started = time.perf_counter()
                    batch = extractor.analyze(frame)
                    self.logger.info(
                        "Frame analyzed",
                        extra={
                            "event": "frame_analyzed",
                            "sequence": batch.sequence,
                            "candidates": len(batch.detections),
                            "latency_ms": round((time.perf_counter() - started) * 1000.0, 2),
                        },
                    )
                    self.coordinator.submit(batch)
            except Exception as exc:
                failures.append(exc)
                self.logger.exception("Frame analysis failed", extra={"event": "analysis_failed"})
            finally:
                done.set()

        worker = threading.Thread(target=analysis_worker, name="analysis-thread", daemon=True)
        worker.start()
        while not (done.is_set() and self.coordinator.idle):
            self.coordinator.pump(timeout=poll_seconds)
        self.coordinator.pump()
        worker.join(timeout=1.0)

        if failures:
            raise failures[0]
        return self.coordinator.current

    def overlays(self, published: PublishedBatch, preview_size: FrameSize | None = None) -> list[OverlayView]:
        size = preview_size or self.preview_size
        views: list[OverlayView] = []
        for detection, box in layout_overlays(published, size):
            label = overlay_label(detection.text, detection.team_info)
            views.append(
                OverlayView(
                    number=detection.text,
                    label=label,
                    left=box.left,
                    top=box.top,
                    width=box.width,
                    height=box.height,
                    angle_degrees=box.angle_degrees,
                    font_size=calculate_font_size(label, box.width, box.height, max_font_size=28, min_font_size=8),
                )
            )
        return views

    def lookup(
        self,
        number: str,
        season: int | None = None,
        with_stats: bool = True,
    ) -> tuple[TeamInfo | None, QuickStats | None]:
        team = self.service.get_team_info(number)
        if team is None or not with_stats:
            return team, None
        return team, self.service.get_quick_stats(team.number, season=season)

    def clear_cache(self) -> None:
        self.service.clear_cache()

    def close(self) -> None:
        self.coordinator.close()
        self.service.close()
        self.service.client.close()


def build_runtime(project_root: Path | None = None) -> ScannerRuntime:
    root = project_root or Path.cwd()
    return ScannerRuntime(ScannerSettings.from_env(root))
