from __future__ import annotations

import itertools
import logging
import math
import re
import threading
from typing import Any, Protocol, Sequence

from team_scanner.utils.types import (
    DetectedNumber,
    DetectionBatch,
    FrameSize,
    Point,
    Quad,
    RecognitionResult,
    RecognizedElement,
)

logger = logging.getLogger("team_scanner.ocr")

NUMBER_PATTERN = re.compile(r"[0-9]{3,5}")
_WHOLE_NUMBER = re.compile(r"[0-9]{3,5}")
_EDGE_PUNCTUATION = re.compile(r"^[^0-9A-Za-z]+|[^0-9A-Za-z]+$")


class TextRecognizer(Protocol):
    def recognize(self, image: Any) -> RecognitionResult:
        ...


def find_number_runs(text: str) -> list[tuple[int, int, str]]:
    """Return ``(start, end, digits)`` for each non-overlapping digit run."""
    return [(match.start(), match.end(), match.group(0)) for match in NUMBER_PATTERN.finditer(text)]


def as_quad(points: Sequence[Point] | None) -> Quad | None:
    if not points or len(points) < 4:
        return None
    quad = tuple(points[:4])
    for point in quad:
        if not (math.isfinite(point.x) and math.isfinite(point.y)):
            return None
    return quad  # type: ignore[return-value]


def _symbol_quads(element: RecognizedElement) -> list[Quad] | None:
    if not element.symbols:
        return None
    quads: list[Quad] = []
    for symbol in element.symbols:
        quad = as_quad(symbol.corner_points)
        if quad is None:
            return None
        quads.append(quad)
    return quads


def _span_quad(quads: list[Quad], start: int, end: int) -> Quad | None:
    if start < 0 or end > len(quads) or end <= start:
        return None
    first = quads[start]
    last = quads[end - 1]
    return (first[0], last[1], last[2], first[3])


def _whole_word_number(text: str) -> str | None:
    trimmed = _EDGE_PUNCTUATION.sub("", text.strip())
    if _WHOLE_NUMBER.fullmatch(trimmed):
        return trimmed
    return None


def extract_from_element(element: RecognizedElement) -> list[DetectedNumber]:
    runs = find_number_runs(element.text)
    if not runs:
        return []

    symbol_quads = _symbol_quads(element)
    if symbol_quads is not None and len(symbol_quads) >= runs[-1][1]:
        detections: list[DetectedNumber] = []
        for start, end, digits in runs:
            quad = _span_quad(symbol_quads, start, end)
            if quad is None:
                continue
            detections.append(DetectedNumber(text=digits, corner_points=quad))
        return detections

    number = _whole_word_number(element.text)
    if number is None:
        logger.debug(
            "Skipped embedded number without symbol geometry",
            extra={"event": "number_unplaceable", "text": element.text},
        )
        return []

    quad = as_quad(element.corner_points)
    if quad is None:
        logger.debug(
            "Skipped number with malformed geometry",
            extra={"event": "number_malformed_geometry", "text": element.text},
        )
        return []
    return [DetectedNumber(text=number, corner_points=quad)]


def extract_numbers(result: RecognitionResult) -> list[DetectedNumber]:
    detections: list[DetectedNumber] = []
    for block in result.blocks:
        for line in block.lines:
            for element in line.elements:
                detections.extend(extract_from_element(element))
    return detections


class NumberExtractor:
    def __init__(self, recognizer: TextRecognizer | None = None, start_sequence: int = 0) -> None:
        self.recognizer = recognizer
        self._sequence = itertools.count(start_sequence)
        self._sequence_lock = threading.Lock()

    def next_sequence(self) -> int:
        with self._sequence_lock:
            return next(self._sequence)

    def build_batch(self, result: RecognitionResult, frame_size: FrameSize | None = None) -> DetectionBatch:
        size = frame_size if frame_size is not None else result.frame_size
        detections = extract_numbers(result)
        return DetectionBatch(
            sequence=self.next_sequence(),
            frame_size=size,
            detections=tuple(detections),
        )

    def analyze(self, image: Any, frame_size: FrameSize | None = None) -> DetectionBatch:
        if self.recognizer is None:
            raise RuntimeError("NumberExtractor.analyze requires a text recognizer.")
        result = self.recognizer.recognize(image)
        batch = self.build_batch(result, frame_size=frame_size)
        if batch.detections:
            logger.debug(
                "Numbers detected",
                extra={
                    "event": "numbers_detected",
                    "sequence": batch.sequence,
                    "numbers": [item.text for item in batch.detections],
                },
            )
        return batch
