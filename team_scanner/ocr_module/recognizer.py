from __future__ import annotations

import logging
from pathlib import Path
from typing import Sequence

import cv2
import numpy as np
import torch

from team_scanner.exceptions import RecognizerError
from team_scanner.utils.types import (
    Point,
    RecognitionResult,
    RecognizedBlock,
    RecognizedElement,
    RecognizedLine,
    RecognizedSymbol,
)

try:
    import easyocr
except ImportError:  # pragma: no cover - handled at runtime.
    easyocr = None

logger = logging.getLogger("team_scanner.ocr")


def load_image(path: Path) -> np.ndarray:
    image = cv2.imread(str(path), cv2.IMREAD_COLOR)
    if image is None:
        raise RecognizerError(f"Could not read image: {path}")
    return image


def interpolate_symbols(box: Sequence[Point], text: str) -> list[RecognizedSymbol]:
    """Split a word quad into equal-width per-character quads along its top and bottom edges."""
    if len(box) < 4 or not text:
        return []
    tl, tr, br, bl = box[:4]
    count = len(text)
    symbols: list[RecognizedSymbol] = []
    for idx, char in enumerate(text):
        t0 = idx / count
        t1 = (idx + 1) / count
        symbols.append(
            RecognizedSymbol(
                text=char,
                corner_points=[
                    _lerp(tl, tr, t0),
                    _lerp(tl, tr, t1),
                    _lerp(bl, br, t1),
                    _lerp(bl, br, t0),
                ],
            )
        )
    return symbols


def _lerp(a: Point, b: Point, t: float) -> Point:
    return Point(x=a.x + (b.x - a.x) * t, y=a.y + (b.y - a.y) * t)


class EasyOCRRecognizer:
    """Adapts EasyOCR ``readtext`` output to the blocks/lines/elements tree.

    EasyOCR reports one quadrilateral per text region. Each region becomes one
    block with one line whose elements are its whitespace-separated words; word
    and character quads are interpolated along the region's edges.
    """

    def __init__(
        self,
        languages: Sequence[str] = ("en",),
        prefer_gpu: bool = True,
        min_confidence: float = 0.35,
        synthesize_symbols: bool = True,
    ) -> None:
        if easyocr is None:
            raise RecognizerError("easyocr is required. Install with: pip install easyocr")
        self.min_confidence = min_confidence
        self.synthesize_symbols = synthesize_symbols
        self.use_gpu = bool(prefer_gpu and torch.cuda.is_available())
        try:
            self.reader = easyocr.Reader(lang_list=list(languages), gpu=self.use_gpu, verbose=False)
        except Exception as exc:
            raise RecognizerError(f"Failed to initialize EasyOCR reader: {exc}") from exc

    @property
    def device_name(self) -> str:
        if not self.use_gpu:
            return "cpu"
        try:
            return f"cuda:{torch.cuda.get_device_name(0)}"
        except Exception:
            return "cuda"

    def recognize(self, image: np.ndarray) -> RecognitionResult:
        height, width = image.shape[:2]
        try:
            raw = self.reader.readtext(image, detail=1, paragraph=False)
        except Exception as exc:
            raise RecognizerError(f"OCR inference failed: {exc}") from exc

        blocks: list[RecognizedBlock] = []
        for item in raw:
            if not isinstance(item, (list, tuple)) or len(item) < 3:
                continue
            box_raw, text_raw, conf_raw = item
            try:
                conf = float(conf_raw)
            except (TypeError, ValueError):
                continue
            if conf < self.min_confidence:
                continue
            box = [Point(x=float(p[0]), y=float(p[1])) for p in box_raw if len(p) >= 2]
            if len(box) < 4:
                continue
            elements = self._split_words(box, str(text_raw))
            if elements:
                blocks.append(RecognizedBlock(lines=[RecognizedLine(elements=elements)]))

        logger.debug(
            "Recognized text regions",
            extra={"event": "ocr_regions", "regions": len(blocks), "width": width, "height": height},
        )
        return RecognitionResult(blocks=blocks, width=int(width), height=int(height))

    def _split_words(self, box: list[Point], text: str) -> list[RecognizedElement]:
        if not text.strip():
            return []
        per_char = interpolate_symbols(box, text)
        elements: list[RecognizedElement] = []
        start = None
        for idx, char in enumerate(text + " "):
            if not char.isspace():
                if start is None:
                    start = idx
                continue
            if start is None:
                continue
            word_symbols = per_char[start:idx]
            first = word_symbols[0].corner_points
            last = word_symbols[-1].corner_points
            elements.append(
                RecognizedElement(
                    text=text[start:idx],
                    corner_points=[first[0], last[1], last[2], first[3]],
                    symbols=word_symbols if self.synthesize_symbols else [],
                )
            )
            start = None
        return elements
