from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Protocol

import cv2
import httpx
import numpy as np

from interview_runtime.proctoring.descriptor import FaceBox
from runtime_core.config import (
    FACE_MODEL_CONFIDENCE,
    FACE_MODEL_DIR,
    FACE_MODEL_PROTOTXT_URL,
    FACE_MODEL_WEIGHTS_URL,
    HTTP_TIMEOUT_SEC,
)

logger = logging.getLogger("interview_runtime.proctoring.detectors")

DETECTOR_NATIVE = "native"
DETECTOR_DOWNLOADED = "downloaded"
DETECTOR_UNAVAILABLE = "unavailable"


class FaceDetector(Protocol):
    name: str

    def detect(self, frame: np.ndarray) -> list[FaceBox]:
        ...


class HaarCascadeDetector:
    """Frontal-face Haar cascade shipped with OpenCV."""

    name = DETECTOR_NATIVE

    def __init__(self, cascade_file: str = "haarcascade_frontalface_default.xml"):
        self.cascade = cv2.CascadeClassifier(cv2.data.haarcascades + cascade_file)
        if self.cascade.empty():
            raise RuntimeError(f"Haar cascade not loadable: {cascade_file}")

    def detect(self, frame: np.ndarray) -> list[FaceBox]:
        gray = frame if frame.ndim == 2 else cv2.cvtColor(frame, cv2.COLOR_BGR2GRAY)
        faces = self.cascade.detectMultiScale(gray, 1.1, 5, minSize=(40, 40))
        return [tuple(int(v) for v in face) for face in faces]


class DnnFaceDetector:
    """res10 SSD face model, loaded from files fetched into the model cache."""

    name = DETECTOR_DOWNLOADED

    def __init__(self, prototxt_path: Path, weights_path: Path, confidence: float = FACE_MODEL_CONFIDENCE):
        self.net = cv2.dnn.readNetFromCaffe(str(prototxt_path), str(weights_path))
        self.confidence = float(confidence)

    def detect(self, frame: np.ndarray) -> list[FaceBox]:
        image = frame if frame.ndim == 3 else cv2.cvtColor(frame, cv2.COLOR_GRAY2BGR)
        height, width = image.shape[:2]
        blob = cv2.dnn.blobFromImage(cv2.resize(image, (300, 300)), 1.0, (300, 300), (104.0, 177.0, 123.0))
        self.net.setInput(blob)
        detections = self.net.forward()

        boxes: list[FaceBox] = []
        for i in range(detections.shape[2]):
            if float(detections[0, 0, i, 2]) < self.confidence:
                continue
            x0, y0, x1, y1 = (detections[0, 0, i, 3:7] * np.array([width, height, width, height])).astype(int)
            x0, y0 = max(0, x0), max(0, y0)
            x1, y1 = min(width, x1), min(height, y1)
            if x1 > x0 and y1 > y0:
                boxes.append((int(x0), int(y0), int(x1 - x0), int(y1 - y0)))
        return boxes


class UnavailableDetector:
    name = DETECTOR_UNAVAILABLE

    def detect(self, frame: np.ndarray) -> list[FaceBox]:
        raise RuntimeError("No face detector available")


async def download_face_model(
    model_dir: Path = FACE_MODEL_DIR,
    client: httpx.AsyncClient | None = None,
) -> tuple[Path, Path]:
    model_dir = Path(model_dir)
    model_dir.mkdir(parents=True, exist_ok=True)
    targets = [
        (FACE_MODEL_PROTOTXT_URL, model_dir / "deploy.prototxt"),
        (FACE_MODEL_WEIGHTS_URL, model_dir / "res10_300x300_ssd.caffemodel"),
    ]

    async def _fetch(http: httpx.AsyncClient) -> None:
        for url, path in targets:
            if path.exists() and path.stat().st_size > 0:
                continue
            logger.info("downloading face model | url=%s", url)
            response = await http.get(url, follow_redirects=True)
            response.raise_for_status()
            path.write_bytes(response.content)

    if client is not None:
        await _fetch(client)
    else:
        async with httpx.AsyncClient(timeout=max(HTTP_TIMEOUT_SEC, 60.0)) as http:
            await _fetch(http)

    return targets[0][1], targets[1][1]


async def select_detector(
    order: tuple[str, ...] = (DETECTOR_NATIVE, DETECTOR_DOWNLOADED),
    model_dir: Path = FACE_MODEL_DIR,
    client: httpx.AsyncClient | None = None,
) -> FaceDetector:
    """Try the strategies once, in order; the first that loads wins."""
    for strategy in order:
        try:
            if strategy == DETECTOR_NATIVE:
                return await asyncio.to_thread(HaarCascadeDetector)
            if strategy == DETECTOR_DOWNLOADED:
                prototxt, weights = await download_face_model(model_dir, client=client)
                return await asyncio.to_thread(DnnFaceDetector, prototxt, weights)
        except Exception as exc:
            logger.warning("face detector unavailable | strategy=%s err=%s", strategy, exc)
    return UnavailableDetector()
