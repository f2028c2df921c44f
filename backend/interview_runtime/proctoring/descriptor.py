import cv2
import numpy as np

from runtime_core.config import PROCTOR_GRID_SIZE

# Rec. 709 luma weights, applied to R, G, B
LUMA_WEIGHTS = np.array([0.2126, 0.7152, 0.0722], dtype=np.float64)

FaceBox = tuple[int, int, int, int]


def largest_face(faces: list[FaceBox]) -> FaceBox | None:
    if not faces:
        return None
    return max(faces, key=lambda box: int(box[2]) * int(box[3]))


def crop_face(frame: np.ndarray, box: FaceBox) -> np.ndarray | None:
    height, width = frame.shape[:2]
    x, y, w, h = (int(v) for v in box)
    x0, y0 = max(0, x), max(0, y)
    x1, y1 = min(width, x + w), min(height, y + h)
    if x1 <= x0 or y1 <= y0:
        return None
    return frame[y0:y1, x0:x1]


def face_descriptor(frame: np.ndarray, box: FaceBox, grid_size: int = PROCTOR_GRID_SIZE) -> np.ndarray | None:
    """
    Crop the face, downsample to grid_size x grid_size and return the
    flattened luminance vector on a 0-1 scale.
    """
    region = crop_face(frame, box)
    if region is None or region.size == 0:
        return None

    small = cv2.resize(region, (grid_size, grid_size), interpolation=cv2.INTER_AREA)
    if small.ndim == 2:
        return (small.astype(np.float64) / 255.0).reshape(-1)

    # frames are BGR as delivered by OpenCV
    rgb = small[:, :, :3][:, :, ::-1].astype(np.float64)
    luminance = rgb @ LUMA_WEIGHTS / 255.0
    return luminance.reshape(-1)


def mean_abs_diff(a: np.ndarray | None, b: np.ndarray | None) -> float:
    if a is None or b is None:
        return 1.0
    if len(a) != len(b) or len(a) == 0:
        return 1.0
    return float(np.mean(np.abs(np.asarray(a, dtype=np.float64) - np.asarray(b, dtype=np.float64))))
