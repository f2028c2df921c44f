from interview_runtime.proctoring.descriptor import face_descriptor, mean_abs_diff
from interview_runtime.proctoring.detectors import (
    DnnFaceDetector,
    FaceDetector,
    HaarCascadeDetector,
    UnavailableDetector,
    select_detector,
)
from interview_runtime.proctoring.monitor import FrameSource, ProctorCheck, ProctoringMonitor

__all__ = [
    "face_descriptor",
    "mean_abs_diff",
    "DnnFaceDetector",
    "FaceDetector",
    "HaarCascadeDetector",
    "UnavailableDetector",
    "select_detector",
    "FrameSource",
    "ProctorCheck",
    "ProctoringMonitor",
]
