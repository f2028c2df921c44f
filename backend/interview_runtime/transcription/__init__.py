from interview_runtime.transcription.adapter import (
    PendingTranscript,
    TranscriptionAdapter,
    TranscriptionStrategy,
    build_transcription_adapter,
)
from interview_runtime.transcription.continuous import ContinuousRecognition, Recognizer
from interview_runtime.transcription.relay import (
    HttpRelayTranscriber,
    RelayTranscriber,
    SegmentRecorder,
    SegmentedRelayRecognition,
)

__all__ = [
    "PendingTranscript",
    "TranscriptionAdapter",
    "TranscriptionStrategy",
    "build_transcription_adapter",
    "ContinuousRecognition",
    "Recognizer",
    "HttpRelayTranscriber",
    "RelayTranscriber",
    "SegmentRecorder",
    "SegmentedRelayRecognition",
]
