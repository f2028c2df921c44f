# backend/runtime_core/state.py

from enum import Enum


class AttemptStatus(str, Enum):
    NOT_STARTED = "NOT_STARTED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


class TurnTakingState(str, Enum):
    IDLE = "idle"
    LISTENING = "listening"
    BOT_SPEAKING = "bot_speaking"


class RecognizerState(str, Enum):
    STOPPED = "stopped"
    RUNNING = "running"
    SUSPENDED = "suspended"


class ProctorStatus(str, Enum):
    STARTING = "starting"
    BASELINE_CAPTURED = "baseline_captured"
    OK = "ok"
    NO_FACE = "no_face"
    MULTIPLE_PERSONS = "multiple_persons"
    FACE_MISMATCH = "face_mismatch"
    DETECTOR_FAILED = "detector_failed"


class InteractionMode(str, Enum):
    VOICE = "VOICE"
    TEXT_ONLY = "TEXT_ONLY"
