import os
from pathlib import Path
from dotenv import load_dotenv

_BACKEND_ROOT = Path(__file__).resolve().parents[1]
_BACKEND_ENV_PATH = _BACKEND_ROOT / ".env"
load_dotenv(dotenv_path=_BACKEND_ENV_PATH, override=True)


def _env_flag(name: str, default: str = "false") -> bool:
    return str(os.getenv(name, default)).strip().lower() in {"1", "true", "yes", "on"}


OPENAI_API_KEY = str(os.getenv("OPENAI_API_KEY") or "").strip()
MODEL_NAME = str(os.getenv("MODEL_NAME") or "gpt-4.1-mini").strip()  # interviewer chat turns
REPORT_MODEL = str(os.getenv("REPORT_MODEL") or "gpt-4o-mini").strip()
TRANSCRIBE_MODEL = str(os.getenv("TRANSCRIBE_MODEL") or "whisper-1").strip()
QA_MODE = _env_flag("QA_MODE")

DATABASE_URL = str(
    os.getenv("DATABASE_URL") or f"sqlite+aiosqlite:///{_BACKEND_ROOT / 'data' / 'interview_runtime.db'}"
).strip()
BLOB_STORE_DIR = Path(os.getenv("BLOB_STORE_DIR") or (_BACKEND_ROOT / "data" / "blobs"))
RUNTIME_API_BASE_URL = str(os.getenv("RUNTIME_API_BASE_URL") or "http://127.0.0.1:8000").rstrip("/")
HTTP_TIMEOUT_SEC = max(1.0, float(os.getenv("HTTP_TIMEOUT_SEC", "15")))

# Chunk upload queue
UPLOAD_MAX_ATTEMPTS = max(1, int(os.getenv("UPLOAD_MAX_ATTEMPTS", "5")))
UPLOAD_INITIAL_BACKOFF_SEC = max(0.0, float(os.getenv("UPLOAD_INITIAL_BACKOFF_SEC", "0.5")))
UPLOAD_BACKOFF_MULTIPLIER = max(1.0, float(os.getenv("UPLOAD_BACKOFF_MULTIPLIER", "1.8")))
RECORDING_SLICE_SEC = max(1.0, float(os.getenv("RECORDING_SLICE_SEC", "17")))

# Speech recognition
SILENCE_FINALIZE_SEC = max(0.05, float(os.getenv("SILENCE_FINALIZE_SEC", "0.35")))
RECOGNIZER_IDLE_RESTART_SEC = max(1.0, float(os.getenv("RECOGNIZER_IDLE_RESTART_SEC", "8")))
RECOGNIZER_MAX_RUN_SEC = max(5.0, float(os.getenv("RECOGNIZER_MAX_RUN_SEC", "50")))
RECENT_FINALIZE_GRACE_SEC = 0.25
RELAY_SEGMENT_SEC = max(1.0, float(os.getenv("RELAY_SEGMENT_SEC", "3")))

# Proctoring
PROCTOR_MIN_INTERVAL_SEC = max(0.5, float(os.getenv("PROCTOR_MIN_INTERVAL_SEC", "2")))
PROCTOR_MAX_INTERVAL_SEC = max(PROCTOR_MIN_INTERVAL_SEC, float(os.getenv("PROCTOR_MAX_INTERVAL_SEC", "5")))
PROCTOR_MISMATCH_THRESHOLD = min(1.0, max(0.01, float(os.getenv("PROCTOR_MISMATCH_THRESHOLD", "0.25"))))
PROCTOR_GRID_SIZE = max(8, int(os.getenv("PROCTOR_GRID_SIZE", "32")))
FACE_MODEL_DIR = Path(os.getenv("FACE_MODEL_DIR") or (_BACKEND_ROOT / "data" / "models"))
FACE_MODEL_PROTOTXT_URL = str(
    os.getenv("FACE_MODEL_PROTOTXT_URL")
    or "https://raw.githubusercontent.com/opencv/opencv/4.x/samples/dnn/face_detector/deploy.prototxt"
).strip()
FACE_MODEL_WEIGHTS_URL = str(
    os.getenv("FACE_MODEL_WEIGHTS_URL")
    or "https://raw.githubusercontent.com/opencv/opencv_3rdparty/dnn_samples_face_detector_20170830/res10_300x300_ssd_iter_140000.caffemodel"
).strip()
FACE_MODEL_CONFIDENCE = min(0.99, max(0.1, float(os.getenv("FACE_MODEL_CONFIDENCE", "0.6"))))

# Fallback report scoring
FALLBACK_MIN_WORDS = max(1, int(os.getenv("FALLBACK_MIN_WORDS", "20")))
FALLBACK_LENGTH_CAP_WORDS = max(FALLBACK_MIN_WORDS, int(os.getenv("FALLBACK_LENGTH_CAP_WORDS", "600")))
FALLBACK_LENGTH_SHARE = 0.6
FALLBACK_KEYWORD_STEP = 0.05
FALLBACK_KEYWORD_CAP = 0.25

# Session
TRANSCRIPT_SAVE_RETRIES = max(0, int(os.getenv("TRANSCRIPT_SAVE_RETRIES", "2")))
SESSION_CLEANUP_TTL_SEC = max(60, int(os.getenv("SESSION_CLEANUP_TTL_SEC", "1800")))
