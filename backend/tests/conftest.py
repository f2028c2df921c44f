import os
import sys
import tempfile
from pathlib import Path

import pytest


ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# runtime_core.config reads these at import time
_TMP_DIR = Path(tempfile.mkdtemp(prefix="interview-runtime-tests-"))
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TMP_DIR / 'test.db'}"
os.environ["BLOB_STORE_DIR"] = str(_TMP_DIR / "blobs")
os.environ["OPENAI_API_KEY"] = ""
os.environ["QA_MODE"] = "true"


@pytest.fixture(autouse=True)
def _reset_llm_client():
    from interview_runtime.ai_reasoning import llm

    llm.set_client(None)
    yield
    llm.set_client(None)


class FakeCompletions:
    """Stands in for AsyncOpenAI.chat.completions; replies are consumed in order."""

    def __init__(self, replies):
        self.replies = list(replies)
        self.calls: list[dict] = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        reply = self.replies.pop(0) if self.replies else "{}"
        if isinstance(reply, Exception):
            raise reply

        class _Msg:
            content = reply

        class _Choice:
            message = _Msg()

        class _Response:
            choices = [_Choice()]

        return _Response()


class FakeLLMClient:
    def __init__(self, replies=()):
        class _Chat:
            pass

        self.chat = _Chat()
        self.chat.completions = FakeCompletions(replies)


@pytest.fixture
def fake_llm():
    from interview_runtime.ai_reasoning import llm

    def _install(*replies):
        client = FakeLLMClient(replies)
        llm.set_client(client)
        return client.chat.completions

    return _install
