from __future__ import annotations

import asyncio
import logging
from typing import Protocol

from interview_runtime.system_metrics import increment_metric
from interview_runtime.transcription.adapter import TranscriptionAdapter
from runtime_core.logger import log_event
from runtime_core.state import TurnTakingState

logger = logging.getLogger("interview_runtime.turn_taking")


class SpeechSynthesizer(Protocol):
    async def speak(self, text: str) -> None:
        ...

    def cancel(self) -> None:
        ...


class TurnTakingCoordinator:
    """
    Gate between bot speech playback and candidate listening.

    IDLE -> LISTENING -> BOT_SPEAKING -> LISTENING (or IDLE once ended).
    Every utterance gets an id; only the stop for the latest utterance
    leaves BOT_SPEAKING, so back-to-back replies never strand listening.
    """

    def __init__(self, session_id: str = "", adapter: TranscriptionAdapter | None = None):
        self.session_id = str(session_id or "")
        self.state = TurnTakingState.IDLE
        self.muted = False
        self.paused_for_bot = False
        self.ended = False
        self.discarded = 0
        self._utterance = 0
        self._synthesizer: SpeechSynthesizer | None = None
        self.adapter: TranscriptionAdapter | None = None
        if adapter is not None:
            self.attach(adapter)

    def attach(self, adapter: TranscriptionAdapter) -> None:
        self.adapter = adapter
        adapter.set_gate(self.admit)

    @property
    def listening(self) -> bool:
        return self.state == TurnTakingState.LISTENING

    @property
    def bot_speaking(self) -> bool:
        return self.state == TurnTakingState.BOT_SPEAKING

    # -------------------------
    # LISTENING
    # -------------------------

    def start_listening(self) -> bool:
        if self.ended or self.muted or self.state == TurnTakingState.BOT_SPEAKING:
            return False
        if self.state == TurnTakingState.LISTENING:
            return True
        if self.adapter is not None:
            self.adapter.start()
        self._transition(TurnTakingState.LISTENING, "start_listening")
        return True

    def set_muted(self, muted: bool) -> None:
        muted = bool(muted)
        if muted == self.muted:
            return
        self.muted = muted

        if muted:
            if self.state == TurnTakingState.LISTENING:
                if self.adapter is not None:
                    self.adapter.stop()
                self._transition(TurnTakingState.IDLE, "muted")
            self.paused_for_bot = False
            return

        if self.ended:
            return
        if self.state == TurnTakingState.BOT_SPEAKING:
            # listen again as soon as playback ends
            self.paused_for_bot = True
            return
        self.start_listening()

    def admit(self, text: str, source: str = "") -> bool:
        """Gate for finalized recognition text. False means the text is dropped."""
        if self.ended or self.state == TurnTakingState.BOT_SPEAKING:
            self.discarded += 1
            increment_metric("recognized_text_discarded")
            logger.info(
                "recognized text discarded | session=%s state=%s source=%s chars=%s",
                self.session_id,
                self.state.value,
                source,
                len(str(text or "")),
            )
            return False
        return bool(str(text or "").strip())

    # -------------------------
    # BOT SPEECH
    # -------------------------

    def bot_started(self) -> int:
        self._utterance += 1
        if self.ended:
            return self._utterance

        if self.state == TurnTakingState.LISTENING:
            self.paused_for_bot = True
        if self.state != TurnTakingState.BOT_SPEAKING:
            if self.adapter is not None:
                self.adapter.suspend()
            self._transition(TurnTakingState.BOT_SPEAKING, "bot_started")
        return self._utterance

    def bot_stopped(self, utterance: int | None = None, reason: str = "ended") -> bool:
        """
        Leave BOT_SPEAKING. A stale utterance id (an older reply that was
        superseded) is ignored. Returns True when listening resumed.
        """
        if self.state != TurnTakingState.BOT_SPEAKING:
            return False
        if utterance is not None and utterance != self._utterance:
            return False

        should_resume = self.paused_for_bot and not self.muted and not self.ended
        self.paused_for_bot = False
        if should_resume:
            if self.adapter is not None:
                self.adapter.resume()
            self._transition(TurnTakingState.LISTENING, f"bot_stopped:{reason}")
            return True

        self._transition(TurnTakingState.IDLE, f"bot_stopped:{reason}")
        return False

    async def speak(self, text: str, synthesizer: SpeechSynthesizer) -> None:
        text = str(text or "").strip()
        if not text or self.ended:
            return

        if self.state == TurnTakingState.BOT_SPEAKING and self._synthesizer is not None:
            self._cancel_synthesizer(self._synthesizer)

        utterance = self.bot_started()
        self._synthesizer = synthesizer
        reason = "ended"
        try:
            await synthesizer.speak(text)
        except asyncio.CancelledError:
            reason = "cancelled"
            raise
        except Exception as exc:
            reason = "error"
            logger.warning("speech synthesis failed | session=%s err=%s", self.session_id, exc)
        finally:
            if self._synthesizer is synthesizer and utterance == self._utterance:
                self._synthesizer = None
            self.bot_stopped(utterance, reason=reason)

    def cancel_speech(self) -> None:
        if self._synthesizer is not None:
            self._cancel_synthesizer(self._synthesizer)
            self._synthesizer = None
        self.bot_stopped(reason="cancelled")

    # -------------------------
    # END
    # -------------------------

    def end(self) -> None:
        if self.ended:
            return
        self.ended = True
        self.paused_for_bot = False
        if self._synthesizer is not None:
            self._cancel_synthesizer(self._synthesizer)
            self._synthesizer = None
        if self.adapter is not None:
            self.adapter.stop()
        self._transition(TurnTakingState.IDLE, "ended")

    def _cancel_synthesizer(self, synthesizer: SpeechSynthesizer) -> None:
        try:
            synthesizer.cancel()
        except Exception as exc:
            logger.warning("speech cancel failed | session=%s err=%s", self.session_id, exc)

    def _transition(self, new_state: TurnTakingState, reason: str) -> None:
        previous = self.state
        self.state = new_state
        if previous != new_state:
            log_event(
                "turn_taking",
                "transition",
                self.session_id,
                level=logging.DEBUG,
                from_state=previous.value,
                to_state=new_state.value,
                reason=reason,
                paused_for_bot=self.paused_for_bot,
                muted=self.muted,
            )
