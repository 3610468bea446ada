"""
Press-and-hold voice capture.

The controller walks IDLE -> LISTENING -> SUBMITTING -> IDLE. Speech
recognition itself lives outside this process; the UI feeds recognizer text
into :class:`BufferedSpeechCapture` while the user holds the button.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Dict, Optional, Protocol

from caps.core.data_models import CommandResponse
from caps.core.errors import ConnectivityError, InputValidationError

from .dispatcher import CommandDispatcher

logger = logging.getLogger("caps.backend.voice_capture")

PROMPT_IDLE = "Hold to Speak"
PROMPT_LISTENING = "Listening..."


class CaptureState(str, Enum):
    IDLE = "idle"
    LISTENING = "listening"
    SUBMITTING = "submitting"


class SpeechCapture(Protocol):
    @property
    def is_listening(self) -> bool: ...

    @property
    def transcript(self) -> str: ...

    def start(self) -> None: ...

    def stop(self) -> None: ...


class BufferedSpeechCapture:
    """Speech capture fed by an external recognizer."""

    def __init__(self) -> None:
        self._listening = False
        self._transcript = ""

    @property
    def is_listening(self) -> bool:
        return self._listening

    @property
    def transcript(self) -> str:
        return self._transcript

    def start(self) -> None:
        self._transcript = ""
        self._listening = True

    def stop(self) -> None:
        self._listening = False

    def update(self, transcript: str) -> bool:
        """Replace the live transcript with the recognizer's latest hypothesis."""
        if not self._listening:
            logger.debug("Dropping transcript update received while not listening")
            return False
        self._transcript = transcript
        return True


class VoiceCaptureController:
    def __init__(self, capture: SpeechCapture, dispatcher: CommandDispatcher):
        self.capture = capture
        self.dispatcher = dispatcher
        self.state = CaptureState.IDLE

    @property
    def transcript(self) -> str:
        return self.capture.transcript

    def start(self) -> bool:
        """Begin listening. Ignored unless idle and no command is in flight."""
        if self.state is not CaptureState.IDLE or self.dispatcher.processing:
            logger.debug("Ignoring start() in state %s (processing=%s)", self.state.value, self.dispatcher.processing)
            return False
        self.capture.start()
        self.state = CaptureState.LISTENING
        return True

    async def stop(self) -> Optional[CommandResponse]:
        """
        Stop listening and submit what was heard.

        Returns the command response, or None when nothing was submitted
        (blank transcript, wrong state) or the command service was unreachable.
        The failure itself is recorded in the session history by the dispatcher.
        """
        if self.state is not CaptureState.LISTENING:
            return None

        self.capture.stop()
        transcript = self.capture.transcript
        try:
            _require_speech(transcript)
        except InputValidationError:
            logger.info("Discarding empty transcript")
            self.state = CaptureState.IDLE
            return None

        self.state = CaptureState.SUBMITTING
        try:
            return await self.dispatcher.submit(transcript)
        except ConnectivityError as exc:
            logger.warning("Command dispatch failed: %s", exc)
            return None
        finally:
            self.state = CaptureState.IDLE

    def snapshot(self) -> Dict[str, Any]:
        listening = self.state is CaptureState.LISTENING
        if listening:
            prompt = self.transcript or PROMPT_LISTENING
        else:
            prompt = PROMPT_IDLE
        return {
            "state": self.state.value,
            "is_listening": listening,
            "transcript": self.transcript,
            "processing": self.dispatcher.processing,
            "prompt": prompt,
        }


def _require_speech(transcript: str) -> None:
    if not transcript.strip():
        raise InputValidationError("Transcript is empty.")
