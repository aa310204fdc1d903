"""Wizard controller: the linear upload -> transcribe -> generate -> review flow.

The wizard is a finite-state machine driven by dispatch(). Each step is
completed by exactly one event type carrying that step's payload, so a step
can never be skipped and data only flows forward.
"""
import uuid
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Dict, Optional, Union

from aiogram.fsm.context import FSMContext
from aiogram.fsm.state import State

from voice_quiz.api.models import (
    AudioHandle, Quiz, Transcript, quiz_from_dict, to_dict,
)
from voice_quiz.services.dashboard import DASHBOARD_KEYS
from voice_quiz.states.wizard import WizardStates

WIZARD_KEY = "wizard"


class WizardStep(IntEnum):
    UPLOAD = 1
    TRANSCRIBE = 2
    GENERATE = 3
    REVIEW = 4


STEP_STATES: Dict[WizardStep, State] = {
    WizardStep.UPLOAD: WizardStates.uploading,
    WizardStep.TRANSCRIBE: WizardStates.transcribing,
    WizardStep.GENERATE: WizardStates.generating,
    WizardStep.REVIEW: WizardStates.reviewing,
}


class WizardTransitionError(Exception):
    """Event does not belong to the current step."""
    pass


# ============================================================================
# EVENTS
# ============================================================================

@dataclass(frozen=True)
class AudioUploaded:
    audio: AudioHandle


@dataclass(frozen=True)
class TranscriptionRequested:
    pass


@dataclass(frozen=True)
class TranscriptAccepted:
    transcript: Transcript


@dataclass(frozen=True)
class QuizGenerated:
    quiz: Quiz


@dataclass(frozen=True)
class StepFailed:
    message: str


@dataclass(frozen=True)
class ErrorCleared:
    pass


WizardEvent = Union[
    AudioUploaded, TranscriptionRequested, TranscriptAccepted,
    QuizGenerated, StepFailed, ErrorCleared,
]


# ============================================================================
# CONTROLLER
# ============================================================================

class WizardController:
    """Current step, accumulated payloads and the single error slot."""

    def __init__(self):
        # New id per run: results of calls started by an earlier run are dropped
        self.run_id = uuid.uuid4().hex
        self.step = WizardStep.UPLOAD
        self.audio: Optional[AudioHandle] = None
        self.transcript: Optional[Transcript] = None
        self.quiz: Optional[Quiz] = None
        self.error: Optional[str] = None
        self.transcription_requested = False
        self.busy = False

    def _expect(self, step: WizardStep, event: WizardEvent) -> None:
        if self.step != step:
            raise WizardTransitionError(
                f"{type(event).__name__} is not allowed at step {self.step.name}"
            )

    def dispatch(self, event: WizardEvent) -> "WizardController":
        """Apply an event and return self."""
        if isinstance(event, AudioUploaded):
            self._expect(WizardStep.UPLOAD, event)
            self.audio = event.audio
            self.step = WizardStep.TRANSCRIBE
            self.error = None
        elif isinstance(event, TranscriptionRequested):
            self._expect(WizardStep.TRANSCRIBE, event)
            if self.transcription_requested:
                raise WizardTransitionError("Transcription was already requested")
            self.transcription_requested = True
        elif isinstance(event, TranscriptAccepted):
            self._expect(WizardStep.TRANSCRIBE, event)
            self.transcript = event.transcript
            self.step = WizardStep.GENERATE
            self.error = None
        elif isinstance(event, QuizGenerated):
            self._expect(WizardStep.GENERATE, event)
            self.quiz = event.quiz
            self.step = WizardStep.REVIEW
            self.error = None
        elif isinstance(event, StepFailed):
            self.error = event.message
        elif isinstance(event, ErrorCleared):
            self.error = None
        else:
            raise WizardTransitionError(f"Unknown event: {event!r}")
        return self

    def reset(self) -> "WizardController":
        """Back to step 1 with every payload and the error discarded."""
        self.__init__()
        return self

    @property
    def fsm_state(self) -> State:
        return STEP_STATES[self.step]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "run_id": self.run_id,
            "step": int(self.step),
            "audio": to_dict(self.audio) if self.audio else None,
            "transcript": to_dict(self.transcript) if self.transcript else None,
            "quiz": to_dict(self.quiz) if self.quiz else None,
            "error": self.error,
            "transcription_requested": self.transcription_requested,
            "busy": self.busy,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "WizardController":
        wizard = cls()
        if not data:
            return wizard
        wizard.run_id = data.get("run_id") or wizard.run_id
        wizard.step = WizardStep(data.get("step", WizardStep.UPLOAD))
        if data.get("audio"):
            wizard.audio = AudioHandle(**data["audio"])
        if data.get("transcript"):
            wizard.transcript = Transcript(**data["transcript"])
        if data.get("quiz"):
            wizard.quiz = quiz_from_dict(data["quiz"])
        wizard.error = data.get("error")
        wizard.transcription_requested = bool(data.get("transcription_requested"))
        wizard.busy = bool(data.get("busy"))
        return wizard


# ============================================================================
# FSM STORAGE
# ============================================================================

async def load_wizard(state: FSMContext) -> WizardController:
    """Read the wizard from the user's FSM data (fresh wizard if none)."""
    data = await state.get_data()
    return WizardController.from_dict(data.get(WIZARD_KEY))


async def store_wizard(state: FSMContext, wizard: WizardController) -> None:
    """Write the wizard back and move the FSM to the state of its step.

    Sub-states of the review step are kept while the step does not change.
    """
    await state.update_data({WIZARD_KEY: wizard.to_dict()})
    current = await state.get_state()
    if wizard.step == WizardStep.REVIEW and current == WizardStates.answering_short.state:
        return
    if wizard.step == WizardStep.GENERATE and current == WizardStates.entering_question_count.state:
        return
    await state.set_state(wizard.fsm_state)


async def reset_wizard(state: FSMContext) -> WizardController:
    """Drop all wizard and step-local data; the FSM leaves the wizard.

    The cached dashboard list survives, so a delete confirmed from an
    older dashboard message still renders the remaining quizzes.
    """
    wizard = await load_wizard(state)
    data = await state.get_data()
    kept = {key: data[key] for key in DASHBOARD_KEYS if key in data}
    await state.clear()
    if kept:
        await state.set_data(kept)
    return wizard.reset()


# ============================================================================
# IN-FLIGHT REQUESTS
# ============================================================================

async def begin_request(state: FSMContext, step: WizardStep) -> Optional[WizardController]:
    """
    Mark the wizard busy before a long API call.

    Returns:
        The busy wizard, or None when it is not at `step` or another call
        of this run is still in flight
    """
    wizard = await load_wizard(state)
    if wizard.step != step or wizard.busy:
        return None
    wizard.busy = True
    await store_wizard(state, wizard)
    return wizard


async def reload_wizard(state: FSMContext, started: WizardController) -> Optional[WizardController]:
    """
    Re-read the wizard after an await.

    Returns:
        The stored wizard with the busy mark cleared, or None when it was
        reset or moved to another step meanwhile (the result is then stale)
    """
    wizard = await load_wizard(state)
    if wizard.run_id != started.run_id or wizard.step != started.step:
        return None
    wizard.busy = False
    return wizard
