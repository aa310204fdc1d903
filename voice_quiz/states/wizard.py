"""FSM states for the upload -> transcribe -> generate -> review wizard."""
from aiogram.fsm.state import State, StatesGroup


class WizardStates(StatesGroup):
    """One state per wizard step, plus the short-answer input of the review step."""

    uploading = State()
    transcribing = State()
    generating = State()
    reviewing = State()
    answering_short = State()        # waiting for a typed short answer
    entering_question_count = State()  # generate step, count typed as text
