"""FSM states for the login / signup flow."""
from aiogram.fsm.state import State, StatesGroup


class AuthStates(StatesGroup):
    """States for the auth screen."""

    waiting_for_username = State()   # signup only
    waiting_for_email = State()
    waiting_for_password = State()
