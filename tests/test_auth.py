"""Tests for the login / signup flow."""
from unittest.mock import patch

from conftest import USER_ID, make_mock_callback, make_mock_client, make_mock_message
from voice_quiz.api.exceptions import AuthenticationError, NetworkError, RequestRejectedError
from voice_quiz.api.models import Session, Statistics, User
from voice_quiz.handlers.auth import (
    AUTH_FAILED_MSG, SHORT_PASSWORD_MSG, cb_switch_mode, process_email, process_password,
    process_username, show_auth_screen,
)
from voice_quiz.states.auth import AuthStates
from voice_quiz.utils.session_store import SessionStore


async def _at_password(state, mode="login", email="a@x.io", username=None):
    await show_auth_screen(make_mock_message(), state, mode)
    data = {"email": email}
    if username:
        data["username"] = username
    await state.update_data(data)
    await state.set_state(AuthStates.waiting_for_password)


class TestAuthForm:
    """Login and sign-up form steps."""

    async def test_login_mode_asks_email(self, state):
        """Login mode starts with the e-mail."""
        message = make_mock_message()

        await show_auth_screen(message, state)

        assert await state.get_state() == AuthStates.waiting_for_email.state
        assert "Login" in message.answer.call_args[0][0]

    async def test_signup_mode_asks_username(self, state):
        """Sign-up mode starts with the username."""
        await show_auth_screen(make_mock_message(), state, "signup")

        assert await state.get_state() == AuthStates.waiting_for_username.state

    async def test_switch_mode_drops_fields(self, state):
        """Switching mode clears typed fields and the error."""
        await show_auth_screen(make_mock_message(), state, "login")
        await state.update_data(email="a@x.io", auth_error="Invalid credentials")

        await cb_switch_mode(make_mock_callback("auth:mode:signup"), state)

        data = await state.get_data()
        assert data["auth_mode"] == "signup"
        assert "email" not in data
        assert data["auth_error"] is None

    async def test_username_then_email(self, state):
        """Sign-up collects username, then e-mail, then asks for the password."""
        await show_auth_screen(make_mock_message(), state, "signup")

        await process_username(make_mock_message(text="alice"), state)
        assert await state.get_state() == AuthStates.waiting_for_email.state

        await process_email(make_mock_message(text="alice@example.com"), state)
        assert await state.get_state() == AuthStates.waiting_for_password.state
        data = await state.get_data()
        assert data["username"] == "alice"
        assert data["email"] == "alice@example.com"

    async def test_invalid_email_rejected(self, state):
        """A malformed e-mail is asked for again."""
        await show_auth_screen(make_mock_message(), state)
        message = make_mock_message(text="not-an-email")

        await process_email(message, state)

        assert await state.get_state() == AuthStates.waiting_for_email.state
        assert "valid email" in message.answer.call_args[0][0]


class TestProcessPassword:
    """Password step and the auth request."""

    @patch("voice_quiz.handlers.auth.QuizApiClient")
    async def test_short_password_no_request(self, mock_client_cls, state):
        """Passwords under 6 characters never reach the API."""
        await _at_password(state)
        message = make_mock_message(text="12345")

        await process_password(message, state, SessionStore())

        mock_client_cls.assert_not_called()
        message.answer.assert_awaited_with(SHORT_PASSWORD_MSG)
        assert await state.get_state() == AuthStates.waiting_for_password.state

    @patch("voice_quiz.handlers.dashboard.QuizApiClient")
    @patch("voice_quiz.handlers.auth.QuizApiClient")
    async def test_login_opens_dashboard(self, mock_auth_cls, mock_dash_cls, state, db):
        """Login as a / secret1 -> session stored, dashboard greets the user."""
        await _at_password(state, email="a@x.io")
        auth_client = make_mock_client(login=Session(user=User(username="a", email="a@x.io"), token="jwt"))
        mock_auth_cls.return_value = auth_client
        mock_dash_cls.return_value = make_mock_client(get_history=[], get_statistics=Statistics())
        message = make_mock_message(text="secret1")
        store = SessionStore()

        await process_password(message, state, store)

        auth_client.login.assert_awaited_once_with("a@x.io", "secret1")
        auth_client.close.assert_awaited_once()
        message.delete.assert_awaited_once()

        restored = await store.restore(USER_ID)
        assert restored.token == "jwt"
        assert restored.user.username == "a"

        dashboard_text = message.answer.return_value.edit_text.await_args[0][0]
        assert "Welcome, a!" in dashboard_text
        assert "No quizzes yet" in dashboard_text
        assert await state.get_state() is None

    @patch("voice_quiz.handlers.auth.QuizApiClient")
    async def test_signup_sends_username(self, mock_auth_cls, state):
        """Sign-up posts username, e-mail and password."""
        await _at_password(state, mode="signup", email="b@x.io", username="bob")
        auth_client = make_mock_client()
        auth_client.signup.side_effect = RequestRejectedError("User already exists", 400)
        mock_auth_cls.return_value = auth_client

        await process_password(make_mock_message(text="secret1"), state, SessionStore())

        auth_client.signup.assert_awaited_once_with("bob", "b@x.io", "secret1")
        assert (await state.get_data())["auth_error"] == "User already exists"

    @patch("voice_quiz.handlers.auth.QuizApiClient")
    async def test_bad_credentials_shown(self, mock_auth_cls, state):
        """Rejected credentials show the server's text and keep the form."""
        await _at_password(state)
        auth_client = make_mock_client()
        auth_client.login.side_effect = AuthenticationError("Invalid credentials", 401)
        mock_auth_cls.return_value = auth_client
        message = make_mock_message(text="wrongpass")

        await process_password(message, state, SessionStore())

        wait_msg = message.answer.return_value
        assert "Invalid credentials" in wait_msg.edit_text.await_args[0][0]
        assert await state.get_state() == AuthStates.waiting_for_password.state
        auth_client.close.assert_awaited_once()

    @patch("voice_quiz.handlers.auth.QuizApiClient")
    async def test_network_failure_generic_text(self, mock_auth_cls, state):
        """A network failure shows the generic auth error."""
        await _at_password(state)
        auth_client = make_mock_client()
        auth_client.login.side_effect = NetworkError("connection refused")
        mock_auth_cls.return_value = auth_client

        await process_password(make_mock_message(text="secret1"), state, SessionStore())

        assert (await state.get_data())["auth_error"] == AUTH_FAILED_MSG
