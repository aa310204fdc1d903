"""Tests for step 3: quiz settings and generation."""
import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from conftest import make_mock_callback, make_mock_client, make_mock_message
from voice_quiz.api.exceptions import NetworkError
from voice_quiz.api.models import QuizSettings
from voice_quiz.handlers.generate import (
    GENERATION_ERROR_MSG, GENERATION_IN_PROGRESS_MSG, SETTINGS_KEY, cb_adjust_count,
    cb_generate, cb_question_type, process_question_count,
)
from voice_quiz.services.quiz_settings import (
    BAD_COUNT_MSG, NO_TYPES_MSG, adjust_count, parse_count, set_difficulty, settings_to_dict,
    toggle_question_type, validate_settings,
)
from voice_quiz.services.wizard import (
    AudioUploaded, TranscriptAccepted, WizardController, WizardStep, load_wizard,
    reset_wizard, store_wizard,
)
from voice_quiz.states.wizard import WizardStates


async def _at_generate(state, audio, transcript, **settings):
    wizard = WizardController().dispatch(AudioUploaded(audio)).dispatch(TranscriptAccepted(transcript))
    await store_wizard(state, wizard)
    await state.update_data({SETTINGS_KEY: {**settings_to_dict(QuizSettings()), **settings}})


class TestQuizSettings:
    """Settings defaults, edits and local validation."""

    def test_defaults(self):
        """Medium difficulty, ten questions, every type."""
        settings = QuizSettings()

        assert settings.difficulty == "medium"
        assert settings.num_questions == 10
        assert settings.question_types == ["mcq", "true_false", "short_answer"]

    def test_toggle_keeps_order(self):
        """Toggling a type back restores the canonical order."""
        settings = QuizSettings()
        toggle_question_type(settings, "mcq")
        assert settings.question_types == ["true_false", "short_answer"]

        toggle_question_type(settings, "mcq")
        assert settings.question_types == ["mcq", "true_false", "short_answer"]

    def test_unknown_difficulty(self):
        """An unknown difficulty is rejected."""
        with pytest.raises(ValueError):
            set_difficulty(QuizSettings(), "extreme")

    def test_adjust_count_clamped(self):
        """Buttons stay within 1..50; unparseable text counts as 10."""
        assert adjust_count(QuizSettings(num_questions=50), +1).num_questions == 50
        assert adjust_count(QuizSettings(num_questions=1), -1).num_questions == 1
        assert adjust_count(QuizSettings(num_questions="abc"), +1).num_questions == 11

    @pytest.mark.parametrize("value,expected", [("7", 7), (" 12 ", 12), ("x", None), ("", None), (3, 3)])
    def test_parse_count(self, value, expected):
        """Typed counts are parsed leniently."""
        assert parse_count(value) == expected

    def test_validate_no_types(self):
        """No question type selected is an error."""
        assert validate_settings(QuizSettings(question_types=[])) == NO_TYPES_MSG

    @pytest.mark.parametrize("count", [0, 51, "abc", ""])
    def test_validate_bad_count(self, count):
        """Counts outside 1..50 or not numeric are errors."""
        assert validate_settings(QuizSettings(num_questions=count)) == BAD_COUNT_MSG

    def test_validate_ok(self):
        """A numeric string within range is accepted."""
        assert validate_settings(QuizSettings(num_questions="7")) is None


class TestSettingsHandlers:
    """Inline settings panel."""

    async def test_toggle_type(self, state, sample_audio, sample_transcript):
        """Toggle button removes the type."""
        await _at_generate(state, sample_audio, sample_transcript)

        await cb_question_type(make_mock_callback("gen:type:short_answer"), state)

        data = await state.get_data()
        assert data[SETTINGS_KEY]["question_types"] == ["mcq", "true_false"]

    async def test_count_buttons(self, state, sample_audio, sample_transcript):
        """Plus button raises the count."""
        await _at_generate(state, sample_audio, sample_transcript)

        await cb_adjust_count(make_mock_callback("gen:count:+1"), state)

        assert (await state.get_data())[SETTINGS_KEY]["num_questions"] == 11

    async def test_typed_count_kept_as_text(self, state, sample_audio, sample_transcript):
        """A typed count is kept as entered and the panel returns."""
        await _at_generate(state, sample_audio, sample_transcript)
        await state.set_state(WizardStates.entering_question_count)

        await process_question_count(make_mock_message(text="7"), state)

        assert (await state.get_data())[SETTINGS_KEY]["num_questions"] == "7"
        assert await state.get_state() == WizardStates.generating.state


class TestCbGenerate:
    """Generate button: local checks, then POST /generate-quiz."""

    @patch("voice_quiz.handlers.generate.QuizApiClient")
    async def test_no_question_types_no_request(
        self, mock_client_cls, state, sample_session, sample_audio, sample_transcript,
    ):
        """No types selected: error shown, no request."""
        await _at_generate(state, sample_audio, sample_transcript, question_types=[])

        await cb_generate(make_mock_callback("gen:go"), state, sample_session)

        mock_client_cls.assert_not_called()
        wizard = await load_wizard(state)
        assert wizard.error == NO_TYPES_MSG
        assert wizard.step == WizardStep.GENERATE

    @patch("voice_quiz.handlers.generate.QuizApiClient")
    async def test_count_out_of_range_no_request(
        self, mock_client_cls, state, sample_session, sample_audio, sample_transcript,
    ):
        """Count 80: error shown, no request."""
        await _at_generate(state, sample_audio, sample_transcript, num_questions="80")

        await cb_generate(make_mock_callback("gen:go"), state, sample_session)

        mock_client_cls.assert_not_called()
        assert (await load_wizard(state)).error == BAD_COUNT_MSG

    @patch("voice_quiz.handlers.generate.show_quiz_step", new_callable=AsyncMock)
    @patch("voice_quiz.handlers.generate.QuizApiClient")
    async def test_generates_and_advances(
        self, mock_client_cls, mock_show_quiz, state, sample_session,
        sample_audio, sample_transcript, sample_quiz,
    ):
        """Transcript, file name and settings are sent; the quiz opens step 4."""
        await _at_generate(state, sample_audio, sample_transcript, num_questions="7")
        client = make_mock_client(generate_quiz=sample_quiz)
        mock_client_cls.return_value = client

        await cb_generate(make_mock_callback("gen:go"), state, sample_session)

        text, filename, settings = client.generate_quiz.await_args[0]
        assert text == sample_transcript.text
        assert filename == "lecture.mp3"
        assert int(settings.num_questions) == 7
        wizard = await load_wizard(state)
        assert wizard.step == WizardStep.REVIEW
        assert wizard.quiz == sample_quiz
        assert await state.get_state() == WizardStates.reviewing.state
        mock_show_quiz.assert_awaited_once()

    @patch("voice_quiz.handlers.generate.QuizApiClient")
    async def test_failure_keeps_step(
        self, mock_client_cls, state, sample_session, sample_audio, sample_transcript,
    ):
        """A network failure stays at step 3 with the generic message."""
        await _at_generate(state, sample_audio, sample_transcript)
        client = make_mock_client()
        client.generate_quiz.side_effect = NetworkError("timeout")
        mock_client_cls.return_value = client

        await cb_generate(make_mock_callback("gen:go"), state, sample_session)

        wizard = await load_wizard(state)
        assert wizard.step == WizardStep.GENERATE
        assert wizard.error == GENERATION_ERROR_MSG
        client.close.assert_awaited_once()
        assert wizard.busy is False

    @patch("voice_quiz.handlers.generate.show_quiz_step", new_callable=AsyncMock)
    @patch("voice_quiz.handlers.generate.QuizApiClient")
    async def test_double_tap_generates_once(
        self, mock_client_cls, mock_show_quiz, state, sample_session,
        sample_audio, sample_transcript, sample_quiz,
    ):
        """A second tap while generating creates no second quiz."""
        await _at_generate(state, sample_audio, sample_transcript)

        async def slow_generate(*args):
            await asyncio.sleep(0)
            return sample_quiz

        client = make_mock_client()
        client.generate_quiz.side_effect = slow_generate
        mock_client_cls.return_value = client
        second = make_mock_callback("gen:go")

        await asyncio.gather(
            cb_generate(make_mock_callback("gen:go"), state, sample_session),
            cb_generate(second, state, sample_session),
        )

        assert client.generate_quiz.await_count == 1
        second.answer.assert_awaited_once_with(GENERATION_IN_PROGRESS_MSG)
        wizard = await load_wizard(state)
        assert wizard.step == WizardStep.REVIEW
        assert wizard.quiz == sample_quiz
        mock_show_quiz.assert_awaited_once()

    @patch("voice_quiz.handlers.generate.show_quiz_step", new_callable=AsyncMock)
    @patch("voice_quiz.handlers.generate.QuizApiClient")
    async def test_reset_during_generation_drops_quiz(
        self, mock_client_cls, mock_show_quiz, state, sample_session,
        sample_audio, sample_transcript, sample_quiz,
    ):
        """Dashboard pressed while generating: the late quiz is not stored."""
        await _at_generate(state, sample_audio, sample_transcript)

        async def generate_then_reset(*args):
            await reset_wizard(state)
            return sample_quiz

        client = make_mock_client()
        client.generate_quiz.side_effect = generate_then_reset
        mock_client_cls.return_value = client
        callback = make_mock_callback("gen:go")

        await cb_generate(callback, state, sample_session)

        wizard = await load_wizard(state)
        assert wizard.step == WizardStep.UPLOAD
        assert wizard.quiz is None
        assert wizard.audio is None
        assert await state.get_state() is None
        mock_show_quiz.assert_not_called()
        callback.message.answer.return_value.delete.assert_awaited_once()
