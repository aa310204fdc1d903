"""Main lecture-to-quiz API client: a thin aiohttp wrapper."""
import asyncio
import logging
from typing import Any, Dict, List, Optional

import aiohttp

from voice_quiz.config import settings
from . import endpoints
from .exceptions import (
    AuthenticationError, InvalidResponseError, NetworkError,
    RequestRejectedError, ServerError,
)
from .models import (
    AudioHandle, Quiz, QuizHistoryEntry, QuizSettings, Session, Statistics, Transcript,
    audio_handle_from_payload, history_entry_from_payload, quiz_from_payload,
    statistics_from_payload, transcript_from_payload, user_from_payload,
)

logger = logging.getLogger(__name__)


class QuizApiClient:
    """Async client for the lecture-to-quiz API.

    Every call except login/signup is sent with the bearer token. Responses
    are mapped onto the exceptions in .exceptions; no call is retried.
    """

    def __init__(
        self,
        token: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        """
        Args:
            token: Bearer token of the logged-in user
            base_url: API root, defaults to settings.API_BASE_URL
            timeout: Total request timeout in seconds
            session: Existing aiohttp session (the client will not close it)
        """
        self.token = token
        self.base_url = (base_url or settings.API_BASE_URL).rstrip("/")
        self.timeout = aiohttp.ClientTimeout(total=timeout or settings.API_TIMEOUT)
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self) -> "QuizApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self.timeout)
            self._owns_session = True
        return self._session

    async def close(self):
        """Close the underlying HTTP session if this client opened it."""
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _headers(self, authenticated: bool) -> Dict[str, str]:
        headers = dict(endpoints.DEFAULT_HEADERS)
        if authenticated:
            if not self.token:
                raise AuthenticationError("You are not logged in.")
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Optional[Dict[str, Any]] = None,
        data: Any = None,
        authenticated: bool = True,
        binary: bool = False,
    ) -> Any:
        """
        Send one request and return the decoded body.

        Args:
            method: HTTP method
            path: Endpoint path relative to base_url
            json: JSON body
            data: Form body (multipart uploads)
            authenticated: Attach the bearer token
            binary: Return raw bytes for a successful non-JSON response

        Returns:
            Response JSON dict (success=true checked) or bytes when binary

        Raises:
            AuthenticationError: HTTP 401
            RequestRejectedError: success=false or an error message from the server
            ServerError: non-2xx without a message
            NetworkError: connection problems or timeout
            InvalidResponseError: body could not be decoded
        """
        url = f"{self.base_url}{path}"
        headers = self._headers(authenticated)

        try:
            async with self._get_session().request(
                method, url, json=json, data=data, headers=headers, timeout=self.timeout,
            ) as resp:
                status = resp.status
                is_json = "json" in (resp.content_type or "")
                if binary and 200 <= status < 300 and not is_json:
                    return await resp.read()
                try:
                    body = await resp.json(content_type=None)
                except ValueError:
                    body = None
        except asyncio.TimeoutError:
            logger.error("%s %s: timeout after %ss", method, path, self.timeout.total)
            raise NetworkError(f"Request to {path} timed out")
        except aiohttp.ClientError as e:
            logger.error("%s %s: %s", method, path, e)
            raise NetworkError(f"Request to {path} failed: {e}")

        return self._check_response(method, path, status, body)

    @staticmethod
    def _error_text(body: Any) -> str:
        if isinstance(body, dict):
            return body.get("error") or body.get("message") or ""
        return ""

    def _check_response(self, method: str, path: str, status: int, body: Any) -> Dict[str, Any]:
        message = self._error_text(body)

        if status == 401:
            logger.warning("%s %s: HTTP 401 (%s)", method, path, message or "no message")
            raise AuthenticationError(message or "Session expired. Please log in again.", status)

        if status >= 400:
            if message:
                logger.warning("%s %s: HTTP %d: %s", method, path, status, message)
                raise RequestRejectedError(message, status)
            logger.error("%s %s: HTTP %d without error message", method, path, status)
            raise ServerError(f"HTTP {status}", status)

        if not isinstance(body, dict):
            logger.error("%s %s: undecodable body (HTTP %d)", method, path, status)
            raise InvalidResponseError(f"Unexpected response from {path}", status)

        if not body.get("success"):
            logger.warning("%s %s: success=false: %s", method, path, message or "no message")
            raise RequestRejectedError(message, status)

        return body

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    def _session_from(self, body: Dict[str, Any]) -> Session:
        token = body.get("token")
        user = body.get("user")
        if not token or not isinstance(user, dict):
            raise InvalidResponseError("Auth response without token or user")
        return Session(user=user_from_payload(user), token=token)

    async def login(self, email: str, password: str) -> Session:
        """
        Log in with email and password.

        Returns:
            New Session (user + bearer token)
        """
        body = await self._request(
            "POST", endpoints.LOGIN,
            json={"email": email, "password": password},
            authenticated=False,
        )
        return self._session_from(body)

    async def signup(self, username: str, email: str, password: str) -> Session:
        """
        Create an account; the API logs the new user in right away.

        Returns:
            New Session (user + bearer token)
        """
        body = await self._request(
            "POST", endpoints.SIGNUP,
            json={"username": username, "email": email, "password": password},
            authenticated=False,
        )
        return self._session_from(body)

    # ------------------------------------------------------------------
    # Dashboard
    # ------------------------------------------------------------------

    async def get_history(self) -> List[QuizHistoryEntry]:
        """Past quizzes of the current user, newest first as the server sends them."""
        body = await self._request("GET", endpoints.HISTORY)
        return [history_entry_from_payload(q) for q in body.get("quizzes") or []]

    async def get_statistics(self) -> Statistics:
        """Aggregate quiz statistics of the current user."""
        body = await self._request("GET", endpoints.STATISTICS)
        return statistics_from_payload(body.get("statistics") or {})

    async def delete_quiz(self, quiz_id: str) -> None:
        """Delete a past quiz. Returns only when the server confirmed."""
        await self._request("DELETE", endpoints.QUIZ.format(quiz_id=quiz_id))

    # ------------------------------------------------------------------
    # Wizard
    # ------------------------------------------------------------------

    async def upload_audio(self, filename: str, content: bytes, content_type: Optional[str] = None) -> AudioHandle:
        """
        Upload an audio file as multipart field `audio`.

        Args:
            filename: Original file name
            content: File bytes
            content_type: MIME type reported by the sender

        Returns:
            AudioHandle referencing the stored file
        """
        form = aiohttp.FormData()
        form.add_field(
            "audio", content,
            filename=filename,
            content_type=content_type or "application/octet-stream",
        )
        body = await self._request("POST", endpoints.UPLOAD, data=form)
        if not body.get("filename"):
            raise InvalidResponseError("Upload response without filename")
        return audio_handle_from_payload(body)

    async def transcribe(self, filename: str, language: Optional[str] = None) -> Transcript:
        """
        Transcribe a previously uploaded file.

        Args:
            filename: AudioHandle.filename
            language: Language hint, defaults to settings.TRANSCRIBE_LANGUAGE
        """
        body = await self._request(
            "POST", endpoints.TRANSCRIBE,
            json={"filename": filename, "language": language or settings.TRANSCRIBE_LANGUAGE},
        )
        return transcript_from_payload(body)

    async def generate_quiz(self, transcript_text: str, filename: str, quiz_settings: QuizSettings) -> Quiz:
        """
        Generate a quiz from a transcript.

        Args:
            transcript_text: Transcript.text
            filename: Name shown in history (original filename when known)
            quiz_settings: Difficulty, count and question types

        Raises:
            ValueError: num_questions is not an integer
        """
        payload = {
            "transcript_text": transcript_text,
            "filename": filename,
            "difficulty": quiz_settings.difficulty,
            "num_questions": int(quiz_settings.num_questions),
            "question_types": list(quiz_settings.question_types),
        }
        body = await self._request("POST", endpoints.GENERATE_QUIZ, json=payload)
        return quiz_from_payload(body)

    async def export_pdf(self, quiz_id: str, include_answers: bool) -> bytes:
        """
        Render a quiz as PDF on the server.

        Returns:
            PDF bytes
        """
        result = await self._request(
            "POST", endpoints.EXPORT_PDF,
            json={"quiz_id": quiz_id, "include_answers": include_answers},
            binary=True,
        )
        if not isinstance(result, (bytes, bytearray)) or not result:
            raise InvalidResponseError("Export returned no PDF data")
        return bytes(result)
