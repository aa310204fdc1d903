"""Local checks for audio files before they are uploaded."""
from dataclasses import dataclass
from typing import Optional

from aiogram.types import Message

ALLOWED_MIME_TYPES = ("audio/mpeg", "audio/wav", "audio/mp3", "audio/x-m4a", "audio/ogg")
ALLOWED_EXTENSIONS = (".mp3", ".wav", ".m4a", ".ogg")
MAX_FILE_SIZE = 50 * 1024 * 1024  # 50 MiB

INVALID_TYPE_MSG = "Invalid file type. Please upload MP3, WAV, M4A, or OGG files."
TOO_LARGE_MSG = "File too large. Maximum size is 50MB."

_EXTENSION_BY_MIME = {
    "audio/mpeg": ".mp3",
    "audio/mp3": ".mp3",
    "audio/wav": ".wav",
    "audio/x-m4a": ".m4a",
    "audio/ogg": ".ogg",
}


@dataclass
class AudioFile:
    """Audio attachment picked by the user, not uploaded yet."""
    file_id: str
    filename: str
    mime_type: Optional[str]
    size: int

    @property
    def size_mb(self) -> str:
        return f"{self.size / (1024 * 1024):.2f}"


def validate_audio_file(filename: str, mime_type: Optional[str], size: Optional[int]) -> Optional[str]:
    """
    Check type and size of a candidate file.

    A file passes the type check if either its MIME type or its extension
    is allowed.

    Returns:
        Error text, or None when the file may be uploaded
    """
    type_ok = (mime_type or "").lower() in ALLOWED_MIME_TYPES
    ext_ok = (filename or "").lower().endswith(ALLOWED_EXTENSIONS)
    if not type_ok and not ext_ok:
        return INVALID_TYPE_MSG

    if (size or 0) > MAX_FILE_SIZE:
        return TOO_LARGE_MSG

    return None


def audio_file_from_message(message: Message) -> Optional[AudioFile]:
    """Extract the attachment of an audio, voice or document message."""
    attachment = message.audio or message.voice or message.document
    if attachment is None:
        return None

    mime_type = attachment.mime_type
    filename = getattr(attachment, "file_name", None)
    if not filename:
        ext = _EXTENSION_BY_MIME.get((mime_type or "").lower(), "")
        prefix = "voice" if message.voice else "audio"
        filename = f"{prefix}_{attachment.file_unique_id}{ext}"

    return AudioFile(
        file_id=attachment.file_id,
        filename=filename,
        mime_type=mime_type,
        size=attachment.file_size or 0,
    )
