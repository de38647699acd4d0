"""
Input modality controller.

Each modality stages its own value (typed query, drawing, uploaded image,
voice transcript). Exactly one modality is active at a time and only the
active one decides what gets submitted; switching modality never discards
what the others have staged.
"""

import base64
import io
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, ClassVar, Optional, Protocol, Union

from PIL import Image, UnidentifiedImageError

from config import settings
from models import Modality

logger = logging.getLogger(__name__)


class SpeechUnavailableError(RuntimeError):
    """Raised when voice input is attempted on a device without speech recognition."""


class UnreadableImageError(ValueError):
    """Raised when an uploaded file does not decode as an image."""


class SpeechRecognizer(Protocol):
    """Device speech-to-text engine: one utterance in, one transcript out."""

    async def listen(self, language: str) -> str:
        ...


# ============================================================================
# PAYLOAD VARIANTS
# ============================================================================

@dataclass(frozen=True)
class TextPayload:
    modality: ClassVar[Modality] = "text"
    query: str

    @property
    def image(self) -> Optional[str]:
        return None


@dataclass(frozen=True)
class DrawPayload:
    modality: ClassVar[Modality] = "draw"
    image: str
    query: str = ""  # Typed text, sent along as context


@dataclass(frozen=True)
class ImagePayload:
    modality: ClassVar[Modality] = "image"
    image: str
    query: str = ""


@dataclass(frozen=True)
class VoicePayload:
    modality: ClassVar[Modality] = "voice"
    transcript: str

    @property
    def query(self) -> str:
        return self.transcript

    @property
    def image(self) -> Optional[str]:
        return None


Payload = Union[TextPayload, DrawPayload, ImagePayload, VoicePayload]


# ============================================================================
# IMAGE UPLOAD
# ============================================================================

def read_image_file(source: Union[bytes, str, Path, BinaryIO]) -> str:
    """
    Read an uploaded image into a data URI.

    Accepts raw bytes, a filesystem path or a binary file object. The content
    must decode as an image; its MIME type comes from the decoded format.
    """
    if isinstance(source, (bytes, bytearray)):
        data = bytes(source)
    elif isinstance(source, (str, Path)):
        data = Path(source).read_bytes()
    else:
        data = source.read()

    try:
        with Image.open(io.BytesIO(data)) as img:
            img.verify()
            image_format = img.format
    except (UnidentifiedImageError, OSError, SyntaxError) as e:
        raise UnreadableImageError(f"Uploaded file is not a readable image: {e}") from e

    mime = Image.MIME.get(image_format, "image/png")
    encoded = base64.b64encode(data).decode("ascii")
    return f"data:{mime};base64,{encoded}"


# ============================================================================
# CONTROLLER
# ============================================================================

class InputController:
    """Owns the active modality and the values staged by every modality."""

    def __init__(self, modality: Modality = "text"):
        self.modality: Modality = modality
        self.query = ""
        self.drawn_image: Optional[str] = None
        self.uploaded_image: Optional[str] = None
        self.transcript: Optional[str] = None
        self.voice_busy = False

    def set_modality(self, modality: Modality) -> None:
        self.modality = modality

    def set_query(self, query: str) -> None:
        """Overwrite the query. A staged voice transcript is replaced along with it."""
        self.query = query
        if self.transcript is not None:
            self.transcript = query

    def stage_drawing(self, data_uri: Optional[str]) -> None:
        """Drawing export callback. An empty value means the canvas is blank."""
        self.drawn_image = data_uri or None

    def upload_image(self, source: Union[bytes, str, Path, BinaryIO]) -> None:
        self.uploaded_image = read_image_file(source)
        logger.info("Image staged for upload")

    async def capture_voice(self, recognizer: Optional[SpeechRecognizer]) -> Optional[str]:
        """
        Run one speech capture and stage its transcript.

        The transcript replaces the typed query. Only one capture may be
        pending at a time; a second call while one is pending is refused.
        """
        if recognizer is None:
            raise SpeechUnavailableError("Voice recognition is not supported on this device.")
        if self.voice_busy:
            logger.warning("Voice capture already in progress, ignoring request")
            return None

        self.voice_busy = True
        try:
            transcript = await recognizer.listen(settings.speech_language)
        finally:
            self.voice_busy = False

        logger.info(f"Voice transcript received: {transcript[:50]}")
        self.transcript = transcript
        self.query = transcript
        return transcript

    def submittable_payload(self) -> Optional[Payload]:
        """The payload of the active modality, or None when nothing can be submitted."""
        if self.modality == "draw" and self.drawn_image:
            return DrawPayload(image=self.drawn_image, query=self.query)
        if self.modality == "image" and self.uploaded_image:
            return ImagePayload(image=self.uploaded_image, query=self.query)
        if self.modality == "voice":
            if self.transcript is not None:
                return VoicePayload(transcript=self.transcript)
            return None
        if self.query.strip():
            return TextPayload(query=self.query)
        return None

    def clear(self) -> None:
        self.query = ""
        self.drawn_image = None
        self.uploaded_image = None
        self.transcript = None
