"""Audio feedback capability."""
import logging
import re
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from gtts import gTTS, gTTSError

from vocastudy.config import PRONUNCIATIONS_DIR

logger = logging.getLogger(__name__)


class AudioCue(ABC):
    """Plays pronunciations and answer feedback sounds."""

    @abstractmethod
    def pronounce(self, text: str, lang: str) -> None:
        """Speak text in the given language ("en" or "vi")."""

    @abstractmethod
    def play_feedback(self, correct: bool) -> None:
        """Play the correct or incorrect answer sound."""


class LoggingAudioCue(AudioCue):
    """AudioCue that only logs, for front-ends without sound."""

    def pronounce(self, text: str, lang: str) -> None:
        logger.debug(f"Pronounce [{lang}]: {text}")

    def play_feedback(self, correct: bool) -> None:
        logger.debug("Feedback sound: %s", "correct" if correct else "incorrect")


def sanitize_filename(text: str) -> str:
    """Turn a word into a safe file name stem."""
    return re.sub(r"\W+", "_", text.strip().lower()).strip("_") or "blank"


class PronunciationCache:
    """Renders pronunciations to mp3 files with gTTS, once per text and language."""

    def __init__(self, directory: Optional[Path] = None):
        self.directory = Path(directory or PRONUNCIATIONS_DIR)

    def path_for(self, text: str, lang: str) -> Path:
        return self.directory / f"{lang}_{sanitize_filename(text)}.mp3"

    def get(self, text: str, lang: str) -> Optional[Path]:
        """Return the audio file for text, generating it on first use.

        Returns None when the file cannot be generated; pronunciation is
        optional and never interrupts a session.
        """
        path = self.path_for(text, lang)
        if path.exists():
            return path

        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            tts = gTTS(text=text, lang=lang)
            tts.save(str(path))
        except (gTTSError, OSError) as e:
            logger.error(f"Error generating pronunciation for word: {text}, error: {e}")
            return None

        logger.info(f"Pronunciation generated for word: {text}, file: {path.name}")
        return path
