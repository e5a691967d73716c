"""
Speech Output

Boundary to the text-to-speech engine. The scheduler only needs
``speak(text) -> bool``; synthesis and playback belong to the engine.

CommandSpeaker shells out to any command-line synthesizer, configured as::

    tts:
      command: ["espeak-ng", "-s", "150"]        # "--" and the text appended
      # or
      command: ["piper-say", "--text", "{text}"]  # text substituted
"""

import subprocess
from abc import ABC, abstractmethod
from typing import List

from taskvoice.logger import get_logger


class Speaker(ABC):
    """Something that can say a sentence out loud."""

    @abstractmethod
    def speak(self, text: str) -> bool:
        """Say text. Returns False if it could not be spoken."""


class LogSpeaker(Speaker):
    """Writes announcements to the log instead of speaking them."""

    def __init__(self, config=None):
        self.logger = get_logger(__name__, config)

    def speak(self, text: str) -> bool:
        self.logger.info(f"[speech] {text}")
        return True


class CommandSpeaker(Speaker):
    """Runs an external synthesizer per announcement.

    No timeout: playback takes as long as the sentence does, and the
    scheduler never starts a new reminder round while this runs.
    """

    def __init__(self, command: List[str], config=None):
        if not command:
            raise ValueError("speech command must not be empty")
        self.command = [str(part) for part in command]
        self.logger = get_logger(__name__, config)

    def build_command(self, text: str) -> List[str]:
        if any("{text}" in part for part in self.command):
            return [part.replace("{text}", text) for part in self.command]
        # "--" keeps text starting with "-" from being read as an option
        return self.command + ["--", text]

    def speak(self, text: str) -> bool:
        cmd = self.build_command(text)
        self.logger.debug(f"Speaking: {text}")
        try:
            result = subprocess.run(cmd, stdout=subprocess.DEVNULL,
                                    stderr=subprocess.PIPE, text=True)
        except FileNotFoundError:
            self.logger.error(f"Speech command not found: {self.command[0]}")
            return False
        except OSError as e:
            self.logger.error(f"Failed to run speech command: {e}")
            return False

        if result.returncode != 0:
            self.logger.error(f"Speech command exited with {result.returncode}: "
                              f"{(result.stderr or '').strip()}")
            return False
        return True


def build_speaker(config) -> Speaker:
    """CommandSpeaker if tts.command is configured, else LogSpeaker."""
    command = config.get("tts.command", [])
    if isinstance(command, str):
        command = command.split()
    if command:
        return CommandSpeaker(command, config)
    return LogSpeaker(config)
