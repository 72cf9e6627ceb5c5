from __future__ import annotations

import sys
import threading
from typing import TextIO

from rich.console import Console
from rich.markdown import Markdown

_SPINNER_FRAMES = "⠋⠙⠹⠸⠼⠴⠦⠧⠇⠏"


class Spinner:
    """Thread-based spinner that renders on the current line using \\r."""

    def __init__(self, prefix: str = "", label: str = " Thinking..."):
        self._prefix = prefix
        self._label = label
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self._frame_width = 1 + len(label)

    @property
    def running(self) -> bool:
        return self._thread is not None and not self._stop.is_set()

    def start(self) -> None:
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, daemon=True)
        self._thread.start()

    def stop(self) -> None:
        if self._thread is None or self._stop.is_set():
            return
        self._stop.set()
        self._thread.join()
        self._thread = None
        # Overwrite the frame with spaces, then park the cursor after the prefix.
        clear = self._prefix + " " * self._frame_width
        sys.stdout.write("\r" + clear + "\r" + self._prefix)
        sys.stdout.flush()

    def _run(self) -> None:
        i = 0
        try:
            while not self._stop.is_set():
                frame = _SPINNER_FRAMES[i % len(_SPINNER_FRAMES)] + self._label
                sys.stdout.write("\r" + self._prefix + frame)
                sys.stdout.flush()
                self._stop.wait(0.08)
                i += 1
        except (UnicodeEncodeError, OSError):
            pass  # terminal cannot draw the frames


class RevealPrinter:
    """Prints a growing prefix by writing only the part not yet on screen."""

    def __init__(self, out: TextIO | None = None):
        self._out = out
        self._shown = ""

    def reset(self) -> None:
        self._shown = ""

    def show(self, visible: str) -> None:
        out = self._out or sys.stdout
        if visible.startswith(self._shown):
            out.write(visible[len(self._shown):])
        else:
            out.write("\n" + visible)
        out.flush()
        self._shown = visible


def render_markdown(text: str, *, dark_mode: bool = False) -> Markdown:
    return Markdown(text, code_theme="monokai" if dark_mode else "friendly")


def make_console(file: TextIO | None = None) -> Console:
    return Console(file=file, highlight=False)
