"""
Output sinks for gitscan.

Child output is forwarded as raw bytes. Diagnostics (banners, stream
tags, failure lines) are rendered with rich and encoded onto the same
byte stream, so ordering between the two is preserved.
"""

import io
import os
import threading
from functools import lru_cache
from typing import BinaryIO, Optional

import click
from rich.console import Console
from rich.text import Text

STDOUT_TAG = ("STDOUT", "yellow")
STDERR_TAG = ("STDERR", "bold white on red")


@lru_cache(maxsize=256)
def render_text(text: str, style: Optional[str] = None, color: bool = False) -> str:
    """Render plain text with an optional rich style to a string."""
    console = Console(
        file=io.StringIO(),
        force_terminal=color,
        color_system="standard" if color else None,
        no_color=not color,
        highlight=False,
        soft_wrap=True,
    )
    with console.capture() as capture:
        console.print(Text(text, style=style or ""), end="")
    return capture.get()


def _stream_supports_color(stream) -> bool:
    isatty = getattr(stream, "isatty", None)
    return bool(isatty and isatty()) and os.environ.get("NO_COLOR") is None


class OutputSink:
    """
    Thread-safe byte sink.

    Writes are serialized with a lock, so a stream tag and the chunk it
    labels always land together.
    """

    def __init__(self, stream: BinaryIO, color: Optional[bool] = None):
        self.stream = stream
        self.color = _stream_supports_color(stream) if color is None else color
        self._lock = threading.Lock()

    @classmethod
    def stdout(cls) -> 'OutputSink':
        return cls(click.get_binary_stream('stdout'))

    @classmethod
    def stderr(cls) -> 'OutputSink':
        return cls(click.get_binary_stream('stderr'))

    def _emit(self, data: bytes) -> None:
        self.stream.write(data)
        self.stream.flush()

    def write(self, data: bytes) -> None:
        """Forward bytes unchanged."""
        with self._lock:
            self._emit(data)

    def write_tagged(self, tag: tuple, data: bytes) -> None:
        """Forward bytes preceded by a stream tag such as 'STDOUT '."""
        label, style = tag
        prefix = render_text(label, style, self.color) + " "
        with self._lock:
            self._emit(prefix.encode() + data)

    def line(self, text: str, style: Optional[str] = None) -> None:
        """Write one diagnostic line."""
        rendered = render_text(text, style, self.color) + "\n"
        with self._lock:
            self._emit(rendered.encode())


class BufferedSink(OutputSink):
    """Sink that holds everything in memory until replayed."""

    def __init__(self, color: bool = False):
        super().__init__(io.BytesIO(), color=color)

    def getvalue(self) -> bytes:
        return self.stream.getvalue()

    def replay(self, target: OutputSink) -> None:
        data = self.getvalue()
        if data:
            target.write(data)
