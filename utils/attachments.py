# utils/attachments.py
import base64
import mimetypes
import os

from errors import RenderError

DEFAULT_MIME = "application/octet-stream"


def _sniff_mime(data: bytes) -> str:
    if data.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if data.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if data[:6] in (b"GIF87a", b"GIF89a"):
        return "image/gif"
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "image/webp"
    return DEFAULT_MIME


def render(file) -> str:
    """Render an attachment as a ``data:`` URL.

    ``file`` may be a path, raw bytes, or a binary file object. Anything that
    cannot be read raises RenderError.
    """
    name = None
    try:
        if isinstance(file, (bytes, bytearray)):
            data = bytes(file)
        elif isinstance(file, (str, os.PathLike)):
            name = os.fspath(file)
            with open(name, "rb") as fh:
                data = fh.read()
        elif hasattr(file, "read"):
            name = getattr(file, "name", None)
            data = file.read()
        else:
            raise RenderError(f"Unsupported attachment type: {type(file).__name__}")
    except OSError as e:
        raise RenderError(f"Cannot read attachment {name or file!r}: {e}") from e

    if not isinstance(data, (bytes, bytearray)):
        raise RenderError(f"Attachment {name!r} is not binary content")

    mime = mimetypes.guess_type(name)[0] if isinstance(name, str) else None
    mime = mime or _sniff_mime(data)
    encoded = base64.b64encode(data).decode("ascii")
    return f"data:{mime};base64,{encoded}"
