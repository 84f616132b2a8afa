"""Logo loading: a logo reference (file path or data URI) -> decoded image + embeddable URI."""

import base64
import binascii
import io
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import unquote_to_bytes

from PIL import Image, UnidentifiedImageError

from qrcraft.errors import LogoLoadError
from qrcraft.logging import audit, get_logger, trace

log = get_logger("logo")

_DATA_URI_PREFIX = "data:"


@dataclass(frozen=True)
class LoadedLogo:
    """A decoded logo. ``image`` is RGBA; ``data_uri`` embeds the original bytes."""
    image: Image.Image
    data_uri: str

    @property
    def width(self) -> int:
        return self.image.size[0]

    @property
    def height(self) -> int:
        return self.image.size[1]


def to_data_uri(raw: bytes, media_type: str) -> str:
    return f"data:{media_type};base64,{base64.b64encode(raw).decode('ascii')}"


def _decode_data_uri(ref: str) -> bytes:
    header, sep, body = ref.partition(",")
    if not sep:
        raise LogoLoadError("Malformed data URI: missing ','")
    try:
        if header.endswith(";base64"):
            return base64.b64decode(body, validate=True)
        return unquote_to_bytes(body)
    except (binascii.Error, ValueError) as e:
        raise LogoLoadError(f"Malformed data URI: {e}") from e


class LogoLoader:
    """Reads and decodes logo images with Pillow.

    Accepts local file paths and ``data:`` URIs. Remote URLs are not
    fetched; they raise LogoLoadError like any other undecodable reference.
    """

    @trace
    def load(self, ref: str) -> LoadedLogo:
        if not ref:
            raise LogoLoadError("Empty logo reference")

        if ref.startswith(_DATA_URI_PREFIX):
            raw = _decode_data_uri(ref)
            source = "data-uri"
        else:
            if "://" in ref:
                raise LogoLoadError(f"Remote logo references are not supported: {ref[:80]}")
            path = Path(ref)
            try:
                raw = path.read_bytes()
            except OSError as e:
                raise LogoLoadError(f"Cannot read logo {path}: {e}") from e
            source = "file"

        try:
            img = Image.open(io.BytesIO(raw))
            img.load()
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as e:
            raise LogoLoadError(f"Cannot decode logo image ({source}): {e}") from e

        fmt = (img.format or "PNG").upper()
        media_type = Image.MIME.get(fmt, "image/png")
        data_uri = ref if source == "data-uri" else to_data_uri(raw, media_type)

        logo = LoadedLogo(image=img.convert("RGBA"), data_uri=data_uri)
        audit("logo.loaded", logger=log, source=source, format=fmt,
              size=f"{logo.width}x{logo.height}")
        return logo
