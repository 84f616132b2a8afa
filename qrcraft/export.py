"""Export coordinator: render the session and hand the result to a save capability."""

from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from qrcraft.logging import audit, get_logger, trace
from qrcraft.raster import to_png_bytes
from qrcraft.session import Session

log = get_logger("export")

PNG_MEDIA_TYPE = "image/png"
SVG_MEDIA_TYPE = "image/svg+xml"


@dataclass(frozen=True)
class Artifact:
    filename: str
    media_type: str
    data: bytes


SaveFn = Callable[[Artifact], None]


def save_to_directory(directory: str | Path) -> SaveFn:
    """A save capability that writes each artifact into *directory*."""
    target = Path(directory)

    def save(artifact: Artifact) -> None:
        target.mkdir(parents=True, exist_ok=True)
        path = target / artifact.filename
        path.write_bytes(artifact.data)
        audit("export.saved", logger=log, path=str(path), bytes=len(artifact.data))

    return save


class ExportCoordinator:
    """Produces ``<app>-code.png`` / ``<app>-code.svg`` from a session's current state.

    No retries. An empty payload renders the configured fallback payload
    instead of failing.
    """

    def __init__(self, session: Session, save: SaveFn | None = None, app_name: str | None = None):
        self.session = session
        self.save = save
        self.app_name = app_name or session.settings.app_name

    def _filename(self, extension: str) -> str:
        return f"{self.app_name}-code.{extension}"

    def _deliver(self, artifact: Artifact) -> Artifact:
        if self.save is not None:
            self.save(artifact)
        audit("export.done", logger=log, filename=artifact.filename,
              media_type=artifact.media_type, bytes=len(artifact.data),
              placeholder=self.session.is_placeholder)
        return artifact

    @trace
    def export_raster(self) -> Artifact:
        image = self.session.render_image()
        return self._deliver(Artifact(self._filename("png"), PNG_MEDIA_TYPE, to_png_bytes(image)))

    @trace
    def export_vector(self) -> Artifact:
        doc = self.session.render_svg()
        return self._deliver(Artifact(self._filename("svg"), SVG_MEDIA_TYPE, doc.encode("utf-8")))
