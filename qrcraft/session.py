"""Session state and the render pipeline.

A ``Session`` owns the active content kind, one config record per kind,
the style options and the latest AI result. Payload, matrix and draw
plan are recomputed from that state on every render and never cached.
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime

from PIL import Image

from qrcraft import raster, vector
from qrcraft.ai import OpenAITransformer, PayloadTransformer
from qrcraft.config import Settings
from qrcraft.encoders import encode_payload, is_placeholder_payload, is_valid_url
from qrcraft.errors import LogoLoadError, TransformerError
from qrcraft.geometry import DrawPlan, plan_geometry
from qrcraft.logging import audit, get_logger, trace
from qrcraft.logo import LoadedLogo, LogoLoader
from qrcraft.matrix import MatrixProvider, ModuleMatrix, get_matrix_provider
from qrcraft.models import ContentKind, ECCLevel, StyleOptions, default_configs, update_config

log = get_logger("session")

LOGO_ECC_ADVISORY = "Recommend 'H' error correction with logos."
INVALID_URL_ADVISORY = "Please enter a valid URL including protocol (e.g., https://...)"
AI_FAILURE_NOTICE = "Failed to generate content. Please check your API Key."


@dataclass
class PreviewResult:
    image: Image.Image
    generation: int
    logo_composited: bool = False
    stale: bool = False


class Session:
    """One user's working state.

    Args:
        settings: Runtime settings; defaults to ``Settings()``.
        provider: Matrix provider; defaults to the backend named in settings.
        transformer: AI payload transformer. Built from settings on first use when omitted.
        logo_loader: Logo decoding capability.
        now: Clock reading used for the calendar defaults.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        provider: MatrixProvider | None = None,
        transformer: PayloadTransformer | None = None,
        logo_loader: LogoLoader | None = None,
        now: datetime | None = None,
    ):
        self.settings = settings or Settings()
        self.kind = ContentKind.URL
        self.configs = default_configs(now)
        self.style = StyleOptions()
        self.notice: str | None = None
        self.preview: Image.Image | None = None
        self._provider = provider or get_matrix_provider(self.settings.matrix_backend)
        self._transformer = transformer
        self._logo_loader = logo_loader or LogoLoader()
        self._generation = 0

    # ------------------------------------------------------------------
    # Content
    # ------------------------------------------------------------------

    def config(self, kind: ContentKind | str | None = None):
        return self.configs[ContentKind(kind) if kind is not None else self.kind]

    def set_kind(self, kind: ContentKind | str) -> None:
        """Activate *kind*. Other kinds keep their field values."""
        kind = ContentKind(kind)
        if kind is not self.kind:
            audit("session.kind_changed", logger=log, old=self.kind.value, new=kind.value)
        self.kind = kind

    def update_field(self, kind: ContentKind | str, name: str, value) -> None:
        update_config(self.configs[ContentKind(kind)], name, value)

    @property
    def payload(self) -> str:
        return encode_payload(self.kind, self.config())

    @property
    def is_placeholder(self) -> bool:
        return self.kind is ContentKind.AI and is_placeholder_payload(self.payload)

    # ------------------------------------------------------------------
    # Style
    # ------------------------------------------------------------------

    def update_style(self, **changes) -> StyleOptions:
        """Apply style changes atomically; on StyleError the old style stays in place."""
        self.style = self.style.updated(**changes)
        return self.style

    def set_logo(self, logo_url: str | None) -> StyleOptions:
        """Attach a logo and raise error correction to H. ``None`` removes the logo."""
        if not logo_url:
            return self.update_style(logo_url=None)
        return self.update_style(logo_url=logo_url, error_correction=ECCLevel.H)

    def advisories(self) -> list[str]:
        notes = []
        if self.style.has_logo and self.style.error_correction is not ECCLevel.H:
            notes.append(LOGO_ECC_ADVISORY)
        if self.kind is ContentKind.URL:
            text = self.config().text
            if text.strip() and not is_valid_url(text):
                notes.append(INVALID_URL_ADVISORY)
        return notes

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    @property
    def generation(self) -> int:
        return self._generation

    def render_payload(self) -> str:
        """The payload actually encoded: the fallback stands in for an empty one."""
        return self.payload or self.settings.fallback_payload

    def matrix(self) -> ModuleMatrix:
        """Raises EncodingCapacityError when the payload does not fit."""
        return self._provider.encode(self.render_payload(), self.style.error_correction)

    def plan(self) -> DrawPlan:
        self.style.validate()
        return plan_geometry(self.matrix(), self.style)

    def load_logo(self) -> LoadedLogo | None:
        if not self.style.has_logo:
            return None
        try:
            return self._logo_loader.load(self.style.logo_url)
        except LogoLoadError as e:
            log.warning("Logo not composited: %s", e)
            return None

    @trace
    def render_image(self) -> Image.Image:
        """Full raster render, logo included when it decodes."""
        plan = self.plan()
        return raster.render_raster(plan, self.load_logo())

    @trace
    def render_svg(self) -> str:
        """Full vector render. The logo is embedded as a data URI when it loads."""
        plan = self.plan()
        href = None
        if self.style.has_logo:
            logo = self.load_logo()
            href = logo.data_uri if logo is not None else self.style.logo_url
        return vector.render_svg(plan, logo_href=href)

    async def render_preview(self) -> PreviewResult:
        """Paint the module grid now, then composite the logo once it decodes.

        Each call starts a new render generation. A logo that finishes
        decoding after a newer render has started is discarded.
        """
        plan = self.plan()
        self._generation += 1
        generation = self._generation

        image = raster.paint_modules(plan)
        self.preview = image
        result = PreviewResult(image=image, generation=generation)
        if not self.style.has_logo:
            return result

        try:
            logo = await asyncio.to_thread(self._logo_loader.load, self.style.logo_url)
        except LogoLoadError as e:
            log.warning("Logo not composited: %s", e)
            return result

        if generation != self._generation:
            audit("raster.logo_discarded", logger=log, generation=generation, latest=self._generation)
            result.stale = True
            return result

        raster.composite_logo(image, plan, logo)
        result.logo_composited = True
        return result

    # ------------------------------------------------------------------
    # AI
    # ------------------------------------------------------------------

    def _get_transformer(self) -> PayloadTransformer:
        if self._transformer is None:
            self._transformer = OpenAITransformer.from_settings(self.settings)
        return self._transformer

    async def generate_ai(self, prompt: str | None = None) -> str | None:
        """Ask the transformer for a payload and switch to the ``ai`` kind on success.

        On failure the kind and payload stay as they were, ``notice`` is
        set and ``None`` is returned.
        """
        ai_config = self.configs[ContentKind.AI]
        if prompt is not None:
            update_config(ai_config, "prompt", prompt)
        if not ai_config.prompt:
            return None

        self.notice = None
        try:
            result = await self._get_transformer().transform(ai_config.prompt)
        except TransformerError as e:
            log.warning("AI transform failed: %s", e)
            self.notice = AI_FAILURE_NOTICE
            return None

        update_config(ai_config, "result", result)
        self.set_kind(ContentKind.AI)
        return result
