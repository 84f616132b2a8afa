import asyncio
import copy

import pytest
from PIL import Image

from qrcraft.errors import EncodingCapacityError, StyleError
from qrcraft.models import ContentKind, ECCLevel, ModuleStyle
from qrcraft.session import (
    AI_FAILURE_NOTICE,
    INVALID_URL_ADVISORY,
    LOGO_ECC_ADVISORY,
    Session,
)
from tests.conftest import FakeTransformer


def test_defaults(session):
    assert session.kind is ContentKind.URL
    assert session.payload == "https://google.com"
    cal = session.config(ContentKind.CALENDAR)
    assert (cal.start, cal.end) == ("2024-05-01T09:00", "2024-05-01T10:00")


def test_payload_follows_active_kind(session):
    session.update_field("sms", "phone", "+15551234567")
    session.update_field("sms", "message", "Hi")
    assert session.payload == "https://google.com"
    session.set_kind("sms")
    assert session.payload == "SMSTO:+15551234567:Hi"


def test_switching_kinds_keeps_other_configs(session):
    session.update_field(ContentKind.WIFI, "ssid", "Guest")
    session.update_field(ContentKind.WIFI, "hidden", True)
    before = copy.deepcopy(session.configs)

    for kind in ContentKind:
        session.set_kind(kind)
        _ = session.payload
    session.set_kind(ContentKind.WIFI)

    assert session.configs == before
    assert session.payload == "WIFI:S:Guest;T:WPA;P:;H:true;;"


def test_text_starts_with_the_url_default(session):
    session.set_kind("text")
    assert session.payload == "https://google.com"


def test_text_and_url_have_separate_records(session):
    session.update_field("text", "text", "plain words")
    assert session.config(ContentKind.URL).text == "https://google.com"
    session.set_kind("text")
    assert session.payload == "plain words"


def test_logo_raises_ecc_and_advisory_tracks_level(session, logo_path):
    assert session.advisories() == []
    session.set_logo(logo_path)
    assert session.style.error_correction is ECCLevel.H
    assert LOGO_ECC_ADVISORY not in session.advisories()

    session.update_style(error_correction="M")
    assert LOGO_ECC_ADVISORY in session.advisories()

    session.set_logo(None)
    assert session.advisories() == []


def test_invalid_url_is_advisory_only(session):
    session.update_field("url", "text", "www.example.com")
    assert session.advisories() == [INVALID_URL_ADVISORY]
    assert session.render_image().size[0] > 0

    session.update_field("url", "text", "   ")
    assert session.advisories() == []

    session.set_kind("text")
    session.update_field("text", "text", "www.example.com")
    assert session.advisories() == []


def test_invalid_style_update_keeps_previous_style(session):
    session.update_style(style="dots")
    with pytest.raises(StyleError):
        session.update_style(style="dots", scale=-4)
    assert session.style.style is ModuleStyle.DOTS
    assert session.style.scale == 10


def test_ai_placeholder_is_rendered_but_flagged(session):
    session.set_kind("ai")
    assert session.is_placeholder
    assert session.render_svg().startswith("<?xml")


def test_empty_payload_uses_fallback(session, settings):
    session.set_kind("text")
    session.update_field("text", "text", "")
    assert session.payload == ""
    assert session.render_payload() == settings.fallback_payload
    assert session.matrix().size > 0


def test_capacity_error_leaves_state_untouched(session):
    session.set_kind("text")
    session.update_field("text", "text", "x" * 3000)
    session.update_style(error_correction="H")
    style_before = session.style

    with pytest.raises(EncodingCapacityError):
        session.render_image()
    with pytest.raises(EncodingCapacityError):
        asyncio.run(session.render_preview())

    assert session.style == style_before
    assert session.payload == "x" * 3000
    assert session.generation == 0
    assert session.preview is None


def test_preview_without_logo(session):
    result = asyncio.run(session.render_preview())
    assert result.generation == 1
    assert not result.logo_composited
    assert session.preview is result.image


def test_preview_composites_logo(session, logo_path):
    session.set_logo(logo_path)
    result = asyncio.run(session.render_preview())
    centre = result.image.size[0] // 2
    assert result.logo_composited
    assert result.image.getpixel((centre, centre)) == (255, 0, 0)


def test_stale_logo_decode_is_discarded(session, logo_path):
    session.set_logo(logo_path)

    async def two_renders():
        return await asyncio.gather(session.render_preview(), session.render_preview())

    first, second = asyncio.run(two_renders())
    assert (first.generation, second.generation) == (1, 2)
    assert first.stale and not first.logo_composited
    assert second.logo_composited and not second.stale
    assert session.preview is second.image

    centre = first.image.size[0] // 2
    assert first.image.getpixel((centre, centre)) != (255, 0, 0)


def test_logo_failure_still_renders_grid(session, tmp_path):
    session.set_logo(str(tmp_path / "missing.png"))
    result = asyncio.run(session.render_preview())
    assert not result.logo_composited
    assert session.render_image().size == result.image.size
    assert 'href="' in session.render_svg()


def test_oversized_logo_is_skipped(session, logo_path, monkeypatch):
    # 64x64 logo is over twice the pixel limit, so Pillow refuses to open it
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 1000)
    session.set_logo(logo_path)
    assert session.load_logo() is None
    result = asyncio.run(session.render_preview())
    assert not result.logo_composited
    assert session.render_image().size == result.image.size


def test_generate_ai_success(session, fake_transformer):
    result = asyncio.run(session.generate_ai("guest wifi, password secret"))
    assert result == fake_transformer.result
    assert fake_transformer.prompts == ["guest wifi, password secret"]
    assert session.kind is ContentKind.AI
    assert session.payload == fake_transformer.result
    assert not session.is_placeholder
    assert session.notice is None


def test_generate_ai_failure_keeps_state(settings):
    session = Session(settings, transformer=FakeTransformer(fail=True))
    session.update_field("sms", "phone", "123")
    session.set_kind("sms")

    assert asyncio.run(session.generate_ai("anything")) is None
    assert session.notice == AI_FAILURE_NOTICE
    assert session.kind is ContentKind.SMS
    assert session.payload == "SMSTO:123:"
    assert session.config(ContentKind.AI).result == ""


def test_generate_ai_without_prompt_does_nothing(session, fake_transformer):
    assert asyncio.run(session.generate_ai()) is None
    assert fake_transformer.prompts == []
    assert session.kind is ContentKind.URL
