from datetime import datetime

import pytest
from PIL import Image

from qrcraft.config import Settings
from qrcraft.errors import TransformerError
from qrcraft.session import Session

FIXED_NOW = datetime(2024, 5, 1, 9, 0)


class FakeTransformer:
    """Records prompts; returns a canned result or raises TransformerError."""

    def __init__(self, result: str = "WIFI:S:Guest;T:WPA;P:secret;;", fail: bool = False):
        self.result = result
        self.fail = fail
        self.prompts = []

    async def transform(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.fail:
            raise TransformerError("Failed to generate smart content.")
        return self.result


@pytest.fixture
def settings():
    return Settings()


@pytest.fixture
def fake_transformer():
    return FakeTransformer()


@pytest.fixture
def session(settings, fake_transformer):
    return Session(settings, transformer=fake_transformer, now=FIXED_NOW)


@pytest.fixture
def logo_path(tmp_path):
    """A solid red 64x64 PNG logo."""
    path = tmp_path / "logo.png"
    Image.new("RGBA", (64, 64), (255, 0, 0, 255)).save(path)
    return str(path)
