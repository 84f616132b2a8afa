"""AI payload transformer: natural-language prompt -> canonical QR payload text.

The transformer is constructed explicitly with its credentials (or a
ready client) and handed to the session, so tests can pass a fake.
"""

import re
from typing import Protocol

import openai

from qrcraft.config import DEFAULT_AI_MODEL, DEFAULT_AI_TEMPERATURE
from qrcraft.errors import TransformerError
from qrcraft.logging import audit, get_logger

log = get_logger("ai")

REFUSAL = (
    "Please describe what you want the QR code to do "
    "(e.g., 'Connect to WiFi named Guest with password 123')."
)

SYSTEM_INSTRUCTION = f"""
You are an expert QR Code Data Formatter. Your job is to translate natural language requests into standardized QR code data strings.
Do not explain. Do not include markdown code blocks. Return ONLY the raw data string.

Supported formats:
1. WiFi: WIFI:S:MySSID;T:WPA;P:password123;;
2. vCard (3.0): BEGIN:VCARD\\nVERSION:3.0\\nN:Doe;John\\nFN:John Doe\\nTEL;TYPE=CELL:555-1234\\nEMAIL:john@example.com\\nEND:VCARD
3. iCalendar (VEVENT): BEGIN:VEVENT...
4. Email (mailto): mailto:addr@example.com?subject=...&body=...
5. SMS: smsto:5551234:Message body
6. Geo: geo:37.7749,-122.4194
7. URL: https://... (Ensure valid URL format)

If the input is just a general question not asking for a QR payload, politely refuse and say "{REFUSAL}"
""".strip()

_FENCE_RE = re.compile(r"^```[\w-]*\s*\n?(.*?)\n?```$", re.DOTALL)


class PayloadTransformer(Protocol):
    async def transform(self, prompt: str) -> str:
        ...


def strip_code_fences(text: str) -> str:
    """Remove a single surrounding markdown code fence, if the model added one anyway."""
    text = text.strip()
    match = _FENCE_RE.match(text)
    return match.group(1).strip() if match else text


class OpenAITransformer:
    """Transformer backed by the OpenAI Responses API.

    Args:
        api_key: API key; ignored when *client* is given.
        model: Model name.
        temperature: Sampling temperature.
        client: Pre-built ``openai.AsyncOpenAI`` (or compatible) client.
    """

    def __init__(
        self,
        api_key: str | None = None,
        *,
        model: str = DEFAULT_AI_MODEL,
        temperature: float = DEFAULT_AI_TEMPERATURE,
        client=None,
    ):
        if client is None:
            if not api_key:
                raise TransformerError(
                    "No API key configured; set QRCRAFT_API_KEY or OPENAI_API_KEY"
                )
            client = openai.AsyncOpenAI(api_key=api_key)
        self._client = client
        self.model = model
        self.temperature = temperature

    @classmethod
    def from_settings(cls, settings) -> "OpenAITransformer":
        return cls(settings.api_key, model=settings.ai_model, temperature=settings.ai_temperature)

    async def transform(self, prompt: str) -> str:
        """Return the payload text for *prompt*, or the refusal sentence.

        Raises:
            TransformerError: the API call failed.
        """
        try:
            response = await self._client.responses.create(
                model=self.model,
                instructions=SYSTEM_INSTRUCTION,
                input=prompt,
                temperature=self.temperature,
            )
        except openai.OpenAIError as e:
            audit("ai.failed", logger=log, model=self.model, error=type(e).__name__)
            raise TransformerError("Failed to generate smart content.") from e

        text = strip_code_fences(getattr(response, "output_text", "") or "")
        audit("ai.transformed", logger=log, model=self.model,
              prompt=prompt[:80], result=text[:80], refused=text == REFUSAL)
        return text
