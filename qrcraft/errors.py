"""Error taxonomy for qrcraft. Nothing here is fatal to the process."""


class QRCraftError(Exception):
    """Base class for every error raised by qrcraft."""


class EncodingCapacityError(QRCraftError):
    """The payload does not fit in a QR symbol at the chosen error-correction level."""

    def __init__(self, payload_length: int, level: str):
        self.payload_length = payload_length
        self.level = level
        super().__init__(
            f"Payload of {payload_length} characters exceeds QR capacity at error-correction level {level}"
        )


class TransformerError(QRCraftError):
    """The AI payload transformer call failed (transport or API error)."""


class LogoLoadError(QRCraftError):
    """A logo reference could not be read or decoded."""


class StyleError(QRCraftError, ValueError):
    """A style option is missing or out of range."""


class ConfigFieldError(QRCraftError, KeyError):
    """An update named a field the content kind does not have."""

    def __str__(self):
        return str(self.args[0]) if self.args else ""
