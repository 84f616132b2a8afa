"""Data model: content kinds, per-kind configs and style options."""

from dataclasses import dataclass, fields, replace
from datetime import datetime, timedelta
from enum import Enum

from PIL import ImageColor

from qrcraft.errors import ConfigFieldError, StyleError


class ContentKind(str, Enum):
    TEXT = "text"
    URL = "url"
    WIFI = "wifi"
    VCARD = "vcard"
    EMAIL = "email"
    SMS = "sms"
    CALENDAR = "calendar"
    AI = "ai"


class ECCLevel(str, Enum):
    """QR error-correction levels, in ascending order of tolerance."""
    L = "L"  # 7%
    M = "M"  # 15%
    Q = "Q"  # 25%
    H = "H"  # 30%


class ModuleStyle(str, Enum):
    SQUARE = "square"
    ROUNDED = "rounded"
    DOTS = "dots"


WIFI_ENCRYPTIONS = ("WPA", "WEP", "nopass")
CALENDAR_INPUT_FORMAT = "%Y-%m-%dT%H:%M"


@dataclass
class TextConfig:
    text: str = ""


@dataclass
class WiFiConfig:
    ssid: str = ""
    password: str = ""
    encryption: str = "WPA"
    hidden: bool = False


@dataclass
class VCardConfig:
    first_name: str = ""
    last_name: str = ""
    phone: str = ""
    email: str = ""
    org: str = ""
    title: str = ""
    url: str = ""


@dataclass
class EmailConfig:
    email: str = ""
    subject: str = ""
    body: str = ""


@dataclass
class SMSConfig:
    phone: str = ""
    message: str = ""


def _now_local() -> datetime:
    return datetime.now().replace(second=0, microsecond=0)


@dataclass
class CalendarConfig:
    title: str = ""
    start: str = ""
    end: str = ""
    location: str = ""
    description: str = ""

    @classmethod
    def starting_now(cls, now: datetime | None = None) -> "CalendarConfig":
        """A one-hour event starting at *now* (local time, minute precision)."""
        start = now or _now_local()
        return cls(
            start=start.strftime(CALENDAR_INPUT_FORMAT),
            end=(start + timedelta(hours=1)).strftime(CALENDAR_INPUT_FORMAT),
        )


@dataclass
class AIConfig:
    prompt: str = ""
    result: str = ""


DEFAULT_URL_TEXT = "https://google.com"


def default_configs(now: datetime | None = None) -> dict:
    """Fresh per-kind configs for a new session.

    ``text`` and ``url`` get separate records seeded with the same text.
    """
    return {
        ContentKind.TEXT: TextConfig(text=DEFAULT_URL_TEXT),
        ContentKind.URL: TextConfig(text=DEFAULT_URL_TEXT),
        ContentKind.WIFI: WiFiConfig(),
        ContentKind.VCARD: VCardConfig(),
        ContentKind.EMAIL: EmailConfig(),
        ContentKind.SMS: SMSConfig(),
        ContentKind.CALENDAR: CalendarConfig.starting_now(now),
        ContentKind.AI: AIConfig(),
    }


def _coerce_bool(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def update_config(config, name: str, value) -> None:
    """Set one field on a config record in place.

    Booleans accept their usual string spellings; every other field is
    stored as text. Unknown fields raise ConfigFieldError and an unknown
    WiFi encryption raises ValueError, leaving the record untouched.
    """
    known = {f.name: f for f in fields(config)}
    if name not in known:
        raise ConfigFieldError(
            f"{type(config).__name__} has no field {name!r} (expected one of {sorted(known)})"
        )

    if known[name].type in (bool, "bool"):
        value = _coerce_bool(value)
    else:
        value = "" if value is None else str(value)

    if isinstance(config, WiFiConfig) and name == "encryption" and value not in WIFI_ENCRYPTIONS:
        raise ValueError(f"WiFi encryption must be one of {WIFI_ENCRYPTIONS}, got {value!r}")

    setattr(config, name, value)


@dataclass(frozen=True)
class StyleOptions:
    """How the module matrix is drawn. All fields always carry a concrete value."""

    color_dark: str = "#0f172a"
    color_light: str = "#ffffff"
    margin: int = 2
    scale: int = 10
    error_correction: ECCLevel = ECCLevel.M
    style: ModuleStyle = ModuleStyle.SQUARE
    logo_url: str | None = None
    logo_size: float = 0.2

    @property
    def has_logo(self) -> bool:
        return bool(self.logo_url)

    def validate(self) -> "StyleOptions":
        for name in ("color_dark", "color_light"):
            color = getattr(self, name)
            try:
                ImageColor.getrgb(color)
            except (ValueError, TypeError, AttributeError) as e:
                raise StyleError(f"{name}: unrecognised colour {color!r}") from e
        if isinstance(self.margin, bool) or not isinstance(self.margin, int) or self.margin < 0:
            raise StyleError(f"margin must be an integer >= 0, got {self.margin!r}")
        if isinstance(self.scale, bool) or not isinstance(self.scale, int) or self.scale <= 0:
            raise StyleError(f"scale must be an integer > 0, got {self.scale!r}")
        if not isinstance(self.error_correction, ECCLevel):
            raise StyleError(f"error_correction must be an ECCLevel, got {self.error_correction!r}")
        if not isinstance(self.style, ModuleStyle):
            raise StyleError(f"style must be a ModuleStyle, got {self.style!r}")
        if not 0 < self.logo_size < 1:
            raise StyleError(f"logo_size must be in (0, 1), got {self.logo_size!r}")
        return self

    def updated(self, **changes) -> "StyleOptions":
        """Return a validated copy with *changes* applied. Enum fields accept their string values."""
        if "error_correction" in changes:
            changes["error_correction"] = _to_enum(ECCLevel, changes["error_correction"], str.upper)
        if "style" in changes:
            changes["style"] = _to_enum(ModuleStyle, changes["style"], str.lower)
        for name in ("margin", "scale"):
            if isinstance(changes.get(name), str):
                changes[name] = _to_int(name, changes[name])
        if "logo_size" in changes and not isinstance(changes["logo_size"], float):
            try:
                changes["logo_size"] = float(changes["logo_size"])
            except (TypeError, ValueError) as e:
                raise StyleError(f"logo_size must be a number, got {changes['logo_size']!r}") from e
        if "logo_url" in changes and not changes["logo_url"]:
            changes["logo_url"] = None
        try:
            new = replace(self, **changes)
        except TypeError as e:
            raise StyleError(str(e)) from e
        return new.validate()


def _to_enum(enum_cls, value, normalize):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(normalize(str(value)))
    except ValueError as e:
        allowed = ", ".join(m.value for m in enum_cls)
        raise StyleError(f"{value!r} is not one of: {allowed}") from e


def _to_int(name: str, value: str) -> int:
    try:
        return int(value)
    except ValueError as e:
        raise StyleError(f"{name} must be an integer, got {value!r}") from e


CONFIG_TYPES = {
    ContentKind.TEXT: TextConfig,
    ContentKind.URL: TextConfig,
    ContentKind.WIFI: WiFiConfig,
    ContentKind.VCARD: VCardConfig,
    ContentKind.EMAIL: EmailConfig,
    ContentKind.SMS: SMSConfig,
    ContentKind.CALENDAR: CalendarConfig,
    ContentKind.AI: AIConfig,
}
