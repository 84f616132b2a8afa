"""Content encoders: structured content -> canonical QR payload text.

Every encoder is total. Empty fields become empty segments of the
template; nothing here raises for missing input.
"""

import re
from urllib.parse import quote, urlsplit

from qrcraft.logging import audit, get_logger, trace
from qrcraft.models import (
    AIConfig,
    CalendarConfig,
    ContentKind,
    EmailConfig,
    SMSConfig,
    TextConfig,
    VCardConfig,
    WiFiConfig,
)

log = get_logger("encoders")

AI_PLACEHOLDER = "Ask AI to generate content"

# Characters JavaScript's encodeURIComponent leaves untouched (besides alphanumerics)
_URI_COMPONENT_SAFE = "-_.!~*'()"
_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*:")
_HOST_SCHEMES = ("http", "https", "ftp", "ws", "wss")


def encode_uri_component(value: str) -> str:
    # lone surrogates have no UTF-8 form; they become "?" instead of raising
    return quote(value, safe=_URI_COMPONENT_SAFE, errors="replace")


def format_ical_date(value: str) -> str:
    """Turn a local ``YYYY-MM-DDTHH:MM`` input into ``YYYYMMDDTHHMM00``.

    This strips ``-`` and ``:`` and appends a literal seconds field. No
    timezone conversion is applied and no ``Z`` suffix is added.
    """
    if not value:
        return ""
    return value.replace("-", "").replace(":", "") + "00"


def encode_text(config: TextConfig) -> str:
    return config.text


def encode_wifi(config: WiFiConfig) -> str:
    enc = "" if config.encryption == "nopass" else config.encryption
    hidden = "true" if config.hidden else "false"
    return f"WIFI:S:{config.ssid};T:{enc};P:{config.password};H:{hidden};;"


def encode_vcard(config: VCardConfig) -> str:
    lines = [
        "BEGIN:VCARD",
        "VERSION:3.0",
        f"N:{config.last_name};{config.first_name}",
        f"FN:{config.first_name} {config.last_name}",
        f"ORG:{config.org}",
        f"TEL;TYPE=CELL:{config.phone}",
        f"EMAIL:{config.email}",
        "END:VCARD",
    ]
    return "\n".join(lines)


def encode_email(config: EmailConfig) -> str:
    return (
        f"mailto:{config.email}"
        f"?subject={encode_uri_component(config.subject)}"
        f"&body={encode_uri_component(config.body)}"
    )


def encode_sms(config: SMSConfig) -> str:
    return f"SMSTO:{config.phone}:{config.message}"


def encode_calendar(config: CalendarConfig) -> str:
    lines = [
        "BEGIN:VEVENT",
        f"SUMMARY:{config.title}",
        f"DTSTART:{format_ical_date(config.start)}",
        f"DTEND:{format_ical_date(config.end)}",
        f"LOCATION:{config.location}",
        f"DESCRIPTION:{config.description}",
        "END:VEVENT",
    ]
    return "\n".join(lines)


def encode_ai(config: AIConfig) -> str:
    return config.result or AI_PLACEHOLDER


_ENCODERS = {
    ContentKind.TEXT: encode_text,
    ContentKind.URL: encode_text,
    ContentKind.WIFI: encode_wifi,
    ContentKind.VCARD: encode_vcard,
    ContentKind.EMAIL: encode_email,
    ContentKind.SMS: encode_sms,
    ContentKind.CALENDAR: encode_calendar,
    ContentKind.AI: encode_ai,
}


@trace
def encode_payload(kind: ContentKind, config) -> str:
    """Map a content kind and its config to the canonical payload string."""
    payload = _ENCODERS[ContentKind(kind)](config)
    audit("payload.encoded", logger=log, kind=ContentKind(kind).value, length=len(payload))
    return payload


def is_placeholder_payload(payload: str) -> bool:
    """True for the AI placeholder, which is rendered but is not a real payload."""
    return payload == AI_PLACEHOLDER


def is_valid_url(text: str) -> bool:
    """Absolute-URL check in the spirit of a browser URL parser.

    A scheme is required; schemes that address a host also need one.
    """
    candidate = text.strip()
    if not _SCHEME_RE.match(candidate):
        return False
    try:
        parts = urlsplit(candidate)
    except ValueError:
        return False
    if parts.scheme.lower() in _HOST_SCHEMES:
        return bool(parts.netloc) and " " not in candidate
    return True
