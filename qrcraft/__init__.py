"""QRCraft: canonical QR payloads from structured content, rendered as styled PNG and SVG."""

__version__ = "0.1.0"
