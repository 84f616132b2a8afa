"""QRCraft CLI: encode payloads, render styled PNG/SVG codes, ask the AI formatter, serve HTTP."""

import argparse
import asyncio
import sys
from pathlib import Path

from qrcraft.config import Settings
from qrcraft.errors import QRCraftError
from qrcraft.logging import audit, get_logger, setup_logging
from qrcraft.models import ContentKind, ECCLevel, ModuleStyle

log = get_logger("cli")


def _parse_field(s: str) -> tuple[str, str]:
    """Parse a ``name=value`` field assignment."""
    name, sep, value = s.partition("=")
    if not sep or not name:
        raise argparse.ArgumentTypeError(f"expected name=value, got {s!r}")
    return name.strip(), value


def _build_session(args, settings: Settings):
    from qrcraft.session import Session

    session = Session(settings)
    kind = ContentKind(args.kind)
    session.set_kind(kind)
    for name, value in args.field or []:
        session.update_field(kind, name, value)
    _apply_style(session, args)
    return session


def _apply_style(session, args) -> None:
    if getattr(args, "logo", None):
        session.set_logo(args.logo)
    changes = {
        "style": args.style,
        "error_correction": args.ecc,
        "scale": args.scale,
        "margin": args.margin,
        "color_dark": args.dark,
        "color_light": args.light,
        "logo_size": args.logo_size,
    }
    changes = {k: v for k, v in changes.items() if v is not None}
    if changes:
        session.update_style(**changes)


def _print_advisories(session) -> None:
    for note in session.advisories():
        print(f"  ! {note}", file=sys.stderr)


def _write_output(session, output: Path) -> None:
    from qrcraft.export import ExportCoordinator

    coordinator = ExportCoordinator(session)
    suffix = output.suffix.lower()
    if suffix == ".svg":
        artifact = coordinator.export_vector()
    elif suffix == ".png":
        artifact = coordinator.export_raster()
    else:
        raise QRCraftError(f"Output must end in .png or .svg, got {output.name!r}")

    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_bytes(artifact.data)
    audit("export.saved", logger=log, path=str(output), bytes=len(artifact.data))
    print(f"Rendered: {output} ({len(artifact.data)} bytes, {session.style.style.value}, "
          f"ECC {session.style.error_correction.value})")


def cmd_encode(args, settings):
    """Print the canonical payload for a content kind."""
    session = _build_session(args, settings)
    print(session.payload)
    _print_advisories(session)


def cmd_render(args, settings):
    """Render a styled QR code to PNG or SVG."""
    session = _build_session(args, settings)
    _print_advisories(session)
    _write_output(session, Path(args.output))


def cmd_ai(args, settings):
    """Turn a natural-language request into a payload, optionally rendering it."""
    from qrcraft.session import Session

    session = Session(settings)
    _apply_style(session, args)
    result = asyncio.run(session.generate_ai(args.prompt))
    if result is None:
        print(session.notice or "No prompt given.", file=sys.stderr)
        sys.exit(1)

    print(result)
    if args.output:
        _print_advisories(session)
        _write_output(session, Path(args.output))


def cmd_serve(args, settings):
    """Start the HTTP service."""
    from qrcraft.server import create_app

    app = create_app(settings)
    print(f"Starting qrcraft service on http://{args.host}:{args.port}")
    app.run(host=args.host, port=args.port, debug=args.debug)


def _add_style_options(p: argparse.ArgumentParser) -> None:
    p.add_argument("--style", default=None, choices=[s.value for s in ModuleStyle], help="Module shape")
    p.add_argument("-e", "--ecc", default=None, choices=[e.value for e in ECCLevel], help="Error correction level")
    p.add_argument("--scale", type=int, default=None, help="Pixels per module")
    p.add_argument("--margin", type=int, default=None, help="Quiet zone modules")
    p.add_argument("--dark", default=None, help="Module colour (e.g. '#0f172a')")
    p.add_argument("--light", default=None, help="Background colour (e.g. '#ffffff')")
    p.add_argument("--logo", default=None, help="Logo image path or data URI (raises ECC to H)")
    p.add_argument("--logo-size", type=float, default=None, help="Logo width as a fraction of the code (0-1)")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="qrcraft", description="QRCraft: styled QR codes from structured content")

    # Global logging flags
    parser.add_argument("-V", "--verbose", action="store_true", help="Enable DEBUG-level logging")
    parser.add_argument("--log-file", default=None, help="Write JSON logs to file")
    parser.add_argument("--json-logs", action="store_true", help="JSON log lines on the console")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")
    kinds = [k.value for k in ContentKind]

    # --- encode ---
    p_enc = subparsers.add_parser("encode", help="Print the canonical payload")
    p_enc.add_argument("kind", choices=kinds, help="Content kind")
    p_enc.add_argument("-f", "--field", type=_parse_field, action="append", help="Field as name=value (repeatable)")
    _add_style_options(p_enc)

    # --- render ---
    p_render = subparsers.add_parser("render", help="Render a styled QR code")
    p_render.add_argument("kind", choices=kinds, help="Content kind")
    p_render.add_argument("-f", "--field", type=_parse_field, action="append", help="Field as name=value (repeatable)")
    p_render.add_argument("-o", "--output", default="output/qrcraft-code.png", help="Output .png or .svg path")
    _add_style_options(p_render)

    # --- ai ---
    p_ai = subparsers.add_parser("ai", help="Format a natural-language request with the AI transformer")
    p_ai.add_argument("prompt", help="What the QR code should do")
    p_ai.add_argument("-o", "--output", default=None, help="Also render to this .png or .svg path")
    _add_style_options(p_ai)

    # --- serve ---
    p_serve = subparsers.add_parser("serve", help="Start the HTTP service")
    p_serve.add_argument("--host", default="127.0.0.1", help="Interface to bind")
    p_serve.add_argument("--port", type=int, default=8080, help="Port to listen on")
    p_serve.add_argument("--debug", action="store_true", help="Enable debug mode")

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = Settings.from_env()
    level = "DEBUG" if args.verbose else settings.log_level
    setup_logging(level=level, log_file=args.log_file or settings.log_file, json_format=args.json_logs)
    audit("cli.start", logger=log, command=args.command, verbose=args.verbose)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    commands = {
        "encode": cmd_encode,
        "render": cmd_render,
        "ai": cmd_ai,
        "serve": cmd_serve,
    }
    try:
        commands[args.command](args, settings)
    except (QRCraftError, ValueError) as e:
        print(f"error: {e}", file=sys.stderr)
        sys.exit(1)
    audit("cli.done", logger=log, command=args.command)


if __name__ == "__main__":
    main()
