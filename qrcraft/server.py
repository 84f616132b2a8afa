"""HTTP service: payload preview and PNG/SVG export over JSON requests.

Each request builds a fresh Session from its body::

    {"kind": "wifi",
     "fields": {"ssid": "Guest", "password": "1234", "encryption": "nopass"},
     "style": {"style": "dots", "error_correction": "H", "scale": 8}}
"""

from qrcraft.config import Settings
from qrcraft.errors import EncodingCapacityError, QRCraftError
from qrcraft.export import ExportCoordinator
from qrcraft.logging import audit, get_logger, trace
from qrcraft.models import ContentKind
from qrcraft.session import Session

log = get_logger("server")


class BadRequest(QRCraftError):
    pass


def session_from_request(data: dict | None, settings: Settings) -> Session:
    """Build a session from a JSON body. Raises BadRequest / QRCraftError on invalid input."""
    if not isinstance(data, dict):
        raise BadRequest("Request body must be a JSON object")

    session = Session(settings)
    try:
        kind = ContentKind(data.get("kind", session.kind.value))
    except ValueError:
        allowed = ", ".join(k.value for k in ContentKind)
        raise BadRequest(f"Unknown kind {data.get('kind')!r}; expected one of: {allowed}") from None
    session.set_kind(kind)

    fields = data.get("fields") or {}
    style = data.get("style") or {}
    if not isinstance(fields, dict) or not isinstance(style, dict):
        raise BadRequest("'fields' and 'style' must be JSON objects")
    style = dict(style)

    for name, value in fields.items():
        try:
            session.update_field(kind, name, value)
        except ValueError as e:
            raise BadRequest(str(e)) from e

    # a logo raises error correction to H unless the body names a level itself
    logo_url = style.pop("logo_url", None)
    if logo_url:
        session.set_logo(logo_url)
    if style:
        session.update_style(**style)
    return session


@trace
def create_app(settings: Settings | None = None):
    """Create the Flask app."""
    from flask import Flask, Response, jsonify, request

    settings = settings or Settings.from_env()
    app = Flask(__name__)

    @app.errorhandler(QRCraftError)
    def handle_error(error):
        status = 400
        if isinstance(error, EncodingCapacityError):
            status = 413
        audit("http.error", logger=log, status=status, error=type(error).__name__, detail=str(error))
        return jsonify({"error": type(error).__name__, "detail": str(error)}), status

    @app.route("/api/health")
    def health():
        return jsonify({"status": "ok"})

    @app.route("/api/payload", methods=["POST"])
    def payload():
        session = session_from_request(request.get_json(silent=True), settings)
        return jsonify({
            "kind": session.kind.value,
            "payload": session.payload,
            "placeholder": session.is_placeholder,
            "advisories": session.advisories(),
        })

    @app.route("/api/export/<fmt>", methods=["POST"])
    def export(fmt):
        if fmt not in ("png", "svg"):
            raise BadRequest(f"Unsupported export format {fmt!r}; expected png or svg")
        session = session_from_request(request.get_json(silent=True), settings)
        coordinator = ExportCoordinator(session)
        artifact = coordinator.export_raster() if fmt == "png" else coordinator.export_vector()
        audit("http.export", logger=log, filename=artifact.filename, bytes=len(artifact.data))
        return Response(
            artifact.data,
            mimetype=artifact.media_type,
            headers={"Content-Disposition": f'attachment; filename="{artifact.filename}"'},
        )

    return app
