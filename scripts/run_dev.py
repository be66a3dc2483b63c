"""Development entry point for the unit calculator server."""

import os

from app import create_app

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = "5002"


def _resolve_port() -> int:
    value = os.getenv("UNITCALC_PORT") or os.getenv("PORT") or DEFAULT_PORT
    try:
        port = int(value)
    except ValueError as exc:
        raise SystemExit(f"Invalid port '{value}'. Set UNITCALC_PORT to a number.") from exc
    if not 0 < port < 65536:
        raise SystemExit(f"Port {port} is out of range.")
    return port


if __name__ == "__main__":
    app = create_app()
    app.run(
        host=os.getenv("UNITCALC_HOST", DEFAULT_HOST),
        port=_resolve_port(),
        debug=os.getenv("UNITCALC_DEBUG") == "1",
    )
