"""Application factory for the unit calculator server."""

from __future__ import annotations

import importlib
import pkgutil
from pathlib import Path
from typing import Any, Iterable

import yaml
from flask import Flask, Response
from werkzeug.exceptions import HTTPException

from common.errors import AppError, ensure_app_error
from common.logging import configure_logging, get_logger, install_request_logging
from common.responses import fail, ok

from . import config as config_module
from .blueprints import register_plugin_blueprints

CONFIG_PATH = Path(__file__).resolve().parent.parent / "config.yml"

logger = get_logger("unitcalc.app")


def _load_yaml_config(path: Path = CONFIG_PATH) -> dict:
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as handle:
        return yaml.safe_load(handle) or {}


def _discover_plugins(package: str = "plugins") -> Iterable[str]:
    """Yield import paths for all plugin packages."""

    package_path = Path(__file__).resolve().parent.parent / package
    if not package_path.exists():
        return []
    for module_info in pkgutil.iter_modules([str(package_path)]):
        if module_info.ispkg:
            yield f"{package}.{module_info.name}"


def _load_manifests(plugin_settings: dict[str, Any]) -> list[dict[str, Any]]:
    manifests: list[dict[str, Any]] = []
    for dotted in _discover_plugins():
        module = importlib.import_module(dotted)
        manifest = getattr(module, "manifest", None)
        if not manifest:
            continue
        entry = dict(manifest)
        plugin_config = plugin_settings.get(entry.get("blueprint"), {}) or {}
        if plugin_config.get("enabled", True) is False:
            continue
        if plugin_config.get("summary"):
            entry["summary"] = plugin_config["summary"]
        entry["api"] = f"/api/{entry['blueprint']}"
        manifests.append(entry)
    manifests.sort(key=lambda item: item["title"].lower())
    return manifests


def _register_error_handlers(app: Flask) -> None:
    @app.errorhandler(AppError)
    def handle_app_error(error: AppError) -> Response:
        return fail(error)

    @app.errorhandler(HTTPException)
    def handle_http_error(error: HTTPException) -> Response:
        return fail(
            AppError(
                message=error.description or error.name,
                code=f"http.{error.code}",
                status_code=error.code or 500,
            )
        )

    @app.errorhandler(Exception)
    def handle_unexpected(error: Exception) -> Response:  # pragma: no cover - last resort
        logger.exception("unhandled error")
        return fail(ensure_app_error(error, fallback_code="internal_error"))


def create_app(config_name: str | None = None) -> Flask:
    """Create and configure the Flask application instance."""

    app = Flask(__name__)
    app.config.from_object(config_module.BaseConfig)

    yaml_config = _load_yaml_config()
    site_settings = yaml_config.get("site", {}) or {}
    plugin_settings = yaml_config.get("plugins", {}) or {}
    logging_settings = yaml_config.get("logging", {}) or {}

    app.config["SITE_SETTINGS"] = site_settings
    if "max_content_length_kb" in site_settings:
        try:
            app.config["MAX_CONTENT_LENGTH"] = int(float(site_settings["max_content_length_kb"]) * 1024)
        except (TypeError, ValueError):
            logger.warning("ignoring invalid max_content_length_kb: %r", site_settings["max_content_length_kb"])
    app.config["PLUGIN_SETTINGS"] = plugin_settings

    if config_name:
        config_obj = getattr(config_module, config_name, None)
        if config_obj:
            app.config.from_object(config_obj)

    configure_logging(app.config.get("LOG_LEVEL") or logging_settings.get("level", "INFO"))
    if logging_settings.get("requests", True):
        install_request_logging(app)

    manifests = _load_manifests(plugin_settings)
    app.config["PLUGIN_MANIFESTS"] = manifests
    register_plugin_blueprints(app, enabled={manifest["blueprint"] for manifest in manifests})
    _register_error_handlers(app)

    @app.after_request
    def apply_response_headers(response):
        """Attach strict security headers to every outgoing response."""

        configured = app.config.get("RESPONSE_HEADERS", {})
        for header, value in configured.items():
            if header not in response.headers:
                response.headers[header] = value
        return response

    @app.get("/")
    def home() -> Response:
        return ok(
            {
                "title": site_settings.get("title", "Unit Calculator"),
                "plugins": app.config.get("PLUGIN_MANIFESTS", []),
            }
        )

    @app.get("/healthz")
    def healthz() -> Response:
        return ok({"status": "ok"})

    return app


__all__ = ["create_app"]
