"""Blueprint registration helpers."""

from __future__ import annotations

import importlib
import pkgutil
from pathlib import Path
from typing import Container, Iterator

from flask import Blueprint, Flask

from common.logging import get_logger

logger = get_logger("unitcalc.app")


def _iter_blueprints(package: str = "plugins") -> Iterator[tuple[str, Blueprint]]:
    module_path = Path(__file__).resolve().parent.parent / package
    if not module_path.exists():
        return
    for module_info in pkgutil.iter_modules([str(module_path)]):
        if not module_info.ispkg:
            continue
        module = importlib.import_module(f"{package}.{module_info.name}.api")
        for blueprint in getattr(module, "blueprints", None) or ():
            yield module_info.name, blueprint


def register_plugin_blueprints(app: Flask, enabled: Container[str] | None = None) -> None:
    """Register the API blueprints of every plugin in ``enabled`` (all by default)."""

    for plugin, blueprint in _iter_blueprints():
        if enabled is not None and plugin not in enabled:
            logger.info("plugin %s is disabled", plugin)
            continue
        app.register_blueprint(blueprint)
        logger.debug("registered %s at %s", blueprint.name, blueprint.url_prefix)


__all__ = ["register_plugin_blueprints"]
