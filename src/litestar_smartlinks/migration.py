"""Conversion of legacy "rules" configurations to link configurations.

The legacy shape looks like::

    {
        "link_id": "spring-promo",
        "purpose": "Spring campaign",
        "status": "active",
        "rules": [
            {"id": "de", "when": {"country": "DE", "lang": "de"}, "target": "https://example.com/de"}
        ],
        "fallback_target": "https://example.com"
    }

Each rule becomes a target, ``when.lang`` becomes ``conditions.language`` and
``fallback_target`` becomes a catch-all target with id ``fallback`` and
priority 9999 that serves as the default.

``--kv`` migrates a key/value export such as ``{"config:spring-promo": {"core": {...}}}``
into ``{"link:spring-promo": {...}}``.

Run as ``python -m litestar_smartlinks.migration`` or ``smartlinks-migrate``.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any

from litestar_smartlinks.exceptions import ConfigValidationError
from litestar_smartlinks.serialization import link_config_from_dict, link_config_to_dict

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from litestar_smartlinks.models.link import LinkConfig

__all__ = [
    "FALLBACK_PRIORITY",
    "FALLBACK_TARGET_ID",
    "main",
    "migrate_directory",
    "migrate_export",
    "migrate_export_file",
    "migrate_file",
    "migrate_legacy_config",
]

logger = logging.getLogger(__name__)

FALLBACK_TARGET_ID = "fallback"
FALLBACK_PRIORITY = 9999

_LEGACY_STATUSES = {"draft", "active", "paused", "archived"}


def _legacy_conditions(when: Mapping[str, Any]) -> dict[str, Any]:
    conditions = {
        "country": when.get("country"),
        "language": when.get("lang", when.get("language")),
        "device": when.get("device"),
        "utm": when.get("utm") or None,
    }
    return {key: value for key, value in conditions.items() if value is not None}


def _legacy_meta(meta: Mapping[str, Any] | None) -> dict[str, Any]:
    if not meta:
        return {}
    keys = ("created_at", "updated_at", "created_by", "updated_by")
    return {key: meta[key] for key in keys if meta.get(key) is not None}


def migrate_legacy_config(legacy: Mapping[str, Any]) -> LinkConfig:
    """Convert a legacy rules configuration.

    Args:
        legacy: The legacy configuration document.

    Returns:
        The validated link configuration.

    Raises:
        ConfigValidationError: If the legacy document is malformed or the
            converted configuration does not validate.

    """
    if "link_id" not in legacy or "fallback_target" not in legacy:
        raise ConfigValidationError("legacy configuration requires link_id and fallback_target")

    targets: list[dict[str, Any]] = []
    for index, rule in enumerate(legacy.get("rules") or []):
        if "target" not in rule:
            raise ConfigValidationError(f"rule {index} has no target")
        target: dict[str, Any] = {
            "target_id": rule.get("id") or f"target_{index}",
            "url": rule["target"],
            "conditions": _legacy_conditions(rule.get("when") or {}),
            "enabled": rule.get("enabled") is not False,
        }
        optional = {
            "label": rule.get("label"),
            "priority": rule.get("priority"),
            "weight": rule.get("weight"),
            "valid_from": rule.get("start_at"),
            "valid_until": rule.get("end_at"),
        }
        target.update({key: value for key, value in optional.items() if value is not None})
        targets.append(target)

    if not any(t["target_id"] == FALLBACK_TARGET_ID for t in targets):
        targets.append(
            {
                "target_id": FALLBACK_TARGET_ID,
                "url": legacy["fallback_target"],
                "label": "Fallback",
                "conditions": {},
                "priority": FALLBACK_PRIORITY,
                "enabled": True,
            }
        )

    status = legacy.get("status", "active")
    document: dict[str, Any] = {
        "link_id": legacy["link_id"],
        "status": status if status in _LEGACY_STATUSES else "active",
        "targets": targets,
        "default_target_id": FALLBACK_TARGET_ID,
        "meta": _legacy_meta(legacy.get("meta")),
    }
    if legacy.get("purpose"):
        document["name"] = legacy["purpose"]
    return link_config_from_dict(document)


def _to_json(config: LinkConfig) -> str:
    return json.dumps(link_config_to_dict(config), indent=2) + "\n"


def migrate_file(source: Path, destination: Path) -> LinkConfig:
    """Migrate one legacy JSON file.

    Args:
        source: Path of the legacy configuration.
        destination: Path the migrated configuration is written to.

    Returns:
        The migrated configuration.

    """
    legacy = json.loads(source.read_text(encoding="utf-8"))
    config = migrate_legacy_config(legacy)
    destination.parent.mkdir(parents=True, exist_ok=True)
    destination.write_text(_to_json(config), encoding="utf-8")
    logger.info("Migrated %s -> %s (%d targets)", source, destination, len(config.targets))
    return config


def migrate_directory(source_dir: Path, destination_dir: Path) -> tuple[int, int]:
    """Migrate every ``*.json`` file of a directory.

    Returns:
        Number of migrated and failed files.

    """
    migrated = failed = 0
    for source in sorted(source_dir.glob("*.json")):
        try:
            migrate_file(source, destination_dir / source.name)
        except (ConfigValidationError, ValueError, OSError) as exc:
            logger.error("Failed to migrate %s: %s", source, exc)
            failed += 1
        else:
            migrated += 1
    return migrated, failed


def migrate_export(export: Mapping[str, Any]) -> tuple[dict[str, dict[str, Any]], int]:
    """Migrate a key/value export of legacy configurations.

    Values may be the legacy document itself or wrap it as ``{"core": ...}``.
    Migrated documents are keyed ``link:{link_id}``, the layout of the Redis
    backend without its prefix.

    Args:
        export: Mapping of export keys to legacy documents.

    Returns:
        The migrated export and the number of keys that failed.

    """
    migrated: dict[str, dict[str, Any]] = {}
    failed = 0
    for key, value in export.items():
        legacy = value["core"] if isinstance(value, dict) and "core" in value else value
        try:
            if not isinstance(legacy, dict):
                raise ConfigValidationError("legacy configuration must be an object")
            config = migrate_legacy_config(legacy)
        except (ConfigValidationError, ValueError) as exc:
            logger.error("Failed to migrate key %s: %s", key, exc)
            failed += 1
            continue
        new_key = f"link:{config.link_id}"
        migrated[new_key] = link_config_to_dict(config)
        logger.info("Migrated key %s -> %s", key, new_key)
    return migrated, failed


def migrate_export_file(source: Path, destination: Path) -> tuple[int, int]:
    """Migrate a key/value export file.

    Returns:
        Number of migrated and failed keys.

    """
    export = json.loads(source.read_text(encoding="utf-8"))
    if not isinstance(export, dict):
        raise ValueError(f"{source} is not a key/value export")
    migrated, failed = migrate_export(export)
    destination.parent.mkdir(parents=True, exist_ok=True)
    destination.write_text(json.dumps(migrated, indent=2) + "\n", encoding="utf-8")
    return len(migrated), failed


def main(argv: Sequence[str] | None = None) -> int:
    """Command line entry point."""
    parser = argparse.ArgumentParser(
        prog="smartlinks-migrate",
        description="Convert legacy smartlink rule files to link configurations.",
    )
    parser.add_argument("source", type=Path, help="legacy file, directory with --batch, export with --kv")
    parser.add_argument("destination", type=Path, help="output file, directory with --batch, export with --kv")
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--batch", action="store_true", help="migrate every *.json file in a directory")
    mode.add_argument("--kv", action="store_true", help="migrate a {key: legacy config} export file")
    parser.add_argument("-v", "--verbose", action="store_true", help="enable debug logging")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO, format="%(levelname)s %(message)s")

    if args.batch:
        migrated, failed = migrate_directory(args.source, args.destination)
        logger.info("Migrated %d file(s), %d failed", migrated, failed)
        return 1 if failed else 0

    if args.kv:
        try:
            migrated, failed = migrate_export_file(args.source, args.destination)
        except (ValueError, OSError) as exc:
            logger.error("Failed to migrate %s: %s", args.source, exc)
            return 1
        logger.info("Migrated %d key(s), %d failed", migrated, failed)
        return 1 if failed else 0

    try:
        migrate_file(args.source, args.destination)
    except (ConfigValidationError, ValueError, OSError) as exc:
        logger.error("Failed to migrate %s: %s", args.source, exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
