"""Command-line bootstrap: settings, flags, provider registry and tab sessions."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional, Sequence, TextIO

from .services.settings import Settings, SettingsStore
from .services.telemetry import DiagramOpenedReporter
from .tabs import DiagramFile, ProviderDescriptor, Tab, TabsProvider, UnknownProviderError
from .tabs.descriptor import ProviderConfigurationError
from .utils import logging as logging_utils
from .utils.flags import Flags, parse_flag_value
from .utils.telemetry import TelemetryRecorder, telemetry_enabled

_LOGGER = logging.getLogger(__name__)


def configure_logging(debug: bool = False) -> Path:
    """Route package logs to the rotating log file and stderr."""

    try:
        log_path = logging_utils.setup_logging(logging.DEBUG if debug else None)
    except ValueError as exc:
        log_path = logging_utils.setup_logging(logging.INFO)
        _LOGGER.warning("%s; falling back to INFO", exc)
    _LOGGER.debug("Logging to %s", log_path)
    return log_path


def load_settings(
    path: Optional[Path] = None,
    *,
    store: SettingsStore | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> Settings:
    """Load persisted settings or fall back to defaults."""

    active_store = store or SettingsStore(path)
    try:
        return active_store.load(overrides=overrides)
    except (OSError, ValueError) as exc:
        _LOGGER.warning("Failed to load settings from %s: %s", active_store.path, exc)
        return Settings()


def build_report(
    provider: TabsProvider,
    *,
    files: Sequence[Path | str] = (),
    new_types: Sequence[str] = (),
    list_providers: bool = False,
) -> tuple[Dict[str, Any], list[Tab]]:
    """Open ``files`` and create ``new_types``; describe the resulting tabs."""

    report: Dict[str, Any] = {"tabs": [], "unopenable": [], "errors": []}
    if list_providers:
        report["providers"] = [describe_provider(p) for p in provider.get_providers().values()]
        report["providerNames"] = provider.get_provider_names()
        report["dialogFilter"] = provider.dialog_filter()

    tabs: list[Tab] = []
    for provider_type in new_types:
        tab = provider.create_tab_for(provider_type)
        if tab is None:
            report["unopenable"].append(provider_type)
            continue
        tabs.append(tab)

    for entry in files:
        try:
            file = DiagramFile.from_path(entry)
        except (OSError, UnicodeDecodeError) as exc:
            _LOGGER.warning("Unable to read %s: %s", entry, exc)
            report["errors"].append({"file": str(entry), "error": str(exc)})
            continue
        tab = provider.create_tab(file)
        if tab is None:
            report["unopenable"].append(str(file.path))
            continue
        tabs.append(tab)

    report["tabs"] = [tab.as_dict() for tab in tabs]
    return report, tabs


def describe_provider(descriptor: ProviderDescriptor) -> Dict[str, Any]:
    return {
        "type": descriptor.type,
        "name": descriptor.display_name,
        "extensions": list(descriptor.extensions),
        "openExtensions": list(descriptor.open_extensions),
        "encoding": descriptor.encoding.value,
        "exports": {kind: export.as_dict() for kind, export in descriptor.exports.items()},
        "newFileMenu": [asdict(entry) for entry in descriptor.new_file_menu],
        "helpMenu": [asdict(entry) for entry in descriptor.help_menu],
    }


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point invoked by the `diagramdesk` console script."""

    args = _parse_cli_args(argv)

    debug = _env_flag("DIAGRAMDESK_DEBUG", default=False)
    configure_logging(debug)

    settings_path = args.settings_path or os.environ.get("DIAGRAMDESK_SETTINGS_PATH")
    resolved_path = Path(settings_path).expanduser() if settings_path else None
    settings_store = SettingsStore(resolved_path)
    try:
        cli_overrides = _coerce_cli_overrides(args.overrides or [])
        cli_flags = _coerce_cli_flags(args.flags or [])
    except ValueError as exc:
        print(f"Invalid command-line override: {exc}", file=sys.stderr)
        return 2

    settings = load_settings(resolved_path, store=settings_store, overrides=cli_overrides or None)

    if args.dump_settings:
        _dump_settings(settings, settings_store, overrides=cli_overrides, flags=cli_flags)
        return 0

    if settings.debug_logging and not debug:
        configure_logging(True)

    provider = TabsProvider.from_settings(settings, cli_flags=cli_flags)
    try:
        report, tabs = build_report(
            provider,
            files=args.files,
            new_types=args.new or [],
            list_providers=args.list_providers,
        )
    except (UnknownProviderError, ProviderConfigurationError) as exc:
        print(f"Cannot create file: {exc}", file=sys.stderr)
        return 2

    opened_paths = [tab.path for tab in tabs if tab.path is not None]
    if opened_paths:
        for path in opened_paths:
            settings.remember_recent_file(path)
        settings_store.save(settings)

    enabled = telemetry_enabled(settings)
    reporter = DiagramOpenedReporter(
        enabled=enabled,
        recorder=TelemetryRecorder(enabled=enabled),
        element_templates=lambda _file: settings.element_templates,
    )
    if reporter.enabled and tabs:
        asyncio.run(_report_opened(reporter, tabs))

    json.dump(report, sys.stdout, indent=2)
    sys.stdout.write("\n")
    return 1 if report["unopenable"] or report["errors"] else 0


async def _report_opened(reporter: DiagramOpenedReporter, tabs: Sequence[Tab]) -> None:
    results = await asyncio.gather(*(reporter.report(tab) for tab in tabs), return_exceptions=True)
    for tab, result in zip(tabs, results):
        if isinstance(result, Exception):
            _LOGGER.warning("Usage report for %s failed: %s", tab.name, result)
    reporter.flush()


def _env_flag(name: str, *, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return parse_flag_value(value) is True


def _parse_cli_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="diagramdesk",
        description="Resolve diagram files to their editors and open editing sessions.",
    )
    parser.add_argument("files", nargs="*", metavar="FILE", help="Diagram files to open.")
    parser.add_argument(
        "--new",
        metavar="TYPE",
        action="append",
        default=[],
        help="Create a new diagram of TYPE (bpmn, cloud-bpmn, dmn, cmmn); repeatable.",
    )
    parser.add_argument(
        "--list-providers",
        action="store_true",
        help="Include the active providers in the output.",
    )
    parser.add_argument(
        "--dump-settings",
        action="store_true",
        help="Print the effective settings payload and exit.",
    )
    parser.add_argument(
        "--settings-path",
        metavar="PATH",
        help="Override the default ~/.diagramdesk/settings.json path.",
    )
    parser.add_argument(
        "--set",
        dest="overrides",
        metavar="KEY=VALUE",
        action="append",
        default=[],
        help="Override persisted settings before launch (repeatable).",
    )
    parser.add_argument(
        "--flag",
        dest="flags",
        metavar="NAME[=VALUE]",
        action="append",
        default=[],
        help="Set a feature flag such as disable-dmn (repeatable).",
    )
    return parser.parse_args(argv)


def _coerce_cli_flags(items: Sequence[str]) -> Dict[str, Any]:
    flags: Dict[str, Any] = {}
    for entry in items:
        name, sep, raw_value = entry.partition("=")
        name = name.strip()
        if not name:
            raise ValueError(f"Flag '{entry}' is missing a name.")
        flags[name] = parse_flag_value(raw_value) if sep else True
    return flags


def _coerce_cli_overrides(items: Sequence[str]) -> Dict[str, Any]:
    """Parse ``--set KEY=VALUE`` entries with the parser of each settings field."""

    overrides: Dict[str, Any] = {}
    for entry in items:
        key, sep, raw_value = entry.partition("=")
        key = key.strip()
        if not sep:
            raise ValueError(f"Override '{entry}' must use KEY=VALUE syntax.")
        if not key:
            raise ValueError("Override is missing a field name.")
        parser = _OVERRIDE_PARSERS.get(key)
        if parser is None:
            raise ValueError(f"Unknown setting '{key}' (expected one of {', '.join(sorted(_OVERRIDE_PARSERS))}).")
        overrides[key] = parser(raw_value.strip())
    return overrides


def _parse_switch(raw_value: str) -> bool:
    value = parse_flag_value(raw_value)
    if not isinstance(value, bool):
        raise ValueError(f"Cannot coerce '{raw_value}' to a boolean.")
    return value


def _parse_optional_path(raw_value: str) -> str | None:
    if raw_value.lower() in {"", "none", "null"}:
        return None
    return str(Path(raw_value).expanduser())


def _parse_path_list(raw_value: str) -> list[str]:
    """A JSON array of paths, or paths separated by ``os.pathsep``."""

    if raw_value.startswith("["):
        entries = _load_json(raw_value, list, "recent_files")
        if not all(isinstance(entry, str) for entry in entries):
            raise ValueError("recent_files entries must be strings.")
    else:
        entries = raw_value.split(os.pathsep)
    return [str(Path(entry.strip()).expanduser()) for entry in entries if entry.strip()]


def _parse_flag_mapping(raw_value: str) -> dict[str, Any]:
    flags = _load_json(raw_value or "{}", dict, "flags")
    return {str(name): parse_flag_value(value) for name, value in flags.items()}


def _parse_element_templates(raw_value: str) -> list[dict[str, Any]]:
    """Inline JSON, or ``@path`` naming a JSON file with the templates."""

    if raw_value.startswith("@"):
        source = Path(raw_value[1:]).expanduser()
        try:
            raw_value = source.read_text(encoding="utf-8")
        except OSError as exc:
            raise ValueError(f"Cannot read element templates from {source}: {exc}") from exc
    templates = _load_json(raw_value or "[]", list, "element_templates")
    if not all(isinstance(template, dict) for template in templates):
        raise ValueError("element_templates must be a list of objects.")
    return templates


def _load_json(raw_value: str, expected: type, field_name: str) -> Any:
    try:
        value = json.loads(raw_value)
    except json.JSONDecodeError as exc:
        raise ValueError(f"{field_name} must be valid JSON: {exc.msg}") from exc
    if not isinstance(value, expected):
        raise ValueError(f"{field_name} must be a JSON {'array' if expected is list else 'object'}.")
    return value


_OVERRIDE_PARSERS: Mapping[str, Callable[[str], Any]] = {
    "flags": _parse_flag_mapping,
    "telemetry_opt_in": _parse_switch,
    "debug_logging": _parse_switch,
    "recent_files": _parse_path_list,
    "last_open_file": _parse_optional_path,
    "element_templates": _parse_element_templates,
}


def _dump_settings(
    settings: Settings,
    store: SettingsStore,
    *,
    overrides: Mapping[str, Any],
    flags: Mapping[str, Any],
    stream: TextIO | None = None,
) -> None:
    """Print the effective settings plus the flags and providers they lead to."""

    destination = stream or sys.stdout
    provider = TabsProvider.from_settings(settings, cli_flags=flags)
    effective_flags = Flags.from_sources(settings.flags, flags)
    metadata = {
        "path": str(store.path),
        "cli_overrides": sorted(overrides.keys()),
        "cli_flags": dict(flags),
        "effective_flags": dict(effective_flags.items()),
        "providers": list(provider.get_providers()),
        "disabled_providers": list(provider.registry.disabled_types),
        "environment_variables": sorted(name for name in os.environ if name.startswith("DIAGRAMDESK_")),
    }
    json.dump({"settings": asdict(settings), "meta": metadata}, destination, indent=2)
    destination.write("\n")


if __name__ == "__main__":  # pragma: no cover - manual invocation
    raise SystemExit(main())
