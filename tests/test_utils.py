"""Tests for the shared utility modules."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from diagramdesk.utils import file_io, ids, logging as logging_utils
from diagramdesk.utils.flags import DISABLE_CMMN, DISABLE_DMN, Flags, parse_flag_value
from diagramdesk.utils.telemetry import TelemetryEvent, TelemetryRecorder, telemetry_enabled


def test_generate_id_is_short_hex() -> None:
    first = ids.generate_id()
    second = ids.generate_id()

    assert len(first) == 12
    int(first, 16)
    assert first != second


def test_regenerate_ids_replaces_each_anonymous_placeholder(sequential_ids) -> None:
    text = '<a id="A_{{ ID }}"/><b id="B_{{ID}}"/>'

    assert ids.regenerate_ids(text, sequential_ids) == '<a id="A_id1"/><b id="B_id2"/>'


def test_regenerate_ids_keeps_keyed_placeholders_consistent(sequential_ids) -> None:
    text = 'id="P_{{ ID:process }}" ref="P_{{ ID:process }}" other="{{ ID:plane }}"'

    assert ids.regenerate_ids(text, sequential_ids) == 'id="P_id1" ref="P_id1" other="id2"'


def test_regenerate_ids_leaves_plain_text_untouched() -> None:
    assert ids.regenerate_ids("<definitions/>") == "<definitions/>"


def test_regenerate_ids_yields_fresh_ids_per_call() -> None:
    text = "{{ ID:process }}"

    assert ids.regenerate_ids(text) != ids.regenerate_ids(text)


def test_read_text_decodes_bom_and_normalizes_newlines(tmp_path: Path) -> None:
    target = tmp_path / "diagram.bpmn"
    target.write_bytes(b"\xef\xbb\xbf<a>\r\n</a>\r")

    assert file_io.read_text(target) == "<a>\n</a>\n"


def test_decode_text_handles_utf16_bom() -> None:
    raw = "<definitions/>".encode("utf-16")

    assert file_io.decode_text(raw) == "<definitions/>"


def test_decode_text_honours_xml_declaration() -> None:
    raw = '<?xml version="1.0" encoding="ISO-8859-1"?><definitions name="Ärger"/>'.encode("latin-1")

    assert file_io.sniff_encoding(raw) == "iso8859-1"
    assert 'name="Ärger"' in file_io.decode_text(raw)


def test_sniff_encoding_falls_back_to_latin1_for_undeclared_bytes() -> None:
    assert file_io.sniff_encoding("<a>Ä</a>".encode("latin-1")) == "latin-1"
    assert file_io.sniff_encoding("<a>Ä</a>".encode("utf-8")) == "utf-8"
    assert file_io.sniff_encoding(b'<?xml version="1.0" encoding="bogus-codec"?><a/>') == "utf-8"


def test_read_text_missing_file_raises(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        file_io.read_text(tmp_path / "missing.bpmn")


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("true", True), (" Yes ", True), ("0", False), ("off", False), ("beta", "beta"), (3, 3)],
)
def test_parse_flag_value(raw, expected) -> None:
    assert parse_flag_value(raw) == expected


def test_flags_normalize_names() -> None:
    flags = Flags({"DISABLE_DMN": "true"})

    assert flags.enabled(DISABLE_DMN)
    assert "disable_dmn" in flags
    assert not flags.enabled(DISABLE_CMMN)
    assert flags.get(DISABLE_CMMN, "fallback") == "fallback"


def test_flags_from_sources_merges_left_to_right_then_env() -> None:
    flags = Flags.from_sources(
        {DISABLE_CMMN: True, DISABLE_DMN: True},
        {DISABLE_CMMN: False},
        environ={"DIAGRAMDESK_FLAG_DISABLE_DMN": "0", "UNRELATED": "1"},
    )

    assert flags.get(DISABLE_CMMN) is False
    assert flags.get(DISABLE_DMN) is False
    assert "unrelated" not in flags


def test_flags_from_sources_ignores_missing_sources() -> None:
    flags = Flags.from_sources(None, {}, environ={})

    assert dict(flags.items()) == {}


def test_setup_logging_writes_package_logs_to_configured_directory(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("DIAGRAMDESK_LOG_DIR", str(tmp_path))

    log_path = logging_utils.setup_logging(logging.DEBUG, console=False)
    try:
        logging.getLogger("diagramdesk.tabs").debug("resolving order.bpmn")
        logging.getLogger("unrelated").warning("not ours")

        assert log_path == tmp_path / "diagramdesk.log"
        assert logging_utils.get_log_path() == log_path
        contents = log_path.read_text(encoding="utf-8")
        assert "resolving order.bpmn" in contents
        assert "not ours" not in contents
    finally:
        logging_utils.reset_logging()

    assert logging_utils.get_log_path() is None
    assert logging.getLogger("diagramdesk").handlers == []


def test_setup_logging_replaces_previous_handlers(tmp_path: Path) -> None:
    try:
        logging_utils.setup_logging("INFO", log_dir=tmp_path / "a", console=False)
        logging_utils.setup_logging("DEBUG", log_dir=tmp_path / "b")

        package_logger = logging.getLogger("diagramdesk")
        assert len(package_logger.handlers) == 2
        assert package_logger.level == logging.DEBUG
        assert logging_utils.get_log_path() == tmp_path / "b" / "diagramdesk.log"
    finally:
        logging_utils.reset_logging()


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (None, logging.INFO),
        ("", logging.INFO),
        ("debug", logging.DEBUG),
        (" Warning ", logging.WARNING),
        ("15", 15),
        (logging.ERROR, logging.ERROR),
    ],
)
def test_resolve_level(value, expected) -> None:
    assert logging_utils.resolve_level(value) == expected


def test_resolve_level_rejects_unknown_names() -> None:
    with pytest.raises(ValueError):
        logging_utils.resolve_level("chatty")


def test_recorder_buffers_until_flush(tmp_path: Path) -> None:
    recorder = TelemetryRecorder(enabled=True, storage_dir=tmp_path, session_id="s1")

    recorder.record("diagramOpened", {"diagramType": "bpmn", "file": tmp_path / "a.bpmn", "tags": ("x",)})
    assert recorder.pending == 1

    written = recorder.flush()

    assert written == tmp_path / "telemetry.jsonl"
    records = [json.loads(line) for line in written.read_text(encoding="utf-8").splitlines()]
    assert records[0]["event"] == "diagramOpened"
    assert records[0]["session"] == "s1"
    assert records[0]["payload"] == {"diagramType": "bpmn", "file": str(tmp_path / "a.bpmn"), "tags": ["x"]}
    assert recorder.pending == 0
    assert recorder.flush() is None


def test_recorder_flushes_when_buffer_fills(tmp_path: Path) -> None:
    recorder = TelemetryRecorder(enabled=True, storage_dir=tmp_path, max_buffer=2)

    recorder.record("a")
    recorder.record("b")

    assert recorder.pending == 0
    assert len((tmp_path / "telemetry.jsonl").read_text(encoding="utf-8").splitlines()) == 2


def test_disabled_recorder_drops_events(tmp_path: Path) -> None:
    recorder = TelemetryRecorder(enabled=False, storage_dir=tmp_path)

    recorder.record("diagramOpened")

    assert recorder.pending == 0
    assert recorder.flush() is None
    assert not (tmp_path / "telemetry.jsonl").exists()


def test_telemetry_event_record_serializes_nested_payload() -> None:
    event = TelemetryEvent(name="x", payload={"metrics": {"tasks": {"userTask": {"count": 1}}}})

    record = event.to_record("session")

    assert record["event"] == "x"
    assert record["payload"]["metrics"]["tasks"]["userTask"]["count"] == 1
    json.dumps(record)


def test_telemetry_enabled_prefers_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    class _Settings:
        telemetry_opt_in = True

    monkeypatch.setenv("DIAGRAMDESK_TELEMETRY", "off")
    assert telemetry_enabled(_Settings()) is False

    monkeypatch.setenv("DIAGRAMDESK_TELEMETRY", "yes")
    assert telemetry_enabled(None) is True

    monkeypatch.delenv("DIAGRAMDESK_TELEMETRY")
    assert telemetry_enabled(_Settings()) is True
    assert telemetry_enabled(None) is False
