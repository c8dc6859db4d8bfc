from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from tablelog.core.events import EventLevel, LogEvent, now_event
from tablelog.core.rendering import (
    InvariantFormatProvider,
    render_template,
    render_value,
    to_json,
)


def test_level_parse_accepts_aliases() -> None:
    assert EventLevel.parse("info") is EventLevel.INFORMATION
    assert EventLevel.parse("WARN") is EventLevel.WARNING
    assert EventLevel.parse("critical") is EventLevel.FATAL
    assert EventLevel.parse("Trace") is EventLevel.VERBOSE
    assert EventLevel.parse(EventLevel.ERROR) is EventLevel.ERROR
    with pytest.raises(ValueError):
        EventLevel.parse("loud")


def test_event_is_immutable_and_timezone_aware() -> None:
    event = LogEvent(
        timestamp=datetime(2024, 1, 1, 8, 30),
        level="info",  # type: ignore[arg-type]
        message_template="hello",
        properties={"a": 1},
    )
    assert event.timestamp.tzinfo is timezone.utc
    assert event.level is EventLevel.INFORMATION
    with pytest.raises(TypeError):
        event.properties["a"] = 2  # type: ignore[index]
    with pytest.raises(AttributeError):
        event.message_template = "other"  # type: ignore[misc]


def test_event_copies_properties() -> None:
    props = {"a": 1}
    event = LogEvent(
        timestamp=datetime.now(timezone.utc),
        level=EventLevel.DEBUG,
        message_template="x",
        properties=props,
    )
    props["a"] = 99
    assert event.properties["a"] == 1


def test_utc_timestamp_converts_offsets() -> None:
    local = datetime(2024, 1, 1, 10, 0, tzinfo=timezone(timedelta(hours=2)))
    event = LogEvent(timestamp=local, level=EventLevel.DEBUG, message_template="x")
    assert event.utc_timestamp == datetime(2024, 1, 1, 8, 0, tzinfo=timezone.utc)


def test_from_mapping_accepts_envelope_shapes() -> None:
    event = LogEvent.from_mapping(
        {
            "timestamp": 0.0,
            "level": "ERROR",
            "message": "failed {Op}",
            "metadata": {"Op": "sync"},
        }
    )
    assert event.timestamp == datetime(1970, 1, 1, tzinfo=timezone.utc)
    assert event.level is EventLevel.ERROR
    assert event.message_template == "failed {Op}"
    assert event.properties == {"Op": "sync"}

    iso = LogEvent.from_mapping(
        {"timestamp": "2024-01-01T00:00:00Z", "message_template": "t"}
    )
    assert iso.timestamp == datetime(2024, 1, 1, tzinfo=timezone.utc)
    assert iso.level is EventLevel.INFORMATION


def test_from_mapping_rejects_bad_timestamp() -> None:
    with pytest.raises(ValueError):
        LogEvent.from_mapping({"timestamp": object(), "message": "x"})


def test_now_event_stamps_utc() -> None:
    before = datetime.now(timezone.utc)
    event = now_event("Warning", "disk {Pct}", Pct=91)
    assert event.timestamp >= before
    assert event.properties == {"Pct": 91}


def test_render_template_holes() -> None:
    props = {"UserId": 42, "Host": "web-1", "Amount": 3.14159, "Obj": {"a": 1}}
    assert (
        render_template("User {UserId} from {Host}", props)
        == 'User 42 from "web-1"'
    )
    assert render_template("Paid {Amount:.2f}", props) == "Paid 3.14"
    assert render_template("Got {@Obj}", props) == 'Got {"a":1}'
    assert render_template("Id {$UserId}", props) == 'Id "42"'


def test_render_template_escapes_and_missing() -> None:
    assert render_template("{{literal}} {Missing}", {}) == "{literal} {Missing}"


def test_render_uses_format_provider() -> None:
    class Upper(InvariantFormatProvider):
        def format(self, value, spec):  # type: ignore[no-untyped-def]
            return super().format(value, spec).upper()

    assert render_template("{Name}", {"Name": "bob"}, Upper()) == '"BOB"'


def test_invariant_provider_formats() -> None:
    provider = InvariantFormatProvider()
    when = datetime(2024, 1, 1, tzinfo=timezone.utc)
    assert provider.format(None, None) == "null"
    assert provider.format(when, None) == "2024-01-01T00:00:00+00:00"
    assert provider.format(5, "03d") == "005"
    # Invalid spec falls back to plain rendering
    assert provider.format("x", ".2f") == "x"


def test_to_json_falls_back_for_unknown_types() -> None:
    class Thing:
        def __str__(self) -> str:
            return "thing"

    assert to_json({"t": Thing()}) == '{"t":"thing"}'
    assert render_value([1, 2], hint="@") == "[1,2]"


def test_to_json_handles_values_orjson_rejects() -> None:
    big = 2**70
    payload = {"Big": big, "Small": -(2**63), "Keys": {1: "one", (2, 3): [big]}}
    assert to_json(payload) == (
        f'{{"Big":"{big}","Small":{-(2**63)},'
        f'"Keys":{{"1":"one","(2, 3)":["{big}"]}}}}'
    )


def test_to_json_deep_nesting_still_renders() -> None:
    nested: dict = {}
    cursor = nested
    for _ in range(300):
        cursor["n"] = {}
        cursor = cursor["n"]
    text = to_json(nested)
    assert text.startswith('{"n":{"n":')
