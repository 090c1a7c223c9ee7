"""Notification sinks for emitted candidates."""

from pathlib import Path

from ...config import SinkConfig
from .base import BaseSink, CompositeSink, NullSink
from .jsonl_sink import JsonlSink
from .slack_sink import SlackSink


def build_sink(config: SinkConfig, base_dir: Path | None = None) -> BaseSink:
    """Create the configured sinks; no sink configured yields a ``NullSink``."""

    sinks: list[BaseSink] = []
    if config.jsonl_dir is not None:
        output_dir = config.jsonl_dir
        if base_dir is not None and not output_dir.is_absolute():
            output_dir = base_dir / output_dir
        sinks.append(JsonlSink(output_dir))
    if config.slack_webhook_url:
        sinks.append(SlackSink(config.slack_webhook_url, timeout=config.slack_timeout))
    if not sinks:
        return NullSink()
    return CompositeSink(sinks)


__all__ = ["BaseSink", "CompositeSink", "JsonlSink", "NullSink", "SlackSink", "build_sink"]
