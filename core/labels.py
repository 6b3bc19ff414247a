"""
Label table loading: one label per line, line index = class index.
Source is an http(s)/file URL or a local path.
"""

from __future__ import annotations

import logging
import urllib.error
import urllib.request
from pathlib import Path

from core.errors import LabelLoadFailure
from core.models import LabelTable

log = logging.getLogger(__name__)

_URL_SCHEMES = ("http://", "https://", "file://")


def parse_labels(text: str) -> LabelTable:
    """Split line-delimited labels; trailing blank lines are dropped."""
    lines = [line.rstrip("\r") for line in text.split("\n")]
    while lines and not lines[-1].strip():
        lines.pop()
    return tuple(line.strip() for line in lines)


def fetch_labels(source: str, timeout: float = 10.0) -> LabelTable:
    """Load a label table; raises LabelLoadFailure on fetch or decode errors."""
    try:
        if source.startswith(_URL_SCHEMES):
            with urllib.request.urlopen(source, timeout=timeout) as response:
                raw = response.read()
        else:
            raw = Path(source).read_bytes()
        text = raw.decode("utf-8")
    except (urllib.error.URLError, OSError, ValueError) as exc:
        raise LabelLoadFailure(source, str(exc)) from exc
    labels = parse_labels(text)
    if not labels:
        raise LabelLoadFailure(source, "label table is empty")
    log.info("Loaded %d labels from %s", len(labels), source)
    return labels
