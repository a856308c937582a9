"""
Session Export

Renders a recorded session as JSON or as a CSV step table.
"""

import csv
import io
import json
from typing import Optional

from ..errors import UnsupportedFormatError
from ..models import Action, RecordingSession


CSV_HEADERS = ["Step", "Type", "Element", "Value", "Timestamp", "URL"]


def describe_element(action: Action) -> str:
    element = action.element
    if element is None:
        return ""
    if element.id:
        return f"#{element.id}"
    if element.name:
        return f"{element.tag}[name=\"{element.name}\"]"
    if element.text_content:
        return f"{element.tag}: {element.text_content.strip()[:50]}"
    return element.tag


def session_to_csv(session: RecordingSession) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for step, action in enumerate(session.actions, 1):
        writer.writerow([
            step,
            action.type.value,
            describe_element(action),
            action.value or "",
            int(action.timestamp),
            action.url or "",
        ])
    return buffer.getvalue()


def export_session(session: RecordingSession, export_format: Optional[str] = "json") -> str:
    export_format = (export_format or "json").lower()
    if export_format == "json":
        return json.dumps(session.to_dict(), indent=2)
    if export_format == "csv":
        return session_to_csv(session)
    raise UnsupportedFormatError(export_format)
