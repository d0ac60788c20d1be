"""Core domain models for error reports and their outcomes."""

import json
import platform
import time
import traceback
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from uuid import uuid4

from faultline._version import __version__
from faultline.core.attributes import Attributes, primitive_attributes

AGENT_NAME = "faultline"
BREADCRUMBS_ATTACHMENT_NAME = "bt-breadcrumbs-0"

# A multipart part: (field name, (file name, content, content type))
FormPart = tuple[str, tuple[str, bytes, str]]


@dataclass(frozen=True)
class Breadcrumb:
    """A recorded trail event describing recent application activity.

    Attributes:
        id: Monotonic counter value, never reused within a buffer.
        timestamp: Milliseconds since epoch.
        level: Severity (e.g., info, warning, error).
        type: Event kind (e.g., manual, log, http).
        message: Human-readable description.
        attributes: Additional structured fields.
    """

    id: int
    timestamp: int
    level: str
    type: str
    message: str
    attributes: Mapping[str, Any] = field(default_factory=dict)

    def to_json(self) -> dict[str, Any]:
        """Return the wire representation of the breadcrumb."""
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "level": self.level,
            "type": self.type,
            "message": self.message,
            "attributes": dict(self.attributes),
        }


@dataclass(eq=False)
class Report:
    """One error or message instance submitted for delivery.

    Attributes may change until the report is dispatched; all other
    fields are fixed at creation.

    Attributes:
        payload: The exception being reported, or a free-text message.
        attributes: Primitive key/value pairs describing the report.
        breadcrumbs: Trail snapshot taken at creation, None when disabled.
        attachment: Optional extra payload sent as a separate form part.
        annotations: Optional JSON-able structured data.
        timestamp: Seconds since epoch at creation.
        uuid: Process-unique identifier; an empty value marks the report invalid.
    """

    payload: BaseException | str
    attributes: Attributes = field(default_factory=dict)
    breadcrumbs: tuple[Breadcrumb, ...] | None = None
    attachment: str | bytes | Mapping[str, Any] | None = None
    annotations: dict[str, Any] = field(default_factory=dict)
    timestamp: int = field(default_factory=lambda: int(time.time()))
    uuid: str = field(default_factory=lambda: str(uuid4()))

    def __post_init__(self) -> None:
        self.attributes = primitive_attributes(self.attributes)

    @property
    def message(self) -> str:
        """Return the human-readable message of the payload."""
        if isinstance(self.payload, BaseException):
            return str(self.payload)
        return self.payload

    @property
    def classifiers(self) -> list[str]:
        """Return the exception type name for error payloads."""
        if isinstance(self.payload, BaseException):
            return [type(self.payload).__name__]
        return []

    def add_attributes(self, attributes: Mapping[str, Any] | None) -> None:
        """Merge attributes without overwriting keys the report already has.

        Non-primitive values are discarded.
        """
        for key, value in primitive_attributes(attributes).items():
            self.attributes.setdefault(key, value)

    def add_annotation(self, name: str, value: Any) -> None:
        """Attach a named, JSON-able annotation to the report."""
        self.annotations[name] = value

    def _stack_frames(self) -> list[dict[str, Any]]:
        if not isinstance(self.payload, BaseException):
            return []
        frames = traceback.extract_tb(self.payload.__traceback__)
        # innermost frame first
        return [
            {
                "funcName": frame.name,
                "library": frame.filename,
                "line": frame.lineno,
                "code": frame.line or "",
            }
            for frame in reversed(frames)
        ]

    def to_json(self) -> dict[str, Any]:
        """Render the report body sent as the ``upload_file`` form part."""
        attributes: dict[str, Any] = dict(self.attributes)
        attributes["error.message"] = self.message
        if self.breadcrumbs:
            attributes["breadcrumbs.lastId"] = self.breadcrumbs[-1].id
        return {
            "uuid": self.uuid,
            "timestamp": self.timestamp,
            "lang": "python",
            "langVersion": platform.python_version(),
            "agent": AGENT_NAME,
            "agentVersion": __version__,
            "classifiers": self.classifiers,
            "mainThread": "main",
            "threads": {
                "main": {"name": "main", "fault": True, "stack": self._stack_frames()}
            },
            "attributes": attributes,
            "annotations": self.annotations,
        }

    def to_form_data(self) -> list[FormPart]:
        """Render the report as multipart form parts.

        Returns:
            Parts for the report JSON, the breadcrumb trail (when present)
            and the attachment (when present).
        """
        parts: list[FormPart] = [
            (
                "upload_file",
                (
                    "upload_file.json",
                    json.dumps(self.to_json(), default=str).encode(),
                    "application/json",
                ),
            )
        ]
        if self.breadcrumbs:
            trail = [crumb.to_json() for crumb in self.breadcrumbs]
            parts.append(
                (
                    f"attachment_{BREADCRUMBS_ATTACHMENT_NAME}",
                    (
                        BREADCRUMBS_ATTACHMENT_NAME,
                        json.dumps(trail, default=str).encode(),
                        "application/json",
                    ),
                )
            )
        if self.attachment is not None:
            parts.append(("attachment_attachment", _encode_attachment(self.attachment)))
        return parts


def _encode_attachment(
    attachment: str | bytes | Mapping[str, Any],
) -> tuple[str, bytes, str]:
    if isinstance(attachment, bytes):
        return ("attachment", attachment, "application/octet-stream")
    if isinstance(attachment, str):
        return ("attachment.txt", attachment.encode(), "text/plain")
    return (
        "attachment.json",
        json.dumps(attachment, default=str).encode(),
        "application/json",
    )


class ResultStatus(str, Enum):
    """Outcome of an admission or send attempt."""

    SAMPLING_HIT = "SamplingHit"
    LIMIT_REACHED = "LimitReached"
    FILTER_HIT = "FilterHit"
    SERVER_ERROR = "ServerError"
    OK = "Ok"
    IN_PROCESSING = "InProcessing"


@dataclass(frozen=True)
class Result:
    """Immutable outcome of a report submission attempt.

    Attributes:
        status: Which admission or delivery state the report ended in.
        message: Human-readable description of the outcome.
        report: The report the outcome belongs to.
        error: The triggering exception for ``ServerError`` results.
        object_id: Server-assigned identifier for delivered reports.
    """

    status: ResultStatus
    message: str
    report: Report
    error: BaseException | None = None
    object_id: str | None = None

    @classmethod
    def processing(cls, report: Report) -> "Result":
        return cls(
            ResultStatus.IN_PROCESSING,
            "Data were send to API and waiting for server result",
            report,
        )

    @classmethod
    def ok(cls, report: Report, data: Mapping[str, Any] | None = None) -> "Result":
        """Build an ``Ok`` result from the decoded server receipt."""
        data = data or {}
        object_id = data.get("object") or data.get("_rxid") or None
        message = data.get("message") or "Report is available on the Backtrace server"
        return cls(
            ResultStatus.OK,
            str(message),
            report,
            object_id=str(object_id) if object_id else None,
        )

    @classmethod
    def on_limit_reached(cls, report: Report) -> "Result":
        return cls(ResultStatus.LIMIT_REACHED, "Client report limit reached", report)

    @classmethod
    def on_sampling_hit(cls, report: Report) -> "Result":
        return cls(ResultStatus.SAMPLING_HIT, "Sampling hit", report)

    @classmethod
    def on_filter_hit(cls, report: Report) -> "Result":
        return cls(ResultStatus.FILTER_HIT, "Filter hit", report)

    @classmethod
    def on_error(cls, report: Report, error: BaseException) -> "Result":
        return cls(ResultStatus.SERVER_ERROR, str(error), report, error=error)


@dataclass(frozen=True)
class EndpointParameters:
    """Universe and token resolved from a submission endpoint.

    Attributes:
        universe: Tenant identifier.
        token: Per-tenant credential; None when neither given nor parsed.
    """

    universe: str
    token: str | None
