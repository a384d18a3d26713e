"""Findings and reports produced by chart validation and security audits."""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Severity(Enum):
    """Severity levels for findings."""

    WARNING = "warning"  # Reported, never fails the run
    ERROR = "error"  # Fails the run


@dataclass(frozen=True)
class ManifestRef:
    """Reference to a rendered manifest by kind and name."""

    kind: str
    name: str

    @classmethod
    def of(cls, manifest: Mapping[str, Any]) -> ManifestRef:
        metadata = manifest.get("metadata") or {}
        return cls(
            kind=str(manifest.get("kind", "")),
            name=str(metadata.get("name", "")),
        )

    def __str__(self) -> str:
        return f"{self.kind}/{self.name}"


@dataclass(frozen=True)
class Finding:
    """One result of a validation or security rule.

    Attributes:
        rule_id: Rule or field identifier (e.g. ``NoHostPID``, ``MissingField:name``)
        severity: ERROR fails the run, WARNING is advisory
        message: Human readable explanation
        subject: Offending manifest, when the finding is about one
    """

    rule_id: str
    severity: Severity
    message: str
    subject: ManifestRef | None = None

    @property
    def is_error(self) -> bool:
        return self.severity is Severity.ERROR

    def to_dict(self) -> dict[str, Any]:
        return {
            "rule_id": self.rule_id,
            "severity": self.severity.value,
            "subject": str(self.subject) if self.subject else None,
            "message": self.message,
        }


@dataclass
class ValidationReport:
    """Ordered collection of findings from one validation or audit run."""

    findings: list[Finding] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        """True when no ERROR finding was recorded."""
        return not any(f.is_error for f in self.findings)

    @property
    def errors(self) -> list[Finding]:
        return [f for f in self.findings if f.severity is Severity.ERROR]

    @property
    def warnings(self) -> list[Finding]:
        return [f for f in self.findings if f.severity is Severity.WARNING]

    @property
    def is_clean(self) -> bool:
        return len(self.findings) == 0

    def add(self, finding: Finding) -> None:
        self.findings.append(finding)

    def extend(self, findings: Iterable[Finding]) -> None:
        self.findings.extend(findings)

    def merge(self, other: ValidationReport) -> ValidationReport:
        """Return a new report holding this report's findings followed by other's."""
        return ValidationReport(findings=[*self.findings, *other.findings])

    def rule_ids(self) -> list[str]:
        return [f.rule_id for f in self.findings]

    def to_dict(self) -> dict[str, Any]:
        return {
            "passed": self.passed,
            "errors": len(self.errors),
            "warnings": len(self.warnings),
            "findings": [f.to_dict() for f in self.findings],
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2, sort_keys=True)


def error(rule_id: str, message: str, subject: ManifestRef | None = None) -> Finding:
    return Finding(rule_id, Severity.ERROR, message, subject)


def warning(rule_id: str, message: str, subject: ManifestRef | None = None) -> Finding:
    return Finding(rule_id, Severity.WARNING, message, subject)
