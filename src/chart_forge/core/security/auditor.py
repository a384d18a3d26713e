"""Security audit of rendered chart output.

Runs every registered rule against every Deployment/StatefulSet and collects
all findings. The audit never stops early: a single run reports the complete
list of violations.
"""

from __future__ import annotations

from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor

from loguru import logger

from ..findings import Finding, ValidationReport
from ..manifests import Manifest, RenderedManifestSet
from .rules import RULES, SecurityRule


def _run_rule(rule: SecurityRule, workloads: Sequence[Manifest]) -> list[Finding]:
    findings: list[Finding] = []
    for manifest in workloads:
        findings.extend(rule.check(manifest))
    return findings


def audit(
    manifest_set: RenderedManifestSet,
    *,
    rules: Sequence[SecurityRule] = RULES,
    parallel: bool = False,
) -> ValidationReport:
    """Audit rendered manifests against the security rule battery.

    Findings are ordered by rule (registry order), then by manifest (document
    order), regardless of whether rules were evaluated in parallel.

    Args:
        manifest_set: Rendered manifests; only Deployments and StatefulSets
            are inspected
        rules: Rules to evaluate (defaults to the full battery)
        parallel: Evaluate rules on a thread pool

    Returns:
        ValidationReport; ``passed`` is False iff any ERROR rule was violated
    """
    workloads = manifest_set.workloads()
    logger.debug(f"Auditing {len(workloads)} workloads against {len(rules)} rules")

    if parallel and rules:
        with ThreadPoolExecutor(max_workers=min(len(rules), 8)) as pool:
            per_rule = list(pool.map(lambda r: _run_rule(r, workloads), rules))
    else:
        per_rule = [_run_rule(rule, workloads) for rule in rules]

    report = ValidationReport()
    for rule, findings in zip(rules, per_rule, strict=True):
        if findings:
            logger.debug(f"{rule.rule_id}: {len(findings)} finding(s)")
        report.extend(findings)
    return report
