"""Security policy rules for rendered workloads.

Each rule is a stateless predicate over one Deployment/StatefulSet manifest.
A predicate returns one message per violation (empty when compliant); the
owning :class:`SecurityRule` turns messages into findings of its severity.

Rules never share state, so they can be evaluated in any order.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from ..findings import Finding, ManifestRef, Severity
from ..manifests import Manifest, containers, pod_spec

DANGEROUS_CAPABILITIES: frozenset[str] = frozenset(
    {"SYS_ADMIN", "NET_ADMIN", "SYS_TIME", "SYS_MODULE"}
)
SECRET_VALUE_PATTERN = re.compile(r"password|secret|key|token", re.IGNORECASE)

Predicate = Callable[[Manifest], list[str]]


@dataclass(frozen=True)
class SecurityRule:
    """A named policy check with a fixed severity.

    Attributes:
        rule_id: Stable identifier reported in findings
        severity: Severity of every violation of this rule
        description: What a compliant workload looks like
        predicate: Returns one message per violation found in a manifest
    """

    rule_id: str
    severity: Severity
    description: str
    predicate: Predicate

    def check(self, manifest: Manifest) -> list[Finding]:
        subject = ManifestRef.of(manifest)
        return [
            Finding(self.rule_id, self.severity, message, subject)
            for message in self.predicate(manifest)
        ]


# =============================================================================
# Helpers
# =============================================================================


def _security_context(obj: Mapping[str, Any]) -> Mapping[str, Any]:
    return obj.get("securityContext") or {}


def _capabilities(container: Mapping[str, Any]) -> Mapping[str, Any]:
    return _security_context(container).get("capabilities") or {}


def _name(container: Mapping[str, Any]) -> str:
    return str(container.get("name", "?"))


def _has_explicit_tag(image: str) -> bool:
    if "@" in image:
        # Digest-pinned references are immutable
        return True
    last_segment = image.rsplit("/", 1)[-1]
    return ":" in last_segment


# =============================================================================
# Predicates
# =============================================================================


def _privileged_containers(manifest: Manifest) -> list[str]:
    return [
        f"Container '{_name(c)}' runs privileged"
        for c in containers(manifest)
        if _security_context(c).get("privileged") is True
    ]


def _root_users(manifest: Manifest) -> list[str]:
    messages = []
    if _security_context(pod_spec(manifest)).get("runAsUser") == 0:
        messages.append("Pod security context sets runAsUser: 0")
    messages.extend(
        f"Container '{_name(c)}' runs as root (runAsUser: 0)"
        for c in containers(manifest)
        if _security_context(c).get("runAsUser") == 0
    )
    return messages


def _host_network(manifest: Manifest) -> list[str]:
    if pod_spec(manifest).get("hostNetwork") is True:
        return ["Pod uses host network (hostNetwork: true)"]
    return []


def _host_pid(manifest: Manifest) -> list[str]:
    if pod_spec(manifest).get("hostPID") is True:
        return ["Pod shares the host PID namespace (hostPID: true)"]
    return []


def _dangerous_capabilities(manifest: Manifest) -> list[str]:
    messages = []
    for c in containers(manifest):
        added = _capabilities(c).get("add") or []
        for cap in added:
            if cap in DANGEROUS_CAPABILITIES:
                messages.append(f"Container '{_name(c)}' adds capability {cap}")
    return messages


def _capabilities_drop_all(manifest: Manifest) -> list[str]:
    return [
        f"Container '{_name(c)}' does not drop ALL capabilities"
        for c in containers(manifest)
        if "ALL" not in (_capabilities(c).get("drop") or [])
    ]


def _read_only_root_filesystem(manifest: Manifest) -> list[str]:
    return [
        f"Container '{_name(c)}' lacks readOnlyRootFilesystem: true"
        for c in containers(manifest)
        if _security_context(c).get("readOnlyRootFilesystem") is not True
    ]


def _privilege_escalation(manifest: Manifest) -> list[str]:
    return [
        f"Container '{_name(c)}' lacks allowPrivilegeEscalation: false"
        for c in containers(manifest)
        if _security_context(c).get("allowPrivilegeEscalation") is not False
    ]


def _resource_limits(manifest: Manifest) -> list[str]:
    return [
        f"Container '{_name(c)}' has no resource limits"
        for c in containers(manifest)
        if not (c.get("resources") or {}).get("limits")
    ]


def _secrets_in_env(manifest: Manifest) -> list[str]:
    messages = []
    for c in containers(manifest):
        for var in c.get("env") or []:
            value = var.get("value")
            if value is None:
                continue
            if SECRET_VALUE_PATTERN.search(str(value)):
                messages.append(
                    f"Container '{_name(c)}' env {var.get('name', '?')} "
                    "looks like an inline secret"
                )
    return messages


def _pod_security_context_complete(manifest: Manifest) -> list[str]:
    context = _security_context(pod_spec(manifest))
    missing = []
    if context.get("runAsNonRoot") is not True:
        missing.append("runAsNonRoot: true")
    for key in ("runAsUser", "runAsGroup", "fsGroup"):
        if context.get(key) is None:
            missing.append(key)
    if missing:
        return [f"Pod security context missing {', '.join(missing)}"]
    return []


def _explicit_image_tags(manifest: Manifest) -> list[str]:
    messages = []
    for c in containers(manifest):
        image = str(c.get("image") or "")
        if image.endswith(":latest"):
            messages.append(f"Container '{_name(c)}' uses 'latest' tag ({image})")
        elif not _has_explicit_tag(image):
            messages.append(
                f"Container '{_name(c)}' image has no explicit tag ({image or 'none'})"
            )
    return messages


def _default_service_account(manifest: Manifest) -> list[str]:
    account = pod_spec(manifest).get("serviceAccountName")
    if account in (None, "", "default"):
        return ["Pod uses the default service account"]
    return []


def _pod_security_context_defined(manifest: Manifest) -> list[str]:
    if pod_spec(manifest).get("securityContext") is None:
        return ["Pod has no security context"]
    return []


# =============================================================================
# Registry
# =============================================================================

RULES: tuple[SecurityRule, ...] = (
    SecurityRule(
        "NoPrivilegedContainers",
        Severity.ERROR,
        "No container runs privileged",
        _privileged_containers,
    ),
    SecurityRule(
        "NoRootUser",
        Severity.WARNING,
        "No container or pod requests runAsUser: 0",
        _root_users,
    ),
    SecurityRule(
        "NoHostNetwork",
        Severity.ERROR,
        "Pods do not use the host network",
        _host_network,
    ),
    SecurityRule(
        "NoHostPID",
        Severity.ERROR,
        "Pods do not share the host PID namespace",
        _host_pid,
    ),
    SecurityRule(
        "NoDangerousCapabilities",
        Severity.ERROR,
        "No container adds SYS_ADMIN, NET_ADMIN, SYS_TIME or SYS_MODULE",
        _dangerous_capabilities,
    ),
    SecurityRule(
        "CapabilitiesDropAll",
        Severity.ERROR,
        "Every container drops ALL capabilities",
        _capabilities_drop_all,
    ),
    SecurityRule(
        "ReadOnlyRootFilesystem",
        Severity.ERROR,
        "Every container sets readOnlyRootFilesystem: true",
        _read_only_root_filesystem,
    ),
    SecurityRule(
        "NoPrivilegeEscalation",
        Severity.ERROR,
        "Every container sets allowPrivilegeEscalation: false",
        _privilege_escalation,
    ),
    SecurityRule(
        "ResourceLimitsPresent",
        Severity.WARNING,
        "Every container declares resource limits",
        _resource_limits,
    ),
    SecurityRule(
        "NoSecretsInEnv",
        Severity.WARNING,
        "No environment value looks like a password, secret, key or token",
        _secrets_in_env,
    ),
    SecurityRule(
        "PodSecurityContextComplete",
        Severity.ERROR,
        "Pods set runAsNonRoot, runAsUser, runAsGroup and fsGroup",
        _pod_security_context_complete,
    ),
    SecurityRule(
        "ExplicitImageTag",
        Severity.WARNING,
        "Images use an explicit, non-latest tag",
        _explicit_image_tags,
    ),
    SecurityRule(
        "NonDefaultServiceAccount",
        Severity.WARNING,
        "Pods use a dedicated service account",
        _default_service_account,
    ),
    SecurityRule(
        "PodSecurityContextDefined",
        Severity.WARNING,
        "Pods define a security context",
        _pod_security_context_defined,
    ),
)

RECOMMENDATIONS: tuple[str, ...] = (
    "Use specific image tags instead of 'latest'",
    "Implement NetworkPolicies for network segmentation (if needed)",
    "Use non-root users in containers",
    "Set resource limits for all containers",
    "Use dedicated service accounts",
    "Enable Pod Security Standards",
    "Regularly scan images for vulnerabilities",
    "Ensure all containers have readOnlyRootFilesystem: true",
    "Drop all capabilities and add only required ones",
    "Set allowPrivilegeEscalation: false for all containers",
)
