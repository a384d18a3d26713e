"""Unit tests for the individual security rules."""

from __future__ import annotations

from typing import Any

import pytest

from chart_forge.core.findings import Severity
from chart_forge.core.security import RULES, SecurityRule

RULES_BY_ID: dict[str, SecurityRule] = {rule.rule_id: rule for rule in RULES}


def findings_for(rule_id: str, manifest: dict[str, Any]) -> list[str]:
    return [f.message for f in RULES_BY_ID[rule_id].check(manifest)]


class TestRuleRegistry:
    """Tests for the rule battery itself."""

    def test_rule_ids_are_unique(self) -> None:
        assert len(RULES_BY_ID) == len(RULES) == 14

    @pytest.mark.parametrize(
        ("rule_id", "severity"),
        [
            ("NoPrivilegedContainers", Severity.ERROR),
            ("NoRootUser", Severity.WARNING),
            ("NoHostNetwork", Severity.ERROR),
            ("NoHostPID", Severity.ERROR),
            ("NoDangerousCapabilities", Severity.ERROR),
            ("CapabilitiesDropAll", Severity.ERROR),
            ("ReadOnlyRootFilesystem", Severity.ERROR),
            ("NoPrivilegeEscalation", Severity.ERROR),
            ("ResourceLimitsPresent", Severity.WARNING),
            ("NoSecretsInEnv", Severity.WARNING),
            ("PodSecurityContextComplete", Severity.ERROR),
            ("ExplicitImageTag", Severity.WARNING),
            ("NonDefaultServiceAccount", Severity.WARNING),
            ("PodSecurityContextDefined", Severity.WARNING),
        ],
    )
    def test_rule_severity(self, rule_id: str, severity: Severity) -> None:
        assert RULES_BY_ID[rule_id].severity is severity

    def test_hardened_workload_violates_nothing(
        self, hardened_deployment: dict[str, Any]
    ) -> None:
        for rule in RULES:
            assert rule.check(hardened_deployment) == [], rule.rule_id


class TestContainerRules:
    """Rules evaluated per container."""

    def test_privileged_container(
        self, make_workload: Any, make_container: Any
    ) -> None:
        container = make_container()
        container["securityContext"]["privileged"] = True
        manifest = make_workload(containers=[container])
        assert findings_for("NoPrivilegedContainers", manifest) == [
            "Container 'app' runs privileged"
        ]

    def test_root_user_on_pod_and_container(
        self, make_workload: Any, make_container: Any
    ) -> None:
        container = make_container()
        container["securityContext"]["runAsUser"] = 0
        manifest = make_workload(
            containers=[container],
            pod_security_context={
                "runAsNonRoot": True,
                "runAsUser": 0,
                "runAsGroup": 0,
                "fsGroup": 0,
            },
        )
        assert len(findings_for("NoRootUser", manifest)) == 2

    def test_dangerous_capabilities(
        self, make_workload: Any, make_container: Any
    ) -> None:
        container = make_container()
        container["securityContext"]["capabilities"] = {
            "drop": ["ALL"],
            "add": ["NET_BIND_SERVICE", "SYS_ADMIN", "NET_ADMIN"],
        }
        messages = findings_for(
            "NoDangerousCapabilities", make_workload(containers=[container])
        )
        assert messages == [
            "Container 'app' adds capability SYS_ADMIN",
            "Container 'app' adds capability NET_ADMIN",
        ]

    def test_capabilities_must_drop_all(
        self, make_workload: Any, make_container: Any
    ) -> None:
        container = make_container()
        container["securityContext"]["capabilities"] = {"drop": ["NET_RAW"]}
        manifest = make_workload(containers=[container])
        assert findings_for("CapabilitiesDropAll", manifest)

    def test_missing_security_context_fails_container_rules(
        self, make_workload: Any
    ) -> None:
        """Absent fields are violations, not passes."""
        container = {"name": "bare", "image": "grafana/mimir:2.12.0"}
        manifest = make_workload(containers=[container])
        for rule_id in (
            "CapabilitiesDropAll",
            "ReadOnlyRootFilesystem",
            "NoPrivilegeEscalation",
            "ResourceLimitsPresent",
        ):
            assert findings_for(rule_id, manifest), rule_id
        assert findings_for("NoPrivilegedContainers", manifest) == []

    def test_each_container_is_reported(
        self, make_workload: Any, make_container: Any
    ) -> None:
        first = make_container(name="first")
        second = make_container(name="second")
        first["securityContext"]["readOnlyRootFilesystem"] = False
        second["securityContext"]["readOnlyRootFilesystem"] = False
        manifest = make_workload(containers=[first, second])
        assert len(findings_for("ReadOnlyRootFilesystem", manifest)) == 2

    def test_secrets_in_env(
        self, make_workload: Any, make_container: Any
    ) -> None:
        container = make_container(
            env=[
                {"name": "DB_PASSWORD", "value": "my-Password-1"},
                {"name": "LOG_LEVEL", "value": "info"},
                {
                    "name": "API_TOKEN",
                    "valueFrom": {"secretKeyRef": {"name": "s", "key": "t"}},
                },
            ]
        )
        messages = findings_for(
            "NoSecretsInEnv", make_workload(containers=[container])
        )
        assert len(messages) == 1
        assert "DB_PASSWORD" in messages[0]

    @pytest.mark.parametrize(
        ("image", "violates"),
        [
            ("grafana/mimir:2.12.0", False),
            ("registry:5000/grafana/mimir:2.12.0", False),
            ("grafana/mimir@sha256:abc123", False),
            ("grafana/mimir:latest", True),
            ("grafana/mimir", True),
            ("registry:5000/grafana/mimir", True),
        ],
    )
    def test_explicit_image_tag(
        self, make_workload: Any, make_container: Any, image: str, violates: bool
    ) -> None:
        manifest = make_workload(containers=[make_container(image=image)])
        assert bool(findings_for("ExplicitImageTag", manifest)) is violates

    def test_init_containers_are_not_audited(self, make_workload: Any) -> None:
        init = {"name": "init", "image": "busybox", "securityContext": {}}
        manifest = make_workload(initContainers=[init])
        for rule in RULES:
            assert rule.check(manifest) == [], rule.rule_id


class TestPodRules:
    """Rules evaluated on the pod template."""

    def test_host_network(self, make_workload: Any) -> None:
        manifest = make_workload(hostNetwork=True)
        assert findings_for("NoHostNetwork", manifest)

    def test_host_pid(self, make_workload: Any) -> None:
        manifest = make_workload(hostPID=True)
        assert findings_for("NoHostPID", manifest)

    def test_incomplete_pod_security_context(self, make_workload: Any) -> None:
        manifest = make_workload(pod_security_context={"runAsUser": 10001})
        assert findings_for("PodSecurityContextComplete", manifest) == [
            "Pod security context missing runAsNonRoot: true, runAsGroup, fsGroup"
        ]

    def test_absent_pod_security_context(self, make_workload: Any) -> None:
        manifest = make_workload(pod_security_context=None)
        assert findings_for("PodSecurityContextDefined", manifest)
        assert findings_for("PodSecurityContextComplete", manifest)

    @pytest.mark.parametrize("account", [None, "", "default"])
    def test_default_service_account(
        self, make_workload: Any, account: str | None
    ) -> None:
        manifest = make_workload(service_account=account)
        assert findings_for("NonDefaultServiceAccount", manifest)

    def test_findings_name_the_workload(self, make_workload: Any) -> None:
        manifest = make_workload(kind="StatefulSet", name="mimir-ingester")
        manifest["spec"]["template"]["spec"]["hostPID"] = True
        finding = RULES_BY_ID["NoHostPID"].check(manifest)[0]
        assert str(finding.subject) == "StatefulSet/mimir-ingester"
