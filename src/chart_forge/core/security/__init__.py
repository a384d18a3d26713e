"""Security auditing of rendered Helm chart output."""

from .auditor import audit
from .rules import DANGEROUS_CAPABILITIES, RECOMMENDATIONS, RULES, SecurityRule

__all__ = [
    "audit",
    "RULES",
    "RECOMMENDATIONS",
    "DANGEROUS_CAPABILITIES",
    "SecurityRule",
]
