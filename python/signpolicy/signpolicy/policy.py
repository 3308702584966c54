"""Signing policy objects and the rule store built from them."""

from __future__ import annotations

import logging
from enum import StrEnum
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from signpolicy.models import API_GROUP, POLICY_KIND, ObjectMeta
from signpolicy.rules import ResourcePattern, Rule, RuleList, RuleType, SubjectPattern

if TYPE_CHECKING:
    from collections.abc import Iterable

    from signpolicy.models import RequestContext

logger = logging.getLogger(__name__)

_CAMEL = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PolicyType(StrEnum):
    """Role of a policy object, which fixes where it may be created."""

    IE = "IEPolicy"
    DEFAULT = "DefaultPolicy"
    SIGNER = "SignerPolicy"
    CUSTOM = "CustomPolicy"


class SubjectCondition(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = ""
    subject: SubjectPattern = SubjectPattern()


class SignerMatchPattern(BaseModel):
    """One signer entry of a policy: which signer may sign which resources."""

    model_config = ConfigDict(frozen=True)

    request: ResourcePattern = ResourcePattern()
    condition: SubjectCondition = SubjectCondition()
    type: RuleType = RuleType.ALLOW

    def to_rule(self) -> Rule:
        return Rule(
            name=self.condition.name,
            type=self.type,
            resource=self.request,
            subject=self.condition.subject,
        )

    @classmethod
    def from_rule(cls, rule: Rule) -> SignerMatchPattern:
        return cls(
            request=rule.resource,
            condition=SubjectCondition(name=rule.name, subject=rule.subject),
            type=rule.type,
        )


class PolicySpec(BaseModel):
    model_config = _CAMEL

    policy_type: PolicyType = PolicyType.SIGNER
    description: str = ""
    signer: list[SignerMatchPattern] = []


class SignPolicySpec(BaseModel):
    policy: PolicySpec = Field(default_factory=PolicySpec)


class Policy(BaseModel):
    """A signing policy custom object."""

    model_config = _CAMEL

    api_version: str = f"{API_GROUP}/v1alpha1"
    kind: str = POLICY_KIND
    metadata: ObjectMeta = Field(default_factory=ObjectMeta)
    spec: SignPolicySpec = Field(default_factory=SignPolicySpec)

    @property
    def policy_type(self) -> PolicyType:
        return self.spec.policy.policy_type

    @property
    def signers(self) -> list[SignerMatchPattern]:
        return self.spec.policy.signer

    def check(
        self,
        request: RequestContext,
        enforcer_namespace: str,
        policy_namespace: str,
    ) -> list[str]:
        """Validate placement and content of a policy being admitted.

        ``request.namespace`` is where the object is being created. Returns
        a list of problems; empty means the policy is acceptable.
        """
        problems: list[str] = []
        namespace = request.namespace
        ptype = self.policy_type

        if ptype in (PolicyType.IE, PolicyType.DEFAULT):
            if namespace != enforcer_namespace:
                problems.append(
                    f"{ptype} must be created in namespace {enforcer_namespace!r}, "
                    f"not {namespace!r}"
                )
        elif ptype == PolicyType.SIGNER:
            if namespace != policy_namespace:
                problems.append(
                    f"{ptype} must be created in namespace {policy_namespace!r}, "
                    f"not {namespace!r}"
                )
        elif namespace in (enforcer_namespace, policy_namespace):
            problems.append(f"{ptype} cannot be created in reserved namespace {namespace!r}")

        if ptype != PolicyType.SIGNER and self.signers:
            problems.append(f"signer entries are only allowed in {PolicyType.SIGNER}")

        for i, pattern in enumerate(self.signers):
            if not pattern.condition.name:
                problems.append(f"signer[{i}].condition.name is required")
            if pattern.condition.subject.is_unconstrained():
                problems.append(f"signer[{i}].condition.subject must constrain at least one field")
        return problems

    def describe(self, pattern: SignerMatchPattern | None = None) -> str:
        """Human-readable description used in audit messages."""
        text = f"{self.metadata.namespace}/{self.metadata.name} [{self.policy_type}]"
        if pattern is not None:
            text += f' rule "{pattern.condition.name}"'
        if self.spec.policy.description:
            text += f" ({self.spec.policy.description})"
        return text


class PolicyList:
    """Ordered, read-only snapshot of the active policies."""

    def __init__(self, policies: Iterable[Policy] = ()) -> None:
        self._policies: tuple[Policy, ...] = tuple(policies)

    def __len__(self) -> int:
        return len(self._policies)

    @property
    def policies(self) -> tuple[Policy, ...]:
        return self._policies

    def get_signers(self) -> list[SignerMatchPattern]:
        """All signer entries, in policy order then entry order."""
        return [p for policy in self._policies for p in policy.signers]

    def find_matched_signer_policy(self, pattern: SignerMatchPattern) -> Policy | None:
        """Return the first policy that defines ``pattern``."""
        for policy in self._policies:
            if pattern in policy.signers:
                return policy
        return None


class RuleStore:
    """Builds the rule list applicable to one request."""

    def __init__(self, patterns: Iterable[SignerMatchPattern]) -> None:
        self._rules = tuple(p.to_rule() for p in patterns)

    def find(self, request: RequestContext) -> RuleList:
        """Rules whose resource pattern matches the request, in order."""
        rules = [
            r
            for r in self._rules
            if r.resource.match(
                request.group_version, request.kind, request.name, request.namespace
            )
        ]
        logger.debug(
            "Selected %d of %d rules for %s %s/%s",
            len(rules),
            len(self._rules),
            request.kind,
            request.namespace,
            request.name,
        )
        return RuleList(rules)
