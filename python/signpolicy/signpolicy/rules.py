"""Signer rules and first-match rule evaluation.

A rule pairs a resource pattern with a subject pattern. The rule list is
scanned in configured order and the first rule matching both the request
coordinates and the verified signer decides the outcome.
"""

from __future__ import annotations

import logging
from enum import StrEnum
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from signpolicy.models import CheckError, ReasonCode, RequestContext, SignerInfo
from signpolicy.pattern import match_pattern

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence

logger = logging.getLogger(__name__)

_PATTERN_CONFIG = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class RuleType(StrEnum):
    """Decision a rule renders when it matches."""

    ALLOW = "Allow"
    DENY = "Deny"


class ResourcePattern(BaseModel):
    """Request coordinates a rule applies to. Empty fields match anything."""

    model_config = _PATTERN_CONFIG

    api_version: str = ""
    kind: str = ""
    name: str = ""
    namespace: str = ""

    def match(self, api_version: str, kind: str, name: str, namespace: str) -> bool:
        return (
            match_pattern(self.api_version, api_version)
            and match_pattern(self.kind, kind)
            and match_pattern(self.name, name)
            and match_pattern(self.namespace, namespace)
        )


class SubjectPattern(BaseModel):
    """Signer identity a rule requires. Empty fields match anything."""

    model_config = _PATTERN_CONFIG

    email: str = ""
    uid: str = ""
    country: str = ""
    organization: str = ""
    organizational_unit: str = ""
    locality: str = ""
    province: str = ""
    street_address: str = ""
    postal_code: str = ""
    common_name: str = ""
    serial_number: str = ""

    def is_unconstrained(self) -> bool:
        return not any(getattr(self, f) for f in type(self).model_fields)

    def match(self, signer: SignerInfo | None) -> bool:
        """All eleven fields must match. An unverified signer never matches."""
        if signer is None:
            return False
        return all(
            match_pattern(getattr(self, f), getattr(signer, f))
            for f in type(self).model_fields
        )


def match_resource(
    pattern: ResourcePattern, api_version: str, kind: str, name: str, namespace: str
) -> bool:
    return pattern.match(api_version, kind, name, namespace)


def match_subject(pattern: SubjectPattern, signer: SignerInfo | None) -> bool:
    return pattern.match(signer)


class Rule(BaseModel):
    """A single signer rule."""

    model_config = ConfigDict(frozen=True)

    name: str = ""
    type: RuleType = RuleType.ALLOW
    resource: ResourcePattern = ResourcePattern()
    subject: SubjectPattern = SubjectPattern()

    def evaluate(
        self, request: RequestContext, signer: SignerInfo | None
    ) -> tuple[bool, bool]:
        """Return ``(matched, resource_matched)`` for the request and signer."""
        return match_signer(
            self, request.group_version, request.kind, request.name, request.namespace, signer
        )


def match_signer(
    rule: Rule,
    api_version: str,
    kind: str,
    name: str,
    namespace: str,
    signer: SignerInfo | None,
) -> tuple[bool, bool]:
    """Match a rule against resource coordinates and a signer.

    The second element tells callers whether the rule applied to the
    resource at all, so "no rule for this resource" can be told apart from
    "wrong signer".
    """
    resource_matched = rule.resource.match(api_version, kind, name, namespace)
    if not resource_matched:
        return False, False
    return rule.subject.match(signer), True


class RuleEvalResult(BaseModel):
    """Outcome of scanning a rule list."""

    signer: SignerInfo | None = None
    signer_name: str = ""
    checked: bool = True
    allow: bool
    matched_rule: Rule | None = None
    error: CheckError | None = None


class RuleList:
    """Ordered signer rules; the first match wins."""

    def __init__(self, rules: Sequence[Rule] = ()) -> None:
        self._rules: tuple[Rule, ...] = tuple(rules)

    def __len__(self) -> int:
        return len(self._rules)

    def __iter__(self) -> Iterator[Rule]:
        return iter(self._rules)

    @property
    def rules(self) -> tuple[Rule, ...]:
        return self._rules

    def evaluate(self, request: RequestContext, signer: SignerInfo | None) -> RuleEvalResult:
        """Scan the rules in order against the request and signer.

        An empty list allows: it means no policy covers this resource class.
        """
        if not self._rules:
            return RuleEvalResult(signer=signer, allow=True)

        for rule in self._rules:
            matched, _ = rule.evaluate(request, signer)
            if not matched:
                continue
            logger.debug("Rule %r matched %s/%s", rule.name, request.kind, request.name)
            if rule.type == RuleType.DENY:
                return RuleEvalResult(
                    signer=signer,
                    signer_name=rule.name,
                    allow=False,
                    matched_rule=rule,
                    error=CheckError(
                        reason_code=ReasonCode.DENIED_BY_RULE,
                        reason=f'denied by signer rule "{rule.name}"',
                    ),
                )
            return RuleEvalResult(
                signer=signer,
                signer_name=rule.name,
                allow=True,
                matched_rule=rule,
            )

        email = signer.email if signer is not None else ""
        return RuleEvalResult(
            signer=signer,
            allow=False,
            error=CheckError(
                reason_code=ReasonCode.NO_MATCHING_RULE,
                reason=f"no signer policy matched this resource, signed by {email}",
            ),
        )
