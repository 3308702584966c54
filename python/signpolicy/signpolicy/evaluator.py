"""Signing-policy evaluator.

Runs the admission pipeline for one request: self-validation of policy and
signature objects, signature lookup, verification, namespace rewrite for
signature objects, and first-match rule evaluation. Every policy outcome is
returned as a :class:`SignPolicyEvalResult`; only a malformed call raises.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from pydantic import ValidationError

from signpolicy.config import Settings, settings
from signpolicy.loader import load_policies
from signpolicy.models import (
    POLICY_KIND,
    SIGNATURE_KIND,
    CheckError,
    ReasonCode,
    RequestContext,
    ResourceSignature,
    SignPolicyEvalResult,
)
from signpolicy.policy import Policy, PolicyList, RuleStore, SignerMatchPattern

if TYPE_CHECKING:
    from signpolicy.models import SignerInfo
    from signpolicy.rules import RuleEvalResult
    from signpolicy.store import SignatureStore
    from signpolicy.verifier import VerifierRegistry

logger = logging.getLogger(__name__)

NO_SIGNATURE_REASON = "No signature found"


class SignPolicyError(Exception):
    """Raised when the evaluator is called with an unusable request."""


def _deny(
    code: ReasonCode,
    reason: str,
    *,
    error: Exception | None = None,
    signer: SignerInfo | None = None,
) -> SignPolicyEvalResult:
    return SignPolicyEvalResult(
        signer=signer,
        allow=False,
        checked=True,
        error=CheckError(reason_code=code, reason=reason, error=error),
    )


def _validation_problems(exc: ValidationError) -> list[str]:
    """Render validation errors as ``loc: msg`` pairs, without input values or links."""
    return [
        f"{'.'.join(str(p) for p in err['loc']) or 'object'}: {err['msg']}"
        for err in exc.errors(include_url=False, include_input=False)
    ]


def make_request_for_eval(request: RequestContext) -> RequestContext:
    """Return the context rules should be matched against.

    A resource signature may live in a different namespace from the resource
    it attests to, so for signature requests the namespace of the first
    signed item is used. Parse failures and empty namespaces keep the
    original context.
    """
    if not request.is_signature_request:
        return request
    try:
        signature = ResourceSignature.model_validate_json(request.raw_object)
    except ValidationError as exc:
        logger.warning("Cannot parse %s %s: %s", SIGNATURE_KIND, request.name, exc)
        return request
    if not signature.spec.data:
        return request
    namespace = signature.spec.data[0].metadata.namespace
    if not namespace:
        return request
    return RequestContext.derive(request, namespace=namespace)


class SignPolicyEvaluator:
    """Policy decision point for signed resources.

    Holds an immutable policy snapshot and its collaborators; evaluations
    share no mutable state and may run concurrently.
    """

    def __init__(
        self,
        policy: PolicyList,
        store: SignatureStore,
        verifiers: VerifierRegistry,
        *,
        enforcer_namespace: str | None = None,
        policy_namespace: str | None = None,
    ) -> None:
        self._policy = policy
        self._store = store
        self._verifiers = verifiers
        self._rule_store = RuleStore(policy.get_signers())
        self.enforcer_namespace = (
            enforcer_namespace if enforcer_namespace is not None else settings.enforcer_namespace
        )
        self.policy_namespace = (
            policy_namespace if policy_namespace is not None else settings.policy_namespace
        )

    @classmethod
    def from_settings(
        cls,
        store: SignatureStore,
        verifiers: VerifierRegistry,
        config: Settings | None = None,
    ) -> SignPolicyEvaluator:
        """Build an evaluator from the configured policy files."""
        config = config or settings
        return cls(
            load_policies(config.policy_files),
            store,
            verifiers,
            enforcer_namespace=config.enforcer_namespace,
            policy_namespace=config.policy_namespace,
        )

    @property
    def policy(self) -> PolicyList:
        return self._policy

    async def evaluate(self, request: RequestContext) -> SignPolicyEvalResult:
        """Decide whether the request carries an acceptable signature."""
        if not request.kind:
            raise SignPolicyError("request has no kind")

        result = await self._evaluate(request)
        logger.info(
            "%s %s %s/%s: allow=%s signer=%s reason=%s",
            request.operation,
            request.kind,
            request.namespace,
            request.name,
            result.allow,
            result.signer.email if result.signer is not None else "",
            result.reason,
        )
        return result

    async def _evaluate(self, request: RequestContext) -> SignPolicyEvalResult:
        schema_error = self._check_schema(request)
        if schema_error is not None:
            return schema_error

        signature = await self._store.lookup(request.resource_ref(), request)
        if signature is None:
            return _deny(ReasonCode.SIGNATURE_NOT_FOUND, NO_SIGNATURE_REASON)

        try:
            verifier = self._verifiers.get(signature.sign_type)
        except KeyError as exc:
            return _deny(ReasonCode.VERIFICATION_ERROR, exc.args[0], error=exc)

        try:
            verified = await verifier.verify(signature, request)
        except Exception as exc:
            logger.warning("Signature verification failed for %s: %s", request.name, exc)
            return _deny(
                ReasonCode.VERIFICATION_ERROR,
                "Error during signature verification",
                error=exc,
            )

        if verified is None or verified.signer is None:
            detail = verified.error.reason if verified is not None and verified.error else ""
            return _deny(ReasonCode.VERIFICATION_ERROR, f"Failed to verify signature; {detail}")
        signer = verified.signer

        eval_request = make_request_for_eval(request)
        rule_list = self._rule_store.find(eval_request)
        try:
            rule_result = rule_list.evaluate(eval_request, signer)
        except Exception as exc:
            logger.exception("Rule evaluation failed for %s/%s", request.kind, request.name)
            return _deny(ReasonCode.EVALUATOR_FAULT, str(exc), error=exc, signer=signer)

        return SignPolicyEvalResult(
            signer=rule_result.signer,
            signer_name=rule_result.signer_name,
            allow=rule_result.allow,
            checked=rule_result.checked,
            matched_policy=self._describe_match(rule_result),
            error=rule_result.error,
        )

    def _check_schema(self, request: RequestContext) -> SignPolicyEvalResult | None:
        if request.is_policy_request:
            try:
                policy = Policy.model_validate_json(request.raw_object)
            except ValidationError as exc:
                problems = _validation_problems(exc)
            else:
                problems = policy.check(request, self.enforcer_namespace, self.policy_namespace)
            if problems:
                return _deny(
                    ReasonCode.SCHEMA_ERROR,
                    f"Schema Error for {POLICY_KIND}; {'; '.join(problems)}",
                )

        if request.is_signature_request:
            try:
                signature = ResourceSignature.model_validate_json(request.raw_object)
            except ValidationError as exc:
                problems = _validation_problems(exc)
            else:
                problems = signature.check()
            if problems:
                return _deny(
                    ReasonCode.SCHEMA_ERROR,
                    f"Schema Error for {SIGNATURE_KIND}; {'; '.join(problems)}",
                )
        return None

    def _describe_match(self, rule_result: RuleEvalResult) -> str:
        if rule_result.matched_rule is None:
            return ""
        pattern = SignerMatchPattern.from_rule(rule_result.matched_rule)
        policy = self._policy.find_matched_signer_policy(pattern)
        if policy is None:
            return ""
        logger.debug("Matched policy %s/%s", policy.metadata.namespace, policy.metadata.name)
        return policy.describe(pattern)
