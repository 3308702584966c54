"""Signing-policy decision point for admission requests."""

from signpolicy.evaluator import SignPolicyError, SignPolicyEvaluator, make_request_for_eval
from signpolicy.loader import PolicyLoadError, load_policies, load_policy_file
from signpolicy.models import (
    CheckError,
    Operation,
    ReasonCode,
    RequestContext,
    ResourceRef,
    ResourceScope,
    ResourceSignature,
    SignatureType,
    SignerInfo,
    SignItem,
    SignPolicyEvalResult,
)
from signpolicy.pattern import match_pattern
from signpolicy.policy import Policy, PolicyList, PolicyType, RuleStore, SignerMatchPattern
from signpolicy.rules import (
    ResourcePattern,
    Rule,
    RuleEvalResult,
    RuleList,
    RuleType,
    SubjectPattern,
)
from signpolicy.store import InMemorySignatureStore, SignatureStore
from signpolicy.verifier import SignatureVerifyResult, Verifier, VerifierRegistry

__all__ = [
    "CheckError",
    "InMemorySignatureStore",
    "Operation",
    "Policy",
    "PolicyList",
    "PolicyLoadError",
    "PolicyType",
    "ReasonCode",
    "RequestContext",
    "ResourcePattern",
    "ResourceRef",
    "ResourceScope",
    "ResourceSignature",
    "Rule",
    "RuleEvalResult",
    "RuleList",
    "RuleStore",
    "RuleType",
    "SignItem",
    "SignPolicyError",
    "SignPolicyEvalResult",
    "SignPolicyEvaluator",
    "SignatureStore",
    "SignatureType",
    "SignatureVerifyResult",
    "SignerInfo",
    "SignerMatchPattern",
    "SubjectPattern",
    "Verifier",
    "VerifierRegistry",
    "load_policies",
    "load_policy_file",
    "make_request_for_eval",
    "match_pattern",
]
