"""Tests for signing-policy data models."""

import json

import pytest
from pydantic import ValidationError
from signpolicy.models import (
    API_GROUP,
    CheckError,
    Operation,
    ReasonCode,
    RequestContext,
    ResourceRef,
    ResourceScope,
    ResourceSignature,
    SignatureType,
    SignerInfo,
    SignPolicyEvalResult,
)


def _signature_doc(**item_overrides: object) -> dict:
    item = {
        "apiVersion": "v1",
        "kind": "ConfigMap",
        "metadata": {"name": "app-config", "namespace": "prod"},
        "message": "bWVzc2FnZQ==",
        "signature": "c2lnbmF0dXJl",
    }
    item.update(item_overrides)
    return {
        "apiVersion": f"{API_GROUP}/v1alpha1",
        "kind": "ResourceSignature",
        "metadata": {"name": "rsig-app-config", "namespace": "sig-ns"},
        "spec": {"signType": "pgp", "data": [item]},
    }


# ── RequestContext ──────────────────────────────────────────────


def test_request_defaults() -> None:
    req = RequestContext(kind="ConfigMap")
    assert req.resource_scope == ResourceScope.NAMESPACED
    assert req.operation == Operation.CREATE
    assert req.user_groups == ()
    assert req.dry_run is False


def test_request_is_frozen() -> None:
    req = RequestContext(kind="ConfigMap", namespace="prod")
    with pytest.raises(ValidationError):
        req.namespace = "other"  # type: ignore[misc]


def test_unknown_operation_rejected() -> None:
    with pytest.raises(ValidationError):
        RequestContext(kind="ConfigMap", operation="PATCH")


def test_group_version_core_group() -> None:
    req = RequestContext(api_version="v1", kind="ConfigMap")
    assert req.group_version == "v1"


def test_group_version_named_group() -> None:
    req = RequestContext(api_group="apps", api_version="v1", kind="Deployment")
    assert req.group_version == "apps/v1"


def test_resource_ref() -> None:
    req = RequestContext(api_version="v1", kind="ConfigMap", name="app-config", namespace="prod")
    assert req.resource_ref() == ResourceRef(
        api_version="v1", kind="ConfigMap", name="app-config", namespace="prod"
    )


def test_derive_overrides_only_namespace() -> None:
    req = RequestContext(
        api_group=API_GROUP,
        api_version="v1alpha1",
        kind="ResourceSignature",
        name="rsig",
        namespace="sig-ns",
        user_name="alice",
        user_groups=("dev",),
        raw_object=b"{}",
    )
    derived = RequestContext.derive(req, namespace="prod")
    assert derived.namespace == "prod"
    assert req.namespace == "sig-ns"
    assert derived.model_dump(exclude={"namespace"}) == req.model_dump(exclude={"namespace"})


def test_derive_same_namespace_is_equal() -> None:
    req = RequestContext(kind="ConfigMap", name="a", namespace="prod")
    assert RequestContext.derive(req, namespace="prod") == req


def test_kind_predicates_require_api_group() -> None:
    assert RequestContext(api_group=API_GROUP, kind="SignPolicy").is_policy_request
    assert RequestContext(api_group=API_GROUP, kind="ResourceSignature").is_signature_request
    assert not RequestContext(api_group="other.io", kind="SignPolicy").is_policy_request
    assert not RequestContext(kind="ConfigMap").is_signature_request


# ── ResourceSignature ───────────────────────────────────────────


def test_signature_parses_custom_object() -> None:
    sig = ResourceSignature.model_validate(_signature_doc())
    assert sig.sign_type == SignatureType.PGP
    assert sig.metadata.namespace == "sig-ns"
    assert sig.spec.data[0].metadata.namespace == "prod"
    assert sig.spec.data[0].api_version == "v1"


def test_signature_find_item() -> None:
    sig = ResourceSignature.model_validate(_signature_doc())
    ref = ResourceRef(api_version="v1", kind="ConfigMap", name="app-config", namespace="prod")
    assert sig.find_item(ref) is sig.spec.data[0]
    other = ResourceRef(api_version="v1", kind="ConfigMap", name="app-config", namespace="dev")
    assert sig.find_item(other) is None


def test_signature_item_without_api_version_matches_any_version() -> None:
    sig = ResourceSignature.model_validate(_signature_doc(apiVersion=""))
    ref = ResourceRef(api_version="v1", kind="ConfigMap", name="app-config", namespace="prod")
    assert sig.find_item(ref) is not None


def test_valid_signature_has_no_problems() -> None:
    sig = ResourceSignature.model_validate(_signature_doc())
    assert sig.check() == []


def test_signature_without_items_is_invalid() -> None:
    doc = _signature_doc()
    doc["spec"]["data"] = []
    problems = ResourceSignature.model_validate(doc).check()
    assert problems == ["spec.data must contain at least one signed resource"]


def test_signature_item_missing_fields() -> None:
    sig = ResourceSignature.model_validate(_signature_doc(signature="", kind=""))
    problems = sig.check()
    assert "spec.data[0].kind is required" in problems
    assert "spec.data[0].signature is required" in problems


def test_unknown_sign_type_rejected() -> None:
    doc = _signature_doc()
    doc["spec"]["signType"] = "rot13"
    with pytest.raises(ValidationError):
        ResourceSignature.model_validate_json(json.dumps(doc))


# ── Results ─────────────────────────────────────────────────────


def test_signer_defaults_to_empty_fields() -> None:
    signer = SignerInfo(email="bob@co.com")
    assert signer.organization == ""
    assert signer.common_name == ""


def test_check_error_keeps_cause_out_of_dump() -> None:
    cause = RuntimeError("bad certificate")
    err = CheckError(reason_code=ReasonCode.VERIFICATION_ERROR, reason="failed", error=cause)
    assert err.error is cause
    assert "error" not in err.model_dump()


def test_eval_result_message() -> None:
    denied = SignPolicyEvalResult(
        allow=False,
        error=CheckError(reason_code=ReasonCode.SIGNATURE_NOT_FOUND, reason="No signature found"),
    )
    assert denied.reason == "No signature found"
    assert denied.message() == "No signature found"

    allowed = SignPolicyEvalResult(allow=True, matched_policy="ns/p [SignerPolicy]")
    assert allowed.reason == ""
    assert allowed.message() == "allowed by ns/p [SignerPolicy]"
