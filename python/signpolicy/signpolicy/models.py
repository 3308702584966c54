"""Signing-policy data models."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

API_GROUP = "apis.integrityverifier.io"
POLICY_KIND = "SignPolicy"
SIGNATURE_KIND = "ResourceSignature"


class ResourceScope(StrEnum):
    """Whether the requested resource lives in a namespace."""

    NAMESPACED = "Namespaced"
    CLUSTER = "Cluster"


class Operation(StrEnum):
    """Admission operation carried by the request."""

    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    CONNECT = "CONNECT"


class SignatureType(StrEnum):
    """Signature formats a verifier can be registered for."""

    PGP = "pgp"
    X509 = "x509"


class ReasonCode(StrEnum):
    """Why an evaluation ended in a denial."""

    SCHEMA_ERROR = "schema_error"
    SIGNATURE_NOT_FOUND = "signature_not_found"
    VERIFICATION_ERROR = "verification_error"
    NO_MATCHING_RULE = "no_matching_rule"
    DENIED_BY_RULE = "denied_by_rule"
    EVALUATOR_FAULT = "evaluator_fault"


class ResourceRef(BaseModel):
    """Identity of a single resource, used as the signature lookup key."""

    model_config = ConfigDict(frozen=True)

    api_version: str = ""
    kind: str
    name: str
    namespace: str = ""


class RequestContext(BaseModel):
    """An admission request under evaluation.

    Instances are frozen. Use :meth:`derive` to obtain a copy with a
    different namespace.
    """

    model_config = ConfigDict(frozen=True)

    api_group: str = ""
    api_version: str = ""
    kind: str = ""
    name: str = ""
    namespace: str = ""
    resource_scope: ResourceScope = ResourceScope.NAMESPACED
    operation: Operation = Operation.CREATE
    raw_object: bytes = b""
    user_name: str = ""
    user_groups: tuple[str, ...] = ()
    dry_run: bool = False

    @classmethod
    def derive(cls, original: RequestContext, *, namespace: str) -> RequestContext:
        """Build a new context equal to ``original`` except for its namespace."""
        return original.model_copy(update={"namespace": namespace})

    @property
    def group_version(self) -> str:
        if self.api_group:
            return f"{self.api_group}/{self.api_version}"
        return self.api_version

    @property
    def is_policy_request(self) -> bool:
        return self.kind == POLICY_KIND and self.api_group == API_GROUP

    @property
    def is_signature_request(self) -> bool:
        return self.kind == SIGNATURE_KIND and self.api_group == API_GROUP

    def resource_ref(self) -> ResourceRef:
        return ResourceRef(
            api_version=self.group_version,
            kind=self.kind,
            name=self.name,
            namespace=self.namespace,
        )


class SignerInfo(BaseModel):
    """Signer identity extracted by signature verification.

    Absent attributes are empty strings.
    """

    model_config = ConfigDict(frozen=True)

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


# ── Resource signature custom object ─────────────────────────────


class ObjectMeta(BaseModel):
    """The subset of object metadata the engine reads."""

    name: str = ""
    namespace: str = ""
    labels: dict[str, str] = {}


class SignItem(BaseModel):
    """One target resource attested by a resource signature."""

    model_config = ConfigDict(populate_by_name=True)

    api_version: str = Field(default="", alias="apiVersion")
    kind: str = ""
    metadata: ObjectMeta = Field(default_factory=ObjectMeta)
    message: str = ""
    signature: str = ""
    certificate: str = ""

    def ref(self) -> ResourceRef:
        return ResourceRef(
            api_version=self.api_version,
            kind=self.kind,
            name=self.metadata.name,
            namespace=self.metadata.namespace,
        )

    def matches(self, ref: ResourceRef) -> bool:
        """Check whether this item attests to the referenced resource."""
        if self.api_version and ref.api_version and self.api_version != ref.api_version:
            return False
        return (
            self.kind == ref.kind
            and self.metadata.name == ref.name
            and self.metadata.namespace == ref.namespace
        )


class ResourceSignatureSpec(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    sign_type: SignatureType = Field(default=SignatureType.PGP, alias="signType")
    data: list[SignItem] = []


class ResourceSignature(BaseModel):
    """Detached signature envelope bound to one or more target resources."""

    model_config = ConfigDict(populate_by_name=True)

    api_version: str = Field(default=f"{API_GROUP}/v1alpha1", alias="apiVersion")
    kind: str = SIGNATURE_KIND
    metadata: ObjectMeta = Field(default_factory=ObjectMeta)
    spec: ResourceSignatureSpec = Field(default_factory=ResourceSignatureSpec)

    @property
    def sign_type(self) -> SignatureType:
        return self.spec.sign_type

    def find_item(self, ref: ResourceRef) -> SignItem | None:
        """Return the item attesting to ``ref``, if any."""
        for item in self.spec.data:
            if item.matches(ref):
                return item
        return None

    def check(self) -> list[str]:
        """Structural checks run before the object is admitted.

        Returns a list of problems; an empty list means the object is valid.
        """
        problems: list[str] = []
        if not self.spec.data:
            problems.append("spec.data must contain at least one signed resource")
        for i, item in enumerate(self.spec.data):
            if not item.kind:
                problems.append(f"spec.data[{i}].kind is required")
            if not item.metadata.name:
                problems.append(f"spec.data[{i}].metadata.name is required")
            if not item.signature:
                problems.append(f"spec.data[{i}].signature is required")
            if not item.message:
                problems.append(f"spec.data[{i}].message is required")
        return problems


# ── Results ──────────────────────────────────────────────────────


class CheckError(BaseModel):
    """A denial reason, optionally carrying the exception behind it."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    reason_code: ReasonCode
    reason: str
    error: Exception | None = Field(default=None, exclude=True)


class SignPolicyEvalResult(BaseModel):
    """Outward-facing admission decision for one request."""

    signer: SignerInfo | None = None
    signer_name: str = ""
    allow: bool
    checked: bool = True
    matched_policy: str = ""
    error: CheckError | None = None

    @property
    def reason(self) -> str:
        return self.error.reason if self.error is not None else ""

    def message(self) -> str:
        """Human-readable message for the admission response."""
        if self.error is not None:
            return self.error.reason
        if self.allow and self.matched_policy:
            return f"allowed by {self.matched_policy}"
        return "allowed" if self.allow else "denied"
