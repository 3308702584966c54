"""Signature verifier interface and the type-keyed verifier registry."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from pydantic import BaseModel

from signpolicy.models import CheckError, SignatureType, SignerInfo

if TYPE_CHECKING:
    from collections.abc import Mapping

    from signpolicy.models import RequestContext, ResourceSignature

logger = logging.getLogger(__name__)


class SignatureVerifyResult(BaseModel):
    """What a verifier learned about a signature."""

    signer: SignerInfo | None = None
    error: CheckError | None = None


class Verifier(ABC):
    """Cryptographic verification of a resource signature.

    Raise to report a verification error. Returning a result without a
    signer is treated the same way by the evaluator.
    """

    @abstractmethod
    async def verify(
        self, signature: ResourceSignature, request: RequestContext
    ) -> SignatureVerifyResult: ...


class VerifierRegistry:
    """Maps each signature type to the verifier that handles it."""

    def __init__(self, verifiers: Mapping[SignatureType, Verifier] | None = None) -> None:
        self._verifiers: dict[SignatureType, Verifier] = dict(verifiers or {})

    def register(self, sign_type: SignatureType, verifier: Verifier) -> None:
        self._verifiers[sign_type] = verifier
        logger.debug("Registered verifier for %s: %s", sign_type, type(verifier).__name__)

    def get(self, sign_type: SignatureType) -> Verifier:
        """Look up the verifier for a signature type.

        Raises:
            KeyError: If no verifier handles the type.
        """
        verifier = self._verifiers.get(sign_type)
        if verifier is None:
            available = ", ".join(self.types())
            raise KeyError(f"No verifier for signature type '{sign_type}'. Available: {available}")
        return verifier

    def types(self) -> list[SignatureType]:
        return sorted(self._verifiers)
