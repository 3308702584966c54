"""Signature store interface and an in-memory implementation."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from signpolicy.models import RequestContext, ResourceRef, ResourceSignature

logger = logging.getLogger(__name__)


class SignatureStore(ABC):
    """Resolves the signature bound to a resource.

    Implementations must return the most recently stored signature for the
    resource, or None when there is none. Absence is not an error.
    """

    @abstractmethod
    async def lookup(
        self, ref: ResourceRef, request: RequestContext
    ) -> ResourceSignature | None: ...


class InMemorySignatureStore(SignatureStore):
    """Signature store backed by a dict, keyed by each attested resource."""

    def __init__(self, signatures: list[ResourceSignature] | None = None) -> None:
        self._index: dict[ResourceRef, ResourceSignature] = {}
        for sig in signatures or []:
            self.add(sig)

    def add(self, signature: ResourceSignature) -> None:
        """Index a signature under every resource it attests to.

        A later signature for the same resource replaces the earlier one.
        """
        for item in signature.spec.data:
            ref = item.ref()
            self._index.pop(ref, None)
            self._index[ref] = signature
        logger.debug(
            "Stored signature %s/%s covering %d resources",
            signature.metadata.namespace,
            signature.metadata.name,
            len(signature.spec.data),
        )

    def __len__(self) -> int:
        return len(self._index)

    async def lookup(
        self, ref: ResourceRef, request: RequestContext
    ) -> ResourceSignature | None:
        # Newest entries sit at the end; items without apiVersion match any version.
        for sig in reversed(list(self._index.values())):
            if sig.find_item(ref) is not None:
                return sig
        return None
