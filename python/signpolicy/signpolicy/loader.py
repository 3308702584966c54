"""Load signing policies from YAML or JSON files."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml
from pydantic import ValidationError

from signpolicy.models import POLICY_KIND
from signpolicy.policy import Policy, PolicyList

if TYPE_CHECKING:
    from collections.abc import Iterable

logger = logging.getLogger(__name__)


class PolicyLoadError(Exception):
    """Raised when a policy file cannot be read or parsed."""

    def __init__(self, path: str | Path, detail: str) -> None:
        self.path = str(path)
        self.detail = detail
        super().__init__(f"Failed to load policy file {self.path}: {detail}")


def _documents(path: Path) -> list[Any]:
    text = path.read_text(encoding="utf-8")
    if path.suffix == ".json":
        doc = json.loads(text)
        return doc if isinstance(doc, list) else [doc]
    docs: list[Any] = []
    for doc in yaml.safe_load_all(text):
        if doc is None:
            continue
        if isinstance(doc, list):
            docs.extend(doc)
        else:
            docs.append(doc)
    return docs


def load_policy_file(path: str | Path) -> list[Policy]:
    """Parse every policy object in a file, preserving document order.

    Documents of another kind are skipped.
    """
    path = Path(path)
    try:
        docs = _documents(path)
    except (OSError, json.JSONDecodeError, yaml.YAMLError) as exc:
        raise PolicyLoadError(path, str(exc)) from exc

    policies: list[Policy] = []
    for i, doc in enumerate(docs):
        if not isinstance(doc, dict) or doc.get("kind") != POLICY_KIND:
            kind = doc.get("kind") if isinstance(doc, dict) else type(doc).__name__
            logger.warning(
                "Skipping document %d in %s: kind %r is not %s", i, path, kind, POLICY_KIND
            )
            continue
        try:
            policies.append(Policy.model_validate(doc))
        except ValidationError as exc:
            raise PolicyLoadError(path, f"document {i}: {exc}") from exc

    logger.info("Loaded %d policies from %s", len(policies), path)
    return policies


def load_policies(paths: Iterable[str | Path]) -> PolicyList:
    """Load several policy files into one ordered snapshot."""
    policies: list[Policy] = []
    for path in paths:
        policies.extend(load_policy_file(path))
    return PolicyList(policies)
