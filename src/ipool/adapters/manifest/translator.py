"""Translate manifest documents into domain resources and back."""

from __future__ import annotations

import json
from logging import getLogger
from typing import TYPE_CHECKING, Any, cast

from pydantic import ValidationError as PydanticValidationError

from ipool.domain.errors import IpoolError
from ipool.domain.model import (
    DEFAULT_NAMESPACE,
    AddressRequest,
    AddressRequestSpec,
    ObjectMeta,
    Pool,
    PoolSpec,
)

from .schema import MANIFEST_LIST_ADAPTER, AddressRequestDocument, PoolDocument

if TYPE_CHECKING:
    from pathlib import Path

    from ipool.domain.model import Resource

    from .schema import ManifestDocument

log = getLogger(__name__)


class ManifestError(IpoolError):
    """Raised when a manifest cannot be read or does not validate."""


def parse_documents(payload: object) -> list[ManifestDocument]:
    """Validate one document or a list of documents."""

    items = cast(list[Any], payload) if isinstance(payload, list) else [payload]
    try:
        return MANIFEST_LIST_ADAPTER.validate_python(items)
    except PydanticValidationError as exc:
        raise ManifestError(f"invalid manifest: {exc}") from exc


def load_documents(path: Path) -> list[ManifestDocument]:
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ManifestError(f"cannot read manifest {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise ManifestError(f"manifest {path} is not valid JSON: {exc}") from exc
    documents = parse_documents(payload)
    log.debug("Loaded %d documents from %s", len(documents), path)
    return documents


def to_domain(document: ManifestDocument) -> Resource:
    match document:
        case PoolDocument(metadata=metadata, spec=spec):
            if metadata.namespace is not None:
                log.warning("Ignoring namespace of cluster-scoped pool %s", metadata.name)
            return Pool(
                meta=ObjectMeta(name=metadata.name),
                spec=PoolSpec(
                    addresses=list(spec.addresses),
                    avoid_buggy=spec.avoid_buggy,
                    avoid_gateway=spec.avoid_gateway,
                    exclude=list(spec.exclude),
                    assign_to_namespace=spec.assign_to_namespace,
                ),
            )
        case AddressRequestDocument(metadata=metadata, spec=spec):
            return AddressRequest(
                meta=ObjectMeta(
                    name=metadata.name,
                    namespace=metadata.namespace or DEFAULT_NAMESPACE,
                ),
                spec=AddressRequestSpec(
                    pool_name=spec.pool_name,
                    wanted_address=spec.wanted_address,
                    update_namespace=spec.update_namespace,
                ),
            )


def load_resources(path: Path) -> list[Resource]:
    return [to_domain(document) for document in load_documents(path)]


def to_document(resource: Resource) -> dict[str, object]:
    """Render a stored resource, status included, in manifest spelling."""

    match resource:
        case Pool(meta=meta, spec=spec, status=status):
            return {
                "kind": resource.KIND.value,
                "metadata": _metadata(meta),
                "spec": {
                    "addresses": list(spec.addresses),
                    "avoidBuggyIPs": spec.avoid_buggy,
                    "avoidGatewayIPs": spec.avoid_gateway,
                    "filterIPs": list(spec.exclude),
                    "assignToNamespace": spec.assign_to_namespace,
                },
                "status": {
                    "phase": status.phase.value if status.phase else None,
                    "reason": status.reason,
                    "lastUpdateTime": status.last_update.isoformat()
                    if status.last_update
                    else None,
                    "allocatedIPs": status.allocated,
                    "capacity": status.capacity,
                    "allocatable": status.allocatable,
                    "observedGeneration": status.observed_generation,
                },
            }
        case AddressRequest(meta=meta, spec=spec, status=status):
            return {
                "kind": resource.KIND.value,
                "metadata": _metadata(meta),
                "spec": {
                    "poolName": spec.pool_name,
                    "wantedAddress": spec.wanted_address,
                    "updateNamespace": spec.update_namespace,
                },
                "status": {
                    "phase": status.phase.value if status.phase else None,
                    "reason": status.reason,
                    "lastUpdateTime": status.last_update.isoformat()
                    if status.last_update
                    else None,
                    "address": status.address,
                    "poolName": status.pool_name,
                    "observedGeneration": status.observed_generation,
                },
            }


def _metadata(meta: ObjectMeta) -> dict[str, object]:
    data: dict[str, object] = {"name": meta.name}
    if meta.namespace is not None:
        data["namespace"] = meta.namespace
    data["resourceVersion"] = meta.resource_version
    data["generation"] = meta.generation
    data["finalizers"] = list(meta.finalizers)
    if meta.deletion_requested:
        data["deletionRequested"] = True
    return data
