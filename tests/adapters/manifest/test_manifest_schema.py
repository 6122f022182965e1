from __future__ import annotations

import pytest
from pydantic import ValidationError

from ipool.adapters.manifest import AddressRequestDocument, PoolDocument
from ipool.adapters.manifest.schema import MANIFEST_LIST_ADAPTER


def test_pool_document_reads_camel_case_fields() -> None:
    document = PoolDocument.model_validate(
        {
            "kind": "Pool",
            "metadata": {"name": "lab"},
            "spec": {
                "addresses": ["10.0.0.0/30"],
                "avoidBuggyIPs": True,
                "filterIPs": [" 10.0.0.2 "],
                "unknownField": "ignored",
            },
        }
    )

    assert document.spec.avoid_buggy is True
    assert document.spec.avoid_gateway is False
    assert document.spec.exclude == ["10.0.0.2"]


def test_pool_document_requires_addresses() -> None:
    with pytest.raises(ValidationError):
        PoolDocument.model_validate(
            {"kind": "Pool", "metadata": {"name": "lab"}, "spec": {"addresses": []}}
        )


def test_invalid_excluded_address_is_rejected() -> None:
    with pytest.raises(ValidationError):
        PoolDocument.model_validate(
            {
                "kind": "Pool",
                "metadata": {"name": "lab"},
                "spec": {"addresses": ["10.0.0.0/30"], "filterIPs": ["10.0.0"]},
            }
        )


def test_request_document_normalizes_wanted_address() -> None:
    document = AddressRequestDocument.model_validate(
        {
            "kind": "AddressRequest",
            "metadata": {"name": "web", "namespace": "  "},
            "spec": {"poolName": "lab", "wantedAddress": ""},
        }
    )

    assert document.metadata.namespace is None
    assert document.spec.wanted_address is None


def test_metadata_name_must_not_contain_separator() -> None:
    with pytest.raises(ValidationError):
        AddressRequestDocument.model_validate(
            {
                "kind": "AddressRequest",
                "metadata": {"name": "team/web"},
                "spec": {"poolName": "lab"},
            }
        )


def test_list_adapter_dispatches_on_kind() -> None:
    documents = MANIFEST_LIST_ADAPTER.validate_python(
        [
            {"kind": "Pool", "metadata": {"name": "lab"}, "spec": {"addresses": ["10.0.0.0/30"]}},
            {"kind": "AddressRequest", "metadata": {"name": "a"}, "spec": {"poolName": "lab"}},
        ]
    )

    assert isinstance(documents[0], PoolDocument)
    assert isinstance(documents[1], AddressRequestDocument)


def test_list_adapter_rejects_unknown_kind() -> None:
    with pytest.raises(ValidationError):
        MANIFEST_LIST_ADAPTER.validate_python([{"kind": "Service", "metadata": {"name": "x"}}])
