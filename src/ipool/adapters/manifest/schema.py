"""Pydantic models describing resource manifest documents.

Field names follow the camelCase spelling of the resource definitions, e.g.::

    {"kind": "Pool", "metadata": {"name": "lab"},
     "spec": {"addresses": ["10.0.0.0/30"], "avoidBuggyIPs": true}}
"""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator

from ipool.domain.addresses import normalize_address


def _blank_to_none(value: object) -> object:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


class ManifestBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class MetadataPayload(ManifestBaseModel):
    name: str = Field(min_length=1)
    namespace: str | None = None

    _normalize_namespace = field_validator("namespace", mode="before")(_blank_to_none)

    @field_validator("name")
    @classmethod
    def _reject_separator(cls, value: str) -> str:
        if "/" in value:
            raise ValueError("name must not contain '/'")
        return value


class PoolSpecPayload(ManifestBaseModel):
    addresses: list[str] = Field(min_length=1)
    avoid_buggy: bool = Field(default=False, alias="avoidBuggyIPs")
    avoid_gateway: bool = Field(default=False, alias="avoidGatewayIPs")
    exclude: list[str] = Field(default_factory=list[str], alias="filterIPs")
    assign_to_namespace: bool = Field(default=False, alias="assignToNamespace")

    @field_validator("exclude")
    @classmethod
    def _normalize_exclude(cls, value: list[str]) -> list[str]:
        return [normalize_address(item) for item in value]


class AddressRequestSpecPayload(ManifestBaseModel):
    pool_name: str = Field(min_length=1, alias="poolName")
    wanted_address: str | None = Field(default=None, alias="wantedAddress")
    update_namespace: bool = Field(default=False, alias="updateNamespace")

    @field_validator("wanted_address", mode="before")
    @classmethod
    def _normalize_wanted(cls, value: object) -> object:
        value = _blank_to_none(value)
        if isinstance(value, str):
            return normalize_address(value)
        return value


class PoolDocument(ManifestBaseModel):
    kind: Literal["Pool"]
    metadata: MetadataPayload
    spec: PoolSpecPayload


class AddressRequestDocument(ManifestBaseModel):
    kind: Literal["AddressRequest"]
    metadata: MetadataPayload
    spec: AddressRequestSpecPayload


ManifestDocument = Annotated[PoolDocument | AddressRequestDocument, Field(discriminator="kind")]

MANIFEST_LIST_ADAPTER: TypeAdapter[list[ManifestDocument]] = TypeAdapter(list[ManifestDocument])
