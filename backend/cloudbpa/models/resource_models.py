"""
Resource Models

Normalized cloud resource records as produced by the resource inventory
provider. Resources are immutable input to an analysis run.
"""

from typing import Any, Dict, NamedTuple

from pydantic import Field

from .base import EngineModel


class ResourceIdentity(NamedTuple):
    """Identity of a resource across analysis runs."""

    account_id: str
    resource_type: str
    resource_id: str

    def __str__(self) -> str:
        return f"{self.account_id}/{self.resource_type}/{self.resource_id}"


class Resource(EngineModel):
    """
    One discovered cloud resource.

    Identity is ``(account_id, resource_type, resource_id)``; region, tags
    and configuration are attributes of that identity at discovery time.
    """

    resource_id: str = Field(..., min_length=1, description="Provider resource identifier")
    resource_type: str = Field(..., min_length=1, description="Provider resource type, e.g. AWS::S3::Bucket")
    account_id: str = Field("", description="Owning account")
    region: str = Field("", description="Region the resource lives in")
    configuration: Dict[str, Any] = Field(default_factory=dict, description="Normalized configuration")
    tags: Dict[str, str] = Field(default_factory=dict, description="Resource tags")

    @property
    def identity(self) -> ResourceIdentity:
        return ResourceIdentity(self.account_id, self.resource_type, self.resource_id)
