# Copyright (c) 2025-2026 OptimNow. All Rights Reserved.
# Licensed under the Apache License, Version 2.0.
# See LICENSE file in the project root for full license information.

"""Tagged AWS resource data model."""

from typing import TYPE_CHECKING, Iterable

from pydantic import BaseModel, ConfigDict, Field

from ..utils.tag_matcher import matches_search_tags

if TYPE_CHECKING:
    from .job import SearchTag


class Tag(BaseModel):
    """A single key/value tag."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    key: str = Field(..., alias="Key")
    value: str = Field(..., alias="Value")


class TaggedResource(BaseModel):
    """Represents a discovered AWS resource with its tags.

    Built by the tagging client (or an extension hook) and never mutated
    afterwards; metric collection and export only read it.
    """

    model_config = ConfigDict(frozen=True)

    arn: str = Field(..., description="Resource ARN, unique per account and region")
    namespace: str = Field(..., description="Service namespace the resource was discovered for")
    region: str = Field(..., description="AWS region where the resource is located")
    tags: list[Tag] = Field(default_factory=list, description="Tags attached to the resource")

    def filter_through_tags(self, search_tags: Iterable["SearchTag"]) -> bool:
        """Return True if the resource satisfies every search tag constraint."""
        return matches_search_tags(self.tags, search_tags)

    def metric_tags(self, exported_tag_keys: Iterable[str]) -> list[Tag]:
        """
        Project the resource's tags onto the keys exported with its metrics.

        Keys the resource does not carry are exported with an empty value so
        every metric of a job has the same label set.
        """
        by_key = {tag.key: tag.value for tag in self.tags}
        return [Tag(key=key, value=by_key.get(key, "")) for key in exported_tag_keys]
