# Copyright (c) 2025-2026 OptimNow. All Rights Reserved.
# Licensed under the Apache License, Version 2.0.
# See LICENSE file in the project root for full license information.

"""Search tag matching for discovered resources."""

from typing import TYPE_CHECKING, Iterable

if TYPE_CHECKING:
    from ..models.job import SearchTag
    from ..models.resource import Tag


def matches_search_tags(tags: Iterable["Tag"], search_tags: Iterable["SearchTag"]) -> bool:
    """
    Check whether a tag set satisfies a job's search tag constraints.

    Every constraint must be satisfied by at least one tag with the same key
    whose value matches the constraint's pattern. An empty constraint set
    matches every resource.

    Args:
        tags: Tags carried by the resource
        search_tags: Constraints configured on the discovery job

    Returns:
        True if all constraints are satisfied, False otherwise
    """
    tags = list(tags)
    for search_tag in search_tags:
        if not any(
            tag.key == search_tag.key and search_tag.matches(tag.value)
            for tag in tags
        ):
            return False
    return True
