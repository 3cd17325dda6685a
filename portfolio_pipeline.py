"""
portfolio_pipeline.py
---------------------
Portfolio Listing - Aggregation Pipeline Builder

Responsibility:
- Compose the ordered stages that turn a portfolio filter into
  denormalized, sorted, paginated view records
- Attach like counts, tech stack colors and the job group label

Stage order:
- likes are counted BEFORE techStack is unwound
- rows are grouped back to one per portfolio BEFORE sorting
- scalar fields are collapsed with $first and must be identical on every
  unwound row of the same portfolio

NO I/O
NO database access
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import BaseModel

from pipeline_stages import (
    CountStage,
    ExpandStage,
    FilterStage,
    GroupStage,
    JoinStage,
    LimitStage,
    ProjectStage,
    SkipStage,
    SortStage,
    Stage,
    to_mongo_pipeline,
)

logger = logging.getLogger(__name__)

# ------------------------------
# Collections
# ------------------------------

PORTFOLIOS_COLLECTION = "portfolios"
LIKES_COLLECTION = "likes"
TECH_STACKS_COLLECTION = "techstacks"
JOB_GROUPS_COLLECTION = "jobgroups"

# ------------------------------
# Listing defaults
# ------------------------------

SORT_LATEST = "latest"
SORT_POPULAR = "popular"
SORT_CHOICES = (SORT_LATEST, SORT_POPULAR)

DEFAULT_LIMIT = 15

# Identical on every row of a portfolio, collapsed with "first value wins"
SCALAR_FIELDS = (
    "title",
    "contents",
    "view",
    "images",
    "tags",
    "createdAt",
    "thumbnailImage",
    "userID",
    "likeCount",
    "jobGroup",
)

TECH_STACK_ENTRY = {
    "skill": "techStackInfo.skill",
    "bgColor": "techStackInfo.bgColor",
    "textColor": "techStackInfo.textColor",
    "jobCode": "techStackInfo.jobCode",
}

VIEW_FIELDS = (
    "_id",
    "title",
    "contents",
    "view",
    "images",
    "tags",
    "techStack",
    "createdAt",
    "thumbnailImage",
    "userID",
    "likeCount",
)


class ListingOptions(BaseModel):
    """
    Sort and window options for a portfolio listing.

    Any sort other than "popular" (None included) orders by newest first.
    A skip or limit that is None, zero or less leaves that stage out.
    """

    sort: Optional[str] = SORT_LATEST
    skip: Optional[int] = 0
    limit: Optional[int] = DEFAULT_LIMIT


def _sort_stage(sort: Optional[str]) -> SortStage:
    if sort == SORT_POPULAR:
        return SortStage(keys=(("likeCount", -1), ("createdAt", -1)))
    return SortStage(keys=(("createdAt", -1),))


def build_portfolio_pipeline(
    match_criteria: Optional[Dict[str, Any]] = None,
    options: Union[ListingOptions, Mapping[str, Any], None] = None,
) -> List[Stage]:
    """
    Build the typed stage sequence for a portfolio listing.

    Args:
        match_criteria: MongoDB filter on the portfolios collection,
            passed through untouched. None or {} selects everything.
        options: ListingOptions or a mapping with sort / skip / limit

    Returns:
        Ordered list of stages
    """
    if options is None:
        options = ListingOptions()
    elif not isinstance(options, ListingOptions):
        options = ListingOptions.model_validate(dict(options))

    stages: List[Stage] = [
        FilterStage(criteria=match_criteria or {}),
        JoinStage(
            from_collection=LIKES_COLLECTION,
            local_field="_id",
            foreign_field="portfolioID",
            as_field="likes",
        ),
        CountStage(source_field="likes", target_field="likeCount"),
        ExpandStage(path="techStack"),
        JoinStage(
            from_collection=TECH_STACKS_COLLECTION,
            local_field="techStack",
            foreign_field="skill",
            as_field="techStackInfo",
        ),
        ExpandStage(path="techStackInfo"),
        GroupStage(
            key="_id",
            first_fields=SCALAR_FIELDS,
            push_fields={"techStack": TECH_STACK_ENTRY},
        ),
        JoinStage(
            from_collection=JOB_GROUPS_COLLECTION,
            local_field="jobGroup",
            foreign_field="_id",
            as_field="jobGroupInfo",
            fields=("job",),
        ),
        ExpandStage(path="jobGroupInfo"),
        ProjectStage(include=VIEW_FIELDS, renamed={"jobGroup": "jobGroupInfo.job"}),
        _sort_stage(options.sort),
    ]

    if options.skip is not None and options.skip > 0:
        stages.append(SkipStage(count=options.skip))
    if options.limit is not None and options.limit > 0:
        stages.append(LimitStage(count=options.limit))

    logger.debug(
        "[PORTFOLIO_PIPELINE] sort=%s skip=%s limit=%s stages=%d",
        options.sort, options.skip, options.limit, len(stages)
    )
    return stages


def create_portfolio_pipeline(
    match_criteria: Optional[Dict[str, Any]] = None,
    options: Union[ListingOptions, Mapping[str, Any], None] = None,
) -> List[Dict[str, Any]]:
    """
    Same as build_portfolio_pipeline, rendered for pymongo's aggregate().
    """
    return to_mongo_pipeline(build_portfolio_pipeline(match_criteria, options))
