"""
portfolio_repository.py
-----------------------
Portfolio Listing - Portfolio Repository

Responsibility:
- Run the portfolio listing pipeline against MongoDB
- Count matching portfolios and attach page metadata
- Provide clean, JSON-safe retrieval methods

Read-only: nothing here writes to the database.
"""

import logging
import re
from typing import Any, Dict, List, Optional

from bson import ObjectId
from bson.errors import InvalidId
from pymongo.errors import PyMongoError

from db import db
from pagination import create_pagination_metadata
from portfolio_pipeline import (
    DEFAULT_LIMIT,
    PORTFOLIOS_COLLECTION,
    SORT_LATEST,
    ListingOptions,
    create_portfolio_pipeline,
)

logger = logging.getLogger(__name__)

portfolios_collection = db[PORTFOLIOS_COLLECTION]


class QueryExecutionError(RuntimeError):
    """Raised when MongoDB fails to run a listing query."""


# ------------------------------
# Helpers
# ------------------------------

def _to_object_id(value: Any, name: str) -> ObjectId:
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        raise ValueError(f"{name} is not a valid id: {value!r}")


def _serialize_portfolio(doc: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """
    Convert an aggregated portfolio view to a JSON-safe dict.
    """
    if not doc:
        return None

    doc = dict(doc)
    doc["_id"] = str(doc["_id"])

    if "userID" in doc and isinstance(doc["userID"], ObjectId):
        doc["userID"] = str(doc["userID"])

    # Convert datetime objects to ISO format strings
    if "createdAt" in doc and hasattr(doc["createdAt"], "isoformat"):
        doc["createdAt"] = doc["createdAt"].isoformat()

    return doc


def _run(pipeline: List[Dict[str, Any]], match_criteria: Dict[str, Any], count: bool = True):
    try:
        docs = list(portfolios_collection.aggregate(pipeline))
        total = portfolios_collection.count_documents(match_criteria) if count else len(docs)
    except PyMongoError as e:
        logger.error(f"[PORTFOLIO_QUERY] Aggregation failed: {e}")
        raise QueryExecutionError(f"Portfolio query failed: {e}") from e
    return docs, total


# ------------------------------
# Filters
# ------------------------------

def build_portfolio_filter(
    job_group: Optional[str] = None,
    user_id: Optional[str] = None,
    tag: Optional[str] = None,
    keyword: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Build a portfolios filter from optional listing parameters.

    Args:
        job_group: JobGroup ObjectId as string
        user_id: Owner ObjectId as string
        tag: Exact tag the portfolio must carry
        keyword: Case-insensitive substring of the title

    Raises:
        ValueError: If job_group or user_id is not a valid ObjectId
    """
    criteria: Dict[str, Any] = {}

    if job_group:
        criteria["jobGroup"] = _to_object_id(job_group, "jobGroup")
    if user_id:
        criteria["userID"] = _to_object_id(user_id, "userID")
    if tag:
        criteria["tags"] = tag
    if keyword and keyword.strip():
        criteria["title"] = {"$regex": re.escape(keyword.strip()), "$options": "i"}

    return criteria


# ------------------------------
# Read
# ------------------------------

def list_portfolios(
    match_criteria: Optional[Dict[str, Any]] = None,
    sort: str = SORT_LATEST,
    page: int = 1,
    limit: int = DEFAULT_LIMIT,
) -> Dict[str, Any]:
    """
    List one page of portfolio views with pagination metadata.

    Args:
        match_criteria: MongoDB filter on portfolios (see build_portfolio_filter)
        sort: "latest" or "popular"
        page: 1-based page number
        limit: Page size, must be positive

    Returns:
        {"portfolios": [...], "pagination": {...}}

    Raises:
        ValueError: If page or limit is out of range
        QueryExecutionError: If MongoDB rejects or fails the query
    """
    if page < 1:
        raise ValueError(f"page must be >= 1, got {page}")
    if limit < 1:
        raise ValueError(f"limit must be >= 1, got {limit}")

    match_criteria = match_criteria or {}
    options = ListingOptions(sort=sort, skip=(page - 1) * limit, limit=limit)
    pipeline = create_portfolio_pipeline(match_criteria, options)

    docs, total = _run(pipeline, match_criteria)
    logger.info(
        f"[LIST_PORTFOLIOS] sort={sort} page={page} limit={limit} "
        f"returned={len(docs)} total={total}"
    )

    return {
        "portfolios": [_serialize_portfolio(doc) for doc in docs],
        "pagination": create_pagination_metadata(total, page, limit).to_dict(),
    }


def list_user_portfolios(
    user_id: str,
    sort: str = SORT_LATEST,
    page: int = 1,
    limit: int = DEFAULT_LIMIT,
) -> Dict[str, Any]:
    """
    List portfolios owned by one user.
    """
    return list_portfolios(
        build_portfolio_filter(user_id=user_id),
        sort=sort,
        page=page,
        limit=limit,
    )


def get_portfolio_by_id(portfolio_id: str) -> Optional[Dict[str, Any]]:
    """
    Fetch a single portfolio view by ID.

    Args:
        portfolio_id (str): Portfolio MongoDB ObjectId as string

    Returns:
        dict | None
    """
    try:
        oid = ObjectId(portfolio_id)
    except (InvalidId, TypeError):
        return None

    match_criteria = {"_id": oid}
    pipeline = create_portfolio_pipeline(match_criteria, ListingOptions(limit=1))
    docs, _ = _run(pipeline, match_criteria, count=False)
    if not docs:
        return None
    return _serialize_portfolio(docs[0])
