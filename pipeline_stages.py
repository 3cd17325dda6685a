"""
pipeline_stages.py
------------------
Portfolio Listing - Aggregation Stage Types

Responsibility:
- Describe each aggregation step as an explicit, comparable value
- Translate stage values into MongoDB aggregation documents

Stages are frozen pydantic models tagged by `kind`, so a whole pipeline can
be inspected and compared in tests before anything touches the database.

NO I/O
NO query execution
"""

from typing import Any, Dict, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field


class _Stage(BaseModel):
    model_config = ConfigDict(frozen=True)

    def to_mongo(self) -> Dict[str, Any]:
        raise NotImplementedError


class FilterStage(_Stage):
    """Keep only documents matching an opaque MongoDB filter."""

    kind: Literal["filter"] = "filter"
    criteria: Dict[str, Any] = Field(default_factory=dict)

    def to_mongo(self) -> Dict[str, Any]:
        return {"$match": dict(self.criteria)}


class JoinStage(_Stage):
    """
    Left outer join against another collection by exact field equality.

    Matching documents are stored as an array under `as_field`. When
    `fields` is set, joined documents are reduced to those fields (and
    `_id` is dropped).
    """

    kind: Literal["join"] = "join"
    from_collection: str
    local_field: str
    foreign_field: str
    as_field: str
    fields: Optional[Tuple[str, ...]] = None

    def to_mongo(self) -> Dict[str, Any]:
        if self.local_field == "_id" and self.fields is None:
            return {
                "$lookup": {
                    "from": self.from_collection,
                    "localField": self.local_field,
                    "foreignField": self.foreign_field,
                    "as": self.as_field,
                }
            }

        # $$ variables cannot contain dots or start with "_"
        variable = self.local_field.replace(".", "_").lstrip("_")
        sub_pipeline: List[Dict[str, Any]] = [
            {
                "$match": {
                    "$expr": {"$eq": [f"${self.foreign_field}", f"$${variable}"]}
                }
            }
        ]
        if self.fields:
            projection: Dict[str, Any] = {"_id": 0}
            projection.update({name: 1 for name in self.fields})
            sub_pipeline.append({"$project": projection})

        return {
            "$lookup": {
                "from": self.from_collection,
                "let": {variable: f"${self.local_field}"},
                "pipeline": sub_pipeline,
                "as": self.as_field,
            }
        }


class CountStage(_Stage):
    """Store the length of an array field as an integer field."""

    kind: Literal["count"] = "count"
    source_field: str
    target_field: str

    def to_mongo(self) -> Dict[str, Any]:
        return {"$addFields": {self.target_field: {"$size": f"${self.source_field}"}}}


class ExpandStage(_Stage):
    """
    Emit one row per element of an array field.

    With `preserve_empty` (outer expand) a missing or empty array still
    yields one row, with the field absent.
    """

    kind: Literal["expand"] = "expand"
    path: str
    preserve_empty: bool = True

    def to_mongo(self) -> Dict[str, Any]:
        return {
            "$unwind": {
                "path": f"${self.path}",
                "preserveNullAndEmptyArrays": self.preserve_empty,
            }
        }


class GroupStage(_Stage):
    """
    Collapse rows sharing `key` back into one row.

    Fields in `first_fields` take the value of the first row of the group.
    Each entry of `push_fields` rebuilds an array by appending, for every
    row, an object whose values are read from the given source paths.
    """

    kind: Literal["group"] = "group"
    key: str = "_id"
    first_fields: Tuple[str, ...] = ()
    push_fields: Dict[str, Dict[str, str]] = Field(default_factory=dict)

    def to_mongo(self) -> Dict[str, Any]:
        group: Dict[str, Any] = {"_id": f"${self.key}"}
        for name in self.first_fields:
            group[name] = {"$first": f"${name}"}
        for name, shape in self.push_fields.items():
            group[name] = {
                "$push": {out: f"${source}" for out, source in shape.items()}
            }
        return {"$group": group}


class ProjectStage(_Stage):
    """Keep `include` fields as they are and set `renamed` fields from paths."""

    kind: Literal["project"] = "project"
    include: Tuple[str, ...] = ()
    renamed: Dict[str, str] = Field(default_factory=dict)

    def to_mongo(self) -> Dict[str, Any]:
        projection: Dict[str, Any] = {name: 1 for name in self.include}
        for name, source in self.renamed.items():
            projection[name] = f"${source}"
        return {"$project": projection}


class SortStage(_Stage):
    """Order rows by (field, direction) pairs; direction is 1 or -1."""

    kind: Literal["sort"] = "sort"
    keys: Tuple[Tuple[str, int], ...]

    def to_mongo(self) -> Dict[str, Any]:
        return {"$sort": {name: direction for name, direction in self.keys}}


class SkipStage(_Stage):
    kind: Literal["skip"] = "skip"
    count: int = Field(gt=0)

    def to_mongo(self) -> Dict[str, Any]:
        return {"$skip": self.count}


class LimitStage(_Stage):
    kind: Literal["limit"] = "limit"
    count: int = Field(gt=0)

    def to_mongo(self) -> Dict[str, Any]:
        return {"$limit": self.count}


Stage = Union[
    FilterStage,
    JoinStage,
    CountStage,
    ExpandStage,
    GroupStage,
    ProjectStage,
    SortStage,
    SkipStage,
    LimitStage,
]


def to_mongo_pipeline(stages: List[Stage]) -> List[Dict[str, Any]]:
    """
    Translate typed stages into a list pymongo's `aggregate()` accepts.
    """
    return [stage.to_mongo() for stage in stages]
