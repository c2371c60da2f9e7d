"""Composable list filters shared by the list endpoints.

A ``ListFilter`` declares, for one entity, which query parameters are exact
equality predicates, which text columns the free-text ``search`` parameter
looks into, and the entity's canonical ordering. ``build_list_query`` turns
request parameters into a single ``SELECT``:

* every equality predicate is ANDed,
* ``search`` matches when ANY declared text column contains the term,
  case-insensitively (the columns are ORed, the group is ANDed with the rest),
* a parameter that is ``None`` or ``""`` adds no constraint at all.
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import ColumnElement, Select, or_, select
from sqlalchemy.orm import InstrumentedAttribute

from projectcrm.models import APIKey, Client, Document, Project, Task

LIKE_ESCAPE = "\\"


def like_pattern(term: str) -> str:
    """Build a substring LIKE pattern that matches ``term`` literally."""
    escaped = (
        term.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )
    return f"%{escaped}%"


def is_unset(value: Any) -> bool:
    """Absent and empty parameters both mean "no constraint"."""
    return value is None or value == ""


@dataclass(frozen=True)
class ListFilter:
    """Filterable columns and canonical ordering for one entity."""

    model: type
    equality: Mapping[str, InstrumentedAttribute] = field(default_factory=dict)
    search: Sequence[InstrumentedAttribute] = ()
    order_by: Sequence[ColumnElement] = ()

    def apply(self, query: Select, **params: Any) -> Select:
        """Add the predicates for ``params`` to ``query``."""
        for name, value in params.items():
            if name == "search":
                if not self.search:
                    raise ValueError(f"{self.model.__name__} does not support search")
                continue
            if name not in self.equality:
                raise ValueError(f"Unsupported filter for {self.model.__name__}: {name}")

        for name, column in self.equality.items():
            value = params.get(name)
            if not is_unset(value):
                query = query.where(column == value)

        term = params.get("search")
        if not is_unset(term):
            pattern = like_pattern(term)
            query = query.where(
                or_(*(column.ilike(pattern, escape=LIKE_ESCAPE) for column in self.search))
            )

        return query.order_by(*self.order_by)


def build_list_query(list_filter: ListFilter, query: Select | None = None, **params: Any) -> Select:
    """Compose a filtered, ordered list query for ``list_filter.model``."""
    if query is None:
        query = select(list_filter.model)
    return list_filter.apply(query, **params)


PROJECT_FILTERS = ListFilter(
    model=Project,
    equality={
        "status": Project.status,
        "priority": Project.priority,
        "category": Project.category,
        "client_id": Project.client_id,
    },
    search=(Project.name, Project.description),
    order_by=(Project.updated_at.desc(),),
)

TASK_FILTERS = ListFilter(
    model=Task,
    equality={
        "project_id": Task.project_id,
        "status": Task.status,
        "priority": Task.priority,
    },
    search=(Task.title, Task.description),
    order_by=(Task.position.asc(), Task.created_at.desc()),
)

CLIENT_FILTERS = ListFilter(
    model=Client,
    search=(Client.name, Client.email, Client.company),
    order_by=(Client.name.asc(),),
)

API_KEY_FILTERS = ListFilter(
    model=APIKey,
    equality={
        "environment": APIKey.environment,
        "service": APIKey.service,
    },
    search=(APIKey.name, APIKey.service),
    order_by=(APIKey.service.asc(), APIKey.name.asc()),
)

DOCUMENT_FILTERS = ListFilter(
    model=Document,
    equality={
        "category": Document.category,
        "project_id": Document.project_id,
    },
    search=(Document.name, Document.description, Document.file_name),
    order_by=(Document.created_at.desc(),),
)
