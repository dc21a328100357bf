"""Paginated, filtered, homogeneous lists of resources."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

from cogmedia.core.models import ActionDef, Link, PaginationInfo
from cogmedia.core.resource import Resource
from cogmedia.errors import ValidationError


class Collection:
    """An ordered page of resources that all share ``item_type``.

    Attributes:
        item_type: Type every item must have.
    """

    def __init__(self, item_type: str, items: list[Resource] | None = None) -> None:
        self._item_type = item_type
        self._items: list[Resource] = []
        self._pagination: PaginationInfo | None = None
        self._filters: dict[str, Any] | None = None
        self._aggregates: dict[str, Any] | None = None
        self._actions: dict[str, ActionDef] = {}
        self._links = [
            Link(rel="self", href=f"/{item_type}"),
            Link(rel="items", href=f"/{item_type}"),
        ]
        for item in items or []:
            self.add_item(item)

    @property
    def item_type(self) -> str:
        return self._item_type

    def add_item(self, resource: Resource) -> Collection:
        if resource.type != self._item_type:
            raise ValidationError(
                f"Item type '{resource.type}' does not match collection item type "
                f"'{self._item_type}'",
                field="type",
                value=resource.type,
            )
        self._items.append(resource)
        return self

    @property
    def items(self) -> list[Resource]:
        return list(self._items)

    @property
    def item_count(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Resource]:
        return iter(list(self._items))

    def __len__(self) -> int:
        return len(self._items)

    def set_pagination(self, pagination: PaginationInfo | dict[str, Any]) -> Collection:
        if isinstance(pagination, dict):
            pagination = PaginationInfo.model_validate(pagination)
        self._pagination = pagination
        return self

    @property
    def pagination(self) -> PaginationInfo | None:
        return self._pagination

    def set_filters(self, filters: dict[str, Any]) -> Collection:
        self._filters = dict(filters)
        return self

    @property
    def filters(self) -> dict[str, Any] | None:
        return dict(self._filters) if self._filters is not None else None

    def set_aggregates(self, aggregates: dict[str, Any]) -> Collection:
        self._aggregates = dict(aggregates)
        return self

    @property
    def aggregates(self) -> dict[str, Any] | None:
        return dict(self._aggregates) if self._aggregates is not None else None

    def add_action(self, name: str, action: ActionDef | dict[str, Any]) -> Collection:
        if isinstance(action, dict):
            action = ActionDef.model_validate(action)
        self._actions[name] = action
        return self

    def get_action(self, name: str) -> ActionDef | None:
        return self._actions.get(name)

    @property
    def actions(self) -> dict[str, ActionDef]:
        return dict(self._actions)

    @property
    def links(self) -> list[Link]:
        return list(self._links)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "type": "collection",
            "itemType": self._item_type,
            "items": [item.to_dict() for item in self._items],
        }
        if self._pagination is not None:
            result["pagination"] = self._pagination.to_transfer()
        if self._filters:
            result["filters"] = dict(self._filters)
        if self._aggregates:
            result["aggregates"] = dict(self._aggregates)
        if self._actions:
            result["actions"] = {name: a.to_transfer() for name, a in self._actions.items()}
        result["links"] = [link.to_transfer() for link in self._links]
        return result

    def __repr__(self) -> str:
        return f"Collection({self._item_type}, items={len(self._items)})"


class CollectionBuilder:
    """Fluent construction of a Collection. Item types are checked on add."""

    def __init__(self, item_type: str) -> None:
        self._collection = Collection(item_type)

    @classmethod
    def of(cls, item_type: str) -> CollectionBuilder:
        return cls(item_type)

    def item(self, resource: Resource) -> CollectionBuilder:
        self._collection.add_item(resource)
        return self

    def items(self, resources: list[Resource]) -> CollectionBuilder:
        for resource in resources:
            self._collection.add_item(resource)
        return self

    def pagination(self, pagination: PaginationInfo | dict[str, Any]) -> CollectionBuilder:
        self._collection.set_pagination(pagination)
        return self

    def filters(self, filters: dict[str, Any]) -> CollectionBuilder:
        self._collection.set_filters(filters)
        return self

    def aggregates(self, aggregates: dict[str, Any]) -> CollectionBuilder:
        self._collection.set_aggregates(aggregates)
        return self

    def build(self) -> Collection:
        return self._collection
