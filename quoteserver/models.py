"""Database rows and the data transfer objects built from them."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import asdict, dataclass
from typing import Any


@dataclass(frozen=True)
class Author:
    """A row of the ``author`` table."""

    id: int
    name: str


@dataclass(frozen=True)
class Quote:
    """A row of the ``quote`` table; every quote belongs to one author."""

    id: int
    quote: str
    author_id: int


@dataclass(frozen=True)
class Tag:
    """A row of the ``tag`` table."""

    id: int
    tag: str


@dataclass(frozen=True)
class QuoteTagAssociation:
    """A row of the ``quote_tag_association`` table linking quotes and tags."""

    quote_id: int
    tag_id: int


@dataclass
class AuthorDTO:
    """An author as handed to callers."""

    id: int
    name: str

    @classmethod
    def from_model(cls, model: Author) -> AuthorDTO:
        return cls(id=model.id, name=model.name)


@dataclass
class TagDTO:
    """A tag as handed to callers."""

    id: int
    tag: str

    @classmethod
    def from_model(cls, model: Tag) -> TagDTO:
        return cls(id=model.id, tag=model.tag)


@dataclass
class TagCreateDTO:
    """A tag to be attached to a new quote."""

    tag: str


def _field(data: Mapping[str, Any], key: str, kind: type) -> Any:
    if key not in data:
        raise ValueError(f"missing field `{key}`")
    value = data[key]
    if not isinstance(value, kind):
        raise ValueError(f"field `{key}` must be of type {kind.__name__}")
    return value


@dataclass
class QuoteCreateDTO:
    """A quote to be stored, with its author's name and its tags."""

    quote: str
    related_tags: list[TagCreateDTO]
    author_name: str

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> QuoteCreateDTO:
        """Build from decoded JSON; raise ValueError if a field is missing or mistyped."""
        if not isinstance(data, Mapping):
            raise ValueError("expected an object")
        quote = _field(data, "quote", str)
        tags = _field(data, "related_tags", list)
        author_name = _field(data, "author_name", str)
        related: list[TagCreateDTO] = []
        for entry in tags:
            if not isinstance(entry, Mapping):
                raise ValueError("each related tag must be an object")
            related.append(TagCreateDTO(tag=_field(entry, "tag", str)))
        return cls(quote=quote, related_tags=related, author_name=author_name)


@dataclass
class QuoteDTO:
    """A stored quote with its author and tags."""

    id: int
    quote: str
    related_tags: list[TagDTO]
    author: AuthorDTO

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)