"""
Schemas compartidos: base camelCase y paginación de listados
"""
import math
from typing import Generic, List, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """El frontend habla camelCase; en Python usamos snake_case"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class PageMeta(CamelModel):
    total: int
    total_pages: int
    page: int
    limit: int


T = TypeVar("T")


class Page(CamelModel, Generic[T]):
    items: List[T]
    meta: PageMeta


class MessageResponse(BaseModel):
    message: str


def build_meta(total: int, page: int, limit: int) -> PageMeta:
    total_pages = math.ceil(total / limit) if limit else 0
    return PageMeta(total=total, total_pages=total_pages, page=page, limit=limit)


def paginate(query, page: int, limit: int):
    """Aplica offset/limit a un query y retorna (items, meta)"""
    total = query.count()
    items = query.offset((page - 1) * limit).limit(limit).all()
    return items, build_meta(total, page, limit)
