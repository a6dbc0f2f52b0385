from typing import Dict, List

from pydantic import BaseModel


class TagUsage(BaseModel):
    key: str
    value: str
    count: int


class TagsResponse(BaseModel):
    tags: Dict[str, List[str]]
    popular_tags: List[TagUsage]


class TagSuggestion(BaseModel):
    key: str
    value: str
    display: str
