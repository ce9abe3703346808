from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional


@dataclass
class CategoryDTO:
    id: int
    name: str


@dataclass
class ImageDTO:
    id: int
    archive_name: str
    original_name: str
    content_type: str
    size: int
    url: str


@dataclass
class ProductDTO:
    id: int
    name: str
    description: str
    price: Decimal
    seller_id: int
    categories: List[CategoryDTO] = field(default_factory=list)
    image: Optional[ImageDTO] = None
