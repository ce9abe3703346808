from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional


def _parse_ids(raw) -> List[int]:
    if not raw:
        return []
    out = []
    for value in raw:
        try:
            out.append(int(value))
        except (ValueError, TypeError):
            continue
    # Keep first occurrence order, drop repeats
    return list(dict.fromkeys(out))


def _parse_price(raw) -> Optional[Decimal]:
    if raw is None:
        return None
    if isinstance(raw, Decimal):
        return raw
    try:
        return Decimal(str(raw).strip())
    except (InvalidOperation, ValueError):
        return None


def _clean_text(raw) -> Optional[str]:
    if raw is None:
        return None
    return str(raw).strip()


# Product Commands
@dataclass
class ProductCreateCommand:
    name: str
    description: str
    price: Decimal
    seller_id: int
    category_ids: List[int] = field(default_factory=list)

    @staticmethod
    def from_raw(payload: Dict[str, Any]):
        data = dict(payload or {})
        # ignore id if present
        data.pop("id", None)
        return ProductCreateCommand(
            name=_clean_text(data.get("name")) or "",
            description=_clean_text(data.get("description")) or "",
            price=_parse_price(data.get("price", "0")) or Decimal("0"),
            seller_id=int(data.get("seller_id", data.get("sellerId", 0)) or 0),
            category_ids=_parse_ids(
                data.get("category_ids", data.get("categoryIds")) or []
            ),
        )


@dataclass
class ProductUpdateCommand:
    """
    Patch of a product. ``None`` means "leave unchanged" for every field;
    ``category_ids`` set to a list (even an empty one) replaces the categories.
    """

    product_id: int
    name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[Decimal] = None
    category_ids: Optional[List[int]] = None

    @property
    def replaces_categories(self) -> bool:
        return self.category_ids is not None

    def scalar_fields(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "price": self.price,
        }

    @staticmethod
    def from_raw(product_id: int, payload: Dict[str, Any]):
        data = dict(payload or {})
        data.pop("id", None)
        ids_key = "category_ids" if "category_ids" in data else "categoryIds"
        ids = None
        if data.get(ids_key) is not None:
            ids = _parse_ids(data.get(ids_key))
        return ProductUpdateCommand(
            product_id=product_id,
            name=_clean_text(data.get("name")),
            description=_clean_text(data.get("description")),
            price=_parse_price(data.get("price")),
            category_ids=ids,
        )


@dataclass
class CategoryCommand:
    name: str

    @staticmethod
    def from_raw(payload: Dict[str, Any]):
        return CategoryCommand(name=_clean_text((payload or {}).get("name")) or "")
