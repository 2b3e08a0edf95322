"""Market data models: normalized assets, search hits, categories and resolution outcomes."""

from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CryptoAsset(BaseModel):
    """A single tracked cryptocurrency and its market snapshot (USD)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    symbol: str
    name: str
    image: str = ""
    price: float | None = None
    market_cap: float | None = None
    market_cap_rank: int | None = None
    price_change_24h: float | None = None
    last_updated: str | None = None
    categories: list[str] | None = None

    @classmethod
    def from_market_data(cls, data: dict[str, Any]) -> "CryptoAsset":
        """Normalize a row from CoinGecko's /coins/markets endpoint."""
        return cls(
            id=data["id"],
            symbol=(data.get("symbol") or "").upper(),
            name=data.get("name") or data["id"],
            image=data.get("image") or "",
            price=data.get("current_price"),
            market_cap=data.get("market_cap"),
            market_cap_rank=data.get("market_cap_rank"),
            price_change_24h=data.get("price_change_percentage_24h"),
            last_updated=data.get("last_updated"),
        )

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class SearchHit(BaseModel):
    id: str
    name: str
    symbol: str
    market_cap_rank: int | None = None
    thumb: str = ""
    large: str = ""

    @property
    def rank_key(self) -> float:
        """Sort key: missing or zero rank sorts last."""
        return self.market_cap_rank if self.market_cap_rank else float("inf")


class Category(BaseModel):
    category_id: str
    name: str


@dataclass(frozen=True)
class Suggestion:
    id: str
    name: str
    symbol: str

    @classmethod
    def from_hit(cls, hit: SearchHit) -> "Suggestion":
        return cls(id=hit.id, name=hit.name, symbol=hit.symbol.upper())

    def to_wire(self) -> dict[str, str]:
        return {"id": self.id, "name": self.name, "symbol": self.symbol}


# --- Resolution outcomes ---------------------------------------------------


@dataclass(frozen=True)
class Resolved:
    asset: CryptoAsset


@dataclass(frozen=True)
class Ambiguous:
    suggestions: list[Suggestion]


@dataclass(frozen=True)
class NotFound:
    pass


QueryResolution = Resolved | Ambiguous | NotFound


@dataclass(frozen=True)
class CategoryResolved:
    assets: list[CryptoAsset]
    category_name: str


@dataclass(frozen=True)
class CategoryNotFound:
    suggestions: list[str] = field(default_factory=list)


CategoryResolution = CategoryResolved | CategoryNotFound
