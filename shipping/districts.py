import json
import logging
import time
from dataclasses import asdict, dataclass
from decimal import Decimal, InvalidOperation
from typing import Dict, Iterable, List, Optional

import redis
from django.conf import settings
from redis.exceptions import RedisError

from .exceptions import ShippingError

logger = logging.getLogger(__name__)

DEFAULT_DELIVERY_ESTIMATE = "3-5 jours"


@dataclass(frozen=True)
class DistrictEntry:
    id: int
    name: str
    arabic_name: str
    city: str
    price: Decimal
    delivery_estimate: str = DEFAULT_DELIVERY_ESTIMATE
    pickup_allowed: bool = False
    region: str = ""

    @classmethod
    def from_api(cls, data: dict) -> "DistrictEntry":
        """Build an entry from a courier record (``ville``, ``delais``...)."""
        try:
            price = Decimal(str(data.get("price") or 0))
        except InvalidOperation:
            price = Decimal("0")
        name = (data.get("name") or data.get("ville") or "").strip()
        return cls(
            id=int(data["id"]),
            name=name,
            arabic_name=(data.get("arabic_name") or "").strip(),
            city=(data.get("ville") or data.get("city") or name).strip(),
            price=price,
            delivery_estimate=data.get("delais") or data.get("delivery_estimate") or DEFAULT_DELIVERY_ESTIMATE,
            pickup_allowed=bool(int(data.get("pickup_district") or data.get("pickup_allowed") or 0)),
            region=data.get("region") or "",
        )

    def to_dict(self) -> dict:
        data = asdict(self)
        data["price"] = str(self.price)
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "DistrictEntry":
        return cls(
            id=int(data["id"]),
            name=data["name"],
            arabic_name=data.get("arabic_name", ""),
            city=data["city"],
            price=Decimal(data.get("price", "0")),
            delivery_estimate=data.get("delivery_estimate", DEFAULT_DELIVERY_ESTIMATE),
            pickup_allowed=bool(data.get("pickup_allowed", False)),
            region=data.get("region", ""),
        )

    @property
    def label(self) -> str:
        if not self.name:
            return self.city
        if not self.city or self.name.lower().startswith(self.city.lower()):
            return self.name
        return f"{self.city} - {self.name}"


def _fallback(id, name, arabic_name, price, delay="24h - 48h"):
    return DistrictEntry(
        id=id,
        name=name,
        arabic_name=arabic_name,
        city=name.split(" - ")[0],
        price=Decimal(price),
        delivery_estimate=delay,
    )


# Real courier ids for the major cities, used when no catalog is available
FALLBACK_DISTRICTS = (
    _fallback(46, "Casablanca - Autres quartiers", "الدار البيضاء - أحياء أخرى", "19"),
    _fallback(53, "Rabat", "الرباط", "35"),
    _fallback(56, "Marrakech", "مراكش", "35"),
    _fallback(139, "Fes", "فاس", "35"),
    _fallback(52, "Tanger", "طنجة", "35", "24h - 72h"),
    _fallback(54, "Agadir", "أكادير", "35"),
    _fallback(167, "Meknes", "مكناس", "35"),
    _fallback(73, "Oujda", "وجدة", "35"),
    _fallback(155, "Kenitra", "القنيطرة", "35"),
    _fallback(222, "Tetouan", "تطوان", "39"),
    _fallback(188, "Safi", "آسفي", "35"),
)


class DistrictCatalog:
    """Immutable snapshot of the courier destination zones."""

    def __init__(self, entries: Iterable[DistrictEntry], updated_at: Optional[float] = None):
        self.entries = tuple(entries)
        self.updated_at = updated_at
        self.by_id: Dict[int, DistrictEntry] = {}
        self.by_city: Dict[str, List[DistrictEntry]] = {}
        for entry in self.entries:
            self.by_id.setdefault(entry.id, entry)
            self.by_city.setdefault(entry.city, []).append(entry)

    def __iter__(self):
        return iter(self.entries)

    def __len__(self):
        return len(self.entries)

    def __bool__(self):
        return bool(self.entries)

    @property
    def cities(self) -> List[str]:
        return sorted(self.by_city)

    def get(self, district_id) -> Optional[DistrictEntry]:
        try:
            return self.by_id.get(int(district_id))
        except (TypeError, ValueError):
            return None

    def search(self, query: str, limit: int = 50) -> List[DistrictEntry]:
        """Plain substring search on name and city."""
        if not query or len(query) < 2:
            return []
        needle = query.lower()
        found = [
            e for e in self.entries
            if needle in e.name.lower() or needle in e.city.lower()
        ]
        return found[:limit]

    @classmethod
    def from_api(cls, records: Iterable[dict], updated_at: Optional[float] = None) -> "DistrictCatalog":
        entries = sorted(
            (DistrictEntry.from_api(r) for r in records),
            key=lambda e: (e.city.lower(), e.name.lower()),
        )
        return cls(entries, updated_at=updated_at)

    @classmethod
    def fallback(cls) -> "DistrictCatalog":
        return cls(FALLBACK_DISTRICTS)


def get_redis():
    """
    Create a Redis client on-demand so the shop can recover
    if Redis restarts or is temporarily unavailable.
    """
    return redis.Redis(
        host=settings.REDIS_HOST,
        port=settings.REDIS_PORT,
        db=settings.REDIS_DB,
        decode_responses=True,
    )


class DistrictCatalogCache:
    """
    Owner of the catalog snapshot stored in Redis.

    The snapshot is rebuilt wholesale by ``refresh`` (weekly job) and read
    as an immutable ``DistrictCatalog`` by checkout.
    """

    def __init__(self, client=None, key=None, version=None, ttl=None):
        self._client = client
        self.key = key or settings.SENDIT_DISTRICTS_CACHE_KEY
        self.version = str(version or settings.SENDIT_DISTRICTS_CACHE_VERSION)
        self.ttl = ttl or settings.SENDIT_DISTRICTS_CACHE_TTL

    @property
    def client(self):
        if self._client is None:
            self._client = get_redis()
        return self._client

    def load(self) -> Optional[DistrictCatalog]:
        try:
            raw = self.client.get(self.key)
        except RedisError:
            logger.warning("Redis unavailable; district catalog not loaded")
            return None
        if not raw:
            return None

        try:
            data = json.loads(raw)
        except ValueError:
            logger.warning("Corrupted district catalog in cache; ignoring it")
            return None

        if str(data.get("version")) != self.version:
            logger.info("District catalog version %s is stale; dropping it", data.get("version"))
            self.invalidate()
            return None

        return DistrictCatalog(
            (DistrictEntry.from_dict(d) for d in data.get("districts", [])),
            updated_at=data.get("updated_at"),
        )

    def store(self, catalog: DistrictCatalog) -> bool:
        data = {
            "version": self.version,
            "updated_at": catalog.updated_at or time.time(),
            "districts": [e.to_dict() for e in catalog],
        }
        try:
            self.client.set(self.key, json.dumps(data, ensure_ascii=False), ex=self.ttl)
        except RedisError:
            logger.warning("Redis unavailable; district catalog not stored")
            return False
        return True

    def invalidate(self):
        try:
            self.client.delete(self.key)
        except RedisError:
            logger.warning("Redis unavailable; district catalog not cleared")

    def snapshot(self) -> DistrictCatalog:
        """Catalog for the current checkout session, never empty."""
        catalog = self.load()
        if catalog:
            return catalog
        return DistrictCatalog.fallback()

    def refresh(self, sendit, with_details: bool = True) -> DistrictCatalog:
        records = sendit.list_districts()
        if not records:
            raise ValueError("No districts returned from the courier")
        if with_details:
            records = [_merge_details(sendit, r) for r in records]
        catalog = DistrictCatalog.from_api(records, updated_at=time.time())
        self.store(catalog)
        logger.info(
            "District catalog refreshed: %s districts in %s cities (%s with Arabic names)",
            len(catalog),
            len(catalog.cities),
            sum(1 for e in catalog if e.arabic_name),
        )
        return catalog


def _merge_details(sendit, record: dict) -> dict:
    try:
        details = sendit.get_district(record["id"]) or {}
    except ShippingError:
        logger.warning("Could not fetch details for district %s", record.get("id"))
        details = {}
    return {
        **record,
        "arabic_name": details.get("arabic_name") or "",
        "pickup_district": details.get("pickup_district") or 0,
    }


def shipping_quote(catalog: DistrictCatalog, district_id) -> dict:
    """Price and delay for a district; unknown districts ship free."""
    entry = catalog.get(district_id)
    if entry is None:
        logger.info("No shipping price for district %s", district_id)
        return {"price": Decimal("0"), "delivery_estimate": DEFAULT_DELIVERY_ESTIMATE, "found": False}
    return {"price": entry.price, "delivery_estimate": entry.delivery_estimate, "found": True}
