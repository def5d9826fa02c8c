"""
Courier stock codes for the store's product variations.

Every variation maps to a ``CodeMapping``: either a single fallback chain
or one chain per size. A chain is an ordered tuple of stock codes, the
first one preferred, the following ones tried when the courier reports
the previous code out of stock.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple, Union

logger = logging.getLogger(__name__)

FallbackChain = Tuple[str, ...]

DEFAULT_CHAIN: FallbackChain = ("PRA13F", "PRA3E0")

# Item names without a variation are matched on these keywords, in order
NAME_KEYWORDS = (
    (("patriot", "etoile", "star"), None),
    (("signature", "rouge"), "signature-rouge"),
)

DEFAULT_PRODUCT_CODE_MAP = {
    "patriot-edition": {
        "S": {"primary": "PRA424", "fallback": "PRA423"},
        "M": {"primary": "PRA427", "fallback": "PRA425"},
        "L": {"primary": "PRA428", "fallback": "PRA427"},
        "default": "PRA427",
    },
    "signature-rouge": {
        "S": {"primary": "PRA3E0", "fallback": "PRA3E1"},  # 54-56cm
        "M": {"primary": "PRA3DF", "fallback": "PRA3E0"},  # 57-59cm
        "L": {"primary": "PRA42B", "fallbacks": ["PRA3DE", "PRA3DF"]},
        "default": "PRA3E0",
    },
    "atlas-star": {"primary": "PRA13F", "fallback": "PRA3E0"},
}


@dataclass(frozen=True)
class Simple:
    chain: FallbackChain


@dataclass(frozen=True)
class Sized:
    chains: Dict[str, FallbackChain] = field(default_factory=dict)
    default: Optional[FallbackChain] = None

    def chain_for(self, size: str) -> Optional[FallbackChain]:
        return self.chains.get(size_code(size)) or self.default


CodeMapping = Union[Simple, Sized]


def size_code(size: Optional[str]) -> str:
    """'L (60-61cm)' -> 'L'"""
    if not size:
        return ""
    parts = str(size).split()
    return parts[0].upper() if parts else ""


def _to_chain(raw) -> FallbackChain:
    if isinstance(raw, str):
        chain = (raw,)
    elif isinstance(raw, (list, tuple)):
        chain = tuple(raw)
    elif isinstance(raw, dict) and "primary" in raw:
        if raw.get("fallbacks"):
            chain = (raw["primary"], *raw["fallbacks"])
        elif raw.get("fallback"):
            chain = (raw["primary"], raw["fallback"])
        else:
            chain = (raw["primary"],)
    else:
        raise ValueError(f"Unsupported stock code entry: {raw!r}")

    chain = tuple(str(code).strip() for code in chain if code and str(code).strip())
    if not chain:
        raise ValueError(f"Empty stock code chain: {raw!r}")
    return chain


def normalize_mapping(raw) -> CodeMapping:
    if isinstance(raw, (str, list, tuple)) or (isinstance(raw, dict) and "primary" in raw):
        return Simple(_to_chain(raw))
    if not isinstance(raw, dict):
        raise ValueError(f"Unsupported stock code mapping: {raw!r}")

    default = _to_chain(raw["default"]) if raw.get("default") else None
    chains = {
        str(size).upper(): _to_chain(entry)
        for size, entry in raw.items()
        if size != "default"
    }
    return Sized(chains=chains, default=default)


def load_code_map(raw_map) -> Dict[str, CodeMapping]:
    """Normalize the configured map once, keyed by lower-case variation id."""
    code_map = {}
    for variation, raw in (raw_map or {}).items():
        code_map[str(variation).lower()] = normalize_mapping(raw)
    logger.debug("Loaded stock codes for %s variations", len(code_map))
    return code_map


def resolve_codes(code_map: Dict[str, CodeMapping], variation: str, size: str = "") -> FallbackChain:
    mapping = code_map.get((variation or "").lower())
    if mapping is None:
        return DEFAULT_CHAIN
    if isinstance(mapping, Simple):
        return mapping.chain
    return mapping.chain_for(size) or DEFAULT_CHAIN


def resolve_item_codes(code_map: Dict[str, CodeMapping], item) -> FallbackChain:
    """
    Chain for an order line: by variation when the item has one,
    otherwise by keywords in its name, otherwise the default chain.
    """
    if item.variation:
        return resolve_codes(code_map, item.variation, item.size)

    name = (item.name or "").lower()
    for keywords, variation in NAME_KEYWORDS:
        if any(word in name for word in keywords):
            if variation is None:
                return DEFAULT_CHAIN
            return resolve_codes(code_map, variation, item.size)
    return DEFAULT_CHAIN
