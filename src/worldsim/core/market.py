"""
Settlement markets.

Each settlement owns one ``MarketEntry`` per good.  Every simulated hour the
resolver:

1. resets the supply and demand counters;
2. aggregates supply (inventory each member holds above their keep level,
   plus the settlement stock) and demand (one unit per good a member is
   short of);
3. floors both at 1 and reprices every entry with ``resolve_price``;
4. runs the exchange: buyers take one unit each from sellers at the
   rounded clearing price.

Price resolution only rewrites counters and prices.  The exchange moves
crowns from buyer to seller (or to the treasury when the settlement stock
sells), so the total number of crowns is unchanged by a market hour.

Merchants at home may then load a cargo of the good with the widest price
gap to a settlement within range and set out on a countdown trip.  On
arrival the destination treasury buys the cargo; crowns only change hands.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Iterable

from worldsim.core.actions import CRAFTER_RECIPES
from worldsim.core.agent import Occupation
from worldsim.core.goods import BASE_PRICES, GoodType, Inventory
from worldsim.core.phi import AGNOSIS, BEING, PSYCHE, TOTALITY, health_ratio
from worldsim.core.scheduler import Season

if TYPE_CHECKING:
    from worldsim.core.agent import Agent
    from worldsim.core.config import WorldConfig
    from worldsim.core.settlement import Settlement


# ---------------------------------------------------------------------------
# Seasonal price modifiers
# ---------------------------------------------------------------------------

SEASONAL_MODIFIERS: dict[Season, dict[GoodType, float]] = {
    Season.WINTER: {
        GoodType.GRAIN: 1.5, GoodType.FISH: 1.5,
        GoodType.FURS: 1.8, GoodType.HERBS: 1.4,
    },
    Season.SPRING: {
        GoodType.GRAIN: 1.2, GoodType.FISH: 1.2, GoodType.HERBS: 0.8,
    },
    Season.SUMMER: {
        GoodType.HERBS: 0.7, GoodType.FURS: 0.7,
    },
    Season.AUTUMN: {
        GoodType.GRAIN: 0.7, GoodType.FISH: 0.8, GoodType.HERBS: 0.9,
    },
}

SEASONAL_DEFAULTS: dict[Season, float] = {
    Season.WINTER: 1.1,
    Season.SPRING: 1.0,
    Season.SUMMER: 0.9,
    Season.AUTUMN: 1.0,
}


def seasonal_modifier(season: Season, good: GoodType) -> float:
    return SEASONAL_MODIFIERS[season].get(good, SEASONAL_DEFAULTS[season])


# ---------------------------------------------------------------------------
# Market data
# ---------------------------------------------------------------------------

@dataclass
class MarketEntry:
    good: GoodType
    base_price: float
    supply: float = 1.0
    demand: float = 1.0
    price: float = 0.0

    def __post_init__(self) -> None:
        if self.price <= 0.0:
            self.price = self.base_price

    def to_dict(self) -> dict[str, Any]:
        return {
            "good": self.good.key,
            "base_price": float(self.base_price),
            "supply": float(self.supply),
            "demand": float(self.demand),
            "price": float(self.price),
        }


def resolve_price(
    entry: MarketEntry,
    seasonal_mod: float = 1.0,
    regional_mod: float = 1.0,
    floor: float = AGNOSIS,
    ceiling: float = TOTALITY,
    epsilon: float = AGNOSIS,
) -> float:
    """Clearing price for one entry, always within ``[base*floor, base*ceiling]``."""
    supply = max(entry.supply, epsilon)
    price = entry.base_price * (entry.demand / supply) * seasonal_mod * regional_mod
    low = entry.base_price * floor
    high = entry.base_price * ceiling
    return min(high, max(low, price))


def market_health(entry: MarketEntry) -> float:
    """Conjugate-field health of one entry: supply charges, demand discharges."""
    return health_ratio(entry.supply, entry.demand)


class Market:
    """All entries of one settlement, plus the settlement's goods stock."""

    def __init__(
        self,
        entries: list[MarketEntry] | None = None,
        stock: Inventory | None = None,
    ) -> None:
        self.entries = entries or [
            MarketEntry(good, float(BASE_PRICES[good])) for good in GoodType
        ]
        self.stock = stock or Inventory()
        self.trade_count = 0
        self.most_traded_good: GoodType | None = None

    def __getitem__(self, good: GoodType) -> MarketEntry:
        return self.entries[good]

    def __iter__(self):
        return iter(self.entries)

    def health(self) -> float:
        """Mean entry health across all goods."""
        return sum(market_health(e) for e in self.entries) / len(self.entries)

    def to_dict(self) -> dict[str, Any]:
        return {
            "entries": [e.to_dict() for e in self.entries],
            "stock": self.stock.to_dict(),
            "trade_count": self.trade_count,
            "most_traded_good": self.most_traded_good.key if self.most_traded_good else None,
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Market:
        entries = [
            MarketEntry(
                good=GoodType.from_key(e["good"]),
                base_price=float(e["base_price"]),
                supply=float(e["supply"]),
                demand=float(e["demand"]),
                price=float(e["price"]),
            )
            for e in d.get("entries", [])
        ]
        entries.sort(key=lambda e: e.good)
        market = cls(entries or None, Inventory.from_dict(d.get("stock", {})))
        market.trade_count = int(d.get("trade_count", 0))
        mtg = d.get("most_traded_good")
        market.most_traded_good = GoodType.from_key(mtg) if mtg else None
        return market


# ---------------------------------------------------------------------------
# Per-agent supply and demand rules
# ---------------------------------------------------------------------------

def keep_threshold(agent: Agent, good: GoodType) -> int:
    """Units of *good* an agent holds back before selling."""
    occ = agent.occupation
    if good in (GoodType.GRAIN, GoodType.FISH):
        return 5 if occ in (Occupation.FARMER, Occupation.FISHER) else 3
    if good in (GoodType.IRON_ORE, GoodType.TIMBER):
        return 5 if occ is Occupation.CRAFTER else 1
    if good is GoodType.HERBS:
        return 4 if occ is Occupation.ALCHEMIST else 1
    return 1


def surplus(agent: Agent, good: GoodType) -> int:
    return max(0, agent.inventory[good] - keep_threshold(agent, good))


def crafter_demand(agent: Agent) -> list[GoodType]:
    """Missing materials for the recipe the crafter is closest to finishing."""
    best = CRAFTER_RECIPES[0]
    best_score = -1
    for recipe in CRAFTER_RECIPES:
        score = sum(min(agent.inventory[g], qty) for g, qty in recipe.inputs)
        if score > best_score:
            best, best_score = recipe, score
    return best.missing(agent)


def demanded_goods(agent: Agent) -> list[GoodType]:
    """Goods an agent wants one unit of this hour."""
    wants: list[GoodType] = []
    if agent.inventory.food() < 3:
        wants.append(GoodType.GRAIN)
    if agent.occupation is Occupation.CRAFTER:
        wants.extend(crafter_demand(agent))
    elif agent.occupation is Occupation.ALCHEMIST:
        if agent.inventory[GoodType.HERBS] < 2:
            wants.append(GoodType.HERBS)
        if agent.inventory[GoodType.EXOTICS] < 2:
            wants.append(GoodType.EXOTICS)
    if agent.inventory[GoodType.TOOLS] < 1 and GoodType.TOOLS not in wants:
        wants.append(GoodType.TOOLS)
    return wants


# ---------------------------------------------------------------------------
# Resolver
# ---------------------------------------------------------------------------

@dataclass
class _Seller:
    agent: Agent | None     # None is the settlement stock
    remaining: int


@dataclass
class ExchangeResult:
    units: int = 0
    crowns: int = 0
    by_good: dict[GoodType, int] = field(default_factory=dict)


class MarketResolver:
    """Hourly price resolution and exchange for one settlement at a time."""

    def __init__(self, config: WorldConfig) -> None:
        self.floor = config.price_floor
        self.ceiling = config.price_ceiling
        self.epsilon = config.price_epsilon
        self.trade_range = config.merchant_trade_range
        self.cargo_size = config.merchant_cargo_size
        self.ticks_per_hex = config.ticks_per_hex

    def resolve_settlement(
        self, settlement: Settlement, members: Iterable[Agent], season: Season,
    ) -> ExchangeResult:
        """Aggregate, reprice and trade.  *members* must be in id order."""
        members = [a for a in members if a.is_alive]
        market = settlement.market

        for entry in market:
            entry.supply = float(market.stock[entry.good])
            entry.demand = 0.0

        demands: dict[int, list[GoodType]] = {}
        for agent in members:
            for good in GoodType:
                entry_surplus = surplus(agent, good)
                if entry_surplus:
                    market[good].supply += entry_surplus
            demands[agent.id] = demanded_goods(agent)
            for good in demands[agent.id]:
                market[good].demand += 1

        for entry in market:
            entry.supply = max(entry.supply, 1.0)
            entry.demand = max(entry.demand, 1.0)
            entry.price = resolve_price(
                entry,
                seasonal_modifier(season, entry.good),
                settlement.regional_modifier,
                self.floor, self.ceiling, self.epsilon,
            )

        return self.exchange(settlement, members, demands)

    def exchange(
        self,
        settlement: Settlement,
        members: list[Agent],
        demands: dict[int, list[GoodType]],
    ) -> ExchangeResult:
        """
        Match buyers to sellers, one unit per buyer per good.

        Sellers are members in id order followed by the settlement stock.
        A buyer who cannot afford the rounded price is skipped.
        """
        market = settlement.market
        result = ExchangeResult()

        for good in GoodType:
            buyers = [a for a in members if good in demands.get(a.id, ())]
            if not buyers:
                continue
            sellers = _sellers(settlement, members, good)
            if not sellers:
                continue

            price = unit_price(market[good])
            for buyer in buyers:
                if buyer.wealth < price:
                    continue
                seller = next(
                    (s for s in sellers if s.remaining > 0 and s.agent is not buyer),
                    None,
                )
                if seller is None:
                    continue
                buyer.wealth -= price
                buyer.inventory.add(good, 1)
                _sell_unit(settlement, seller, good, price)
                result.units += 1
                result.crowns += price
                result.by_good[good] = result.by_good.get(good, 0) + 1

        market.trade_count = result.units
        if result.by_good:
            market.most_traded_good = max(result.by_good, key=lambda g: (result.by_good[g], -g))
        return result

    # ------------------------------------------------------------------
    # Merchant trade trips
    # ------------------------------------------------------------------

    def trade_destinations(
        self, home: Settlement, settlements: Iterable[Settlement],
    ) -> list[Settlement]:
        """Other settlements within trading range, in id order."""
        return sorted(
            (s for s in settlements
             if s.id != home.id and home.distance_to(s) <= self.trade_range),
            key=lambda s: s.id,
        )

    def best_trade(
        self, home: Settlement, destinations: list[Settlement],
    ) -> tuple[GoodType, Settlement] | None:
        """The good and destination with the widest margin, if it clears Psyche.

        The raw margin is scaled by Being; ties keep the first destination
        and the first good in canonical order.
        """
        best: tuple[GoodType, Settlement] | None = None
        best_margin = 0.0
        for dest in destinations:
            for entry in home.market:
                if entry.price < 1.0:
                    continue
                margin = (dest.market[entry.good].price - entry.price) / entry.price * BEING
                if margin > PSYCHE and margin > best_margin:
                    best, best_margin = (entry.good, dest), margin
        return best

    def start_trip(
        self,
        merchant: Agent,
        home: Settlement,
        destinations: list[Settlement],
        members: list[Agent],
    ) -> int:
        """
        Buy up to a cargo of the best-margin good at home and set out.

        Units come from the home sellers (members, then the stock) at the
        rounded home price.  Returns the units loaded; with none the
        merchant stays put.
        """
        plan = self.best_trade(home, destinations)
        if plan is None:
            return 0
        good, dest = plan
        price = unit_price(home.market[good])
        loaded = 0
        for seller in _sellers(home, members, good):
            if seller.agent is merchant:
                continue
            while (seller.remaining > 0 and loaded < self.cargo_size
                   and merchant.wealth >= price):
                merchant.wealth -= price
                merchant.cargo.add(good, 1)
                _sell_unit(home, seller, good, price)
                loaded += 1
        if loaded:
            merchant.travel_destination_id = dest.id
            merchant.travel_ticks_left = max(1, home.distance_to(dest)) * self.ticks_per_hex
        return loaded

    def sell_cargo(self, merchant: Agent, dest: Settlement) -> int:
        """Sell the cargo to the destination treasury at its rounded prices.

        Sold units join the destination stock.  Whatever the treasury cannot
        pay for moves into the merchant's own inventory.
        """
        sold = 0
        for good, qty in merchant.cargo.items():
            if qty == 0:
                continue
            price = unit_price(dest.market[good])
            units = min(qty, dest.treasury // price)
            if units:
                dest.treasury -= units * price
                merchant.wealth += units * price
                dest.market.stock.add(good, units)
                sold += units
            merchant.inventory.add(good, qty - units)
        merchant.cargo.clear()
        return sold


def unit_price(entry: MarketEntry) -> int:
    """Whole-crown price of one unit."""
    return max(1, int(entry.price + 0.5))


def _sellers(settlement: Settlement, members: list[Agent], good: GoodType) -> list[_Seller]:
    """Members holding a surplus of *good* in id order, then the stock."""
    sellers = [_Seller(a, surplus(a, good)) for a in members]
    sellers = [s for s in sellers if s.remaining > 0]
    if settlement.market.stock[good] > 0:
        sellers.append(_Seller(None, settlement.market.stock[good]))
    return sellers


def _sell_unit(settlement: Settlement, seller: _Seller, good: GoodType, price: int) -> None:
    if seller.agent is None:
        settlement.market.stock.remove(good, 1)
        settlement.treasury += price
    else:
        seller.agent.inventory.remove(good, 1)
        seller.agent.wealth += price
    seller.remaining -= 1
