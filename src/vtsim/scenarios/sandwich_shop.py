"""Sandwich shop with impatient clients.

Time is in seconds since midnight of the first day. Clients arrive during
opening hours at a rate that depends on the time of day, take a moment
to pick something from the menu and then queue for a staff member. A
client whose patience runs out before being served leaves the queue
(reneges).
"""

from dataclasses import dataclass, field
from typing import Generator, Optional

import numpy as np
from pydantic import BaseModel, Field, model_validator

from vtsim.core import Environment
from vtsim.models.config import SimulationConfig
from vtsim.resources import Resource
from vtsim.simulation.trace import EventTrace

SECONDS_PER_HOUR = 3600
SECONDS_PER_DAY = 24 * SECONDS_PER_HOUR


class MenuItem(BaseModel):
    """Something a client can order."""

    name: str = Field(..., min_length=1)
    probability: float = Field(
        ...,
        gt=0,
        le=1,
        description="Share of clients ordering this item"
    )
    prep_time_s: tuple[float, float] = Field(
        ...,
        description="Uniform range of preparation time (seconds)"
    )

    model_config = {"extra": "forbid"}


class ArrivalWindow(BaseModel):
    """Client arrival rate during part of the day."""

    start_hour: int = Field(..., ge=0, le=23)
    end_hour: int = Field(..., ge=1, le=24)
    mean_interarrival_s: float = Field(
        ...,
        gt=0,
        description="Mean of the exponential time between arrivals (seconds)"
    )

    model_config = {"extra": "forbid"}

    def contains(self, hour: int) -> bool:
        return self.start_hour <= hour < self.end_hour


def _default_menu() -> list[MenuItem]:
    return [
        MenuItem(name="sandwich, cold", probability=0.6, prep_time_s=(60, 90)),
        MenuItem(name="sandwich, hot", probability=0.2, prep_time_s=(60, 120)),
        MenuItem(name="pasta", probability=0.1, prep_time_s=(60, 90)),
        MenuItem(name="soup", probability=0.1, prep_time_s=(30, 45)),
    ]


def _default_arrivals() -> list[ArrivalWindow]:
    return [
        ArrivalWindow(start_hour=8, end_hour=11, mean_interarrival_s=25 * 60),
        ArrivalWindow(start_hour=11, end_hour=14, mean_interarrival_s=1 * 60),
        ArrivalWindow(start_hour=14, end_hour=17, mean_interarrival_s=10 * 60),
        ArrivalWindow(start_hour=17, end_hour=19, mean_interarrival_s=2 * 60),
        ArrivalWindow(start_hour=19, end_hour=20, mean_interarrival_s=5 * 60),
    ]


class SandwichShopParams(BaseModel):
    """Inputs of a sandwich shop run."""

    staff: int = Field(
        1,
        ge=0,
        description="Staff members serving clients"
    )
    open_hour: int = Field(8, ge=0, le=23)
    close_hour: int = Field(20, ge=1, le=24)
    duration_s: float = Field(
        SECONDS_PER_DAY,
        gt=0,
        description="Run length when the config sets no horizon"
    )
    patience_s: tuple[float, float] = Field(
        (5 * 60, 10 * 60),
        description="Uniform range of client patience (seconds)"
    )
    choice_time_s: tuple[float, float] = Field(
        (10, 30),
        description="Uniform range of time needed to pick from the menu (seconds)"
    )
    menu: list[MenuItem] = Field(default_factory=_default_menu, min_length=1)
    arrivals: list[ArrivalWindow] = Field(default_factory=_default_arrivals)

    model_config = {"extra": "forbid"}

    @model_validator(mode="after")
    def opening_hours_ordered(self) -> "SandwichShopParams":
        """Validate that the shop closes after it opens."""
        if self.close_hour <= self.open_hour:
            raise ValueError(
                f"Closing hour ({self.close_hour}) must be after "
                f"opening hour ({self.open_hour})"
            )
        return self

    def mean_interarrival(self, hour: int) -> Optional[float]:
        """Mean time between arrivals at ``hour``, None if nobody comes then."""
        for window in self.arrivals:
            if window.contains(hour):
                return window.mean_interarrival_s
        return None


@dataclass
class Client:
    id: int
    patience: float
    order: Optional[str] = None

    def __str__(self) -> str:
        return f"Client N° {self.id} with {self.patience / 60:.2f} minutes of patience"


@dataclass
class SandwichShopResult:
    """Outcome of one sandwich shop run."""

    staff: int
    clients: int = 0
    waiting_times: list[float] = field(default_factory=list)
    """Time from ordering to being served, per served client (seconds)"""

    reneg_times: list[float] = field(default_factory=list)
    """Moments a client gave up"""

    queue_lengths: list[tuple[float, int]] = field(default_factory=list)
    """(time, clients waiting) sampled whenever a client stops waiting"""

    trace: Optional[EventTrace] = None

    @property
    def served(self) -> int:
        return len(self.waiting_times)

    @property
    def reneged(self) -> int:
        return len(self.reneg_times)

    @property
    def mean_waiting_time(self) -> float:
        return float(np.mean(self.waiting_times)) if self.waiting_times else float("nan")

    @property
    def mean_queue_length(self) -> float:
        if not self.queue_lengths:
            return float("nan")
        return float(np.mean([length for _, length in self.queue_lengths]))

    def summary(self) -> dict[str, float]:
        return {
            "staff": self.staff,
            "clients": self.clients,
            "served": self.served,
            "reneged": self.reneged,
            "mean_waiting_time": self.mean_waiting_time,
            "mean_queue_length": self.mean_queue_length,
        }


class Shop:
    """A counter staffed by ``params.staff`` people."""

    def __init__(self, env: Environment, params: SandwichShopParams, result: SandwichShopResult):
        self.env = env
        self.params = params
        self.result = result
        self.staff = Resource(env, capacity=params.staff)
        result.queue_lengths.append((env.now, 0))

    def __repr__(self) -> str:
        return (
            f"Shop with {self.staff.capacity} employees, "
            f"currently {len(self.staff.queue)} people waiting"
        )

    def hour(self) -> int:
        return int(self.env.now % SECONDS_PER_DAY) // SECONDS_PER_HOUR

    def until_opening(self) -> float:
        """Seconds until the shop next opens (0 when open)."""
        hour = self.hour()
        if self.params.open_hour <= hour < self.params.close_hour:
            return 0.0
        midnight = self.env.now - self.env.now % SECONDS_PER_DAY
        opening = midnight + self.params.open_hour * SECONDS_PER_HOUR
        if hour >= self.params.close_hour:
            opening += SECONDS_PER_DAY
        return opening - self.env.now

    def client_generator(self, env: Environment) -> Generator:
        log = env.active_process.logger
        while True:
            delay = self.until_opening()
            if delay > 0:
                log.trace("Shop closed, waiting {} s", delay)
                yield env.timeout(delay)

            mean = self.params.mean_interarrival(self.hour())
            if mean is None:
                # Open but nobody comes at this hour; check again next hour
                yield env.timeout(SECONDS_PER_HOUR - env.now % SECONDS_PER_HOUR)
                continue

            yield env.timeout(round(env.rng.expovariate(1 / mean)))
            self.result.clients += 1
            client = Client(self.result.clients, round(env.rng.uniform(*self.params.patience_s)))
            env.process(self.client_behavior(env, client), name=f"client_{client.id}")

    def client_behavior(self, env: Environment, client: Client) -> Generator:
        log = env.active_process.logger
        log.debug("{} arrives", client)

        yield env.timeout(round(env.rng.uniform(*self.params.choice_time_s)))
        menu = self.params.menu
        item = env.rng.choices(menu, weights=[m.probability for m in menu])[0]
        client.order = item.name

        ordered_at = env.now
        req = self.staff.request()
        outcome = yield req | env.timeout(client.patience)
        self.result.queue_lengths.append((env.now, len(self.staff.queue)))

        if req in outcome.winners:
            log.debug("Client N° {} is being served and orders a {}", client.id, item.name)
            self.result.waiting_times.append(env.now - ordered_at)
            yield env.timeout(round(env.rng.uniform(*item.prep_time_s)))
            log.debug("Client N° {} receives order", client.id)
            yield self.staff.release(req)
        else:
            log.debug("Client N° {} ran out of patience", client.id)
            req.cancel()
            self.result.reneg_times.append(env.now)


def run_sandwich_shop(
    config: Optional[SimulationConfig] = None,
    params: Optional[SandwichShopParams] = None,
) -> SandwichShopResult:
    """Run the shop until the config's horizon, or for ``params.duration_s``."""
    config = config or SimulationConfig()
    params = params or SandwichShopParams()

    env = Environment.from_config(config)
    result = SandwichShopResult(staff=params.staff)
    shop = Shop(env, params, result)
    env.process(shop.client_generator(env), name="client_generator")

    until = config.until if config.until is not None else config.start_time + params.duration_s
    env.run(until=until)
    env.logger.info(
        "{} clients, {} served, {} reneged",
        result.clients,
        result.served,
        result.reneged,
    )

    result.trace = env.trace
    return result
