"""Disaster evacuation: ambulances ferry victims from an incident site to
hospitals over a road network.

Victims wait at the incident site in a Store. Each ambulance starts at a
hospital, drives to the site, loads the most urgent victim it can find,
takes them to the nearest hospital and goes back for the next one. An
ambulance carries one victim at a time. Hospitals have a limited number
of treatment slots, granted by severity.

Usage:
    result = run_evacuation(SimulationConfig(random_seed=7))
    print(result.to_dataframe())
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Generator, Optional

import networkx as nx
from pydantic import BaseModel, Field, field_validator, model_validator

from vtsim.core import Environment
from vtsim.models.config import SimulationConfig
from vtsim.resources import Resource, Store
from vtsim.simulation.trace import EventTrace


# === Network ===


class SiteType(str, Enum):
    """Role of a location in the evacuation network."""

    INCIDENT = "incident"
    """Where victims are found"""

    HOSPITAL = "hospital"
    """Where victims are treated"""


class Site(BaseModel):
    """A location ambulances travel between."""

    id: str = Field(
        ...,
        min_length=1,
        max_length=50,
        description="Unique identifier for the site"
    )
    name: str = Field(
        ...,
        min_length=1,
        description="Human-readable display name"
    )
    type: SiteType = Field(
        ...,
        description="Incident site or hospital"
    )
    treatment_slots: int = Field(
        1,
        ge=1,
        description="Concurrent patients a hospital can treat"
    )
    treatment_time_mins: float = Field(
        30.0,
        gt=0,
        description="Treatment time per victim (minutes)"
    )

    @field_validator("id")
    @classmethod
    def clean_id(cls, v: str) -> str:
        """Normalise site ID: strip whitespace, replace spaces with underscores."""
        return v.strip().replace(" ", "_")

    model_config = {"extra": "forbid"}


class Route(BaseModel):
    """A road between two sites, usable in both directions."""

    from_site: str = Field(
        ...,
        alias="from",
        description="Source site ID"
    )
    to_site: str = Field(
        ...,
        alias="to",
        description="Destination site ID"
    )
    distance_km: float = Field(
        ...,
        gt=0,
        description="Route length in kilometres"
    )
    terrain_factor: float = Field(
        1.0,
        gt=0,
        le=3.0,
        description="Travel time multiplier (1.0=normal road, >1=debris, detours)"
    )

    model_config = {
        "extra": "forbid",
        "populate_by_name": True,
    }

    @property
    def effective_km(self) -> float:
        return self.distance_km * self.terrain_factor


def _default_sites() -> list[Site]:
    return [
        Site(id="disaster_site", name="Disaster site", type=SiteType.INCIDENT),
        Site(id="st_luc", name="St. Luc", type=SiteType.HOSPITAL, treatment_slots=2),
        Site(id="erasme", name="Erasme", type=SiteType.HOSPITAL, treatment_slots=2),
        Site(id="uz_jette", name="UZ Jette", type=SiteType.HOSPITAL, treatment_slots=1),
    ]


def _default_routes() -> list[Route]:
    return [
        Route(from_site="disaster_site", to_site="st_luc", distance_km=8.0),
        Route(from_site="disaster_site", to_site="erasme", distance_km=12.0),
        Route(from_site="disaster_site", to_site="uz_jette", distance_km=10.0, terrain_factor=1.2),
        Route(from_site="st_luc", to_site="erasme", distance_km=9.0),
    ]


class EvacuationParams(BaseModel):
    """Inputs of an evacuation run."""

    sites: list[Site] = Field(
        default_factory=_default_sites,
        min_length=2,
        description="Incident site and hospitals"
    )
    routes: list[Route] = Field(
        default_factory=_default_routes,
        min_length=1,
        description="Road network between sites"
    )
    incident_site: str = Field(
        "disaster_site",
        description="Site ID where all victims are found"
    )
    victims: int = Field(
        10,
        ge=0,
        description="Number of victims at the incident site"
    )
    ambulances: int = Field(
        5,
        ge=1,
        description="Number of ambulances"
    )
    speed_kmh: float = Field(
        60.0,
        gt=0,
        description="Ambulance speed"
    )
    loading_time_mins: tuple[float, float] = Field(
        (5.0, 10.0),
        description="Uniform range of on-site loading time (minutes)"
    )
    severity_levels: int = Field(
        4,
        ge=1,
        description="Victim severity is drawn from 1 (most urgent) to this value"
    )

    model_config = {"extra": "forbid"}

    @model_validator(mode="after")
    def validate_all_references(self) -> "EvacuationParams":
        """Ensure routes and the incident site reference known sites."""
        errors = []
        site_ids = {s.id for s in self.sites}

        for i, route in enumerate(self.routes):
            if route.from_site not in site_ids:
                errors.append(f"Route[{i}] references unknown source site: '{route.from_site}'")
            if route.to_site not in site_ids:
                errors.append(f"Route[{i}] references unknown destination site: '{route.to_site}'")
            if route.from_site == route.to_site:
                errors.append(f"Route[{i}] is a self-loop (from=to='{route.from_site}')")

        incident = self.get_site(self.incident_site)
        if incident is None:
            errors.append(f"Unknown incident site: '{self.incident_site}'")
        elif incident.type != SiteType.INCIDENT:
            errors.append(f"Site '{self.incident_site}' is not an incident site")

        if not self.hospitals:
            errors.append("At least one hospital is required")

        low, high = self.loading_time_mins
        if low < 0 or high < low:
            errors.append(f"Invalid loading time range: {self.loading_time_mins}")

        if errors:
            raise ValueError(
                f"Evacuation parameters failed validation with {len(errors)} error(s):\n"
                + "\n".join(f"  - {e}" for e in errors)
            )
        return self

    @property
    def hospitals(self) -> list[Site]:
        return [s for s in self.sites if s.type == SiteType.HOSPITAL]

    def get_site(self, site_id: str) -> Site | None:
        """Look up a site by its ID."""
        for site in self.sites:
            if site.id == site_id:
                return site
        return None

    def build_graph(self) -> nx.Graph:
        """Road network with ``effective_km`` edge weights."""
        graph = nx.Graph()
        for site in self.sites:
            graph.add_node(site.id, site=site)
        for route in self.routes:
            graph.add_edge(
                route.from_site,
                route.to_site,
                distance_km=route.distance_km,
                effective_km=route.effective_km,
            )
        return graph


# === Runtime state ===


@dataclass
class Victim:
    """Tracks a victim from the incident site to discharge."""

    id: str
    """Unique victim identifier"""

    severity: int
    """1 is most urgent"""

    collected_at: Optional[float] = None
    """When an ambulance finished loading the victim"""

    delivered_at: Optional[float] = None
    """When the victim arrived at a hospital"""

    treatment_started_at: Optional[float] = None
    """When a treatment slot was granted"""

    discharged_at: Optional[float] = None
    """When treatment finished"""

    ambulance: Optional[str] = None
    """Ambulance that carried the victim"""

    hospital: Optional[str] = None
    """Hospital site ID the victim was taken to"""

    def __str__(self) -> str:
        return f"victim {self.id} in state {self.severity}"

    @property
    def evacuated(self) -> bool:
        return self.delivered_at is not None

    @property
    def treatment_wait_mins(self) -> Optional[float]:
        """Time between arrival at the hospital and start of treatment."""
        if self.treatment_started_at is not None and self.delivered_at is not None:
            return self.treatment_started_at - self.delivered_at
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "victim_id": self.id,
            "severity": self.severity,
            "ambulance": self.ambulance,
            "hospital": self.hospital,
            "collected_at": self.collected_at,
            "delivered_at": self.delivered_at,
            "treatment_started_at": self.treatment_started_at,
            "discharged_at": self.discharged_at,
            "treatment_wait_mins": self.treatment_wait_mins,
        }


@dataclass
class EvacuationResult:
    """Outcome of one evacuation run."""

    victims: list[Victim]
    trips: dict[str, int]
    """Victims carried per ambulance"""

    end_time: float
    trace: Optional[EventTrace] = None

    @property
    def evacuated(self) -> list[Victim]:
        return [v for v in self.victims if v.evacuated]

    @property
    def remaining(self) -> list[Victim]:
        """Victims still at the incident site when the run ended."""
        return [v for v in self.victims if v.collected_at is None]

    def to_dataframe(self):
        """One row per victim."""
        import pandas as pd

        return pd.DataFrame([v.to_dict() for v in self.victims])


class _Evacuation:
    """Wires the network, hospitals and victims into one environment."""

    def __init__(self, env: Environment, params: EvacuationParams):
        self.env = env
        self.params = params
        self.graph = params.build_graph()
        self.site = Store(env)
        self.slots: dict[str, Resource] = {
            h.id: Resource(env, capacity=h.treatment_slots, priority_enabled=True)
            for h in params.hospitals
        }
        self.trips: dict[str, int] = {}

    def travel_time(self, from_site: str, to_site: str) -> float:
        """Travel time in minutes along the shortest route."""
        if from_site == to_site:
            return 0.0
        try:
            km = nx.shortest_path_length(self.graph, from_site, to_site, weight="effective_km")
        except nx.NetworkXNoPath:
            return float("inf")
        return km / self.params.speed_kmh * 60

    def nearest_hospital(self, from_site: str) -> Optional[str]:
        best_site = None
        best_time = float("inf")
        for hospital in self.params.hospitals:
            time = self.travel_time(from_site, hospital.id)
            if time < best_time:
                best_time = time
                best_site = hospital.id
        return best_site

    def ambulance(self, env: Environment, name: str, base: str) -> Generator:
        """Shuttle between the incident site and hospitals until nobody is left."""
        log = env.active_process.logger
        incident = self.params.incident_site
        location = base

        while self.site.items:
            log.info("{} moving to {}", name, incident)
            yield env.timeout(self.travel_time(location, incident))
            location = incident

            yield env.timeout(env.rng.uniform(*self.params.loading_time_mins))
            if not self.site.items:
                log.info("{} found nobody left on site", name)
                return

            # Triage: take the most urgent victim still waiting
            urgent = min(v.severity for v in self.site.items)
            victim = yield self.site.get(lambda v: v.severity == urgent)
            victim.collected_at = env.now
            victim.ambulance = name

            hospital = self.nearest_hospital(incident)
            if hospital is None:
                raise RuntimeError(f"No hospital reachable from {incident}")
            log.info("{} leaving site with {}", name, victim)
            yield env.timeout(self.travel_time(incident, hospital))
            location = hospital

            victim.delivered_at = env.now
            victim.hospital = hospital
            self.trips[name] = self.trips.get(name, 0) + 1
            log.info("{} at {} with {}", name, hospital, victim)
            env.process(self.treatment(env, victim, hospital), name=f"treatment_{victim.id}")

    def treatment(self, env: Environment, victim: Victim, hospital: str) -> Generator:
        """Wait for a treatment slot, most severe victims first."""
        site = self.params.get_site(hospital)
        with self.slots[hospital].request(priority=victim.severity) as req:
            yield req
            victim.treatment_started_at = env.now
            yield env.timeout(site.treatment_time_mins)
            victim.discharged_at = env.now


def run_evacuation(
    config: Optional[SimulationConfig] = None,
    params: Optional[EvacuationParams] = None,
) -> EvacuationResult:
    """Run one evacuation.

    Without a horizon in ``config`` the run ends when every victim has
    been treated.
    """
    config = config or SimulationConfig()
    params = params or EvacuationParams()

    env = Environment.from_config(config)
    model = _Evacuation(env, params)

    victims = [
        Victim(id=f"person_{i}", severity=env.rng.randint(1, params.severity_levels))
        for i in range(1, params.victims + 1)
    ]
    for victim in victims:
        model.site.put(victim)

    # Ambulances are based at hospitals that have a road to the incident
    bases = [
        h.id for h in params.hospitals
        if nx.has_path(model.graph, h.id, params.incident_site)
    ]
    if not bases:
        raise ValueError(f"No hospital is connected to {params.incident_site}")

    for i in range(1, params.ambulances + 1):
        name = f"ambulance_{i}"
        model.trips[name] = 0
        env.process(model.ambulance(env, name, env.rng.choice(bases)), name=name)

    env.run(until=config.until)
    env.logger.info(
        "{}/{} victims remaining on site",
        sum(1 for v in victims if v.collected_at is None),
        len(victims),
    )

    return EvacuationResult(
        victims=victims,
        trips=model.trips,
        end_time=env.now,
        trace=env.trace,
    )
