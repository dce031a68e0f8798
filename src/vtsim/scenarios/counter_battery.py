"""Counter-battery fire: an enemy battery shells, a friendly battery answers.

Every ``emission_interval`` the enemy battery receives a firing mission and
spreads its shots over the guns that can still fire. Each shot is heard by
an acoustic sensor shortly after it leaves the barrel; if a radar tracker is
free it is tasked, scans for a while and hands the friendly battery a
counter-battery mission on the shooter's position. Friendly impacts may
damage enemy guns. Once the enemy's firing capacity drops to ``stop_capacity``
or below, the run stops with a StopSimulation carrying the reason.

All times are in minutes.
"""

from dataclasses import dataclass, field
from typing import Generator, Optional

from pydantic import BaseModel, Field, model_validator

from vtsim.core import Environment
from vtsim.exceptions import StopSimulation
from vtsim.models.config import SimulationConfig
from vtsim.resources import Resource, Store
from vtsim.simulation.trace import EventTrace


class CounterBatteryParams(BaseModel):
    """Inputs of a counter-battery run."""

    # Order of battle
    enemy_guns: int = Field(4, ge=1, description="Guns in the enemy battery")
    friendly_guns: int = Field(4, ge=1, description="Guns in the friendly battery")
    radar_trackers: int = Field(1, ge=0, description="Shots the radar can track at once")

    # Missions
    emission_interval: float = Field(
        120.0,
        gt=0,
        description="Time between two enemy firing missions"
    )
    enemy_shots: tuple[int, int] = Field(
        (6, 12),
        description="Inclusive range of shots per enemy mission"
    )
    counter_shots: int = Field(12, ge=1, description="Shots per counter-battery mission")
    mission_validity: float = Field(
        5.0,
        gt=0,
        description="A mission older than this is discarded by the battery"
    )

    # Gun timings
    prepare_time: float = Field(5.0, ge=0, description="Bringing a gun into action")
    reload_time: float = Field(0.5, gt=0, description="Time between two shots of one gun")
    breakup_time: float = Field(5.0, ge=0, description="Taking a gun out of action")
    relocation_time: float = Field(10.0, ge=0, description="Moving the battery after a mission")

    # Sensing and effect
    time_of_flight: float = Field(1.0, gt=0, description="Time from firing to impact")
    acoustic_delay: float = Field(
        0.2,
        ge=0,
        description="Time for the sound of a shot to reach the acoustic sensor"
    )
    radar_scan_time: float = Field(2.0, gt=0, description="Radar tracking time per tasking")
    hit_probability: float = Field(0.3, ge=0, le=1, description="Chance an impact damages a gun")
    damage: float = Field(0.25, gt=0, le=1, description="Health lost by a damaged gun")
    operational_health: float = Field(
        1 / 3,
        ge=0,
        lt=1,
        description="A gun at or below this health can no longer fire"
    )
    stop_capacity: float = Field(
        0.5,
        ge=0,
        lt=1,
        description="Enemy firing capacity at or below which the run stops"
    )

    model_config = {"extra": "forbid"}

    @model_validator(mode="after")
    def validate_shot_range(self) -> "CounterBatteryParams":
        """Validate the enemy shot range."""
        low, high = self.enemy_shots
        if low < 1 or high < low:
            raise ValueError(f"Invalid enemy shot range {self.enemy_shots}")
        return self


# =============================================================================
# Runtime entities
# =============================================================================


@dataclass
class Gun:
    id: str
    health: float = 1.0
    shots: int = 0

    def can_fire(self, operational_health: float) -> bool:
        return self.health > operational_health


@dataclass(frozen=True)
class FiringMission:
    id: str
    issued_at: float
    shots: int


@dataclass
class Battery:
    """A named group of guns fed by a mission Store."""

    name: str
    guns: list[Gun]
    missions: Store
    missions_fired: int = 0
    missions_discarded: int = 0

    def __str__(self) -> str:
        return self.name

    def operational(self, operational_health: float) -> list[Gun]:
        return [g for g in self.guns if g.can_fire(operational_health)]

    def firing_capacity(self, operational_health: float) -> float:
        """Health of the guns that can still fire, as a fraction of the full battery."""
        return sum(g.health for g in self.operational(operational_health)) / len(self.guns)

    @property
    def shots(self) -> int:
        return sum(g.shots for g in self.guns)


@dataclass
class CounterBatteryResult:
    """Outcome of one counter-battery run."""

    stop_reason: Optional[str]
    """Why the run stopped, or None if the horizon came first"""

    end_time: float

    enemy_missions: int = 0
    counter_missions: int = 0
    untracked_detections: int = 0
    """Acoustic detections that found every radar tracker busy"""

    shots_fired: dict[str, int] = field(default_factory=dict)
    enemy_capacity: float = 1.0
    enemy_health: list[float] = field(default_factory=list)
    missions_discarded: dict[str, int] = field(default_factory=dict)
    trace: Optional[EventTrace] = None


# =============================================================================
# Model
# =============================================================================


class _Engagement:
    def __init__(self, env: Environment, params: CounterBatteryParams, result: CounterBatteryResult):
        self.env = env
        self.params = params
        self.result = result
        self.radar = Resource(env, capacity=params.radar_trackers)
        self.enemy = Battery(
            "enemy battery",
            [Gun(f"enemy_gun_{i}") for i in range(1, params.enemy_guns + 1)],
            Store(env),
        )
        self.friendly = Battery(
            "friendly battery",
            [Gun(f"friendly_gun_{i}") for i in range(1, params.friendly_guns + 1)],
            Store(env),
        )

    def emission(self) -> Generator:
        """Issue an enemy firing mission every ``emission_interval``."""
        env, params = self.env, self.params
        log = env.active_process.logger
        while True:
            yield env.timeout(params.emission_interval)
            if self.enemy.firing_capacity(params.operational_health) <= params.stop_capacity:
                log.warning("{} has no remaining firing capacity", self.enemy)
                raise StopSimulation(f"{self.enemy} has no remaining firing capacity")

            self.result.enemy_missions += 1
            mission = FiringMission(
                f"E{self.result.enemy_missions}",
                env.now,
                env.rng.randint(*params.enemy_shots),
            )
            log.info("New enemy mission {} ({} shots)", mission.id, mission.shots)
            yield self.enemy.missions.put(mission)

    def battery_cycle(self, battery: Battery, target: Optional[Battery]) -> Generator:
        """Take a valid mission, fire it with every operational gun, relocate."""
        env, params = self.env, self.params
        log = env.active_process.logger
        while True:
            mission = yield battery.missions.get()
            if env.now >= mission.issued_at + params.mission_validity:
                battery.missions_discarded += 1
                log.debug("Mission {} expired, waiting for a newer one", mission.id)
                continue

            guns = battery.operational(params.operational_health)
            if not guns:
                battery.missions_discarded += 1
                log.warning("{} cannot fire mission {}", battery, mission.id)
                continue

            base, extra = divmod(mission.shots, len(guns))
            fire_orders = [
                env.process(self.gun_cycle(battery, gun, base + (i < extra), target), name=gun.id)
                for i, gun in enumerate(guns)
                if base + (i < extra) > 0
            ]
            log.info("{} fires mission {} with {} guns", battery, mission.id, len(fire_orders))
            yield env.all_of(fire_orders)
            battery.missions_fired += 1

            yield env.timeout(params.relocation_time)

    def gun_cycle(self, battery: Battery, gun: Gun, shots: int, target: Optional[Battery]) -> Generator:
        env, params = self.env, self.params
        yield env.timeout(params.prepare_time)
        for _ in range(shots):
            if not gun.can_fire(params.operational_health):
                env.active_process.logger.warning("{} can no longer fire", gun.id)
                break
            gun.shots += 1
            env.process(self.shot(battery, target))
            yield env.timeout(params.reload_time)
        if gun.health > 0:
            yield env.timeout(params.breakup_time)

    def shot(self, battery: Battery, target: Optional[Battery]) -> Generator:
        """Follow one shot: acoustic detection of enemy fire, then impact."""
        env, params = self.env, self.params
        elapsed = 0.0
        if battery is self.enemy:
            yield env.timeout(params.acoustic_delay)
            elapsed = params.acoustic_delay
            env.process(self.acoustic_detection(), name="acoustic")
        yield env.timeout(max(params.time_of_flight - elapsed, 0))
        if target is not None:
            self.impact(target)

    def acoustic_detection(self) -> Generator:
        """Task the radar if a tracker is free, then issue a counter mission."""
        env, params = self.env, self.params
        log = env.active_process.logger
        if self.radar.level >= self.radar.capacity:
            self.result.untracked_detections += 1
            log.debug("No radar capacity available")
            return

        with self.radar.request() as tracker:
            yield tracker
            yield env.timeout(params.radar_scan_time)
            self.result.counter_missions += 1
            mission = FiringMission(f"CB{self.result.counter_missions}", env.now, params.counter_shots)
            log.info("Radar located the shooter, counter mission {}", mission.id)
            yield self.friendly.missions.put(mission)

    def impact(self, target: Battery) -> None:
        env, params = self.env, self.params
        alive = [g for g in target.guns if g.health > 0]
        if not alive or env.rng.random() >= params.hit_probability:
            return
        gun = env.rng.choice(alive)
        gun.health = max(gun.health - params.damage, 0.0)
        env.logger.debug("{} hit, health now {:.2f}", gun.id, gun.health)


def run_counter_battery(
    config: Optional[SimulationConfig] = None,
    params: Optional[CounterBatteryParams] = None,
) -> CounterBatteryResult:
    """Run the engagement until the enemy battery can no longer fire."""
    config = config or SimulationConfig()
    params = params or CounterBatteryParams()

    env = Environment.from_config(config)
    result = CounterBatteryResult(stop_reason=None, end_time=env.now)
    engagement = _Engagement(env, params, result)

    env.process(engagement.emission(), name="emission")
    env.process(engagement.battery_cycle(engagement.enemy, None), name="enemy_battery")
    env.process(
        engagement.battery_cycle(engagement.friendly, engagement.enemy),
        name="friendly_battery",
    )

    result.stop_reason = env.run(until=config.until)
    result.end_time = env.now
    result.shots_fired = {b.name: b.shots for b in (engagement.enemy, engagement.friendly)}
    result.enemy_capacity = engagement.enemy.firing_capacity(params.operational_health)
    result.enemy_health = [g.health for g in engagement.enemy.guns]
    result.missions_discarded = {
        b.name: b.missions_discarded for b in (engagement.enemy, engagement.friendly)
    }
    result.trace = env.trace
    return result
