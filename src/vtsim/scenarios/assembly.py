"""Assembly line: machines make parts, a combiner assembles them.

Each machine produces one kind of part at a fixed pace and puts it into a
shared warehouse (a Store). The combiner asks the warehouse for one part
of every kind, waits until all of them are available, and puts one
assembled product into the output Container. The run stops as soon as
the output container is full.
"""

from dataclasses import dataclass, field
from typing import Generator, Optional

from pydantic import BaseModel, Field

from vtsim.core import Environment
from vtsim.exceptions import StopSimulation
from vtsim.models.config import SimulationConfig
from vtsim.resources import Container, Store
from vtsim.simulation.trace import EventTrace


class AssemblyParams(BaseModel):
    """Inputs of an assembly run."""

    production_times: dict[str, float] = Field(
        default_factory=lambda: {"nut": 1.0, "bolt": 2.0, "rivet": 4.0, "beam": 6.0},
        min_length=1,
        description="Time to make one part, per part kind"
    )
    target: int = Field(
        10,
        ge=1,
        description="Capacity of the output container; the run stops when it is full"
    )

    model_config = {"extra": "forbid"}


@dataclass(frozen=True)
class Part:
    kind: str
    serial_number: str

    def __str__(self) -> str:
        return f"{self.kind} with serial N° {self.serial_number}"


@dataclass
class Machine:
    """Produces one kind of part forever."""

    id: str
    kind: str
    production_time: float
    produced: int = 0

    def run(self, env: Environment, warehouse: Store) -> Generator:
        log = env.active_process.logger
        while True:
            yield env.timeout(self.production_time)
            self.produced += 1
            part = Part(self.kind, f"{self.id}-{self.produced:04d}")
            log.debug("{} produced a {}", self.id, part)
            yield warehouse.put(part)


def combiner(env: Environment, warehouse: Store, kinds: list[str], output: Container) -> Generator:
    """Assemble one of each part kind into a product until ``output`` is full."""
    log = env.active_process.logger
    while True:
        requests = [warehouse.get(lambda p, kind=kind: p.kind == kind) for kind in kinds]
        yield env.all_of(requests)
        log.debug("Got all required parts: {}", ", ".join(str(r.value) for r in requests))

        yield output.put(1)
        if output.level == output.capacity:
            log.info("Combiner made all products in {} time units", env.now)
            raise StopSimulation(env.now)
        log.debug("Current container level {}", output.level)


@dataclass
class AssemblyResult:
    """Outcome of one assembly run."""

    finish_time: Optional[float]
    """Time the output container filled up, or None if the horizon came first"""

    products: float
    """Output container level at the end of the run"""

    produced: dict[str, int] = field(default_factory=dict)
    """Parts made per machine"""

    in_stock: dict[str, int] = field(default_factory=dict)
    """Parts left in the warehouse per kind"""

    trace: Optional[EventTrace] = None


def run_assembly(
    config: Optional[SimulationConfig] = None,
    params: Optional[AssemblyParams] = None,
) -> AssemblyResult:
    """Run the assembly line until the output container is full."""
    config = config or SimulationConfig()
    params = params or AssemblyParams()

    env = Environment.from_config(config)
    warehouse = Store(env)
    output = Container(env, capacity=params.target)

    kinds = list(params.production_times)
    machines = [
        Machine(f"machine_{i}", kind, production_time)
        for i, (kind, production_time) in enumerate(params.production_times.items(), start=1)
    ]
    for machine in machines:
        env.process(machine.run(env, warehouse), name=machine.id)
    env.process(combiner(env, warehouse, kinds, output), name="combiner")

    finish_time = env.run(until=config.until)

    in_stock = {kind: 0 for kind in kinds}
    for part in warehouse.items:
        in_stock[part.kind] += 1

    return AssemblyResult(
        finish_time=finish_time,
        products=output.level,
        produced={m.id: m.produced for m in machines},
        in_stock=in_stock,
        trace=env.trace,
    )
