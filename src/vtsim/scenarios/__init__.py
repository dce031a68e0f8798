"""Reference models built on the public engine API.

Every runner takes an optional SimulationConfig first, so it can be
handed straight to ``run_replications``; use ``functools.partial`` to fix
custom parameters.
"""

from vtsim.scenarios.assembly import AssemblyParams, AssemblyResult, run_assembly
from vtsim.scenarios.counter_battery import (
    CounterBatteryParams,
    CounterBatteryResult,
    run_counter_battery,
)
from vtsim.scenarios.evacuation import (
    EvacuationParams,
    EvacuationResult,
    Route,
    Site,
    SiteType,
    Victim,
    run_evacuation,
)
from vtsim.scenarios.sandwich_shop import (
    ArrivalWindow,
    MenuItem,
    SandwichShopParams,
    SandwichShopResult,
    run_sandwich_shop,
)

__all__ = [
    # Assembly
    "AssemblyParams",
    "AssemblyResult",
    "run_assembly",
    # Counter-battery
    "CounterBatteryParams",
    "CounterBatteryResult",
    "run_counter_battery",
    # Evacuation
    "EvacuationParams",
    "EvacuationResult",
    "Route",
    "Site",
    "SiteType",
    "Victim",
    "run_evacuation",
    # Sandwich shop
    "ArrivalWindow",
    "MenuItem",
    "SandwichShopParams",
    "SandwichShopResult",
    "run_sandwich_shop",
]
