#!/usr/bin/env python3
"""Run a small world for two simulated weeks and print the daily metrics."""

from worldsim.core.config import WorldConfig
from worldsim.core.interventions import cultivate, provision
from worldsim.core.simulation import Simulation


def main():
    config = WorldConfig(
        world_name="demo",
        settlement_count=3,
        agents_per_settlement=30,
        random_seed=7,
    )
    days = 14

    print(f"=== Crossworlds: {config.world_name} ===")
    print(f"Settlements: {config.settlement_count}")
    print(f"Agents: {config.settlement_count * config.agents_per_settlement}")
    print(f"Days: {days}")
    print()

    sim = Simulation.seeded(config)
    start_crowns = sim.total_crowns()

    # A harvest boost for the first settlement and a grain drop for the second
    sim.submit(cultivate(1, 1.5, 7))
    sim.submit(provision(2, "grain", 100))

    sim.run_ticks(days * config.ticks_per_day)

    print(f"{'Day':>4} {'Pop':>5} {'Deaths':>6} {'Mood':>7} {'Surv':>6} "
          f"{'Coher':>6} {'Crowns':>7} {'Trade':>6} {'Gini':>5}")
    print("-" * 64)
    for m in sim.metrics_history:
        print(
            f"{m.tick // config.ticks_per_day:4d} {m.population:5d} {m.deaths:6d} "
            f"{m.avg_effective_mood:7.3f} {m.avg_survival:6.3f} "
            f"{m.avg_coherence:6.3f} {m.total_crowns:7d} {m.trade_volume:6d} "
            f"{m.gini:5.2f}"
        )

    print()
    print(f"=== Final State ({sim.sim_time}) ===")
    print(f"Crowns: {start_crowns} -> {sim.total_crowns()} "
          f"(wages minted: {sim.actions.wages_minted})")
    for s in sim.settlements_snapshot():
        print(f"  {s['name']:12s} pop={s['population']:4d} treasury={s['treasury']:5d} "
              f"health={s['health']:.2f}")

    print("\nEvents:")
    for e in sim.events_snapshot():
        print(f"  [{e['sim_time']}] {e['description']}")


if __name__ == "__main__":
    main()
