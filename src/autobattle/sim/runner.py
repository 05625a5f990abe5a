"""Batch simulation -- replay one encounter across many seeds.

``BatchRunner`` rebuilds the party and enemies from the registry for every
seed, so each run starts from identical content and differs only in its
random draws.
"""

from __future__ import annotations

import logging
import multiprocessing
from typing import Sequence

from autobattle.config import BattleConfig
from autobattle.ir.content import EnemySpawn, PartyMemberDefinition
from autobattle.sim.battle import BattleSystem
from autobattle.sim.content.registry import ContentRegistry
from autobattle.sim.core.rng import CombatRNG
from autobattle.sim.loot import TableLootSystem
from autobattle.sim.telemetry import BattleTelemetry, collect_battle_telemetry

logger = logging.getLogger(__name__)


def run_single_battle(
    registry: ContentRegistry,
    party: Sequence[PartyMemberDefinition],
    spawns: Sequence[EnemySpawn],
    seed: int,
    level: int = 1,
    config: BattleConfig | None = None,
) -> BattleTelemetry:
    """Run one seeded battle from content definitions."""
    rng = CombatRNG(seed)
    allies = [registry.create_character(member) for member in party]
    enemies = registry.create_enemies_from_battle(spawns, level)
    party_hp_start = sum(a.current_stats.hp for a in allies)

    system = BattleSystem(
        rng,
        config=config,
        entity_factory=registry,
        loot_system=TableLootSystem(rng.fork("loot")),
    )
    state = system.initialize_battle(allies, enemies)
    result = system.simulate_full_battle()
    return collect_battle_telemetry(seed, state, result, party_hp_start)


def _worker_run_single(
    args: tuple[ContentRegistry, list[PartyMemberDefinition], list[EnemySpawn], int, int, BattleConfig | None],
) -> BattleTelemetry:
    """Top-level worker so it can be pickled by multiprocessing."""
    registry, party, spawns, seed, level, config = args
    return run_single_battle(registry, party, spawns, seed, level, config)


class BatchRunner:
    """Runs many seeded replays of one encounter, optionally in parallel."""

    def __init__(self, registry: ContentRegistry, config: BattleConfig | None = None) -> None:
        self.registry = registry
        self.config = config

    def run_batch(
        self,
        n_runs: int,
        party: Sequence[PartyMemberDefinition],
        spawns: Sequence[EnemySpawn],
        base_seed: int = 42,
        level: int = 1,
        parallel: bool = False,
    ) -> list[BattleTelemetry]:
        """Run *n_runs* battles with seeds ``base_seed .. base_seed + n_runs - 1``."""
        seeds = [base_seed + i for i in range(n_runs)]
        logger.info("Running %d battles (parallel=%s)", n_runs, parallel)

        if parallel and n_runs > 1:
            work_items = [
                (self.registry, list(party), list(spawns), seed, level, self.config)
                for seed in seeds
            ]
            n_workers = min(len(seeds), multiprocessing.cpu_count() or 1)
            with multiprocessing.Pool(processes=n_workers) as pool:
                return pool.map(_worker_run_single, work_items)

        return [
            run_single_battle(self.registry, party, spawns, seed, level, self.config)
            for seed in seeds
        ]
