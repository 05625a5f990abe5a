"""Content registry -- stores abilities, jobs and enemy templates and builds
battle-ready :class:`Participant` instances from them.

The registry satisfies the
:class:`~autobattle.sim.collaborators.EntityFactory` protocol, so it can be
handed straight to a :class:`~autobattle.sim.battle.BattleSystem` for
summons.  Loading content from files is left to the caller; the registry
only accepts already-parsed models.
"""

from __future__ import annotations

import logging
import re
from typing import Iterable, Sequence

from autobattle.errors import ContentNotFoundError
from autobattle.ir.abilities import Ability, skill_id_for
from autobattle.ir.content import (
    EnemyDefinition,
    EnemySpawn,
    JobDefinition,
    PartyMemberDefinition,
)
from autobattle.ir.stats import Stats
from autobattle.sim.core.entities import Participant

logger = logging.getLogger(__name__)

_LEVEL_SCALING = 0.1
_NON_SLUG = re.compile(r"\s+")


def stats_for_level(base: Stats, level: int) -> Stats:
    """Scale every base stat by ``1 + (level - 1) * 0.1``, floored."""
    return base.scaled(1 + (level - 1) * _LEVEL_SCALING)


def _slug(name: str) -> str:
    return _NON_SLUG.sub("_", name.strip().lower())


class ContentRegistry:
    """Single source of truth for authored content during simulation.

    Usage::

        registry = ContentRegistry()
        registry.load_content(abilities=skills, jobs=jobs, enemies=templates)

        hero = registry.create_character(PartyMemberDefinition(name="Ayla", job="Knight"))
        slimes = registry.create_enemies_from_battle([EnemySpawn(type="Slime")] * 2)
    """

    def __init__(self) -> None:
        self.abilities: dict[str, Ability] = {}
        self.jobs: dict[str, JobDefinition] = {}
        self.enemies: dict[str, EnemyDefinition] = {}
        self._spawn_counts: dict[str, int] = {}

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register_ability(self, ability: Ability) -> None:
        self.abilities[ability.skill_id] = ability

    def register_job(self, job: JobDefinition) -> None:
        self.jobs[job.name] = job

    def register_enemy(self, enemy: EnemyDefinition) -> None:
        self.enemies[enemy.type] = enemy

    def load_content(
        self,
        abilities: Iterable[Ability] = (),
        jobs: Iterable[JobDefinition] = (),
        enemies: Iterable[EnemyDefinition] = (),
    ) -> None:
        """Register a batch of content.  Later entries replace earlier ones."""
        for ability in abilities:
            self.register_ability(ability)
        for job in jobs:
            self.register_job(job)
        for enemy in enemies:
            self.register_enemy(enemy)
        logger.debug(
            "Registry holds %d abilities, %d jobs, %d enemy types",
            len(self.abilities), len(self.jobs), len(self.enemies),
        )

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get_ability(self, skill_id: str) -> Ability | None:
        return self.abilities.get(skill_id_for(skill_id))

    def get_job(self, name: str) -> JobDefinition:
        job = self.jobs.get(name)
        if job is None:
            raise ContentNotFoundError(f"Job not found: {name}", {"job": name})
        return job

    def get_enemy_definition(self, enemy_type: str) -> EnemyDefinition:
        template = self.enemies.get(enemy_type)
        if template is None:
            raise ContentNotFoundError(
                f"Enemy type not found: {enemy_type}", {"enemy_type": enemy_type},
            )
        return template

    def list_jobs(self) -> list[str]:
        return sorted(self.jobs)

    def list_enemy_types(self) -> list[str]:
        return sorted(self.enemies)

    def list_abilities(self) -> list[str]:
        return sorted(self.abilities)

    def validate_skill_references(self, skill_ids: Sequence[str]) -> tuple[list[str], list[str]]:
        """Split *skill_ids* into ``(known, unknown)``."""
        known = [s for s in skill_ids if skill_id_for(s) in self.abilities]
        unknown = [s for s in skill_ids if skill_id_for(s) not in self.abilities]
        return known, unknown

    def _abilities_for(self, skill_ids: Sequence[str], owner: str) -> list[Ability]:
        found: list[Ability] = []
        for skill_id in skill_ids:
            ability = self.get_ability(skill_id)
            if ability is None:
                logger.warning("Skill %r not found for %s, skipping", skill_id, owner)
                continue
            found.append(ability)
        return found

    # ------------------------------------------------------------------
    # EntityFactory
    # ------------------------------------------------------------------

    def create_character(self, member: PartyMemberDefinition) -> Participant:
        """Build a party member at their level.

        Raises
        ------
        ContentNotFoundError
            If the member's job is not registered.
        """
        job = self.get_job(member.job)
        stats = stats_for_level(job.base_stats, member.level)
        return Participant(
            id=f"char_{_slug(member.name)}",
            name=member.name,
            type=job.name,
            job=job.name,
            level=member.level,
            current_stats=stats.model_copy(),
            max_stats=stats.model_copy(),
            abilities=self._abilities_for(job.skill_ids, member.name),
            rules=list(member.rules),
            is_enemy=False,
        )

    def create_enemy(self, enemy_type: str, name: str | None = None, level: int = 1) -> Participant:
        """Instantiate an enemy template.

        Unnamed enemies are numbered per type (``"Slime 1"``, ``"Slime 2"``),
        so the derived ids stay unique and deterministic.

        Raises
        ------
        ContentNotFoundError
            If *enemy_type* is not registered.
        """
        template = self.get_enemy_definition(enemy_type)
        if not name:
            count = self._spawn_counts.get(enemy_type, 0) + 1
            self._spawn_counts[enemy_type] = count
            name = f"{enemy_type} {count}"

        stats = stats_for_level(template.base_stats, level)
        return Participant(
            id=f"enemy_{_slug(name)}",
            name=name,
            type=template.type,
            job=template.job,
            level=level,
            current_stats=stats.model_copy(),
            max_stats=stats.model_copy(),
            abilities=self._abilities_for(template.skill_ids, name),
            rules=list(template.rules),
            is_enemy=True,
            is_boss=template.is_boss,
        )

    def create_enemies_from_battle(
        self,
        spawns: Sequence[EnemySpawn],
        level: int = 1,
    ) -> list[Participant]:
        return [self.create_enemy(spawn.type, spawn.name, level) for spawn in spawns]
