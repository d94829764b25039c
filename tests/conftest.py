# tests/conftest.py
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import pytest
import pytest_asyncio

from multisport_scoring.config import EngineConfig
from multisport_scoring.db import Database
from multisport_scoring.engine import ScoreOrchestrator, StageDefinition, StructureService
from multisport_scoring.models import Participant, VenueEventFormat
from multisport_scoring.scoring import ScoringMethodRegistry, register_builtin_methods

StagePath = Tuple[int, ...]


@dataclass
class BuiltEvent:
    """Ids of one event created through the structure service."""
    event_id: str
    layout_id: str
    players: Dict[str, str] = field(default_factory=dict)
    stages: Dict[StagePath, str] = field(default_factory=dict)
    venue_stages: Dict[StagePath, str] = field(default_factory=dict)

    def stage(self, *path: int) -> str:
        return self.stages[path]


def _format_names(definitions: Iterable[StageDefinition]) -> List[str]:
    names = []
    for definition in definitions:
        if isinstance(definition.score_format, str):
            names.append(definition.score_format)
        names.extend(_format_names(definition.children))
    return names


class EventBuilder:
    """
    Builds sports, layouts and events for tests.

    Score formats are named after the scoring method they bind, so stage
    definitions can refer to e.g. ``score_format="tennis_game"``.
    """

    def __init__(self, database: Database, registry: ScoringMethodRegistry):
        self.database = database
        self.registry = registry
        self._formats = set()
        self._count = 0

    async def _ensure_formats(self, structure: StructureService, names: Iterable[str]):
        for name in names:
            if name not in self._formats:
                await structure.create_score_format(name, name)
                self._formats.add(name)

    async def build(self, stages: Sequence[StageDefinition], event_method: str,
                    players: Sequence[str] = ("A", "B"), sport: str = "Golf",
                    overrides: Optional[Dict[StagePath, dict]] = None,
                    start_time: Optional[datetime] = None) -> BuiltEvent:
        async with self.database.get_session() as session:
            structure = StructureService(session, self.registry)
            sport_row = await structure.register_sport(sport)
            await self._ensure_formats(structure, [event_method] + _format_names(stages))

            self._count += 1
            event_format = await structure.create_event_format(
                f"{sport} format {self._count}", sport_row, event_method, stages
            )
            venue = await structure.create_venue(f"{sport} venue")
            layout = await structure.create_venue_event_format(venue, event_format, stage_overrides=overrides)
            participants = [await structure.create_participant(name) for name in players]
            event = await structure.create_event(layout, participants, start_time=start_time)
            built = await self._describe(structure, event.id, layout.id, participants)
        return built

    async def replay(self, built: BuiltEvent, start_time: Optional[datetime] = None) -> BuiltEvent:
        """Another event on the same layout with the same players."""
        async with self.database.get_session() as session:
            structure = StructureService(session, self.registry)
            layout = await session.get(VenueEventFormat, built.layout_id)
            participants = [await session.get(Participant, pid) for pid in built.players.values()]
            event = await structure.create_event(layout, participants, start_time=start_time)
            replayed = await self._describe(structure, event.id, layout.id, participants)
        return replayed

    @staticmethod
    async def _describe(structure: StructureService, event_id: str, layout_id: str,
                        participants: Sequence[Participant]) -> BuiltEvent:
        built = BuiltEvent(event_id=event_id, layout_id=layout_id,
                           players={participant.name: participant.id for participant in participants})
        paths: Dict[str, StagePath] = {}
        for stage in await structure.get_event_stages(event_id):
            path = (paths[stage.parent_id] if stage.parent_id else ()) + (stage.number,)
            paths[stage.id] = path
            built.stages[path] = stage.id
            built.venue_stages[path] = stage.venue_event_format_stage_id
        return built


def holes(count: int, score_format: Optional[str] = None) -> List[StageDefinition]:
    return [StageDefinition(name=f"Hole {n}", number=n, score_format=score_format) for n in range(1, count + 1)]


@pytest.fixture
def registry():
    return register_builtin_methods(ScoringMethodRegistry())


@pytest_asyncio.fixture
async def database():
    database = Database("sqlite+aiosqlite:///:memory:")
    await database.initialize(max_retries=1)
    await database.create_tables()
    yield database
    await database.drop_tables()
    await database.close()


@pytest.fixture
def engine_config():
    return EngineConfig(lock_per_event=True, annotation_key="results", freeze_registry=False)


@pytest.fixture
def orchestrator(database, registry, engine_config):
    return ScoreOrchestrator(database, registry, engine_config)


@pytest.fixture
def builder(database, registry):
    return EventBuilder(database, registry)


@pytest_asyncio.fixture
async def golf_event(builder):
    """Two holes of stroke play (par 4 and par 3) between players A and B."""
    return await builder.build(
        holes(2, "stroke_play"),
        event_method="stroke_play",
        overrides={(1,): {"metadata": {"par": 4}, "distance": 350}, (2,): {"metadata": {"par": 3}}},
    )


@pytest.fixture
def make_holes():
    return holes
