import pytest
from sqlalchemy import select, func

from multisport_scoring.engine import StageDefinition, StructureService
from multisport_scoring.exceptions import ConfigurationError, NotFoundError, StructureError
from multisport_scoring.models import Event, EventParticipant, EventStage, Participant, Sport, VenueEventFormatStage
from multisport_scoring.scoring.methods import PointsMethod


def tennis_sets():
    return [
        StageDefinition(name=f"Set {s}", number=s, score_format="tennis_set", children=[
            StageDefinition(name=f"Game {g}", number=g, score_format="tennis_game") for g in range(1, 4)
        ])
        for s in range(1, 3)
    ]


@pytest.mark.asyncio
async def test_register_sport_is_idempotent(database, registry):
    async with database.get_session() as session:
        structure = StructureService(session, registry)
        first = await structure.register_sport("Golf")
        second = await structure.register_sport("Golf")

        assert first.id == second.id
        assert await session.scalar(select(func.count(Sport.id))) == 1


@pytest.mark.asyncio
async def test_register_sport_registers_scoring_methods(database, registry):
    darts = PointsMethod(name="darts", higher_points_better=True)

    async with database.get_session() as session:
        structure = StructureService(session, registry)
        await structure.register_sport("Darts", scoring_methods=[darts])
        await structure.register_sport("Darts", scoring_methods=[darts])

    assert registry.get("darts") is darts


@pytest.mark.asyncio
async def test_score_format_requires_registered_method(database, registry):
    async with database.get_session() as session:
        structure = StructureService(session, registry)
        with pytest.raises(ConfigurationError):
            await structure.create_score_format("Stableford", "stableford")


@pytest.mark.asyncio
async def test_duplicate_score_format_name_is_rejected(database, registry):
    async with database.get_session() as session:
        structure = StructureService(session, registry)
        await structure.create_score_format("Stroke Play", "stroke_play")
        with pytest.raises(StructureError):
            await structure.create_score_format("Stroke Play", "match_play")


@pytest.mark.asyncio
async def test_duplicate_top_level_stage_numbers_are_rejected(database, registry, make_holes):
    stages = make_holes(2) + [StageDefinition(name="Hole 2 again", number=2)]

    async with database.get_session() as session:
        structure = StructureService(session, registry)
        with pytest.raises(StructureError):
            await structure.create_event_format("Broken", None, None, stages)


@pytest.mark.asyncio
async def test_duplicate_child_stage_numbers_are_rejected(database, registry):
    stages = [StageDefinition(name="Set 1", number=1, children=[
        StageDefinition(name="Game 1", number=1),
        StageDefinition(name="Game 1 again", number=1),
    ])]

    async with database.get_session() as session:
        structure = StructureService(session, registry)
        with pytest.raises(StructureError):
            await structure.create_event_format("Broken", None, None, stages)


@pytest.mark.asyncio
async def test_unknown_score_format_name(database, registry, make_holes):
    async with database.get_session() as session:
        structure = StructureService(session, registry)
        with pytest.raises(NotFoundError):
            await structure.create_event_format("Round", None, "missing", make_holes(1))


@pytest.mark.asyncio
async def test_venue_and_event_mirror_the_template_tree(builder, database):
    built = await builder.build(tennis_sets(), event_method="tennis_match", sport="Tennis",
                                overrides={(2, 3): {"name": "Deciding game", "distance": 23.77}})

    assert sorted(built.stages) == [(1,), (1, 1), (1, 2), (1, 3), (2,), (2, 1), (2, 2), (2, 3)]

    async with database.get_session() as session:
        venue_stage = await session.get(VenueEventFormatStage, built.venue_stages[(2, 3)])
        assert venue_stage.name == "Deciding game"
        assert venue_stage.distance == 23.77

        event_stage = await session.get(EventStage, built.stage(2, 3))
        assert event_stage.parent_id == built.stage(2)
        assert event_stage.number == 3

        entered = await session.scalar(
            select(func.count(EventParticipant.id)).where(EventParticipant.event_id == built.event_id)
        )
        assert entered == 2


@pytest.mark.asyncio
async def test_team_membership_rules(database, registry):
    async with database.get_session() as session:
        structure = StructureService(session, registry)
        team = await structure.create_participant("Pairs", is_team=True)
        player = await structure.create_participant("Alice")

        member = await structure.add_team_member(team, player)
        assert member.team_id == team.id

        with pytest.raises(StructureError):
            await structure.add_team_member(team, player)
        with pytest.raises(StructureError):
            await structure.add_team_member(player, team)


@pytest.mark.asyncio
async def test_participant_enters_an_event_once(database, registry, golf_event):
    async with database.get_session() as session:
        structure = StructureService(session, registry)
        event_stages = await structure.get_event_stages(golf_event.event_id)
        assert [stage.number for stage in event_stages] == [1, 2]

        event = await session.get(Event, golf_event.event_id)
        player = await session.get(Participant, golf_event.players["A"])

        with pytest.raises(StructureError):
            await structure.add_event_participant(event, player)


@pytest.mark.asyncio
async def test_event_stages_of_unknown_event(database, registry):
    async with database.get_session() as session:
        with pytest.raises(NotFoundError):
            await StructureService(session, registry).get_event_stages("nope")
