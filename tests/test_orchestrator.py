import asyncio

import pytest

from multisport_scoring.engine import ScoreOrchestrator, ScoreStore, StageDefinition
from multisport_scoring.exceptions import (
    ConfigurationError,
    NotFoundError,
    StructureError,
    ValidationError,
)
from multisport_scoring.models import Event, EventStage
from multisport_scoring.scoring import ScoringMethod, ScoringMethodRegistry, SimpleResult


async def stored_score(database, stage_id, participant_id):
    async with database.get_session() as session:
        return await ScoreStore(session).get_score(stage_id, participant_id)


async def event_annotation(database, event_id):
    async with database.get_session() as session:
        event = await session.get(Event, event_id)
        return (event.meta or {}).get("results")


async def stage_annotation(database, stage_id):
    async with database.get_session() as session:
        stage = await session.get(EventStage, stage_id)
        return (stage.meta or {}).get("results")


@pytest.mark.asyncio
async def test_two_hole_golf_scenario(orchestrator, database, golf_event):
    a, b = golf_event.players["A"], golf_event.players["B"]
    hole1, hole2 = golf_event.stage(1), golf_event.stage(2)

    await orchestrator.set_stage_score(golf_event.event_id, hole1, a, 4)
    update = await orchestrator.set_stage_score(golf_event.event_id, hole1, b, 5)
    assert update.stage_result.get(a).place == 1
    assert update.stage_result.get(a).won
    assert update.stage_result.get(b).lost

    await orchestrator.set_stage_score(golf_event.event_id, hole2, a, 5)
    update = await orchestrator.set_stage_score(golf_event.event_id, hole2, b, 4)
    assert update.stage_result.get(b).place == 1
    assert update.stage_result.get(b).won

    event_result = update.event_result
    assert event_result.points() == {a: 9.0, b: 9.0}
    assert event_result.get(a).place == 1
    assert event_result.get(b).place == 1
    assert sorted(event_result.winners) == sorted([a, b])
    assert not event_result.get(a).won
    assert not event_result.get(b).won
    assert event_result.get(a).tied


@pytest.mark.asyncio
async def test_derived_fields_are_persisted(orchestrator, database, golf_event):
    a, b = golf_event.players["A"], golf_event.players["B"]
    hole1 = golf_event.stage(1)

    await orchestrator.set_stage_score(golf_event.event_id, hole1, a, 4)
    await orchestrator.set_stage_score(golf_event.event_id, hole1, b, 5)

    score_a = await stored_score(database, hole1, a)
    assert score_a.value == 4
    assert score_a.completed_at is not None
    assert score_a.points == 4.0
    assert score_a.won and not score_a.lost and not score_a.tied
    assert score_a.loss_margin == 1.0
    assert score_a.place == 1
    assert score_a.meta["placeFromEnd"] == 2
    assert score_a.meta["scoreType"] == "par"
    assert score_a.meta["stats"]["toPar"] == 0

    score_b = await stored_score(database, hole1, b)
    assert score_b.lost
    assert score_b.meta["scoreType"] == "bogey"
    assert score_b.win_margin == 1.0

    annotation = await event_annotation(database, golf_event.event_id)
    assert annotation["winners"] == [a]
    assert annotation["participantResults"][b]["points"] == 5.0


@pytest.mark.asyncio
async def test_invalid_value_leaves_state_unchanged(orchestrator, database, golf_event):
    a, b = golf_event.players["A"], golf_event.players["B"]
    hole1 = golf_event.stage(1)

    await orchestrator.set_stage_score(golf_event.event_id, hole1, a, 4)
    await orchestrator.set_stage_score(golf_event.event_id, hole1, b, 5)
    before = await stored_score(database, hole1, a)
    annotation_before = await event_annotation(database, golf_event.event_id)

    for bad in ["four", 0, -2, 4.5, None, True]:
        with pytest.raises(ValidationError) as excinfo:
            await orchestrator.set_stage_score(golf_event.event_id, hole1, a, bad)
        assert excinfo.value.scoring_method == "stroke_play"

    after = await stored_score(database, hole1, a)
    assert after.value == 4
    assert after.points == before.points
    assert after.won == before.won
    assert after.meta == before.meta
    assert after.completed_at == before.completed_at
    assert await event_annotation(database, golf_event.event_id) == annotation_before


@pytest.mark.asyncio
async def test_missing_event_stage_or_participant(orchestrator, golf_event):
    a = golf_event.players["A"]
    hole1 = golf_event.stage(1)

    with pytest.raises(NotFoundError) as excinfo:
        await orchestrator.set_stage_score("no-such-event", hole1, a, 4)
    assert excinfo.value.entity == "Event"

    with pytest.raises(NotFoundError) as excinfo:
        await orchestrator.set_stage_score(golf_event.event_id, "no-such-stage", a, 4)
    assert excinfo.value.entity == "EventStage"

    with pytest.raises(NotFoundError) as excinfo:
        await orchestrator.set_stage_score(golf_event.event_id, hole1, "stranger", 4)
    assert excinfo.value.entity == "EventParticipant"


@pytest.mark.asyncio
async def test_stage_of_another_event_is_not_found(orchestrator, builder, golf_event):
    other = await builder.replay(golf_event)

    with pytest.raises(NotFoundError):
        await orchestrator.set_stage_score(other.event_id, golf_event.stage(1), other.players["A"], 4)


@pytest.mark.asyncio
async def test_unregistered_scoring_method_is_a_configuration_error(database, golf_event):
    orchestrator = ScoreOrchestrator(database, ScoringMethodRegistry())

    with pytest.raises(ConfigurationError):
        await orchestrator.set_stage_score(golf_event.event_id, golf_event.stage(1), golf_event.players["A"], 4)

    with pytest.raises(ConfigurationError):
        await orchestrator.get_event_scores(golf_event.event_id)


@pytest.mark.asyncio
async def test_stroke_play_does_not_propagate(orchestrator, golf_event):
    update = await orchestrator.set_stage_score(
        golf_event.event_id, golf_event.stage(1), golf_event.players["A"], 4
    )
    assert update.recomputed_stage_ids == [golf_event.stage(1)]


@pytest.mark.asyncio
async def test_editing_an_earlier_hole_leaves_later_stored_results_current(orchestrator, database, golf_event):
    a = golf_event.players["A"]
    hole1, hole2 = golf_event.stage(1), golf_event.stage(2)

    await orchestrator.set_stage_score(golf_event.event_id, hole2, a, 5)
    await orchestrator.set_stage_score(golf_event.event_id, hole1, a, 4)

    stored = await stored_score(database, hole2, a)
    recomputed = (await orchestrator.get_event_scores(golf_event.event_id)).stage_results[hole2].get(a)

    assert stored.points == recomputed.points == 5.0
    assert stored.meta["stats"] == recomputed.stats
    assert stored.meta["scoreType"] == recomputed.score_type
    assert stored.place == recomputed.place


@pytest.mark.asyncio
async def test_cumulative_strokes_rescores_later_holes(orchestrator, database, builder, make_holes):
    built = await builder.build(make_holes(3, "cumulative_strokes"), event_method="cumulative_strokes")
    a, b = built.players["A"], built.players["B"]

    for number, (value_a, value_b) in enumerate([(4, 5), (3, 3), (5, 4)], start=1):
        await orchestrator.set_stage_score(built.event_id, built.stage(number), a, value_a)
        await orchestrator.set_stage_score(built.event_id, built.stage(number), b, value_b)

    update = await orchestrator.set_stage_score(built.event_id, built.stage(1), a, 7)

    assert update.recomputed_stage_ids == [built.stage(1), built.stage(2), built.stage(3)]
    assert (await stored_score(database, built.stage(3), a)).points == 15.0
    assert (await stored_score(database, built.stage(3), b)).points == 12.0
    assert update.event_result.winners == [b]


@pytest.mark.asyncio
async def test_match_play_cascades_to_later_holes(orchestrator, database, builder, make_holes):
    match = await builder.build(make_holes(3, "match_play"), event_method="match_play")
    a, b = match.players["A"], match.players["B"]
    h1, h2, h3 = match.stage(1), match.stage(2), match.stage(3)

    for stage_id, (value_a, value_b) in [(h1, (4, 5)), (h2, (4, 4)), (h3, (5, 4))]:
        await orchestrator.set_stage_score(match.event_id, stage_id, a, value_a)
        await orchestrator.set_stage_score(match.event_id, stage_id, b, value_b)

    hole3 = await stored_score(database, h3, a)
    assert hole3.meta["stats"]["holesWon"] == 1.5
    assert hole3.meta["stats"]["holesUp"] == 0.0
    hole2_before = await stored_score(database, h2, a)

    update = await orchestrator.set_stage_score(match.event_id, h1, a, 6)

    assert update.recomputed_stage_ids == [h1, h2, h3]
    assert update.stage_result.winners == [b]

    hole3 = await stored_score(database, h3, a)
    assert hole3.meta["stats"]["holesWon"] == 0.5
    assert hole3.meta["stats"]["holesUp"] == -2.0
    hole2 = await stored_score(database, h2, a)
    assert hole2.meta["stats"]["holesWon"] == 0.5
    assert hole2.points == hole2_before.points

    assert update.event_result.points() == {a: 0.5, b: 2.5}
    assert update.event_result.get(b).won

    # Earlier holes are left alone when a later one changes
    hole1_before = await stored_score(database, h1, a)
    update = await orchestrator.set_stage_score(match.event_id, h2, a, 3)
    assert update.recomputed_stage_ids == [h2, h3]
    hole1_after = await stored_score(database, h1, a)
    assert hole1_after.meta == hole1_before.meta
    assert hole1_after.updated_at == hole1_before.updated_at


class FragileMethod(ScoringMethod):
    """Propagating method that cannot score a stage after a 13."""

    name = "fragile"
    higher_points_better = False
    propagates_to_sibling_stages = True

    def value_to_points(self, value):
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(value)
        return float(value)

    def score_stage(self, info):
        for previous in info.previous_stage_results:
            if 13.0 in previous.points().values():
                raise RuntimeError("unlucky")
        return super().score_stage(info)


@pytest.mark.asyncio
async def test_failed_cascade_rolls_back_every_write(orchestrator, database, registry, builder, make_holes):
    registry.register(FragileMethod())
    built = await builder.build(make_holes(2, "fragile"), event_method="fragile")
    a = built.players["A"]

    await orchestrator.set_stage_score(built.event_id, built.stage(2), a, 4)
    annotation_before = await event_annotation(database, built.event_id)

    with pytest.raises(RuntimeError):
        await orchestrator.set_stage_score(built.event_id, built.stage(1), a, 13)

    assert await stored_score(database, built.stage(1), a) is None
    assert (await stored_score(database, built.stage(2), a)).points == 4.0
    assert await event_annotation(database, built.event_id) == annotation_before


def tennis_match_stages():
    return [
        StageDefinition(name=f"Set {s}", number=s, score_format="tennis_set", children=[
            StageDefinition(name=f"Game {g}", number=g, score_format="tennis_game") for g in range(1, 4)
        ])
        for s in range(1, 3)
    ]


@pytest.mark.asyncio
async def test_tennis_games_roll_up_into_sets_and_match(orchestrator, database, builder):
    match = await builder.build(tennis_match_stages(), event_method="tennis_match", sport="Tennis")
    a, b = match.players["A"], match.players["B"]

    games = {
        (1, 1): (4, 2), (1, 2): (4, 1), (1, 3): (2, 4),
        (2, 1): (4, 1), (2, 2): (1, 4), (2, 3): (4, 2),
    }
    for path, (points_a, points_b) in games.items():
        await orchestrator.set_stage_score(match.event_id, match.stage(*path), a, points_a)
        update = await orchestrator.set_stage_score(match.event_id, match.stage(*path), b, points_b)

    assert update.event_result.points() == {a: 2.0, b: 0.0}
    assert update.event_result.get(a).won
    assert update.event_result.get(a).stats == {"gamesWon": 4.0}
    assert update.event_result.get(b).stats == {"gamesWon": 2.0}

    set_one = await stage_annotation(database, match.stage(1))
    assert set_one["winners"] == [a]
    assert set_one["participantResults"][a]["points"] == 2.0
    assert set_one["participantResults"][b]["points"] == 1.0

    scores = await orchestrator.get_event_scores(match.event_id)
    assert list(scores.stage_results) == [match.stage(*path) for path in
                                          [(1,), (1, 1), (1, 2), (1, 3), (2,), (2, 1), (2, 2), (2, 3)]]
    assert scores.stage_results[match.stage(2)].winners == [a]


@pytest.mark.asyncio
async def test_composite_stage_takes_no_direct_scores(orchestrator, builder):
    match = await builder.build(tennis_match_stages(), event_method="tennis_match", sport="Tennis")

    with pytest.raises(StructureError):
        await orchestrator.set_stage_score(match.event_id, match.stage(1), match.players["A"], 6)


@pytest.mark.asyncio
async def test_get_event_scores_is_idempotent_and_read_only(orchestrator, database, golf_event):
    a, b = golf_event.players["A"], golf_event.players["B"]
    await orchestrator.set_stage_score(golf_event.event_id, golf_event.stage(1), a, 3)
    await orchestrator.set_stage_score(golf_event.event_id, golf_event.stage(1), b, 4)
    await orchestrator.set_stage_score(golf_event.event_id, golf_event.stage(2), a, 3)

    annotation = await event_annotation(database, golf_event.event_id)
    first = await orchestrator.get_event_scores(golf_event.event_id)
    second = await orchestrator.get_event_scores(golf_event.event_id)

    assert first.to_dict() == second.to_dict()
    assert first.event_result.to_dict() == annotation
    assert await event_annotation(database, golf_event.event_id) == annotation
    assert first.event_result.get(a).stats == {"holesPlayed": 2, "toPar": -1}


@pytest.mark.asyncio
async def test_event_points_are_the_sum_of_stage_points(orchestrator, builder):
    stages = [StageDefinition(name=f"Round {n}", number=n, score_format="points") for n in range(1, 4)]
    quiz = await builder.build(stages, event_method="points", players=("A", "B", "C"), sport="Trivia")

    recorded = {
        (1, "A"): 7, (1, "B"): 9, (1, "C"): 3,
        (2, "A"): 8, (2, "C"): 10,
        (3, "B"): 5, (3, "C"): 1.5,
    }
    for (number, player), value in recorded.items():
        await orchestrator.set_stage_score(quiz.event_id, quiz.stage(number), quiz.players[player], value)

    scores = await orchestrator.get_event_scores(quiz.event_id)
    expected = {}
    for (number, player), value in recorded.items():
        expected[quiz.players[player]] = expected.get(quiz.players[player], 0.0) + value

    assert scores.event_result.points() == expected
    assert scores.event_result.winners == [quiz.players["A"]]


@pytest.mark.asyncio
async def test_concurrent_submissions_for_one_event_are_serialized(orchestrator, builder, make_holes):
    players = [f"P{n}" for n in range(8)]
    built = await builder.build(make_holes(2, "stroke_play"), event_method="stroke_play", players=players)

    await asyncio.gather(*[
        orchestrator.set_stage_score(built.event_id, built.stage(1), built.players[name], n + 2)
        for n, name in enumerate(players)
    ])

    scores = await orchestrator.get_event_scores(built.event_id)
    assert len(scores.stage_results[built.stage(1)]) == len(players)
    assert scores.event_result.winners == [built.players["P0"]]
    assert len(orchestrator._locks) == 0


@pytest.mark.asyncio
async def test_custom_scoring_method_drives_stage_results(orchestrator, registry, builder, make_holes):
    class Closest(ScoringMethod):
        name = "closest_to_pin"
        higher_points_better = False

        def value_to_points(self, value):
            return abs(float(value["feet"]))

        def score_stage(self, info):
            result = SimpleResult()
            for pid, value in info.values.items():
                result.points[pid] = self.value_to_points(value)
                result.score_types[pid] = "gimme" if result.points[pid] < 3 else ""
            return result

    registry.register(Closest())
    built = await builder.build(make_holes(1, "closest_to_pin"), event_method="closest_to_pin")
    a, b = built.players["A"], built.players["B"]

    await orchestrator.set_stage_score(built.event_id, built.stage(1), a, {"feet": 2.5})
    update = await orchestrator.set_stage_score(built.event_id, built.stage(1), b, {"feet": 14})

    assert update.stage_result.winners == [a]
    assert update.stage_result.get(a).score_type == "gimme"
    assert update.stage_result.get(a).value == {"feet": 2.5}

    with pytest.raises(ValidationError):
        await orchestrator.set_stage_score(built.event_id, built.stage(1), a, {"yards": 3})
