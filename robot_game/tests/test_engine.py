from robot_game.sim.config import load_world
from robot_game.sim.engine import SimulationEngine
from robot_game.sim.entities import Position
from robot_game.sim.program import compile_tokens


def _run(tiled_map, challenge, tokens, **kwargs):
    world = load_world(tiled_map, challenge)
    engine = SimulationEngine(world, **kwargs)
    return world, engine.run(compile_tokens(tokens))


def test_battery_program_wins(tiled_map, battery_challenge, battery_win_tokens):
    world, result = _run(tiled_map, battery_challenge, battery_win_tokens)
    assert result.is_victory
    assert result.reason is None
    assert result.robot["inventory"]["batteries"] == {"red": 1, "yellow": 2, "green": 0}
    assert world.game_state == "won"
    assert result.actions[0] == {"type": "forward", "count": 2}


def test_stopping_short_is_victory_not_met(tiled_map, battery_challenge):
    world, result = _run(tiled_map, battery_challenge, ["forward", "forward", "collectYellow", "collectYellow"])
    assert not result.is_victory
    assert result.reason == "victory_not_met"
    assert result.victory["missing"] == {"red": 1, "yellow": 0, "green": 0}
    assert world.game_state == "lost"


def test_forward_stops_on_first_failed_move(tiled_map, battery_challenge):
    tokens = ["forward", "forward", "turnLeft", "forward", "forward", "turnRight"]
    world, result = _run(tiled_map, battery_challenge, tokens)
    assert result.reason == "invalid_move"
    assert result.step == 3
    assert result.failed_action == {"type": "forward", "count": 2}
    assert world.get_first_robot().position == Position(2, 1)


def test_collect_count_must_match_tile(tiled_map, battery_challenge):
    _, result = _run(tiled_map, battery_challenge, ["forward", "forward", "collectYellow"])
    assert result.reason == "battery_count_mismatch"


def test_collect_on_empty_tile(tiled_map, battery_challenge):
    _, result = _run(tiled_map, battery_challenge, ["forward", "collectGreen"])
    assert result.reason == "no_battery"


def test_collect_wrong_color(tiled_map, battery_challenge):
    _, result = _run(tiled_map, battery_challenge, ["forward", "forward", "collectRed", "collectRed"])
    assert result.reason == "wrong_battery_color"


def test_forbidden_battery_loses(tiled_map, battery_challenge):
    battery_challenge["batteries"][1]["tiles"][0]["allowedCollect"] = False
    tokens = ["forward", "forward", "collectYellow", "collectYellow", "forward", "forward", "collectRed"]
    world, result = _run(tiled_map, battery_challenge, tokens)
    assert result.reason == "forbidden_battery"
    assert world.get_batteries_at_position(4, 2)[0].is_collected is False


def test_silent_run_never_notifies_observer(tiled_map, battery_challenge, battery_win_tokens):
    seen = []
    world = load_world(tiled_map, battery_challenge, battery_observer=lambda b, visible: seen.append(visible))
    result = SimulationEngine(world, silent=True).run(compile_tokens(battery_win_tokens))
    assert result.is_victory
    assert seen == []


def test_interactive_run_feeds_step_sink(tiled_map, battery_challenge, battery_win_tokens):
    seen = []
    steps = []
    world = load_world(tiled_map, battery_challenge, battery_observer=lambda b, visible: seen.append(visible))
    engine = SimulationEngine(world, step_sink=steps.append)
    engine.run(compile_tokens(battery_win_tokens))
    assert seen == [False, False, False]
    assert [step["step"] for step in steps] == [1, 2, 3, 4]
    assert all(step["success"] for step in steps)


def test_box_program_wins(tiled_map, box_challenge, box_win_tokens):
    world, result = _run(tiled_map, box_challenge, box_win_tokens)
    assert result.is_victory
    placed = world.get_placed_boxes_at_position(4, 0)
    assert len(placed) == 1
    assert world.get_first_robot().inventory.boxes == 0


def test_take_box_needs_a_box_in_front(tiled_map, box_challenge):
    _, result = _run(tiled_map, box_challenge, ["turnRight", "takeBox"])
    assert result.reason == "no_box"


def test_put_box_needs_a_carried_box(tiled_map, box_challenge):
    _, result = _run(tiled_map, box_challenge, ["putBox"])
    assert result.reason == "no_box_carried"


def test_put_box_only_on_targets(tiled_map, box_challenge):
    _, result = _run(tiled_map, box_challenge, ["takeBox", "turnRight", "putBox"])
    assert result.reason == "invalid_box_placement"


def test_put_box_off_the_map(tiled_map, box_challenge):
    _, result = _run(tiled_map, box_challenge, ["takeBox", "turnLeft", "putBox"])
    assert result.reason == "invalid_box_placement"


def test_empty_program_is_judged_immediately(tiled_map, battery_challenge):
    _, result = _run(tiled_map, battery_challenge, ["victory"])
    assert result.reason == "victory_not_met"
    assert result.total_steps == 0


def test_stepwise_execution_matches_run(tiled_map, battery_challenge, battery_win_tokens):
    world = load_world(tiled_map, battery_challenge)
    engine = SimulationEngine(world, silent=True)
    engine.start(compile_tokens(battery_win_tokens))
    results = [engine.step() for _ in range(4)]
    assert results[:3] == [None, None, None]
    assert results[3].is_victory
    assert engine.done
    assert engine.snapshot()["gameState"] == "won"
