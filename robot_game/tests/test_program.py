from robot_game.sim.program import compile_program, compile_tokens, parse_program


def _dicts(actions):
    return [action.to_dict() for action in actions]


def test_tokens_coalesce_forward_and_same_color_collect():
    tokens = ["forward", "forward", "turnLeft", "collectYellow", "collectYellow", "victory"]
    assert _dicts(compile_tokens(tokens)) == [
        {"type": "forward", "count": 2},
        {"type": "turnLeft"},
        {"type": "collect", "count": 2, "color": "yellow"},
    ]


def test_terminal_and_unknown_tokens_do_not_break_a_run():
    tokens = ["forward", "victory", "jump", "forward", "defeat"]
    assert _dicts(compile_tokens(tokens)) == [{"type": "forward", "count": 2}]


def test_color_change_and_turns_flush_pending():
    tokens = ["collectRed", "collectGreen", "forward", "turnBack", "forward"]
    assert _dicts(compile_tokens(tokens)) == [
        {"type": "collect", "count": 1, "color": "red"},
        {"type": "collect", "count": 1, "color": "green"},
        {"type": "forward", "count": 1},
        {"type": "turnBack"},
        {"type": "forward", "count": 1},
    ]


def test_box_tokens_are_single_actions():
    tokens = ["takeBox", "forward", "forward", "putBox", "putBox"]
    assert _dicts(compile_tokens(tokens)) == [
        {"type": "takeBox"},
        {"type": "forward", "count": 2},
        {"type": "putBox"},
        {"type": "putBox"},
    ]


def test_structured_program_defaults_and_skips():
    program = {
        "version": "1.0",
        "programName": "demo",
        "actions": [
            {"type": "forward", "count": "3"},
            {"type": "forward", "count": "abc"},
            {"type": "collect"},
            {"type": "collect", "color": "red", "count": 2},
            {"type": "fly"},
            {"count": 2},
            {"type": "turnRight"},
        ],
    }
    assert _dicts(parse_program(program)) == [
        {"type": "forward", "count": 3},
        {"type": "forward", "count": 1},
        {"type": "collect", "count": 1, "color": "green"},
        {"type": "collect", "count": 2, "color": "red"},
        {"type": "turnRight"},
    ]


def test_structured_actions_are_not_coalesced():
    program = {"actions": [{"type": "forward"}, {"type": "forward"}]}
    assert len(parse_program(program)) == 2


def test_compile_program_accepts_every_shape():
    assert _dicts(compile_program(["forward", "forward"])) == [{"type": "forward", "count": 2}]
    assert _dicts(compile_program([{"type": "turnLeft"}])) == [{"type": "turnLeft"}]
    assert _dicts(compile_program({"actions": [{"type": "takeBox"}]})) == [{"type": "takeBox"}]
    assert compile_program("forward") == []
    assert compile_program({"actions": "nope"}) == []
