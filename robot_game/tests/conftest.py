import pytest

# 1 = road, 0 = empty, 4 = hazard
DEFAULT_ROWS = [
    [1, 1, 1, 1, 1],
    [1, 0, 4, 1, 1],
    [1, 1, 1, 1, 1],
    [1, 1, 1, 1, 1],
    [1, 1, 1, 1, 1],
]


def make_tiled_map(rows):
    height = len(rows)
    width = len(rows[0])
    return {
        "width": width,
        "height": height,
        "tilewidth": 128,
        "tileheight": 128,
        "layers": [
            {"type": "objectgroup", "name": "Objects", "objects": []},
            {
                "type": "tilelayer",
                "name": "Ground",
                "width": width,
                "height": height,
                "data": [value for row in rows for value in row],
            },
        ],
    }


@pytest.fixture
def tiled_map():
    return make_tiled_map(DEFAULT_ROWS)


@pytest.fixture
def battery_challenge():
    # Winning program: forward x2, collectYellow x2, forward x2, collectRed.
    return {
        "robot": {"tile": {"x": 0, "y": 2}, "direction": "east"},
        "batteries": [
            {"tiles": [{"x": 2, "y": 2, "count": 2, "type": "yellow"}]},
            {"type": "red", "tiles": [{"x": 4, "y": 2, "count": 1}]},
        ],
        "description": "Collect every battery",
    }


@pytest.fixture
def box_challenge():
    # Winning program: takeBox, forward x3, putBox.
    return {
        "robot": {"tile": {"x": 0, "y": 0}, "direction": "east"},
        "boxes": [{"tiles": [{"x": 1, "y": 0, "count": 1}]}],
        "victory": {"byType": [{"x": 4, "y": 0, "count": 1}], "description": "Deliver the box"},
    }


BATTERY_WIN_TOKENS = [
    "forward",
    "forward",
    "collectYellow",
    "collectYellow",
    "forward",
    "forward",
    "collectRed",
    "victory",
]

BOX_WIN_TOKENS = ["takeBox", "forward", "forward", "forward", "putBox"]


@pytest.fixture
def battery_win_tokens():
    return list(BATTERY_WIN_TOKENS)


@pytest.fixture
def box_win_tokens():
    return list(BOX_WIN_TOKENS)
