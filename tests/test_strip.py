import numpy as np
import pytest

from camspin.animation.strip import StripLayout
from camspin.config.settings import StripSettings


@pytest.fixture
def layout():
    return StripLayout(StripSettings(card_width=220, gap=40, viewport_width=1280))


def test_item_width(layout):
    assert layout.item_width == 260
    assert layout.strip_width(4) == 1040
    assert layout.indicator_x == 640


@pytest.mark.parametrize("index", [0, 1, 4])
def test_aligned_card_is_centred(layout, index):
    offset = layout.aligned_offset(index)
    card_centre = layout.slot_x(index, offset) + 220 / 2
    assert card_centre == layout.indicator_x


def test_aligned_offset_repeats_every_cycle(layout):
    offset = layout.aligned_offset(2) + 3 * layout.strip_width(5)
    assert layout.index_at_indicator(offset, 5) == 2


def test_index_at_indicator_rounds_to_nearest(layout):
    assert layout.index_at_indicator(0.0, 3) == 0
    assert layout.index_at_indicator(129.0, 3) == 0
    assert layout.index_at_indicator(131.0, 3) == 1
    assert layout.index_at_indicator(-260.0, 3) == 2
    assert layout.index_at_indicator(10.0, 0) == -1


def test_visible_slots_cover_viewport(layout):
    visible = layout.visible_slots(offset=1000.0, roster_size=3)

    assert len(visible) > 0
    assert visible.x.min() + 220 < 0
    assert visible.x.max() > 1280
    assert np.all(np.diff(visible.x) == 260)
    assert np.array_equal(visible.roster_indices, np.mod(visible.slots, 3))
    assert visible.roster_indices.min() >= 0
    assert visible.roster_indices.max() < 3


def test_visible_slots_negative_offset(layout):
    visible = layout.visible_slots(offset=-5000.0, roster_size=4)
    assert visible.roster_indices.min() >= 0
    assert visible.roster_indices.max() < 4


def test_visible_slots_empty_roster(layout):
    visible = layout.visible_slots(offset=0.0, roster_size=0)
    assert len(visible) == 0
