from types import SimpleNamespace

import pytest

from keyframe_trainer.data.annotation_tool import (
    TrainManagerApp, dispatch_key, wheel_axis,
)
from keyframe_trainer.data.avatar_view import AvatarJointView
from keyframe_trainer.data.keyframe_marker import KeyframeMarker

from conftest import make_recording


@pytest.fixture
def marker():
    m = KeyframeMarker(make_recording([0, 0, 0, 0, 0]), AvatarJointView())
    m.init()
    m.set_declared_tag_count('2')
    return m


def test_space_tags_and_arrows_step(marker):
    assert dispatch_key(marker, 'space')
    marker.scroll(0.3)
    assert dispatch_key(marker, 'space')
    assert marker.recording.tags == [1, 0, 0, 2, 0]

    assert dispatch_key(marker, 'Left')
    assert marker.cur_frame == 0
    assert dispatch_key(marker, 'Right')
    assert marker.cur_frame == 3


def test_digit_and_delete(marker):
    assert dispatch_key(marker, '4', '4')
    assert marker.recording.tags[0] == 4
    assert marker.declared_tag_count == 4
    assert dispatch_key(marker, 'Delete')
    assert marker.recording.tags[0] == 0


@pytest.mark.parametrize('keysym, char', [('0', '0'), ('a', 'a'), ('Shift_L', '')])
def test_other_keys_are_ignored(marker, keysym, char):
    assert not dispatch_key(marker, keysym, char)
    assert marker.recording.tags == [0] * 5


def test_wheel_axis():
    assert wheel_axis(120) == pytest.approx(0.1)
    assert wheel_axis(-240) == pytest.approx(-0.2)
    assert wheel_axis(num=4) == 0.1
    assert wheel_axis(num=5) == -0.1


def test_wheel_axis_small_deltas_count_as_one_notch(marker):
    assert wheel_axis(1) == pytest.approx(0.1)
    assert wheel_axis(-3) == pytest.approx(-0.1)
    assert wheel_axis(0) == 0.0

    assert marker.scroll(wheel_axis(1))
    assert marker.cur_frame == 1


class _Var:
    def __init__(self, value=''):
        self.value = value

    def get(self):
        return self.value

    def set(self, value):
        self.value = value


class _Text:
    def delete(self, start, end):
        pass

    def insert(self, index, text):
        pass


def test_count_field_follows_raised_count(marker):
    app = SimpleNamespace(marker=marker, count_var=_Var('2'),
                          mark_status=_Var(), info_text=_Text(),
                          list_text=_Text())
    app._refresh_text = lambda: TrainManagerApp._refresh_text(app)

    assert dispatch_key(marker, '5', '5')
    TrainManagerApp._refresh_text(app)
    assert app.count_var.get() == '5'

    # Leaving the entry re-applies the field, which must not undo the raise.
    TrainManagerApp._set_count(app)
    assert marker.declared_tag_count == 5
    assert marker.next_tag == 0
