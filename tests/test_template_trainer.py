import io

import numpy as np
import pytest

from keyframe_trainer.config import DEFAULT_MAX_GAP, MIN_THRESHOLD
from keyframe_trainer.data.synthetic_generator import generate_still, generate_wave
from keyframe_trainer.data.train_config import AlgorithmMode, TrainingConfigEntry
from keyframe_trainer.models.template_trainer import (
    GestureDetector, TemplateTrainer, choose_mode, joint_features,
)

from conftest import make_recording

ARM = ['Torso', 'RightShoulder', 'RightElbow', 'RightHand']


def _train(mode=AlgorithmMode.ABSOLUTE, joints=ARM, **wave):
    trainer = TemplateTrainer(generate_wave(**wave), joints, mode)
    return trainer.train('Wave')


def test_train_without_tags_fails():
    trainer = TemplateTrainer(make_recording([0, 0, 0]))
    with pytest.raises(ValueError):
        trainer.train('Nothing')


def test_train_with_unrecorded_joint_fails():
    trainer = TemplateTrainer(make_recording([1, 2]), ['LeftFoot'])
    with pytest.raises(ValueError):
        trainer.train('Nothing')


def test_one_template_per_tag():
    det = _train()
    np.testing.assert_array_equal(det.posture_tags, [1, 2])
    assert det.templates.shape == (2, len(ARM) * 3)
    assert det.joint_index == ARM
    assert np.all(det.thresholds >= MIN_THRESHOLD)


def test_empty_joint_index_uses_all_recorded_joints():
    rec = generate_wave(n_cycles=1)
    det = TemplateTrainer(rec).train('Wave')
    assert det.joint_index == rec.joint_index


def test_max_gap_from_posture_timing():
    det = _train(n_cycles=3, cycle_seconds=1.0)
    assert det.max_gap == pytest.approx(0.5 * 1.5)


def test_max_gap_defaults_with_single_posture():
    det = TemplateTrainer(make_recording([0, 1, 0, 1])).train('Pose')
    assert det.max_gap == DEFAULT_MAX_GAP


def test_apply_config_copies_settings():
    trainer = TemplateTrainer(generate_wave(n_cycles=1))
    trainer.apply_config(TrainingConfigEntry('Wave', ['Head'], AlgorithmMode.RELATIVE))
    assert trainer.joint_index == ['Head']
    assert trainer.mode is AlgorithmMode.RELATIVE


def test_relative_features_are_torso_centred():
    positions = np.array([[[1.0, 2.0, 3.0], [1.5, 2.0, 3.0]]])
    feats = joint_features(positions, AlgorithmMode.RELATIVE, ['Torso', 'RightHand'])
    np.testing.assert_allclose(feats, [[0.0, 0.0, 0.0, 0.5, 0.0, 0.0]])


def test_relative_features_fall_back_to_centroid():
    positions = np.array([[[0.0, 0.0, 0.0], [2.0, 0.0, 0.0]]])
    feats = joint_features(positions, AlgorithmMode.RELATIVE, ['LeftHand', 'RightHand'])
    np.testing.assert_allclose(feats, [[-1.0, 0.0, 0.0, 1.0, 0.0, 0.0]])


def test_detects_wave_and_ignores_still_pose():
    det = _train()
    wave = generate_wave(n_cycles=3, jitter=0.002, seed=7)
    assert len(det.detect_recording(wave)) == 3
    assert det.detect_recording(generate_still(jitter=0.002)) == []


def test_match_postures_marks_swing_extremes():
    det  = _train()
    wave = generate_wave(n_cycles=2)
    positions, _ = wave.positions(ARM)
    matched = det.match_postures(positions)
    tagged = np.nonzero(wave.tags)[0]
    np.testing.assert_array_equal(matched[tagged], np.asarray(wave.tags)[tagged])
    assert det.match_postures(np.empty((0, len(ARM), 3))).shape == (0,)


def test_slow_wave_exceeds_max_gap():
    det  = _train(cycle_seconds=1.0)
    slow = generate_wave(n_cycles=3, cycle_seconds=4.0)
    assert det.detect_recording(slow) == []


def test_relative_mode_tolerates_body_shift():
    shifted = generate_wave(n_cycles=3, offset=(0.5, 0.0, 2.2))
    assert len(_train(AlgorithmMode.RELATIVE).detect_recording(shifted)) == 3
    assert _train(AlgorithmMode.ABSOLUTE).detect_recording(shifted) == []


def test_auto_mode_resolves_to_a_concrete_mode():
    det = _train(AlgorithmMode.AUTO, jitter=0.003)
    assert det.mode in (AlgorithmMode.ABSOLUTE, AlgorithmMode.RELATIVE)


def test_choose_mode_needs_two_postures():
    positions = np.zeros((3, 2, 3))
    assert choose_mode(positions, np.array([1, 1, 1]), ['Head', 'Torso']) \
        is AlgorithmMode.ABSOLUTE


def test_choose_mode_prefers_relative_when_body_moves():
    # Same two postures recorded at two very different body positions:
    # absolute features cluster by position, relative ones by posture.
    a = generate_wave(n_cycles=2, offset=(0.0, 0.0, 2.0))
    b = generate_wave(n_cycles=2, offset=(1.5, 0.0, 3.5))
    pa, ta, _ = a.tagged_positions(ARM)
    pb, tb, _ = b.tagged_positions(ARM)
    mode = choose_mode(np.concatenate([pa, pb]), np.concatenate([ta, tb]), ARM)
    assert mode is AlgorithmMode.RELATIVE


def test_template_file_round_trip():
    det = _train(AlgorithmMode.RELATIVE)
    buf = io.StringIO()
    det.save_to_file(buf)
    buf.seek(0)
    back = GestureDetector.load_from_file(buf)

    assert back.name == 'Wave'
    assert back.mode is AlgorithmMode.RELATIVE
    assert back.joint_index == det.joint_index
    np.testing.assert_array_equal(back.posture_tags, det.posture_tags)
    np.testing.assert_allclose(back.templates, det.templates)
    np.testing.assert_allclose(back.thresholds, det.thresholds)
    assert back.max_gap == det.max_gap
