from datetime import datetime

import pytest

from keyframe_trainer.config import TMPL_FILE_SUFFIX, TRAIN_CONFIG_NAME
from keyframe_trainer.data.recording import Recording
from keyframe_trainer.data.synthetic_generator import write_training_set
from keyframe_trainer.models.template_trainer import GestureDetector
from keyframe_trainer.models.train import TemplateTrainerPanel, main, template_path

NOW = datetime(2025, 1, 2, 3, 4, 5)


@pytest.fixture
def panel(session):
    write_training_set(session.skel_root, n_files=3, n_cycles=3)
    p = TemplateTrainerPanel(Recording(), session)
    p.init()
    return p


# ── Filename policy ───────────────────────────────────────────────────────────

def test_template_path_new_file(tmp_path):
    assert template_path(tmp_path, 'Wave', now=NOW) == tmp_path / 'Wave.tmpl'


def test_template_path_keeps_existing_suffix(tmp_path):
    assert template_path(tmp_path, 'Wave.tmpl', now=NOW) == tmp_path / 'Wave.tmpl'


def test_template_path_existing_file_without_overwrite(tmp_path):
    (tmp_path / 'Wave.tmpl').write_text('{}')
    assert template_path(tmp_path, 'Wave', now=NOW) == \
        tmp_path / 'gesture template 25-01-02-03-04-05.tmpl'


def test_template_path_existing_file_with_overwrite(tmp_path):
    (tmp_path / 'Wave.tmpl').write_text('{}')
    assert template_path(tmp_path, 'Wave', overwrite=True, now=NOW) == \
        tmp_path / 'Wave.tmpl'


def test_template_path_fallback_name_taken(tmp_path):
    (tmp_path / 'Wave.tmpl').write_text('{}')
    (tmp_path / 'gesture template 25-01-02-03-04-05.tmpl').write_text('{}')
    assert template_path(tmp_path, 'Wave', now=NOW).name == \
        'gesture template 25-01-02-03-04-05 (1).tmpl'

    (tmp_path / 'gesture template 25-01-02-03-04-05 (1).tmpl').write_text('{}')
    assert template_path(tmp_path, '', now=NOW).name == \
        'gesture template 25-01-02-03-04-05 (2).tmpl'


def test_template_path_without_name(tmp_path):
    assert template_path(tmp_path, '', now=NOW).name == \
        'gesture template 25-01-02-03-04-05.tmpl'


# ── Training page ─────────────────────────────────────────────────────────────

def test_init_points_at_config(panel):
    assert str(panel.config_path) in panel.status
    assert panel.config_path.name == TRAIN_CONFIG_NAME


def test_load_config_reports_key_frames(panel):
    assert panel.load_config('Wave')
    assert panel.status == '18 key frames loaded for Wave'
    assert len(panel.events) == 3
    assert panel.trainer.joint_index == ['Torso', 'RightShoulder',
                                         'RightElbow', 'RightHand']
    assert panel.session.default_file_name == 'Wave'


def test_load_config_requires_name(panel):
    assert not panel.load_config('')
    assert panel.status == 'Please enter the name of the gesture'


def test_load_config_unknown_gesture(panel):
    assert not panel.load_config('Jump')
    assert panel.status.startswith('Jump: error occurred when loading training config')
    assert panel.recording.frame_count == 0


def test_load_config_without_config_file(session):
    p = TemplateTrainerPanel(Recording(), session)
    assert not p.load_config('Wave')
    assert 'error occurred' in p.status


def test_train_requires_tagged_frames(panel):
    assert not panel.train_and_save('Wave')
    assert panel.status == 'Please load skeleton data with key frames before training.'
    assert not panel.session.tmpl_root.exists()


def test_train_and_save_policy(panel):
    panel.load_config('Wave')
    tmpl_root = panel.session.tmpl_root

    assert panel.train_and_save('Wave')
    assert panel.status.endswith(f'saved to Wave{TMPL_FILE_SUFFIX}')
    with open(tmpl_root / f'Wave{TMPL_FILE_SUFFIX}') as reader:
        det = GestureDetector.load_from_file(reader)
    assert det.name == 'Wave'
    assert det.n_postures == 2

    assert panel.train_and_save('Wave')
    assert 'gesture template' in panel.status
    assert len(list(tmpl_root.glob(f'*{TMPL_FILE_SUFFIX}'))) == 2

    assert panel.train_and_save('Wave', overwrite=True)
    assert panel.status.endswith(f'overwritten to Wave{TMPL_FILE_SUFFIX}')


def test_cli_trains_template(session, capsys):
    write_training_set(session.skel_root, n_files=2, n_cycles=2)
    code = main(['--gesture', 'Wave',
                 '--skel-root', str(session.skel_root),
                 '--tmpl-root', str(session.tmpl_root)])
    out = capsys.readouterr().out

    assert code == 0
    assert '8 key frames loaded for Wave' in out
    assert (session.tmpl_root / f'Wave{TMPL_FILE_SUFFIX}').exists()


def test_cli_fails_on_unknown_gesture(session, capsys):
    write_training_set(session.skel_root, n_files=1, n_cycles=1)
    assert main(['--gesture', 'Jump', '--skel-root', str(session.skel_root)]) == 1
