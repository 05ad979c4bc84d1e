import numpy as np
import pytest

from keyframe_trainer.data.recording import Recording
from keyframe_trainer.data.session import Session

JOINTS = ['Head', 'Torso', 'RightHand']


def make_recording(tags, joints=JOINTS, start=0.0, fps=30.0) -> Recording:
    """Recording with one frame per tag and easily recognisable positions."""
    rec = Recording(joints)
    for i, tag in enumerate(tags):
        pos = np.arange(len(joints) * 3, dtype=np.float64).reshape(-1, 3) + i / 7
        rec.append_frame(pos, start + i / fps, tag)
    return rec


def write_recording(path, rec: Recording) -> None:
    with open(path, 'w', newline='') as writer:
        rec.save(writer)


@pytest.fixture
def session(tmp_path):
    return Session(skel_root=tmp_path / 'skel', tmpl_root=tmp_path / 'tmpl')
