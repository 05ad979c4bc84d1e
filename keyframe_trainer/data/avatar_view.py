"""
Joint view shared between the key frame marker and the avatar renderer.

The marker is the only writer: on every cursor move it repoints the slots
of the recorded joints at the selected frame.  Slots hold read-only numpy
views into the recording, never copies, and joints outside the recording's
joint index keep whatever they pointed at before.
"""

import numpy as np

from keyframe_trainer.config import JOINT_IDS, N_JOINT_SLOTS


class AvatarJointView:
    """Joint positions indexed by OpenNI joint id, read by the renderer."""

    def __init__(self, n_slots: int = N_JOINT_SLOTS):
        self.slots: list[np.ndarray | None] = [None] * n_slots
        self.frame_idx: int | None = None

    def refresh(self, recording, frame_idx: int) -> None:
        """Point the recorded joints' slots at frame `frame_idx`."""
        if not 0 <= frame_idx < recording.frame_count:
            return
        frame = recording.frames[frame_idx]
        for col, name in enumerate(recording.joint_index):
            row = frame[col]              # basic indexing → view, no copy
            row.flags.writeable = False
            self.slots[JOINT_IDS[name]] = row
        self.frame_idx = frame_idx

    def __getitem__(self, joint) -> np.ndarray | None:
        if isinstance(joint, str):
            joint = JOINT_IDS[joint]
        return self.slots[joint]
