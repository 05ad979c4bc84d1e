"""
Skeleton recording: the joint frame store shared by every page.

A Recording is an ordered list of frames.  Each frame is a (J, 3) array of
joint positions in the column order given by `joint_index`, with a
parallel timestamp (seconds) and an integer key posture tag (0 = untagged).

File format (skeleton .skl and key frame .kf files are identical):
  timestamp,tag,Head_x,Head_y,Head_z,Neck_x,Neck_y,Neck_z,...
  0.0,0,0.012,0.524,2.103,...

Key functions:
  Recording.load(reader, append)  — overwrite- or append-load a CSV stream
  Recording.save(writer)          — write all frames, return frame count
  Recording.tagged_positions()    — (N, J, 3) positions of tagged frames
"""

import numpy as np
import pandas as pd

from keyframe_trainer.config import DEFAULT_JOINTS, JOINT_IDS
from keyframe_trainer.errors import RecordingParseError

AXES = ('x', 'y', 'z')


def joint_columns(joint_index: list[str]) -> list[str]:
    """CSV column names for the given joint order, without timestamp/tag."""
    return [f'{name}_{axis}' for name in joint_index for axis in AXES]


def _parse_header(columns: list[str]) -> list[str]:
    """Recover the joint index from a CSV header, or raise RecordingParseError."""
    if columns[:2] != ['timestamp', 'tag']:
        raise RecordingParseError(
            f'Expected "timestamp,tag" as first columns, got {columns[:2]}')

    coord_cols = columns[2:]
    if not coord_cols or len(coord_cols) % 3 != 0:
        raise RecordingParseError(
            f'Joint columns must come in x/y/z triples, got {len(coord_cols)}')

    joint_index = []
    for i in range(0, len(coord_cols), 3):
        name = coord_cols[i].rsplit('_', 1)[0]
        if name not in JOINT_IDS:
            raise RecordingParseError(f'Unknown joint column: {coord_cols[i]}')
        if coord_cols[i:i + 3] != joint_columns([name]):
            raise RecordingParseError(
                f'Malformed coordinate columns for {name}: {coord_cols[i:i + 3]}')
        joint_index.append(name)

    if len(set(joint_index)) != len(joint_index):
        raise RecordingParseError('Duplicate joint columns')
    return joint_index


class Recording:
    """Ordered skeleton frames plus their tags and timestamps."""

    def __init__(self, joint_index: list[str] | None = None):
        self.joint_index: list[str]       = list(joint_index or DEFAULT_JOINTS)
        self.frames:      list[np.ndarray] = []
        self.tags:        list[int]        = []
        self.timestamps:  list[float]      = []

    # ── Properties ────────────────────────────────────────────────────────

    @property
    def frame_count(self) -> int:
        return len(self.frames)

    @property
    def joint_count(self) -> int:
        return len(self.joint_index)

    @property
    def tagged_frame_count(self) -> int:
        return sum(1 for t in self.tags if t != 0)

    # ── Mutation ──────────────────────────────────────────────────────────

    def reset(self) -> None:
        """Discard every frame.  The joint index is kept until the next load."""
        self.frames     = []
        self.tags       = []
        self.timestamps = []

    def append_frame(self, positions, timestamp: float, tag: int = 0) -> None:
        positions = np.asarray(positions, dtype=np.float64)
        if positions.shape != (self.joint_count, 3):
            raise ValueError(
                f'Frame shape {positions.shape} does not match '
                f'({self.joint_count}, 3)')
        self.frames.append(positions)
        self.timestamps.append(float(timestamp))
        self.tags.append(int(tag))

    # ── File I/O ──────────────────────────────────────────────────────────

    def load(self, reader, append: bool = False) -> int:
        """
        Load frames from a CSV text stream.

        The stream is parsed and validated completely before the recording
        is touched, so a failed load leaves it exactly as it was.

        Args:
            reader : open text stream
            append : add the frames after the existing ones instead of
                     replacing them

        Returns:
            Number of frames read from the stream.
        """
        try:
            df = pd.read_csv(reader, float_precision='round_trip')
        except (pd.errors.EmptyDataError, pd.errors.ParserError,
                UnicodeDecodeError) as exc:
            raise RecordingParseError(f'Malformed skeleton file: {exc}') from exc

        joint_index = _parse_header([str(c) for c in df.columns])

        if df.isna().any().any():
            raise RecordingParseError('Skeleton file has missing values')
        try:
            values = df.to_numpy(dtype=np.float64)
        except (TypeError, ValueError) as exc:
            raise RecordingParseError(f'Non-numeric value: {exc}') from exc

        timestamps = values[:, 0]
        tags_f     = values[:, 1]
        if np.any(tags_f < 0) or np.any(tags_f != np.round(tags_f)):
            raise RecordingParseError('Tags must be non-negative integers')

        if append and self.frames and joint_index != self.joint_index:
            raise RecordingParseError(
                f'Joint index {joint_index} does not match the loaded '
                f'recording {self.joint_index}')

        n         = len(values)
        positions = values[:, 2:].reshape(n, len(joint_index), 3)

        # Commit
        if not append:
            self.reset()
        self.joint_index = joint_index
        self.frames.extend(positions[i] for i in range(n))
        self.timestamps.extend(float(t) for t in timestamps)
        self.tags.extend(int(t) for t in tags_f)
        return n

    def save(self, writer) -> int:
        """Write every frame as CSV to a text stream.  Returns frame count."""
        n = self.frame_count
        if n:
            table = np.stack(self.frames).reshape(n, -1)
        else:
            table = np.empty((0, self.joint_count * 3))

        df = pd.DataFrame(table, columns=joint_columns(self.joint_index))
        df.insert(0, 'tag',       np.asarray(self.tags, dtype=np.int64))
        df.insert(0, 'timestamp', np.asarray(self.timestamps, dtype=np.float64))
        df.to_csv(writer, index=False)
        return n

    # ── Views for training / evaluation ───────────────────────────────────

    def column_indices(self, joints: list[str] | None = None) -> list[int]:
        """Column positions of `joints` in this recording (all when empty)."""
        if not joints:
            return list(range(self.joint_count))
        missing = [j for j in joints if j not in self.joint_index]
        if missing:
            raise ValueError(f'Joints not present in the recording: {missing}')
        return [self.joint_index.index(j) for j in joints]

    def positions(
        self, joints: list[str] | None = None,
    ) -> tuple[np.ndarray, np.ndarray]:
        """
        All frames as arrays.

        Returns:
            positions  : (N, J', 3) float64
            timestamps : (N,) float64
        """
        cols = self.column_indices(joints)
        if not self.frames:
            return np.empty((0, len(cols), 3)), np.empty(0)
        return (np.stack(self.frames)[:, cols, :],
                np.asarray(self.timestamps, dtype=np.float64))

    def tagged_positions(
        self, joints: list[str] | None = None,
    ) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
        """
        Tagged frames only, in recording order.

        Returns:
            positions  : (N, J', 3) float64
            tags       : (N,) int64
            timestamps : (N,) float64
        """
        cols = self.column_indices(joints)
        idx  = [i for i, t in enumerate(self.tags) if t != 0]
        if not idx:
            return (np.empty((0, len(cols), 3)),
                    np.empty(0, dtype=np.int64), np.empty(0))

        positions = np.stack([self.frames[i] for i in idx])[:, cols, :]
        tags      = np.asarray([self.tags[i] for i in idx], dtype=np.int64)
        stamps    = np.asarray([self.timestamps[i] for i in idx])
        return positions, tags, stamps
