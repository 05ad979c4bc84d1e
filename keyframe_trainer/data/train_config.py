"""
Training config loader: build a training recording for one gesture.

The training config is a text file of gesture blocks:

  @Wave
  Head, RightShoulder, RightElbow, RightHand
  relative
  wave session 1
  wave session 2.kf

  @Push
  ...

Block layout: the "@<name>" line, a comma/space separated joint list
(empty = default joints), the algorithm ("", absolute, relative or auto,
case-insensitive), then key frame file names up to a blank line or EOF.
The ".kf" suffix is added when missing.

Key functions:
  parse_joint_index(line)      — joint list line → joint names
  parse_algorithm_mode(line)   — algorithm line → AlgorithmMode
  load_train_config(...)       — find the block, merge its key frame files
"""

import enum
import re
from dataclasses import dataclass, field
from pathlib import Path

from keyframe_trainer.config import JOINT_IDS, JOINT_NAMES, KF_FILE_SUFFIX
from keyframe_trainer.data.recording import Recording
from keyframe_trainer.errors import (
    GestureNotFoundError, UnknownAlgorithmError, UnknownJointError,
)


class AlgorithmMode(enum.Enum):
    ABSOLUTE = 'absolute'
    RELATIVE = 'relative'
    AUTO     = 'auto'


@dataclass
class TrainingConfigEntry:
    gesture_name:        str
    joint_index:         list[str]     = field(default_factory=list)
    algorithm_mode:      AlgorithmMode = AlgorithmMode.ABSOLUTE
    keyframe_file_names: list[str]     = field(default_factory=list)


@dataclass
class TrainLoadResult:
    entry:        TrainingConfigEntry
    total_tagged: int
    events:       list[str]


# ── Line parsers ──────────────────────────────────────────────────────────────

def parse_joint_index(line: str) -> list[str]:
    """
    Parse a joint list line.  Tokens are joint names or numeric joint ids.

    Raises:
        UnknownJointError on the first unrecognised token.
    """
    joints = []
    for token in re.split(r'[,\s]+', line.strip()):
        if not token:
            continue
        if token in JOINT_IDS:
            joints.append(token)
        elif token.isdigit() and int(token) in JOINT_NAMES:
            joints.append(JOINT_NAMES[int(token)])
        else:
            raise UnknownJointError(token)
    return joints


def parse_algorithm_mode(line: str) -> AlgorithmMode:
    token = line.strip().lower()
    if token == '':
        return AlgorithmMode.ABSOLUTE
    try:
        return AlgorithmMode(token)
    except ValueError:
        raise UnknownAlgorithmError(line.strip()) from None


def _next_line(reader) -> str | None:
    """Next line without its line terminator, or None at EOF."""
    line = reader.readline()
    if line == '':
        return None
    return line.rstrip('\r\n')


# ── Loader ────────────────────────────────────────────────────────────────────

def read_gesture_header(reader, gesture_name: str) -> TrainingConfigEntry:
    """
    Scan forward to "@<gesture_name>" and parse the joint and algorithm lines.

    The reader is left positioned on the first key frame file line.
    """
    marker = '@' + gesture_name
    while True:
        line = _next_line(reader)
        if line is None:
            raise GestureNotFoundError(gesture_name)
        if line == marker:
            break

    joints = parse_joint_index(_next_line(reader) or '')
    mode   = parse_algorithm_mode(_next_line(reader) or '')
    return TrainingConfigEntry(gesture_name, joints, mode)


def load_train_config(
    reader,
    gesture_name: str,
    recording: Recording,
    skel_root: Path,
) -> TrainLoadResult:
    """
    Load every key frame file listed for `gesture_name` into `recording`.

    The recording is reset only once the gesture header parsed; a missing
    gesture or a bad joint/algorithm line leaves it untouched.  A key frame
    file that is missing or corrupt is reported in the events and skipped.

    Args:
        reader       : open text stream on the training config
        gesture_name : block to load (without the "@")
        recording    : target recording, reset then appended to
        skel_root    : directory holding the key frame files

    Returns:
        TrainLoadResult(entry, total tagged frames, event lines)
    """
    entry = read_gesture_header(reader, gesture_name)
    recording.reset()

    events: list[str] = []
    last_total = total = 0
    while True:
        line = _next_line(reader)
        if line is None or line == '':
            break

        filename = line if line.endswith(KF_FILE_SUFFIX) else line + KF_FILE_SUFFIX
        entry.keyframe_file_names.append(filename)
        try:
            with open(Path(skel_root) / filename) as kf_reader:
                recording.load(kf_reader, append=True)
        except (OSError, ValueError) as exc:
            events.append(f'{filename}: error occurred when loading file ({exc})')
            continue

        total = recording.tagged_frame_count
        events.append(f'{total - last_total} key frames loaded from {filename}')
        last_total = total

    return TrainLoadResult(entry, total, events)
