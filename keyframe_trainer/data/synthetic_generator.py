"""
Synthetic skeleton recordings for trying out the marker and trainer.

Generates a standing skeleton waving its right hand.  The forearm swings
left-right around the raised elbow; the two extremes of each swing are
tagged as key postures 1 (hand left) and 2 (hand right), so the files
can be fed straight into the training config loader.

Each recording:
  frames     : DEFAULT_JOINTS positions in metres (sensor coordinates)
  timestamps : seconds, `fps` frames per second
  tags       : 1 / 2 on the swing extremes, 0 elsewhere

Usage:
    python -m keyframe_trainer.data.synthetic_generator
    python -m keyframe_trainer.data.synthetic_generator --n-files 5 --cycles 4
    python -m keyframe_trainer.data.synthetic_generator --out skeleton_data
"""

import argparse
from pathlib import Path

import numpy as np
from tqdm import tqdm

from keyframe_trainer.config import (
    DEFAULT_JOINTS, KF_FILE_SUFFIX, SKEL_ROOT, TRAIN_CONFIG_NAME,
)
from keyframe_trainer.data.recording import Recording

# ── Body model ────────────────────────────────────────────────────────────────
# Rest pose relative to the torso, metres.  x → subject's right, y → up.

REST_POSE = {
    'Head':          (0.00,  0.55, 0.0),
    'Neck':          (0.00,  0.40, 0.0),
    'Torso':         (0.00,  0.00, 0.0),
    'LeftShoulder':  (-0.20, 0.40, 0.0),
    'LeftElbow':     (-0.25, 0.12, 0.0),
    'LeftHand':      (-0.27, -0.15, 0.0),
    'RightShoulder': (0.20,  0.40, 0.0),
    'RightElbow':    (0.25,  0.12, 0.0),
    'RightHand':     (0.27, -0.15, 0.0),
    'LeftHip':       (-0.12, -0.30, 0.0),
    'LeftKnee':      (-0.13, -0.75, 0.0),
    'LeftFoot':      (-0.14, -1.15, 0.0),
    'RightHip':      (0.12, -0.30, 0.0),
    'RightKnee':     (0.13, -0.75, 0.0),
    'RightFoot':     (0.14, -1.15, 0.0),
}

RAISED_ELBOW = (0.42, 0.45, 0.0)   # right elbow while waving
FOREARM      = 0.30                # elbow → hand length
SWING        = 0.5                 # max forearm angle from vertical (rad)
BODY_OFFSET  = (0.0, 0.0, 2.0)     # torso position in front of the sensor


def _pose(hand_angle: float | None, offset) -> np.ndarray:
    """(J, 3) pose; `hand_angle` None keeps the right arm down."""
    pose = np.array([REST_POSE[j] for j in DEFAULT_JOINTS], dtype=np.float64)
    if hand_angle is not None:
        elbow = np.array(RAISED_ELBOW)
        hand  = elbow + FOREARM * np.array(
            [np.sin(hand_angle), np.cos(hand_angle), 0.0])
        pose[DEFAULT_JOINTS.index('RightElbow')] = elbow
        pose[DEFAULT_JOINTS.index('RightHand')]  = hand
    return pose + np.asarray(offset, dtype=np.float64)


def generate_wave(
    n_cycles: int = 3,
    fps: int = 30,
    cycle_seconds: float = 1.0,
    jitter: float = 0.0,
    offset=BODY_OFFSET,
    seed: int = 0,
    start_time: float = 0.0,
    tag: bool = True,
) -> Recording:
    """
    One waving recording.

    Args:
        n_cycles      : number of left-right swings
        fps           : frames per second
        cycle_seconds : duration of one swing
        jitter        : std of Gaussian noise on every coordinate (metres)
        offset        : torso position
        seed          : random seed for the jitter
        start_time    : timestamp of the first frame
        tag           : mark the swing extremes as key postures 1 and 2

    Returns:
        Recording with DEFAULT_JOINTS.
    """
    rng       = np.random.default_rng(seed)
    per_cycle = int(round(fps * cycle_seconds))
    rec       = Recording(DEFAULT_JOINTS)

    for i in range(n_cycles * per_cycle):
        k     = i % per_cycle
        phase = 2.0 * np.pi * k / per_cycle - np.pi / 2.0
        pose  = _pose(SWING * np.sin(phase), offset)
        pose += rng.normal(0.0, jitter, pose.shape) if jitter > 0 else 0.0

        label = 0
        if tag and k == 0:
            label = 1                      # hand furthest left
        elif tag and k == per_cycle // 2:
            label = 2                      # hand furthest right
        rec.append_frame(pose, start_time + i / fps, label)

    return rec


def generate_still(
    n_frames: int = 60,
    fps: int = 30,
    jitter: float = 0.0,
    offset=BODY_OFFSET,
    seed: int = 0,
) -> Recording:
    """Standing with both arms down, nothing tagged."""
    rng = np.random.default_rng(seed)
    rec = Recording(DEFAULT_JOINTS)
    for i in range(n_frames):
        pose = _pose(None, offset)
        if jitter > 0:
            pose += rng.normal(0.0, jitter, pose.shape)
        rec.append_frame(pose, i / fps)
    return rec


def write_training_set(
    out_dir: Path,
    n_files: int = 3,
    n_cycles: int = 3,
    gesture: str = 'Wave',
    jitter: float = 0.003,
) -> list[Path]:
    """Write `n_files` tagged wave recordings plus a training config block."""
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    paths = []
    for i in tqdm(range(n_files), desc=gesture):
        rec  = generate_wave(n_cycles=n_cycles, jitter=jitter, seed=i)
        path = out_dir / f'{gesture.lower()} session {i + 1}{KF_FILE_SUFFIX}'
        with open(path, 'w', newline='') as writer:
            rec.save(writer)
        paths.append(path)

    block = [f'@{gesture}', 'Torso, RightShoulder, RightElbow, RightHand', 'auto']
    block += [p.stem for p in paths]
    with open(out_dir / TRAIN_CONFIG_NAME, 'a') as writer:
        writer.write('\n'.join(block) + '\n\n')
    return paths


if __name__ == '__main__':
    parser = argparse.ArgumentParser(description='Generate synthetic wave recordings.')
    parser.add_argument('--out',     type=Path, default=SKEL_ROOT)
    parser.add_argument('--n-files', type=int,  default=3)
    parser.add_argument('--cycles',  type=int,  default=3)
    parser.add_argument('--gesture', type=str,  default='Wave')
    parser.add_argument('--jitter',  type=float, default=0.003)
    args = parser.parse_args()

    paths = write_training_set(args.out, args.n_files, args.cycles,
                               args.gesture, args.jitter)
    for p in paths:
        print(f'Saved → {p}')
    print(f'Appended @{args.gesture} block → {args.out / TRAIN_CONFIG_NAME}')
