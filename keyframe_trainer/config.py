"""Shared constants across the keyframe marking and training pipeline."""

from pathlib import Path

# ── Joints (OpenNI SkeletonJoint ids) ─────────────────────────────────────────
JOINT_IDS = {
    'Head':           1,
    'Neck':           2,
    'Torso':          3,
    'Waist':          4,
    'LeftCollar':     5,
    'LeftShoulder':   6,
    'LeftElbow':      7,
    'LeftWrist':      8,
    'LeftHand':       9,
    'LeftFingertip':  10,
    'RightCollar':    11,
    'RightShoulder':  12,
    'RightElbow':     13,
    'RightWrist':     14,
    'RightHand':      15,
    'RightFingertip': 16,
    'LeftHip':        17,
    'LeftKnee':       18,
    'LeftAnkle':      19,
    'LeftFoot':       20,
    'RightHip':       21,
    'RightKnee':      22,
    'RightAnkle':     23,
    'RightFoot':      24,
}
JOINT_NAMES = {v: k for k, v in JOINT_IDS.items()}

# Size of the avatar's joint slot array (indexed by joint id)
N_JOINT_SLOTS = max(JOINT_IDS.values()) + 1

# Joints reported by the tracker, in recording column order
DEFAULT_JOINTS = [
    'Head', 'Neck', 'Torso',
    'LeftShoulder', 'LeftElbow', 'LeftHand',
    'RightShoulder', 'RightElbow', 'RightHand',
    'LeftHip', 'LeftKnee', 'LeftFoot',
    'RightHip', 'RightKnee', 'RightFoot',
]

# Reference joint for relative joint features
REFERENCE_JOINT = 'Torso'

# ── Files ─────────────────────────────────────────────────────────────────────
SKEL_ROOT = Path('skeleton_data')
TMPL_ROOT = Path('gesture_templates')

SKEL_FILE_SUFFIX = '.skl'     # recordings opened by the key frame marker
KF_FILE_SUFFIX   = '.kf'      # tagged recordings saved by the marker
TMPL_FILE_SUFFIX = '.tmpl'    # trained gesture templates

TRAIN_CONFIG_NAME = 'train_config.txt'

TIMESTAMP_FORMAT = '%y-%m-%d-%H-%M-%S'
KF_FALLBACK_PREFIX   = 'key frame data'
TMPL_FALLBACK_PREFIX = 'gesture template'

# ── Key frame marker ──────────────────────────────────────────────────────────
WHEEL_SPEED = 10   # the smallest wheel tick is ±0.1 on most mice
SUMMARY_HEADER = 'Key frame list'

# ── Template trainer ──────────────────────────────────────────────────────────
THRESHOLD_MARGIN = 1.5    # match radius = largest training distance × margin
MIN_THRESHOLD    = 0.05   # metres, floor for single-sample postures
DEFAULT_MAX_GAP  = 2.0    # seconds allowed between consecutive key postures
