"""
Key posture template trainer and gesture detector.

Model
─────
A gesture is an ordered chain of key postures (the tags 1..K marked in
the key frame files).  Each posture is represented by one template:

  feature   : flattened joint positions of the configured joints
              absolute → raw sensor coordinates
              relative → positions minus the torso (or the joint centroid
                         when the torso is not among the joints)
  template  : mean feature of all frames carrying that tag
  threshold : largest training distance to the template × THRESHOLD_MARGIN,
              never below MIN_THRESHOLD

The "auto" algorithm trains with whichever feature mode separates the
postures better (higher silhouette score over the tagged frames).

Detection walks a skeleton stream frame by frame and fires when the
postures are hit in tag order with no more than `max_gap` seconds
between consecutive postures.
"""

import json

import numpy as np
from scipy.spatial.distance import cdist
from sklearn.metrics import silhouette_score

from keyframe_trainer.config import (
    DEFAULT_MAX_GAP, MIN_THRESHOLD, REFERENCE_JOINT, THRESHOLD_MARGIN,
)
from keyframe_trainer.data.recording import Recording
from keyframe_trainer.data.train_config import AlgorithmMode, TrainingConfigEntry


# ── Features ──────────────────────────────────────────────────────────────────

def joint_features(
    positions: np.ndarray,
    mode: AlgorithmMode,
    joint_index: list[str],
) -> np.ndarray:
    """
    Turn (N, J, 3) joint positions into (N, J*3) posture features.

    Args:
        positions   : joint positions, columns ordered as `joint_index`
        mode        : ABSOLUTE or RELATIVE
        joint_index : names of the J joints

    Returns:
        (N, J*3) float64 features.
    """
    positions = np.asarray(positions, dtype=np.float64)
    if mode is AlgorithmMode.RELATIVE:
        if REFERENCE_JOINT in joint_index:
            ref    = joint_index.index(REFERENCE_JOINT)
            origin = positions[:, ref:ref + 1, :]
        else:
            origin = positions.mean(axis=1, keepdims=True)
        positions = positions - origin
    return positions.reshape(len(positions), -1)


def choose_mode(
    positions: np.ndarray,
    tags: np.ndarray,
    joint_index: list[str],
) -> AlgorithmMode:
    """Pick the feature mode whose postures cluster best (silhouette score)."""
    n_labels = len(np.unique(tags))
    if n_labels < 2 or len(tags) <= n_labels:
        return AlgorithmMode.ABSOLUTE

    scores = {
        mode: silhouette_score(joint_features(positions, mode, joint_index), tags)
        for mode in (AlgorithmMode.ABSOLUTE, AlgorithmMode.RELATIVE)
    }
    return max(scores, key=scores.get)


# ── Detector ──────────────────────────────────────────────────────────────────

class GestureDetector:
    """Trained gesture template: ordered posture templates plus timing."""

    def __init__(
        self,
        name: str,
        joint_index: list[str],
        mode: AlgorithmMode,
        posture_tags,
        templates,
        thresholds,
        max_gap: float = DEFAULT_MAX_GAP,
    ):
        self.name         = name
        self.joint_index  = list(joint_index)
        self.mode         = mode
        self.posture_tags = np.asarray(posture_tags, dtype=np.int64)
        self.templates    = np.asarray(templates, dtype=np.float64)
        self.thresholds   = np.asarray(thresholds, dtype=np.float64)
        self.max_gap      = float(max_gap)

    @property
    def n_postures(self) -> int:
        return len(self.posture_tags)

    def features(self, positions: np.ndarray) -> np.ndarray:
        return joint_features(positions, self.mode, self.joint_index)

    def match_postures(self, positions: np.ndarray) -> np.ndarray:
        """
        Closest key posture for each frame.

        Args:
            positions : (N, J, 3) positions ordered as `joint_index`

        Returns:
            (N,) int64 posture tag per frame, 0 where no template is
            within its threshold.
        """
        if len(positions) == 0:
            return np.empty(0, dtype=np.int64)
        dist   = cdist(self.features(positions), self.templates)
        inside = dist <= self.thresholds
        best   = np.argmin(np.where(inside, dist, np.inf), axis=1)
        return np.where(inside.any(axis=1), self.posture_tags[best], 0)

    def detect(self, positions: np.ndarray, timestamps) -> list[float]:
        """Timestamps at which the full posture chain was completed."""
        matched    = self.match_postures(positions)
        detections = []
        step, last_t, held = 0, 0.0, 0

        for tag, t in zip(matched, timestamps):
            tag = int(tag)
            if tag and tag == held:
                last_t = t                      # still holding the last posture
                continue
            held = 0
            if step and t - last_t > self.max_gap:
                step = 0

            if tag == self.posture_tags[step]:
                step, last_t, held = step + 1, t, tag
                if step == self.n_postures:
                    detections.append(float(t))
                    step = 0
            elif tag == self.posture_tags[0]:
                step, last_t, held = 1, t, tag

        return detections

    def detect_recording(self, recording: Recording) -> list[float]:
        positions, timestamps = recording.positions(self.joint_index)
        return self.detect(positions, timestamps)

    # ── Persistence ───────────────────────────────────────────────────────

    def to_dict(self) -> dict:
        return {
            'name':         self.name,
            'joint_index':  self.joint_index,
            'mode':         self.mode.value,
            'posture_tags': self.posture_tags.tolist(),
            'templates':    self.templates.tolist(),
            'thresholds':   self.thresholds.tolist(),
            'max_gap':      self.max_gap,
        }

    def save_to_file(self, writer) -> None:
        json.dump(self.to_dict(), writer, indent=2)
        writer.write('\n')

    @classmethod
    def load_from_file(cls, reader) -> 'GestureDetector':
        d = json.load(reader)
        return cls(
            name=d['name'],
            joint_index=d['joint_index'],
            mode=AlgorithmMode(d['mode']),
            posture_tags=d['posture_tags'],
            templates=d['templates'],
            thresholds=d['thresholds'],
            max_gap=d['max_gap'],
        )


# ── Trainer ───────────────────────────────────────────────────────────────────

class TemplateTrainer:
    """Trains a GestureDetector from the tagged frames of a Recording."""

    def __init__(
        self,
        recording: Recording,
        joint_index: list[str] | None = None,
        mode: AlgorithmMode = AlgorithmMode.ABSOLUTE,
    ):
        self.recording   = recording
        self.joint_index = list(joint_index or [])   # empty → all recorded joints
        self.mode        = mode

    def apply_config(self, entry: TrainingConfigEntry) -> None:
        self.joint_index = list(entry.joint_index)
        self.mode        = entry.algorithm_mode

    def train(self, gesture_name: str) -> GestureDetector:
        """
        Build the posture templates for `gesture_name`.

        Raises:
            ValueError if the recording has no tagged frames or lacks one
            of the configured joints.
        """
        joints = self.joint_index or list(self.recording.joint_index)
        positions, tags, stamps = self.recording.tagged_positions(joints)
        if len(tags) == 0:
            raise ValueError('No tagged frames to train on')

        mode = self.mode
        if mode is AlgorithmMode.AUTO:
            mode = choose_mode(positions, tags, joints)

        feats        = joint_features(positions, mode, joints)
        posture_tags = np.unique(tags)
        templates    = np.zeros((len(posture_tags), feats.shape[1]))
        thresholds   = np.zeros(len(posture_tags))

        for k, tag in enumerate(posture_tags):
            members       = feats[tags == tag]
            templates[k]  = members.mean(axis=0)
            spread        = np.linalg.norm(members - templates[k], axis=1).max()
            thresholds[k] = max(spread * THRESHOLD_MARGIN, MIN_THRESHOLD)

        return GestureDetector(
            name=gesture_name,
            joint_index=joints,
            mode=mode,
            posture_tags=posture_tags,
            templates=templates,
            thresholds=thresholds,
            max_gap=self._max_gap(tags, stamps, posture_tags),
        )

    @staticmethod
    def _max_gap(tags, stamps, posture_tags) -> float:
        """Longest observed time between a posture and its successor."""
        order = {int(t): k for k, t in enumerate(posture_tags)}
        gaps  = [
            stamps[i + 1] - stamps[i]
            for i in range(len(tags) - 1)
            if order[int(tags[i + 1])] == order[int(tags[i])] + 1
            and stamps[i + 1] > stamps[i]
        ]
        if not gaps:
            return DEFAULT_MAX_GAP
        return float(max(gaps)) * THRESHOLD_MARGIN
