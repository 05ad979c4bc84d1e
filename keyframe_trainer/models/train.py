"""
Template training page and command line entry point.

Loads one gesture block from the training config, merges its key frame
files into a recording, trains the posture templates and writes them to
<tmpl_root>/<gesture>.tmpl.  Without --overwrite an existing template is
kept and the new one is saved under a timestamped name instead.

Usage:
    python -m keyframe_trainer.models.train --gesture Wave
    python -m keyframe_trainer.models.train --gesture Wave --overwrite
    python -m keyframe_trainer.models.train --gesture Wave \\
        --skel-root data/skeletons --tmpl-root data/templates
"""

import argparse
import sys
from datetime import datetime
from pathlib import Path

from keyframe_trainer.config import (
    SKEL_ROOT, TMPL_FALLBACK_PREFIX, TMPL_FILE_SUFFIX, TMPL_ROOT,
    TRAIN_CONFIG_NAME,
)
from keyframe_trainer.data.keyframe_marker import timestamped_name, with_suffix
from keyframe_trainer.data.recording import Recording
from keyframe_trainer.data.session import Session
from keyframe_trainer.data.train_config import load_train_config
from keyframe_trainer.models.template_trainer import TemplateTrainer


def template_path(
    root: Path,
    name: str,
    overwrite: bool = False,
    now: datetime | None = None,
) -> Path:
    """
    Where to write the template for `name`.

    An existing file is only reused when `overwrite` is set; otherwise (and
    when no name is given) a timestamped file name is used, with a ' (n)'
    counter if that name is taken too.
    """
    root = Path(root)
    if name:
        path = root / with_suffix(name, TMPL_FILE_SUFFIX)
        if overwrite or not path.exists():
            return path

    stem = timestamped_name(TMPL_FALLBACK_PREFIX, '', now)
    path = root / f'{stem}{TMPL_FILE_SUFFIX}'
    n = 1
    while path.exists():
        path = root / f'{stem} ({n}){TMPL_FILE_SUFFIX}'
        n += 1
    return path


# ── Training page ─────────────────────────────────────────────────────────────

class TemplateTrainerPanel:
    """Load-config and train-and-save actions over the shared recording."""

    def __init__(self, recording: Recording, session: Session | None = None):
        self.recording = recording
        self.session   = session or Session()
        self.trainer   = TemplateTrainer(recording)
        self.status    = ''
        self.events: list[str] = []

    @property
    def config_path(self) -> Path:
        return self.session.skel_root / TRAIN_CONFIG_NAME

    def init(self, session: Session | None = None) -> None:
        if session is not None:
            self.session = session
        self.status = ('Training config not loaded. Enter the name of the '
                       f'gesture you want to load (in {self.config_path})')

    def load_config(self, gesture_name: str) -> bool:
        if not gesture_name:
            self.status = 'Please enter the name of the gesture'
            return False

        self.session.default_file_name = gesture_name
        try:
            with open(self.config_path) as reader:
                result = load_train_config(reader, gesture_name, self.recording,
                                           self.session.skel_root)
        except (OSError, ValueError, LookupError) as exc:
            self.status = (f'{gesture_name}: error occurred when loading '
                           f'training config ({exc})')
            return False

        self.trainer.apply_config(result.entry)
        self.events.extend(result.events)
        self.status = f'{result.total_tagged} key frames loaded for {gesture_name}'
        return True

    def train_and_save(self, gesture_name: str, overwrite: bool = False) -> bool:
        if self.recording.tagged_frame_count == 0:
            self.status = 'Please load skeleton data with key frames before training.'
            return False

        self.session.default_file_name = gesture_name
        try:
            detector = self.trainer.train(gesture_name)
        except ValueError as exc:
            self.status = f'{gesture_name}: training failed ({exc})'
            return False

        root = self.session.tmpl_root
        path = template_path(root, gesture_name, overwrite)
        verb = 'overwritten' if path.exists() else 'saved'
        try:
            root.mkdir(parents=True, exist_ok=True)
            with open(path, 'w') as writer:
                detector.save_to_file(writer)
        except OSError as exc:
            self.status = f'{path.name}: error occurred when saving template ({exc})'
            return False

        self.status = (f'The gesture template has been trained and {verb} '
                       f'to {path.name}')
        return True

    def observer_text(self) -> str:
        return '\n'.join(self.events)


# ── CLI ───────────────────────────────────────────────────────────────────────

def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description='Train a gesture template.')
    parser.add_argument('--gesture',   required=True,
                        help='Gesture block name in the training config.')
    parser.add_argument('--skel-root', type=Path, default=SKEL_ROOT,
                        help='Directory with the training config and .kf files.')
    parser.add_argument('--tmpl-root', type=Path, default=TMPL_ROOT,
                        help='Directory the template is written to.')
    parser.add_argument('--overwrite', action='store_true',
                        help='Replace an existing template of the same name.')
    args = parser.parse_args(argv)

    panel = TemplateTrainerPanel(
        Recording(), Session(skel_root=args.skel_root, tmpl_root=args.tmpl_root))
    panel.init()

    ok = panel.load_config(args.gesture)
    for line in panel.events:
        print(line)
    print(panel.status)
    if not ok:
        return 1

    ok = panel.train_and_save(args.gesture, overwrite=args.overwrite)
    print(panel.status)
    return 0 if ok else 1


if __name__ == '__main__':
    sys.exit(main())
