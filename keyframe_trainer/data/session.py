"""Per-session settings handed to every page when it is (re)initialised."""

from dataclasses import dataclass
from pathlib import Path

from keyframe_trainer.config import SKEL_ROOT, TMPL_ROOT, WHEEL_SPEED


@dataclass
class Session:
    skel_root:         Path = SKEL_ROOT
    tmpl_root:         Path = TMPL_ROOT
    default_file_name: str  = ''           # last name typed on any page
    wheel_speed:       int  = WHEEL_SPEED

    def __post_init__(self):
        self.skel_root = Path(self.skel_root)
        self.tmpl_root = Path(self.tmpl_root)
