"""
Key frame marker: scrub through a recording and tag key posture frames.

Operator controls (wired up by data/annotation_tool.py):
  mouse wheel     — scroll frames (axis value × wheel speed)
  Right / Left    — next / previous key frame, else the sequence edge
  Space           — tag the current frame with the next key posture
  1 … 9           — tag the current frame with that key posture
  Delete          — clear the current frame's tag

Tags are numbered 1..K round-robin, where K is the key posture count
typed by the operator.  Every action reports through `status` and returns
a bool; nothing here raises into the UI loop.
"""

from datetime import datetime

from keyframe_trainer.config import (
    KF_FALLBACK_PREFIX, KF_FILE_SUFFIX, SKEL_FILE_SUFFIX, SUMMARY_HEADER,
    TIMESTAMP_FORMAT,
)
from keyframe_trainer.data.avatar_view import AvatarJointView
from keyframe_trainer.data.recording import Recording
from keyframe_trainer.data.session import Session
from keyframe_trainer.errors import InvalidInputError

TAG_COUNT_ERROR = 'Key posture number is a positive integer'


def parse_tag_count(text: str) -> int:
    """Parse the key posture count field; raise InvalidInputError unless > 0."""
    try:
        n = int(str(text).strip())
    except ValueError:
        raise InvalidInputError(TAG_COUNT_ERROR) from None
    if n < 1:
        raise InvalidInputError(TAG_COUNT_ERROR)
    return n


def timestamped_name(prefix: str, suffix: str, now: datetime | None = None) -> str:
    """Fallback file name '<prefix> yy-MM-dd-HH-mm-ss<suffix>'."""
    now = now or datetime.now()
    return f'{prefix} {now.strftime(TIMESTAMP_FORMAT)}{suffix}'


def with_suffix(name: str, suffix: str) -> str:
    return name if name.endswith(suffix) else name + suffix


class KeyframeMarker:
    """Cursor and tag state over a Recording owned by the active page."""

    def __init__(
        self,
        recording: Recording,
        view: AvatarJointView | None = None,
        session: Session | None = None,
    ):
        self.recording = recording
        self.view      = view if view is not None else AvatarJointView()
        self.session   = session or Session()

        self.cur_frame:          int = 0
        self.declared_tag_count: int = 0
        self.next_tag:           int = 0   # 0-based, next tag is next_tag + 1
        self.status:             str = ''
        self.summary:            str = SUMMARY_HEADER

    def init(self, session: Session | None = None) -> None:
        """Reset cursor and numbering; called whenever the page is shown."""
        if session is not None:
            self.session = session
        self.cur_frame          = 0
        self.declared_tag_count = 0
        self.next_tag           = 0
        self.status = ('Skeleton file not opened'
                       if self.recording.frame_count == 0
                       else 'Skeleton data already exist')
        self.status += ('. Enter the file name you want to open '
                        f'({self.session.skel_root}/*{SKEL_FILE_SUFFIX}) '
                        f'or save ({self.session.skel_root}/*{KF_FILE_SUFFIX})')
        self.summary = SUMMARY_HEADER
        self._project()

    # ── Key posture count ─────────────────────────────────────────────────

    def set_declared_tag_count(self, text) -> bool:
        try:
            self.declared_tag_count = parse_tag_count(text)
        except InvalidInputError as exc:
            self.status = str(exc)
            return False
        self.next_tag %= self.declared_tag_count
        return True

    # ── Cursor movement ───────────────────────────────────────────────────

    def scroll(self, axis_value: float) -> bool:
        """Move by `axis_value × wheel_speed` frames, truncated toward zero."""
        n = self.recording.frame_count
        if n == 0:
            return False
        delta = int(axis_value * self.session.wheel_speed)
        if delta == 0:
            return False
        self.cur_frame = min(max(self.cur_frame + delta, 0), n - 1)
        self._project()
        return True

    def step_next(self) -> bool:
        """Go to the next tagged frame, or the last frame if there is none."""
        n = self.recording.frame_count
        if n == 0:
            return False
        tags = self.recording.tags
        if self.cur_frame < n - 1:
            self.cur_frame += 1
        while tags[self.cur_frame] == 0 and self.cur_frame < n - 1:
            self.cur_frame += 1
        self._project()
        return True

    def step_prev(self) -> bool:
        """Go to the previous tagged frame, or frame 0 if there is none."""
        if self.recording.frame_count == 0:
            return False
        tags = self.recording.tags
        if self.cur_frame > 0:
            self.cur_frame -= 1
        while tags[self.cur_frame] == 0 and self.cur_frame > 0:
            self.cur_frame -= 1
        self._project()
        return True

    # ── Tagging ───────────────────────────────────────────────────────────

    def assign_next_tag(self) -> bool:
        if self.recording.frame_count == 0:
            return False
        if self.declared_tag_count < 1:
            self.status = TAG_COUNT_ERROR
            return False
        self.recording.tags[self.cur_frame] = self.next_tag + 1
        self.next_tag = (self.next_tag + 1) % self.declared_tag_count
        self.refresh_summary()
        return True

    def assign_explicit_tag(self, digit: int) -> bool:
        """Tag with `digit` (1–9), raising the declared count to it if needed."""
        if self.recording.frame_count == 0:
            return False
        if not 1 <= digit <= 9:
            self.status = f'Key posture {digit} out of range 1-9'
            return False
        self.recording.tags[self.cur_frame] = digit
        self.declared_tag_count = max(digit, self.declared_tag_count)
        self.next_tag = digit % self.declared_tag_count
        self.refresh_summary()
        return True

    def clear_current_tag(self) -> bool:
        """Untag the current frame and resume numbering after the last tag."""
        if self.recording.frame_count == 0:
            return False
        tags = self.recording.tags
        tags[self.cur_frame] = 0

        i = len(tags) - 1
        while i > 0 and tags[i] == 0:
            i -= 1
        self.next_tag = tags[i] % max(1, self.declared_tag_count)
        self.refresh_summary()
        return True

    # ── File I/O ──────────────────────────────────────────────────────────

    def load_from_file(self, name: str) -> bool:
        """Overwrite-load `<skel_root>/<name>.skl` into the recording."""
        if not name:
            self.status = 'Please enter the file name'
            return False

        filename = with_suffix(name, SKEL_FILE_SUFFIX)
        self.session.default_file_name = name
        try:
            with open(self.session.skel_root / filename) as reader:
                self.recording.load(reader)
        except (OSError, ValueError) as exc:
            self.status = f'{filename}: import error ({exc})'
            return False

        self.status    = f'{filename}: imported'
        self.cur_frame = 0
        self._project()
        self.refresh_summary()
        return True

    def save_to_file(self, name: str) -> bool:
        """Save the tagged recording to `<skel_root>/<name>.kf` (overwrites)."""
        root = self.session.skel_root
        if name:
            filename = with_suffix(name, KF_FILE_SUFFIX)
        else:
            filename = timestamped_name(KF_FALLBACK_PREFIX, KF_FILE_SUFFIX)
        self.session.default_file_name = name

        try:
            root.mkdir(parents=True, exist_ok=True)
            with open(root / filename, 'w', newline='') as writer:
                saved = self.recording.save(writer)
        except OSError as exc:
            self.status = f'{filename}: error occurred when saving ({exc})'
            return False

        self.status = (f'{saved} frames (including '
                       f'{self.recording.tagged_frame_count} key frames) '
                       f'has been saved to {filename}')
        return True

    # ── Text output ───────────────────────────────────────────────────────

    def keyframe_summary(self) -> str:
        lines = [SUMMARY_HEADER]
        lines += [f'Frame {i + 1}, tag = {t}'
                  for i, t in enumerate(self.recording.tags) if t != 0]
        return '\n'.join(lines)

    def refresh_summary(self) -> None:
        self.summary = self.keyframe_summary()

    def observer_text(self) -> str:
        """Joint positions and frame info for the cursor frame."""
        lines = ['Joint info']
        rec = self.recording
        if rec.frame_count == 0:
            return lines[0]

        frame = rec.frames[self.cur_frame]
        for name, pos in zip(rec.joint_index, frame):
            lines.append(f'{name}: ({pos[0]:.3f}, {pos[1]:.3f}, {pos[2]:.3f})')
        lines.append('')
        lines.append(f'Frame {self.cur_frame + 1}/{rec.frame_count}, '
                     f'time {rec.timestamps[self.cur_frame]} s')
        tag = rec.tags[self.cur_frame]
        if tag != 0:
            lines.append(f'key frame tag {tag}')
        return '\n'.join(lines)

    def _project(self) -> None:
        self.view.refresh(self.recording, self.cur_frame)
