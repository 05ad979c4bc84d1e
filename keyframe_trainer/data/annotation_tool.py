"""
Operator GUI for marking key frames and training gesture templates.

Two pages share one Recording:
  Mark key frames  — open a skeleton file, tag key postures, save a .kf file
  Train templates  — load a gesture block from the training config, train
                     and save the template

Mark page controls:
  mouse wheel     — previous / next frame
  Right / Left    — next / previous key frame
  Space           — tag with the next key posture (set the count first)
  1 … 9           — tag with that key posture
  Delete          — clear the current frame's tag

The plot shows one coordinate of a chosen joint over the recording, the
tagged frames as vertical lines and the cursor in red.

Usage:
    python -m keyframe_trainer.data.annotation_tool
    python -m keyframe_trainer.data.annotation_tool --skel-root skeleton_data
    python -m keyframe_trainer.data.annotation_tool --open "wave session 1"
"""

import argparse
import math
from pathlib import Path

from keyframe_trainer.config import SKEL_ROOT, TMPL_ROOT
from keyframe_trainer.data.avatar_view import AvatarJointView
from keyframe_trainer.data.keyframe_marker import KeyframeMarker
from keyframe_trainer.data.recording import AXES, Recording
from keyframe_trainer.data.session import Session
from keyframe_trainer.models.train import TemplateTrainerPanel

# tkinter and matplotlib imports are deferred to runtime so the module
# can be imported without a display (e.g. in tests or CI).

WHEEL_NOTCH = 120   # Tk MouseWheel delta of one notch on Windows; macOS reports about 1
PAGES = ['Mark key frames', 'Train templates']


# ── Key dispatch ──────────────────────────────────────────────────────────────

def dispatch_key(marker: KeyframeMarker, keysym: str, char: str = '') -> bool:
    """
    Apply one key press to the marker.

    Args:
        marker : the mark page's KeyframeMarker
        keysym : Tk keysym ('Right', 'Left', 'space', 'Delete', '3', …)
        char   : the typed character, if any

    Returns:
        True if the key was handled and changed the marker state.
    """
    if keysym == 'Right':
        return marker.step_next()
    if keysym == 'Left':
        return marker.step_prev()
    if keysym == 'space':
        return marker.assign_next_tag()
    if keysym == 'Delete':
        return marker.clear_current_tag()
    if char and '1' <= char[0] <= '9':
        return marker.assign_explicit_tag(int(char[0]))
    return False


def wheel_axis(delta: int = 0, num: int | None = None) -> float:
    """Tk wheel event → axis value, one notch = ±0.1."""
    if num == 4:
        return 0.1
    if num == 5:
        return -0.1
    if 0 < abs(delta) < WHEEL_NOTCH:
        return math.copysign(0.1, delta)
    return delta / WHEEL_NOTCH * 0.1


# ── GUI ───────────────────────────────────────────────────────────────────────

class TrainManagerApp:
    """Tkinter window switching between the mark and train pages."""

    def __init__(self, root, session: Session | None = None):
        import tkinter as tk

        self.tk      = tk
        self.root    = root
        self.root.title('Gesture Key Frame Trainer')
        self.root.geometry('1180x780')

        self.session   = session or Session()
        self.recording = Recording()
        self.view      = AvatarJointView()
        self.marker    = KeyframeMarker(self.recording, self.view, self.session)
        self.panel     = TemplateTrainerPanel(self.recording, self.session)

        self._build_ui()
        self._show_page(0)

    # ── UI construction ───────────────────────────────────────────────────

    def _build_ui(self):
        import tkinter as tk
        from tkinter import ttk
        import matplotlib
        matplotlib.use('TkAgg')
        import matplotlib.pyplot as plt
        from matplotlib.backends.backend_tkagg import FigureCanvasTkAgg

        self.notebook = ttk.Notebook(self.root)
        self.notebook.pack(fill='both', expand=True)
        self.notebook.bind('<<NotebookTabChanged>>', self._on_tab_changed)

        # Mark page
        mark = ttk.Frame(self.notebook, padding=(8, 6))
        self.notebook.add(mark, text=PAGES[0])

        top = ttk.Frame(mark)
        top.pack(side='top', fill='x')
        ttk.Button(top, text='Open skeleton file', command=self._open).pack(side='left')
        ttk.Button(top, text='Save to file',       command=self._save).pack(side='left', padx=4)

        self.file_var = tk.StringVar(value=self.session.default_file_name)
        ttk.Entry(top, textvariable=self.file_var, width=24).pack(side='left', padx=4)

        ttk.Label(top, text='  Key post. num.:').pack(side='left')
        self.count_var = tk.StringVar(value='0')
        count_entry = ttk.Entry(top, textvariable=self.count_var, width=4)
        count_entry.pack(side='left')
        count_entry.bind('<Return>', lambda e: self._set_count())
        count_entry.bind('<FocusOut>', lambda e: self._set_count())

        ttk.Label(top, text='  Joint:').pack(side='left')
        self.joint_var = tk.StringVar(value='RightHand')
        self.joint_box = ttk.Combobox(top, textvariable=self.joint_var, width=14,
                                      values=self.recording.joint_index,
                                      state='readonly')
        self.joint_box.pack(side='left', padx=4)
        self.axis_var = tk.StringVar(value='x')
        ttk.Combobox(top, textvariable=self.axis_var, width=3,
                     values=list(AXES), state='readonly').pack(side='left')
        self.joint_box.bind('<<ComboboxSelected>>', lambda e: self._redraw())

        self.mark_status = tk.StringVar()
        ttk.Label(mark, textvariable=self.mark_status,
                  foreground='gray').pack(side='top', fill='x', pady=4)

        body = ttk.Frame(mark)
        body.pack(fill='both', expand=True)

        self.fig, self.ax = plt.subplots(figsize=(7.5, 4.2))
        self.canvas = FigureCanvasTkAgg(self.fig, master=body)
        widget = self.canvas.get_tk_widget()
        widget.pack(side='left', fill='both', expand=True)

        side = ttk.Frame(body, padding=(8, 0))
        side.pack(side='right', fill='y')
        self.info_text = tk.Text(side, width=36, height=22)
        self.info_text.pack(fill='x')
        self.list_text = tk.Text(side, width=36, height=14)
        self.list_text.pack(fill='both', expand=True, pady=(6, 0))

        # Train page
        train = ttk.Frame(self.notebook, padding=(8, 6))
        self.notebook.add(train, text=PAGES[1])

        row = ttk.Frame(train)
        row.pack(side='top', fill='x')
        ttk.Button(row, text='Load train. config',   command=self._load_config).pack(side='left')
        ttk.Button(row, text='Train and save templ.', command=self._train).pack(side='left', padx=4)
        self.gesture_var = tk.StringVar(value=self.session.default_file_name)
        ttk.Entry(row, textvariable=self.gesture_var, width=24).pack(side='left', padx=4)
        self.overwrite_var = tk.BooleanVar(value=False)
        ttk.Checkbutton(row, text='Overwrite',
                        variable=self.overwrite_var).pack(side='left')

        self.train_status = tk.StringVar()
        ttk.Label(train, textvariable=self.train_status,
                  foreground='gray').pack(side='top', fill='x', pady=4)
        self.event_text = tk.Text(train, height=24)
        self.event_text.pack(fill='both', expand=True)

        # Marker keys only act while the plot has focus, so typing in the
        # entries does not tag frames.
        for seq in ('<KeyRelease-Right>', '<KeyRelease-Left>',
                    '<KeyRelease-space>', '<KeyPress-Delete>', '<Key>'):
            widget.bind(seq, self._on_key)
        widget.bind('<MouseWheel>', self._on_wheel)
        widget.bind('<Button-4>',   self._on_wheel)
        widget.bind('<Button-5>',   self._on_wheel)
        widget.bind('<Button-1>',   lambda e: widget.focus_set())

    # ── Page switching ────────────────────────────────────────────────────

    def _on_tab_changed(self, event):
        self._show_page(self.notebook.index('current'))

    def _show_page(self, index: int):
        if index == 0:
            self.marker.init(self.session)
            self.count_var.set('0')
            self.file_var.set(self.session.default_file_name)
            self._redraw()
        else:
            self.panel.init(self.session)
            self.gesture_var.set(self.session.default_file_name)
            self._refresh_train()

    # ── Event handlers ────────────────────────────────────────────────────

    def _on_key(self, event):
        if event.keysym in ('Right', 'Left', 'space') and event.type == self.tk.EventType.KeyPress:
            return
        if dispatch_key(self.marker, event.keysym, event.char):
            self._redraw()
        else:
            self._refresh_text()

    def _on_wheel(self, event):
        axis = wheel_axis(getattr(event, 'delta', 0), getattr(event, 'num', None))
        if self.marker.scroll(axis):
            self._redraw()

    def _set_count(self):
        self.marker.set_declared_tag_count(self.count_var.get())
        self._refresh_text()

    def _open(self):
        self.marker.load_from_file(self.file_var.get())
        self.joint_box.config(values=self.recording.joint_index)
        self._redraw()

    def _save(self):
        self.marker.save_to_file(self.file_var.get())
        self._refresh_text()

    def _load_config(self):
        self.panel.load_config(self.gesture_var.get())
        self._refresh_train()

    def _train(self):
        from tkinter import messagebox

        ok = self.panel.train_and_save(self.gesture_var.get(),
                                       overwrite=self.overwrite_var.get())
        if not ok:
            messagebox.showwarning('Training', self.panel.status)
        self._refresh_train()

    # ── Drawing ───────────────────────────────────────────────────────────

    def _redraw(self):
        rec = self.recording
        self.ax.clear()
        if rec.frame_count and self.joint_var.get() in rec.joint_index:
            positions, _ = rec.positions([self.joint_var.get()])
            coord = positions[:, 0, AXES.index(self.axis_var.get())]
            self.ax.plot(coord, color='#377eb8', linewidth=1.3,
                         label=f'{self.joint_var.get()} {self.axis_var.get()}')
            for i, t in enumerate(rec.tags):
                if t:
                    self.ax.axvline(i, color='#4daf4a', linewidth=0.8)
                    self.ax.text(i, coord.max(), str(t), fontsize=8,
                                 ha='center', va='bottom')
            self.ax.axvline(self.marker.cur_frame, color='#e41a1c', linewidth=1.5)
            self.ax.set_xlim(0, max(rec.frame_count - 1, 1))
            self.ax.legend(loc='upper right', fontsize=8)
        self.ax.set_xlabel('Frame', fontsize=9)
        self.ax.set_ylabel('Position (m)', fontsize=9)
        self.fig.tight_layout()
        self.canvas.draw()
        self._refresh_text()

    def _refresh_text(self):
        # Digit keys can raise the declared count; keep the field in step.
        self.count_var.set(str(self.marker.declared_tag_count))
        self.mark_status.set(self.marker.status)
        self.info_text.delete('1.0', 'end')
        self.info_text.insert('end', self.marker.observer_text())
        self.list_text.delete('1.0', 'end')
        self.list_text.insert('end', self.marker.summary)

    def _refresh_train(self):
        self.train_status.set(self.panel.status)
        self.event_text.delete('1.0', 'end')
        self.event_text.insert('end', self.panel.observer_text())


# ── Entry point ───────────────────────────────────────────────────────────────

def main(session: Session | None = None, open_name: str | None = None):
    import tkinter as tk

    root = tk.Tk()
    app  = TrainManagerApp(root, session=session)

    if open_name:
        app.file_var.set(open_name)
        app._open()

    root.mainloop()


if __name__ == '__main__':
    parser = argparse.ArgumentParser(description='Key frame marker and template trainer.')
    parser.add_argument('--skel-root', type=Path, default=SKEL_ROOT)
    parser.add_argument('--tmpl-root', type=Path, default=TMPL_ROOT)
    parser.add_argument('--open',      type=str,  default=None,
                        help='Skeleton file to open on startup.')
    args = parser.parse_args()
    main(Session(skel_root=args.skel_root, tmpl_root=args.tmpl_root),
         open_name=args.open)
