"""
Replay skeleton recordings through a trained gesture template.

For every frame the closest key posture (or 0) is reported; on tagged
recordings the matched posture is compared with the marked tag, giving a
per-posture hit rate.  Detections (completed posture chains) are listed
per file.

Results are printed to stdout and exported to <out>/results_<gesture>.csv.

Usage:
    python -m keyframe_trainer.evaluation.evaluate_detector \\
        --template gesture_templates/Wave.tmpl "skeleton_data/wave session 1.kf"
    python -m keyframe_trainer.evaluation.evaluate_detector \\
        --template gesture_templates/Wave.tmpl skeleton_data/*.kf --out results
"""

import argparse
from pathlib import Path

import numpy as np
import pandas as pd

from keyframe_trainer.data.recording import Recording
from keyframe_trainer.models.template_trainer import GestureDetector


def load_detector(path: Path) -> GestureDetector:
    with open(path) as reader:
        return GestureDetector.load_from_file(reader)


def load_recording(path: Path) -> Recording:
    rec = Recording()
    with open(path) as reader:
        rec.load(reader)
    return rec


def frame_table(detector: GestureDetector, recording: Recording) -> pd.DataFrame:
    """One row per frame: timestamp, marked tag, matched posture."""
    positions, timestamps = recording.positions(detector.joint_index)
    return pd.DataFrame({
        'frame':     np.arange(1, recording.frame_count + 1),
        'timestamp': timestamps,
        'tag':       np.asarray(recording.tags, dtype=np.int64),
        'matched':   detector.match_postures(positions),
    })


def posture_hit_rates(table: pd.DataFrame) -> pd.DataFrame:
    """Share of tagged frames whose matched posture equals the tag."""
    tagged = table[table['tag'] != 0]
    if tagged.empty:
        return pd.DataFrame(columns=['tag', 'frames', 'hit_rate'])
    hits = (tagged['matched'] == tagged['tag'])
    return (hits.groupby(tagged['tag'])
                .agg(frames='size', hit_rate='mean')
                .reset_index())


def evaluate_detector(
    template_path: Path,
    recording_paths: list[Path],
) -> tuple[pd.DataFrame, dict[str, list[float]]]:
    """
    Run the template over each recording.

    Returns:
        table      : per-frame rows of all files, with a 'file' column
        detections : file name → detection timestamps
    """
    detector   = load_detector(template_path)
    tables     = []
    detections = {}

    for path in recording_paths:
        path = Path(path)
        rec  = load_recording(path)
        t    = frame_table(detector, rec)
        t.insert(0, 'file', path.name)
        tables.append(t)
        detections[path.name] = detector.detect_recording(rec)

    table = pd.concat(tables, ignore_index=True) if tables else frame_table(
        detector, Recording(detector.joint_index))
    return table, detections


if __name__ == '__main__':
    parser = argparse.ArgumentParser(description='Evaluate a gesture template.')
    parser.add_argument('--template', type=Path, required=True)
    parser.add_argument('recordings', type=Path, nargs='+')
    parser.add_argument('--out',      type=Path, default=Path('.'))
    args = parser.parse_args()

    detector = load_detector(args.template)
    table, detections = evaluate_detector(args.template, args.recordings)

    print(f'\n{"=" * 60}')
    print(f'Template {detector.name}  |  {detector.n_postures} postures  |  '
          f'{detector.mode.value}  |  max gap {detector.max_gap:.2f} s')
    print(f'{"=" * 60}')
    for name, stamps in detections.items():
        shown = ', '.join(f'{s:.2f}' for s in stamps) or '—'
        print(f'{name:<32} {len(stamps):>3} detections  [{shown}]')

    rates = posture_hit_rates(table)
    if not rates.empty:
        print('\nPosture hit rate on tagged frames')
        print(rates.to_string(index=False, float_format=lambda v: f'{v:.2f}'))

    args.out.mkdir(parents=True, exist_ok=True)
    out_path = args.out / f'results_{detector.name}.csv'
    table.to_csv(out_path, index=False)
    print(f'\nSaved → {out_path}')
