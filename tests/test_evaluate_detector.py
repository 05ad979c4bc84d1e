from keyframe_trainer.data.synthetic_generator import generate_still, generate_wave
from keyframe_trainer.evaluation.evaluate_detector import (
    evaluate_detector, posture_hit_rates,
)
from keyframe_trainer.models.template_trainer import TemplateTrainer

from conftest import write_recording

ARM = ['Torso', 'RightShoulder', 'RightElbow', 'RightHand']


def test_evaluate_detector_reports_frames_and_detections(tmp_path):
    det = TemplateTrainer(generate_wave(n_cycles=3), ARM).train('Wave')
    template = tmp_path / 'Wave.tmpl'
    with open(template, 'w') as writer:
        det.save_to_file(writer)

    wave_path  = tmp_path / 'wave.kf'
    still_path = tmp_path / 'still.kf'
    write_recording(wave_path,  generate_wave(n_cycles=2))
    write_recording(still_path, generate_still(n_frames=30))

    table, detections = evaluate_detector(template, [wave_path, still_path])

    assert list(table.columns) == ['file', 'frame', 'timestamp', 'tag', 'matched']
    assert len(table) == 60 + 30
    assert len(detections['wave.kf']) == 2
    assert detections['still.kf'] == []
    assert (table.loc[table['file'] == 'still.kf', 'matched'] == 0).all()

    rates = posture_hit_rates(table)
    assert list(rates['tag']) == [1, 2]
    assert list(rates['frames']) == [2, 2]
    assert (rates['hit_rate'] == 1.0).all()
