"""Unit tests for HistoryTracker class."""

import pytest


class TestHistoryTracker:
    """Test HistoryTracker for processing history recording."""

    def test_record_step(self, history_tracker):
        """Test recording a processing step."""
        history_tracker.record('scan', {'step_size': 0.001}, 'BlacknessScanner')

        history = history_tracker.get_history()

        assert len(history) == 1
        assert history[0].operation == 'scan'
        assert history[0].parameters['step_size'] == 0.001
        assert history[0].component == 'BlacknessScanner'

    def test_history_order(self, history_tracker):
        """Test that history maintains chronological order."""
        operations = ['equalize_mean', 'scan', 'fit', 'subtract']

        for op in operations:
            history_tracker.record(op, {}, 'ContinuumReducer')

        assert [step.operation for step in history_tracker.get_history()] == operations
        assert len(history_tracker) == 4

    def test_parameters_are_copied(self, history_tracker):
        """Test that later changes to the parameter dict are not recorded."""
        params = {'mue': 0.4}
        history_tracker.record('fit', params, 'CurveFitter')
        params['mue'] = 0.9

        assert history_tracker.get_history()[0].parameters['mue'] == 0.4

    def test_export_to_fits_header(self, history_tracker):
        """Test exporting history to FITS HISTORY values."""
        history_tracker.record('scan', {'step_size': 0.001}, 'BlacknessScanner')
        history_tracker.record('fit', {'mue': 0.41}, 'CurveFitter')

        comments = history_tracker.to_fits_header()

        assert comments[0] == "Continuum subtraction history:"
        assert comments[1] == "BlacknessScanner.scan(step_size=0.001)"
        assert comments[2] == "CurveFitter.fit(mue=0.41)"

    def test_long_entry_continues_on_next_cards(self, history_tracker):
        """Test that long entries are wrapped to the FITS card width."""
        history_tracker.record('scan', {f'parameter_{i}': i for i in range(20)}, 'BlacknessScanner')

        lines = history_tracker.to_fits_header()[1:]

        assert len(lines) > 1
        assert all(len(line) <= 72 for line in lines)
        assert lines[0].startswith('BlacknessScanner.scan(parameter_0=0')
        assert all(line.startswith('  ') for line in lines[1:])
        assert ' '.join(line.strip() for line in lines).endswith('parameter_19=19)')

    def test_float_formatting(self, history_tracker):
        """Test that floats are written compactly."""
        history_tracker.record('fit', {'mue': 1 / 3}, 'CurveFitter')

        assert history_tracker.to_text(include_timestamps=False) == "CurveFitter.fit(mue=0.33333333)"

    def test_empty_fits_header(self, history_tracker):
        """Test that an empty history exports no cards."""
        assert history_tracker.to_fits_header() == []

    def test_export_to_text(self, history_tracker):
        """Test exporting history as human-readable text."""
        history_tracker.record('scan', {'limit_percent': 90}, 'BlacknessScanner', notes='cancelled')
        history_tracker.record('fit', {'status': 'succeeded'}, 'CurveFitter')

        text = history_tracker.to_text(include_timestamps=False)

        assert text.splitlines() == [
            "BlacknessScanner.scan(limit_percent=90) - cancelled",
            "CurveFitter.fit(status=succeeded)",
        ]

    def test_text_timestamps(self, history_tracker):
        """Test that timestamped text starts with the ISO timestamp."""
        history_tracker.record('fit', {}, 'CurveFitter')

        text = history_tracker.to_text()
        step = history_tracker.get_history()[0]

        assert text.startswith(f"[{step.timestamp}]")

    def test_empty_text(self, history_tracker):
        """Test text export of an empty history."""
        assert history_tracker.to_text() == "No processing history recorded"

    def test_to_dict(self, history_tracker):
        """Test dictionary export."""
        history_tracker.record('subtract', {'mue': 0.4}, 'ContinuumSubtractor')

        exported = history_tracker.to_dict()

        assert exported['total_steps'] == 1
        assert exported['steps'][0]['operation'] == 'subtract'
        assert exported['steps'][0]['notes'] is None

    def test_clear_history(self, history_tracker):
        """Test clearing history."""
        history_tracker.record('scan', {}, 'BlacknessScanner')
        history_tracker.record('fit', {}, 'CurveFitter')

        history_tracker.clear()

        assert len(history_tracker) == 0
        assert repr(history_tracker) == "HistoryTracker(0 steps)"
