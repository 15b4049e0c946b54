"""
Unit tests for the decision display vocabulary and sinks.
"""

from dupemark.annotations import HighlightColor, HighlightSink, RecordingSink, color_for
from dupemark.protocols import ClassificationDecision


def test_colors():
    assert color_for(ClassificationDecision.UNIQUE) is HighlightColor.CYAN
    assert color_for(ClassificationDecision.DUPLICATE) is HighlightColor.GRAY
    assert color_for(ClassificationDecision.STATIC_ASSET) is HighlightColor.GRAY
    assert color_for(ClassificationDecision.SUPPRESSED) is HighlightColor.NONE


def test_highlight_sink_forwards_colors():
    painted = {}
    sink = HighlightSink(lambda request_id, color: painted.__setitem__(request_id, color))

    sink.report(1, ClassificationDecision.UNIQUE)
    sink.report(2, ClassificationDecision.SUPPRESSED)

    assert painted == {1: HighlightColor.CYAN, 2: HighlightColor.NONE}


def test_recording_sink_summary():
    sink = RecordingSink()
    sink.report("a", ClassificationDecision.UNIQUE)
    sink.report("b", ClassificationDecision.DUPLICATE)
    sink.report("c", ClassificationDecision.DUPLICATE)

    assert sink.decisions() == [
        ClassificationDecision.UNIQUE,
        ClassificationDecision.DUPLICATE,
        ClassificationDecision.DUPLICATE,
    ]
    assert sink.summary() == {ClassificationDecision.UNIQUE: 1, ClassificationDecision.DUPLICATE: 2}

    sink.clear()
    assert sink.records == []
