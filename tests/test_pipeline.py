import pytest

from pdf_stream_annotator.core.config import PipelineConfig
from pdf_stream_annotator.parsing import pipeline as pipeline_module
from pdf_stream_annotator.parsing.pipeline import CommandPipeline


def immediate(delay_s, action):
    action()


@pytest.fixture
def events():
    return {"annotations": [], "navigation": [], "delays": []}


@pytest.fixture
def pipeline(events):
    def schedule(delay_s, action):
        events["delays"].append(delay_s)
        action()

    return CommandPipeline(
        PipelineConfig(annotation_trace=True, stream_trace=True, debug=True),
        on_annotations=events["annotations"].append,
        on_navigation=events["navigation"].append,
        scheduler=schedule,
    )


def test_single_highlight(pipeline):
    result = pipeline.process("[HIGHLIGHT 100 200 300 50 1]", current_page=1)
    assert len(result.annotations) == 1
    assert result.annotations[0]["type"] == "highlight"
    assert {k: result.annotations[0][k] for k in ("page", "x", "y", "width", "height")} == {
        "page": 1, "x": 100, "y": 200, "width": 300, "height": 50,
    }
    assert result.text == ""


def test_page_first_reading(pipeline):
    (annotation,) = pipeline.process("[HIGHLIGHT 1 80 120 400 60]", current_page=3).annotations
    assert (annotation["page"], annotation["x"], annotation["y"]) == (1, 80, 120)
    assert (annotation["width"], annotation["height"]) == (400, 60)


def test_split_command_matches_unsplit(pipeline):
    whole = CommandPipeline().process("[HIGHLIGHT 1 100 200 300 50]", current_page=1).annotations

    first = pipeline.process("[HIGH", current_page=1)
    assert first.annotations == []
    assert first.text == ""
    second = pipeline.process("LIGHT 1 100 200 300 50]", current_page=1)

    assert second.annotations == whole
    assert pipeline.pending_buffer == ""


def test_split_across_three_fragments_keeps_prose(pipeline, events):
    texts = [
        pipeline.process("Here is the definition [HIGHLIGHT 2 80", 2).text,
        pipeline.process(" 200 400", 2).text,
        pipeline.process(" 24] which matters.", 2).text,
    ]
    assert " ".join("".join(texts).split()) == "Here is the definition which matters."
    assert len(events["annotations"]) == 1
    (annotation,) = events["annotations"][0]
    assert (annotation["page"], annotation["x"], annotation["y"]) == (2, 80, 200)


def test_degenerate_command_yields_one_fallback(pipeline, events):
    result = pipeline.process("Look [HIGHLIGHT x=100 y=200 w=0 h=50] here", current_page=3)
    assert result.had_commands
    assert len(result.annotations) == 1
    fallback = result.annotations[0]
    assert fallback["page"] == 3
    assert fallback["isAutomatic"] is True
    assert fallback["y"] == 200
    assert fallback["width"] == 160
    assert events["annotations"] == [result.annotations]


def test_fallback_not_used_when_a_valid_command_exists(pipeline):
    result = pipeline.process("[HIGHLIGHT x=1 y=2 w=0 h=5] [HIGHLIGHT 1 80 120 400 24]", current_page=1)
    assert len(result.annotations) == 1
    assert result.annotations[0]["isAutomatic"] is False


def test_navigation_callback_receives_raw_target_after_delay(pipeline, events):
    result = pipeline.process("Let's look at the end [LAST PAGE]", current_page=3)
    assert result.navigation["targetPage"] == 10002
    assert events["navigation"] == [10002]
    assert events["delays"] == [0.4]
    assert result.text == "Let's look at the end "


def test_navigation_split_across_fragments(pipeline, events):
    pipeline.process("Moving on [GO TO PA", current_page=1)
    assert events["navigation"] == []
    pipeline.process("GE 6] now", current_page=1)
    assert events["navigation"] == [6]


def test_parse_fault_passes_text_through(monkeypatch, pipeline, events):
    pipeline.process("Before [HIGH", current_page=1)

    def explode(*args, **kwargs):
        raise RuntimeError("bad input")

    monkeypatch.setattr(pipeline_module, "recognize", explode)
    result = pipeline.process("LIGHT 1 2 3 4 5]", current_page=1)
    assert result.text == "[HIGHLIGHT 1 2 3 4 5]"
    assert result.annotations == []
    assert pipeline.pending_buffer == ""
    assert events["annotations"] == []


def test_flush_releases_unterminated_bracket():
    pipeline = CommandPipeline()
    assert pipeline.process("Finally [CIRC", current_page=1).text == "Finally "
    assert pipeline.flush() == "[CIRC"
    assert pipeline.flush() == ""


def test_callbacks_are_optional():
    result = CommandPipeline(scheduler=immediate).process("[NEXT PAGE] [CIRCLE 1 300 400 50]", 1)
    assert result.navigation["targetPage"] == 2
    assert result.annotations[0]["radius"] == 50


def test_late_parse_fault_keeps_earlier_carry_over(monkeypatch, pipeline, events):
    assert pipeline.process("Intro [HIGH", current_page=1).text == "Intro "

    def explode(*args, **kwargs):
        raise RuntimeError("navigation failed")

    monkeypatch.setattr(pipeline_module, "extract_navigation", explode)
    result = pipeline.process("LIGHT 1 80 120 400 60] then [CIR", current_page=1)

    assert result.text == "[HIGHLIGHT 1 80 120 400 60] then [CIR"
    assert result.annotations == []
    assert pipeline.pending_buffer == ""
    assert events["annotations"] == []
