from schedule_pipeline.pipelines.season_schedule.line_builder import build_lines
from schedule_pipeline.pipelines.season_schedule.models import TextFragment


def test_empty_page_has_no_lines():
    assert build_lines([]) == []


def test_fragments_within_tolerance_share_a_line():
    fragments = [
        TextFragment("Week 1 (2025-03-18) ", 700.0),
        TextFragment("Daytona", 702.5),
        TextFragment(" 20 laps", 698.0),
    ]
    lines = build_lines(fragments)
    assert len(lines) == 1
    assert lines[0].text == "Week 1 (2025-03-18) Daytona 20 laps"
    assert lines[0].y == 700.0


def test_tolerance_is_measured_from_the_first_fragment_of_a_line():
    fragments = [
        TextFragment("A", 100.0),
        TextFragment("B", 104.0),
        TextFragment("C", 106.0),
    ]
    lines = build_lines(fragments)
    assert [line.text for line in lines] == ["C", "AB"]


def test_lines_are_ordered_top_to_bottom():
    fragments = [
        TextFragment("bottom", 100.0),
        TextFragment("top", 700.0),
        TextFragment("middle", 400.0),
    ]
    assert [line.text for line in build_lines(fragments)] == ["top", "middle", "bottom"]


def test_fragment_order_is_kept_and_text_trimmed():
    fragments = [
        TextFragment("  second", 500.0, x=300.0),
        TextFragment("first ", 501.0, x=72.0),
    ]
    lines = build_lines(fragments)
    assert lines[0].text == "secondfirst"


def test_sort_by_x_reorders_when_positions_are_known():
    fragments = [
        TextFragment("Cup", 500.0, x=300.0),
        TextFragment("Mazda MX-5 ", 501.0, x=72.0),
    ]
    lines = build_lines(fragments, sort_by_x=True)
    assert lines[0].text == "Mazda MX-5 Cup"


def test_sort_by_x_needs_every_position():
    fragments = [
        TextFragment("Cup", 500.0, x=300.0),
        TextFragment("Mazda MX-5 ", 501.0),
    ]
    lines = build_lines(fragments, sort_by_x=True)
    assert lines[0].text == "CupMazda MX-5"


def test_whitespace_fragments_survive_inside_a_line():
    fragments = [
        TextFragment("Mazda MX-5 Cup", 300.0),
        TextFragment("   ", 300.0),
        TextFragment("Qualifying 15 min", 300.0),
    ]
    assert build_lines(fragments)[0].text == "Mazda MX-5 Cup   Qualifying 15 min"


def test_custom_tolerance():
    fragments = [TextFragment("A", 100.0), TextFragment("B", 108.0)]
    assert [line.text for line in build_lines(fragments, y_tolerance=10)] == ["AB"]
