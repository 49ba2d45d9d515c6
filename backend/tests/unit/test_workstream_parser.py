import pytest
from app.domain.workstream_parser import WORKSTREAM_COLORS, parse_workstreams, color_for_index
from app.errors import ValidationAppError


def test_parses_three_lines_with_palette_colors():
    result = parse_workstreams("Engineering, 60\nDesign, 25\nQA, 15")
    assert result.errors == []
    assert [ws.name for ws in result.workstreams] == ["Engineering", "Design", "QA"]
    assert [ws.color for ws in result.workstreams] == WORKSTREAM_COLORS[:3]
    assert sum(ws.effort for ws in result.workstreams) == pytest.approx(100.0)
    assert result.ok


def test_efforts_are_normalized():
    result = parse_workstreams("A, 1\nB, 3")
    assert [ws.effort for ws in result.workstreams] == pytest.approx([25.0, 75.0])


def test_malformed_line_is_reported_but_valid_line_survives():
    result = parse_workstreams("Engineering 60\nDesign, 40")
    assert result.errors == ['Line 1: Invalid format. Expected "name, percentage"']
    assert len(result.workstreams) == 1
    assert result.workstreams[0].name == "Design"
    assert result.workstreams[0].effort == pytest.approx(100.0)


def test_eleven_lines_is_rejected_outright():
    text = "\n".join(f"W{i}, 10" for i in range(11))
    result = parse_workstreams(text)
    assert result.errors == ["Maximum 10 workstreams allowed"]
    assert result.workstreams == []


def test_empty_input_requires_one_workstream():
    for text in ("", "   \n  \n", None):
        result = parse_workstreams(text)
        assert result.errors == ["At least one workstream is required"]
        assert not result.ok


def test_blank_lines_are_skipped_for_numbering():
    result = parse_workstreams("A, 10\n\n, 20\nC, abc")
    assert result.errors == [
        "Line 2: Workstream name is required",
        'Line 3: Invalid percentage "abc"',
    ]


@pytest.mark.parametrize("value", ["0", "-5", "nan", "inf"])
def test_non_positive_or_non_finite_percentages_are_invalid(value):
    result = parse_workstreams(f"A, {value}")
    assert result.errors == [f'Line 1: Invalid percentage "{value}"']


def test_percent_sign_is_accepted():
    result = parse_workstreams("A, 30%\nB, 70 %")
    assert result.errors == []
    assert [ws.effort for ws in result.workstreams] == pytest.approx([30.0, 70.0])


def test_extra_comma_is_a_format_error():
    result = parse_workstreams("Research, Dev, 50")
    assert result.errors == ['Line 1: Invalid format. Expected "name, percentage"']


def test_colors_cycle_past_palette_length():
    assert color_for_index(len(WORKSTREAM_COLORS)) == WORKSTREAM_COLORS[0]
    assert color_for_index(9) == WORKSTREAM_COLORS[1]


def test_raise_for_errors_joins_messages():
    result = parse_workstreams("bad\nworse")
    with pytest.raises(ValidationAppError) as exc:
        result.raise_for_errors()
    assert exc.value.code == "WORKSTREAMS_INVALID"
    assert exc.value.message.count("\n") == 1
