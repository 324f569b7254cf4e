"""
Unit tests for the tool-call parser.

Tests cover:
- Plain text (no call)
- Call name and argument extraction
- Full-width brackets and separators
- Quoted arguments containing separators/brackets
- Multiple calls in one reply
- Malformed argument lists
- Custom marker characters
"""

import pytest

from toolrelay.tools.errors import (
    MalformedArgumentListError,
    MultipleInvocationsError,
    ToolCallParseError,
)
from toolrelay.tools.parser import Invocation, find_invocations, parse_invocation

PREFIX = "※"


class TestNoInvocation:
    """Text without a call is a plain answer, never an error."""

    @pytest.mark.parametrize(
        "text",
        [
            "",
            "The weather in Beijing is sunny.",
            "Use get_weather(\"Beijing\") to check.",
            "多行\n文本\n没有工具调用",
            "A lone marker ※ followed by a space",
            "※ get_weather(\"x\")",
            "※(1, 2)",
        ],
    )
    def test_returns_none(self, text):
        assert parse_invocation(text, PREFIX) is None

    def test_marker_followed_by_non_ascii_word_is_not_a_call(self):
        assert parse_invocation("※天气", PREFIX) is None


class TestSingleInvocation:
    """Extraction of name and raw arguments."""

    def test_call_without_arguments(self):
        assert parse_invocation("※current_time", PREFIX) == Invocation("current_time", [])

    def test_call_with_empty_parentheses(self):
        assert parse_invocation("※current_time()", PREFIX) == Invocation("current_time", [])

    def test_call_embedded_in_text(self):
        inv = parse_invocation('Let me check. ※get_weather("Beijing") one moment', PREFIX)
        assert inv == Invocation("get_weather", ['"Beijing"'])

    def test_arguments_are_trimmed_and_keep_quotes(self):
        inv = parse_invocation('※add( 1 ,  "two" , 3.5 )', PREFIX)
        assert inv.raw_args == ["1", '"two"', "3.5"]

    def test_empty_arguments_are_dropped(self):
        inv = parse_invocation("※add(1,,2, )", PREFIX)
        assert inv.raw_args == ["1", "2"]

    def test_full_width_brackets_and_commas(self):
        inv = parse_invocation("※add（1，2）", PREFIX)
        assert inv == Invocation("add", ["1", "2"])

    def test_mixed_width_brackets(self):
        inv = parse_invocation("※add(1，2）", PREFIX)
        assert inv.raw_args == ["1", "2"]

    def test_name_stops_at_first_non_word_character(self):
        inv = parse_invocation("※get_weather-now", PREFIX)
        assert inv.tool_name == "get_weather"

    def test_space_before_bracket_means_no_arguments(self):
        inv = parse_invocation("※current_time (ignored)", PREFIX)
        assert inv == Invocation("current_time", [])

    def test_multiline_arguments(self):
        inv = parse_invocation('※search(\n  "python",\n  10\n)', PREFIX)
        assert inv.raw_args == ['"python"', "10"]


class TestQuotedArguments:
    """Separators and brackets inside quotes are literal."""

    def test_comma_inside_double_quotes(self):
        inv = parse_invocation('※search("hello, world", 3)', PREFIX)
        assert inv.raw_args == ['"hello, world"', "3"]

    def test_full_width_comma_inside_quotes(self):
        inv = parse_invocation('※search("你好，世界")', PREFIX)
        assert inv.raw_args == ['"你好，世界"']

    def test_closing_bracket_inside_quotes(self):
        inv = parse_invocation('※calculate("(1 + 2) * 3")', PREFIX)
        assert inv.raw_args == ['"(1 + 2) * 3"']

    def test_single_quotes(self):
        inv = parse_invocation("※search('a, b')", PREFIX)
        assert inv.raw_args == ["'a, b'"]

    def test_curly_quotes(self):
        inv = parse_invocation("※search(“北京，上海”, ‘x, y’)", PREFIX)
        assert inv.raw_args == ["“北京，上海”", "‘x, y’"]

    def test_apostrophe_inside_unquoted_argument_is_literal(self):
        inv = parse_invocation("※search(it's fine)", PREFIX)
        assert inv.raw_args == ["it's fine"]

    def test_marker_inside_quoted_argument_is_not_a_second_call(self):
        inv = parse_invocation('※echo("say ※hello")', PREFIX)
        assert inv.raw_args == ['"say ※hello"']


class TestMultipleInvocations:
    """More than one call per reply is rejected."""

    def test_two_calls_back_to_back(self):
        with pytest.raises(MultipleInvocationsError, match="Only one tool call"):
            parse_invocation("※a(1)※b(2)", PREFIX)

    def test_two_calls_separated_by_text(self):
        with pytest.raises(MultipleInvocationsError):
            parse_invocation("First ※current_time then ※current_time again", PREFIX)

    def test_rejected_even_for_unknown_tools(self):
        with pytest.raises(MultipleInvocationsError) as exc_info:
            parse_invocation("※nope ※also_nope ※third", PREFIX)
        assert exc_info.value.count == 3

    def test_is_a_parse_error(self):
        with pytest.raises(ToolCallParseError):
            parse_invocation("※a ※b", PREFIX)

    def test_find_invocations_returns_all(self):
        found = find_invocations("※a(1)※b(2, 3)", PREFIX)
        assert found == [Invocation("a", ["1"]), Invocation("b", ["2", "3"])]


class TestMalformedArguments:
    """Argument lists that cannot be scanned."""

    def test_missing_closing_bracket(self):
        with pytest.raises(MalformedArgumentListError, match="closing bracket"):
            parse_invocation('※get_weather("Beijing"', PREFIX)

    def test_unterminated_quote(self):
        with pytest.raises(MalformedArgumentListError, match="Unterminated"):
            parse_invocation('※get_weather("Beijing)', PREFIX)

    def test_is_a_parse_error(self):
        with pytest.raises(ToolCallParseError):
            parse_invocation("※add(1, 2", PREFIX)


class TestCustomPrefix:
    """The marker character is configurable."""

    def test_custom_prefix_is_recognised(self):
        assert parse_invocation("¶add(1, 2)", "¶") == Invocation("add", ["1", "2"])

    def test_default_marker_ignored_with_custom_prefix(self):
        assert parse_invocation("※add(1, 2)", "¶") is None
