"""
Tests for the summary builder module.

Covers: build_concise_summary edge cases and content extraction.
"""
from pipeline.summary_builder import build_concise_summary


class TestBuildConciseSummary:

    def test_empty_input_returns_defaults(self):
        result = build_concise_summary("")
        assert result.startswith("- State: No advisory text was returned.")
        assert "- Driver:" in result
        assert "- Directive:" in result

    def test_none_input_returns_defaults(self):
        result = build_concise_summary(None)
        assert "No advisory text was returned." in result

    def test_extracts_three_bullets(self):
        result = build_concise_summary(
            "Integrity score is low at 42.\n"
            "This is due to screen fatigue late in the evening.\n"
            "You should cut screens an hour before bed tonight."
        )
        lines = result.strip().split("\n")
        assert len(lines) == 3
        assert lines[0] == "- State: Integrity score is low at 42."
        assert lines[1] == "- Driver: This is due to screen fatigue late in the evening."
        assert lines[2] == "- Directive: You should cut screens an hour before bed tonight."

    def test_keyword_order_does_not_depend_on_line_order(self):
        result = build_concise_summary(
            "Recommend an earlier bedtime tomorrow.\n"
            "Hydration is below target."
        )
        lines = result.split("\n")
        assert lines[0] == "- State: Hydration is below target."
        assert lines[2] == "- Directive: Recommend an earlier bedtime tomorrow."

    def test_unmatched_lines_fill_gaps(self):
        result = build_concise_summary("Alpha.\nBeta.\nGamma.")
        assert result.split("\n") == ["- State: Alpha.", "- Driver: Beta.", "- Directive: Gamma."]

    def test_single_line_uses_fallbacks(self):
        result = build_concise_summary("Composite score stable.")
        lines = result.split("\n")
        assert lines[0] == "- State: Composite score stable."
        assert lines[1].startswith("- Driver: No single driver")
        assert lines[2].startswith("- Directive: Work on the lowest sub-score")

    def test_skips_markdown_tables_and_rules(self):
        result = build_concise_summary(
            "| metric | value |\n"
            "|---|---|\n"
            "=====\n"
            "Sleep score high."
        )
        assert "|" not in result
        assert "=====" not in result
        assert result.startswith("- State: Sleep score high.")

    def test_strips_list_markers(self):
        result = build_concise_summary("- Score below baseline\n* Avoid caffeine after noon")
        assert "- State: Score below baseline" in result
        assert "- Directive: Avoid caffeine after noon" in result

    def test_bullets_are_clipped(self):
        result = build_concise_summary("Score " + "x" * 1000)
        for line in result.split("\n"):
            assert len(line) <= 280
        assert result.split("\n")[0].endswith("...")
