"""
Tests for Shared Module.
========================

Tests for:
- Outcome types: Option, Try, Result
- Errors: context rendering and the ErrorBag
- Utils: text normalization and regex capture
- Config: settings defaults and URL helpers
"""

import threading

import pytest


# ─────────────────────────────────────────────────────────────────────────────
# Option Tests
# ─────────────────────────────────────────────────────────────────────────────


class TestOption:
    """Tests for Option."""

    def test_some_and_none(self):
        """Test that some holds a value and none falls back."""
        from isq_explorer.shared.outcome import Option

        assert Option.some(3).has_value
        assert Option.some(3).value == 3
        assert not Option.none().has_value
        assert Option.none().value_or(7) == 7

    def test_of_treats_none_as_empty(self):
        """Test that Option.of maps None to empty."""
        from isq_explorer.shared.outcome import Option

        assert not Option.of(None).has_value
        assert Option.of(0).has_value

    def test_value_of_empty_raises(self):
        """Test that reading an empty Option raises."""
        from isq_explorer.shared.outcome import EmptyOptionError, Option

        with pytest.raises(EmptyOptionError):
            Option.none().value

    def test_map(self):
        """Test that map applies only to a present value."""
        from isq_explorer.shared.outcome import Option

        assert Option.some("n00000001").map(str.upper) == Option.some("N00000001")
        assert Option.none().map(str.upper) == Option.none()

    def test_no_truth_testing(self):
        """Test that an Option cannot be used directly in a condition."""
        from isq_explorer.shared.outcome import Option

        with pytest.raises(TypeError):
            bool(Option.some(1))


# ─────────────────────────────────────────────────────────────────────────────
# Try Tests
# ─────────────────────────────────────────────────────────────────────────────


class TestTry:
    """Tests for Try."""

    def test_of_captures_value(self):
        """Test that Try.of captures a returned value."""
        from isq_explorer.shared.outcome import Try

        result = Try.of(int, "42")
        assert result.is_ok()
        assert result.unwrap() == 42

    def test_of_captures_matching_exception(self):
        """Test that Try.of captures the requested exception type."""
        from isq_explorer.shared.outcome import Try

        result = Try.of(int, "x", catch=ValueError)
        assert result.is_err()
        assert isinstance(result.unwrap_err(), ValueError)

    def test_of_lets_other_exceptions_propagate(self):
        """Test that only the requested exception types become the error case."""
        from isq_explorer.shared.outcome import Try

        with pytest.raises(KeyError):
            Try.of(lambda: {}["missing"], catch=ValueError)

    def test_unwrap_reraises_error(self):
        """Test that unwrap re-raises the captured error."""
        from isq_explorer.shared.outcome import Try

        error = RuntimeError("boom")
        with pytest.raises(RuntimeError) as exc_info:
            Try.err(error).unwrap()
        assert exc_info.value is error

    def test_map_and_to_option(self):
        """Test that map captures errors and to_option drops them."""
        from isq_explorer.shared.outcome import Option, Try

        assert Try.ok(2).map(lambda v: v * 10).unwrap() == 20
        assert Try.ok(2).map(lambda v: 1 / 0).is_err()
        assert Try.err(ValueError()).to_option() == Option.none()
        assert Try.ok(5).to_option() == Option.some(5)

    def test_value_or(self):
        """Test that value_or falls back only on error."""
        from isq_explorer.shared.outcome import Try

        assert Try.err(ValueError()).value_or(0) == 0
        assert Try.ok(1).value_or(0) == 1

    def test_no_truth_testing(self):
        """Test that a Try cannot be used in a condition."""
        from isq_explorer.shared.outcome import Try

        with pytest.raises(TypeError):
            bool(Try.ok(1))

    def test_of_async(self):
        """Test that Try.of_async captures an awaited error."""
        import asyncio

        from isq_explorer.shared.outcome import Try

        async def fails():
            raise ValueError("late")

        result = asyncio.run(Try.of_async(fails, catch=ValueError))
        assert result.is_err()


# ─────────────────────────────────────────────────────────────────────────────
# Result Tests
# ─────────────────────────────────────────────────────────────────────────────


class TestResult:
    """Tests for Result."""

    def test_of_success_and_failure(self):
        """Test that Result.of turns an exception into the error."""
        from isq_explorer.shared.outcome import Result

        assert Result.of(lambda: 5).is_ok()

        def fails():
            raise ValueError("bad")

        result = Result.of(fails)
        assert result.is_err()
        assert isinstance(result.error, ValueError)

    def test_of_passes_returned_result_through(self):
        """Test that Result.of returns a returned Result unchanged."""
        from isq_explorer.shared.outcome import Result

        inner = Result.err(RuntimeError("inner"))
        assert Result.of(lambda: inner) is inner

    def test_and_then_short_circuits(self):
        """Test that the second stage never runs after a failure."""
        from isq_explorer.shared.outcome import Result

        calls = []
        first = Result.err(RuntimeError("first"))
        combined = first.and_then(lambda: calls.append("second") or Result.ok())

        assert combined is first
        assert calls == []

    def test_and_then_runs_next_on_success(self):
        """Test that and_then runs the next stage after success."""
        from isq_explorer.shared.outcome import Result

        second_error = ValueError("second")
        combined = Result.ok().and_then(lambda: Result.err(second_error))
        assert combined.unwrap_err() is second_error

    def test_all_returns_first_failure(self):
        """Test that Result.all returns the first failure."""
        from isq_explorer.shared.outcome import Result

        first = Result.err(ValueError("a"))
        second = Result.err(ValueError("b"))
        assert Result.all([Result.ok(), first, second]) is first
        assert Result.all([Result.ok(), Result.ok()]).is_ok()

    def test_unwrap_err_on_success_raises(self):
        """Test that unwrap_err on success raises."""
        from isq_explorer.shared.outcome import Result

        with pytest.raises(ValueError):
            Result.ok().unwrap_err()

    def test_no_truth_testing(self):
        """Test that a failed Result cannot be used in a condition."""
        from isq_explorer.shared.outcome import Result

        with pytest.raises(TypeError):
            if Result.err(RuntimeError()):
                pass


# ─────────────────────────────────────────────────────────────────────────────
# Error Tests
# ─────────────────────────────────────────────────────────────────────────────


class TestErrors:
    """Tests for error classes and ErrorBag."""

    def test_scrape_error_context(self, department, term):
        """Test that a scrape error names department, term and N-number."""
        from isq_explorer.shared.errors import ProfessorScrapeError

        error = ProfessorScrapeError("No profile", department, term, "N00000001")
        text = str(error)

        assert "No profile" in text
        assert "department=Computing" in text
        assert "term=Fall 2019" in text
        assert "nnumber=N00000001" in text

    def test_element_error_truncates_snippet(self):
        """Test that the element snippet is truncated."""
        from isq_explorer.shared.errors import HtmlElementError

        error = HtmlElementError("<td>" + "x" * 500 + "</td>", "Bad cell")
        assert len(error.context["element"]) == 160

    def test_column_not_found_is_key_error(self):
        """Test that a missing column is a KeyError listing titles."""
        from isq_explorer.shared.errors import ColumnNotFoundError

        error = ColumnNotFoundError(None, "Mean GPA", ["Term", "CRN"])
        assert isinstance(error, KeyError)
        assert "Mean GPA" in str(error)
        assert "Term, CRN" in str(error)

    def test_bag_partitions_informational(self):
        """Test that the bag separates informational from fatal errors."""
        from isq_explorer.shared.errors import ErrorBag, InformationalError

        bag = ErrorBag()
        bag.add(InformationalError("nothing offered"))
        bag.add(ValueError("bad number"))

        assert len(bag) == 2
        assert len(bag.informational()) == 1
        assert len(bag.fatal()) == 1
        assert bag.summary() == {"InformationalError": 1, "ValueError": 1}

    def test_bag_concurrent_appends(self):
        """Test that appends from many threads are all kept."""
        from isq_explorer.shared.errors import ErrorBag

        bag = ErrorBag()

        def worker():
            for i in range(200):
                bag.add(ValueError(str(i)))

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(bag) == 1600

    def test_bag_extend(self):
        """Test that extend appends errors in order."""
        from isq_explorer.shared.errors import ErrorBag

        bag = ErrorBag()
        bag.extend(ValueError(str(i)) for i in range(3))
        assert [str(e) for e in bag] == ["0", "1", "2"]

    def test_informational_keeps_cause(self):
        """Test that an informational error keeps its cause."""
        from isq_explorer.shared.errors import HtmlPageError, InformationalError

        cause = HtmlPageError("https://x", "no tables")
        error = InformationalError("nothing here", cause)
        assert error.cause is cause
        assert error.__cause__ is cause


# ─────────────────────────────────────────────────────────────────────────────
# Utils Tests
# ─────────────────────────────────────────────────────────────────────────────


class TestUtils:
    """Tests for text and regex helpers."""

    def test_normalize_text(self):
        """Test that text is decoded and trimmed."""
        from isq_explorer.shared.utils import normalize_text

        assert normalize_text("  Fall&nbsp;2019 ") == "Fall 2019"
        assert normalize_text("A&amp;B") == "A&B"
        assert normalize_text(None) == ""

    def test_is_blank(self):
        """Test that whitespace and entities count as blank."""
        from isq_explorer.shared.utils import is_blank

        assert is_blank(None)
        assert is_blank(" \xa0 ")
        assert is_blank("&nbsp;")
        assert not is_blank("x")

    def test_capture_first_group(self):
        """Test that capture returns the requested group."""
        from isq_explorer.shared.utils import capture

        assert capture("abcdef", "a(bcd)e").value == "bcd"
        assert capture("abcdef", "(b)(c)", group=2).value == "c"

    def test_capture_without_groups_returns_whole_match(self):
        """Test that a pattern without groups returns the whole match."""
        from isq_explorer.shared.utils import capture

        assert capture("abcdef", "cd").value == "cd"
        assert not capture("abcdef", "x*").has_value

    def test_capture_out_of_range_group(self):
        """Test that a missing group is empty."""
        from isq_explorer.shared.utils import capture

        assert not capture("abcdef", "(b)", group=2).has_value
        assert not capture("abcdef", "(g)").has_value

    def test_capture_nnumber_case_insensitive(self):
        """Test that the N-number pattern ignores case."""
        from isq_explorer.shared.schemas import NNUMBER_PATTERN
        from isq_explorer.shared.utils import capture

        href = "wkshisq.p_isq_dept_pub?pv_instr=n01234567"
        assert capture(href, f"({NNUMBER_PATTERN})").value == "n01234567"

    def test_truncate_text(self):
        """Test that long text is truncated with an ellipsis."""
        from isq_explorer.shared.utils import truncate_text

        assert truncate_text("short", 10) == "short"
        assert truncate_text("a" * 20, 10) == "aaaaaaa..."


# ─────────────────────────────────────────────────────────────────────────────
# Config Tests
# ─────────────────────────────────────────────────────────────────────────────


class TestConfig:
    """Tests for settings."""

    def test_professor_url(self, scraping):
        """Test that the profile URL carries the N-number."""
        url = scraping.professor_url("N00000001")
        assert url.endswith("pv_instr=N00000001")

    def test_schedule_form_data(self, scraping):
        """Test that the schedule form carries term and department."""
        fields = scraping.schedule_form_data(201980, 6001)
        assert fields["pv_term"] == "201980"
        assert fields["pv_dept"] == "6001"
        assert fields["pv_sub"] == "Submit"

    def test_max_workers_must_be_positive(self):
        """Test that zero workers fails validation."""
        from pydantic import ValidationError

        from isq_explorer.shared.config import ScrapingConfig

        with pytest.raises(ValidationError):
            ScrapingConfig(max_workers=0)

    def test_env_overrides_workers(self, monkeypatch):
        """Test that ISQ_MAX_WORKERS overrides the worker count."""
        from isq_explorer.shared.config import Settings

        monkeypatch.setenv("ISQ_MAX_WORKERS", "3")
        assert Settings().get_effective_max_workers() == 3

    def test_yaml_defaults_loaded(self, monkeypatch):
        """Test that defaults are loaded from settings.yaml."""
        from isq_explorer.shared.config import reload_settings

        monkeypatch.delenv("ISQ_MAX_WORKERS", raising=False)
        settings = reload_settings()
        assert settings.scraping.max_workers == 8
        assert "wksfwbs" in settings.scraping.dept_schedule_url

    def test_processed_dir_resolved_against_base(self, temp_dir):
        """Test that the processed directory is resolved under the given base path."""
        from isq_explorer.shared.config import PathsConfig

        resolved = PathsConfig(processed_dir="out/json").resolve(temp_dir)

        assert resolved.processed_dir == temp_dir / "out" / "json"
        assert list(resolved.model_dump()) == ["processed_dir"]
