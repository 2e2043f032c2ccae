"""Tests for the health check engine: results, rollup and aggregator."""

from __future__ import annotations

import logging

import pytest

from conftest import AlwaysDegradedCheck, AlwaysDownCheck, AlwaysUpCheck, ExplodingCheck
from healthcheck.health.engine import (
    FAULT_MESSAGE,
    Aggregator,
    Check,
    ConfigurationError,
    Report,
    Result,
    Status,
    degraded,
    okay,
    overall_status,
    problem,
    run_checks,
    validate_checks,
)


class NamedCheck:
    def __init__(self, name: str, result: Result | None = None) -> None:
        self.name = name
        self.result = result or okay()
        self.calls = 0

    def evaluate(self) -> Result:
        self.calls += 1
        return self.result


# ── Result ───────────────────────────────────────────────────────────────────


class TestResult:
    def test_okay_has_no_message_or_context(self) -> None:
        r = okay()
        assert r.status is Status.OK
        assert r.to_dict() == {"status": "OK"}

    def test_degraded_with_details(self) -> None:
        r = degraded("Slow", {"latency_ms": 4000})
        assert r.to_dict() == {"status": "DEGRADED", "message": "Slow", "context": {"latency_ms": 4000}}

    def test_problem_without_context_omits_key(self) -> None:
        assert problem("Down").to_dict() == {"status": "PROBLEM", "message": "Down"}

    def test_problem_without_anything(self) -> None:
        assert problem().to_dict() == {"status": "PROBLEM"}

    def test_ok_with_message_rejected(self) -> None:
        with pytest.raises(ValueError):
            Result(Status.OK, message="all good")

    def test_ok_with_context_rejected(self) -> None:
        with pytest.raises(ValueError):
            Result(Status.OK, context={"a": 1})

    def test_invalid_status_rejected(self) -> None:
        with pytest.raises(ValueError):
            Result("UP")  # type: ignore[arg-type]

    def test_immutable(self) -> None:
        r = okay()
        with pytest.raises(AttributeError):
            r.status = Status.PROBLEM  # type: ignore[misc]

    def test_context_is_copied_and_read_only(self) -> None:
        context = {"debug": "info"}
        r = problem("Down", context)
        context["debug"] = "changed"
        assert r.context == {"debug": "info"}
        with pytest.raises(TypeError):
            r.context["debug"] = "changed"  # type: ignore[index]


# ── Rollup ───────────────────────────────────────────────────────────────────


class TestOverallStatus:
    def test_severity_order(self) -> None:
        assert Status.OK.severity < Status.DEGRADED.severity < Status.PROBLEM.severity

    def test_status_compares_by_severity(self) -> None:
        assert Status.OK < Status.DEGRADED < Status.PROBLEM
        assert Status.PROBLEM >= Status.DEGRADED > Status.OK
        assert max([Status.OK, Status.DEGRADED]) is Status.DEGRADED
        assert sorted([Status.PROBLEM, Status.OK, Status.DEGRADED]) == [
            Status.OK, Status.DEGRADED, Status.PROBLEM,
        ]

    def test_empty_is_ok(self) -> None:
        assert overall_status([]) is Status.OK

    def test_all_ok(self) -> None:
        assert overall_status([Status.OK, Status.OK]) is Status.OK

    def test_degraded_without_problem(self) -> None:
        assert overall_status([Status.OK, Status.DEGRADED, Status.OK]) is Status.DEGRADED

    @pytest.mark.parametrize("statuses", [
        [Status.PROBLEM],
        [Status.OK, Status.PROBLEM],
        [Status.DEGRADED, Status.PROBLEM, Status.OK],
        [Status.PROBLEM, Status.DEGRADED],
    ])
    def test_problem_dominates(self, statuses: list[Status]) -> None:
        assert overall_status(statuses) is Status.PROBLEM


# ── run_checks ───────────────────────────────────────────────────────────────


class TestRunChecks:
    def test_empty(self) -> None:
        report = run_checks([])
        assert report.overall_status is Status.OK
        assert report.entries == {}
        assert report.to_dict() == {"status": "OK"}

    def test_always_up(self) -> None:
        report = run_checks([AlwaysUpCheck()])
        assert report.to_dict() == {"status": "OK", "always-up": {"status": "OK"}}

    def test_degraded(self) -> None:
        report = run_checks([AlwaysUpCheck(), AlwaysDegradedCheck()])
        assert report.to_dict() == {
            "status": "DEGRADED",
            "always-up": {"status": "OK"},
            "always-degraded": {
                "status": "DEGRADED",
                "message": "Something went wrong",
                "context": {"debug": "info"},
            },
        }

    def test_problem(self) -> None:
        report = run_checks([AlwaysUpCheck(), AlwaysDownCheck()])
        assert report.to_dict() == {
            "status": "PROBLEM",
            "always-up": {"status": "OK"},
            "always-down": {
                "status": "PROBLEM",
                "message": "Something went wrong",
                "context": {"debug": "info"},
            },
        }

    def test_problem_dominates_degraded(self) -> None:
        report = run_checks([AlwaysUpCheck(), AlwaysDegradedCheck(), AlwaysDownCheck()])
        assert report.overall_status is Status.PROBLEM
        assert report.entries["always-degraded"].status is Status.DEGRADED

    def test_preserves_configuration_order(self) -> None:
        checks = [
            NamedCheck("zeta", problem("x")),
            NamedCheck("alpha"),
            NamedCheck("mid", degraded("y")),
        ]
        report = run_checks(checks)
        assert list(report.entries) == ["zeta", "alpha", "mid"]
        assert list(report.to_dict()) == ["status", "zeta", "alpha", "mid"]

    def test_entries_are_read_only(self) -> None:
        report = run_checks([AlwaysUpCheck()])
        with pytest.raises(TypeError):
            report.entries["intruder"] = okay()  # type: ignore[index]
        assert list(report.to_dict()) == ["status", "always-up"]

    def test_each_check_evaluated_once(self) -> None:
        checks = [NamedCheck("a"), NamedCheck("b")]
        run_checks(checks)
        assert [c.calls for c in checks] == [1, 1]


class TestFaults:
    def test_exception_becomes_problem(self) -> None:
        report = run_checks([AlwaysUpCheck(), ExplodingCheck()])
        assert report.overall_status is Status.PROBLEM
        assert report.entries["exploding"].to_dict() == {
            "status": "PROBLEM",
            "message": FAULT_MESSAGE,
        }

    def test_fault_does_not_stop_later_checks(self) -> None:
        later = NamedCheck("later")
        report = run_checks([ExplodingCheck(), later])
        assert later.calls == 1
        assert report.entries["later"].status is Status.OK

    def test_debug_exposes_exception(self) -> None:
        report = run_checks([ExplodingCheck()], debug=True)
        assert report.entries["exploding"].context == {
            "exception": "RuntimeError",
            "detail": "db handle is None",
        }

    def test_message_does_not_leak_details(self) -> None:
        report = run_checks([ExplodingCheck()], debug=True)
        assert "db handle" not in report.entries["exploding"].message

    def test_non_result_return_is_fault(self) -> None:
        check = NamedCheck("bogus")
        check.result = {"status": "OK"}  # type: ignore[assignment]
        report = run_checks([check])
        assert report.entries["bogus"].status is Status.PROBLEM

    def test_fault_is_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.ERROR, logger="healthcheck.health.engine"):
            run_checks([ExplodingCheck()])
        assert "exploding" in caplog.text


# ── Validation ───────────────────────────────────────────────────────────────


class TestValidateChecks:
    def test_protocol(self) -> None:
        assert isinstance(AlwaysUpCheck(), Check)
        assert not isinstance(object(), Check)

    def test_duplicate_names_rejected(self) -> None:
        with pytest.raises(ConfigurationError, match="Duplicate"):
            validate_checks([NamedCheck("db"), NamedCheck("db")])

    @pytest.mark.parametrize("name", ["", "has space", "a/b", "café", "status"])
    def test_invalid_names_rejected(self, name: str) -> None:
        with pytest.raises(ConfigurationError):
            validate_checks([NamedCheck(name)])

    @pytest.mark.parametrize("name", ["db", "always-up", "cache_1", "v1.2~x"])
    def test_valid_names(self, name: str) -> None:
        assert len(validate_checks([NamedCheck(name)])) == 1

    def test_not_a_check(self) -> None:
        with pytest.raises(ConfigurationError):
            validate_checks([object()])

    def test_configuration_error_is_value_error(self) -> None:
        assert issubclass(ConfigurationError, ValueError)


# ── Aggregator ───────────────────────────────────────────────────────────────


class TestAggregator:
    def test_run(self) -> None:
        agg = Aggregator([AlwaysUpCheck(), AlwaysDegradedCheck()])
        report = agg.run()
        assert isinstance(report, Report)
        assert report.overall_status is Status.DEGRADED

    def test_fresh_report_per_run(self) -> None:
        agg = Aggregator([AlwaysUpCheck()])
        assert agg.run() is not agg.run()

    def test_rejects_duplicates_at_construction(self) -> None:
        with pytest.raises(ConfigurationError):
            Aggregator([AlwaysUpCheck(), AlwaysUpCheck()])

    @pytest.mark.parametrize("check", [AlwaysUpCheck(), AlwaysDegradedCheck(), AlwaysDownCheck()])
    def test_default_http_status_always_200(self, check) -> None:
        agg = Aggregator([check])
        assert agg.http_status(agg.run()) == 200

    def test_problem_status_code_policy(self) -> None:
        agg = Aggregator([AlwaysDownCheck()], status_codes={Status.PROBLEM: 503})
        assert agg.http_status(agg.run()) == 503
        assert agg.status_codes[Status.DEGRADED] == 200

    def test_debug_passed_through(self) -> None:
        agg = Aggregator([ExplodingCheck()], debug=True)
        assert agg.run().entries["exploding"].context["exception"] == "RuntimeError"
