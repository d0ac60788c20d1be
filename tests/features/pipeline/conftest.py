"""BDD step definitions for the report pipeline features."""

import pytest
from pytest_bdd import given, parsers, then, when
from tests.features.pipeline.steps_helpers import (
    PipelineScenarioContext,
    run_async,
    send_reports,
    send_reports_nowait,
)


@pytest.fixture
def ctx() -> PipelineScenarioContext:
    """Fresh scenario context for each test."""
    return PipelineScenarioContext()


def _statuses(text: str) -> list[str]:
    return [part.strip() for part in text.split(",")]


# === Given ===
@given(parsers.parse("a client with rate limit {limit:d}"))
def step_rate_limit(ctx: PipelineScenarioContext, limit: int) -> None:
    ctx.options["rateLimit"] = limit


@given(parsers.parse("a client with sampling {sampling:g}"))
def step_sampling(ctx: PipelineScenarioContext, sampling: float) -> None:
    ctx.options["sampling"] = sampling


@given(parsers.parse("a client with breadcrumb limit {limit:d}"))
def step_breadcrumb_limit(ctx: PipelineScenarioContext, limit: int) -> None:
    ctx.options["breadcrumbLimit"] = limit


@given("a filter that drops every report")
def step_drop_filter(ctx: PipelineScenarioContext) -> None:
    ctx.options["filter"] = lambda report: True


@given("the server is unreachable")
def step_unreachable(ctx: PipelineScenarioContext) -> None:
    ctx.transport.send_error = ConnectionError("connection refused")


# === When ===
@when(parsers.parse("{count:d} reports are sent without waiting"))
def step_send_reports_nowait(ctx: PipelineScenarioContext, count: int) -> None:
    run_async(send_reports_nowait(ctx, count))


@when(parsers.parse("{count:d} reports are sent"))
def step_send_reports(ctx: PipelineScenarioContext, count: int) -> None:
    run_async(send_reports(ctx, count))


@when(parsers.parse("{seconds:d} seconds pass"))
def step_time_passes(ctx: PipelineScenarioContext, seconds: int) -> None:
    ctx.clock.advance(seconds)


@when(parsers.parse("{count:d} breadcrumbs are recorded"))
def step_record_breadcrumbs(ctx: PipelineScenarioContext, count: int) -> None:
    client = ctx.get_client()
    for index in range(count):
        client.leave_breadcrumb(f"event {index}")


# === Then ===
@then(parsers.parse('the results are "{expected}"'))
def step_results(ctx: PipelineScenarioContext, expected: str) -> None:
    assert [result.status.value for result in ctx.results] == _statuses(expected)


@then(parsers.parse('the last result is "{expected}"'))
def step_last_result(ctx: PipelineScenarioContext, expected: str) -> None:
    assert ctx.results[-1].status.value == expected


@then("no report reaches the transport")
def step_nothing_sent(ctx: PipelineScenarioContext) -> None:
    assert ctx.transport.reports == []


@then(parsers.parse('the last breadcrumb is "{message}" with error "{error}"'))
def step_last_breadcrumb(
    ctx: PipelineScenarioContext, message: str, error: str
) -> None:
    crumb = ctx.get_client().breadcrumbs.get()[-1]
    assert crumb.message == message
    assert crumb.attributes["error"] == error


@then(parsers.parse('the breadcrumb trail is "{expected}"'))
def step_breadcrumb_trail(ctx: PipelineScenarioContext, expected: str) -> None:
    trail = [crumb.message for crumb in ctx.get_client().breadcrumbs.get()]
    assert trail == _statuses(expected)
