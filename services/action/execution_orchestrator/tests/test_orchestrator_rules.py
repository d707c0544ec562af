"""Unit tests for creation rules, retry helpers, and the executor registry."""

from __future__ import annotations

import pytest

from services.action.execution_orchestrator import rules
from services.action.execution_orchestrator.domain import ActionOptions
from services.action.execution_orchestrator.errors import (
    ActionTimeoutError,
    ExecutorNotFoundError,
)
from services.action.execution_orchestrator.registry import ExecutorRegistry
from services.action.execution_orchestrator.retry import (
    compute_backoff_delay_ms,
    is_retryable_error,
    should_retry,
)
from services.state.action_store.domain import (
    Action,
    ActionContext,
    ActionParameters,
    ActionResult,
    ActionType,
    RetryPolicy,
)


class _NoopExecutor:
    async def execute(self, action: Action) -> ActionResult:
        del action
        return ActionResult(success=True)


def _params(**values: object) -> ActionParameters:
    return ActionParameters.model_validate(values)


def test_missing_parameters_lists_absent_required_fields_in_order() -> None:
    """Required fields are reported in declaration order."""
    assert rules.missing_parameters(ActionType.SEND_EMAIL, _params(subject="hi")) == (
        "to",
        "content",
    )
    assert rules.missing_parameters(ActionType.CUSTOM, _params()) == ()


def test_descriptions_follow_action_type() -> None:
    """Each type renders its own one-line summary."""
    assert (
        rules.describe_action(ActionType.SEND_EMAIL, _params(to=["a@x.io", "b@x.io"]))
        == "Send email to a@x.io, b@x.io"
    )
    assert (
        rules.describe_action(ActionType.SCHEDULE_MEETING, _params())
        == "Schedule meeting: Meeting"
    )
    assert (
        rules.describe_action(ActionType.FETCH_DATA, _params(source="crm"))
        == "Fetch data from crm"
    )
    assert rules.describe_action(ActionType.CUSTOM, _params()) == "Custom action"


def test_confidence_rewards_context_and_completeness() -> None:
    """Client, CRM data, intent, and complete parameters all add confidence."""
    bare = rules.estimate_confidence(
        ActionType.UPDATE_CRM, _params(), ActionContext()
    )
    rich = rules.estimate_confidence(
        ActionType.UPDATE_CRM,
        _params(client_id="c-1", data={"stage": "won"}),
        ActionContext(
            client_id="c-1", crm_data={"tier": "gold"}, extracted_intent="update"
        ),
    )

    assert bare == 0.7
    assert rich == 1.0


def test_confidence_is_capped_at_one() -> None:
    """Confidence never exceeds 1.0."""
    value = rules.estimate_confidence(
        ActionType.CUSTOM,
        _params(),
        ActionContext(client_id="c", crm_data={"a": 1}, extracted_intent="x"),
    )
    assert value == 1.0


def test_default_approval_covers_outbound_types_bulk_and_wide_audiences() -> None:
    """Outbound contact, bulk work, and more than five recipients need approval."""
    assert rules.default_requires_approval(ActionType.MAKE_CALL, _params()) is True
    assert rules.default_requires_approval(ActionType.CREATE_TASK, _params()) is False
    assert (
        rules.default_requires_approval(ActionType.CREATE_TASK, _params(bulk=True))
        is True
    )
    six = [f"u{index}" for index in range(6)]
    five = six[:5]
    assert (
        rules.default_requires_approval(
            ActionType.SEND_NOTIFICATION, _params(recipients=six)
        )
        is True
    )
    assert (
        rules.default_requires_approval(
            ActionType.SEND_NOTIFICATION, _params(recipients=five)
        )
        is False
    )


def test_options_accept_validate_alias() -> None:
    """The public ``validate`` name maps onto the internal field."""
    assert ActionOptions(validate=False).validate_parameters is False
    assert ActionOptions().validate_parameters is True


def test_exponential_backoff_doubles_and_caps() -> None:
    """Exponential delays double from the base and stop at the cap."""
    policy = RetryPolicy(base_delay_ms=1_000, max_delay_ms=5_000)
    assert [compute_backoff_delay_ms(policy, count) for count in (1, 2, 3, 4)] == [
        1_000,
        2_000,
        4_000,
        5_000,
    ]


def test_linear_and_fixed_backoff() -> None:
    """Linear grows by the base; fixed stays flat."""
    linear = RetryPolicy(backoff_strategy="linear", base_delay_ms=500)
    fixed = RetryPolicy(backoff_strategy="fixed", base_delay_ms=250)
    assert compute_backoff_delay_ms(linear, 3) == 1_500
    assert compute_backoff_delay_ms(fixed, 3) == 250


def test_backoff_rejects_non_positive_retry_count() -> None:
    """Retry numbering starts at one."""
    with pytest.raises(ValueError, match="retry_count"):
        compute_backoff_delay_ms(RetryPolicy(), 0)


def test_should_retry_stops_at_max_retries() -> None:
    """Retries are allowed only below the bound."""
    assert should_retry(0, 3) is True
    assert should_retry(2, 3) is True
    assert should_retry(3, 3) is False
    assert should_retry(0, 0) is False


def test_retryable_errors_match_type_name_or_message() -> None:
    """Markers match case-insensitively against type name and message."""
    markers = RetryPolicy().retryable_errors
    assert is_retryable_error(RuntimeError("Service_Unavailable (503)"), markers)
    assert is_retryable_error(
        ActionTimeoutError(action_id="a-1", timeout_ms=10), markers
    )
    assert is_retryable_error("rate_limit exceeded", markers)
    assert not is_retryable_error(ValueError("bad input"), markers)


def test_executor_registry_round_trip() -> None:
    """Executors are registered, looked up, and removed by action type."""
    registry = ExecutorRegistry()
    executor = _NoopExecutor()
    registry.register(ActionType.CREATE_TASK, executor)

    assert registry.get(ActionType.CREATE_TASK) is executor
    assert registry.registered_types() == (ActionType.CREATE_TASK,)
    assert registry.unregister(ActionType.CREATE_TASK) is True
    assert registry.unregister(ActionType.CREATE_TASK) is False
    with pytest.raises(ExecutorNotFoundError, match="create_task"):
        registry.get(ActionType.CREATE_TASK)
