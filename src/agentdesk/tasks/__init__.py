"""Task registration and singleton accessor."""

from __future__ import annotations

from agentdesk.tasks.runner import TaskRunner

NOTIFY_APPROVAL_TASK = "agentdesk.tasks.notify.post_approval_notice"

_task_runner: TaskRunner | None = None


def _register_tasks(runner: TaskRunner) -> None:
    from agentdesk.tasks import notify

    runner.register(NOTIFY_APPROVAL_TASK, notify.post_approval_notice)


def get_task_runner() -> TaskRunner:
    global _task_runner
    if _task_runner is None:
        runner = TaskRunner()
        _register_tasks(runner)
        _task_runner = runner
    return _task_runner


def shutdown_task_runner(timeout_s: float | None = None) -> None:
    """Drain the shared runner, if one was started, and forget it."""
    global _task_runner
    runner, _task_runner = _task_runner, None
    if runner is not None:
        runner.shutdown(timeout_s)


def reset_task_runner() -> None:
    shutdown_task_runner(timeout_s=0)
