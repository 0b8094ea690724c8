from agentdesk.orchestrator.step import _strip_control_tokens


def test_plain_text_untouched() -> None:
    assert _strip_control_tokens("  Your rankings are up 12%.  ") == "Your rankings are up 12%."


def test_cuts_at_first_control_marker() -> None:
    raw = "Final answer here.<|end|><|start|>assistant<|channel|>analysis<|message|>secret"
    assert _strip_control_tokens(raw) == "Final answer here."
