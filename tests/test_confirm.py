"""Test confirmation gate."""

from webwerk.services import ConfirmationGate


def test_auto_confirm_never_prompts(answers) -> None:
    """Test auto-confirm approves without reading input."""
    read = answers()
    gate = ConfirmationGate(auto_confirm=True, input_func=read)
    assert gate.confirm("Proceed with core update?")
    assert read.prompts == []


def test_affirmative_answers(answers) -> None:
    """Test y and yes in any case approve."""
    gate = ConfirmationGate(input_func=answers("y", "Y", "yes", "YES "))
    assert all(gate.confirm("Proceed?") for _ in range(4))


def test_anything_else_declines(answers) -> None:
    """Test every other answer declines."""
    gate = ConfirmationGate(input_func=answers("", "n", "no", "ja", "yy"))
    assert not any(gate.confirm("Proceed?") for _ in range(5))


def test_prompt_shows_default(answers) -> None:
    """Test the question is shown with the no-default hint."""
    read = answers("n")
    ConfirmationGate(input_func=read).confirm("Push to remote repository?")
    assert read.prompts == ["Push to remote repository? [y/N]"]


def test_ask_strips_answer(answers) -> None:
    """Test free text answers are stripped."""
    gate = ConfirmationGate(input_func=answers("  shop \n"))
    assert gate.ask("Enter new name") == "shop"
