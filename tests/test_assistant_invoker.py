from pathlib import Path

import pytest

from tests.helpers import fake_cli
from wabridge.agent.invoker import (
    ClaudeInvoker,
    InvocationError,
    InvocationTimeoutError,
    NO_OUTPUT,
    SpawnError,
)


def test_argv_carries_print_flag_turn_cap_and_prompt(tmp_path: Path) -> None:
    invoker = ClaudeInvoker(tmp_path)
    assert invoker.build_argv("list tasks") == ["claude", "--print", "--max-turns", "3", "list tasks"]

    custom = ClaudeInvoker(tmp_path, command="npx claude", max_turns=5)
    assert custom.build_argv("hi") == ["npx", "claude", "--print", "--max-turns", "5", "hi"]


async def test_invoke_returns_trimmed_stdout(tmp_path: Path) -> None:
    command = fake_cli(tmp_path, 'print("  " + " ".join(sys.argv[1:]) + "  ")')
    invoker = ClaudeInvoker(tmp_path, command=command)

    assert await invoker.invoke("what changed?") == "--print --max-turns 3 what changed?"


async def test_invoke_runs_in_work_dir_without_color(tmp_path: Path) -> None:
    work = tmp_path / "work"
    work.mkdir()
    command = fake_cli(tmp_path, 'print(os.getcwd()); print(os.environ.get("NO_COLOR"))')

    output = await ClaudeInvoker(work, command=command).invoke("pwd")

    cwd, no_color = output.splitlines()
    assert Path(cwd).resolve() == work.resolve()
    assert no_color == "1"


async def test_empty_stdout_on_success_reports_no_output(tmp_path: Path) -> None:
    command = fake_cli(tmp_path, "sys.exit(0)")
    assert await ClaudeInvoker(tmp_path, command=command).invoke("x") == NO_OUTPUT


async def test_nonzero_exit_with_stdout_is_treated_as_success(tmp_path: Path) -> None:
    # Partial output wins over the exit code on purpose.
    command = fake_cli(tmp_path, 'print("partial answer"); sys.stderr.write("late failure"); sys.exit(2)')
    invoker = ClaudeInvoker(tmp_path, command=command)

    result = await invoker.run("x")
    assert result.exit_code == 2
    assert await invoker.invoke("x") == "partial answer"


async def test_nonzero_exit_without_stdout_raises_stderr(tmp_path: Path) -> None:
    command = fake_cli(tmp_path, 'sys.stderr.write("boom\\n"); sys.exit(1)')

    with pytest.raises(InvocationError) as excinfo:
        await ClaudeInvoker(tmp_path, command=command).invoke("x")
    assert str(excinfo.value) == "boom"
    assert not isinstance(excinfo.value, (SpawnError, InvocationTimeoutError))


async def test_nonzero_exit_without_any_output_reports_code(tmp_path: Path) -> None:
    command = fake_cli(tmp_path, "sys.exit(3)")

    with pytest.raises(InvocationError, match="Claude exited with code 3"):
        await ClaudeInvoker(tmp_path, command=command).invoke("x")


async def test_missing_executable_raises_spawn_error(tmp_path: Path) -> None:
    invoker = ClaudeInvoker(tmp_path, command="wabridge-no-such-claude-binary")

    with pytest.raises(SpawnError, match="Failed to run Claude"):
        await invoker.invoke("x")


async def test_missing_work_dir_raises_spawn_error(tmp_path: Path) -> None:
    command = fake_cli(tmp_path, 'print("never")')
    invoker = ClaudeInvoker(tmp_path / "missing", command=command)

    with pytest.raises(SpawnError):
        await invoker.invoke("x")


async def test_timeout_terminates_process(tmp_path: Path) -> None:
    command = fake_cli(tmp_path, 'print("started", flush=True); time.sleep(30)')
    invoker = ClaudeInvoker(tmp_path, command=command, timeout_seconds=0.5, kill_grace_seconds=2)

    result = await invoker.run("x")
    assert result.timed_out is True
    assert result.exit_code is not None  # reaped
    assert result.exit_code != 0
    assert "started" in result.stdout

    with pytest.raises(InvocationTimeoutError, match="timed out after 0.5 seconds"):
        await invoker.invoke("x")


async def test_timeout_kills_process_that_ignores_sigterm(tmp_path: Path) -> None:
    body = (
        "import signal\n"
        "signal.signal(signal.SIGTERM, signal.SIG_IGN)\n"
        'print("ready", flush=True)\n'
        "time.sleep(30)"
    )
    command = fake_cli(tmp_path, body)
    invoker = ClaudeInvoker(tmp_path, command=command, timeout_seconds=1.0, kill_grace_seconds=0.3)

    result = await invoker.run("x")
    assert result.timed_out is True
    assert result.exit_code == -9


def test_timeout_message_uses_minutes_for_default(tmp_path: Path) -> None:
    from wabridge.agent.invoker import _format_duration

    assert ClaudeInvoker(tmp_path).timeout_seconds == 300
    assert _format_duration(300) == "5 minutes"
    assert _format_duration(60) == "1 minute"
    assert _format_duration(45) == "45 seconds"
