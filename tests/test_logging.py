import io
import sys

from mediaoptim.util.logging import use_color


class _Tty(io.StringIO):
    def isatty(self) -> bool:
        return True


def _clear_color_env(monkeypatch) -> None:
    for name in ("NO_COLOR", "CLICOLOR", "FORCE_COLOR", "CLICOLOR_FORCE"):
        monkeypatch.delenv(name, raising=False)


def test_piped_output_has_no_color(monkeypatch) -> None:
    _clear_color_env(monkeypatch)
    monkeypatch.setattr(sys, "stdout", io.StringIO())
    assert use_color() is False


def test_terminal_output_has_color(monkeypatch) -> None:
    _clear_color_env(monkeypatch)
    monkeypatch.setattr(sys, "stdout", _Tty())
    assert use_color() is True


def test_force_color_overrides_pipe(monkeypatch) -> None:
    _clear_color_env(monkeypatch)
    monkeypatch.setenv("FORCE_COLOR", "1")
    monkeypatch.setattr(sys, "stdout", io.StringIO())
    assert use_color() is True


def test_no_color_wins_over_terminal(monkeypatch) -> None:
    _clear_color_env(monkeypatch)
    monkeypatch.setenv("NO_COLOR", "1")
    monkeypatch.setattr(sys, "stdout", _Tty())
    assert use_color() is False
