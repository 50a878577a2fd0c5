"""The pseudo-terminal link between the terminal and the program it runs."""

from __future__ import annotations

import errno
import fcntl
import logging
import os
import pwd
import select
import signal
import struct
import subprocess
import termios
from typing import Optional, Sequence

from stterm.terminal import Mode, Terminal

__all__ = ["shell_command", "stty_command", "Tty"]

log = logging.getLogger(__name__)

_BUFSIZ = 8192
_ARG_MAX = 4096
_WRITE_LIMIT = 256
_DEFAULT_SIGNALS = (
    signal.SIGCHLD,
    signal.SIGHUP,
    signal.SIGINT,
    signal.SIGQUIT,
    signal.SIGTERM,
    signal.SIGALRM,
)


def shell_command(
    shell: str,
    args: Optional[Sequence[str]] = None,
    scroll: Optional[str] = None,
    utmp: Optional[str] = None,
) -> list[str]:
    """Choose the argument vector of the program to start."""
    if args:
        return list(args)
    if scroll:
        return [scroll, utmp or shell]
    if utmp:
        return [utmp]
    return [shell]


def stty_command(stty_args: str, args: Optional[Sequence[str]] = None) -> str:
    """Build the stty command line used to configure a serial line."""
    if len(stty_args) > _ARG_MAX - 1:
        raise ValueError("incorrect stty parameters")
    room = _ARG_MAX - len(stty_args)
    parts = [stty_args]
    for arg in args or ():
        if len(arg) > room - 1:
            raise ValueError("stty parameter length too long")
        parts.append(arg)
        room -= len(arg) + 1
    return " ".join(parts)


def _write_all(fd: int, data: bytes) -> None:
    view = memoryview(data)
    while view:
        written = os.write(fd, view)
        view = view[written:]


def _child_setup() -> None:
    for sig in _DEFAULT_SIGNALS:
        signal.signal(sig, signal.SIG_DFL)
    fcntl.ioctl(0, termios.TIOCSCTTY, 0)


class Tty:
    """A pty (or serial line) feeding a Terminal and carrying its replies."""

    def __init__(self, terminal: Terminal) -> None:
        self.terminal = terminal
        self.fd: Optional[int] = None
        self.process: Optional[subprocess.Popen] = None
        self._out_fd: Optional[int] = None
        self._pending = bytearray()
        if terminal.writer is None:
            terminal.writer = lambda data: self.write(data, False)

    def __enter__(self) -> Tty:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _require_fd(self) -> int:
        if self.fd is None:
            raise ValueError("tty is not open")
        return self.fd

    # opening --------------------------------------------------------------

    def _open_output(self, out: str) -> None:
        self.terminal.mode |= Mode.PRINT
        if out == "-":
            self._out_fd = 1
        else:
            try:
                self._out_fd = os.open(out, os.O_WRONLY | os.O_CREAT, 0o666)
            except OSError as exc:
                log.error("Error opening %s:%s", out, exc.strerror)
                return
        self.terminal.printer = self._print

    def _print(self, data: bytes) -> None:
        if self._out_fd is None:
            return
        try:
            _write_all(self._out_fd, data)
        except OSError:
            self._close_output()
            raise

    def _close_output(self) -> None:
        if self._out_fd is not None and self._out_fd > 2:
            os.close(self._out_fd)
        self._out_fd = None

    def open(
        self,
        line: Optional[str] = None,
        shell: Optional[str] = None,
        out: Optional[str] = None,
        args: Optional[Sequence[str]] = None,
    ) -> int:
        """Open a serial line, or start a program on a new pty; return the fd."""
        config = self.terminal.config
        if out:
            self._open_output(out)

        if line:
            try:
                self.fd = os.open(line, os.O_RDWR)
            except OSError as exc:
                raise OSError(
                    exc.errno, f"open line '{line}' failed: {exc.strerror}"
                ) from exc
            command = stty_command(config.stty_args, args)
            result = subprocess.run(command, shell=True, stdin=self.fd)
            if result.returncode != 0:
                log.error("Couldn't call stty")
            return self.fd

        try:
            pw = pwd.getpwuid(os.getuid())
        except KeyError as exc:
            raise OSError("who are you?") from exc
        sh = os.environ.get("SHELL")
        if sh is None:
            sh = pw.pw_shell or shell or config.shell
        argv = shell_command(sh, args, config.scroll, config.utmp)

        env = dict(os.environ)
        for name in ("COLUMNS", "LINES", "TERMCAP"):
            env.pop(name, None)
        env.update(
            LOGNAME=pw.pw_name,
            USER=pw.pw_name,
            SHELL=sh,
            HOME=pw.pw_dir,
            TERM=config.termname,
        )

        master, slave = os.openpty()
        try:
            self.process = subprocess.Popen(
                argv,
                stdin=slave,
                stdout=slave,
                stderr=slave,
                env=env,
                start_new_session=True,
                preexec_fn=_child_setup,
            )
        except OSError:
            os.close(master)
            raise
        finally:
            os.close(slave)
        self.fd = master
        return master

    # reading and writing --------------------------------------------------

    def _check_child(self) -> None:
        if self.process is None:
            return
        code = self.process.wait()
        if code > 0:
            raise ChildProcessError(f"child exited with status {code}")
        if code < 0:
            raise ChildProcessError(f"child terminated due to signal {-code}")

    def read(self) -> int:
        """Read available output into the terminal; return the bytes read.

        Raises EOFError when the other side has gone away cleanly and
        ChildProcessError when the program failed.
        """
        fd = self._require_fd()
        try:
            data = os.read(fd, _BUFSIZ - len(self._pending))
        except OSError as exc:
            if exc.errno != errno.EIO:
                raise OSError(
                    exc.errno, f"couldn't read from shell: {exc.strerror}"
                ) from exc
            data = b""
        if not data:
            self._check_child()
            raise EOFError("end of tty input")
        self._pending += data
        consumed = self.terminal.write(bytes(self._pending))
        del self._pending[:consumed]
        return len(data)

    def write(self, data: bytes, may_echo: bool = False) -> None:
        """Send input to the program, echoing and mapping CR as the modes ask."""
        mode = self.terminal.mode
        if may_echo and mode & Mode.ECHO:
            self.terminal.write(data, True)
        if mode & Mode.CRLF:
            data = data.replace(b"\r", b"\r\n")
        self.write_raw(data)

    def write_raw(self, data: bytes) -> None:
        """Write in small chunks, draining output whenever the line fills."""
        fd = self._require_fd()
        limit = _WRITE_LIMIT
        view = memoryview(data)
        while view:
            readable, writable, _ = select.select([fd], [fd], [])
            if writable:
                try:
                    written = os.write(fd, view[: min(len(view), limit)])
                except OSError as exc:
                    raise OSError(
                        exc.errno, f"write error on tty: {exc.strerror}"
                    ) from exc
                if written < len(view):
                    if len(view) < limit:
                        limit = self.read()
                    view = view[written:]
                else:
                    break
            if readable:
                limit = self.read()

    # control --------------------------------------------------------------

    def resize(self, width: int, height: int) -> None:
        """Tell the program the grid size and the pixel size of the text area."""
        fd = self._require_fd()
        screen = self.terminal.screen
        size = struct.pack("HHHH", screen.rows, screen.cols, width, height)
        try:
            fcntl.ioctl(fd, termios.TIOCSWINSZ, size)
        except OSError as exc:
            log.error("Couldn't set window size: %s", exc.strerror)

    def hangup(self) -> None:
        """Send SIGHUP to the program."""
        if self.process is not None:
            os.kill(self.process.pid, signal.SIGHUP)

    def send_break(self) -> None:
        fd = self._require_fd()
        try:
            termios.tcsendbreak(fd, 0)
        except termios.error as exc:
            log.error("Error sending break: %s", exc)

    def close(self) -> None:
        """Close the line and the printer output."""
        if self.fd is not None:
            os.close(self.fd)
            self.fd = None
        self._close_output()
        if self.process is not None:
            self.process.poll()